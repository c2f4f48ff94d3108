"""Prerequisite gating and link management."""
