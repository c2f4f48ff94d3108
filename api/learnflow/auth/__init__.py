"""Caller identity and access control."""
