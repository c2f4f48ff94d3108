"""Enrollment lifecycle."""
