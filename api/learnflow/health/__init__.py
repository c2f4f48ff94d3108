"""Health check module."""

from learnflow.health.router import router


__all__ = ["router"]
