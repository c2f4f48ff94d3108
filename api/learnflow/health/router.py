"""Health check endpoints."""

from fastapi import APIRouter, Response, status

from learnflow.config import get_settings
from learnflow.core.database import AsyncCassandraConnection


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(response: Response) -> dict[str, str | bool]:
    """Readiness probe - not ready until the Cassandra session is open."""
    settings = get_settings()
    connected = AsyncCassandraConnection.is_connected()
    if not connected:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {
        "status": "ready" if connected else "not_ready",
        "environment": settings.environment,
        "debug": settings.debug,
        "database": connected,
    }


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
