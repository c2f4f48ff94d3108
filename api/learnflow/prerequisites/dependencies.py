"""FastAPI dependencies for prerequisite management."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import PrerequisiteResolver


async def get_prerequisite_resolver(request: Request) -> PrerequisiteResolver:
    """Get prerequisite resolver from app state."""
    resolver = getattr(request.app.state, "prerequisite_resolver", None)
    if resolver is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Prerequisite service unavailable",
        )
    return resolver


PrerequisiteResolverDep = Annotated[
    PrerequisiteResolver, Depends(get_prerequisite_resolver)
]
