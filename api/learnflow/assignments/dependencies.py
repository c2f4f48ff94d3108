"""FastAPI dependencies for assignments."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import AssignmentService


async def get_assignment_service(request: Request) -> AssignmentService:
    """Get assignment service from app state."""
    service = getattr(request.app.state, "assignment_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Assignment service unavailable",
        )
    return service


AssignmentServiceDep = Annotated[AssignmentService, Depends(get_assignment_service)]
