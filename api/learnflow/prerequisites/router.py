"""Prerequisite API endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from learnflow.auth.dependencies import CurrentUser, StaffUser
from learnflow.core.responses import ApiResponse, ok

from .dependencies import PrerequisiteResolverDep
from .schemas import (
    AddPrerequisiteRequest,
    PrerequisiteCheckResponse,
    PrerequisiteResponse,
)


router = APIRouter(prefix="/v1/courses/{course_id}/prerequisites", tags=["prerequisites"])


@router.get("", response_model=ApiResponse[list[PrerequisiteResponse]])
async def list_prerequisites(
    course_id: UUID,
    resolver: PrerequisiteResolverDep,
    user: CurrentUser,
) -> ApiResponse[list[PrerequisiteResponse]]:
    """List mandatory and optional prerequisites of a course."""
    links = await resolver.list_prerequisites(course_id, user)
    return ok([PrerequisiteResponse.from_link(item) for item in links])


@router.get("/check", response_model=ApiResponse[PrerequisiteCheckResponse])
async def check_prerequisites(
    course_id: UUID,
    resolver: PrerequisiteResolverDep,
    user: CurrentUser,
) -> ApiResponse[PrerequisiteCheckResponse]:
    """Check the calling trainee's mandatory prerequisites for a course."""
    check = await resolver.check_for_caller(course_id, user)
    return ok(PrerequisiteCheckResponse.from_check(check))


@router.post(
    "",
    response_model=ApiResponse[PrerequisiteResponse],
    status_code=status.HTTP_201_CREATED,
)
async def add_prerequisite(
    course_id: UUID,
    data: AddPrerequisiteRequest,
    resolver: PrerequisiteResolverDep,
    user: StaffUser,
) -> ApiResponse[PrerequisiteResponse]:
    link = await resolver.add_prerequisite(
        course_id,
        data.prerequisite_course_id,
        user,
        is_mandatory=data.is_mandatory,
    )
    return ok(PrerequisiteResponse.from_link(link), "Prerequisite added")


@router.delete("/{prerequisite_course_id}", response_model=ApiResponse[None])
async def remove_prerequisite(
    course_id: UUID,
    prerequisite_course_id: UUID,
    resolver: PrerequisiteResolverDep,
    user: StaffUser,
) -> ApiResponse[None]:
    await resolver.remove_prerequisite(course_id, prerequisite_course_id, user)
    return ok(message="Prerequisite removed")
