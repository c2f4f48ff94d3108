"""Enrollment API endpoints.

Provides routes for:
- Enrolling (self-enrollment and assignment by staff)
- Drop, forced completion and progress recalculation
- Enrollment queries and due-date updates
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from learnflow.auth.dependencies import CurrentUser, StaffUser
from learnflow.core.responses import ApiResponse, Pagination, ok, paged

from .dependencies import EnrollmentServiceDep
from .models import EnrollmentStatus
from .schemas import (
    EnrollmentProgressResponse,
    EnrollmentResponse,
    EnrollRequest,
    RollupResponse,
    UpdateDueDateRequest,
)


router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])


@router.post(
    "",
    response_model=ApiResponse[EnrollmentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def enroll(
    data: EnrollRequest,
    service: EnrollmentServiceDep,
    user: CurrentUser,
) -> ApiResponse[EnrollmentResponse]:
    enrollment = await service.enroll(
        course_id=data.course_id,
        trainee_id=data.trainee_id or user.id,
        caller=user,
        due_date=data.due_date,
        enrollment_type=data.enrollment_type,
    )
    return ok(EnrollmentResponse.from_entity(enrollment), "Enrolled successfully")


@router.get("", response_model=ApiResponse[list[EnrollmentResponse]])
async def list_enrollments(
    service: EnrollmentServiceDep,
    user: CurrentUser,
    pagination: Pagination,
    course_id: UUID | None = None,
    trainee_id: UUID | None = None,
    enrollment_status: Annotated[
        EnrollmentStatus | None, Query(alias="status")
    ] = None,
) -> ApiResponse[list[EnrollmentResponse]]:
    items, meta = await service.list_enrollments(
        user,
        pagination,
        course_id=course_id,
        trainee_id=trainee_id,
        status=enrollment_status,
    )
    return paged([EnrollmentResponse.from_entity(e) for e in items], meta)


@router.get("/{enrollment_id}", response_model=ApiResponse[EnrollmentResponse])
async def get_enrollment(
    enrollment_id: UUID,
    service: EnrollmentServiceDep,
    user: CurrentUser,
) -> ApiResponse[EnrollmentResponse]:
    enrollment = await service.get_enrollment(enrollment_id, user)
    return ok(EnrollmentResponse.from_entity(enrollment))


@router.patch("/{enrollment_id}/due-date", response_model=ApiResponse[EnrollmentResponse])
async def update_due_date(
    enrollment_id: UUID,
    data: UpdateDueDateRequest,
    service: EnrollmentServiceDep,
    user: StaffUser,
) -> ApiResponse[EnrollmentResponse]:
    enrollment = await service.update_due_date(enrollment_id, data.due_date, user)
    return ok(EnrollmentResponse.from_entity(enrollment), "Due date updated")


@router.post("/{enrollment_id}/drop", response_model=ApiResponse[EnrollmentResponse])
async def drop_enrollment(
    enrollment_id: UUID,
    service: EnrollmentServiceDep,
    user: CurrentUser,
) -> ApiResponse[EnrollmentResponse]:
    enrollment = await service.drop(enrollment_id, user)
    return ok(EnrollmentResponse.from_entity(enrollment), "Enrollment dropped")


@router.post("/{enrollment_id}/complete", response_model=ApiResponse[EnrollmentResponse])
async def complete_enrollment(
    enrollment_id: UUID,
    service: EnrollmentServiceDep,
    user: CurrentUser,
) -> ApiResponse[EnrollmentResponse]:
    enrollment = await service.complete(enrollment_id, user)
    return ok(EnrollmentResponse.from_entity(enrollment), "Enrollment completed")


@router.post(
    "/{enrollment_id}/recalculate",
    response_model=ApiResponse[EnrollmentProgressResponse],
)
async def recalculate_progress(
    enrollment_id: UUID,
    service: EnrollmentServiceDep,
    user: CurrentUser,
) -> ApiResponse[EnrollmentProgressResponse]:
    enrollment, rollup = await service.recalculate(enrollment_id, user)
    return ok(
        EnrollmentProgressResponse(
            enrollment=EnrollmentResponse.from_entity(enrollment),
            rollup=RollupResponse.from_rollup(rollup),
        )
    )
