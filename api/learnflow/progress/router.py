"""Progress tracking API endpoints.

Provides routes for:
- Progress updates (module or content level)
- Content completion with module auto-completion
- Progress queries per enrollment and per course
"""

from uuid import UUID

from fastapi import APIRouter

from learnflow.auth.dependencies import CurrentUser, TraineeUser
from learnflow.core.responses import ApiResponse, ok
from learnflow.enrollments.schemas import EnrollmentResponse

from .dependencies import ProgressServiceDep
from .schemas import (
    CompleteContentRequest,
    CourseProgressResponse,
    ProgressResponse,
    ProgressUpdateResponse,
    UpdateProgressRequest,
)


router = APIRouter(prefix="/v1/progress", tags=["progress"])


@router.put("", response_model=ApiResponse[ProgressUpdateResponse])
async def update_progress(
    data: UpdateProgressRequest,
    service: ProgressServiceDep,
    user: TraineeUser,
) -> ApiResponse[ProgressUpdateResponse]:
    """Upsert a ledger row; time spent accumulates across calls."""
    progress, enrollment = await service.update_progress(
        user,
        enrollment_id=data.enrollment_id,
        module_id=data.module_id,
        content_id=data.content_id,
        status=data.status,
        progress_percentage=data.progress_percentage,
        time_spent=data.time_spent,
    )
    return ok(
        ProgressUpdateResponse(
            progress=ProgressResponse.from_entity(progress),
            enrollment=EnrollmentResponse.from_entity(enrollment),
        )
    )


@router.post("/complete", response_model=ApiResponse[ProgressUpdateResponse])
async def complete_content(
    data: CompleteContentRequest,
    service: ProgressServiceDep,
    user: TraineeUser,
) -> ApiResponse[ProgressUpdateResponse]:
    """Mark content completed; completes the module when all required content is."""
    progress, enrollment = await service.complete_content(
        user,
        enrollment_id=data.enrollment_id,
        module_id=data.module_id,
        content_id=data.content_id,
        time_spent=data.time_spent,
        content_data=data.content_data_json(),
    )
    return ok(
        ProgressUpdateResponse(
            progress=ProgressResponse.from_entity(progress),
            enrollment=EnrollmentResponse.from_entity(enrollment),
        ),
        "Content completed",
    )


@router.get(
    "/enrollments/{enrollment_id}",
    response_model=ApiResponse[list[ProgressResponse]],
)
async def get_enrollment_progress(
    enrollment_id: UUID,
    service: ProgressServiceDep,
    user: CurrentUser,
    module_id: UUID | None = None,
    content_id: UUID | None = None,
) -> ApiResponse[list[ProgressResponse]]:
    rows = await service.get_enrollment_progress(
        user, enrollment_id, module_id=module_id, content_id=content_id
    )
    return ok([ProgressResponse.from_entity(row) for row in rows])


@router.get("/courses/{course_id}", response_model=ApiResponse[CourseProgressResponse])
async def get_course_progress(
    course_id: UUID,
    service: ProgressServiceDep,
    user: CurrentUser,
    trainee_id: UUID | None = None,
) -> ApiResponse[CourseProgressResponse]:
    view = await service.get_course_progress(user, course_id, trainee_id=trainee_id)
    return ok(CourseProgressResponse.from_view(view))
