"""Assignment API endpoints.

Provides routes for:
- Trainee submission
- Grading by course managers
- Submission queries
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from learnflow.auth.dependencies import CurrentUser, StaffUser, TraineeUser
from learnflow.core.responses import ApiResponse, Pagination, ok, paged

from .dependencies import AssignmentServiceDep
from .models import SubmissionStatus
from .schemas import (
    GradeSubmissionRequest,
    SubmissionResponse,
    SubmitAssignmentRequest,
)


router = APIRouter(prefix="/v1/assignments", tags=["assignments"])


@router.post(
    "/{assignment_id}/submissions",
    response_model=ApiResponse[SubmissionResponse],
    status_code=status.HTTP_201_CREATED,
)
async def submit_assignment(
    assignment_id: UUID,
    data: SubmitAssignmentRequest,
    service: AssignmentServiceDep,
    user: TraineeUser,
) -> ApiResponse[SubmissionResponse]:
    submission = await service.submit(
        assignment_id,
        data.enrollment_id,
        user,
        submission_text=data.submission_text,
        submission_files=data.submission_files,
    )
    message = "Submitted after the due date" if submission.is_late else "Submitted"
    return ok(SubmissionResponse.from_entity(submission), message)


@router.get(
    "/{assignment_id}/submissions",
    response_model=ApiResponse[list[SubmissionResponse]],
)
async def list_submissions(
    assignment_id: UUID,
    service: AssignmentServiceDep,
    user: CurrentUser,
    pagination: Pagination,
    submission_status: Annotated[
        SubmissionStatus | None, Query(alias="status")
    ] = None,
) -> ApiResponse[list[SubmissionResponse]]:
    items, meta = await service.list_submissions(
        user, pagination, assignment_id, status=submission_status
    )
    return paged([SubmissionResponse.from_entity(s) for s in items], meta)


@router.get(
    "/submissions/{submission_id}",
    response_model=ApiResponse[SubmissionResponse],
)
async def get_submission(
    submission_id: UUID,
    service: AssignmentServiceDep,
    user: CurrentUser,
) -> ApiResponse[SubmissionResponse]:
    submission = await service.get_submission(submission_id, user)
    return ok(SubmissionResponse.from_entity(submission))


@router.post(
    "/submissions/{submission_id}/grade",
    response_model=ApiResponse[SubmissionResponse],
)
async def grade_submission(
    submission_id: UUID,
    data: GradeSubmissionRequest,
    service: AssignmentServiceDep,
    user: StaffUser,
) -> ApiResponse[SubmissionResponse]:
    submission = await service.grade(
        submission_id,
        data.score,
        user,
        feedback=data.feedback,
        status=data.status,
    )
    return ok(SubmissionResponse.from_entity(submission), "Submission graded")
