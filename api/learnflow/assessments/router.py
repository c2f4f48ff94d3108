"""Assessment API endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from learnflow.auth.dependencies import CurrentUser, TraineeUser
from learnflow.core.responses import ApiResponse, Pagination, ok, paged

from .dependencies import AssessmentServiceDep
from .schemas import AssessmentResponse, AttemptResponse, SubmitAttemptRequest


router = APIRouter(prefix="/v1/assessments", tags=["assessments"])


@router.get("/attempts", response_model=ApiResponse[list[AttemptResponse]])
async def list_attempts(
    service: AssessmentServiceDep,
    user: CurrentUser,
    pagination: Pagination,
    assessment_id: UUID | None = None,
    enrollment_id: UUID | None = None,
) -> ApiResponse[list[AttemptResponse]]:
    items, meta = await service.list_attempts(
        user, pagination, assessment_id=assessment_id, enrollment_id=enrollment_id
    )
    return paged([AttemptResponse.from_entity(a) for a in items], meta)


@router.get("/attempts/{attempt_id}", response_model=ApiResponse[AttemptResponse])
async def get_attempt(
    attempt_id: UUID,
    service: AssessmentServiceDep,
    user: CurrentUser,
) -> ApiResponse[AttemptResponse]:
    attempt = await service.get_attempt(attempt_id, user)
    return ok(AttemptResponse.from_entity(attempt))


@router.get("/{assessment_id}", response_model=ApiResponse[AssessmentResponse])
async def get_assessment(
    assessment_id: UUID,
    service: AssessmentServiceDep,
    user: CurrentUser,
) -> ApiResponse[AssessmentResponse]:
    """Fetch an assessment; trainees receive it without correct answers."""
    assessment, include_answers = await service.get_assessment(assessment_id, user)
    return ok(AssessmentResponse.from_entity(assessment, include_answers))


@router.post(
    "/{assessment_id}/attempts",
    response_model=ApiResponse[AttemptResponse],
    status_code=status.HTTP_201_CREATED,
)
async def submit_attempt(
    assessment_id: UUID,
    data: SubmitAttemptRequest,
    service: AssessmentServiceDep,
    user: TraineeUser,
) -> ApiResponse[AttemptResponse]:
    attempt = await service.submit(
        assessment_id,
        data.enrollment_id,
        data.answers,
        user,
        time_taken=data.time_taken,
    )
    message = "Assessment passed" if attempt.is_passed else "Assessment not passed"
    return ok(AttemptResponse.from_entity(attempt), message)
