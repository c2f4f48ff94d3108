"""Assessment scoring engine.

Business logic for:
- Viewing an assessment (correct answers stripped for trainees)
- Submitting an attempt: ownership, attempt limit, grading, numbering
- Attempt queries
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

import structlog

from learnflow.auth.access import ensure_course_manager, ensure_trainee
from learnflow.auth.schemas import AuthenticatedUser
from learnflow.catalog.models import Course
from learnflow.core.errors import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
)
from learnflow.core.responses import PaginationMeta, PaginationParams, paginate

from .grading import grade
from .models import Assessment, AssessmentAttempt


if TYPE_CHECKING:
    from learnflow.catalog.store import CatalogStore
    from learnflow.enrollments.service import EnrollmentService

logger = structlog.get_logger(__name__)


class AssessmentService:
    """Grades attempts and serves assessments and attempts to callers."""

    def __init__(self, store: "CatalogStore", enrollment_service: "EnrollmentService"):
        self.store = store
        self.enrollment_service = enrollment_service

    async def _require_assessment(self, assessment_id: UUID) -> Assessment:
        assessment = await self.store.get_assessment(assessment_id)
        if assessment is None:
            raise NotFoundError("Assessment not found", "assessment_not_found")
        return assessment

    async def _require_course(self, course_id: UUID) -> Course:
        course = await self.store.get_course(course_id)
        if course is None:
            raise NotFoundError("Course not found", "course_not_found")
        return course

    # ==========================================================================
    # Viewing
    # ==========================================================================

    async def get_assessment(
        self, assessment_id: UUID, caller: AuthenticatedUser
    ) -> tuple[Assessment, bool]:
        """Load an assessment for the caller.

        Returns:
            The assessment and whether correct answers may be shown. Trainees
            need a non-dropped enrollment in the course and never see answers.
        """
        assessment = await self._require_assessment(assessment_id)

        if caller.is_trainee:
            enrollment = await self.store.find_enrollment(assessment.course_id, caller.id)
            if enrollment is None or enrollment.is_dropped:
                raise ForbiddenError(
                    "You must be enrolled in this course to view the assessment"
                )
            return assessment, False

        course = await self._require_course(assessment.course_id)
        ensure_course_manager(caller, course)
        return assessment, True

    # ==========================================================================
    # Submission
    # ==========================================================================

    async def submit(
        self,
        assessment_id: UUID,
        enrollment_id: UUID,
        answers: dict[str, Any],
        caller: AuthenticatedUser,
        time_taken: int | None = None,
    ) -> AssessmentAttempt:
        """Grade and persist one attempt.

        Raises:
            ForbiddenError: Caller is not a trainee or not the enrollment owner
            NotFoundError: Assessment or enrollment does not exist
            BadRequestError: Course mismatch, dropped enrollment, or the
                attempt limit is reached
            ConflictError: A concurrent submission took this attempt number
        """
        ensure_trainee(caller, "submit assessments")

        assessment = await self._require_assessment(assessment_id)
        enrollment = await self.store.get_enrollment(enrollment_id)
        if enrollment is None:
            raise NotFoundError("Enrollment not found", "enrollment_not_found")
        if enrollment.trainee_id != caller.id:
            raise ForbiddenError("You can only submit for your own enrollment")
        if enrollment.course_id != assessment.course_id:
            raise BadRequestError(
                "Assessment does not belong to the enrolled course", "course_mismatch"
            )
        if enrollment.is_dropped:
            raise BadRequestError(
                "Cannot submit on a dropped enrollment", "enrollment_dropped"
            )

        prior = await self.store.count_attempts(enrollment.id, assessment.id)
        if assessment.max_attempts is not None and prior >= assessment.max_attempts:
            raise BadRequestError(
                f"Maximum attempts ({assessment.max_attempts}) reached for this assessment",
                "max_attempts_reached",
            )

        result = grade(assessment.questions, answers, assessment.passing_score)

        if (
            assessment.time_limit is not None
            and time_taken is not None
            and time_taken > assessment.time_limit
        ):
            logger.warning(
                "assessment_attempt_over_time",
                assessment_id=str(assessment.id),
                enrollment_id=str(enrollment.id),
                time_taken=time_taken,
                time_limit=assessment.time_limit,
            )

        attempt = AssessmentAttempt(
            id=uuid4(),
            assessment_id=assessment.id,
            enrollment_id=enrollment.id,
            trainee_id=caller.id,
            attempt_number=prior + 1,
            answers=answers,
            score=result.score,
            is_passed=result.is_passed,
            time_taken=time_taken,
            submitted_at=datetime.now(UTC),
        )
        if not await self.store.create_attempt(attempt):
            raise ConflictError(
                "Another attempt was submitted at the same time, please retry",
                "attempt_conflict",
            )

        logger.info(
            "assessment_attempt_submitted",
            assessment_id=str(assessment.id),
            enrollment_id=str(enrollment.id),
            attempt_number=attempt.attempt_number,
            score=str(attempt.score),
            is_passed=attempt.is_passed,
        )

        await self.enrollment_service.calculate_progress(enrollment)
        return attempt

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def list_attempts(
        self,
        caller: AuthenticatedUser,
        pagination: PaginationParams,
        assessment_id: UUID | None = None,
        enrollment_id: UUID | None = None,
    ) -> tuple[list[AssessmentAttempt], PaginationMeta]:
        """List attempts of one enrollment, or of every enrollment on an assessment.

        Trainees only ever see their own attempts.
        """
        if enrollment_id is not None:
            await self.enrollment_service.load_for_caller(enrollment_id, caller)
            attempts = await self.store.list_attempts(enrollment_id, assessment_id)
        elif assessment_id is not None:
            assessment = await self._require_assessment(assessment_id)
            if caller.is_trainee:
                enrollment = await self.store.find_enrollment(
                    assessment.course_id, caller.id
                )
                attempts = (
                    await self.store.list_attempts(enrollment.id, assessment_id)
                    if enrollment is not None
                    else []
                )
            else:
                course = await self._require_course(assessment.course_id)
                ensure_course_manager(caller, course)
                attempts = []
                for enrollment in await self.store.list_course_enrollments(course.id):
                    attempts.extend(
                        await self.store.list_attempts(enrollment.id, assessment_id)
                    )
        else:
            raise BadRequestError(
                "Filter by assessment_id or enrollment_id is required", "missing_filter"
            )

        attempts.sort(key=lambda a: a.submitted_at, reverse=True)
        return paginate(attempts, pagination)

    async def get_attempt(
        self, attempt_id: UUID, caller: AuthenticatedUser
    ) -> AssessmentAttempt:
        attempt = await self.store.get_attempt(attempt_id)
        if attempt is None:
            raise NotFoundError("Attempt not found", "attempt_not_found")
        await self.enrollment_service.load_for_caller(attempt.enrollment_id, caller)
        return attempt
