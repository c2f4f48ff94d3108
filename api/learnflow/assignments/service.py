"""Assignment review workflow.

One submission per (assignment, enrollment). Submissions after the due date
are accepted and flagged late. Grading is reserved to course managers and
may be repeated; the latest grade wins.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

import structlog

from learnflow.auth.access import (
    ensure_course_manager,
    ensure_enrollment_owner,
    ensure_trainee,
)
from learnflow.auth.schemas import AuthenticatedUser
from learnflow.catalog.models import Course
from learnflow.core.errors import BadRequestError, ConflictError, NotFoundError
from learnflow.core.responses import PaginationMeta, PaginationParams, paginate

from .models import Assignment, AssignmentSubmission, SubmissionStatus


if TYPE_CHECKING:
    from learnflow.catalog.store import CatalogStore
    from learnflow.enrollments.service import EnrollmentService

logger = structlog.get_logger(__name__)

GRADING_STATUSES = frozenset({SubmissionStatus.GRADED, SubmissionStatus.RETURNED})


class AssignmentService:
    """Submit, grade and query assignment submissions."""

    def __init__(self, store: "CatalogStore", enrollment_service: "EnrollmentService"):
        self.store = store
        self.enrollment_service = enrollment_service

    async def _require_assignment(self, assignment_id: UUID) -> Assignment:
        assignment = await self.store.get_assignment(assignment_id)
        if assignment is None:
            raise NotFoundError("Assignment not found", "assignment_not_found")
        return assignment

    async def _require_course(self, course_id: UUID) -> Course:
        course = await self.store.get_course(course_id)
        if course is None:
            raise NotFoundError("Course not found", "course_not_found")
        return course

    async def submit(
        self,
        assignment_id: UUID,
        enrollment_id: UUID,
        caller: AuthenticatedUser,
        submission_text: str | None = None,
        submission_files: list[str] | None = None,
    ) -> AssignmentSubmission:
        """Record the trainee's only submission for this assignment.

        Raises:
            ForbiddenError: Caller is not a trainee or not the enrollment owner
            NotFoundError: Assignment or enrollment does not exist
            BadRequestError: Enrollment belongs to another course, or is dropped
            ConflictError: The enrollment already submitted
        """
        ensure_trainee(caller, "submit assignments")

        assignment = await self._require_assignment(assignment_id)
        enrollment = await self.store.get_enrollment(enrollment_id)
        if enrollment is None:
            raise NotFoundError("Enrollment not found", "enrollment_not_found")
        ensure_enrollment_owner(caller, enrollment)
        if enrollment.course_id != assignment.course_id:
            raise BadRequestError(
                "Assignment does not belong to the enrolled course", "course_mismatch"
            )
        if enrollment.is_dropped:
            raise BadRequestError(
                "Cannot submit on a dropped enrollment", "enrollment_dropped"
            )

        if await self.store.find_submission(assignment.id, enrollment.id) is not None:
            raise ConflictError("Assignment already submitted", "already_submitted")

        now = datetime.now(UTC)
        submission = AssignmentSubmission(
            id=uuid4(),
            assignment_id=assignment.id,
            enrollment_id=enrollment.id,
            trainee_id=caller.id,
            submission_text=submission_text,
            submission_files=submission_files,
            status=SubmissionStatus.SUBMITTED.value,
            is_late=assignment.is_past_due(now),
            submitted_at=now,
        )
        if not await self.store.create_submission(submission):
            raise ConflictError("Assignment already submitted", "already_submitted")

        if submission.is_late:
            logger.warning(
                "late_assignment_submission",
                assignment_id=str(assignment.id),
                enrollment_id=str(enrollment.id),
                due_date=assignment.due_date.isoformat(),
            )
        else:
            logger.info(
                "assignment_submitted",
                assignment_id=str(assignment.id),
                enrollment_id=str(enrollment.id),
            )
        return submission

    async def grade(
        self,
        submission_id: UUID,
        score: Decimal,
        caller: AuthenticatedUser,
        feedback: str | None = None,
        status: SubmissionStatus = SubmissionStatus.GRADED,
    ) -> AssignmentSubmission:
        """Grade (or re-grade) a submission and recalculate the enrollment.

        Raises:
            NotFoundError: Submission or assignment does not exist
            ForbiddenError: Caller does not manage the course
            BadRequestError: Score outside [0, max_score], or status is not
                graded/returned
        """
        submission = await self.store.get_submission(submission_id)
        if submission is None:
            raise NotFoundError("Submission not found", "submission_not_found")
        assignment = await self._require_assignment(submission.assignment_id)
        course = await self._require_course(assignment.course_id)
        ensure_course_manager(caller, course)

        if score < 0 or score > assignment.max_score:
            raise BadRequestError(
                f"Score must be between 0 and {assignment.max_score}", "invalid_score"
            )
        if SubmissionStatus(status) not in GRADING_STATUSES:
            raise BadRequestError(
                "Status must be graded or returned", "invalid_grading_status"
            )

        submission.score = Decimal(score)
        submission.feedback = feedback
        submission.status = SubmissionStatus(status).value
        submission.graded_at = datetime.now(UTC)
        submission.graded_by = caller.id
        await self.store.save_grade(submission)

        logger.info(
            "assignment_graded",
            submission_id=str(submission.id),
            assignment_id=str(assignment.id),
            score=str(submission.score),
            status=submission.status,
        )

        await self.enrollment_service.recalculate_by_id(submission.enrollment_id)
        return submission

    async def list_submissions(
        self,
        caller: AuthenticatedUser,
        pagination: PaginationParams,
        assignment_id: UUID,
        status: SubmissionStatus | None = None,
    ) -> tuple[list[AssignmentSubmission], PaginationMeta]:
        """Submissions for an assignment; trainees see only their own."""
        assignment = await self._require_assignment(assignment_id)

        if caller.is_trainee:
            enrollment = await self.store.find_enrollment(
                assignment.course_id, caller.id
            )
            own = (
                await self.store.find_submission(assignment.id, enrollment.id)
                if enrollment is not None
                else None
            )
            items = [own] if own is not None else []
        else:
            course = await self._require_course(assignment.course_id)
            ensure_course_manager(caller, course)
            items = await self.store.list_submissions(assignment.id)

        if status is not None:
            items = [s for s in items if s.status == status.value]

        items.sort(key=lambda s: s.submitted_at, reverse=True)
        return paginate(items, pagination)

    async def get_submission(
        self, submission_id: UUID, caller: AuthenticatedUser
    ) -> AssignmentSubmission:
        submission = await self.store.get_submission(submission_id)
        if submission is None:
            raise NotFoundError("Submission not found", "submission_not_found")
        await self.enrollment_service.load_for_caller(submission.enrollment_id, caller)
        return submission
