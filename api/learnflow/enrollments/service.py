"""Enrollment lifecycle.

States: ``enrolled -> in_progress -> completed``. ``dropped`` is reachable
from any other state and ``enrolled`` is reachable again from ``dropped``
(re-enrollment reuses the same row and id). This service is the only writer
of enrollment status.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

import structlog

from learnflow.auth.access import (
    can_manage_course,
    ensure_course_manager,
    ensure_course_visible,
    ensure_enrollment_access,
)
from learnflow.auth.schemas import AuthenticatedUser
from learnflow.catalog.models import Course
from learnflow.core.errors import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
)
from learnflow.core.responses import PaginationMeta, PaginationParams, paginate
from learnflow.progress.aggregator import HUNDRED, ProgressRollup

from .models import (
    TERMINAL_STATUSES,
    Enrollment,
    EnrollmentStatus,
    EnrollmentType,
)


if TYPE_CHECKING:
    from learnflow.catalog.store import CatalogStore
    from learnflow.prerequisites.service import PrerequisiteResolver
    from learnflow.progress.aggregator import ProgressAggregator

logger = structlog.get_logger(__name__)


def derive_status(progress_percentage: Decimal, current_status: str) -> str:
    """Status implied by a recalculated percentage.

    100 -> completed, above 0 -> in_progress, otherwise unchanged. Completed
    and dropped enrollments keep their status. Runs after every
    recalculation, so an enrolled trainee moves to in_progress as soon as
    any ledger row completes.
    """
    if EnrollmentStatus(current_status) in TERMINAL_STATUSES:
        return current_status
    if progress_percentage >= HUNDRED:
        return EnrollmentStatus.COMPLETED.value
    if progress_percentage > 0:
        return EnrollmentStatus.IN_PROGRESS.value
    return current_status


class EnrollmentService:
    """Enroll, drop, complete and recalculate enrollments."""

    def __init__(
        self,
        store: "CatalogStore",
        resolver: "PrerequisiteResolver",
        aggregator: "ProgressAggregator",
    ):
        self.store = store
        self.resolver = resolver
        self.aggregator = aggregator

    async def _require_course(self, course_id: UUID) -> Course:
        course = await self.store.get_course(course_id)
        if course is None:
            raise NotFoundError("Course not found", "course_not_found")
        return course

    async def _require_enrollment(self, enrollment_id: UUID) -> Enrollment:
        enrollment = await self.store.get_enrollment(enrollment_id)
        if enrollment is None:
            raise NotFoundError("Enrollment not found", "enrollment_not_found")
        return enrollment

    async def load_for_caller(
        self, enrollment_id: UUID, caller: AuthenticatedUser
    ) -> tuple[Enrollment, Course]:
        """Load an enrollment and its course, enforcing caller access."""
        enrollment = await self._require_enrollment(enrollment_id)
        course = await self._require_course(enrollment.course_id)
        ensure_enrollment_access(caller, enrollment, course)
        return enrollment, course

    # ==========================================================================
    # Enroll
    # ==========================================================================

    async def enroll(
        self,
        course_id: UUID,
        trainee_id: UUID,
        caller: AuthenticatedUser,
        due_date: datetime | None = None,
        enrollment_type: EnrollmentType | None = None,
    ) -> Enrollment:
        """Enroll a trainee, reusing a dropped enrollment row if one exists.

        Gates, in order: course exists, caller may enroll, course published,
        capacity, no active enrollment, mandatory prerequisites.

        Raises:
            NotFoundError: Course does not exist
            ForbiddenError: Caller cannot enroll this trainee in this course
            BadRequestError: Course not published, or prerequisites unmet
            ConflictError: Capacity reached, or already actively enrolled
        """
        course = await self._require_course(course_id)

        if caller.is_trainee:
            if trainee_id != caller.id:
                raise ForbiddenError("Trainees can only enroll themselves")
            ensure_course_visible(caller, course)
            enrollment_type = enrollment_type or EnrollmentType.SELF
        else:
            ensure_course_manager(caller, course)
            enrollment_type = enrollment_type or EnrollmentType.ASSIGNED

        if not course.is_published:
            raise BadRequestError(
                "Cannot enroll in unpublished course", "course_not_published"
            )

        enrollments = await self.store.list_course_enrollments(course_id)
        if course.max_enrollments is not None:
            active = sum(1 for e in enrollments if e.is_active)
            if active >= course.max_enrollments:
                raise ConflictError(
                    "Course enrollment limit reached", "enrollment_limit_reached"
                )

        existing = next((e for e in enrollments if e.trainee_id == trainee_id), None)
        if existing is not None and existing.is_active:
            raise ConflictError(
                "Trainee is already enrolled in this course", "already_enrolled"
            )

        check = await self.resolver.check_prerequisites(course_id, trainee_id)
        if not check.satisfied:
            titles = ", ".join(ref.title for ref in check.missing)
            raise BadRequestError(
                f"Missing prerequisites: {titles}", "missing_prerequisites"
            )

        now = datetime.now(UTC)
        if existing is not None:
            existing.status = EnrollmentStatus.ENROLLED.value
            existing.started_at = now
            existing.due_date = due_date
            existing.enrollment_type = enrollment_type.value
            existing.enrolled_by = caller.id
            existing.updated_at = now
            if not await self.store.reactivate_enrollment(existing):
                raise ConflictError(
                    "Trainee is already enrolled in this course", "already_enrolled"
                )
            logger.info(
                "trainee_reenrolled",
                enrollment_id=str(existing.id),
                course_id=str(course_id),
                trainee_id=str(trainee_id),
            )
            return existing

        enrollment = Enrollment(
            id=uuid4(),
            course_id=course_id,
            trainee_id=trainee_id,
            status=EnrollmentStatus.ENROLLED.value,
            enrollment_type=enrollment_type.value,
            enrolled_by=caller.id,
            started_at=now,
            due_date=due_date,
            created_at=now,
        )
        if not await self.store.create_enrollment(enrollment):
            raise ConflictError(
                "Trainee is already enrolled in this course", "already_enrolled"
            )

        logger.info(
            "trainee_enrolled",
            enrollment_id=str(enrollment.id),
            course_id=str(course_id),
            trainee_id=str(trainee_id),
            enrollment_type=enrollment.enrollment_type,
        )
        return enrollment

    # ==========================================================================
    # Transitions
    # ==========================================================================

    async def _transition(
        self,
        enrollment: Enrollment,
        status: EnrollmentStatus,
        now: datetime,
    ) -> bool:
        """Conditionally move ``enrollment`` to ``status`` and mirror it in memory."""
        completed_at = enrollment.completed_at
        if status == EnrollmentStatus.COMPLETED and completed_at is None:
            completed_at = now
        if not await self.store.transition_enrollment(
            enrollment, status.value, completed_at, now
        ):
            return False
        enrollment.status = status.value
        enrollment.completed_at = completed_at
        enrollment.updated_at = now
        return True

    async def drop(self, enrollment_id: UUID, caller: AuthenticatedUser) -> Enrollment:
        """Drop an enrollment. Dropping twice is an error, not a no-op."""
        enrollment, _ = await self.load_for_caller(enrollment_id, caller)

        if enrollment.is_dropped:
            raise ConflictError("Enrollment is already dropped", "already_dropped")

        if not await self._transition(
            enrollment, EnrollmentStatus.DROPPED, datetime.now(UTC)
        ):
            raise ConflictError(
                "Enrollment changed concurrently, retry", "enrollment_conflict"
            )

        logger.info(
            "enrollment_dropped",
            enrollment_id=str(enrollment.id),
            course_id=str(enrollment.course_id),
        )
        return enrollment

    async def complete(self, enrollment_id: UUID, caller: AuthenticatedUser) -> Enrollment:
        """Force completion: status completed, progress 100, completed_at once."""
        enrollment, _ = await self.load_for_caller(enrollment_id, caller)

        if enrollment.is_dropped:
            raise BadRequestError(
                "Cannot complete a dropped enrollment", "enrollment_dropped"
            )

        now = datetime.now(UTC)
        if not await self._transition(enrollment, EnrollmentStatus.COMPLETED, now):
            raise ConflictError(
                "Enrollment changed concurrently, retry", "enrollment_conflict"
            )
        enrollment.progress_percentage = HUNDRED
        await self.store.update_enrollment_progress(enrollment)

        logger.info(
            "enrollment_completed",
            enrollment_id=str(enrollment.id),
            course_id=str(enrollment.course_id),
            forced=True,
        )
        return enrollment

    async def calculate_progress(
        self, enrollment: Enrollment
    ) -> tuple[Enrollment, ProgressRollup]:
        """Recompute the rollup, persist the percentage and derive the status.

        The percentage is written on its own (last write wins). A derived
        status change is conditional on the status read with ``enrollment``;
        if another writer changed it meanwhile, the stored status is kept.
        """
        rollup = await self.aggregator.calculate_enrollment_progress(enrollment)

        now = datetime.now(UTC)
        enrollment.progress_percentage = rollup.progress_percentage
        enrollment.updated_at = now
        await self.store.update_enrollment_progress(enrollment)

        previous = enrollment.status
        derived = derive_status(rollup.progress_percentage, previous)
        if derived == previous:
            return enrollment, rollup

        if await self._transition(enrollment, EnrollmentStatus(derived), now):
            logger.info(
                "enrollment_status_changed",
                enrollment_id=str(enrollment.id),
                previous=previous,
                status=enrollment.status,
                progress_percentage=str(rollup.progress_percentage),
            )
            return enrollment, rollup

        current = await self.store.get_enrollment(enrollment.id)
        logger.info(
            "enrollment_status_change_skipped",
            enrollment_id=str(enrollment.id),
            derived=derived,
            current=current.status if current else None,
        )
        return current or enrollment, rollup

    async def recalculate(
        self, enrollment_id: UUID, caller: AuthenticatedUser
    ) -> tuple[Enrollment, ProgressRollup]:
        enrollment, _ = await self.load_for_caller(enrollment_id, caller)
        return await self.calculate_progress(enrollment)

    async def recalculate_by_id(self, enrollment_id: UUID) -> None:
        """Recalculate after an outcome recorded elsewhere (attempt, grade)."""
        enrollment = await self.store.get_enrollment(enrollment_id)
        if enrollment is not None:
            await self.calculate_progress(enrollment)

    # ==========================================================================
    # Queries and updates
    # ==========================================================================

    async def get_enrollment(
        self, enrollment_id: UUID, caller: AuthenticatedUser
    ) -> Enrollment:
        enrollment, _ = await self.load_for_caller(enrollment_id, caller)
        return enrollment

    async def list_enrollments(
        self,
        caller: AuthenticatedUser,
        pagination: PaginationParams,
        course_id: UUID | None = None,
        trainee_id: UUID | None = None,
        status: EnrollmentStatus | None = None,
    ) -> tuple[list[Enrollment], PaginationMeta]:
        """List enrollments by course or by trainee.

        Trainees always see only their own enrollments. Staff must filter by
        course (which they must manage) or by trainee (restricted to courses
        they manage).
        """
        if caller.is_trainee:
            trainee_id = caller.id

        if course_id is not None:
            course = await self._require_course(course_id)
            if caller.is_trainee:
                ensure_course_visible(caller, course)
            else:
                ensure_course_manager(caller, course)
            items = await self.store.list_course_enrollments(course_id)
            if trainee_id is not None:
                items = [e for e in items if e.trainee_id == trainee_id]
        elif trainee_id is not None:
            items = await self.store.list_trainee_enrollments(trainee_id)
            if not caller.is_trainee:
                managed = []
                for enrollment in items:
                    course = await self.store.get_course(enrollment.course_id)
                    if course is not None and can_manage_course(caller, course):
                        managed.append(enrollment)
                items = managed
        else:
            raise BadRequestError(
                "Filter by course_id or trainee_id is required", "missing_filter"
            )

        if status is not None:
            items = [e for e in items if e.status == status.value]

        items.sort(key=lambda e: e.created_at, reverse=True)
        return paginate(items, pagination)

    async def update_due_date(
        self,
        enrollment_id: UUID,
        due_date: datetime | None,
        caller: AuthenticatedUser,
    ) -> Enrollment:
        """Set or clear the due date (course managers only)."""
        enrollment = await self._require_enrollment(enrollment_id)
        course = await self._require_course(enrollment.course_id)
        ensure_course_manager(caller, course)

        enrollment.due_date = due_date
        enrollment.updated_at = datetime.now(UTC)
        await self.store.update_enrollment_due_date(enrollment)

        logger.info(
            "enrollment_due_date_updated",
            enrollment_id=str(enrollment.id),
            due_date=due_date.isoformat() if due_date else None,
        )
        return enrollment
