"""Progress tracking service layer.

Business logic for:
- Progress updates and content completion by the enrolled trainee
- Enrollment recalculation after every ledger write
- Progress queries per enrollment and per course
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from learnflow.auth.access import ensure_course_manager, ensure_course_visible
from learnflow.auth.schemas import AuthenticatedUser
from learnflow.core.errors import BadRequestError, ForbiddenError, NotFoundError
from learnflow.enrollments.models import Enrollment

from .aggregator import ProgressRollup
from .models import Progress, ProgressStatus


if TYPE_CHECKING:
    from learnflow.catalog.store import CatalogStore
    from learnflow.enrollments.service import EnrollmentService

    from .aggregator import ProgressAggregator

logger = structlog.get_logger(__name__)


@dataclass
class CourseProgress:
    enrollment: Enrollment
    rollup: ProgressRollup
    entries: list[Progress]


class ProgressService:
    """Entry point for ledger writes and progress reads."""

    def __init__(
        self,
        store: "CatalogStore",
        aggregator: "ProgressAggregator",
        enrollment_service: "EnrollmentService",
    ):
        self.store = store
        self.aggregator = aggregator
        self.enrollment_service = enrollment_service

    async def _own_active_enrollment(
        self, enrollment_id: UUID, caller: AuthenticatedUser
    ) -> Enrollment:
        enrollment = await self.store.get_enrollment(enrollment_id)
        if enrollment is None:
            raise NotFoundError("Enrollment not found", "enrollment_not_found")
        if enrollment.trainee_id != caller.id:
            raise ForbiddenError("You can only update your own progress")
        if enrollment.is_dropped:
            raise BadRequestError(
                "Cannot record progress on a dropped enrollment", "enrollment_dropped"
            )
        return enrollment

    async def update_progress(
        self,
        caller: AuthenticatedUser,
        enrollment_id: UUID,
        module_id: UUID,
        status: ProgressStatus,
        progress_percentage: Decimal,
        content_id: UUID | None = None,
        time_spent: int | None = None,
    ) -> tuple[Progress, Enrollment]:
        """Record progress, then recalculate the enrollment."""
        enrollment = await self._own_active_enrollment(enrollment_id, caller)
        row = await self.aggregator.record_progress(
            enrollment,
            module_id,
            content_id,
            status,
            progress_percentage,
            time_spent,
        )
        enrollment, _ = await self.enrollment_service.calculate_progress(enrollment)
        return row, enrollment

    async def complete_content(
        self,
        caller: AuthenticatedUser,
        enrollment_id: UUID,
        module_id: UUID,
        content_id: UUID,
        time_spent: int | None = None,
        content_data: str | None = None,
    ) -> tuple[Progress, Enrollment]:
        """Complete a content item (and possibly its module), then recalculate."""
        enrollment = await self._own_active_enrollment(enrollment_id, caller)
        row = await self.aggregator.complete_content(
            enrollment, module_id, content_id, time_spent, content_data
        )
        enrollment, _ = await self.enrollment_service.calculate_progress(enrollment)
        return row, enrollment

    async def get_enrollment_progress(
        self,
        caller: AuthenticatedUser,
        enrollment_id: UUID,
        module_id: UUID | None = None,
        content_id: UUID | None = None,
    ) -> list[Progress]:
        await self.enrollment_service.load_for_caller(enrollment_id, caller)
        return await self.aggregator.get_enrollment_progress(
            enrollment_id, module_id, content_id
        )

    async def get_course_progress(
        self,
        caller: AuthenticatedUser,
        course_id: UUID,
        trainee_id: UUID | None = None,
    ) -> CourseProgress:
        """A trainee's rollup and ledger in one course (read-only)."""
        course = await self.store.get_course(course_id)
        if course is None:
            raise NotFoundError("Course not found", "course_not_found")

        if caller.is_trainee:
            ensure_course_visible(caller, course)
            trainee_id = caller.id
        else:
            ensure_course_manager(caller, course)
            if trainee_id is None:
                raise BadRequestError("trainee_id is required", "missing_filter")

        enrollment = await self.store.find_enrollment(course_id, trainee_id)
        if enrollment is None:
            raise NotFoundError("Not enrolled in this course", "not_enrolled")

        rollup = await self.aggregator.calculate_enrollment_progress(enrollment)
        entries = await self.store.list_progress(enrollment.id)
        return CourseProgress(enrollment=enrollment, rollup=rollup, entries=entries)
