"""Tests for ProgressService: ownership, recalculation and course views."""

from decimal import Decimal
from uuid import uuid4

import pytest

from learnflow.core.errors import BadRequestError, ForbiddenError, NotFoundError
from learnflow.enrollments.models import EnrollmentStatus
from learnflow.progress.models import ProgressStatus


@pytest.fixture
def service(engine):
    return engine.progress_service


class TestUpdateProgress:
    @pytest.mark.asyncio
    async def test_recalculates_enrollment(
        self, service, store, trainee, enrollment, module, content
    ) -> None:
        row, updated = await service.update_progress(
            trainee,
            enrollment.id,
            module.id,
            ProgressStatus.COMPLETED,
            Decimal(100),
            content_id=content.id,
        )

        assert row.is_completed
        # content only: 1/1 * 30
        assert updated.progress_percentage == Decimal("30.00")
        assert updated.status == EnrollmentStatus.IN_PROGRESS.value
        stored = store.enrollments[enrollment.id]
        assert stored.progress_percentage == Decimal("30.00")

    @pytest.mark.asyncio
    async def test_other_trainee_forbidden(
        self, service, other_trainee, enrollment, module
    ) -> None:
        with pytest.raises(ForbiddenError):
            await service.update_progress(
                other_trainee,
                enrollment.id,
                module.id,
                ProgressStatus.IN_PROGRESS,
                Decimal(10),
            )

    @pytest.mark.asyncio
    async def test_dropped_enrollment_rejected(
        self, service, trainee, make_enrollment, course, module
    ) -> None:
        dropped = make_enrollment(
            course, trainee.id, status=EnrollmentStatus.DROPPED.value
        )
        with pytest.raises(BadRequestError):
            await service.update_progress(
                trainee, dropped.id, module.id, ProgressStatus.IN_PROGRESS, Decimal(10)
            )

    @pytest.mark.asyncio
    async def test_unknown_enrollment(self, service, trainee, module) -> None:
        with pytest.raises(NotFoundError):
            await service.update_progress(
                trainee, uuid4(), module.id, ProgressStatus.IN_PROGRESS, Decimal(10)
            )


class TestCompleteContent:
    @pytest.mark.asyncio
    async def test_single_content_completes_course(
        self, service, store, trainee, enrollment, module, content
    ) -> None:
        row, updated = await service.complete_content(
            trainee, enrollment.id, module.id, content.id, time_spent=120
        )

        assert row.time_spent == 120
        assert updated.status == EnrollmentStatus.COMPLETED.value
        assert updated.progress_percentage == Decimal("100.00")
        assert updated.completed_at is not None


class TestCourseProgress:
    @pytest.mark.asyncio
    async def test_trainee_view(
        self, service, trainee, course, enrollment, module, content
    ) -> None:
        await service.complete_content(trainee, enrollment.id, module.id, content.id)

        view = await service.get_course_progress(trainee, course.id)

        assert view.enrollment.id == enrollment.id
        assert view.rollup.is_complete
        assert len(view.entries) == 2

    @pytest.mark.asyncio
    async def test_staff_needs_trainee_id(self, service, instructor, course) -> None:
        with pytest.raises(BadRequestError):
            await service.get_course_progress(instructor, course.id)

    @pytest.mark.asyncio
    async def test_staff_view(
        self, service, instructor, trainee, course, enrollment
    ) -> None:
        view = await service.get_course_progress(
            instructor, course.id, trainee_id=trainee.id
        )
        assert view.rollup.progress_percentage == Decimal(0)

    @pytest.mark.asyncio
    async def test_not_enrolled(self, service, other_trainee, course) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            await service.get_course_progress(other_trainee, course.id)
        assert exc_info.value.code == "not_enrolled"
