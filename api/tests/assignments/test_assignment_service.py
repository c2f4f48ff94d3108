"""Tests for the assignment review workflow."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from learnflow.assignments.models import Assignment, SubmissionStatus
from learnflow.core.errors import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
)
from learnflow.core.responses import PaginationParams


@pytest.fixture
def service(engine):
    return engine.assignment_service


@pytest.fixture
def assignment(store, course) -> Assignment:
    return store.add_assignment(
        Assignment(
            id=uuid4(),
            course_id=course.id,
            title="Case study",
            due_date=datetime.now(UTC) + timedelta(days=7),
            max_score=50,
        )
    )


@pytest.fixture
def submission(service, assignment, enrollment, trainee):
    async def _submit():
        return await service.submit(
            assignment.id, enrollment.id, trainee, submission_text="My answer"
        )

    return _submit


class TestSubmit:
    @pytest.mark.asyncio
    async def test_on_time(self, service, assignment, enrollment, trainee) -> None:
        result = await service.submit(
            assignment.id,
            enrollment.id,
            trainee,
            submission_text="Answer",
            submission_files=["https://files.example.com/report.pdf"],
        )

        assert result.status == SubmissionStatus.SUBMITTED.value
        assert result.is_late is False
        assert result.submission_files == ["https://files.example.com/report.pdf"]

    @pytest.mark.asyncio
    async def test_second_submission_conflicts(self, submission) -> None:
        await submission()
        with pytest.raises(ConflictError):
            await submission()

    @pytest.mark.asyncio
    async def test_lost_race_conflicts(
        self, service, store, assignment, enrollment, trainee
    ) -> None:
        store.create_submission = AsyncMock(return_value=False)
        with pytest.raises(ConflictError):
            await service.submit(assignment.id, enrollment.id, trainee)

    @pytest.mark.asyncio
    async def test_late_submission_accepted(
        self, service, store, assignment, enrollment, trainee
    ) -> None:
        store.assignments[assignment.id].due_date = datetime.now(UTC) - timedelta(hours=1)

        result = await service.submit(assignment.id, enrollment.id, trainee)

        assert result.is_late is True

    @pytest.mark.asyncio
    async def test_no_due_date_never_late(
        self, service, store, assignment, enrollment, trainee
    ) -> None:
        store.assignments[assignment.id].due_date = None

        result = await service.submit(assignment.id, enrollment.id, trainee)

        assert result.is_late is False

    @pytest.mark.asyncio
    async def test_staff_cannot_submit(
        self, service, assignment, enrollment, instructor
    ) -> None:
        with pytest.raises(ForbiddenError):
            await service.submit(assignment.id, enrollment.id, instructor)

    @pytest.mark.asyncio
    async def test_not_owner(
        self, service, assignment, enrollment, other_trainee
    ) -> None:
        with pytest.raises(ForbiddenError):
            await service.submit(assignment.id, enrollment.id, other_trainee)

    @pytest.mark.asyncio
    async def test_course_mismatch(
        self, service, assignment, make_course, make_enrollment, trainee
    ) -> None:
        other = make_enrollment(make_course(title="Other"), trainee.id)
        with pytest.raises(BadRequestError):
            await service.submit(assignment.id, other.id, trainee)

    @pytest.mark.asyncio
    async def test_unknown_assignment(self, service, enrollment, trainee) -> None:
        with pytest.raises(NotFoundError):
            await service.submit(uuid4(), enrollment.id, trainee)


class TestGrade:
    @pytest.mark.asyncio
    async def test_grade(self, service, submission, instructor) -> None:
        submitted = await submission()

        graded = await service.grade(
            submitted.id, Decimal(42), instructor, feedback="Good work"
        )

        assert graded.score == Decimal(42)
        assert graded.status == SubmissionStatus.GRADED.value
        assert graded.graded_by == instructor.id
        assert graded.graded_at is not None

    @pytest.mark.asyncio
    async def test_regrade_overwrites(
        self, service, store, submission, admin
    ) -> None:
        submitted = await submission()
        await service.grade(submitted.id, Decimal(20), admin)

        await service.grade(
            submitted.id, Decimal(30), admin, status=SubmissionStatus.RETURNED
        )

        stored = await store.get_submission(submitted.id)
        assert stored.score == Decimal(30)
        assert stored.status == SubmissionStatus.RETURNED.value

    @pytest.mark.asyncio
    @pytest.mark.parametrize("score", [Decimal(-1), Decimal("50.01"), Decimal(100)])
    async def test_score_out_of_range(
        self, service, submission, instructor, score
    ) -> None:
        submitted = await submission()
        with pytest.raises(BadRequestError):
            await service.grade(submitted.id, score, instructor)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("score", [Decimal(0), Decimal(50)])
    async def test_score_bounds_inclusive(
        self, service, submission, instructor, score
    ) -> None:
        submitted = await submission()
        graded = await service.grade(submitted.id, score, instructor)
        assert graded.score == score

    @pytest.mark.asyncio
    async def test_submitted_status_rejected(
        self, service, submission, instructor
    ) -> None:
        submitted = await submission()
        with pytest.raises(BadRequestError):
            await service.grade(
                submitted.id, Decimal(10), instructor, status=SubmissionStatus.SUBMITTED
            )

    @pytest.mark.asyncio
    async def test_other_instructor_forbidden(
        self, service, submission, other_instructor
    ) -> None:
        submitted = await submission()
        with pytest.raises(ForbiddenError):
            await service.grade(submitted.id, Decimal(10), other_instructor)

    @pytest.mark.asyncio
    async def test_recalculates_enrollment(
        self, service, submission, enrollment, instructor
    ) -> None:
        submitted = await submission()
        service.enrollment_service.recalculate_by_id = AsyncMock()

        await service.grade(submitted.id, Decimal(10), instructor)

        service.enrollment_service.recalculate_by_id.assert_awaited_once_with(
            enrollment.id
        )

    @pytest.mark.asyncio
    async def test_unknown_submission(self, service, instructor) -> None:
        with pytest.raises(NotFoundError):
            await service.grade(uuid4(), Decimal(10), instructor)


class TestQueries:
    @pytest.mark.asyncio
    async def test_instructor_lists_all(
        self, service, assignment, course, make_enrollment, submission,
        other_trainee, instructor,
    ) -> None:
        await submission()
        other = make_enrollment(course, other_trainee.id)
        await service.submit(assignment.id, other.id, other_trainee)

        items, meta = await service.list_submissions(
            instructor, PaginationParams(), assignment.id
        )

        assert meta.total == 2

    @pytest.mark.asyncio
    async def test_trainee_lists_own(
        self, service, assignment, course, make_enrollment, submission,
        trainee, other_trainee,
    ) -> None:
        await submission()
        other = make_enrollment(course, other_trainee.id)
        await service.submit(assignment.id, other.id, other_trainee)

        items, _ = await service.list_submissions(
            trainee, PaginationParams(), assignment.id
        )

        assert [s.trainee_id for s in items] == [trainee.id]

    @pytest.mark.asyncio
    async def test_status_filter(
        self, service, assignment, submission, instructor
    ) -> None:
        submitted = await submission()
        await service.grade(submitted.id, Decimal(10), instructor)

        items, _ = await service.list_submissions(
            instructor,
            PaginationParams(),
            assignment.id,
            status=SubmissionStatus.SUBMITTED,
        )

        assert items == []

    @pytest.mark.asyncio
    async def test_get_submission_access(
        self, service, submission, trainee, other_trainee
    ) -> None:
        submitted = await submission()

        assert (await service.get_submission(submitted.id, trainee)).id == submitted.id
        with pytest.raises(ForbiddenError):
            await service.get_submission(submitted.id, other_trainee)
