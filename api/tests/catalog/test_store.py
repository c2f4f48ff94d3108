"""Tests for CatalogStore row mapping and lightweight-transaction handling."""

from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import orjson
import pytest
from cassandra.cluster import Session

from learnflow.assessments.models import AssessmentAttempt
from learnflow.catalog.store import MODULE_LEVEL_CONTENT_ID, CatalogStore
from learnflow.enrollments.models import Enrollment, EnrollmentStatus
from learnflow.progress.models import ContentLevel, ModuleLevel, Progress


@pytest.fixture
def mock_session():
    """Mock Cassandra session."""
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=lambda cql: Mock(name="prepared", query=cql))
    # Make aexecute awaitable (cassandra-asyncio-driver)
    session.aexecute = AsyncMock(return_value=Mock())
    return session


@pytest.fixture
def catalog_store(mock_session) -> CatalogStore:
    return CatalogStore(session=mock_session, keyspace="test_keyspace")


def lwt_result(applied: bool) -> Mock:
    result = Mock()
    result.was_applied = applied
    return result


def progress_row(**overrides):
    row = Mock(
        enrollment_id=uuid4(),
        module_id=uuid4(),
        content_id=uuid4(),
        status="completed",
        progress_percentage=Decimal(100),
        time_spent=None,
        content_data=None,
        started_at=None,
        completed_at=datetime(2024, 1, 1, 12, 0),
        last_accessed_at=datetime(2024, 1, 1, 12, 0),
    )
    for key, value in overrides.items():
        setattr(row, key, value)
    return row


class TestPreparedStatements:
    def test_conditional_inserts(self, catalog_store: CatalogStore) -> None:
        for statement in (
            catalog_store._insert_prerequisite,
            catalog_store._claim_enrollment,
            catalog_store._insert_attempt,
            catalog_store._insert_submission,
        ):
            assert "IF NOT EXISTS" in statement.query

    def test_statements_use_keyspace(self, catalog_store: CatalogStore) -> None:
        assert "test_keyspace.courses" in catalog_store._get_course.query


class TestProgressRows:
    @pytest.mark.asyncio
    async def test_module_level_row_maps_to_module_key(
        self, catalog_store: CatalogStore, mock_session
    ) -> None:
        row = progress_row(content_id=MODULE_LEVEL_CONTENT_ID)
        mock_session.aexecute.return_value = [row]

        rows = await catalog_store.list_progress(row.enrollment_id)

        assert rows[0].key == ModuleLevel(row.module_id)
        assert rows[0].is_module_level
        assert rows[0].time_spent == 0

    @pytest.mark.asyncio
    async def test_content_row_maps_to_content_key(
        self, catalog_store: CatalogStore, mock_session
    ) -> None:
        row = progress_row()
        mock_session.aexecute.return_value = [row]

        rows = await catalog_store.list_progress(row.enrollment_id)

        assert rows[0].key == ContentLevel(row.module_id, row.content_id)
        assert rows[0].completed_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_save_module_level_uses_sentinel(
        self, catalog_store: CatalogStore, mock_session
    ) -> None:
        progress = Progress(enrollment_id=uuid4(), key=ModuleLevel(uuid4()))

        await catalog_store.save_progress(progress)

        values = mock_session.aexecute.call_args.args[1]
        assert values[2] == MODULE_LEVEL_CONTENT_ID


class TestEnrollmentWrites:
    @pytest.mark.asyncio
    async def test_create_writes_views_after_claim(
        self, catalog_store: CatalogStore, mock_session
    ) -> None:
        mock_session.aexecute.return_value = lwt_result(True)
        enrollment = Enrollment(id=uuid4(), course_id=uuid4(), trainee_id=uuid4())

        assert await catalog_store.create_enrollment(enrollment) is True
        # claim + enrollments + enrollments_by_trainee
        assert mock_session.aexecute.await_count == 3

    @pytest.mark.asyncio
    async def test_create_lost_claim_writes_nothing_else(
        self, catalog_store: CatalogStore, mock_session
    ) -> None:
        mock_session.aexecute.return_value = lwt_result(False)
        enrollment = Enrollment(id=uuid4(), course_id=uuid4(), trainee_id=uuid4())

        assert await catalog_store.create_enrollment(enrollment) is False
        assert mock_session.aexecute.await_count == 1

    @pytest.mark.asyncio
    async def test_reactivate_is_conditional_on_dropped(
        self, catalog_store: CatalogStore, mock_session
    ) -> None:
        mock_session.aexecute.return_value = lwt_result(False)
        enrollment = Enrollment(id=uuid4(), course_id=uuid4(), trainee_id=uuid4())

        assert await catalog_store.reactivate_enrollment(enrollment) is False
        values = mock_session.aexecute.call_args.args[1]
        assert values[-1] == EnrollmentStatus.DROPPED.value

    @pytest.mark.asyncio
    async def test_progress_update_touches_only_percentage(
        self, catalog_store: CatalogStore, mock_session
    ) -> None:
        enrollment = Enrollment(
            id=uuid4(),
            course_id=uuid4(),
            trainee_id=uuid4(),
            progress_percentage=Decimal("42.00"),
        )

        await catalog_store.update_enrollment_progress(enrollment)

        assert mock_session.aexecute.await_count == 3
        for call in mock_session.aexecute.call_args_list:
            statement, values = call.args
            assert "SET progress_percentage = ?, updated_at = ?" in statement.query
            assert "status" not in statement.query
            assert values[0] == Decimal("42.00")

    @pytest.mark.asyncio
    async def test_transition_is_conditional_on_loaded_status(
        self, catalog_store: CatalogStore, mock_session
    ) -> None:
        mock_session.aexecute.return_value = lwt_result(True)
        enrollment = Enrollment(id=uuid4(), course_id=uuid4(), trainee_id=uuid4())
        now = datetime.now(UTC)

        applied = await catalog_store.transition_enrollment(
            enrollment, EnrollmentStatus.IN_PROGRESS.value, None, now
        )

        assert applied is True
        statement, values = mock_session.aexecute.call_args_list[0].args
        assert "enrollments_by_course" in statement.query
        assert "IF status = ?" in statement.query
        assert values[0] == EnrollmentStatus.IN_PROGRESS.value
        assert values[-1] == EnrollmentStatus.ENROLLED.value
        # LWT + enrollments + enrollments_by_trainee
        assert mock_session.aexecute.await_count == 3

    @pytest.mark.asyncio
    async def test_lost_transition_writes_nothing_else(
        self, catalog_store: CatalogStore, mock_session
    ) -> None:
        mock_session.aexecute.return_value = lwt_result(False)
        enrollment = Enrollment(id=uuid4(), course_id=uuid4(), trainee_id=uuid4())

        applied = await catalog_store.transition_enrollment(
            enrollment, EnrollmentStatus.DROPPED.value, None, datetime.now(UTC)
        )

        assert applied is False
        assert mock_session.aexecute.await_count == 1


class TestAttempts:
    @pytest.mark.asyncio
    async def test_count_reads_first_column(
        self, catalog_store: CatalogStore, mock_session
    ) -> None:
        result = Mock()
        result.one.return_value = (2,)
        mock_session.aexecute.return_value = result

        assert await catalog_store.count_attempts(uuid4(), uuid4()) == 2

    @pytest.mark.asyncio
    async def test_create_serializes_answers(
        self, catalog_store: CatalogStore, mock_session
    ) -> None:
        mock_session.aexecute.return_value = lwt_result(True)
        attempt = AssessmentAttempt(
            id=uuid4(),
            assessment_id=uuid4(),
            enrollment_id=uuid4(),
            trainee_id=uuid4(),
            attempt_number=1,
            answers={"q1": 0, "q2": [1, 2]},
            score=Decimal(50),
            is_passed=False,
            submitted_at=datetime.now(UTC),
        )

        assert await catalog_store.create_attempt(attempt) is True

        insert_values = mock_session.aexecute.await_args_list[0].args[1]
        assert orjson.loads(insert_values[5]) == {"q1": 0, "q2": [1, 2]}
        # ref row written after the conditional insert
        assert mock_session.aexecute.await_count == 2

    @pytest.mark.asyncio
    async def test_get_attempt_missing_ref(
        self, catalog_store: CatalogStore, mock_session
    ) -> None:
        result = Mock()
        result.one.return_value = None
        mock_session.aexecute.return_value = result

        assert await catalog_store.get_attempt(uuid4()) is None
