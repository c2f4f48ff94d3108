"""Cassandra-backed Catalog Store.

Single owner of every CQL statement the engine issues. Services above this
layer work with entity objects and never see rows, statements or the
module-level nil content id.

Uniqueness-critical writes are lightweight transactions and report whether
they were applied:

- ``create_enrollment``: one row per (course, trainee)
- ``reactivate_enrollment``: dropped -> enrolled, at most once per drop
- ``transition_enrollment``: status change only from the status last read
- ``add_prerequisite``: one link per (course, prerequisite)
- ``create_attempt``: one attempt per (enrollment, assessment, number)
- ``create_submission``: one submission per (assignment, enrollment)
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

import orjson
import structlog

from learnflow.assessments.models import Assessment, AssessmentAttempt
from learnflow.assignments.models import Assignment, AssignmentSubmission
from learnflow.enrollments.models import (
    ENROLLMENT_FIELDS,
    Enrollment,
    EnrollmentStatus,
)
from learnflow.progress.models import ContentLevel, ModuleLevel, Progress, ProgressKey

from .models import Content, Course, Module, Prerequisite


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)

# Stored in the content_id clustering column for module-level progress rows
MODULE_LEVEL_CONTENT_ID = UUID(int=0)


def _content_id_for(key: ProgressKey) -> UUID:
    if isinstance(key, ContentLevel):
        return key.content_id
    return MODULE_LEVEL_CONTENT_ID


def _key_from_row(row: Any) -> ProgressKey:
    if row.content_id == MODULE_LEVEL_CONTENT_ID:
        return ModuleLevel(row.module_id)
    return ContentLevel(row.module_id, row.content_id)


_ENROLLMENT_KEY_COLUMNS = {
    "enrollments": ("id",),
    "enrollments_by_course": ("course_id", "trainee_id"),
    "enrollments_by_trainee": ("trainee_id", "course_id"),
}

# Written after the by-course row, which carries the lightweight transactions
_MIRROR_TABLES = ("enrollments", "enrollments_by_trainee")


def _enrollment_key(table: str, enrollment: Enrollment) -> list[UUID]:
    return [getattr(enrollment, column) for column in _ENROLLMENT_KEY_COLUMNS[table]]


def progress_from_row(row: Any) -> Progress:
    """Create Progress instance from a ledger row."""
    return Progress(
        enrollment_id=row.enrollment_id,
        key=_key_from_row(row),
        status=row.status,
        progress_percentage=row.progress_percentage,
        time_spent=row.time_spent or 0,
        content_data=row.content_data,
        started_at=row.started_at,
        completed_at=row.completed_at,
        last_accessed_at=row.last_accessed_at,
    )


class CatalogStore:
    """Async data access for catalog, enrollment, progress and grading records."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_enrollment_update(
        self,
        assignments: str,
        tables: tuple[str, ...] = tuple(_ENROLLMENT_KEY_COLUMNS),
    ) -> dict[str, Any]:
        """Prepare a column UPDATE against each of the given enrollment tables."""
        return {
            table: self.session.prepare(
                f"UPDATE {self.keyspace}.{table} SET {assignments} WHERE "
                + " AND ".join(f"{col} = ?" for col in _ENROLLMENT_KEY_COLUMNS[table])
            )
            for table in tables
        }

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        ks = self.keyspace

        # Catalog
        self._get_course = self.session.prepare(
            f"SELECT * FROM {ks}.courses WHERE id = ?"
        )
        self._get_module = self.session.prepare(
            f"SELECT * FROM {ks}.modules WHERE id = ?"
        )
        self._list_course_modules = self.session.prepare(f"""
            SELECT id, course_id, title, sort_order, is_required
            FROM {ks}.modules_by_course WHERE course_id = ?
        """)
        self._get_content = self.session.prepare(
            f"SELECT * FROM {ks}.contents WHERE id = ?"
        )
        self._list_module_contents = self.session.prepare(f"""
            SELECT id, module_id, title, content_type, sort_order, is_required
            FROM {ks}.contents_by_module WHERE module_id = ?
        """)

        # Prerequisites
        self._list_prerequisites = self.session.prepare(
            f"SELECT * FROM {ks}.course_prerequisites WHERE course_id = ?"
        )
        self._get_prerequisite = self.session.prepare(f"""
            SELECT * FROM {ks}.course_prerequisites
            WHERE course_id = ? AND prerequisite_course_id = ?
        """)
        self._insert_prerequisite = self.session.prepare(f"""
            INSERT INTO {ks}.course_prerequisites
            (course_id, prerequisite_course_id, is_mandatory, created_at)
            VALUES (?, ?, ?, ?)
            IF NOT EXISTS
        """)
        self._delete_prerequisite = self.session.prepare(f"""
            DELETE FROM {ks}.course_prerequisites
            WHERE course_id = ? AND prerequisite_course_id = ?
        """)

        # Enrollments (same column list in all three tables)
        columns = ", ".join(ENROLLMENT_FIELDS)
        placeholders = ", ".join("?" for _ in ENROLLMENT_FIELDS)
        self._get_enrollment = self.session.prepare(
            f"SELECT * FROM {ks}.enrollments WHERE id = ?"
        )
        self._find_enrollment = self.session.prepare(f"""
            SELECT * FROM {ks}.enrollments_by_course
            WHERE course_id = ? AND trainee_id = ?
        """)
        self._list_course_enrollments = self.session.prepare(
            f"SELECT * FROM {ks}.enrollments_by_course WHERE course_id = ?"
        )
        self._list_trainee_enrollments = self.session.prepare(
            f"SELECT * FROM {ks}.enrollments_by_trainee WHERE trainee_id = ?"
        )
        self._claim_enrollment = self.session.prepare(f"""
            INSERT INTO {ks}.enrollments_by_course ({columns})
            VALUES ({placeholders})
            IF NOT EXISTS
        """)
        self._reactivate_enrollment = self.session.prepare(f"""
            UPDATE {ks}.enrollments_by_course
            SET status = ?, progress_percentage = ?, enrollment_type = ?,
                enrolled_by = ?, started_at = ?, completed_at = ?, due_date = ?,
                updated_at = ?
            WHERE course_id = ? AND trainee_id = ?
            IF status = ?
        """)
        self._upsert_enrollment = {
            table: self.session.prepare(
                f"INSERT INTO {ks}.{table} ({columns}) VALUES ({placeholders})"
            )
            for table in _MIRROR_TABLES
        }
        self._set_enrollment_progress = self._prepare_enrollment_update(
            "progress_percentage = ?, updated_at = ?"
        )
        self._set_enrollment_due_date = self._prepare_enrollment_update(
            "due_date = ?, updated_at = ?"
        )
        self._set_enrollment_status = self._prepare_enrollment_update(
            "status = ?, completed_at = ?, updated_at = ?", _MIRROR_TABLES
        )
        self._transition_enrollment = self.session.prepare(f"""
            UPDATE {ks}.enrollments_by_course
            SET status = ?, completed_at = ?, updated_at = ?
            WHERE course_id = ? AND trainee_id = ?
            IF status = ?
        """)

        # Progress ledger
        self._get_progress = self.session.prepare(f"""
            SELECT * FROM {ks}.progress
            WHERE enrollment_id = ? AND module_id = ? AND content_id = ?
        """)
        self._list_progress = self.session.prepare(
            f"SELECT * FROM {ks}.progress WHERE enrollment_id = ?"
        )
        self._upsert_progress = self.session.prepare(f"""
            INSERT INTO {ks}.progress
            (enrollment_id, module_id, content_id, status, progress_percentage,
             time_spent, content_data, started_at, completed_at, last_accessed_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        # Assessments and attempts
        self._get_assessment = self.session.prepare(
            f"SELECT * FROM {ks}.assessments WHERE id = ?"
        )
        self._count_attempts = self.session.prepare(f"""
            SELECT COUNT(*) FROM {ks}.assessment_attempts
            WHERE enrollment_id = ? AND assessment_id = ?
        """)
        self._list_enrollment_attempts = self.session.prepare(
            f"SELECT * FROM {ks}.assessment_attempts WHERE enrollment_id = ?"
        )
        self._list_assessment_attempts = self.session.prepare(f"""
            SELECT * FROM {ks}.assessment_attempts
            WHERE enrollment_id = ? AND assessment_id = ?
        """)
        self._get_attempt = self.session.prepare(f"""
            SELECT * FROM {ks}.assessment_attempts
            WHERE enrollment_id = ? AND assessment_id = ? AND attempt_number = ?
        """)
        self._get_attempt_ref = self.session.prepare(
            f"SELECT * FROM {ks}.assessment_attempts_by_id WHERE id = ?"
        )
        self._insert_attempt = self.session.prepare(f"""
            INSERT INTO {ks}.assessment_attempts
            (enrollment_id, assessment_id, attempt_number, id, trainee_id, answers,
             score, is_passed, time_taken, submitted_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)
        self._insert_attempt_ref = self.session.prepare(f"""
            INSERT INTO {ks}.assessment_attempts_by_id
            (id, enrollment_id, assessment_id, attempt_number)
            VALUES (?, ?, ?, ?)
        """)

        # Assignments and submissions
        self._get_assignment = self.session.prepare(
            f"SELECT * FROM {ks}.assignments WHERE id = ?"
        )
        self._find_submission = self.session.prepare(f"""
            SELECT * FROM {ks}.assignment_submissions
            WHERE assignment_id = ? AND enrollment_id = ?
        """)
        self._list_submissions = self.session.prepare(
            f"SELECT * FROM {ks}.assignment_submissions WHERE assignment_id = ?"
        )
        self._get_submission_ref = self.session.prepare(
            f"SELECT * FROM {ks}.assignment_submissions_by_id WHERE id = ?"
        )
        self._insert_submission = self.session.prepare(f"""
            INSERT INTO {ks}.assignment_submissions
            (assignment_id, enrollment_id, id, trainee_id, submission_text,
             submission_files, score, feedback, status, is_late, submitted_at,
             graded_at, graded_by)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)
        self._insert_submission_ref = self.session.prepare(f"""
            INSERT INTO {ks}.assignment_submissions_by_id
            (id, assignment_id, enrollment_id)
            VALUES (?, ?, ?)
        """)
        self._update_submission_grade = self.session.prepare(f"""
            UPDATE {ks}.assignment_submissions
            SET score = ?, feedback = ?, status = ?, graded_at = ?, graded_by = ?
            WHERE assignment_id = ? AND enrollment_id = ?
        """)

    # ==========================================================================
    # Catalog
    # ==========================================================================

    async def get_course(self, course_id: UUID) -> Course | None:
        result = await self.session.aexecute(self._get_course, [course_id])
        row = result.one()
        return Course.from_row(row) if row else None

    async def get_module(self, module_id: UUID) -> Module | None:
        result = await self.session.aexecute(self._get_module, [module_id])
        row = result.one()
        return Module.from_row(row) if row else None

    async def list_course_modules(self, course_id: UUID) -> list[Module]:
        """Modules of a course in display order."""
        result = await self.session.aexecute(self._list_course_modules, [course_id])
        return [Module.from_row(row) for row in result]

    async def get_content(self, content_id: UUID) -> Content | None:
        result = await self.session.aexecute(self._get_content, [content_id])
        row = result.one()
        return Content.from_row(row) if row else None

    async def list_module_contents(self, module_id: UUID) -> list[Content]:
        """Contents of a module in display order."""
        result = await self.session.aexecute(self._list_module_contents, [module_id])
        return [Content.from_row(row) for row in result]

    # ==========================================================================
    # Prerequisites
    # ==========================================================================

    async def list_prerequisites(self, course_id: UUID) -> list[Prerequisite]:
        result = await self.session.aexecute(self._list_prerequisites, [course_id])
        return [Prerequisite.from_row(row) for row in result]

    async def get_prerequisite(
        self, course_id: UUID, prerequisite_course_id: UUID
    ) -> Prerequisite | None:
        result = await self.session.aexecute(
            self._get_prerequisite, [course_id, prerequisite_course_id]
        )
        row = result.one()
        return Prerequisite.from_row(row) if row else None

    async def add_prerequisite(self, link: Prerequisite) -> bool:
        """Insert a link; False if it already exists."""
        result = await self.session.aexecute(
            self._insert_prerequisite,
            [
                link.course_id,
                link.prerequisite_course_id,
                link.is_mandatory,
                link.created_at,
            ],
        )
        return result.was_applied

    async def remove_prerequisite(
        self, course_id: UUID, prerequisite_course_id: UUID
    ) -> None:
        await self.session.aexecute(
            self._delete_prerequisite, [course_id, prerequisite_course_id]
        )

    # ==========================================================================
    # Enrollments
    # ==========================================================================

    def _enrollment_values(self, enrollment: Enrollment) -> list[Any]:
        return [getattr(enrollment, field) for field in ENROLLMENT_FIELDS]

    async def _write_enrollment(self, enrollment: Enrollment, *tables: str) -> None:
        values = self._enrollment_values(enrollment)
        for table in tables:
            await self.session.aexecute(self._upsert_enrollment[table], values)

    async def get_enrollment(self, enrollment_id: UUID) -> Enrollment | None:
        result = await self.session.aexecute(self._get_enrollment, [enrollment_id])
        row = result.one()
        return Enrollment.from_row(row) if row else None

    async def find_enrollment(
        self, course_id: UUID, trainee_id: UUID
    ) -> Enrollment | None:
        """The (course, trainee) enrollment row regardless of status."""
        result = await self.session.aexecute(
            self._find_enrollment, [course_id, trainee_id]
        )
        row = result.one()
        return Enrollment.from_row(row) if row else None

    async def list_course_enrollments(self, course_id: UUID) -> list[Enrollment]:
        result = await self.session.aexecute(
            self._list_course_enrollments, [course_id]
        )
        return [Enrollment.from_row(row) for row in result]

    async def list_trainee_enrollments(self, trainee_id: UUID) -> list[Enrollment]:
        result = await self.session.aexecute(
            self._list_trainee_enrollments, [trainee_id]
        )
        return [Enrollment.from_row(row) for row in result]

    async def create_enrollment(self, enrollment: Enrollment) -> bool:
        """Claim the (course, trainee) slot, then write the other views.

        Returns:
            False if a row for the pair already exists.
        """
        result = await self.session.aexecute(
            self._claim_enrollment, self._enrollment_values(enrollment)
        )
        if not result.was_applied:
            return False
        await self._write_enrollment(enrollment, *_MIRROR_TABLES)
        return True

    async def reactivate_enrollment(self, enrollment: Enrollment) -> bool:
        """Flip a dropped row back to the state carried by ``enrollment``.

        Returns:
            False if the stored row is no longer dropped.
        """
        result = await self.session.aexecute(
            self._reactivate_enrollment,
            [
                enrollment.status,
                enrollment.progress_percentage,
                enrollment.enrollment_type,
                enrollment.enrolled_by,
                enrollment.started_at,
                enrollment.completed_at,
                enrollment.due_date,
                enrollment.updated_at,
                enrollment.course_id,
                enrollment.trainee_id,
                EnrollmentStatus.DROPPED.value,
            ],
        )
        if not result.was_applied:
            return False
        await self._write_enrollment(enrollment, *_MIRROR_TABLES)
        return True

    async def _update_enrollment(
        self, statements: dict[str, Any], values: list[Any], enrollment: Enrollment
    ) -> None:
        for table, statement in statements.items():
            await self.session.aexecute(
                statement, values + _enrollment_key(table, enrollment)
            )

    async def update_enrollment_progress(self, enrollment: Enrollment) -> None:
        """Write only the percentage; concurrent writers resolve last-write-wins."""
        await self._update_enrollment(
            self._set_enrollment_progress,
            [enrollment.progress_percentage, enrollment.updated_at],
            enrollment,
        )

    async def update_enrollment_due_date(self, enrollment: Enrollment) -> None:
        await self._update_enrollment(
            self._set_enrollment_due_date,
            [enrollment.due_date, enrollment.updated_at],
            enrollment,
        )

    async def transition_enrollment(
        self,
        enrollment: Enrollment,
        status: str,
        completed_at: datetime | None,
        updated_at: datetime,
    ) -> bool:
        """Move the enrollment from its loaded status to ``status``.

        The by-course row is updated ``IF status = <loaded status>``; the
        other two tables follow only when that applied.

        Returns:
            False if the stored status changed since the enrollment was read.
        """
        result = await self.session.aexecute(
            self._transition_enrollment,
            [
                status,
                completed_at,
                updated_at,
                enrollment.course_id,
                enrollment.trainee_id,
                enrollment.status,
            ],
        )
        if not result.was_applied:
            return False
        await self._update_enrollment(
            self._set_enrollment_status, [status, completed_at, updated_at], enrollment
        )
        return True

    # ==========================================================================
    # Progress ledger
    # ==========================================================================

    async def get_progress(
        self, enrollment_id: UUID, key: ProgressKey
    ) -> Progress | None:
        result = await self.session.aexecute(
            self._get_progress, [enrollment_id, key.module_id, _content_id_for(key)]
        )
        row = result.one()
        return progress_from_row(row) if row else None

    async def list_progress(self, enrollment_id: UUID) -> list[Progress]:
        """Every ledger row of an enrollment (one partition read)."""
        result = await self.session.aexecute(self._list_progress, [enrollment_id])
        return [progress_from_row(row) for row in result]

    async def save_progress(self, progress: Progress) -> None:
        await self.session.aexecute(
            self._upsert_progress,
            [
                progress.enrollment_id,
                progress.module_id,
                _content_id_for(progress.key),
                progress.status,
                progress.progress_percentage,
                progress.time_spent,
                progress.content_data,
                progress.started_at,
                progress.completed_at,
                progress.last_accessed_at,
            ],
        )

    # ==========================================================================
    # Assessments and attempts
    # ==========================================================================

    async def get_assessment(self, assessment_id: UUID) -> Assessment | None:
        result = await self.session.aexecute(self._get_assessment, [assessment_id])
        row = result.one()
        return Assessment.from_row(row) if row else None

    async def count_attempts(self, enrollment_id: UUID, assessment_id: UUID) -> int:
        result = await self.session.aexecute(
            self._count_attempts, [enrollment_id, assessment_id]
        )
        row = result.one()
        return row[0] if row else 0

    async def list_attempts(
        self, enrollment_id: UUID, assessment_id: UUID | None = None
    ) -> list[AssessmentAttempt]:
        """Attempts of an enrollment, ordered by assessment then attempt number."""
        if assessment_id is None:
            result = await self.session.aexecute(
                self._list_enrollment_attempts, [enrollment_id]
            )
        else:
            result = await self.session.aexecute(
                self._list_assessment_attempts, [enrollment_id, assessment_id]
            )
        return [AssessmentAttempt.from_row(row) for row in result]

    async def get_attempt(self, attempt_id: UUID) -> AssessmentAttempt | None:
        result = await self.session.aexecute(self._get_attempt_ref, [attempt_id])
        ref = result.one()
        if not ref:
            return None
        result = await self.session.aexecute(
            self._get_attempt,
            [ref.enrollment_id, ref.assessment_id, ref.attempt_number],
        )
        row = result.one()
        return AssessmentAttempt.from_row(row) if row else None

    async def create_attempt(self, attempt: AssessmentAttempt) -> bool:
        """Insert an attempt under its number; False if the number is taken."""
        result = await self.session.aexecute(
            self._insert_attempt,
            [
                attempt.enrollment_id,
                attempt.assessment_id,
                attempt.attempt_number,
                attempt.id,
                attempt.trainee_id,
                orjson.dumps(attempt.answers).decode(),
                attempt.score,
                attempt.is_passed,
                attempt.time_taken,
                attempt.submitted_at,
            ],
        )
        if not result.was_applied:
            return False
        await self.session.aexecute(
            self._insert_attempt_ref,
            [
                attempt.id,
                attempt.enrollment_id,
                attempt.assessment_id,
                attempt.attempt_number,
            ],
        )
        return True

    # ==========================================================================
    # Assignments and submissions
    # ==========================================================================

    async def get_assignment(self, assignment_id: UUID) -> Assignment | None:
        result = await self.session.aexecute(self._get_assignment, [assignment_id])
        row = result.one()
        return Assignment.from_row(row) if row else None

    async def find_submission(
        self, assignment_id: UUID, enrollment_id: UUID
    ) -> AssignmentSubmission | None:
        result = await self.session.aexecute(
            self._find_submission, [assignment_id, enrollment_id]
        )
        row = result.one()
        return AssignmentSubmission.from_row(row) if row else None

    async def get_submission(self, submission_id: UUID) -> AssignmentSubmission | None:
        result = await self.session.aexecute(self._get_submission_ref, [submission_id])
        ref = result.one()
        if not ref:
            return None
        return await self.find_submission(ref.assignment_id, ref.enrollment_id)

    async def list_submissions(self, assignment_id: UUID) -> list[AssignmentSubmission]:
        result = await self.session.aexecute(self._list_submissions, [assignment_id])
        return [AssignmentSubmission.from_row(row) for row in result]

    async def create_submission(self, submission: AssignmentSubmission) -> bool:
        """Insert the submission; False if the enrollment already submitted."""
        result = await self.session.aexecute(
            self._insert_submission,
            [
                submission.assignment_id,
                submission.enrollment_id,
                submission.id,
                submission.trainee_id,
                submission.submission_text,
                submission.submission_files,
                submission.score,
                submission.feedback,
                submission.status,
                submission.is_late,
                submission.submitted_at,
                submission.graded_at,
                submission.graded_by,
            ],
        )
        if not result.was_applied:
            return False
        await self.session.aexecute(
            self._insert_submission_ref,
            [submission.id, submission.assignment_id, submission.enrollment_id],
        )
        return True

    async def save_grade(self, submission: AssignmentSubmission) -> None:
        """Persist the grading fields of an existing submission."""
        await self.session.aexecute(
            self._update_submission_grade,
            [
                submission.score,
                submission.feedback,
                submission.status,
                submission.graded_at,
                submission.graded_by,
                submission.assignment_id,
                submission.enrollment_id,
            ],
        )
