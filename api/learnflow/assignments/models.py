"""Database models for assignments and submissions.

Cassandra table definitions for:
- Assignments
- Submissions keyed by (assignment, enrollment), inserted ``IF NOT EXISTS``
- Submissions by id: lookup for detail reads and grading
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from learnflow.catalog.models import ensure_utc_aware, utcnow


DEFAULT_MAX_SCORE = 100


class SubmissionStatus(str, Enum):
    SUBMITTED = "submitted"
    GRADED = "graded"
    RETURNED = "returned"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

ASSIGNMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.assignments (
    id UUID PRIMARY KEY,
    course_id UUID,
    module_id UUID,
    title TEXT,
    due_date TIMESTAMP,
    max_score INT,
    is_required BOOLEAN,
    created_at TIMESTAMP
)
"""

ASSIGNMENT_SUBMISSIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.assignment_submissions (
    assignment_id UUID,
    enrollment_id UUID,
    id UUID,
    trainee_id UUID,
    submission_text TEXT,
    submission_files LIST<TEXT>,
    score DECIMAL,
    feedback TEXT,
    status TEXT,
    is_late BOOLEAN,
    submitted_at TIMESTAMP,
    graded_at TIMESTAMP,
    graded_by UUID,
    PRIMARY KEY (assignment_id, enrollment_id)
)
"""

ASSIGNMENT_SUBMISSIONS_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.assignment_submissions_by_id (
    id UUID PRIMARY KEY,
    assignment_id UUID,
    enrollment_id UUID
)
"""

ASSIGNMENTS_TABLES_CQL = [
    ASSIGNMENTS_TABLE_CQL,
    ASSIGNMENT_SUBMISSIONS_TABLE_CQL,
    ASSIGNMENT_SUBMISSIONS_BY_ID_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Assignment:
    """Human-graded task attached to a course (optionally to one module)."""

    def __init__(
        self,
        id: UUID,
        course_id: UUID,
        title: str,
        module_id: UUID | None = None,
        due_date: datetime | None = None,
        max_score: int = DEFAULT_MAX_SCORE,
        is_required: bool = True,
        created_at: datetime | None = None,
    ):
        self.id = id
        self.course_id = course_id
        self.module_id = module_id
        self.title = title
        self.due_date = ensure_utc_aware(due_date)
        self.max_score = max_score
        self.is_required = is_required
        self.created_at = ensure_utc_aware(created_at) or utcnow()

    def is_past_due(self, at: datetime) -> bool:
        return self.due_date is not None and at > self.due_date

    @classmethod
    def from_row(cls, row: Any) -> "Assignment":
        return cls(
            id=row.id,
            course_id=row.course_id,
            module_id=row.module_id,
            title=row.title,
            due_date=row.due_date,
            max_score=row.max_score if row.max_score is not None else DEFAULT_MAX_SCORE,
            is_required=row.is_required if row.is_required is not None else True,
            created_at=row.created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "course_id": self.course_id,
            "module_id": self.module_id,
            "title": self.title,
            "due_date": self.due_date,
            "max_score": self.max_score,
            "is_required": self.is_required,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return f"<Assignment {self.id} {self.title!r}>"


class AssignmentSubmission:
    """The single submission of an enrollment for an assignment.

    Mutable only through grading (score, feedback, status, grader, graded_at).
    """

    def __init__(
        self,
        id: UUID,
        assignment_id: UUID,
        enrollment_id: UUID,
        trainee_id: UUID,
        submission_text: str | None = None,
        submission_files: list[str] | None = None,
        score: Decimal | None = None,
        feedback: str | None = None,
        status: str = SubmissionStatus.SUBMITTED.value,
        is_late: bool = False,
        submitted_at: datetime | None = None,
        graded_at: datetime | None = None,
        graded_by: UUID | None = None,
    ):
        self.id = id
        self.assignment_id = assignment_id
        self.enrollment_id = enrollment_id
        self.trainee_id = trainee_id
        self.submission_text = submission_text
        self.submission_files = submission_files or []
        self.score = score
        self.feedback = feedback
        self.status = status
        self.is_late = is_late
        self.submitted_at = ensure_utc_aware(submitted_at) or utcnow()
        self.graded_at = ensure_utc_aware(graded_at)
        self.graded_by = graded_by

    @classmethod
    def from_row(cls, row: Any) -> "AssignmentSubmission":
        return cls(
            id=row.id,
            assignment_id=row.assignment_id,
            enrollment_id=row.enrollment_id,
            trainee_id=row.trainee_id,
            submission_text=row.submission_text,
            submission_files=list(row.submission_files or []),
            score=row.score,
            feedback=row.feedback,
            status=row.status or SubmissionStatus.SUBMITTED.value,
            is_late=bool(row.is_late),
            submitted_at=row.submitted_at,
            graded_at=row.graded_at,
            graded_by=row.graded_by,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "assignment_id": self.assignment_id,
            "enrollment_id": self.enrollment_id,
            "trainee_id": self.trainee_id,
            "submission_text": self.submission_text,
            "submission_files": self.submission_files,
            "score": self.score,
            "feedback": self.feedback,
            "status": self.status,
            "is_late": self.is_late,
            "submitted_at": self.submitted_at,
            "graded_at": self.graded_at,
            "graded_by": self.graded_by,
        }

    def __repr__(self) -> str:
        return (
            f"<AssignmentSubmission {self.id} assignment={self.assignment_id} "
            f"{self.status}>"
        )
