"""Database models for course enrollments.

Cassandra table definitions for:
- Enrollments by id (canonical row)
- Enrollments by course: uniqueness per (course, trainee), capacity counts
- Enrollments by trainee: completed-course lookups for prerequisites

Architecture: the by-course row is the lightweight-transaction anchor. It is
inserted ``IF NOT EXISTS`` on first enrollment and flipped back from dropped
with ``UPDATE ... IF status = 'dropped'`` on re-enrollment; the other two
tables mirror it with plain writes. Status changes after enrollment are
conditional on the loaded status, so a concurrent drop or completion is not
undone by a recalculation.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from learnflow.catalog.models import ensure_utc_aware, utcnow


class EnrollmentStatus(str, Enum):
    """Enrollment lifecycle status."""

    ENROLLED = "enrolled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    DROPPED = "dropped"


class EnrollmentType(str, Enum):
    """How the trainee came to be enrolled."""

    SELF = "self"
    ASSIGNED = "assigned"
    INVITED = "invited"


TERMINAL_STATUSES = frozenset({EnrollmentStatus.COMPLETED, EnrollmentStatus.DROPPED})

_ENROLLMENT_COLUMNS = """
    id UUID,
    course_id UUID,
    trainee_id UUID,
    status TEXT,
    progress_percentage DECIMAL,
    enrollment_type TEXT,
    enrolled_by UUID,
    started_at TIMESTAMP,
    completed_at TIMESTAMP,
    due_date TIMESTAMP,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,"""

ENROLLMENTS_TABLE_CQL = (
    "CREATE TABLE IF NOT EXISTS {keyspace}.enrollments ("
    + _ENROLLMENT_COLUMNS
    + "\n    PRIMARY KEY (id)\n)"
)

ENROLLMENTS_BY_COURSE_TABLE_CQL = (
    "CREATE TABLE IF NOT EXISTS {keyspace}.enrollments_by_course ("
    + _ENROLLMENT_COLUMNS
    + "\n    PRIMARY KEY (course_id, trainee_id)\n)"
)

ENROLLMENTS_BY_TRAINEE_TABLE_CQL = (
    "CREATE TABLE IF NOT EXISTS {keyspace}.enrollments_by_trainee ("
    + _ENROLLMENT_COLUMNS
    + "\n    PRIMARY KEY (trainee_id, course_id)\n)"
)

ENROLLMENTS_TABLES_CQL = [
    ENROLLMENTS_TABLE_CQL,
    ENROLLMENTS_BY_COURSE_TABLE_CQL,
    ENROLLMENTS_BY_TRAINEE_TABLE_CQL,
]

# Column order shared by every full-row write
ENROLLMENT_FIELDS = (
    "id",
    "course_id",
    "trainee_id",
    "status",
    "progress_percentage",
    "enrollment_type",
    "enrolled_by",
    "started_at",
    "completed_at",
    "due_date",
    "created_at",
    "updated_at",
)


class Enrollment:
    """Trainee-to-course relationship with lifecycle state and aggregate progress.

    Attributes:
        id: Enrollment UUID, stable across drop and re-enrollment
        course_id: Course UUID
        trainee_id: Trainee user UUID
        status: enrolled, in_progress, completed or dropped
        progress_percentage: Weighted rollup, 0-100
        enrollment_type: self, assigned or invited
        enrolled_by: User who created the enrollment
        started_at: Set on enroll and on re-enrollment
        completed_at: Set once, when the enrollment first completes
        due_date: Optional deadline
    """

    def __init__(
        self,
        id: UUID,
        course_id: UUID,
        trainee_id: UUID,
        status: str = EnrollmentStatus.ENROLLED.value,
        progress_percentage: Decimal = Decimal(0),
        enrollment_type: str = EnrollmentType.SELF.value,
        enrolled_by: UUID | None = None,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
        due_date: datetime | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id
        self.course_id = course_id
        self.trainee_id = trainee_id
        self.status = status
        self.progress_percentage = progress_percentage
        self.enrollment_type = enrollment_type
        self.enrolled_by = enrolled_by
        self.started_at = ensure_utc_aware(started_at)
        self.completed_at = ensure_utc_aware(completed_at)
        self.due_date = ensure_utc_aware(due_date)
        self.created_at = ensure_utc_aware(created_at) or utcnow()
        self.updated_at = ensure_utc_aware(updated_at) or self.created_at

    @property
    def is_active(self) -> bool:
        """Anything but dropped counts toward capacity and uniqueness."""
        return self.status != EnrollmentStatus.DROPPED.value

    @property
    def is_completed(self) -> bool:
        return self.status == EnrollmentStatus.COMPLETED.value

    @property
    def is_dropped(self) -> bool:
        return self.status == EnrollmentStatus.DROPPED.value

    @classmethod
    def from_row(cls, row: Any) -> "Enrollment":
        """Create Enrollment instance from a row of any enrollment table."""
        return cls(
            id=row.id,
            course_id=row.course_id,
            trainee_id=row.trainee_id,
            status=row.status or EnrollmentStatus.ENROLLED.value,
            progress_percentage=row.progress_percentage or Decimal(0),
            enrollment_type=row.enrollment_type or EnrollmentType.SELF.value,
            enrolled_by=row.enrolled_by,
            started_at=row.started_at,
            completed_at=row.completed_at,
            due_date=row.due_date,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {field: getattr(self, field) for field in ENROLLMENT_FIELDS}

    def __repr__(self) -> str:
        return (
            f"<Enrollment {self.id} trainee={self.trainee_id} "
            f"course={self.course_id} {self.status} {self.progress_percentage}%>"
        )
