"""Database models for the progress ledger.

The ledger is sparse: a row exists only for a (module) or (module, content)
that the trainee has touched. A row is addressed by a ``ProgressKey``:

- ``ModuleLevel(module_id)``: whole-module completion
- ``ContentLevel(module_id, content_id)``: one content item

Cassandra clustering columns cannot be null, so the store writes module-level
rows under a reserved nil content id. That mapping stays inside the store.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from learnflow.catalog.models import ensure_utc_aware, utcnow


class ProgressStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass(frozen=True)
class ModuleLevel:
    module_id: UUID


@dataclass(frozen=True)
class ContentLevel:
    module_id: UUID
    content_id: UUID


ProgressKey = ModuleLevel | ContentLevel


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# One partition per enrollment: a rollup reads exactly one partition
PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.progress (
    enrollment_id UUID,
    module_id UUID,
    content_id UUID,
    status TEXT,
    progress_percentage DECIMAL,
    time_spent INT,
    content_data TEXT,
    started_at TIMESTAMP,
    completed_at TIMESTAMP,
    last_accessed_at TIMESTAMP,
    PRIMARY KEY (enrollment_id, module_id, content_id)
) WITH CLUSTERING ORDER BY (module_id ASC, content_id ASC)
"""

PROGRESS_TABLES_CQL = [PROGRESS_TABLE_CQL]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Progress:
    """One ledger row.

    Attributes:
        enrollment_id: Owning enrollment
        key: ModuleLevel or ContentLevel address
        status: not_started, in_progress or completed
        progress_percentage: 0-100 for this item
        time_spent: Seconds, accumulated across updates
        content_data: Opaque JSON text supplied by the client (quiz state etc.)
        started_at: Set once on the first non-not_started update
        completed_at: Set once on the first completed update
        last_accessed_at: Bumped on every update
    """

    def __init__(
        self,
        enrollment_id: UUID,
        key: ProgressKey,
        status: str = ProgressStatus.NOT_STARTED.value,
        progress_percentage: Decimal = Decimal(0),
        time_spent: int = 0,
        content_data: str | None = None,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
        last_accessed_at: datetime | None = None,
    ):
        self.enrollment_id = enrollment_id
        self.key = key
        self.status = status
        self.progress_percentage = progress_percentage
        self.time_spent = time_spent
        self.content_data = content_data
        self.started_at = ensure_utc_aware(started_at)
        self.completed_at = ensure_utc_aware(completed_at)
        self.last_accessed_at = ensure_utc_aware(last_accessed_at) or utcnow()

    @property
    def module_id(self) -> UUID:
        return self.key.module_id

    @property
    def content_id(self) -> UUID | None:
        return self.key.content_id if isinstance(self.key, ContentLevel) else None

    @property
    def is_module_level(self) -> bool:
        return isinstance(self.key, ModuleLevel)

    @property
    def is_completed(self) -> bool:
        return self.status == ProgressStatus.COMPLETED.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "enrollment_id": self.enrollment_id,
            "module_id": self.module_id,
            "content_id": self.content_id,
            "status": self.status,
            "progress_percentage": self.progress_percentage,
            "time_spent": self.time_spent,
            "content_data": self.content_data,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "last_accessed_at": self.last_accessed_at,
        }

    def __repr__(self) -> str:
        return (
            f"<Progress enrollment={self.enrollment_id} {self.key} "
            f"{self.status} {self.progress_percentage}%>"
        )
