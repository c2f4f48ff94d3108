"""Pydantic schemas for progress tracking."""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

import orjson
from pydantic import BaseModel, Field

from learnflow.enrollments.schemas import EnrollmentResponse, RollupResponse

from .models import Progress, ProgressStatus
from .service import CourseProgress


class UpdateProgressRequest(BaseModel):
    enrollment_id: UUID
    module_id: UUID
    content_id: UUID | None = Field(default=None, description="Omit for module level")
    status: ProgressStatus
    progress_percentage: Decimal = Field(default=Decimal(0), ge=0, le=100)
    time_spent: int | None = Field(default=None, ge=0, description="Seconds to add")


class CompleteContentRequest(BaseModel):
    enrollment_id: UUID
    module_id: UUID
    content_id: UUID
    time_spent: int | None = Field(default=None, ge=0, description="Seconds to add")
    content_data: dict[str, Any] | None = Field(
        default=None, description="Client state to keep with the row (quiz answers etc.)"
    )

    def content_data_json(self) -> str | None:
        if self.content_data is None:
            return None
        return orjson.dumps(self.content_data).decode()


class ProgressResponse(BaseModel):
    enrollment_id: UUID
    module_id: UUID
    content_id: UUID | None = None
    level: str
    status: ProgressStatus
    progress_percentage: Decimal
    time_spent: int
    content_data: dict[str, Any] | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    last_accessed_at: datetime

    @classmethod
    def from_entity(cls, entity: Progress) -> "ProgressResponse":
        return cls(
            enrollment_id=entity.enrollment_id,
            module_id=entity.module_id,
            content_id=entity.content_id,
            level="module" if entity.is_module_level else "content",
            status=ProgressStatus(entity.status),
            progress_percentage=entity.progress_percentage,
            time_spent=entity.time_spent,
            content_data=orjson.loads(entity.content_data) if entity.content_data else None,
            started_at=entity.started_at,
            completed_at=entity.completed_at,
            last_accessed_at=entity.last_accessed_at,
        )


class ProgressUpdateResponse(BaseModel):
    progress: ProgressResponse
    enrollment: EnrollmentResponse


class CourseProgressResponse(BaseModel):
    enrollment: EnrollmentResponse
    rollup: RollupResponse
    entries: list[ProgressResponse]

    @classmethod
    def from_view(cls, view: CourseProgress) -> "CourseProgressResponse":
        return cls(
            enrollment=EnrollmentResponse.from_entity(view.enrollment),
            rollup=RollupResponse.from_rollup(view.rollup),
            entries=[ProgressResponse.from_entity(row) for row in view.entries],
        )
