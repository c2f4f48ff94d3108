"""Pydantic schemas for enrollments."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from learnflow.progress.aggregator import ProgressRollup

from .models import Enrollment, EnrollmentStatus, EnrollmentType


class EnrollRequest(BaseModel):
    """Enroll a trainee. Trainees omit ``trainee_id`` to enroll themselves."""

    course_id: UUID = Field(..., description="Course UUID")
    trainee_id: UUID | None = Field(default=None, description="Trainee UUID")
    due_date: datetime | None = Field(default=None, description="ISO-8601 deadline")
    enrollment_type: EnrollmentType | None = None


class UpdateDueDateRequest(BaseModel):
    due_date: datetime | None = Field(..., description="New deadline, null clears it")


class EnrollmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    course_id: UUID
    trainee_id: UUID
    status: EnrollmentStatus
    progress_percentage: Decimal = Field(description="0-100 percentage")
    enrollment_type: EnrollmentType
    enrolled_by: UUID | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    due_date: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, entity: Enrollment) -> "EnrollmentResponse":
        return cls.model_validate(entity.to_dict())


class RollupResponse(BaseModel):
    completed_modules: int
    total_modules: int
    completed_content: int
    total_content: int
    progress_percentage: Decimal

    @classmethod
    def from_rollup(cls, rollup: ProgressRollup) -> "RollupResponse":
        return cls(
            completed_modules=rollup.completed_modules,
            total_modules=rollup.total_modules,
            completed_content=rollup.completed_content,
            total_content=rollup.total_content,
            progress_percentage=rollup.progress_percentage,
        )


class EnrollmentProgressResponse(BaseModel):
    enrollment: EnrollmentResponse
    rollup: RollupResponse
