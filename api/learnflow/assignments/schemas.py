"""Pydantic schemas for assignments and submissions."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from .models import AssignmentSubmission, SubmissionStatus


class SubmitAssignmentRequest(BaseModel):
    enrollment_id: UUID
    submission_text: str | None = Field(default=None, max_length=50000)
    submission_files: list[str] = Field(default_factory=list, description="File URLs")


class GradeSubmissionRequest(BaseModel):
    score: Decimal
    feedback: str | None = Field(default=None, max_length=10000)
    status: SubmissionStatus = SubmissionStatus.GRADED


class SubmissionResponse(BaseModel):
    id: UUID
    assignment_id: UUID
    enrollment_id: UUID
    trainee_id: UUID
    submission_text: str | None = None
    submission_files: list[str] = []
    score: Decimal | None = None
    feedback: str | None = None
    status: SubmissionStatus
    is_late: bool
    submitted_at: datetime
    graded_at: datetime | None = None
    graded_by: UUID | None = None

    @classmethod
    def from_entity(cls, entity: AssignmentSubmission) -> "SubmissionResponse":
        return cls.model_validate(entity.to_dict())
