"""Pydantic schemas for prerequisite links."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from .service import CourseRef, PrerequisiteCheck, PrerequisiteLink


class AddPrerequisiteRequest(BaseModel):
    prerequisite_course_id: UUID = Field(..., description="Required course UUID")
    is_mandatory: bool = Field(default=True, description="Blocks enrollment if unmet")


class CourseRefResponse(BaseModel):
    id: UUID
    title: str

    @classmethod
    def from_ref(cls, ref: CourseRef) -> "CourseRefResponse":
        return cls(id=ref.id, title=ref.title)


class PrerequisiteResponse(BaseModel):
    course_id: UUID
    prerequisite_course_id: UUID
    prerequisite_title: str | None = None
    prerequisite_status: str | None = None
    is_mandatory: bool
    created_at: datetime

    @classmethod
    def from_link(cls, item: PrerequisiteLink) -> "PrerequisiteResponse":
        return cls(
            course_id=item.link.course_id,
            prerequisite_course_id=item.link.prerequisite_course_id,
            prerequisite_title=item.course.title if item.course else None,
            prerequisite_status=item.course.status if item.course else None,
            is_mandatory=item.link.is_mandatory,
            created_at=item.link.created_at,
        )


class PrerequisiteCheckResponse(BaseModel):
    satisfied: bool
    missing: list[CourseRefResponse]

    @classmethod
    def from_check(cls, check: PrerequisiteCheck) -> "PrerequisiteCheckResponse":
        return cls(
            satisfied=check.satisfied,
            missing=[CourseRefResponse.from_ref(ref) for ref in check.missing],
        )
