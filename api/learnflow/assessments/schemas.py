"""Pydantic schemas for assessments and attempts."""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from .grading import question_points
from .models import Assessment, AssessmentAttempt, Question, QuestionType


class SubmitAttemptRequest(BaseModel):
    enrollment_id: UUID
    answers: dict[str, int | list[int]] = Field(
        ..., description="Option index (or indices for multiple-select) per question id"
    )
    time_taken: int | None = Field(default=None, ge=0, description="Seconds")


class QuestionResponse(BaseModel):
    id: str
    type: QuestionType
    text: str
    options: list[str]
    points: int
    explanation: str | None = None
    correct_answers: int | list[int] | None = None

    @classmethod
    def from_question(cls, question: Question, include_answers: bool) -> "QuestionResponse":
        return cls(
            id=question.id,
            type=QuestionType(question.type),
            text=question.text,
            options=question.options,
            points=question_points(question),
            explanation=question.explanation if include_answers else None,
            correct_answers=question.correct_answers if include_answers else None,
        )


class AssessmentResponse(BaseModel):
    id: UUID
    course_id: UUID
    module_id: UUID | None = None
    title: str
    passing_score: int
    max_attempts: int | None = None
    time_limit: int | None = Field(default=None, description="Seconds")
    questions: list[QuestionResponse]

    @classmethod
    def from_entity(cls, entity: Assessment, include_answers: bool) -> "AssessmentResponse":
        return cls(
            id=entity.id,
            course_id=entity.course_id,
            module_id=entity.module_id,
            title=entity.title,
            passing_score=entity.passing_score,
            max_attempts=entity.max_attempts,
            time_limit=entity.time_limit,
            questions=[
                QuestionResponse.from_question(q, include_answers)
                for q in entity.questions
            ],
        )


class AttemptResponse(BaseModel):
    id: UUID
    assessment_id: UUID
    enrollment_id: UUID
    trainee_id: UUID
    attempt_number: int
    answers: dict[str, Any]
    score: Decimal = Field(description="0-100 percentage")
    is_passed: bool
    time_taken: int | None = None
    submitted_at: datetime

    @classmethod
    def from_entity(cls, entity: AssessmentAttempt) -> "AttemptResponse":
        return cls.model_validate(entity.to_dict())
