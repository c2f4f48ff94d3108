"""Database models for assessments and attempts.

Cassandra table definitions for:
- Assessments: question bank stored as JSON text
- Attempts: one partition per enrollment, clustered by assessment and
  attempt number; inserted ``IF NOT EXISTS`` so a number is never reused
- Attempts by id: lookup for detail reads
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

import orjson

from learnflow.catalog.models import ensure_utc_aware, utcnow


DEFAULT_PASSING_SCORE = 70


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"
    MULTIPLE_SELECT = "multiple-select"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

ASSESSMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.assessments (
    id UUID PRIMARY KEY,
    course_id UUID,
    module_id UUID,
    title TEXT,
    questions TEXT,
    passing_score INT,
    max_attempts INT,
    time_limit INT,
    created_at TIMESTAMP
)
"""

ASSESSMENT_ATTEMPTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.assessment_attempts (
    enrollment_id UUID,
    assessment_id UUID,
    attempt_number INT,
    id UUID,
    trainee_id UUID,
    answers TEXT,
    score DECIMAL,
    is_passed BOOLEAN,
    time_taken INT,
    submitted_at TIMESTAMP,
    PRIMARY KEY (enrollment_id, assessment_id, attempt_number)
) WITH CLUSTERING ORDER BY (assessment_id ASC, attempt_number ASC)
"""

ASSESSMENT_ATTEMPTS_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.assessment_attempts_by_id (
    id UUID PRIMARY KEY,
    enrollment_id UUID,
    assessment_id UUID,
    attempt_number INT
)
"""

ASSESSMENTS_TABLES_CQL = [
    ASSESSMENTS_TABLE_CQL,
    ASSESSMENT_ATTEMPTS_TABLE_CQL,
    ASSESSMENT_ATTEMPTS_BY_ID_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Question:
    """One question of the bank.

    ``correct_answers`` is an option index or a list of indices. Single-answer
    types accept either a bare index or a one-element list. ``points`` is
    None when the author did not set it.
    """

    id: str
    type: str
    text: str
    options: list[str]
    correct_answers: int | list[int]
    points: int | None = None
    explanation: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Question":
        return cls(
            id=str(data["id"]),
            type=data["type"],
            text=data.get("text", ""),
            options=list(data.get("options", [])),
            correct_answers=data.get("correct_answers", []),
            points=data.get("points"),
            explanation=data.get("explanation"),
        )

    def to_dict(self, include_answers: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "text": self.text,
            "options": self.options,
            "points": self.points,
            "explanation": self.explanation,
        }
        if include_answers:
            data["correct_answers"] = self.correct_answers
        return data


class Assessment:
    """Scored quiz attached to a course (optionally to one module).

    Attributes:
        passing_score: Percentage needed to pass (0-100)
        max_attempts: Per-enrollment attempt cap (None = unbounded)
        time_limit: Seconds allowed per attempt (None = untimed)
    """

    def __init__(
        self,
        id: UUID,
        course_id: UUID,
        title: str,
        questions: list[Question] | None = None,
        module_id: UUID | None = None,
        passing_score: int = DEFAULT_PASSING_SCORE,
        max_attempts: int | None = None,
        time_limit: int | None = None,
        created_at: datetime | None = None,
    ):
        self.id = id
        self.course_id = course_id
        self.module_id = module_id
        self.title = title
        self.questions = questions or []
        self.passing_score = passing_score
        self.max_attempts = max_attempts
        self.time_limit = time_limit
        self.created_at = ensure_utc_aware(created_at) or utcnow()

    @classmethod
    def from_row(cls, row: Any) -> "Assessment":
        raw = orjson.loads(row.questions) if row.questions else []
        return cls(
            id=row.id,
            course_id=row.course_id,
            module_id=row.module_id,
            title=row.title,
            questions=[Question.from_dict(q) for q in raw],
            passing_score=(
                row.passing_score
                if row.passing_score is not None
                else DEFAULT_PASSING_SCORE
            ),
            max_attempts=row.max_attempts,
            time_limit=row.time_limit,
            created_at=row.created_at,
        )

    def to_dict(self, include_answers: bool = True) -> dict[str, Any]:
        return {
            "id": self.id,
            "course_id": self.course_id,
            "module_id": self.module_id,
            "title": self.title,
            "questions": [q.to_dict(include_answers) for q in self.questions],
            "passing_score": self.passing_score,
            "max_attempts": self.max_attempts,
            "time_limit": self.time_limit,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return f"<Assessment {self.id} {self.title!r} questions={len(self.questions)}>"


@dataclass
class AssessmentAttempt:
    """Immutable, graded-at-creation submission of answers."""

    id: UUID
    assessment_id: UUID
    enrollment_id: UUID
    trainee_id: UUID
    attempt_number: int
    answers: dict[str, Any]
    score: Decimal
    is_passed: bool
    time_taken: int | None = None
    submitted_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_row(cls, row: Any) -> "AssessmentAttempt":
        return cls(
            id=row.id,
            assessment_id=row.assessment_id,
            enrollment_id=row.enrollment_id,
            trainee_id=row.trainee_id,
            attempt_number=row.attempt_number,
            answers=orjson.loads(row.answers) if row.answers else {},
            score=row.score if row.score is not None else Decimal(0),
            is_passed=bool(row.is_passed),
            time_taken=row.time_taken,
            submitted_at=ensure_utc_aware(row.submitted_at) or utcnow(),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "assessment_id": self.assessment_id,
            "enrollment_id": self.enrollment_id,
            "trainee_id": self.trainee_id,
            "attempt_number": self.attempt_number,
            "answers": self.answers,
            "score": self.score,
            "is_passed": self.is_passed,
            "time_taken": self.time_taken,
            "submitted_at": self.submitted_at,
        }
