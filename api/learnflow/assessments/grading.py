"""Answer comparison and scoring.

Per question type:
- multiple-choice / true-false: the submitted answer must be a bare option
  index equal to the correct index. The correct answer may be stored as a
  bare index or as a list whose first element is the index.
- multiple-select: submitted and correct indices are compared as sorted
  lists; only an exact match earns the points (no partial credit).

Every question counts toward the total whether or not it was answered.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from .models import Question, QuestionType


DEFAULT_QUESTION_POINTS = 10

_SCORE_PLACES = Decimal("0.01")


@dataclass(frozen=True)
class GradeResult:
    earned_points: int
    total_points: int
    score: Decimal
    is_passed: bool


def question_points(question: Question) -> int:
    return question.points if question.points is not None else DEFAULT_QUESTION_POINTS


def _is_index(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _index_list(value: Any) -> list[int] | None:
    """Sorted indices, or None if ``value`` is not an index or list of indices."""
    if _is_index(value):
        return [value]
    if isinstance(value, list) and all(_is_index(item) for item in value):
        return sorted(value)
    return None


def is_correct(question: Question, answer: Any) -> bool:
    if answer is None:
        return False

    correct = question.correct_answers
    if question.type == QuestionType.MULTIPLE_SELECT:
        submitted = _index_list(answer)
        expected = _index_list(correct)
        return submitted is not None and submitted == expected

    if isinstance(correct, list):
        if not correct:
            return False
        correct = correct[0]
    return _is_index(answer) and answer == correct


def grade(
    questions: list[Question], answers: dict[str, Any], passing_score: int
) -> GradeResult:
    """Score answers (keyed by question id) against the question bank.

    ``is_passed`` compares the unrounded percentage with ``passing_score``;
    the returned score is rounded to two decimals for storage.
    """
    total = 0
    earned = 0
    for question in questions:
        points = question_points(question)
        total += points
        if is_correct(question, answers.get(question.id)):
            earned += points

    exact = Decimal(earned) / Decimal(total) * 100 if total > 0 else Decimal(0)
    return GradeResult(
        earned_points=earned,
        total_points=total,
        score=exact.quantize(_SCORE_PLACES, rounding=ROUND_HALF_UP),
        is_passed=exact >= passing_score,
    )
