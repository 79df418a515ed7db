"""Scoring helpers: exact-match grading, answer review and result summaries."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum

from .models import Question, Selection, is_index

__all__ = [
    "AnswerReview",
    "CategoryScore",
    "ChoiceStatus",
    "QuizResult",
    "calculate_score",
    "choice_feedback",
    "is_correct",
    "normalize_indices",
    "review_answers",
    "round_half_up",
    "summarize",
]


def normalize_indices(values: object) -> tuple[int, ...] | None:
    """Deduplicate and sort a sequence of indices.

    Returns ``None`` when ``values`` is not a sequence of plain integers, so
    callers can treat the shape as a mismatch.
    """

    if isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
        return None
    if not all(is_index(item) for item in values):
        return None
    return tuple(sorted(set(values)))


def is_correct(question: Question | None, selection: Selection) -> bool:
    """Grade one selection. Shape mismatches are incorrect, never errors."""

    if question is None or selection is None:
        return False
    if question.is_multi_answer:
        chosen = normalize_indices(selection)
        expected = normalize_indices(question.answer)
        if chosen is None or expected is None:
            return False
        return chosen == expected
    return (
        is_index(selection)
        and is_index(question.answer)
        and selection == question.answer
    )


def calculate_score(
    selections: Sequence[Selection], questions: Sequence[Question]
) -> int:
    """Count the selections that exactly match their question's answer."""

    score = 0
    for index, selection in enumerate(selections):
        question = questions[index] if index < len(questions) else None
        if is_correct(question, selection):
            score += 1
    return score


@dataclass(frozen=True)
class AnswerReview:
    """One row of the post-quiz review."""

    index: int
    question: Question
    selection: Selection
    is_correct: bool

    @property
    def selected_indices(self) -> tuple[int, ...]:
        if self.selection is None:
            return ()
        if is_index(self.selection):
            return (self.selection,)  # type: ignore[return-value]
        return normalize_indices(self.selection) or ()

    @property
    def selected_texts(self) -> list[str]:
        return _texts_for(self.question, self.selected_indices)

    @property
    def correct_texts(self) -> list[str]:
        return _texts_for(self.question, self.question.correct_indices())

    @property
    def answered(self) -> bool:
        return bool(self.selected_indices)


def review_answers(
    selections: Sequence[Selection], questions: Sequence[Question]
) -> list[AnswerReview]:
    reviews: list[AnswerReview] = []
    for index, question in enumerate(questions):
        selection = selections[index] if index < len(selections) else None
        reviews.append(
            AnswerReview(
                index=index,
                question=question,
                selection=selection,
                is_correct=is_correct(question, selection),
            )
        )
    return reviews


@dataclass(frozen=True)
class CategoryScore:
    """Per-category tally."""

    category: str
    asked: int
    correct: int

    @property
    def accuracy(self) -> float:
        if self.asked == 0:
            return 0.0
        return self.correct / self.asked


@dataclass(frozen=True)
class QuizResult:
    """Final figures shown on the results screen."""

    score: int
    total: int
    answered: int
    elapsed: timedelta | None
    per_category: dict[str, CategoryScore] = field(default_factory=dict)

    @property
    def accuracy(self) -> float:
        if self.total == 0:
            return 0.0
        return self.score / self.total

    @property
    def percentage(self) -> int:
        return round_half_up(self.accuracy * 100)


def summarize(
    selections: Sequence[Selection],
    questions: Sequence[Question],
    *,
    started_at: datetime | None = None,
    ended_at: datetime | None = None,
) -> QuizResult:
    reviews = review_answers(selections, questions)
    tallies: dict[str, list[int]] = {}
    for review in reviews:
        bucket = tallies.setdefault(review.question.category, [0, 0])
        bucket[0] += 1
        if review.is_correct:
            bucket[1] += 1
    elapsed = None
    if started_at is not None and ended_at is not None:
        elapsed = ended_at - started_at
    return QuizResult(
        score=sum(1 for review in reviews if review.is_correct),
        total=len(questions),
        answered=sum(1 for review in reviews if review.answered),
        elapsed=elapsed,
        per_category={
            name: CategoryScore(category=name, asked=asked, correct=correct)
            for name, (asked, correct) in tallies.items()
        },
    )


def round_half_up(value: float) -> int:
    """Round like JavaScript's ``Math.round`` (halves go up)."""

    return math.floor(value + 0.5)


def _texts_for(question: Question, indices: Sequence[int]) -> list[str]:
    return [
        question.choices[i] for i in indices if 0 <= i < len(question.choices)
    ]


class ChoiceStatus(Enum):
    """How a choice should be highlighted on the question card."""

    NEUTRAL = "neutral"
    SELECTED = "selected"
    CORRECT = "correct"
    INCORRECT = "incorrect"


def choice_feedback(
    question: Question,
    selection: Selection,
    *,
    locked: bool,
    reveal: bool,
) -> list[ChoiceStatus]:
    """Return one status per choice of ``question``.

    Correct and incorrect marks only appear once the question is locked and
    the show-correct-answer preference is on.
    """

    if isinstance(selection, tuple):
        chosen = set(selection)
    elif is_index(selection):
        chosen = {selection}
    else:
        chosen = set()
    correct = set(question.correct_indices())
    statuses: list[ChoiceStatus] = []
    for index in range(len(question.choices)):
        if locked and reveal and index in correct:
            statuses.append(ChoiceStatus.CORRECT)
        elif locked and reveal and index in chosen:
            statuses.append(ChoiceStatus.INCORRECT)
        elif index in chosen:
            statuses.append(ChoiceStatus.SELECTED)
        else:
            statuses.append(ChoiceStatus.NEUTRAL)
    return statuses
