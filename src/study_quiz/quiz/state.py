"""Quiz session state machine.

``QuizState`` is immutable; every transition returns a new instance. The
module exposes one plain function per transition plus :func:`apply_action`,
which dispatches the action dataclasses so a caller can drive a session from a
queue of events.

Lifecycle: empty -> loaded -> started -> completed, with ``reset`` returning a
session to the loaded-but-not-started condition. Once completed, only
``load``, ``reset`` and ``shuffle_choices`` change the state.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Union

from .models import Question, Selection, is_index
from .scoring import calculate_score, round_half_up
from .shuffle import (
    PermutationGenerator,
    shuffle_all_choices,
    shuffle_questions,
)

__all__ = [
    "QuizState",
    "Load",
    "Start",
    "Select",
    "SubmitAnswer",
    "NextQuestion",
    "PreviousQuestion",
    "Reset",
    "SubmitQuiz",
    "ShuffleChoices",
    "Action",
    "apply_action",
    "load",
    "start",
    "select",
    "submit_answer",
    "next_question",
    "previous_question",
    "reset",
    "submit_quiz",
    "shuffle_choices",
]


@dataclass(frozen=True)
class QuizState:
    """Snapshot of a quiz session."""

    questions: tuple[Question, ...] = ()
    selections: tuple[Selection, ...] = ()
    answered: frozenset[int] = field(default_factory=frozenset)
    current_index: int = 0
    started_at: datetime | None = None
    ended_at: datetime | None = None
    is_completed: bool = False
    score: int = 0

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def has_started(self) -> bool:
        return self.started_at is not None

    @property
    def current_question(self) -> Question | None:
        if 0 <= self.current_index < len(self.questions):
            return self.questions[self.current_index]
        return None

    @property
    def current_selection(self) -> Selection:
        if 0 <= self.current_index < len(self.selections):
            return self.selections[self.current_index]
        return None

    @property
    def is_current_answered(self) -> bool:
        return self.current_index in self.answered

    @property
    def can_go_next(self) -> bool:
        if not self.questions:
            return False
        selection = self.current_selection
        if isinstance(selection, tuple):
            return len(selection) > 0
        return selection is not None

    @property
    def can_go_previous(self) -> bool:
        return self.current_index > 0

    @property
    def is_last_question(self) -> bool:
        return self.current_index == len(self.questions) - 1

    @property
    def progress(self) -> int:
        if not self.questions:
            return 0
        return round_half_up(self.current_index / len(self.questions) * 100)

    @property
    def questions_remaining(self) -> int:
        return max(0, len(self.questions) - self.current_index - 1)

    def elapsed(self, now: datetime) -> timedelta | None:
        """Time since start, frozen at ``ended_at`` once completed."""

        if self.started_at is None:
            return None
        return (self.ended_at or now) - self.started_at


def _clamp(index: int, count: int) -> int:
    return min(max(index, 0), max(1, count) - 1)


def _blank(count: int) -> tuple[Selection, ...]:
    return (None,) * count


def load(
    state: QuizState,
    questions: Sequence[Question],
    *,
    shuffle: bool = False,
    permute: PermutationGenerator | None = None,
) -> QuizState:
    """Replace the question list; answers are cleared, timestamps kept."""

    prepared = (
        shuffle_questions(questions, permute) if shuffle else tuple(questions)
    )
    return replace(
        state,
        questions=prepared,
        selections=_blank(len(prepared)),
        answered=frozenset(),
        current_index=_clamp(state.current_index, len(prepared)),
    )


def start(state: QuizState, now: datetime) -> QuizState:
    if state.is_completed:
        return state
    return replace(state, started_at=now, current_index=0)


def select(state: QuizState, choice: int) -> QuizState:
    """Record ``choice`` for the current question.

    Single-answer questions take the choice as-is; multi-answer questions
    toggle its membership. Locked questions and invalid indices are ignored.
    """

    question = state.current_question
    if state.is_completed or question is None or state.is_current_answered:
        return state
    if not is_index(choice) or not 0 <= choice < len(question.choices):
        return state

    index = state.current_index
    if question.is_multi_answer:
        current = state.selections[index]
        members = set(current) if isinstance(current, tuple) else set()
        if choice in members:
            members.remove(choice)
        else:
            members.add(choice)
        value: Selection = tuple(sorted(members))
    else:
        value = choice

    selections = list(state.selections)
    selections[index] = value
    return replace(state, selections=tuple(selections))


def submit_answer(state: QuizState) -> QuizState:
    if state.is_completed or not state.questions:
        return state
    return replace(state, answered=state.answered | {state.current_index})


def _complete(state: QuizState, now: datetime) -> QuizState:
    return replace(
        state,
        ended_at=now,
        score=calculate_score(state.selections, state.questions),
        is_completed=True,
    )


def next_question(state: QuizState, now: datetime) -> QuizState:
    """Advance the pointer, completing the quiz past the last question."""

    if state.is_completed:
        return state
    target = state.current_index + 1
    if target >= len(state.questions):
        return _complete(state, now)
    return replace(state, current_index=target)


def previous_question(state: QuizState) -> QuizState:
    """Step back one question and reopen it for editing.

    Only the landed-on question is reopened; the question being left keeps
    its answered flag. The stored selection is kept.
    """

    if state.is_completed:
        return state
    target = max(0, state.current_index - 1)
    return replace(
        state,
        current_index=target,
        answered=state.answered - {target},
    )


def reset(
    state: QuizState,
    questions: Sequence[Question],
    *,
    shuffle: bool = False,
    permute: PermutationGenerator | None = None,
) -> QuizState:
    prepared = (
        shuffle_questions(questions, permute) if shuffle else tuple(questions)
    )
    return QuizState(questions=prepared, selections=_blank(len(prepared)))


def submit_quiz(state: QuizState, now: datetime) -> QuizState:
    if state.is_completed:
        return state
    return _complete(state, now)


def shuffle_choices(
    state: QuizState, permute: PermutationGenerator | None = None
) -> QuizState:
    """Reorder every question's choices and drop answers given so far.

    Old selections refer to the previous index space, so they are cleared
    along with the answered set.
    """

    questions = shuffle_all_choices(state.questions, permute)
    return replace(
        state,
        questions=questions,
        selections=_blank(len(questions)),
        answered=frozenset(),
        current_index=0,
    )


@dataclass(frozen=True)
class Load:
    questions: tuple[Question, ...]
    shuffle: bool = False
    permute: PermutationGenerator | None = None


@dataclass(frozen=True)
class Start:
    now: datetime


@dataclass(frozen=True)
class Select:
    choice: int


@dataclass(frozen=True)
class SubmitAnswer:
    pass


@dataclass(frozen=True)
class NextQuestion:
    now: datetime


@dataclass(frozen=True)
class PreviousQuestion:
    pass


@dataclass(frozen=True)
class Reset:
    questions: tuple[Question, ...]
    shuffle: bool = False
    permute: PermutationGenerator | None = None


@dataclass(frozen=True)
class SubmitQuiz:
    now: datetime


@dataclass(frozen=True)
class ShuffleChoices:
    permute: PermutationGenerator | None = None


Action = Union[
    Load,
    Start,
    Select,
    SubmitAnswer,
    NextQuestion,
    PreviousQuestion,
    Reset,
    SubmitQuiz,
    ShuffleChoices,
]


def apply_action(state: QuizState, action: Action) -> QuizState:
    """Return the state that results from applying ``action``."""

    if isinstance(action, Select):
        return select(state, action.choice)
    if isinstance(action, SubmitAnswer):
        return submit_answer(state)
    if isinstance(action, NextQuestion):
        return next_question(state, action.now)
    if isinstance(action, PreviousQuestion):
        return previous_question(state)
    if isinstance(action, Start):
        return start(state, action.now)
    if isinstance(action, SubmitQuiz):
        return submit_quiz(state, action.now)
    if isinstance(action, Load):
        return load(
            state,
            action.questions,
            shuffle=action.shuffle,
            permute=action.permute,
        )
    if isinstance(action, Reset):
        return reset(
            state,
            action.questions,
            shuffle=action.shuffle,
            permute=action.permute,
        )
    if isinstance(action, ShuffleChoices):
        return shuffle_choices(state, action.permute)
    raise TypeError(f"Unsupported quiz action: {action!r}")
