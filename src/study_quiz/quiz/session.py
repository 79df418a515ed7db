"""Quiz session controller.

``QuizSession`` owns one :class:`~study_quiz.quiz.state.QuizState` together
with the things the pure state machine deliberately does not know about: the
question source, user preferences, the clock and the permutation generator.
It is the surface a front-end talks to.

Loading is the only asynchronous step. Each call to :meth:`load_category`
takes a new request token; a fetch that resolves after a newer request was
issued is dropped so an old category cannot overwrite a newer one.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from . import state as sm
from .errors import SourceUnavailable
from .models import Question, Selection
from .scoring import (
    AnswerReview,
    ChoiceStatus,
    QuizResult,
    choice_feedback,
    review_answers,
    summarize,
)
from .shuffle import PermutationGenerator
from .source import QuestionSource, fetch_questions, is_all_categories

__all__ = ["Clock", "LoadRequest", "QuizSession", "utc_now"]

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class LoadRequest:
    """Identifies one fetch; only the latest request may update the session."""

    token: int
    category: str | None


class QuizSession:
    """Stateful wrapper that applies actions and exposes derived values."""

    def __init__(
        self,
        source: QuestionSource | None = None,
        *,
        shuffled: bool = False,
        show_correct_answer: bool = True,
        clock: Clock | None = None,
        permute: PermutationGenerator | None = None,
    ) -> None:
        self.source = source
        self.category: str | None = None
        self.load_error: SourceUnavailable | None = None
        self._state = sm.QuizState()
        self._source_questions: tuple[Question, ...] = ()
        self._shuffled = shuffled
        self._show_correct_answer = show_correct_answer
        self._clock = clock or utc_now
        self._permute = permute
        self._choices_shuffled = False
        self._last_token = 0
        self._pending: LoadRequest | None = None

    @property
    def state(self) -> sm.QuizState:
        return self._state

    def dispatch(self, action: sm.Action) -> sm.QuizState:
        before = self._state
        self._state = sm.apply_action(before, action)
        if self._state is before:
            logger.debug(
                "Quiz action ignored",
                extra={"action": type(action).__name__},
            )
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._pending is not None

    @property
    def category_label(self) -> str:
        return self.category or "All Categories"

    def begin_load(self, category: str | None = None) -> LoadRequest:
        self._last_token += 1
        request = LoadRequest(token=self._last_token, category=category)
        self._pending = request
        self.category = None if is_all_categories(category) else category
        self.load_error = None
        logger.debug(
            "Question load started",
            extra={"token": request.token, "category": category},
        )
        return request

    def is_current(self, request: LoadRequest) -> bool:
        return request.token == self._last_token

    def resolve_load(
        self, request: LoadRequest, questions: Sequence[Question]
    ) -> bool:
        """Apply fetched questions unless ``request`` has been superseded."""

        if not self.is_current(request):
            logger.debug(
                "Discarding stale question load",
                extra={"token": request.token, "category": request.category},
            )
            return False
        self._pending = None
        self.load_questions(questions)
        return True

    def fail_load(
        self, request: LoadRequest, error: SourceUnavailable
    ) -> bool:
        if not self.is_current(request):
            logger.debug(
                "Ignoring failure of stale question load",
                extra={"token": request.token, "category": request.category},
            )
            return False
        self._pending = None
        self.load_error = error
        self._source_questions = ()
        self._state = sm.QuizState()
        logger.error(
            "Question load failed",
            extra={"category": request.category, "error": str(error)},
        )
        return True

    async def load_category(self, category: str | None = None) -> bool:
        """Fetch questions for ``category`` (all when ``None``).

        Returns ``True`` when the fetched questions were applied.
        """

        if self.source is None:
            raise RuntimeError("QuizSession has no question source.")
        request = self.begin_load(category)
        try:
            questions = await fetch_questions(self.source, category)
        except SourceUnavailable as exc:
            self.fail_load(request, exc)
            return False
        except asyncio.CancelledError:
            if self.is_current(request):
                self._pending = None
            raise
        except Exception as exc:
            logger.exception(
                "Question source raised an unexpected error",
                extra={"category": category},
            )
            error = SourceUnavailable(
                f"Unexpected error while loading questions: {exc}",
                category=category,
            )
            error.__cause__ = exc
            self.fail_load(request, error)
            return False
        return self.resolve_load(request, questions)

    def load_questions(self, questions: Sequence[Question]) -> sm.QuizState:
        """Install ``questions`` as the source list and load them."""

        self._source_questions = tuple(questions)
        self._choices_shuffled = False
        return self.dispatch(
            sm.Load(
                self._source_questions,
                shuffle=self._shuffled,
                permute=self._permute,
            )
        )

    @property
    def shuffled(self) -> bool:
        return self._shuffled

    @property
    def show_correct_answer(self) -> bool:
        return self._show_correct_answer

    def toggle_shuffle(self) -> bool:
        """Flip question shuffling; applies from the next load or reset."""

        self._shuffled = not self._shuffled
        return self._shuffled

    def toggle_show_correct_answer(self) -> bool:
        self._show_correct_answer = not self._show_correct_answer
        return self._show_correct_answer

    def start(self) -> sm.QuizState:
        logger.info(
            "Quiz started",
            extra={"questions": self.total, "category": self.category_label},
        )
        return self.dispatch(sm.Start(self._clock()))

    def select_answer(self, choice: int) -> sm.QuizState:
        return self.dispatch(sm.Select(choice))

    def submit_answer(self) -> sm.QuizState:
        return self.dispatch(sm.SubmitAnswer())

    def answer_and_continue(self) -> sm.QuizState:
        """Lock the current answer; advance at once when answers are hidden."""

        self.submit_answer()
        if not self._show_correct_answer:
            return self.next_question()
        return self._state

    def next_question(self) -> sm.QuizState:
        was_completed = self._state.is_completed
        state = self.dispatch(sm.NextQuestion(self._clock()))
        if state.is_completed and not was_completed:
            self._log_completion()
        return state

    def previous_question(self) -> sm.QuizState:
        return self.dispatch(sm.PreviousQuestion())

    def reset_quiz(self) -> sm.QuizState:
        """Start over from the loaded questions.

        A choice shuffle requested since the last load is applied again, with
        fresh permutations.
        """

        self.dispatch(
            sm.Reset(
                self._source_questions,
                shuffle=self._shuffled,
                permute=self._permute,
            )
        )
        if self._choices_shuffled:
            self.dispatch(sm.ShuffleChoices(self._permute))
        return self._state

    def submit_quiz(self) -> sm.QuizState:
        was_completed = self._state.is_completed
        state = self.dispatch(sm.SubmitQuiz(self._clock()))
        if not was_completed:
            self._log_completion()
        return state

    @property
    def choices_shuffled(self) -> bool:
        return self._choices_shuffled

    def shuffle_choices(self) -> sm.QuizState:
        self._choices_shuffled = True
        return self.dispatch(sm.ShuffleChoices(self._permute))

    def _log_completion(self) -> None:
        logger.info(
            "Quiz completed",
            extra={"score": self._state.score, "total": self.total},
        )

    @property
    def questions(self) -> tuple[Question, ...]:
        return self._state.questions

    @property
    def current_question(self) -> Question | None:
        return self._state.current_question

    @property
    def selected_answer(self) -> Selection:
        return self._state.current_selection

    @property
    def progress(self) -> int:
        return self._state.progress

    @property
    def can_go_next(self) -> bool:
        return self._state.can_go_next

    @property
    def can_go_previous(self) -> bool:
        return self._state.can_go_previous

    @property
    def is_last_question(self) -> bool:
        return self._state.is_last_question

    @property
    def is_current_answered(self) -> bool:
        return self._state.is_current_answered

    @property
    def is_completed(self) -> bool:
        return self._state.is_completed

    @property
    def has_started(self) -> bool:
        return self._state.has_started

    @property
    def score(self) -> int:
        return self._state.score

    @property
    def total(self) -> int:
        return self._state.total

    @property
    def questions_remaining(self) -> int:
        return self._state.questions_remaining

    def elapsed(self) -> timedelta | None:
        return self._state.elapsed(self._clock())

    def current_feedback(self) -> list[ChoiceStatus]:
        question = self.current_question
        if question is None:
            return []
        return choice_feedback(
            question,
            self.selected_answer,
            locked=self.is_current_answered,
            reveal=self._show_correct_answer,
        )

    def result(self) -> QuizResult:
        return summarize(
            self._state.selections,
            self._state.questions,
            started_at=self._state.started_at,
            ended_at=self._state.ended_at,
        )

    def review(self) -> list[AnswerReview]:
        return review_answers(self._state.selections, self._state.questions)
