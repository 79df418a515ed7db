"""Exception types raised (or logged) by the quiz package."""

from __future__ import annotations

from collections.abc import Mapping

__all__ = [
    "QuizError",
    "SourceUnavailable",
    "PartialAggregateFailure",
    "QuestionFormatError",
]


class QuizError(RuntimeError):
    """Base class for quiz failures."""


class SourceUnavailable(QuizError):
    """Raised when a question source cannot deliver the requested data."""

    def __init__(self, message: str, *, category: str | None = None) -> None:
        super().__init__(message)
        self.category = category


class PartialAggregateFailure(QuizError):
    """Describes categories that failed during an all-categories load.

    Never raised: the aggregate loader logs it and carries on with the
    categories that did load.
    """

    def __init__(self, failures: Mapping[str, BaseException]) -> None:
        self.failures = dict(failures)
        names = ", ".join(self.failures) or "(none)"
        super().__init__(
            f"{len(self.failures)} category file(s) failed to load: {names}"
        )


class QuestionFormatError(QuizError):
    """Raised when a question record breaks the question invariants."""
