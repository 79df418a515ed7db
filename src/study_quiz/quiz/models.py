"""Question records and answer-shape helpers.

Question files use the JSON layout below; ``answer`` is a single index for
single-answer types and a list of indices for ``multiple-choice-v2``::

    {
      "id": 7,
      "question": "Which of these are prime?",
      "choices": ["2", "4", "5"],
      "answer": [0, 2],
      "type": "multiple-choice-v2",
      "category": "math",
      "image": "primes.png"
    }
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Union

from .errors import QuestionFormatError

__all__ = [
    "Answer",
    "Question",
    "QuestionType",
    "Selection",
    "parse_question",
    "is_index",
]

Answer = Union[int, tuple[int, ...]]
# ``None`` means the question has not been answered yet.
Selection = Union[None, int, tuple[int, ...]]


class QuestionType(Enum):
    """Question variants keyed by their wire value."""

    TRUE_FALSE = "true-false"
    MULTIPLE_CHOICE = "multiple-choice"
    MULTI_SELECT = "multiple-choice-v2"

    @property
    def is_multi_answer(self) -> bool:
        return self is QuestionType.MULTI_SELECT

    @property
    def label(self) -> str:
        if self.is_multi_answer:
            return "multiple/answers"
        return self.value.replace("-", "/", 1)

    @classmethod
    def from_value(cls, value: object) -> "QuestionType":
        normalized = str(value or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        expected = ", ".join(member.value for member in cls)
        raise QuestionFormatError(
            f"Unknown question type '{value}'. Expected one of: {expected}."
        )


@dataclass(frozen=True)
class Question:
    """Immutable quiz question.

    ``choices`` is the index space that ``answer`` and every selection refer
    to, so its order is significant.
    """

    id: str
    question: str
    choices: tuple[str, ...]
    answer: Answer
    type: QuestionType
    category: str = ""
    image: str | None = None

    @property
    def is_multi_answer(self) -> bool:
        return self.type.is_multi_answer

    def correct_indices(self) -> tuple[int, ...]:
        """Return the correct indices as an ascending tuple.

        Malformed answers yield an empty tuple rather than raising.
        """

        if self.is_multi_answer:
            if isinstance(self.answer, (str, bytes)) or not isinstance(
                self.answer, Sequence
            ):
                return ()
            return tuple(sorted({i for i in self.answer if is_index(i)}))
        if is_index(self.answer):
            return (self.answer,)  # type: ignore[return-value]
        return ()

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "id": self.id,
            "question": self.question,
            "choices": list(self.choices),
            "answer": (
                list(self.answer)
                if isinstance(self.answer, tuple)
                else self.answer
            ),
            "type": self.type.value,
            "category": self.category,
        }
        if self.image:
            data["image"] = self.image
        return data


def is_index(value: object) -> bool:
    """Return ``True`` for plain integers (``bool`` excluded)."""

    return isinstance(value, int) and not isinstance(value, bool)


def parse_question(
    record: Mapping[str, object], *, category: str | None = None
) -> Question:
    """Validate a raw question record and build a :class:`Question`.

    ``category`` fills in the category label when the record has none, which
    is how category files usually omit it.
    """

    if not isinstance(record, Mapping):
        kind = type(record).__name__
        raise QuestionFormatError(
            f"Question record must be an object, found {kind}."
        )
    identifier = record.get("id")
    if identifier is None or str(identifier).strip() == "":
        raise QuestionFormatError("Question record is missing an 'id'.")
    qid = str(identifier).strip()

    prompt = str(record.get("question", "") or "").strip()
    if not prompt:
        raise QuestionFormatError(f"Question {qid} has no prompt text.")

    raw_choices = record.get("choices")
    if isinstance(raw_choices, (str, bytes)) or not isinstance(
        raw_choices, Sequence
    ):
        raise QuestionFormatError(f"Question {qid} must list its choices.")
    choices = tuple(str(choice) for choice in raw_choices)
    if not choices:
        raise QuestionFormatError(f"Question {qid} has no choices.")

    qtype = QuestionType.from_value(record.get("type"))
    answer = _parse_answer(qid, qtype, record.get("answer"), len(choices))

    label = record.get("category")
    image = record.get("image")
    return Question(
        id=qid,
        question=prompt,
        choices=choices,
        answer=answer,
        type=qtype,
        category=str(label).strip() if label else (category or ""),
        image=str(image) if image else None,
    )


def _parse_answer(
    qid: str, qtype: QuestionType, raw: object, choice_count: int
) -> Answer:
    if qtype.is_multi_answer:
        if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence):
            raise QuestionFormatError(
                f"Question {qid} is multi-answer; 'answer' must be a list."
            )
        indices = list(raw)
        if not indices:
            raise QuestionFormatError(f"Question {qid} has an empty answer.")
        if len(set(indices)) != len(indices):
            raise QuestionFormatError(
                f"Question {qid} repeats an index in its answer."
            )
        for index in indices:
            _check_index(qid, index, choice_count)
        return tuple(sorted(indices))

    _check_index(qid, raw, choice_count)
    return raw  # type: ignore[return-value]


def _check_index(qid: str, value: object, choice_count: int) -> None:
    if not is_index(value):
        raise QuestionFormatError(
            f"Question {qid} has a non-integer answer index: {value!r}."
        )
    if not 0 <= value < choice_count:  # type: ignore[operator]
        raise QuestionFormatError(
            f"Question {qid} answer index {value} is out of range "
            f"for {choice_count} choice(s)."
        )
