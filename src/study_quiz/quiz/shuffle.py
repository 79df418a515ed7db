"""Question and choice permutations.

A permutation ``perm`` of length ``n`` describes a new order in which new
position ``j`` holds the item previously at ``perm[j]``. Remapping an old index
``k`` therefore means finding ``perm.index(k)``.
"""

from __future__ import annotations

import random
from collections.abc import Callable, Sequence
from dataclasses import replace
from typing import TypeVar

from .models import Answer, Question, is_index

__all__ = [
    "PermutationGenerator",
    "random_permutation",
    "seeded_permutation",
    "apply_permutation",
    "remap_answer",
    "shuffle_question_choices",
    "shuffle_all_choices",
    "shuffle_questions",
]

T = TypeVar("T")

PermutationGenerator = Callable[[int], Sequence[int]]


def random_permutation(size: int) -> list[int]:
    order = list(range(size))
    random.Random().shuffle(order)
    return order


def seeded_permutation(seed: int) -> PermutationGenerator:
    """Return a reproducible generator backed by ``random.Random(seed)``."""

    rnd = random.Random(seed)

    def _generate(size: int) -> list[int]:
        order = list(range(size))
        rnd.shuffle(order)
        return order

    return _generate


def _checked(perm: Sequence[int], size: int) -> list[int]:
    order = list(perm)
    if sorted(order) != list(range(size)):
        raise ValueError(
            f"Expected a permutation of range({size}), got {order!r}."
        )
    return order


def apply_permutation(items: Sequence[T], perm: Sequence[int]) -> list[T]:
    order = _checked(perm, len(items))
    return [items[old] for old in order]


def remap_answer(question: Question, perm: Sequence[int]) -> Answer:
    """Rewrite ``question.answer`` into the index space after ``perm``.

    Entries that do not name one of the question's choices are carried over
    unchanged, so a malformed answer stays unmatched under every permutation.
    """

    order = _checked(perm, len(question.choices))
    new_position = {old: new for new, old in enumerate(order)}
    if question.is_multi_answer:
        if isinstance(question.answer, (str, bytes)) or not isinstance(
            question.answer, Sequence
        ):
            return question.answer
        remapped = tuple(
            new_position[old]
            if is_index(old) and old in new_position
            else old
            for old in question.answer
        )
        if all(is_index(item) for item in remapped):
            return tuple(sorted(remapped))
        return remapped
    if is_index(question.answer) and question.answer in new_position:
        return new_position[question.answer]  # type: ignore[index]
    return question.answer


def shuffle_question_choices(
    question: Question, permute: PermutationGenerator | None = None
) -> Question:
    generator = permute or random_permutation
    perm = _checked(generator(len(question.choices)), len(question.choices))
    return replace(
        question,
        choices=tuple(apply_permutation(question.choices, perm)),
        answer=remap_answer(question, perm),
    )


def shuffle_all_choices(
    questions: Sequence[Question], permute: PermutationGenerator | None = None
) -> tuple[Question, ...]:
    """Independently reorder every question's choices."""

    return tuple(shuffle_question_choices(q, permute) for q in questions)


def shuffle_questions(
    questions: Sequence[Question], permute: PermutationGenerator | None = None
) -> tuple[Question, ...]:
    generator = permute or random_permutation
    return tuple(apply_permutation(questions, generator(len(questions))))
