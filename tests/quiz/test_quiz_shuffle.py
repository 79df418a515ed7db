from __future__ import annotations

from collections import Counter

import pytest

from fixtures import identity, make_question, reverse
from study_quiz.quiz import shuffle
from study_quiz.quiz.scoring import is_correct


def test_reverse_permutation_remaps_single_answer():
    question = make_question(answer=2, choices=("A", "B", "C"))

    shuffled = shuffle.shuffle_question_choices(question, reverse)

    assert shuffled.choices == ("C", "B", "A")
    assert shuffled.answer == 0
    assert shuffled.choices[shuffled.answer] == "C"


def test_remap_uses_new_position_of_old_index():
    question = make_question(answer=1, choices=("A", "B", "C", "D"))
    perm = [2, 0, 3, 1]

    shuffled = shuffle.shuffle_question_choices(question, lambda n: perm)

    assert shuffled.choices == ("C", "A", "D", "B")
    assert shuffled.answer == 3
    assert shuffled.choices[shuffled.answer] == "B"


def test_multi_answer_remap_keeps_texts():
    question = make_question(answer=[0, 3], choices=("w", "x", "y", "z"))
    perm = [3, 1, 0, 2]

    shuffled = shuffle.shuffle_question_choices(question, lambda n: perm)

    assert shuffled.answer == (0, 2)
    assert {shuffled.choices[i] for i in shuffled.answer} == {"w", "z"}


def test_identity_permutation_is_noop():
    question = make_question(answer=[1, 2])

    assert shuffle.shuffle_question_choices(question, identity) == question


def test_shuffled_correct_answer_still_scores():
    question = make_question(answer=0, choices=("right", "wrong", "nope"))

    for seed in range(5):
        shuffled = shuffle.shuffle_question_choices(
            question, shuffle.seeded_permutation(seed)
        )
        index = shuffled.choices.index("right")
        assert is_correct(shuffled, index)


def test_invalid_permutation_rejected():
    question = make_question(answer=0)

    with pytest.raises(ValueError):
        shuffle.shuffle_question_choices(question, lambda n: [0, 0, 1])
    with pytest.raises(ValueError):
        shuffle.apply_permutation(["a", "b"], [0, 1, 2])


def test_shuffle_questions_is_permutation():
    questions = [make_question(str(i)) for i in range(6)]

    shuffled = shuffle.shuffle_questions(
        questions, shuffle.seeded_permutation(3)
    )

    assert Counter(q.id for q in shuffled) == Counter(
        q.id for q in questions
    )


def test_shuffle_questions_with_reverse():
    questions = [make_question(str(i)) for i in range(3)]

    shuffled = shuffle.shuffle_questions(questions, reverse)

    assert [q.id for q in shuffled] == ["2", "1", "0"]


def test_shuffle_all_choices_calls_generator_per_question():
    sizes: list[int] = []

    def recording(size: int) -> list[int]:
        sizes.append(size)
        return identity(size)

    questions = [
        make_question("a", choices=("1", "2")),
        make_question("b", choices=("1", "2", "3", "4")),
    ]

    shuffle.shuffle_all_choices(questions, recording)

    assert sizes == [2, 4]


def test_random_permutation_covers_range():
    perm = shuffle.random_permutation(10)

    assert sorted(perm) == list(range(10))
    assert shuffle.random_permutation(0) == []


def test_out_of_range_answer_survives_identity_permutation():
    question = make_question(answer=[0, 5], choices=("a", "b", "c"))

    shuffled = shuffle.shuffle_question_choices(question, identity)

    assert shuffled.answer == (0, 5)
    assert not is_correct(question, (0,))
    assert not is_correct(shuffled, (0,))


def test_out_of_range_answer_kept_under_reverse():
    question = make_question(answer=[0, 5], choices=("a", "b", "c"))

    shuffled = shuffle.shuffle_question_choices(question, reverse)

    assert shuffled.answer == (2, 5)
    assert not is_correct(shuffled, (2,))
