from __future__ import annotations

from datetime import timedelta
from typing import Iterable

import pytest
from rich.console import Console

from fixtures import make_question, reverse
from study_quiz.quiz.errors import SourceUnavailable
from study_quiz.quiz.runner import (
    SessionCommand,
    parse_session_command,
    run_quiz,
)
from study_quiz.quiz.session import QuizSession
from study_quiz.quiz.view import format_elapsed


def make_provider(commands: Iterable[str]):
    iterator = iter(commands)

    def _provider() -> str:
        return next(iterator)

    return _provider


def _console() -> Console:
    return Console(record=True, width=100, force_terminal=True)


def _session(**kwargs) -> QuizSession:
    session = QuizSession(**kwargs)
    session.load_questions(
        [
            make_question("a", answer=0, choices=("Paris", "Rome")),
            make_question(
                "b",
                answer=[0, 2],
                choices=("Two", "Four", "Five"),
                text="Pick the primes",
            ),
        ]
    )
    return session


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1", SessionCommand("select", 0)),
        (" 3 ", SessionCommand("select", 2)),
        ("S", SessionCommand("submit")),
        ("next", SessionCommand("next")),
        ("previous", SessionCommand("prev")),
        ("finish", SessionCommand("finish")),
        ("exit", SessionCommand("quit")),
        ("Start", SessionCommand("start")),
        ("mix", SessionCommand("mix")),
        ("r", SessionCommand("retake")),
    ],
)
def test_parse_session_command(raw, expected):
    assert parse_session_command(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", "0", "maybe"])
def test_parse_session_command_rejects(raw):
    assert parse_session_command(raw) is None


def test_run_quiz_full_flow_with_review():
    console = _console()
    session = _session()

    outcome = run_quiz(
        session,
        console,
        make_provider(
            ["start", "1", "s", "n", "1", "3", "s", "n", "review", "q"]
        ),
    )

    assert outcome.exit_action == "completed"
    assert outcome.result is not None
    assert outcome.result.score == 2
    assert outcome.result.total == 2
    output = console.export_text()
    assert "Ready to Start?" in output
    assert "Question 1 / 2" in output
    assert "Select every correct answer." in output
    assert "Correct!" in output
    assert "Quiz Results" in output
    assert "2 / 2" in output
    assert "100%" in output
    assert "Review Answers" in output


def test_run_quiz_hidden_answers_skip_feedback():
    console = _console()
    session = _session(show_correct_answer=False)

    outcome = run_quiz(
        session,
        console,
        make_provider(["start", "2", "s", "2", "s", "q"]),
    )

    assert outcome.exit_action == "completed"
    assert outcome.result.score == 0
    output = console.export_text()
    assert "Correct!" not in output
    assert "Incorrect." not in output


def test_run_quiz_guards_invalid_moves():
    console = _console()
    session = _session()

    outcome = run_quiz(
        session,
        console,
        make_provider(["start", "s", "n", "p", "9", "hello", "retake", "q"]),
    )

    assert outcome.exit_action == "quit"
    assert outcome.result is None
    output = console.export_text()
    assert "Choose an answer before submitting." in output
    assert "Submit an answer first." in output
    assert "Already at the first question." in output
    assert "'9' is not a valid choice" in output
    assert "Unrecognized command" in output
    assert "not available mid-quiz" in output
    assert "Ending quiz without results." in output


def test_run_quiz_finish_early_and_retake():
    console = _console()
    session = _session()

    outcome = run_quiz(
        session,
        console,
        make_provider(["start", "1", "finish", "retake", "start"]),
    )

    assert outcome.exit_action == "quit"
    assert session.has_started
    assert not session.is_completed
    assert "Session interrupted." in console.export_text()


def test_run_quiz_intro_toggles():
    console = _console()
    session = _session()

    run_quiz(
        session,
        console,
        make_provider(["answers", "shuffle", "mix", "next", "q"]),
    )

    output = console.export_text()
    assert "Correct answers will be hidden." in output
    assert "Question order: shuffled." in output
    assert "Choices shuffled." in output
    assert "Type 'start' to begin the quiz." in output
    assert session.shuffled
    assert not session.show_correct_answer


def test_run_quiz_reports_load_error():
    console = _console()
    session = QuizSession()
    session.fail_load(session.begin_load("math"), SourceUnavailable("down"))

    outcome = run_quiz(session, console, make_provider([]))

    assert outcome.exit_action == "error"
    assert "Could not load questions." in console.export_text()


def test_run_quiz_empty_bank():
    console = _console()

    outcome = run_quiz(QuizSession(), console, make_provider([]))

    assert outcome.exit_action == "empty"
    assert "Question bank is empty." in console.export_text()


def test_locked_question_rejects_new_selection():
    console = _console()
    session = _session()

    run_quiz(
        session,
        console,
        make_provider(["start", "2", "s", "1", "s", "q"]),
    )

    assert session.selected_answer == 1
    assert "already answered" in console.export_text()


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, "—"),
        (timedelta(seconds=5), "0:05"),
        (timedelta(minutes=3, seconds=7), "3:07"),
        (timedelta(hours=1, minutes=2, seconds=3), "1:02:03"),
    ],
)
def test_format_elapsed(value, expected):
    assert format_elapsed(value) == expected


def test_question_shuffle_keeps_mixed_choices():
    console = _console()
    session = _session(permute=reverse)

    run_quiz(session, console, make_provider(["mix", "shuffle", "q"]))

    assert [q.id for q in session.questions] == ["b", "a"]
    capital = session.questions[1]
    assert capital.choices == ("Rome", "Paris")
    assert capital.choices[capital.answer] == "Paris"
    assert "Choices shuffled again." in console.export_text()


def test_retake_keeps_mixed_choices():
    console = _console()
    session = _session(permute=reverse)

    run_quiz(
        session,
        console,
        make_provider(["mix", "start", "finish", "retake", "q"]),
    )

    assert not session.has_started
    assert session.current_question.choices == ("Rome", "Paris")
