"""Interactive terminal loop driving a :class:`QuizSession`.

The loop has three phases that follow the session state: the start screen
before ``start``, one question card per prompt while the quiz runs, and the
results screen once the quiz is completed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Literal

from rich.console import Console
from rich.panel import Panel

from .scoring import QuizResult, is_correct
from .session import QuizSession
from .view import (
    render_intro,
    render_load_error,
    render_question,
    render_results,
    render_review,
)

__all__ = [
    "ExitAction",
    "InputProvider",
    "QuizRunResult",
    "SessionCommand",
    "parse_session_command",
    "run_quiz",
]

InputProvider = Callable[[], str]
ExitAction = Literal["completed", "quit", "empty", "error"]

_ALIASES = {
    "n": "next",
    "next": "next",
    "p": "prev",
    "prev": "prev",
    "previous": "prev",
    "s": "submit",
    "submit": "submit",
    "f": "finish",
    "finish": "finish",
    "q": "quit",
    "quit": "quit",
    "exit": "quit",
    "start": "start",
    "begin": "start",
    "shuffle": "shuffle",
    "mix": "mix",
    "answers": "answers",
    "review": "review",
    "retake": "retake",
    "r": "retake",
}


@dataclass(frozen=True)
class SessionCommand:
    type: str
    choice: int | None = None


@dataclass(frozen=True)
class QuizRunResult:
    exit_action: ExitAction
    result: QuizResult | None = None


def parse_session_command(raw: str | None) -> SessionCommand | None:
    """Parse raw user input into a structured command.

    Numbers pick a choice and are 1-based on screen; the command carries the
    0-based index.
    """

    if raw is None:
        return None
    text = raw.strip().lower()
    if not text:
        return None
    if text.isdigit():
        number = int(text)
        return SessionCommand("select", number - 1) if number > 0 else None
    name = _ALIASES.get(text)
    return SessionCommand(name) if name else None


def run_quiz(
    session: QuizSession,
    console: Console,
    input_provider: InputProvider,
) -> QuizRunResult:
    """Run the quiz until the user quits or input runs out."""

    if session.load_error is not None:
        render_load_error(console, session.load_error)
        return QuizRunResult("error")
    if not session.questions:
        console.print(
            Panel(
                "Question bank is empty.",
                title=session.category_label,
                border_style="yellow",
            )
        )
        return QuizRunResult("empty")

    exit_action: ExitAction = "quit"
    while True:
        _render(console, session)
        try:
            raw = input_provider()
        except (EOFError, KeyboardInterrupt, StopIteration):
            console.print("\n[bold yellow]Session interrupted.[/]")
            break
        command = parse_session_command(raw)
        if command is None:
            console.print("[red]Unrecognized command. Try again.[/]")
            continue
        if command.type == "quit":
            if not session.is_completed:
                console.print("\n[bold yellow]Ending quiz without results.[/]")
            break
        _apply_command(command, session, console)

    if session.is_completed:
        exit_action = "completed"
    result = session.result() if session.is_completed else None
    return QuizRunResult(exit_action, result)


def _render(console: Console, session: QuizSession) -> None:
    if not session.has_started:
        render_intro(console, session)
    elif session.is_completed:
        render_results(console, session.result())
    else:
        render_question(console, session)


def _apply_command(
    command: SessionCommand, session: QuizSession, console: Console
) -> None:
    if not session.has_started:
        _apply_intro_command(command, session, console)
    elif session.is_completed:
        _apply_results_command(command, session, console)
    else:
        _apply_question_command(command, session, console)


def _apply_intro_command(
    command: SessionCommand, session: QuizSession, console: Console
) -> None:
    if command.type == "start":
        session.start()
    elif command.type == "shuffle":
        shuffled = session.toggle_shuffle()
        session.reset_quiz()
        order = "shuffled" if shuffled else "original"
        console.print(f"Question order: [bold]{order}[/].")
        if session.choices_shuffled:
            console.print("Choices shuffled again.")
    elif command.type == "mix":
        session.shuffle_choices()
        console.print("Choices shuffled.")
    elif command.type == "answers":
        shown = session.toggle_show_correct_answer()
        state = "shown" if shown else "hidden"
        console.print(f"Correct answers will be [bold]{state}[/].")
    else:
        console.print("[yellow]Type 'start' to begin the quiz.[/]")


def _apply_results_command(
    command: SessionCommand, session: QuizSession, console: Console
) -> None:
    if command.type == "review":
        render_review(console, session.review())
    elif command.type == "retake":
        session.reset_quiz()
    else:
        console.print("[yellow]Type review, retake or quit.[/]")


def _apply_question_command(
    command: SessionCommand, session: QuizSession, console: Console
) -> None:
    question = session.current_question
    if command.type == "select" and command.choice is not None:
        if session.is_current_answered:
            console.print("[yellow]This question is already answered.[/]")
        elif question is None or command.choice >= len(question.choices):
            console.print(
                f"[red]'{command.choice + 1}' is not a valid choice for "
                "this question.[/red]"
            )
        else:
            session.select_answer(command.choice)
        return
    if command.type == "submit":
        selection = session.selected_answer
        if session.is_current_answered:
            console.print("[yellow]This question is already answered.[/]")
        elif selection is None or selection == ():
            console.print("[red]Choose an answer before submitting.[/]")
        else:
            if session.show_correct_answer:
                if is_correct(question, selection):
                    console.print("[bold green]Correct![/]")
                else:
                    console.print("[bold red]Incorrect.[/]")
            session.answer_and_continue()
        return
    if command.type == "next":
        if session.is_current_answered:
            session.next_question()
        else:
            console.print("[yellow]Submit an answer first.[/]")
        return
    if command.type == "prev":
        if session.can_go_previous:
            session.previous_question()
        else:
            console.print("[yellow]Already at the first question.[/]")
        return
    if command.type == "finish":
        session.submit_quiz()
        return
    console.print("[yellow]That command is not available mid-quiz.[/]")
