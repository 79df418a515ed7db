"""Rich renderers for the terminal quiz.

Every function takes the console and reads from a :class:`QuizSession`; none
of them change session state.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import timedelta

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .errors import SourceUnavailable
from .scoring import AnswerReview, ChoiceStatus, QuizResult
from .session import QuizSession

__all__ = [
    "format_elapsed",
    "render_intro",
    "render_load_error",
    "render_question",
    "render_results",
    "render_review",
]

_STATUS_STYLE = {
    ChoiceStatus.NEUTRAL: ("○", ""),
    ChoiceStatus.SELECTED: ("●", "bold blue"),
    ChoiceStatus.CORRECT: ("✔", "bold green"),
    ChoiceStatus.INCORRECT: ("✘", "bold red"),
}


def format_elapsed(value: timedelta | None) -> str:
    if value is None:
        return "—"
    seconds = max(0, int(value.total_seconds()))
    minutes, seconds = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def _on_off(flag: bool) -> str:
    return "[green]on[/]" if flag else "[dim]off[/]"


def render_load_error(console: Console, error: SourceUnavailable) -> None:
    console.print(
        Panel(
            f"Could not load questions.\n[dim]{error}[/]",
            title="Quiz",
            border_style="red",
        )
    )


def render_intro(console: Console, session: QuizSession) -> None:
    scope = (
        f"about {session.category}"
        if session.category
        else "from all categories"
    )
    body = Text.assemble(
        ("Ready to Start?\n", "bold"),
        f"Test your knowledge with {session.total} questions {scope}.\n",
        ("Take your time and choose the best answer.", "dim"),
    )
    console.print()
    console.print(
        Panel(body, title=session.category_label, border_style="blue")
    )
    console.print(
        f"Shuffle questions: {_on_off(session.shuffled)}  "
        f"Show answers: {_on_off(session.show_correct_answer)}"
    )
    console.print(
        Text(
            "Commands: start, shuffle (toggle question order), "
            "mix (shuffle choices), answers (toggle), quit",
            style="dim",
        )
    )


def render_question(console: Console, session: QuizSession) -> None:
    question = session.current_question
    if question is None:
        console.print(
            Panel(
                "No questions available.",
                title="Quiz",
                border_style="yellow",
            )
        )
        return

    state = session.state
    header = Text.assemble(
        (f"Question {state.current_index + 1}", "bold cyan"),
        (f" / {state.total}", "dim"),
    )
    console.print()
    console.rule(header)
    console.print(
        Text(
            f"{question.category or 'uncategorized'} · {question.type.label}",
            style="dim",
        )
    )
    if question.image:
        console.print(Text(f"[image: {question.image}]", style="italic dim"))
    console.print(Text(question.question, style="bold"))
    if question.is_multi_answer:
        console.print(Text("Select every correct answer.", style="dim"))

    table = Table(show_header=False, box=box.SIMPLE, expand=True)
    table.add_column("Key", justify="right", style="cyan")
    table.add_column("Mark", justify="center")
    table.add_column("Choice")
    for number, (choice, status) in enumerate(
        zip(question.choices, session.current_feedback()), start=1
    ):
        mark, style = _STATUS_STYLE[status]
        table.add_row(str(number), mark, Text(choice, style=style))
    console.print(table)

    if session.is_current_answered:
        hint = "Commands: n (next), p (prev), finish, quit"
    else:
        hint = (
            f"Commands: 1-{len(question.choices)} (choose), s (submit), "
            "p (prev), finish, quit"
        )
    console.print(
        Text(
            f"Progress {session.progress}% | "
            f"{session.questions_remaining} remaining | "
            f"Elapsed {format_elapsed(session.elapsed())} | {hint}",
            style="dim",
        )
    )


def render_results(console: Console, result: QuizResult) -> None:
    console.print()
    console.rule(Text("Quiz Results", style="bold magenta"))

    overview = Table(
        show_header=False, box=box.MINIMAL_DOUBLE_HEAD, expand=False
    )
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    overview.add_row("Score", f"{result.score} / {result.total}")
    overview.add_row("Percentage", f"{result.percentage}%")
    overview.add_row("Answered", str(result.answered))
    overview.add_row("Time", format_elapsed(result.elapsed))
    console.print(overview)

    if len(result.per_category) > 1:
        per_category = Table(title="Per category", box=box.SIMPLE)
        per_category.add_column("Category")
        per_category.add_column("Asked", justify="right")
        per_category.add_column("Correct", justify="right")
        per_category.add_column("Accuracy", justify="right")
        for name, tally in result.per_category.items():
            per_category.add_row(
                name or "(none)",
                str(tally.asked),
                str(tally.correct),
                f"{tally.accuracy * 100:.1f}%",
            )
        console.print(per_category)
    console.print(Text("Commands: review, retake, quit", style="dim"))


def render_review(console: Console, reviews: Sequence[AnswerReview]) -> None:
    table = Table(title="Review Answers", box=box.SIMPLE, expand=True)
    table.add_column("#", justify="right")
    table.add_column("Question", overflow="fold")
    table.add_column("Your answer")
    table.add_column("Correct answer")
    table.add_column("Result", justify="center")
    for review in reviews:
        yours = ", ".join(review.selected_texts) or "—"
        correct = ", ".join(review.correct_texts) or "—"
        table.add_row(
            str(review.index + 1),
            review.question.question,
            yours,
            correct,
            "✅" if review.is_correct else "❌",
        )
    console.print(table)
