import argparse
import asyncio
import logging
from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console

from study_quiz.core import configure_logger

from .config import ConfigOverrides, LoadResult, QuizConfigError, load_config
from .errors import SourceUnavailable
from .runner import InputProvider, run_quiz
from .session import QuizSession

logger = logging.getLogger(__name__)


def _load(args: argparse.Namespace) -> LoadResult:
    overrides = ConfigOverrides(
        data_dir=getattr(args, "data_dir", None),
        base_url=getattr(args, "base_url", None),
        category=getattr(args, "category", None),
        shuffle_questions=getattr(args, "shuffle", None),
        shuffle_choices=getattr(args, "shuffle_choices", None),
        show_correct_answer=getattr(args, "show_answers", None),
        log_level="DEBUG" if getattr(args, "verbose", False) else None,
    )
    loaded = load_config(
        config_path=getattr(args, "config", None),
        overrides=overrides,
        workspace_path=getattr(args, "workspace", None),
    )
    configure_logger(
        log_dir=loaded.layout.path_for("logs"),
        level=loaded.config.log_level,
        verbose=bool(getattr(args, "verbose", False)),
    )
    logger.debug(
        "Configuration loaded",
        extra={
            "config_path": loaded.config_path,
            "data_dir": loaded.config.data_dir,
            "base_url": loaded.config.base_url,
        },
    )
    return loaded


def _cmd_categories(args: argparse.Namespace, console: Console) -> int:
    try:
        loaded = _load(args)
    except QuizConfigError as exc:
        console.print(f"[red]Error:[/] {exc}")
        return 2
    source = loaded.config.build_source()
    try:
        names = asyncio.run(source.fetch_category_list())
    except SourceUnavailable as exc:
        console.print(f"[red]Error:[/] {exc}")
        return 1
    if not names:
        console.print("No categories found.")
        return 1
    for name in names:
        console.print(f"- {name}")
    return 0


def _cmd_start(
    args: argparse.Namespace,
    console: Console,
    input_provider: Optional[InputProvider] = None,
) -> int:
    """Load questions for the chosen category and run the quiz."""
    try:
        loaded = _load(args)
    except QuizConfigError as exc:
        console.print(f"[red]Error:[/] {exc}")
        return 2
    config = loaded.config
    session = QuizSession(
        config.build_source(),
        shuffled=config.shuffle_questions,
        show_correct_answer=config.show_correct_answer,
    )
    with console.status("Loading quiz..."):
        asyncio.run(session.load_category(config.category))
    if config.shuffle_choices and session.questions:
        session.shuffle_choices()

    provider = input_provider or (lambda: console.input("[bold]> [/]"))
    outcome = run_quiz(session, console, provider)
    if outcome.exit_action == "error":
        return 1
    if outcome.exit_action == "empty":
        return 1
    return 0


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="study-quiz quiz",
        description="Multiple-choice quiz over categorized question files",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("--config", type=Path, help="Path to quiz.toml")
    p.add_argument(
        "--workspace",
        type=Path,
        help="Workspace root (defaults to STUDY_QUIZ_DATA_HOME)",
    )
    p.add_argument("--data-dir", dest="data_dir", type=Path)
    p.add_argument("--base-url", dest="base_url")
    p.add_argument(
        "--verbose",
        action="store_true",
        help="Log debug output to stderr as well as the log file",
    )
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("categories", help="List available categories")

    sp_start = sub.add_parser("start", help="Start a quiz session")
    sp_start.add_argument(
        "--category", help="Category to load (omit for all categories)"
    )
    sp_start.add_argument("--shuffle", dest="shuffle", action="store_true")
    sp_start.add_argument(
        "--no-shuffle", dest="shuffle", action="store_false"
    )
    sp_start.add_argument(
        "--shuffle-choices", dest="shuffle_choices", action="store_true"
    )
    sp_start.add_argument(
        "--show-answers", dest="show_answers", action="store_true"
    )
    sp_start.add_argument(
        "--hide-answers", dest="show_answers", action="store_false"
    )
    sp_start.set_defaults(
        shuffle=None, shuffle_choices=None, show_answers=None
    )
    return p


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    console: Optional[Console] = None,
    input_provider: Optional[InputProvider] = None,
) -> None:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    console = console or Console()
    if args.command == "categories":
        code = _cmd_categories(args, console)
    elif args.command == "start":
        code = _cmd_start(args, console, input_provider)
    else:  # pragma: no cover - fallback guard
        parser.print_help()
        code = 2
    raise SystemExit(code)
