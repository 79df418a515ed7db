"""CLI entry point that bootstraps the study-quiz workspace."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Mapping, Sequence

from study_quiz.core import config_templates
from study_quiz.core import workspace as workspace_mod
from study_quiz.quiz.config import CONFIG_FILENAME


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="study-quiz init",
        description=(
            "Bootstrap the study-quiz workspace, its subdirectories and a "
            "quiz.toml template."
        ),
    )
    parser.add_argument(
        "--path",
        type=Path,
        help=(
            "Override the workspace root (defaults to STUDY_QUIZ_DATA_HOME "
            "or ~/.study-quiz-data)."
        ),
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing quiz.toml with the packaged template.",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress informational output on success.",
    )
    return parser


def _format_created(created: Mapping[str, bool], key: str) -> str:
    return "created" if created.get(key, False) else "exists"


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        layout = workspace_mod.ensure_workspace(path=args.path)
    except workspace_mod.WorkspaceError as exc:
        sys.stderr.write(f"Error: {exc}\n")
        return 2

    config_path = layout.path_for("config") / CONFIG_FILENAME
    config_status = "exists"
    if args.force or not config_path.exists():
        template = config_templates.get_template("quiz")
        try:
            template.write(config_path, overwrite=args.force)
        except config_templates.ConfigTemplateError as exc:
            sys.stderr.write(f"Error: {exc}\n")
            return 2
        config_status = "written"

    if args.quiet:
        return 0

    created = layout.created
    home_status = _format_created(created, "home")
    lines = [f"Workspace ready at {layout.home} ({home_status})"]

    if layout.directories:
        lines.append("Subdirectories:")
        width = max(len(name) for name in layout.directories)
        for name, directory in layout.items():
            status = _format_created(created, name)
            lines.append(f"  {name.ljust(width)}  {directory} ({status})")
    lines.append(f"Config: {config_path} ({config_status})")

    sys.stdout.write("\n".join(lines) + "\n")
    return 0


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
