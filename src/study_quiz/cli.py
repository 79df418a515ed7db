"""Top-level ``study-quiz`` command dispatcher."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from importlib import import_module, metadata
from typing import Callable, Mapping, Optional, Sequence


@dataclass(frozen=True)
class CommandSpec:
    """A ``study-quiz`` subcommand backed by a module-level ``main``."""

    name: str
    summary: str
    module: str
    is_tui: bool = False

    @property
    def prog(self) -> str:
        return f"study-quiz {self.name}"

    def run(self, argv: Sequence[str]) -> int:
        target = getattr(import_module(self.module), "main")
        return _invoke_main(target, self.prog, argv)


_COMMAND_SPECS: Sequence[CommandSpec] = (
    CommandSpec(
        name="init",
        summary="Bootstrap the workspace and write a quiz.toml template.",
        module="study_quiz.workspace.cli",
    ),
    CommandSpec(
        name="quiz",
        summary="List categories or take an interactive quiz.",
        module="study_quiz.quiz._main",
        is_tui=True,
    ),
)

COMMANDS: Mapping[str, CommandSpec] = {
    spec.name: spec for spec in _COMMAND_SPECS
}


def format_command_table() -> str:
    width = max(len(name) for name in COMMANDS)
    lines = ["Available commands:"]
    for spec in _COMMAND_SPECS:
        suffix = " (interactive)" if spec.is_tui else ""
        lines.append(f"  {spec.name.ljust(width)}  {spec.summary}{suffix}")
    return "\n".join(lines)


def format_usage() -> str:
    return "\n".join(
        [
            "Usage: study-quiz <command> [args...]",
            "Run `study-quiz list` for commands or "
            "`study-quiz help <name>` for details.",
            "",
            format_command_table(),
        ]
    )


def _print(
    text: str, *, stream: Optional[Callable[[str], None]] = None
) -> None:
    target = stream if stream is not None else sys.stdout.write
    if text:
        target(text + "\n")


def _handle_version() -> int:
    try:
        version = metadata.version("study-quiz")
    except metadata.PackageNotFoundError:
        version = "unknown"
    _print(version)
    return 0


def _handle_help(argv: Sequence[str]) -> int:
    if not argv:
        _print(format_usage())
        return 0
    spec = COMMANDS.get(argv[0])
    if spec is None:
        return _unknown(argv[0])
    _print(f"{spec.name}: {spec.summary}")
    _print(f"Run `{spec.prog} --help` for command options.")
    return 0


def _unknown(command: str) -> int:
    _print(f"Unknown command '{command}'.", stream=sys.stderr.write)
    _print(format_command_table(), stream=sys.stderr.write)
    return 2


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(argv if argv is not None else sys.argv[1:])

    if not args:
        _print(format_usage())
        return 2

    head, *tail = args
    if head in ("-h", "--help"):
        _print(format_usage())
        return 0
    if head in ("-V", "--version", "version"):
        return _handle_version()
    if head == "list":
        _print(format_command_table())
        return 0
    if head == "help":
        return _handle_help(tail)

    spec = COMMANDS.get(head)
    if spec is None:
        return _unknown(head)
    return spec.run(tail)


def _invoke_main(
    func: Callable[[Sequence[str]], object],
    prog_name: str,
    argv: Sequence[str],
) -> int:
    old_argv = sys.argv
    sys.argv = [prog_name, *argv]
    try:
        result = func(list(argv))
    except SystemExit as exc:
        return _normalize_system_exit(exc)
    finally:
        sys.argv = old_argv
    return result if isinstance(result, int) else 0


def _normalize_system_exit(exc: SystemExit) -> int:
    code = exc.code
    if code is None:
        return 0
    if isinstance(code, int):
        return code
    _print(str(code), stream=sys.stderr.write)
    return 1


if __name__ == "__main__":  # pragma: no cover - manual invocation guard
    raise SystemExit(main())
