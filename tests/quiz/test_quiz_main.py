from __future__ import annotations

import json

import pytest
from rich.console import Console

from study_quiz.quiz import _main


def make_provider(commands):
    iterator = iter(commands)
    return lambda: next(iterator)


def _run(argv, **kwargs) -> int:
    with pytest.raises(SystemExit) as excinfo:
        _main.main(argv, **kwargs)
    return excinfo.value.code


def _base_args(tmp_path, quiz_data):
    return [
        "--workspace",
        str(tmp_path / "ws"),
        "--data-dir",
        str(quiz_data),
    ]


def test_parser_defaults_leave_preferences_unset():
    args = _main.build_arg_parser().parse_args(["start"])

    assert args.shuffle is None
    assert args.shuffle_choices is None
    assert args.show_answers is None
    assert args.category is None


def test_parser_flags():
    args = _main.build_arg_parser().parse_args(
        ["--verbose", "start", "--no-shuffle", "--hide-answers"]
    )

    assert args.verbose is True
    assert args.shuffle is False
    assert args.show_answers is False


def test_categories_lists_names(tmp_path, quiz_data):
    console = Console(record=True, width=80)
    argv = [*_base_args(tmp_path, quiz_data), "categories"]

    code = _run(argv, console=console)

    assert code == 0
    output = console.export_text()
    assert "- math" in output
    assert "- science" in output


def test_categories_missing_index(tmp_path):
    console = Console(record=True, width=80)
    argv = [
        "--workspace",
        str(tmp_path / "ws"),
        "--data-dir",
        str(tmp_path / "empty"),
        "categories",
    ]

    assert _run(argv, console=console) == 1
    assert "Error:" in console.export_text()


def test_start_runs_quiz_and_logs(tmp_path, quiz_data):
    console = Console(record=True, width=100)
    provider = make_provider(
        ["start", "2", "s", "n", "1", "3", "s", "n", "q"]
    )

    code = _run(
        [*_base_args(tmp_path, quiz_data), "start", "--category", "math"],
        console=console,
        input_provider=provider,
    )

    assert code == 0
    output = console.export_text()
    assert "Quiz Results" in output
    assert "2 / 2" in output

    log_path = tmp_path / "ws" / "logs" / "study_quiz.log"
    entries = [
        json.loads(line)
        for line in log_path.read_text(encoding="utf-8").splitlines()
    ]
    messages = [entry["message"] for entry in entries]
    assert "Loaded category" in messages
    assert "Quiz completed" in messages
    completed = entries[messages.index("Quiz completed")]
    assert completed["extra"] == {"score": 2, "total": 2}


def test_start_with_missing_category_reports_error(tmp_path, quiz_data):
    console = Console(record=True, width=80)

    code = _run(
        [*_base_args(tmp_path, quiz_data), "start", "--category", "history"],
        console=console,
        input_provider=make_provider([]),
    )

    assert code == 1
    assert "Could not load questions." in console.export_text()


def test_start_with_bad_config_exits_2(tmp_path, quiz_data):
    config_path = tmp_path / "broken.toml"
    config_path.write_text("[source]\nnope = 1\n", encoding="utf-8")
    console = Console(record=True, width=80)

    code = _run(
        [
            "--config",
            str(config_path),
            *_base_args(tmp_path, quiz_data),
            "start",
        ],
        console=console,
    )

    assert code == 2
    assert "Unknown configuration key 'source.nope'" in console.export_text()


def test_start_with_shuffle_choices_keeps_scoring(tmp_path, quiz_data):
    console = Console(record=True, width=100)

    code = _run(
        [
            *_base_args(tmp_path, quiz_data),
            "start",
            "--category",
            "science",
            "--shuffle-choices",
            "--hide-answers",
        ],
        console=console,
        input_provider=make_provider(["start", "finish", "q"]),
    )

    assert code == 0
    assert "0 / 1" in console.export_text()
