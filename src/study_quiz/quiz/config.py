"""Configuration loader for quiz runs."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, MutableMapping, Optional

from study_quiz.core import config as core_config
from study_quiz.core import workspace as workspace_mod

from .source import (
    DirectoryQuestionSource,
    HttpQuestionSource,
    QuestionSource,
)

__all__ = [
    "CONFIG_ENV",
    "CONFIG_FILENAME",
    "ENV_PREFIX",
    "ConfigOverrides",
    "LoadResult",
    "QuizConfig",
    "QuizConfigError",
    "load_config",
]

CONFIG_FILENAME = "quiz.toml"
CONFIG_ENV = "STUDY_QUIZ_CONFIG"
ENV_PREFIX = "STUDY_QUIZ_"

_DEFAULT_TIMEOUT = 10.0
_DEFAULT_LOG_LEVEL = "INFO"


class QuizConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class QuizConfig:
    """Fully resolved settings for one quiz run."""

    data_dir: Path
    base_url: str | None
    timeout: float
    category: str | None
    shuffle_questions: bool
    shuffle_choices: bool
    show_correct_answer: bool
    log_level: str

    def build_source(self) -> QuestionSource:
        if self.base_url:
            return HttpQuestionSource(self.base_url, timeout=self.timeout)
        return DirectoryQuestionSource(self.data_dir)


@dataclass(frozen=True)
class ConfigOverrides:
    """Values supplied on the command line; ``None`` means not given."""

    data_dir: Optional[Path] = None
    base_url: Optional[str] = None
    category: Optional[str] = None
    shuffle_questions: Optional[bool] = None
    shuffle_choices: Optional[bool] = None
    show_correct_answer: Optional[bool] = None
    log_level: Optional[str] = None


@dataclass(frozen=True)
class LoadResult:
    config: QuizConfig
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]


def load_config(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
) -> LoadResult:
    """Resolve settings with precedence CLI > env > TOML > defaults.

    The config file defaults to ``<workspace>/config/quiz.toml`` and may be
    missing; an explicitly requested file (argument or ``STUDY_QUIZ_CONFIG``)
    must exist.
    """

    overrides = overrides or ConfigOverrides()
    env_map = os.environ if env is None else env

    try:
        layout = workspace_mod.ensure_workspace(
            env=env_map, path=workspace_path
        )
    except workspace_mod.WorkspaceError as exc:
        raise QuizConfigError(str(exc)) from exc

    requested = _resolve_config_path(
        config_path=config_path,
        env_map=env_map,
        default_path=layout.path_for("config") / CONFIG_FILENAME,
    )
    table = _default_table()
    loaded_path: Optional[Path] = None
    if requested.exists():
        loaded_path = requested
        try:
            core_config.merge_defaults(table, core_config.load_toml(requested))
        except core_config.TomlConfigError as exc:
            raise QuizConfigError(str(exc)) from exc
    elif config_path is not None or _env(env_map, "CONFIG"):
        raise QuizConfigError(f"Config file not found: {requested}")

    source = table["source"]
    session = table["session"]

    data_dir = _resolve_data_dir(
        _pick_first(
            overrides.data_dir,
            _env_path(env_map, "DATA_DIR"),
            _coerce_optional_path(source["data_dir"]),
        ),
        layout=layout,
    )
    base_url = _optional_text(
        _pick_first(
            overrides.base_url,
            _env(env_map, "BASE_URL"),
            source["base_url"],
        ),
        key="source.base_url",
    )
    category = _optional_text(
        _pick_first(
            overrides.category,
            _env(env_map, "CATEGORY"),
            source["category"],
        ),
        key="source.category",
    )

    try:
        config = QuizConfig(
            data_dir=data_dir,
            base_url=base_url,
            timeout=_resolve_timeout(
                _pick_first(_env(env_map, "TIMEOUT"), source["timeout"])
            ),
            category=category,
            shuffle_questions=_resolve_flag(
                overrides.shuffle_questions,
                _env(env_map, "SHUFFLE_QUESTIONS"),
                session["shuffle_questions"],
                key="session.shuffle_questions",
            ),
            shuffle_choices=_resolve_flag(
                overrides.shuffle_choices,
                _env(env_map, "SHUFFLE_CHOICES"),
                session["shuffle_choices"],
                key="session.shuffle_choices",
            ),
            show_correct_answer=_resolve_flag(
                overrides.show_correct_answer,
                _env(env_map, "SHOW_CORRECT_ANSWER"),
                session["show_correct_answer"],
                key="session.show_correct_answer",
            ),
            log_level=_resolve_log_level(
                _pick_first(
                    overrides.log_level,
                    _env(env_map, "LOG_LEVEL"),
                    table["logging"]["level"],
                )
            ),
        )
    except core_config.TomlConfigError as exc:
        raise QuizConfigError(str(exc)) from exc
    return LoadResult(config=config, layout=layout, config_path=loaded_path)


def _default_table() -> MutableMapping[str, MutableMapping[str, object]]:
    return {
        "source": {
            "data_dir": "",
            "base_url": "",
            "timeout": _DEFAULT_TIMEOUT,
            "category": "",
        },
        "session": {
            "shuffle_questions": False,
            "shuffle_choices": False,
            "show_correct_answer": True,
        },
        "logging": {"level": _DEFAULT_LOG_LEVEL},
    }


def _resolve_config_path(
    *,
    config_path: Optional[Path],
    env_map: Mapping[str, str],
    default_path: Path,
) -> Path:
    if config_path is not None:
        return config_path.expanduser()
    candidate = _env(env_map, "CONFIG")
    if candidate:
        return Path(candidate).expanduser()
    return default_path


def _env(env_map: Mapping[str, str], key: str) -> Optional[str]:
    raw = env_map.get(f"{ENV_PREFIX}{key}")
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def _env_path(env_map: Mapping[str, str], key: str) -> Optional[Path]:
    raw = _env(env_map, key)
    return Path(raw).expanduser() if raw else None


def _coerce_optional_path(value: object) -> Optional[Path]:
    if value is None or isinstance(value, Path):
        return value
    if isinstance(value, str):
        return Path(value.strip()) if value.strip() else None
    raise QuizConfigError("source.data_dir must be a string when provided.")


def _resolve_data_dir(
    candidate: object, *, layout: workspace_mod.WorkspaceLayout
) -> Path:
    if candidate is None:
        return layout.path_for("quiz_data")
    path = Path(candidate).expanduser()  # type: ignore[arg-type]
    if not path.is_absolute():
        return (layout.home / path).resolve()
    return path.resolve()


def _optional_text(value: object, *, key: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise QuizConfigError(f"{key} must be a string.")
    return value.strip() or None


def _resolve_timeout(value: object) -> float:
    try:
        timeout = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise QuizConfigError(
            f"source.timeout must be a number, found {value!r}."
        ) from exc
    if timeout <= 0:
        raise QuizConfigError("source.timeout must be greater than zero.")
    return timeout


def _resolve_flag(
    override: Optional[bool],
    env_value: Optional[str],
    file_value: object,
    *,
    key: str,
) -> bool:
    if override is not None:
        return override
    if env_value is not None:
        return core_config.parse_bool(env_value, key=key)
    return core_config.parse_bool(file_value, key=key)


def _resolve_log_level(value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        raise QuizConfigError("logging.level must be a non-empty string.")
    return value.strip().upper()


def _pick_first(*candidates: object) -> object:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None
