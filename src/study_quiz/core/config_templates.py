"""Packaged configuration templates."""

from __future__ import annotations

from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Iterable

from .config import TomlConfigError, write_toml_template

__all__ = [
    "ConfigTemplate",
    "ConfigTemplateError",
    "get_template",
    "iter_templates",
]


class ConfigTemplateError(RuntimeError):
    """Raised when a requested configuration template is not available."""


@dataclass(frozen=True)
class ConfigTemplate:
    """A TOML template shipped inside one of the study_quiz packages."""

    name: str
    filename: str
    description: str
    package: str

    def read_text(self) -> str:
        try:
            resource = resources.files(self.package).joinpath(self.filename)
            return resource.read_text(encoding="utf-8")
        except (FileNotFoundError, ModuleNotFoundError) as exc:
            raise ConfigTemplateError(
                f"Template '{self.name}' could not be read from "
                f"{self.package}/{self.filename}."
            ) from exc

    def write(self, path: Path, *, overwrite: bool = False) -> Path:
        try:
            return write_toml_template(
                path, template=self.read_text(), overwrite=overwrite
            )
        except TomlConfigError as exc:
            raise ConfigTemplateError(str(exc)) from exc


_TEMPLATES: dict[str, ConfigTemplate] = {
    "quiz": ConfigTemplate(
        name="quiz",
        filename="template.toml",
        description="Question source and session defaults for quiz runs.",
        package="study_quiz.quiz",
    ),
}


def get_template(name: str) -> ConfigTemplate:
    try:
        return _TEMPLATES[name]
    except KeyError as exc:
        raise ConfigTemplateError(
            f"Unknown config template '{name}'."
        ) from exc


def iter_templates() -> Iterable[ConfigTemplate]:
    return tuple(_TEMPLATES.values())
