"""Shared testing fixtures for the study_quiz test suite."""

from .questions import identity, make_question, reverse  # noqa: F401
from .workspace import WorkspaceBuilder, build_tree  # noqa: F401

__all__ = [
    "WorkspaceBuilder",
    "build_tree",
    "identity",
    "make_question",
    "reverse",
]
