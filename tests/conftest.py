from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Iterator

import pytest

TESTS_DIR = Path(__file__).resolve().parent
ROOT = TESTS_DIR.parent
for extra in (TESTS_DIR, ROOT / "src"):
    path_str = str(extra)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from fixtures import WorkspaceBuilder  # noqa: E402
from study_quiz.core import logging as core_logging  # noqa: E402
from study_quiz.core import workspace as workspace_mod  # noqa: E402


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    """Provide a helper bound to pytest's per-test tmp directory."""

    return WorkspaceBuilder(tmp_path)


@pytest.fixture
def quiz_data(workspace: WorkspaceBuilder) -> Path:
    """A directory holding two category files and their index."""

    workspace.create(
        {
            "quiz-data": {
                "categories.json": json.dumps(["math", "science"]),
                "math.json": json.dumps(
                    [
                        {
                            "id": 1,
                            "question": "2 + 2?",
                            "choices": ["3", "4"],
                            "answer": 1,
                            "type": "multiple-choice",
                        },
                        {
                            "id": 2,
                            "question": "Pick the primes.",
                            "choices": ["2", "4", "5"],
                            "answer": [2, 0],
                            "type": "multiple-choice-v2",
                        },
                    ]
                ),
                "science.json": json.dumps(
                    [
                        {
                            "id": 3,
                            "question": "Water boils at 100C at sea level.",
                            "choices": ["True", "False"],
                            "answer": 0,
                            "type": "true-false",
                            "category": "physics",
                        }
                    ]
                ),
            }
        }
    )
    return workspace.root / "quiz-data"


@pytest.fixture(autouse=True)
def _isolated_workspace(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[None]:
    """Keep config and log writes inside the test's tmp directory."""

    for key in list(os.environ):
        if key.startswith("STUDY_QUIZ_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv(workspace_mod.WORKSPACE_ENV, str(tmp_path / "home"))
    yield
    core_logging.release_handlers()
    logging.getLogger(core_logging.PACKAGE_LOGGER).propagate = True
