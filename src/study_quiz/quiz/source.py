"""Question sources and the all-categories aggregator.

Both bundled sources read the same layout: a ``categories.json`` file holding
a JSON list of category names, and one ``<name>.json`` file per category
holding a JSON list of question records.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

import httpx

from .errors import (
    PartialAggregateFailure,
    QuestionFormatError,
    SourceUnavailable,
)
from .models import Question, parse_question

__all__ = [
    "ALL_CATEGORIES",
    "CATEGORY_INDEX",
    "QuestionSource",
    "DirectoryQuestionSource",
    "HttpQuestionSource",
    "fetch_questions",
    "is_all_categories",
    "parse_question_list",
]

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "All"
CATEGORY_INDEX = "categories.json"


@runtime_checkable
class QuestionSource(Protocol):
    """Async provider of categories and their questions."""

    async def fetch_category_list(self) -> list[str]: ...

    async def fetch_category(self, name: str) -> list[Question]: ...


def is_all_categories(category: str | None) -> bool:
    if category is None:
        return True
    stripped = category.strip()
    return not stripped or stripped.lower() == ALL_CATEGORIES.lower()


async def fetch_questions(
    source: QuestionSource, category: str | None = None
) -> list[Question]:
    """Load one category, or every category when ``category`` is empty.

    A failing category is skipped during aggregation; failing to list the
    categories, or failing a specific category, raises
    :class:`SourceUnavailable`.
    """

    if not is_all_categories(category):
        name = category.strip()  # type: ignore[union-attr]
        questions = await source.fetch_category(name)
        logger.info(
            "Loaded category",
            extra={"category": name, "questions": len(questions)},
        )
        return questions

    names = await source.fetch_category_list()
    results = await asyncio.gather(
        *(source.fetch_category(name) for name in names),
        return_exceptions=True,
    )

    collected: list[Question] = []
    failures: dict[str, BaseException] = {}
    for name, result in zip(names, results):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            failures[name] = result
            logger.warning(
                "Skipping category that failed to load",
                extra={"category": name, "error": str(result)},
            )
            continue
        collected.extend(result)

    if failures:
        report = PartialAggregateFailure(failures)
        logger.warning(
            str(report),
            extra={
                "event": "partial_aggregate_failure",
                "failed": sorted(failures),
                "loaded": len(names) - len(failures),
            },
        )
    logger.info(
        "Loaded all categories",
        extra={"categories": len(names), "questions": len(collected)},
    )
    return collected


def parse_question_list(payload: object, *, category: str) -> list[Question]:
    """Build questions from a decoded category file, skipping bad records."""

    if not isinstance(payload, list):
        raise SourceUnavailable(
            f"Category '{category}' must contain a JSON list of questions.",
            category=category,
        )
    questions: list[Question] = []
    for position, record in enumerate(payload):
        try:
            questions.append(parse_question(record, category=category))
        except QuestionFormatError as exc:
            logger.warning(
                "Skipping malformed question",
                extra={
                    "category": category,
                    "position": position,
                    "error": str(exc),
                },
            )
    return questions


def _parse_category_names(payload: object) -> list[str]:
    if not isinstance(payload, list):
        raise SourceUnavailable("Category list must be a JSON list of names.")
    names: list[str] = []
    for item in payload:
        name = str(item).strip()
        if name and name not in names:
            names.append(name)
    return names


def _check_name(name: str) -> str:
    cleaned = name.strip()
    if not cleaned or cleaned in {".", ".."} or any(
        sep in cleaned for sep in ("/", "\\")
    ):
        raise SourceUnavailable(
            f"Invalid category name '{name}'.", category=name
        )
    return cleaned


class DirectoryQuestionSource:
    """Read category files from a local directory."""

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)

    def __repr__(self) -> str:
        return f"DirectoryQuestionSource({str(self.data_dir)!r})"

    async def fetch_category_list(self) -> list[str]:
        payload = await self._read_json(self.data_dir / CATEGORY_INDEX)
        return _parse_category_names(payload)

    async def fetch_category(self, name: str) -> list[Question]:
        cleaned = _check_name(name)
        payload = await self._read_json(
            self.data_dir / f"{cleaned}.json", category=cleaned
        )
        return parse_question_list(payload, category=cleaned)

    async def _read_json(
        self, path: Path, *, category: str | None = None
    ) -> object:
        try:
            text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except FileNotFoundError as exc:
            raise SourceUnavailable(
                f"Question file not found: {path}", category=category
            ) from exc
        except OSError as exc:
            raise SourceUnavailable(
                f"Failed to read {path}: {exc}", category=category
            ) from exc
        except UnicodeDecodeError as exc:
            raise SourceUnavailable(
                f"{path} is not valid UTF-8: {exc}", category=category
            ) from exc
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise SourceUnavailable(
                f"Invalid JSON in {path}: {exc}", category=category
            ) from exc


class HttpQuestionSource:
    """Fetch category files from a static HTTP location."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    def __repr__(self) -> str:
        return f"HttpQuestionSource({self.base_url!r})"

    async def fetch_category_list(self) -> list[str]:
        payload = await self._get_json(CATEGORY_INDEX)
        return _parse_category_names(payload)

    async def fetch_category(self, name: str) -> list[Question]:
        cleaned = _check_name(name)
        payload = await self._get_json(f"{cleaned}.json", category=cleaned)
        return parse_question_list(payload, category=cleaned)

    async def _get_json(
        self, filename: str, *, category: str | None = None
    ) -> object:
        url = f"{self.base_url}/{filename}"
        try:
            if self._client is not None:
                response = await self._client.get(url)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            raise SourceUnavailable(
                f"{url} returned HTTP {exc.response.status_code}",
                category=category,
            ) from exc
        except httpx.RequestError as exc:
            raise SourceUnavailable(
                f"Request to {url} failed: {exc}", category=category
            ) from exc
        except ValueError as exc:
            raise SourceUnavailable(
                f"Invalid JSON from {url}: {exc}", category=category
            ) from exc

