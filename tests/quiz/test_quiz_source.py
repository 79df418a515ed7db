from __future__ import annotations

import asyncio
import json
import logging

import httpx
import pytest

from study_quiz.quiz import source as source_mod
from study_quiz.quiz.errors import SourceUnavailable
from study_quiz.quiz.source import (
    DirectoryQuestionSource,
    HttpQuestionSource,
    QuestionSource,
    fetch_questions,
)


@pytest.mark.parametrize("value", [None, "", "  ", "All", "all"])
def test_is_all_categories(value):
    assert source_mod.is_all_categories(value)


def test_specific_category_is_not_all():
    assert not source_mod.is_all_categories("math")


def test_directory_source_lists_and_loads(quiz_data):
    src = DirectoryQuestionSource(quiz_data)

    names = asyncio.run(src.fetch_category_list())
    math = asyncio.run(src.fetch_category("math"))

    assert isinstance(src, QuestionSource)
    assert names == ["math", "science"]
    assert [q.id for q in math] == ["1", "2"]
    assert math[1].answer == (0, 2)
    assert {q.category for q in math} == {"math"}


def test_aggregate_preserves_category_order(quiz_data):
    questions = asyncio.run(
        fetch_questions(DirectoryQuestionSource(quiz_data))
    )

    assert [q.id for q in questions] == ["1", "2", "3"]
    assert questions[2].category == "physics"


def test_aggregate_logs_partial_failure(quiz_data, caplog):
    (quiz_data / "categories.json").write_text(
        json.dumps(["math", "missing", "science"]), encoding="utf-8"
    )

    with caplog.at_level(logging.WARNING, logger="study_quiz"):
        questions = asyncio.run(
            fetch_questions(DirectoryQuestionSource(quiz_data), "All")
        )

    assert [q.id for q in questions] == ["1", "2", "3"]
    events = [
        record
        for record in caplog.records
        if getattr(record, "event", None) == "partial_aggregate_failure"
    ]
    assert len(events) == 1
    assert events[0].failed == ["missing"]
    assert events[0].loaded == 2
    assert "1 category file(s) failed to load: missing" in caplog.text


def test_specific_category_failure_raises(quiz_data):
    src = DirectoryQuestionSource(quiz_data)

    with pytest.raises(SourceUnavailable) as excinfo:
        asyncio.run(fetch_questions(src, "missing"))

    assert excinfo.value.category == "missing"


def test_missing_category_index_raises(tmp_path):
    src = DirectoryQuestionSource(tmp_path / "nowhere")

    with pytest.raises(SourceUnavailable):
        asyncio.run(fetch_questions(src))


def test_invalid_json_raises(quiz_data):
    (quiz_data / "math.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(SourceUnavailable):
        asyncio.run(DirectoryQuestionSource(quiz_data).fetch_category("math"))


@pytest.mark.parametrize("name", ["../etc", "a/b", "..", "  "])
def test_category_names_with_separators_rejected(quiz_data, name):
    src = DirectoryQuestionSource(quiz_data)

    with pytest.raises(SourceUnavailable):
        asyncio.run(src.fetch_category(name))


def test_malformed_records_are_skipped(caplog):
    payload = [
        {
            "id": 1,
            "question": "ok",
            "choices": ["a", "b"],
            "answer": 1,
            "type": "true-false",
        },
        {
            "id": 2,
            "question": "bad",
            "choices": ["a"],
            "answer": 4,
            "type": "multiple-choice",
        },
        "not a record",
    ]

    with caplog.at_level(logging.WARNING, logger="study_quiz"):
        questions = source_mod.parse_question_list(payload, category="c")

    assert [q.id for q in questions] == ["1"]
    assert caplog.text.count("Skipping malformed question") == 2


def test_question_file_must_be_list():
    with pytest.raises(SourceUnavailable):
        source_mod.parse_question_list({"id": 1}, category="c")


def _mock_client(routes):
    def handler(request: httpx.Request) -> httpx.Response:
        key = request.url.path.rsplit("/", 1)[-1]
        if key not in routes:
            return httpx.Response(404)
        status, body = routes[key]
        return httpx.Response(status, content=body)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _record(qid, answer=0):
    return {
        "id": qid,
        "question": f"Question {qid}",
        "choices": ["x", "y"],
        "answer": answer,
        "type": "multiple-choice",
    }


def test_http_source_aggregates_with_partial_failure():
    routes = {
        "categories.json": (200, json.dumps(["one", "two", "three"])),
        "one.json": (200, json.dumps([_record(1)])),
        "two.json": (500, "oops"),
        "three.json": (200, json.dumps([_record(3, 1)])),
    }

    async def scenario():
        async with _mock_client(routes) as client:
            src = HttpQuestionSource("https://quiz.test/data/", client=client)
            return await fetch_questions(src)

    questions = asyncio.run(scenario())

    assert [q.id for q in questions] == ["1", "3"]
    assert [q.category for q in questions] == ["one", "three"]


def test_http_source_status_error_raises():
    async def scenario():
        async with _mock_client({}) as client:
            src = HttpQuestionSource("https://quiz.test", client=client)
            await src.fetch_category("nope")

    with pytest.raises(SourceUnavailable) as excinfo:
        asyncio.run(scenario())

    assert "HTTP 404" in str(excinfo.value)


def test_http_source_invalid_json_raises():
    routes = {"categories.json": (200, "<html>")}

    async def scenario():
        async with _mock_client(routes) as client:
            src = HttpQuestionSource("https://quiz.test", client=client)
            await src.fetch_category_list()

    with pytest.raises(SourceUnavailable):
        asyncio.run(scenario())


def test_http_source_transport_error_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async def scenario():
        transport = httpx.MockTransport(handler)
        async with httpx.AsyncClient(transport=transport) as client:
            src = HttpQuestionSource("https://quiz.test", client=client)
            await src.fetch_category_list()

    with pytest.raises(SourceUnavailable):
        asyncio.run(scenario())


def test_invalid_utf8_raises(quiz_data):
    (quiz_data / "math.json").write_bytes(b"\xff\xfe[]")

    src = DirectoryQuestionSource(quiz_data)

    with pytest.raises(SourceUnavailable) as excinfo:
        asyncio.run(fetch_questions(src, "math"))

    assert excinfo.value.category == "math"
    assert "not valid UTF-8" in str(excinfo.value)


def test_invalid_utf8_category_index_raises(quiz_data):
    (quiz_data / "categories.json").write_bytes(b"\xff\xfe")

    with pytest.raises(SourceUnavailable):
        asyncio.run(fetch_questions(DirectoryQuestionSource(quiz_data)))
