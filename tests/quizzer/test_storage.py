from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from fixtures.samples import mcq, short_answer

from notequiz.quizzer import storage
from notequiz.quizzer.models import (
    AnswerRecord,
    ResultSummary,
    Topic,
    coerce_question,
)


def test_jsonl_round_trip_skips_blank_lines(tmp_path):
    path = tmp_path / "nested" / "items.jsonl"

    storage.write_jsonl(path, [{"a": 1}, {"b": "é"}])
    with path.open("a", encoding="utf-8") as fh:
        fh.write("\n\n")

    assert storage.read_jsonl(path) == [{"a": 1}, {"b": "é"}]


def test_topics_and_questions_persist(tmp_path):
    topics = (Topic("cells", "Cells", "All about cells", ("Nucleus",)),)
    questions = (coerce_question(mcq()), coerce_question(short_answer()))

    storage.save_topics(tmp_path / "topics.jsonl", topics)
    storage.save_questions(tmp_path / "questions.jsonl", questions)

    assert storage.load_topics(tmp_path / "topics.jsonl") == topics
    assert storage.load_questions(tmp_path / "questions.jsonl") == questions
    assert storage.load_topics(tmp_path / "missing.jsonl") == ()


def test_append_result_writes_one_line_per_session(tmp_path):
    path = tmp_path / "results.jsonl"
    summary = ResultSummary.from_answers(
        [
            AnswerRecord("q1", "a", "a", True),
            AnswerRecord("q2", "b", "c", False, "because"),
        ]
    )
    stamp = datetime(2026, 3, 1, 9, 30, 15, 123, tzinfo=timezone.utc)

    saved = storage.append_result(path, summary, stamp)
    storage.append_result(path, summary, stamp.replace(day=2))

    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert first["completed_at"] == "2026-03-01T09:30:15+00:00"
    assert (first["score"], first["total"]) == (1, 2)
    assert first["answers"][1] == {
        "question": "q2",
        "userAnswer": "b",
        "correctAnswer": "c",
        "isCorrect": False,
        "explanation": "because",
    }
    assert saved.completed_at == first["completed_at"]

    loaded = storage.load_results(path)
    assert [item.completed_at[:10] for item in loaded] == [
        "2026-03-01",
        "2026-03-02",
    ]
    assert loaded[0].summary == summary


def test_load_results_missing_file(tmp_path):
    assert storage.load_results(tmp_path / "results.jsonl") == []


@pytest.mark.parametrize(
    "content, message",
    [
        ('{"score": 1, "total"\n', "results.jsonl:1"),
        (
            '{"answers": []}\n[1, 2]\n',
            "results.jsonl:2: expected a JSON object",
        ),
        ('{"answers": [1]}\n', "answers must be a list of objects"),
    ],
)
def test_load_results_rejects_corrupt_lines(tmp_path, content, message):
    path = tmp_path / "results.jsonl"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ValueError, match=message):
        storage.load_results(path)


def test_load_topics_rejects_untitled_entry(tmp_path):
    path = tmp_path / "topics.jsonl"
    path.write_text(json.dumps({"id": "t1", "title": " "}) + "\n")

    with pytest.raises(ValueError, match="topic title is required"):
        storage.load_topics(path)
