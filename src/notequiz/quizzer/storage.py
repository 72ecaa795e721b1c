"""JSONL persistence for topics, questions and completed quiz results."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence

from .models import (
    Question,
    ResultSummary,
    Topic,
    coerce_question,
    coerce_topic,
)

__all__ = [
    "SavedResult",
    "read_jsonl",
    "write_jsonl",
    "save_topics",
    "load_topics",
    "save_questions",
    "load_questions",
    "append_result",
    "load_results",
]


@dataclass(frozen=True)
class SavedResult:
    completed_at: str
    summary: ResultSummary


def read_jsonl(path: Path) -> List[dict]:
    """Read one JSON object per line; raises ``ValueError`` on bad lines."""

    data: List[dict] = []
    with Path(path).open("r", encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                item = json.loads(line)
            except json.JSONDecodeError as exc:
                raise ValueError(f"{path}:{lineno}: {exc.msg}") from exc
            if not isinstance(item, dict):
                raise ValueError(f"{path}:{lineno}: expected a JSON object")
            data.append(item)
    return data


def write_jsonl(path: Path, records: Sequence[dict]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as fh:
        for rec in records:
            fh.write(json.dumps(rec, ensure_ascii=False))
            fh.write("\n")


def save_topics(path: Path, topics: Sequence[Topic]) -> None:
    write_jsonl(path, [topic.to_dict() for topic in topics])


def load_topics(path: Path) -> tuple[Topic, ...]:
    if not Path(path).exists():
        return ()
    return tuple(
        coerce_topic(item, index)
        for index, item in enumerate(read_jsonl(path), start=1)
    )


def save_questions(path: Path, questions: Sequence[Question]) -> None:
    write_jsonl(path, [question.to_dict() for question in questions])


def load_questions(path: Path) -> tuple[Question, ...]:
    """Read a saved question set; raises ``ValueError`` on corrupt items."""

    return tuple(coerce_question(item) for item in read_jsonl(path))


def append_result(
    path: Path,
    summary: ResultSummary,
    completed_at: Optional[datetime] = None,
) -> SavedResult:
    stamp = (completed_at or datetime.now(timezone.utc)).isoformat(
        timespec="seconds"
    )
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    record = {"completed_at": stamp, **summary.to_dict()}
    with p.open("a", encoding="utf-8") as fh:
        fh.write(json.dumps(record, ensure_ascii=False))
        fh.write("\n")
    return SavedResult(completed_at=stamp, summary=summary)


def load_results(path: Path) -> List[SavedResult]:
    """Saved results in the order they were completed (oldest first).

    Raises ``ValueError`` when the file holds a line that is not a JSON
    object.
    """

    if not Path(path).exists():
        return []
    return [
        SavedResult(
            completed_at=str(item.get("completed_at", "")),
            summary=ResultSummary.from_dict(item),
        )
        for item in read_jsonl(path)
    ]
