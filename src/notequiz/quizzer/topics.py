"""Segment a corpus into a topic outline with the chat model."""

from __future__ import annotations

import logging
import re
from typing import Any, List, Optional

from ..core.ai import ChatClient, RemoteCallError
from ..core.responses import parse_json_reply
from .config import Settings
from .errors import ErrorKind, SegmentationError
from .models import MIN_TOPIC_CHARS, Topic, coerce_topic

__all__ = [
    "TRUNCATION_MARKER",
    "truncate_corpus",
    "build_prompt",
    "segment",
    "segment_or_empty",
]

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "... [content continues]"
SYSTEM_PROMPT = (
    "You analyze study material and return its topic outline as JSON."
)


def _slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return slug or "topic"


def truncate_corpus(corpus: str, max_chars: int) -> str:
    if len(corpus) <= max_chars:
        return corpus
    return corpus[:max_chars] + TRUNCATION_MARKER


def build_prompt(corpus: str, *, max_chars: int) -> str:
    excerpt = truncate_corpus(corpus, max_chars)
    return (
        "Analyze this document and identify its main topics and subtopics.\n\n"
        "Instructions:\n"
        "- Identify 5-15 main topics that cover the whole document\n"
        "- Give each topic 3-8 specific subtopics\n"
        "- Use the document's own headings and terminology where possible\n"
        "- Keep titles under 60 characters and descriptions under 120\n"
        "- Order topics as they appear in the document\n\n"
        "Return ONLY valid JSON in this format:\n"
        '{"topics": [{"id": "topic-1", "title": "...", '
        '"description": "...", "subtopics": ["...", "..."]}]}\n\n'
        f"Document:\n{excerpt}"
    )


def segment(
    corpus: str,
    *,
    client: Optional[ChatClient] = None,
    settings: Optional[Settings] = None,
    min_chars: int = MIN_TOPIC_CHARS,
) -> tuple[Topic, ...]:
    """Return the topics of ``corpus`` in document order.

    Items without a title are skipped; duplicate ids are suffixed so every
    topic stays addressable.
    """
    settings = settings or Settings()
    text = (corpus or "").strip()
    if len(text) < min_chars:
        raise SegmentationError(
            f"Content must be at least {min_chars} characters for topic "
            "extraction.",
            kind=ErrorKind.INPUT_TOO_SHORT,
        )
    chat = client or settings.chat_client()
    try:
        reply = chat.complete_prompt(
            build_prompt(text, max_chars=settings.topic_max_chars),
            system=SYSTEM_PROMPT,
            temperature=0.3,
        )
    except RemoteCallError as exc:
        raise SegmentationError.from_remote(exc) from exc

    parsed = parse_json_reply(reply)
    if not parsed.ok:
        raise SegmentationError(
            f"Could not parse topics: {parsed.error}",
            kind=ErrorKind.RESPONSE_UNPARSABLE,
        )
    topics = _collect_topics(parsed.value)
    if not topics:
        raise SegmentationError(
            "The AI reply contained no usable topics.",
            kind=ErrorKind.RESPONSE_UNPARSABLE,
        )
    logger.info(
        "topics extracted",
        extra={"event": "topics.done", "count": len(topics)},
    )
    return topics


def segment_or_empty(corpus: str, **kwargs: Any) -> tuple[Topic, ...]:
    """Like :func:`segment`, but any failure yields no topics."""

    try:
        return segment(corpus, **kwargs)
    except SegmentationError as exc:
        logger.warning(
            "topic segmentation failed: %s",
            exc,
            extra={"event": "topics.failed", "kind": exc.kind.value},
        )
        return ()


def _collect_topics(data: object) -> tuple[Topic, ...]:
    if isinstance(data, dict):
        raw_items = data.get("topics")
    else:
        raw_items = data
    if not isinstance(raw_items, list):
        return ()

    topics: List[Topic] = []
    seen: set[str] = set()
    for index, item in enumerate(raw_items, start=1):
        try:
            topic = coerce_topic(item, index)
        except ValueError as exc:
            logger.debug("skipping topic %d: %s", index, exc)
            continue
        topic_id = topic.id if topic.id not in seen else _slugify(topic.title)
        base, suffix = topic_id, 2
        while topic_id in seen:
            topic_id = f"{base}-{suffix}"
            suffix += 1
        seen.add(topic_id)
        if topic_id != topic.id:
            topic = Topic(
                id=topic_id,
                title=topic.title,
                description=topic.description,
                subtopics=topic.subtopics,
            )
        topics.append(topic)
    return tuple(topics)
