"""Turn pasted text, PDFs and images into a plain-text corpus."""

from __future__ import annotations

import base64
import binascii
import io
import logging
import mimetypes
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from pypdf import PdfReader

from ..core.ai import ChatClient, RemoteCallError
from .config import Settings
from .errors import ErrorKind, ExtractionError, SegmentationError
from .models import MIN_QUIZ_CHARS, MIN_TOPIC_INGEST_CHARS, Topic
from .topics import segment

__all__ = [
    "SourceKind",
    "SourceInput",
    "Extraction",
    "OCR_PROMPT",
    "extract",
    "extract_pdf_text",
]

logger = logging.getLogger(__name__)

OCR_PROMPT = """Extract ALL text content from this document using OCR if needed.

CRITICAL INSTRUCTIONS:
- Extract EVERY word, heading, paragraph, bullet point, and section
- Preserve structure: headings, subheadings, lists, tables
- Perform OCR on any scanned or image-based text
- Maintain hierarchical structure (Chapter > Section > Subsection)
- Do NOT summarize or skip content
- Return ONLY the extracted text without any commentary"""

IMAGE_MIME_TYPES = frozenset(
    {"image/png", "image/jpeg", "image/webp", "image/gif"}
)
_TEXT_SUFFIXES = {".txt", ".md", ".markdown", ".text"}


class SourceKind(Enum):
    TEXT = "text"
    PDF = "pdf"
    IMAGE = "image"


@dataclass(frozen=True)
class SourceInput:
    """Raw study material.

    ``payload`` is the text itself for ``TEXT``; for ``PDF`` and ``IMAGE`` it
    is either raw bytes or a base64 string.
    """

    kind: SourceKind
    payload: Union[str, bytes]
    mime_type: Optional[str] = None

    @classmethod
    def text(cls, content: str) -> "SourceInput":
        return cls(SourceKind.TEXT, content, "text/plain")

    @classmethod
    def from_base64(cls, file_data: str, mime_type: str) -> "SourceInput":
        """Build an input from the wire shape ``{fileData, mimeType}``."""

        mime = (mime_type or "").strip().lower()
        if mime == "application/pdf":
            return cls(SourceKind.PDF, file_data, mime)
        if mime in IMAGE_MIME_TYPES:
            return cls(SourceKind.IMAGE, file_data, mime)
        if mime.startswith("text/"):
            decoded = _decode_base64(file_data).decode("utf-8", "replace")
            return cls.text(decoded)
        raise ExtractionError(
            f"Unsupported file type '{mime_type}'.",
            kind=ErrorKind.INVALID_INPUT,
        )

    @classmethod
    def from_path(cls, path: Path) -> "SourceInput":
        suffix = path.suffix.lower()
        try:
            if suffix in _TEXT_SUFFIXES:
                return cls.text(
                    path.read_text(encoding="utf-8", errors="replace")
                )
            data = path.read_bytes()
        except OSError as exc:
            raise ExtractionError(
                f"Unable to read {path}: {exc}", kind=ErrorKind.INVALID_INPUT
            ) from exc
        mime = mimetypes.guess_type(path.name)[0] or ""
        if mime == "application/pdf":
            return cls(SourceKind.PDF, data, mime)
        if mime in IMAGE_MIME_TYPES:
            return cls(SourceKind.IMAGE, data, mime)
        raise ExtractionError(
            f"Unsupported file type '{suffix or path.name}'.",
            kind=ErrorKind.INVALID_INPUT,
        )

    def data(self) -> bytes:
        if isinstance(self.payload, bytes):
            return self.payload
        if self.kind is SourceKind.TEXT:
            return self.payload.encode("utf-8")
        return _decode_base64(self.payload)


@dataclass(frozen=True)
class Extraction:
    content: str
    topics: Optional[tuple[Topic, ...]] = None

    def to_dict(self) -> dict[str, object]:
        return {
            "content": self.content,
            "topics": (
                None
                if self.topics is None
                else [topic.to_dict() for topic in self.topics]
            ),
        }


def extract(
    source: SourceInput,
    *,
    extract_topics: bool = False,
    client: Optional[ChatClient] = None,
    settings: Optional[Settings] = None,
) -> Extraction:
    """Normalize ``source`` into a corpus, optionally segmenting topics."""

    settings = settings or Settings()
    data = source.data()
    if len(data) > settings.max_bytes:
        raise ExtractionError(
            f"File is larger than {settings.max_bytes // (1024 * 1024)} MB.",
            kind=ErrorKind.INVALID_INPUT,
        )

    if source.kind is SourceKind.TEXT:
        content = str(
            source.payload
            if isinstance(source.payload, str)
            else data.decode("utf-8", "replace")
        ).strip()
    elif source.kind is SourceKind.PDF:
        content = extract_pdf_text(data, max_pages=settings.max_pdf_pages)
    else:
        chat = client or settings.chat_client()
        content = _extract_image_text(
            data, source.mime_type or "image/png", chat, settings
        )

    logger.info(
        "content extracted",
        extra={
            "event": "extract.done",
            "source": source.kind.value,
            "chars": len(content),
        },
    )
    if len(content) < MIN_QUIZ_CHARS:
        hint = (
            ""
            if source.kind is SourceKind.TEXT
            else " Try a clearer file."
        )
        raise ExtractionError(
            f"Extracted text is shorter than {MIN_QUIZ_CHARS} characters."
            + hint,
            kind=ErrorKind.INPUT_TOO_SHORT,
        )

    topics: Optional[tuple[Topic, ...]] = None
    if extract_topics and len(content) > MIN_TOPIC_INGEST_CHARS:
        try:
            topics = segment(
                content,
                client=client or settings.chat_client(),
                settings=settings,
            )
        except SegmentationError as exc:
            logger.warning(
                "topic extraction skipped",
                extra={
                    "event": "extract.topics_failed",
                    "kind": exc.kind.value,
                },
            )
    return Extraction(content=content, topics=topics)


def extract_pdf_text(data: bytes, *, max_pages: int = 50) -> str:
    """Return the text layer of the first ``max_pages`` pages.

    Pages are separated by a blank line. No OCR is attempted, so scanned
    documents come back (nearly) empty.
    """
    try:
        reader = PdfReader(io.BytesIO(data))
        pages: list[str] = []
        for number, page in enumerate(reader.pages):
            if number >= max_pages:
                break
            text = (page.extract_text() or "").strip()
            if text:
                pages.append(text)
    except Exception as exc:
        raise ExtractionError(
            f"Failed to read PDF: {exc}", kind=ErrorKind.INVALID_INPUT
        ) from exc
    return "\n\n".join(pages).strip()


def _extract_image_text(
    data: bytes, mime_type: str, chat: ChatClient, settings: Settings
) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    try:
        text = chat.complete_with_image(
            OCR_PROMPT,
            data_url=f"data:{mime_type};base64,{encoded}",
            temperature=0.1,
            timeout=settings.image_timeout,
        )
    except RemoteCallError as exc:
        raise ExtractionError.from_remote(exc) from exc
    return text.strip()


def _decode_base64(value: str) -> bytes:
    raw = value.strip()
    if raw.startswith("data:") and "," in raw:
        raw = raw.split(",", 1)[1]
    try:
        return base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ExtractionError(
            "File data is not valid base64.", kind=ErrorKind.INVALID_INPUT
        ) from exc
