"""Error types raised by the content-to-quiz pipeline."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from ..core.ai import RemoteCallError, RemoteErrorKind

__all__ = [
    "ErrorKind",
    "QuizPipelineError",
    "ConfigurationError",
    "ExtractionError",
    "SegmentationError",
    "GenerationError",
    "VerificationError",
    "NoQuestionsError",
    "SessionError",
    "user_message",
]


class ErrorKind(Enum):
    INPUT_TOO_SHORT = "input_too_short"
    INVALID_INPUT = "invalid_input"
    RATE_LIMITED = "rate_limited"
    QUOTA_EXHAUSTED = "quota_exhausted"
    TIMEOUT = "timeout"
    REMOTE_FAILED = "remote_failed"
    RESPONSE_UNPARSABLE = "response_unparsable"
    NO_QUESTIONS = "no_questions"

    @classmethod
    def from_remote(cls, kind: RemoteErrorKind) -> "ErrorKind":
        return _REMOTE_KINDS[kind]

    @property
    def is_remote(self) -> bool:
        return self in _REMOTE_KINDS.values()


_REMOTE_KINDS = {
    RemoteErrorKind.RATE_LIMITED: ErrorKind.RATE_LIMITED,
    RemoteErrorKind.QUOTA_EXHAUSTED: ErrorKind.QUOTA_EXHAUSTED,
    RemoteErrorKind.TIMEOUT: ErrorKind.TIMEOUT,
    RemoteErrorKind.GENERIC: ErrorKind.REMOTE_FAILED,
}

_MESSAGES = {
    ErrorKind.INPUT_TOO_SHORT: (
        "Not enough text to work with. Add more material or try a clearer "
        "file."
    ),
    ErrorKind.INVALID_INPUT: "The supplied file could not be read.",
    ErrorKind.RATE_LIMITED: (
        "Rate limit exceeded. Please try again in a moment."
    ),
    ErrorKind.QUOTA_EXHAUSTED: (
        "AI credits depleted. Waiting will not help; add credits to continue."
    ),
    ErrorKind.TIMEOUT: (
        "The AI service took too long to respond. Try a smaller file."
    ),
    ErrorKind.REMOTE_FAILED: "The AI service failed. Please try again.",
    ErrorKind.RESPONSE_UNPARSABLE: (
        "The AI returned a response that could not be read. Please try "
        "again."
    ),
    ErrorKind.NO_QUESTIONS: (
        "No questions generated. Please try with different content."
    ),
}


def user_message(kind: ErrorKind) -> str:
    """Short message shown to a person for a terminal failure of ``kind``."""

    return _MESSAGES[kind]


class QuizPipelineError(RuntimeError):
    """Base class for pipeline failures; ``kind`` drives presentation."""

    default_kind = ErrorKind.REMOTE_FAILED

    def __init__(
        self,
        message: str,
        *,
        kind: Optional[ErrorKind] = None,
        status: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind or self.default_kind
        self.status = status

    @classmethod
    def from_remote(cls, exc: RemoteCallError) -> "QuizPipelineError":
        return cls(
            str(exc),
            kind=ErrorKind.from_remote(exc.kind),
            status=exc.status,
        )

    @property
    def user_message(self) -> str:
        return user_message(self.kind)


class ConfigurationError(ValueError):
    """Raised when a quiz configuration is outside the supported range."""


class ExtractionError(QuizPipelineError):
    """Raised when source material cannot be turned into a corpus."""


class SegmentationError(QuizPipelineError):
    """Raised when topic segmentation fails."""


class GenerationError(QuizPipelineError):
    """Raised when a question set cannot be produced."""


class VerificationError(QuizPipelineError):
    """Raised when conceptual answer verification fails."""


class NoQuestionsError(QuizPipelineError):
    """Raised when a session is started without questions."""

    default_kind = ErrorKind.NO_QUESTIONS


class SessionError(QuizPipelineError):
    """Raised for transitions that are not valid in the current state."""

    default_kind = ErrorKind.INVALID_INPUT
