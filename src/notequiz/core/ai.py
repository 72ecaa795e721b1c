"""Shared AI helper utilities."""

from __future__ import annotations

import logging
import os
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

import openai
from dotenv import load_dotenv
from openai import OpenAI

__all__ = [
    "RemoteErrorKind",
    "RemoteCallError",
    "ChatClient",
    "classify_exception",
    "load_client",
]

logger = logging.getLogger(__name__)


class RemoteErrorKind(Enum):
    """Failure classes callers present differently to users."""

    RATE_LIMITED = "rate_limited"
    QUOTA_EXHAUSTED = "quota_exhausted"
    TIMEOUT = "timeout"
    GENERIC = "remote_failed"


class RemoteCallError(RuntimeError):
    """Raised when a generative service call fails in transport or status."""

    def __init__(
        self,
        message: str,
        *,
        kind: RemoteErrorKind = RemoteErrorKind.GENERIC,
        status: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.status = status


def load_client(*, timeout: Optional[float] = None) -> OpenAI:
    """Initialize an OpenAI client using environment-derived credentials.

    Retries are disabled; re-submitting is left to the user.
    """
    load_dotenv()
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise RuntimeError(
            "OPENAI_API_KEY not found in environment. Set it or add to .env"
        )
    kwargs: dict[str, Any] = {"api_key": api_key, "max_retries": 0}
    base_url = os.getenv("OPENAI_BASE_URL")
    if base_url:
        kwargs["base_url"] = base_url
    if timeout is not None:
        kwargs["timeout"] = timeout
    return OpenAI(**kwargs)


def classify_exception(exc: BaseException) -> RemoteCallError:
    """Translate a provider exception into a :class:`RemoteCallError`."""

    if isinstance(exc, RemoteCallError):
        return exc
    if isinstance(exc, openai.APITimeoutError):
        return RemoteCallError(
            "The AI service did not respond in time.",
            kind=RemoteErrorKind.TIMEOUT,
        )
    status = getattr(exc, "status_code", None)
    code = getattr(exc, "code", None)
    if status == 402 or code == "insufficient_quota":
        return RemoteCallError(
            "AI credits depleted. Please add credits to continue.",
            kind=RemoteErrorKind.QUOTA_EXHAUSTED,
            status=status,
        )
    if status == 429:
        return RemoteCallError(
            "Rate limit exceeded. Please try again in a moment.",
            kind=RemoteErrorKind.RATE_LIMITED,
            status=status,
        )
    if status is not None:
        return RemoteCallError(f"AI API error: {status}", status=status)
    return RemoteCallError(f"AI request failed: {exc}")


class ChatClient:
    """Adapter over ``chat.completions.create`` returning stripped text.

    ``client`` is any object exposing the OpenAI chat completions surface;
    when omitted, :func:`load_client` builds one lazily on first use.
    """

    def __init__(
        self,
        *,
        model: str = "gpt-4o-mini",
        vision_model: Optional[str] = None,
        request_timeout: Optional[float] = None,
        client: Any | None = None,
    ) -> None:
        self.model = model
        self.vision_model = vision_model or model
        self.request_timeout = request_timeout
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            try:
                self._client = load_client(timeout=self.request_timeout)
            except RuntimeError as exc:
                raise RemoteCallError(str(exc)) from exc
        return self._client

    def complete(
        self,
        messages: Sequence[Mapping[str, Any]],
        *,
        temperature: float,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
        model: Optional[str] = None,
    ) -> str:
        """Send ``messages`` and return the assistant text.

        Raises :class:`RemoteCallError` for transport failures, non-2xx
        statuses and empty replies.
        """
        params: dict[str, Any] = {
            "model": model or self.model,
            "messages": [dict(msg) for msg in messages],
            "temperature": temperature,
        }
        if max_tokens is not None:
            params["max_tokens"] = max_tokens
        effective_timeout = timeout if timeout is not None else self.request_timeout
        if effective_timeout is not None:
            params["timeout"] = effective_timeout
        try:
            response = self.client.chat.completions.create(**params)
        except RemoteCallError:
            raise
        except Exception as exc:
            error = classify_exception(exc)
            logger.warning(
                "chat completion failed",
                extra={
                    "event": "ai.error",
                    "kind": error.kind.value,
                    "status": error.status,
                },
            )
            raise error from exc
        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as exc:
            raise RemoteCallError("AI response had no choices.") from exc
        text = (content or "").strip()
        if not text:
            raise RemoteCallError("AI returned empty content.")
        return text

    def complete_prompt(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        temperature: float,
        max_tokens: Optional[int] = None,
    ) -> str:
        messages: list[dict[str, Any]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return self.complete(
            messages, temperature=temperature, max_tokens=max_tokens
        )

    def complete_with_image(
        self,
        prompt: str,
        *,
        data_url: str,
        temperature: float,
        timeout: Optional[float] = None,
    ) -> str:
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {"type": "image_url", "image_url": {"url": data_url}},
                ],
            }
        ]
        return self.complete(
            messages,
            temperature=temperature,
            timeout=timeout,
            model=self.vision_model,
        )
