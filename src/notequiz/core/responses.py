"""Helpers for reading JSON out of free-form model replies."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Optional

__all__ = [
    "ParseResult",
    "strip_code_fence",
    "parse_json_reply",
]

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*([\s\S]*?)\s*```")


@dataclass(frozen=True)
class ParseResult:
    """Outcome of decoding a model reply: either ``value`` or ``error``."""

    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any) -> "ParseResult":
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> "ParseResult":
        return cls(error=error)


def strip_code_fence(content: str) -> str:
    """Return the body of the first fenced block, or ``content`` trimmed."""

    match = _FENCE_RE.search(content or "")
    if match:
        return match.group(1).strip()
    return (content or "").strip()


def parse_json_reply(content: str, *, expect: type | None = None) -> ParseResult:
    """Decode ``content`` as JSON, tolerating a Markdown code fence.

    ``expect`` optionally constrains the top-level type (``dict``/``list``).
    Never raises; malformed replies produce a failed :class:`ParseResult`.
    """
    payload = strip_code_fence(content)
    if not payload:
        return ParseResult.failure("empty reply")
    try:
        data = json.loads(payload)
    except ValueError as exc:
        return ParseResult.failure(f"invalid JSON: {exc}")
    if expect is not None and not isinstance(data, expect):
        return ParseResult.failure(
            f"expected {expect.__name__}, found {type(data).__name__}"
        )
    return ParseResult.success(data)
