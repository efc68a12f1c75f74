"""Response types."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from vulpecula.types.usage import UsageRecord


@dataclass(frozen=True)
class CompletionResponse:
    """A single-shot (non-streamed) completion."""

    text: str = ""
    model: str = ""
    id: str = ""
    usage: UsageRecord | None = None
    finish_reason: str | None = None
    raw: dict[str, Any] | None = None
