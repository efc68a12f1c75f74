"""Request types."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ChatRequest:
    """A chat-completion request in wire terms."""

    model: str
    messages: tuple[dict[str, str], ...] = ()
    temperature: float | None = None
    max_tokens: int | None = None
    stream: bool = True
    provider_options: dict[str, Any] | None = None

    def body(self) -> dict[str, Any]:
        """JSON body for the chat-completions endpoint."""
        body: dict[str, Any] = {
            "model": self.model,
            "messages": [dict(m) for m in self.messages],
            "stream": self.stream,
        }
        if self.temperature is not None:
            body["temperature"] = self.temperature
        if self.max_tokens is not None:
            body["max_tokens"] = self.max_tokens
        if self.stream:
            body["stream_options"] = {"include_usage": True}
        if self.provider_options:
            body.update(self.provider_options)
        return body
