"""Conversation message type."""
from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Sequence

from vulpecula.types.enums import Role
from vulpecula.types.usage import UsageRecord


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class FileExcerpt:
    """A file attached to a user message. Opaque to the engine."""

    title: str
    path: str
    content: str

    def render(self) -> str:
        return f"Content of {self.title}:\n```\n{self.content}\n```\n\n"


@dataclass
class Message:
    """A single message in a conversation.

    Messages are appended, never reordered.  Only the message whose
    ``streaming`` flag is set may have its content replaced in place.
    """

    role: Role
    content: str = ""
    timestamp: datetime = field(default_factory=_now)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    model: str | None = None
    usage: UsageRecord | None = None
    cost: float | None = None
    streaming: bool = False
    files: tuple[FileExcerpt, ...] = ()
    error: str | None = None

    # --- Factory classmethods ---

    @classmethod
    def system(cls, text: str) -> Message:
        """Create a system message."""
        return cls(role=Role.SYSTEM, content=text)

    @classmethod
    def user(
        cls,
        text: str,
        *,
        model: str | None = None,
        files: Sequence[FileExcerpt] = (),
    ) -> Message:
        """Create a user message."""
        return cls(role=Role.USER, content=text, model=model, files=tuple(files))

    @classmethod
    def assistant(
        cls, text: str = "", *, model: str | None = None, streaming: bool = False
    ) -> Message:
        """Create an assistant message."""
        return cls(role=Role.ASSISTANT, content=text, model=model, streaming=streaming)

    # --- Wire format ---

    def wire_content(self) -> str:
        """Content as sent to the model, with attached files embedded.

        ``@title`` mentions are expanded in place; files that are never
        mentioned are appended after the text.
        """
        text = self.content
        for excerpt in self.files:
            pattern = re.compile(rf"@{re.escape(excerpt.title)}\b")
            replacement = f"@{excerpt.title}\n\n{excerpt.render()}"
            text, count = pattern.subn(lambda _m: replacement, text, count=1)
            if count == 0:
                text = f"{text}\n\n{excerpt.render()}".rstrip("\n")
        return text

    def to_wire(self) -> dict[str, str]:
        return {"role": str(self.role), "content": self.wire_content()}

    def to_dict(self) -> dict[str, Any]:
        """Serialise for the chat-history store."""
        data: dict[str, Any] = {
            "id": self.id,
            "role": str(self.role),
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
            "model": self.model,
        }
        if self.usage is not None:
            data["tokens"] = self.usage.to_dict()
        if self.cost is not None:
            data["cost"] = self.cost
        if self.files:
            data["includedFiles"] = [
                {"title": f.title, "path": f.path, "content": f.content}
                for f in self.files
            ]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, default_model: str | None = None) -> Message:
        """Rebuild a message stored by :meth:`to_dict`."""
        tokens = data.get("tokens")
        usage = None
        if isinstance(tokens, dict):
            usage = UsageRecord(
                prompt_tokens=int(tokens.get("prompt") or 0),
                completion_tokens=int(tokens.get("completion") or 0),
            )
        timestamp = data.get("timestamp")
        files = tuple(
            FileExcerpt(title=f["title"], path=f.get("path", ""), content=f.get("content", ""))
            for f in data.get("includedFiles") or ()
        )
        return cls(
            role=Role(data["role"]),
            content=data.get("content", ""),
            timestamp=datetime.fromisoformat(timestamp) if timestamp else _now(),
            id=data.get("id") or uuid.uuid4().hex,
            model=data.get("model") or default_model,
            usage=usage,
            cost=data.get("cost"),
            files=files,
        )
