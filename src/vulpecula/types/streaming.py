"""Frame decoder event types."""
from __future__ import annotations

from dataclasses import dataclass

from vulpecula.types.enums import FrameEventType
from vulpecula.types.usage import UsageRecord


@dataclass(frozen=True)
class FrameEvent:
    """A single event decoded from the response stream.

    A frame carrying both a text fragment and a usage snapshot produces two
    events, so callers can react to usage independently of token arrival.
    """

    type: FrameEventType
    fragment: str | None = None
    usage: UsageRecord | None = None

    @classmethod
    def token(cls, fragment: str) -> FrameEvent:
        return cls(type=FrameEventType.TOKEN, fragment=fragment)

    @classmethod
    def usage_snapshot(cls, usage: UsageRecord) -> FrameEvent:
        return cls(type=FrameEventType.USAGE, usage=usage)

    @classmethod
    def done(cls) -> FrameEvent:
        return cls(type=FrameEventType.DONE)


@dataclass(frozen=True)
class ChunkPayload:
    """Typed view of one decoded frame payload."""

    fragment: str | None = None
    usage: UsageRecord | None = None
