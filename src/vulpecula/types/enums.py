"""Enumeration types for the vulpecula engine."""
from __future__ import annotations

from enum import StrEnum


class Role(StrEnum):
    """Role of a message participant."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class FrameEventType(StrEnum):
    """Kinds of events produced by the frame decoder."""

    TOKEN = "token"
    USAGE = "usage"
    DONE = "done"


class TurnState(StrEnum):
    """Lifecycle of a single request/response exchange."""

    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    FINALIZING = "finalizing"
    COMPLETE = "complete"
    ERRORED = "errored"


class DirectiveTag(StrEnum):
    """Closed vocabulary of directive tags embedded in assistant text."""

    RENAME_CHAT = "rename-chat"
    SET_TOPIC = "set-topic"
    HIGHLIGHT = "highlight"
    SEARCH = "search"
    CREATE_THREAD = "create-thread"
