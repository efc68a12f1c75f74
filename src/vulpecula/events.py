"""Event types and the synchronous event emitter."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from vulpecula.types.enums import TurnState
from vulpecula.types.usage import CostRecord, UsageRecord


# --- Turn lifecycle events ---


@dataclass(frozen=True)
class TurnStateChangedEvent:
    previous: TurnState
    state: TurnState


@dataclass(frozen=True)
class TokenEvent:
    text: str


@dataclass(frozen=True)
class UsageEvent:
    usage: UsageRecord


@dataclass(frozen=True)
class TurnCompleteEvent:
    message_id: str
    text: str
    usage: UsageRecord
    cost: CostRecord


@dataclass(frozen=True)
class TurnErrorEvent:
    message_id: str
    error: str
    kind: str = "transport"


# --- Directive-triggered events ---


@dataclass(frozen=True)
class RenameSuggestedEvent:
    chat_id: str
    new_name: str


@dataclass(frozen=True)
class TopicSetEvent:
    chat_id: str
    topic: str


@dataclass(frozen=True)
class HighlightEvent:
    text: str


@dataclass(frozen=True)
class SearchSuggestedEvent:
    query: str


@dataclass(frozen=True)
class ThreadCreateEvent:
    chat_id: str
    name: str


@dataclass(frozen=True)
class NotificationEvent:
    message: str
    type: str = "info"
    action: str | None = None
    data: dict[str, Any] = field(default_factory=dict)


class Notifier(Protocol):
    """Anything that can receive engine events."""

    def emit(self, event: Any) -> None:
        ...


class EventEmitter:
    """Synchronous callback-based event emitter.

    Events are dispatched synchronously in registration order.
    """

    def __init__(self) -> None:
        self._listeners: dict[type, list[Callable]] = {}
        self._global_listeners: list[Callable] = []

    def subscribe(self, event_type: type, callback: Callable) -> None:
        """Register a callback for a specific event type."""
        self._listeners.setdefault(event_type, []).append(callback)

    def unsubscribe(self, event_type: type, callback: Callable) -> None:
        listeners = self._listeners.get(event_type, [])
        if callback in listeners:
            listeners.remove(callback)

    def on_all(self, callback: Callable) -> None:
        """Register a callback that receives every event."""
        self._global_listeners.append(callback)

    def emit(self, event: Any) -> None:
        """Dispatch event to all matching listeners."""
        for cb in self._global_listeners:
            cb(event)
        for cb in self._listeners.get(type(event), []):
            cb(event)
