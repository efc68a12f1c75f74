"""Timeout and cancellation types."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AdapterTimeout:
    """Low-level timeout settings used by the HTTP layer."""

    connect: float = 5.0
    request: float = 60.0
    stream_read: float = 30.0


class AbortSignal:
    """An observable flag indicating whether an operation has been aborted."""

    def __init__(self) -> None:
        self._aborted = False
        self.reason: str | None = None

    @property
    def aborted(self) -> bool:
        return self._aborted

    def _abort(self, reason: str | None = None) -> None:
        self._aborted = True
        self.reason = reason


class AbortController:
    """Controls an :class:`AbortSignal` to cancel an in-flight turn."""

    def __init__(self) -> None:
        self.signal = AbortSignal()

    def abort(self, reason: str | None = None) -> None:
        self.signal._abort(reason)
