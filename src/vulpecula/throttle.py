"""Coalescing of UI-facing token updates."""
from __future__ import annotations

import time
from typing import Callable


class TokenThrottle:
    """Deliver buffered fragments at most once per *interval* seconds.

    Fragments are concatenated in arrival order, so the text seen by the
    callback is identical to the unthrottled stream.  :meth:`flush` must be
    called when the stream ends to deliver the remainder.
    """

    def __init__(
        self,
        callback: Callable[[str], None],
        interval: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._callback = callback
        self._interval = interval
        self._clock = clock
        self._buffer: list[str] = []
        self._last_emit: float | None = None

    def push(self, fragment: str) -> None:
        if not fragment:
            return
        self._buffer.append(fragment)
        now = self._clock()
        if self._last_emit is None or now - self._last_emit >= self._interval:
            self._emit(now)

    def flush(self) -> None:
        if self._buffer:
            self._emit(self._clock())

    @property
    def pending(self) -> str:
        return "".join(self._buffer)

    def _emit(self, now: float) -> None:
        text = "".join(self._buffer)
        self._buffer.clear()
        self._last_emit = now
        self._callback(text)
