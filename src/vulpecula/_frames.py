"""Incremental decoder for ``data:``-framed completion streams.

The remote endpoint sends newline-separated frames.  Meaningful frames look
like ``data: {json}``; a payload of exactly ``[DONE]`` ends the stream.
Chunks arrive with arbitrary boundaries, so the decoder keeps the trailing
partial line as carry-over until the next chunk completes it.
"""
from __future__ import annotations

import json
import logging
from typing import Any

from vulpecula.errors import DecodeError, TransportError
from vulpecula.types.streaming import ChunkPayload, FrameEvent
from vulpecula.types.usage import UsageRecord

logger = logging.getLogger(__name__)

FRAME_PREFIX = "data: "
SENTINEL = "[DONE]"


# ---------------------------------------------------------------------------
# Payload decoding
# ---------------------------------------------------------------------------


def _token_count(usage: dict[str, Any], key: str, payload: str) -> int | None:
    value = usage.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise DecodeError(f"usage.{key} is not a non-negative integer", payload=payload)
    return value


def _decode_usage(raw: Any, payload: str) -> UsageRecord:
    if not isinstance(raw, dict):
        raise DecodeError("usage is not an object", payload=payload)
    prompt = _token_count(raw, "prompt_tokens", payload)
    completion = _token_count(raw, "completion_tokens", payload)
    total = _token_count(raw, "total_tokens", payload)
    if prompt is None or completion is None:
        raise DecodeError("usage is missing token counts", payload=payload)
    return UsageRecord(
        prompt_tokens=prompt,
        completion_tokens=completion,
        total_tokens=total,
        authoritative=True,
        raw=raw,
    )


def _decode_fragment(choices: Any, payload: str) -> str | None:
    if not isinstance(choices, list):
        raise DecodeError("choices is not a list", payload=payload)
    if not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        raise DecodeError("choice is not an object", payload=payload)
    delta = first.get("delta")
    if delta is None:
        # Some providers put the final text on ``message`` instead of ``delta``.
        delta = first.get("message") or {}
    if not isinstance(delta, dict):
        raise DecodeError("delta is not an object", payload=payload)
    content = delta.get("content")
    if content is None:
        return ""
    if not isinstance(content, str):
        raise DecodeError("delta.content is not a string", payload=payload)
    return content


def decode_payload(payload: str) -> ChunkPayload:
    """Decode one frame payload into a typed :class:`ChunkPayload`.

    Raises :class:`DecodeError` for payloads that are not a usable record,
    and :class:`TransportError` when the provider reports an error in-band.
    """
    try:
        record = json.loads(payload)
    except (json.JSONDecodeError, ValueError) as exc:
        raise DecodeError(f"invalid JSON: {exc}", payload=payload, cause=exc) from exc

    if not isinstance(record, dict):
        raise DecodeError("payload is not an object", payload=payload)

    error = record.get("error")
    if isinstance(error, dict):
        code = error.get("code")
        raise TransportError(
            str(error.get("message") or "provider error during stream"),
            status_code=code if isinstance(code, int) else None,
            raw=record,
        )

    has_choices = "choices" in record
    has_usage = record.get("usage") is not None
    if not has_choices and not has_usage:
        raise DecodeError("frame has neither choices nor usage", payload=payload)

    fragment = _decode_fragment(record["choices"], payload) if has_choices else None
    usage = None
    if has_usage:
        try:
            usage = _decode_usage(record["usage"], payload)
        except DecodeError as exc:
            # Keep the text; drop only the usage.
            if fragment is None:
                raise
            logger.warning("Ignoring malformed usage in frame: %s", exc)
    return ChunkPayload(fragment=fragment, usage=usage)


# ---------------------------------------------------------------------------
# Decoder
# ---------------------------------------------------------------------------


class FrameDecoder:
    """Stateful decoder fed with successive text chunks."""

    def __init__(self, prefix: str = FRAME_PREFIX, sentinel: str = SENTINEL) -> None:
        self._prefix = prefix
        self._sentinel = sentinel
        self._buffer = ""
        self._done = False
        self._flushed = False
        self.skipped_frames = 0

    @property
    def done(self) -> bool:
        """True once the sentinel has been seen."""
        return self._done

    @property
    def pending(self) -> str:
        """Carry-over text not yet terminated by a newline."""
        return self._buffer

    def feed(self, chunk: str) -> list[FrameEvent]:
        """Decode every complete line available after appending *chunk*."""
        if self._done:
            return []
        self._buffer += chunk
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()

        events: list[FrameEvent] = []
        for line in lines:
            if self._process_line(line, events):
                break
        return events

    def flush(self) -> list[FrameEvent]:
        """Decode the final carry-over when the transport closes.

        Runs at most once; later calls return nothing.
        """
        if self._done or self._flushed:
            return []
        self._flushed = True
        remainder, self._buffer = self._buffer, ""
        events: list[FrameEvent] = []
        if remainder.strip():
            self._process_line(remainder, events)
        return events

    def _process_line(self, line: str, events: list[FrameEvent]) -> bool:
        """Append events for one line. Returns True when the sentinel is hit."""
        line = line.strip()
        if not line or not line.startswith(self._prefix):
            return False
        payload = line[len(self._prefix):]

        if payload == self._sentinel:
            logger.debug("Stream sentinel received")
            self._done = True
            self._buffer = ""
            events.append(FrameEvent.done())
            return True

        try:
            decoded = decode_payload(payload)
        except DecodeError as exc:
            self.skipped_frames += 1
            logger.warning("Skipping undecodable frame: %s (data=%r)", exc, payload[:200])
            return False

        if decoded.fragment is not None:
            events.append(FrameEvent.token(decoded.fragment))
        if decoded.usage is not None:
            events.append(FrameEvent.usage_snapshot(decoded.usage))
        return False
