"""Chat adapter interface."""
from __future__ import annotations

from collections.abc import Iterator
from typing import Any, Protocol, runtime_checkable

from vulpecula.types.request import ChatRequest
from vulpecula.types.response import CompletionResponse


@runtime_checkable
class ChatAdapter(Protocol):
    """Protocol that every remote chat backend must satisfy."""

    @property
    def name(self) -> str:
        """Unique backend name."""
        ...

    def complete(self, request: ChatRequest) -> CompletionResponse:
        """Send a request and return the full response."""
        ...

    def stream(self, request: ChatRequest) -> Iterator[str]:
        """Send a request and yield raw response text chunks."""
        ...

    def list_models(self) -> Any:
        """Return the raw provider model listing."""
        ...

    def close(self) -> None:
        ...


class StubAdapter:
    """In-memory adapter for testing.

    *stream_chunks* holds one list of raw text chunks per expected streamed
    request; *responses* holds single-shot responses.  Both cycle when
    exhausted.  Every request is recorded on ``requests``.
    """

    def __init__(
        self,
        name: str = "stub",
        responses: list[CompletionResponse] | None = None,
        stream_chunks: list[list[str | Exception]] | None = None,
        listing: Any = None,
        error: Exception | None = None,
    ) -> None:
        self._name = name
        self._responses = responses or []
        self._stream_chunks = stream_chunks or []
        self._listing = listing if listing is not None else {"data": []}
        self._error = error
        self._response_idx = 0
        self._stream_idx = 0
        self.requests: list[ChatRequest] = []
        self.chunks_served = 0
        self.closed = False

    @property
    def name(self) -> str:
        return self._name

    def complete(self, request: ChatRequest) -> CompletionResponse:
        self.requests.append(request)
        if self._error is not None:
            raise self._error
        if not self._responses:
            return CompletionResponse()
        idx = self._response_idx % len(self._responses)
        self._response_idx += 1
        return self._responses[idx]

    def stream(self, request: ChatRequest) -> Iterator[str]:
        self.requests.append(request)
        if self._error is not None:
            raise self._error
        if not self._stream_chunks:
            return
        idx = self._stream_idx % len(self._stream_chunks)
        self._stream_idx += 1
        for chunk in self._stream_chunks[idx]:
            if isinstance(chunk, Exception):
                raise chunk
            self.chunks_served += 1
            yield chunk

    def list_models(self) -> Any:
        return self._listing

    def close(self) -> None:
        self.closed = True
