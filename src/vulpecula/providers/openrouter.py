"""OpenRouter chat-completions adapter."""
from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

from vulpecula._http import HttpClient
from vulpecula.errors import TransportError
from vulpecula.types.config import AdapterTimeout
from vulpecula.types.request import ChatRequest
from vulpecula.types.response import CompletionResponse
from vulpecula.types.usage import UsageRecord

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
API_KEY_PREFIX = "sk-or-"


class OpenRouterAdapter:
    """Adapter for OpenRouter's OpenAI-compatible chat-completions API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        referer: str | None = None,
        app_title: str | None = None,
        timeout: AdapterTimeout | None = None,
        http: HttpClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")

        headers: dict[str, str] = {
            "authorization": f"Bearer {api_key}",
            "content-type": "application/json",
        }
        if referer:
            headers["http-referer"] = referer
        if app_title:
            headers["x-title"] = app_title

        self._http = http or HttpClient(self._base_url, headers, timeout=timeout)

    @property
    def name(self) -> str:
        return "openrouter"

    # ------------------------------------------------------------------
    # Response parsing
    # ------------------------------------------------------------------

    def _parse_usage(self, raw: Any) -> UsageRecord | None:
        if not isinstance(raw, dict):
            return None
        try:
            return UsageRecord(
                prompt_tokens=int(raw.get("prompt_tokens") or 0),
                completion_tokens=int(raw.get("completion_tokens") or 0),
                total_tokens=raw.get("total_tokens"),
                raw=raw,
            )
        except (TypeError, ValueError):
            logger.warning("Ignoring malformed usage block: %r", raw)
            return None

    def _parse_response(self, raw: dict[str, Any]) -> CompletionResponse:
        """Parse a non-streamed chat-completions response."""
        error = raw.get("error")
        if isinstance(error, dict):
            raise TransportError(str(error.get("message") or "provider error"), raw=raw)

        choices = raw.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            raise TransportError("response has no choices", raw=raw)

        choice = choices[0]
        message = choice.get("message") or {}
        content = message.get("content") if isinstance(message, dict) else None

        return CompletionResponse(
            text=content if isinstance(content, str) else "",
            model=str(raw.get("model") or ""),
            id=str(raw.get("id") or ""),
            usage=self._parse_usage(raw.get("usage")),
            finish_reason=choice.get("finish_reason"),
            raw=raw,
        )

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def complete(self, request: ChatRequest) -> CompletionResponse:
        """Send a single-shot request and return the full response."""
        body = request.body()
        body["stream"] = False
        body.pop("stream_options", None)
        logger.debug("POST /chat/completions model=%s stream=false", request.model)
        response = self._http.post("/chat/completions", json=body)
        return self._parse_response(response.body)

    def stream(self, request: ChatRequest) -> Iterator[str]:
        """Send a streaming request and yield raw text chunks."""
        body = request.body()
        body["stream"] = True
        logger.debug("POST /chat/completions model=%s stream=true", request.model)
        yield from self._http.post_stream("/chat/completions", json=body)

    def list_models(self) -> Any:
        """Fetch the raw model listing."""
        return self._http.get("/models").body

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._http.close()
