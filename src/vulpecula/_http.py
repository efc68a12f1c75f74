"""HTTP client wrapper around httpx."""
from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

import httpx

from vulpecula.errors import NetworkError, RequestTimeoutError, error_from_status_code
from vulpecula.types.config import AdapterTimeout


@dataclass(frozen=True)
class HttpResponse:
    """Parsed HTTP response."""

    status_code: int
    body: dict[str, Any]
    headers: dict[str, str]
    raw_text: str = ""


def _error_message(body: Any, raw_text: str) -> str:
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return str(body["error"].get("message") or raw_text)
    return raw_text


def _json_or_empty(resp: httpx.Response) -> dict[str, Any]:
    try:
        body = resp.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


class HttpClient:
    """Thin wrapper around :mod:`httpx` that maps errors into vulpecula exceptions."""

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str],
        timeout: AdapterTimeout | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        t = timeout or AdapterTimeout()
        self._client = httpx.Client(
            base_url=base_url,
            headers=headers,
            timeout=httpx.Timeout(
                connect=t.connect,
                read=t.stream_read,
                write=t.request,
                pool=t.connect,
            ),
            transport=transport,
        )
        self._request_timeout = t.request

    def _raise_for_status(self, resp: httpx.Response, raw_text: str) -> None:
        if resp.status_code >= 300:
            body = _json_or_empty(resp)
            raise error_from_status_code(
                resp.status_code, _error_message(body, raw_text), raw=body
            )

    def get(self, path: str) -> HttpResponse:
        """Send a GET request and return the parsed response."""
        try:
            resp = self._client.get(path, timeout=self._request_timeout)
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError(str(exc), cause=exc) from exc
        except httpx.HTTPError as exc:
            raise NetworkError(str(exc), cause=exc) from exc

        self._raise_for_status(resp, resp.text)
        return HttpResponse(
            status_code=resp.status_code,
            body=_json_or_empty(resp),
            headers=dict(resp.headers),
            raw_text=resp.text,
        )

    def post(
        self,
        path: str,
        json: dict[str, Any],
        extra_headers: dict[str, str] | None = None,
    ) -> HttpResponse:
        """Send a POST request and return the parsed response.

        Raises a vulpecula error on non-2xx status or transport failure.
        """
        try:
            resp = self._client.post(
                path, json=json, headers=extra_headers or {}, timeout=self._request_timeout
            )
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError(str(exc), cause=exc) from exc
        except httpx.HTTPError as exc:
            raise NetworkError(str(exc), cause=exc) from exc

        self._raise_for_status(resp, resp.text)
        return HttpResponse(
            status_code=resp.status_code,
            body=_json_or_empty(resp),
            headers=dict(resp.headers),
            raw_text=resp.text,
        )

    def post_stream(
        self,
        path: str,
        json: dict[str, Any],
        extra_headers: dict[str, str] | None = None,
    ) -> Iterator[str]:
        """Send a streaming POST request and yield decoded text chunks.

        Chunks are yielded as they arrive, without any line splitting.
        Closing the generator closes the underlying response.
        """
        try:
            with self._client.stream(
                "POST", path, json=json, headers=extra_headers or {}
            ) as resp:
                if resp.status_code >= 300:
                    raw_text = resp.read().decode("utf-8", errors="replace")
                    self._raise_for_status(resp, raw_text)

                for chunk in resp.iter_text():
                    if chunk:
                        yield chunk
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError(str(exc), cause=exc) from exc
        except httpx.HTTPError as exc:
            raise NetworkError(str(exc), cause=exc) from exc

    def close(self) -> None:
        """Close the underlying httpx client."""
        self._client.close()
