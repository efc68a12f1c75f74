"""Error hierarchy for the vulpecula completion engine."""
from __future__ import annotations

from typing import Any


class VulpeculaError(Exception):
    """Base error for all vulpecula errors."""

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


# ---------------------------------------------------------------------------
# Turn-terminating errors
# ---------------------------------------------------------------------------


class AuthError(VulpeculaError):
    """Missing, malformed, or rejected credential."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.status_code = status_code


class TransportError(VulpeculaError):
    """Network failure or non-success response from the remote endpoint."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        raw: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.status_code = status_code
        self.raw = raw


class RequestTimeoutError(TransportError):
    """The remote endpoint did not answer in time."""


class NetworkError(TransportError):
    """A network-level error occurred."""


class AbortError(VulpeculaError):
    """The turn was aborted by the caller."""


class ValidationError(VulpeculaError):
    """A send request was rejected before reaching the network."""


class ConfigurationError(VulpeculaError):
    """Invalid engine configuration."""


# ---------------------------------------------------------------------------
# Locally recovered errors
# ---------------------------------------------------------------------------


class DecodeError(VulpeculaError):
    """A single stream frame could not be decoded."""

    def __init__(
        self, message: str, *, payload: str = "", cause: BaseException | None = None
    ) -> None:
        super().__init__(message, cause=cause)
        self.payload = payload


class DirectiveParseError(VulpeculaError):
    """Directive markup in assistant text is malformed."""

    def __init__(self, message: str, *, position: int | None = None) -> None:
        super().__init__(message)
        self.position = position


# ---------------------------------------------------------------------------
# Helper
# ---------------------------------------------------------------------------


def error_from_status_code(
    status_code: int,
    message: str,
    *,
    raw: dict[str, Any] | None = None,
) -> VulpeculaError:
    """Map a non-success HTTP status code to the appropriate error type."""
    if status_code in (401, 403):
        return AuthError(message, status_code=status_code)
    return TransportError(message, status_code=status_code, raw=raw)
