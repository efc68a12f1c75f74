"""Credential provider collaborators."""
from __future__ import annotations

import os
from typing import Protocol, runtime_checkable

from vulpecula.errors import AuthError
from vulpecula.providers.openrouter import API_KEY_PREFIX
from vulpecula.store import KeyValueStore

API_KEY_STORE_KEY = "openrouter-api-key"
API_KEY_ENV = "OPENROUTER_API_KEY"


@runtime_checkable
class CredentialProvider(Protocol):
    """Supplies the current API key, or ``None`` when there is none."""

    def get_api_key(self) -> str | None:
        ...


def is_valid_key(key: str | None, prefix: str = API_KEY_PREFIX) -> bool:
    """True when *key* is non-blank and carries the expected prefix."""
    if key is None:
        return False
    key = key.strip()
    return bool(key) and key.startswith(prefix)


def require_api_key(credentials: CredentialProvider, prefix: str = API_KEY_PREFIX) -> str:
    """Return a usable key from *credentials* or raise :class:`AuthError`."""
    key = credentials.get_api_key()
    if key is None or not key.strip():
        raise AuthError("No API key found. Please enter your OpenRouter API key.")
    if not is_valid_key(key, prefix):
        raise AuthError(f"Malformed API key: expected a key starting with {prefix!r}")
    return key.strip()


class StaticCredentials:
    """A fixed key, mostly for tests and scripts."""

    def __init__(self, api_key: str | None) -> None:
        self._api_key = api_key

    def get_api_key(self) -> str | None:
        return self._api_key


class EnvCredentials:
    """Reads the key from an environment variable on every call."""

    def __init__(self, variable: str = API_KEY_ENV) -> None:
        self.variable = variable

    def get_api_key(self) -> str | None:
        return os.environ.get(self.variable)


class StoreCredentials:
    """Reads and writes the key through the persistence collaborator."""

    def __init__(
        self,
        store: KeyValueStore,
        key: str = API_KEY_STORE_KEY,
        prefix: str = API_KEY_PREFIX,
    ) -> None:
        self._store = store
        self._key = key
        self._prefix = prefix

    def get_api_key(self) -> str | None:
        value = self._store.get(self._key)
        return value if isinstance(value, str) and value else None

    def set_api_key(self, api_key: str) -> bool:
        """Persist *api_key* if it looks valid. Returns whether it was saved."""
        if not is_valid_key(api_key, self._prefix):
            return False
        self._store.set(self._key, api_key.strip())
        return True
