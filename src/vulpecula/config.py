"""Engine configuration."""
from __future__ import annotations

import os
from dataclasses import dataclass, field

from vulpecula.errors import ConfigurationError
from vulpecula.providers.openrouter import API_KEY_PREFIX, DEFAULT_BASE_URL
from vulpecula.types.config import AdapterTimeout

DEFAULT_MODEL = "anthropic/claude-3.5-sonnet"
DEFAULT_STORE_PATH = "~/.vulpecula/settings.json"


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}", cause=exc) from exc


def _env_int(name: str) -> int | None:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}", cause=exc) from exc


@dataclass(frozen=True)
class EngineConfig:
    """Settings for a chat session and its completion engine."""

    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    temperature: float = 0.7
    max_tokens: int | None = None
    key_prefix: str = API_KEY_PREFIX
    referer: str | None = None
    app_title: str | None = "Vulpecula"
    system_prompt: str | None = None
    enable_directives: bool = True
    token_interval: float = 0.0  # seconds; 0 = deliver every fragment immediately
    store_path: str = DEFAULT_STORE_PATH
    timeout: AdapterTimeout = field(default_factory=AdapterTimeout)

    def __post_init__(self) -> None:
        if not 0.0 <= self.temperature <= 2.0:
            raise ConfigurationError(f"temperature must be within 0.0-2.0, got {self.temperature}")
        if self.max_tokens is not None and self.max_tokens <= 0:
            raise ConfigurationError(f"max_tokens must be positive, got {self.max_tokens}")
        if self.token_interval < 0:
            raise ConfigurationError("token_interval must be non-negative")

    @classmethod
    def from_env(cls) -> EngineConfig:
        """Create a config from ``VULPECULA_*`` environment variables."""
        return cls(
            base_url=os.environ.get("VULPECULA_BASE_URL", DEFAULT_BASE_URL),
            model=os.environ.get("VULPECULA_MODEL", DEFAULT_MODEL),
            temperature=_env_float("VULPECULA_TEMPERATURE", 0.7),
            max_tokens=_env_int("VULPECULA_MAX_TOKENS"),
            referer=os.environ.get("VULPECULA_REFERER") or None,
            token_interval=_env_float("VULPECULA_TOKEN_INTERVAL", 0.0),
            store_path=os.environ.get("VULPECULA_STORE", DEFAULT_STORE_PATH),
        )
