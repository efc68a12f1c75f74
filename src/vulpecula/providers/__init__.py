"""Remote chat backends."""
from __future__ import annotations

from vulpecula.providers.openrouter import API_KEY_PREFIX, DEFAULT_BASE_URL, OpenRouterAdapter

__all__ = ["API_KEY_PREFIX", "DEFAULT_BASE_URL", "OpenRouterAdapter"]
