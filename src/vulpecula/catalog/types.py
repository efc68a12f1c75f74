"""Model catalog types."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ModelDescriptor:
    """Metadata about a remote model, as of the last catalog refresh."""

    id: str
    """API identifier (e.g., "anthropic/claude-3.5-sonnet")."""

    display_name: str
    """Human-readable name."""

    context_window: int
    """Max total tokens."""

    prompt_price: float = 0.0
    """USD per 1M prompt tokens."""

    completion_price: float = 0.0
    """USD per 1M completion tokens."""

    supports_vision: bool = False
    """Whether the model accepts image inputs."""

    supports_tools: bool = False
    """Whether the model supports tool/function calling."""

    supports_streaming: bool = True
    """Whether the model can answer with a framed stream."""

    description: str = ""

    @property
    def provider(self) -> str:
        """Provider tag: the identifier's prefix before the first ``/``."""
        prefix, sep, _ = self.id.partition("/")
        return prefix if sep else ""

    @property
    def average_price(self) -> float:
        return (self.prompt_price + self.completion_price) / 2

    @property
    def is_free(self) -> bool:
        return self.prompt_price == 0 and self.completion_price == 0
