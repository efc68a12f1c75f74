"""Token usage and cost records."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class UsageRecord:
    """Token counts for one exchange.

    ``total_tokens`` defaults to the sum of the two classes.  When the
    server reports its own total, that value is kept as-is.  Records built
    from character heuristics while streaming carry ``authoritative=False``.
    """

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int | None = None
    authoritative: bool = True
    raw: dict[str, Any] | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.prompt_tokens < 0 or self.completion_tokens < 0:
            raise ValueError("token counts must be non-negative")
        if self.total_tokens is None:
            object.__setattr__(
                self, "total_tokens", self.prompt_tokens + self.completion_tokens
            )
        elif self.total_tokens < 0:
            raise ValueError("token counts must be non-negative")

    @classmethod
    def estimate(cls, prompt_tokens: int, completion_tokens: int) -> UsageRecord:
        """Build a non-authoritative record from heuristic counts."""
        return cls(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            authoritative=False,
        )

    def __add__(self, other: UsageRecord) -> UsageRecord:
        if not isinstance(other, UsageRecord):
            return NotImplemented
        prompt = self.prompt_tokens + other.prompt_tokens
        completion = self.completion_tokens + other.completion_tokens
        return UsageRecord(
            prompt_tokens=prompt,
            completion_tokens=completion,
            total_tokens=(self.total_tokens or 0) + (other.total_tokens or 0),
            authoritative=self.authoritative and other.authoritative,
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "prompt": self.prompt_tokens,
            "completion": self.completion_tokens,
            "total": self.total_tokens or 0,
        }


@dataclass(frozen=True)
class CostRecord:
    """Monetary cost of one exchange, in USD."""

    prompt_cost: float = 0.0
    completion_cost: float = 0.0
    total_cost: float | None = None
    model_id: str = ""
    authoritative: bool = True

    def __post_init__(self) -> None:
        if self.prompt_cost < 0 or self.completion_cost < 0:
            raise ValueError("cost must be non-negative")
        if self.total_cost is None:
            object.__setattr__(
                self, "total_cost", self.prompt_cost + self.completion_cost
            )
        elif self.total_cost < 0:
            raise ValueError("cost must be non-negative")
