"""Token usage estimation and cost accounting.

Prices are USD per one million tokens.  All costs flow through
:func:`calculate_cost`.
"""
from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace

from vulpecula.catalog import ModelCatalog
from vulpecula.catalog.types import ModelDescriptor
from vulpecula.types.enums import Role
from vulpecula.types.messages import Message
from vulpecula.types.usage import CostRecord, UsageRecord

TOKENS_PER_UNIT = 1_000_000
CHARS_PER_TOKEN = 4


# ---------------------------------------------------------------------------
# Cost
# ---------------------------------------------------------------------------


def calculate_cost(usage: UsageRecord, model: ModelDescriptor | None) -> CostRecord:
    """Cost of *usage* at *model*'s prices. Unknown models (``None``) cost zero."""
    prompt_price = model.prompt_price if model is not None else 0.0
    completion_price = model.completion_price if model is not None else 0.0

    prompt_part = usage.prompt_tokens * prompt_price
    completion_part = usage.completion_tokens * completion_price
    return CostRecord(
        prompt_cost=prompt_part / TOKENS_PER_UNIT,
        completion_cost=completion_part / TOKENS_PER_UNIT,
        total_cost=(prompt_part + completion_part) / TOKENS_PER_UNIT,
        model_id=model.id if model is not None else "",
        authoritative=usage.authoritative,
    )


class CostCalculator:
    """Prices usage records against a model catalog."""

    def __init__(self, catalog: ModelCatalog) -> None:
        self.catalog = catalog

    def cost_for(self, model_id: str | None, usage: UsageRecord) -> CostRecord:
        model = self.catalog.get(model_id) if model_id else None
        record = calculate_cost(usage, model)
        if model is None and model_id:
            # Unknown to the catalog: zero prices, but keep the id for reporting.
            return replace(record, model_id=model_id)
        return record


# ---------------------------------------------------------------------------
# Estimation
# ---------------------------------------------------------------------------


def estimate_prompt_tokens(input_chars: int) -> int:
    """Estimate prompt tokens as ``ceil(characters / 4)``."""
    return math.ceil(max(input_chars, 0) / CHARS_PER_TOKEN)


def count_input_chars(messages: Iterable[Mapping[str, str]]) -> int:
    """Total characters of the content fields of wire-format messages."""
    return sum(len(m.get("content") or "") for m in messages)


def estimate_usage(input_chars: int, fragment_count: int) -> UsageRecord:
    """Best-effort usage while no authoritative snapshot has arrived."""
    return UsageRecord.estimate(
        prompt_tokens=estimate_prompt_tokens(input_chars),
        completion_tokens=max(fragment_count, 0),
    )


class UsageTracker:
    """Holds the best-known usage for one turn.

    Authoritative snapshots always supersede estimates; an estimate never
    replaces an authoritative snapshot.
    """

    def __init__(self, input_chars: int) -> None:
        self.input_chars = input_chars
        self.fragment_count = 0
        self._authoritative: UsageRecord | None = None

    def record_fragment(self) -> UsageRecord:
        self.fragment_count += 1
        return self.current

    def record_snapshot(self, usage: UsageRecord) -> UsageRecord:
        if usage.authoritative:
            self._authoritative = usage
        return self.current

    @property
    def has_authoritative(self) -> bool:
        return self._authoritative is not None

    @property
    def current(self) -> UsageRecord:
        if self._authoritative is not None:
            return self._authoritative
        return estimate_usage(self.input_chars, self.fragment_count)


# ---------------------------------------------------------------------------
# Conversation statistics
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChatStats:
    """Aggregate accounting over a conversation."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    cost: float = 0.0
    total_messages: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


def summarize(messages: Iterable[Message], calculator: CostCalculator) -> ChatStats:
    """Sum tokens and cost across *messages*.

    A stored cost is trusted; otherwise it is recomputed from stored usage.
    System messages count toward the message total only.
    """
    prompt = completion = count = 0
    cost = 0.0
    for message in messages:
        count += 1
        if message.role == Role.SYSTEM or message.usage is None:
            continue
        prompt += message.usage.prompt_tokens
        completion += message.usage.completion_tokens
        if message.cost is not None:
            cost += message.cost
        else:
            cost += calculator.cost_for(message.model, message.usage).total_cost or 0.0
    return ChatStats(
        prompt_tokens=prompt,
        completion_tokens=completion,
        cost=cost,
        total_messages=count,
    )
