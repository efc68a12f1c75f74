"""Tests for usage estimation and cost accounting."""
from __future__ import annotations

import pytest

from vulpecula.catalog import ModelCatalog
from vulpecula.catalog.types import ModelDescriptor
from vulpecula.cost import (
    ChatStats,
    CostCalculator,
    UsageTracker,
    calculate_cost,
    count_input_chars,
    estimate_prompt_tokens,
    estimate_usage,
    summarize,
)
from vulpecula.types.messages import Message
from vulpecula.types.usage import CostRecord, UsageRecord

SONNET = ModelDescriptor(
    id="anthropic/claude-3.5-sonnet",
    display_name="Claude 3.5 Sonnet",
    context_window=200_000,
    prompt_price=3.0,
    completion_price=15.0,
)
FREE = ModelDescriptor(id="meta/llama-free", display_name="Llama", context_window=8192)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


def test_usage_total_defaults_to_sum() -> None:
    assert UsageRecord(prompt_tokens=10, completion_tokens=5).total_tokens == 15


def test_usage_keeps_server_total() -> None:
    assert UsageRecord(prompt_tokens=10, completion_tokens=5, total_tokens=20).total_tokens == 20


def test_usage_rejects_negative() -> None:
    with pytest.raises(ValueError):
        UsageRecord(prompt_tokens=-1)


def test_usage_addition() -> None:
    total = UsageRecord(prompt_tokens=1, completion_tokens=2) + UsageRecord.estimate(3, 4)
    assert (total.prompt_tokens, total.completion_tokens, total.total_tokens) == (4, 6, 10)
    assert total.authoritative is False


def test_cost_record_rejects_negative() -> None:
    with pytest.raises(ValueError):
        CostRecord(prompt_cost=-0.1)


# ---------------------------------------------------------------------------
# calculate_cost
# ---------------------------------------------------------------------------


def test_reference_cost_example() -> None:
    cost = calculate_cost(UsageRecord(prompt_tokens=1000, completion_tokens=500), SONNET)
    assert cost.total_cost == 0.0105
    assert cost.prompt_cost == pytest.approx(0.003)
    assert cost.completion_cost == pytest.approx(0.0075)
    assert cost.model_id == SONNET.id


def test_free_model_costs_nothing() -> None:
    cost = calculate_cost(UsageRecord(prompt_tokens=123_456, completion_tokens=7890), FREE)
    assert cost.total_cost == 0.0


def test_unknown_model_costs_nothing() -> None:
    cost = calculate_cost(UsageRecord(prompt_tokens=100, completion_tokens=100), None)
    assert cost.total_cost == 0.0
    assert cost.model_id == ""


@pytest.mark.parametrize("factor", [2, 3, 10])
def test_cost_scales_linearly(factor: int) -> None:
    base = calculate_cost(UsageRecord(prompt_tokens=1000, completion_tokens=500), SONNET)
    scaled = calculate_cost(
        UsageRecord(prompt_tokens=1000 * factor, completion_tokens=500 * factor), SONNET
    )
    assert scaled.total_cost == pytest.approx(base.total_cost * factor)


def test_cost_inherits_authoritative_flag() -> None:
    cost = calculate_cost(UsageRecord.estimate(10, 10), SONNET)
    assert cost.authoritative is False


def test_calculator_unknown_model_keeps_id() -> None:
    calculator = CostCalculator(ModelCatalog([SONNET]))
    cost = calculator.cost_for("nobody/nothing", UsageRecord(prompt_tokens=5, completion_tokens=5))
    assert cost.total_cost == 0.0
    assert cost.model_id == "nobody/nothing"


def test_calculator_known_model() -> None:
    calculator = CostCalculator(ModelCatalog([SONNET]))
    cost = calculator.cost_for(SONNET.id, UsageRecord(prompt_tokens=1000, completion_tokens=500))
    assert cost.total_cost == 0.0105


# ---------------------------------------------------------------------------
# Estimation
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("chars,tokens", [(0, 0), (1, 1), (4, 1), (5, 2), (400, 100)])
def test_estimate_prompt_tokens(chars: int, tokens: int) -> None:
    assert estimate_prompt_tokens(chars) == tokens


def test_count_input_chars() -> None:
    messages = [{"role": "system", "content": "abcd"}, {"role": "user", "content": "xy"}]
    assert count_input_chars(messages) == 6


def test_estimate_usage_is_not_authoritative() -> None:
    usage = estimate_usage(input_chars=9, fragment_count=4)
    assert usage == UsageRecord(prompt_tokens=3, completion_tokens=4, authoritative=False)


def test_tracker_estimates_until_snapshot() -> None:
    tracker = UsageTracker(input_chars=40)
    tracker.record_fragment()
    assert tracker.record_fragment() == UsageRecord.estimate(10, 2)
    assert not tracker.has_authoritative

    snapshot = UsageRecord(prompt_tokens=12, completion_tokens=3)
    assert tracker.record_snapshot(snapshot) == snapshot
    assert tracker.record_fragment() == snapshot
    assert tracker.current == snapshot


def test_tracker_ignores_estimated_snapshot_after_authoritative() -> None:
    tracker = UsageTracker(input_chars=4)
    real = UsageRecord(prompt_tokens=1, completion_tokens=1)
    tracker.record_snapshot(real)
    tracker.record_snapshot(UsageRecord.estimate(99, 99))
    assert tracker.current == real


def test_tracker_latest_snapshot_wins() -> None:
    tracker = UsageTracker(input_chars=4)
    tracker.record_snapshot(UsageRecord(prompt_tokens=1, completion_tokens=1))
    tracker.record_snapshot(UsageRecord(prompt_tokens=1, completion_tokens=7))
    assert tracker.current.completion_tokens == 7


# ---------------------------------------------------------------------------
# summarize
# ---------------------------------------------------------------------------


def test_summarize_uses_stored_cost_and_recomputes_missing() -> None:
    calculator = CostCalculator(ModelCatalog([SONNET]))
    stored = Message.assistant("a", model=SONNET.id)
    stored.usage = UsageRecord(prompt_tokens=10, completion_tokens=10)
    stored.cost = 1.5
    recomputed = Message.assistant("b", model=SONNET.id)
    recomputed.usage = UsageRecord(prompt_tokens=1000, completion_tokens=500)
    messages = [Message.system("sys"), Message.user("hi"), stored, recomputed]

    stats = summarize(messages, calculator)
    assert stats.prompt_tokens == 1010
    assert stats.completion_tokens == 510
    assert stats.cost == pytest.approx(1.5105)
    assert stats.total_messages == 4
    assert stats.total_tokens == 1520


def test_summarize_empty() -> None:
    stats = summarize([], CostCalculator(ModelCatalog()))
    assert stats == ChatStats()
