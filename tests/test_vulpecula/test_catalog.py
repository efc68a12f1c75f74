"""Tests for catalog normalisation and ranking."""
from __future__ import annotations

import pytest

from vulpecula.catalog import MAX_RECENT, ModelCatalog, normalize_listing, rank_models
from vulpecula.catalog.types import ModelDescriptor


def _entry(model_id: str, prompt: str = "0.000003", completion: str = "0.000015", **extra) -> dict:
    entry = {
        "id": model_id,
        "name": model_id.title(),
        "context_length": 8192,
        "pricing": {"prompt": prompt, "completion": completion},
    }
    entry.update(extra)
    return entry


def _model(model_id: str, prompt: float = 1.0, completion: float = 1.0) -> ModelDescriptor:
    return ModelDescriptor(
        id=model_id,
        display_name=model_id,
        context_window=4096,
        prompt_price=prompt,
        completion_price=completion,
    )


# ---------------------------------------------------------------------------
# ModelDescriptor
# ---------------------------------------------------------------------------


def test_descriptor_provider_and_prices() -> None:
    model = _model("openai/gpt-4o", prompt=2.0, completion=6.0)
    assert model.provider == "openai"
    assert model.average_price == 4.0
    assert not model.is_free


def test_descriptor_without_slash_has_empty_provider() -> None:
    assert _model("local-model").provider == ""


def test_descriptor_is_frozen() -> None:
    model = _model("a/b")
    with pytest.raises(AttributeError):
        model.prompt_price = 9.0  # type: ignore[misc]


# ---------------------------------------------------------------------------
# normalize_listing
# ---------------------------------------------------------------------------


def test_normalize_converts_per_token_prices() -> None:
    [model] = normalize_listing({"data": [_entry("anthropic/claude-3.5-sonnet")]})
    assert model.prompt_price == 3.0
    assert model.completion_price == 15.0
    assert model.context_window == 8192
    assert model.display_name == "Anthropic/Claude-3.5-Sonnet"


def test_normalize_accepts_bare_list() -> None:
    assert [m.id for m in normalize_listing([_entry("a/x"), _entry("b/y")])] == ["a/x", "b/y"]


@pytest.mark.parametrize(
    "entry",
    [
        {"context_length": 100, "pricing": {"prompt": "0", "completion": "0"}},
        _entry(""),
        _entry("a/x", context_length=0),
        _entry("a/x", context_length=None),
        _entry("a/x", context_length=True),
        {"id": "a/x", "context_length": 100, "pricing": {"prompt": "0"}},
        {"id": "a/x", "context_length": 100},
        _entry("a/x", prompt="free"),
        _entry("a/x", completion="-1"),
        "not-a-dict",
    ],
)
def test_normalize_drops_malformed_entries(entry: object) -> None:
    assert normalize_listing({"data": [entry, _entry("ok/model")]})[0].id == "ok/model"
    assert len(normalize_listing([entry])) == 0


def test_normalize_unusable_listing_is_empty() -> None:
    assert normalize_listing(None) == []
    assert normalize_listing({"data": "nope"}) == []


def test_normalize_skips_duplicate_ids() -> None:
    models = normalize_listing([_entry("a/x", prompt="0.000001"), _entry("a/x", prompt="0.000009")])
    assert len(models) == 1
    assert models[0].prompt_price == 1.0


def test_normalize_capabilities_from_architecture_and_parameters() -> None:
    [model] = normalize_listing([
        _entry(
            "openai/gpt-4o",
            architecture={"input_modalities": ["text", "image"]},
            supported_parameters=["tools", "temperature"],
        )
    ])
    assert model.supports_vision
    assert model.supports_tools
    assert model.supports_streaming


def test_normalize_explicit_capabilities_win() -> None:
    [model] = normalize_listing([
        _entry(
            "o/o1",
            capabilities={"vision": False, "function_calling": True, "streaming": False},
            architecture={"input_modalities": ["image"]},
        )
    ])
    assert not model.supports_vision
    assert model.supports_tools
    assert not model.supports_streaming


def test_normalize_ignores_odd_capability_shapes() -> None:
    [model] = normalize_listing([
        _entry("a/x", architecture="text", supported_parameters="tools", capabilities=[1])
    ])
    assert not model.supports_vision
    assert not model.supports_tools
    assert model.supports_streaming


def test_normalize_free_model() -> None:
    [model] = normalize_listing([_entry("meta/llama:free", prompt="0", completion="0")])
    assert model.is_free


# ---------------------------------------------------------------------------
# rank_models
# ---------------------------------------------------------------------------


def test_rank_by_descending_average_price_free_last() -> None:
    models = [
        _model("a/cheap", 1.0, 1.0),
        _model("a/free", 0.0, 0.0),
        _model("a/pricey", 10.0, 30.0),
        _model("a/mid", 3.0, 15.0),
    ]
    assert [m.id for m in rank_models(models)] == ["a/pricey", "a/mid", "a/cheap", "a/free"]


def test_rank_ties_broken_by_id() -> None:
    models = [_model("z/m"), _model("a/m"), _model("m/m")]
    assert [m.id for m in rank_models(models)] == ["a/m", "m/m", "z/m"]


def test_rank_recent_first_in_recency_order() -> None:
    models = [_model("a/one", 9, 9), _model("a/two", 1, 1), _model("a/free", 0, 0)]
    ranked = rank_models(models, ["a/free", "missing/model", "a/two"])
    assert [m.id for m in ranked] == ["a/free", "a/two", "a/one"]


def test_rank_recent_list_is_bounded() -> None:
    models = [_model(f"p/m{i:02d}", 1, 1) for i in range(15)]
    recent = [f"p/m{i:02d}" for i in reversed(range(15))]
    ranked = rank_models(models, recent)
    assert [m.id for m in ranked[:MAX_RECENT]] == recent[:MAX_RECENT]
    assert [m.id for m in ranked[MAX_RECENT:]] == ["p/m00", "p/m01", "p/m02", "p/m03", "p/m04"]


# ---------------------------------------------------------------------------
# ModelCatalog
# ---------------------------------------------------------------------------


def test_catalog_lookup_and_container_protocol() -> None:
    catalog = ModelCatalog.from_listing([_entry("openai/gpt-4o"), _entry("anthropic/claude")])
    assert len(catalog) == 2
    assert "openai/gpt-4o" in catalog
    assert "nope" not in catalog
    assert catalog.get("nope") is None
    assert catalog.get("openai/gpt-4o").provider == "openai"
    assert catalog.ids() == ["openai/gpt-4o", "anthropic/claude"]
    assert [m.id for m in catalog] == catalog.ids()
    assert catalog.providers() == ["openai", "anthropic"]


def test_catalog_filter() -> None:
    catalog = ModelCatalog([
        ModelDescriptor("openai/gpt-4o", "GPT-4o", 128_000, 2.5, 10.0, supports_vision=True),
        ModelDescriptor("openai/o1", "o1", 128_000, 15.0, 60.0, supports_streaming=False),
        ModelDescriptor("meta/llama", "Llama", 8192, supports_tools=True),
    ])
    assert [m.id for m in catalog.filter(provider="openai")] == ["openai/gpt-4o", "openai/o1"]
    assert [m.id for m in catalog.filter(capability="vision")] == ["openai/gpt-4o"]
    assert [m.id for m in catalog.filter(capability="tools")] == ["meta/llama"]
    assert [m.id for m in catalog.filter(capability="free")] == ["meta/llama"]
    assert [m.id for m in catalog.filter(provider="openai", capability="streaming")] == ["openai/gpt-4o"]


def test_catalog_refresh_replaces_wholesale() -> None:
    old = ModelCatalog.from_listing([_entry("a/old")])
    new = old.refresh({"data": [_entry("b/new")]})
    assert new is not old
    assert new.ids() == ["b/new"]
    assert old.ids() == ["a/old"]


def test_catalog_ranked_uses_recent_ids() -> None:
    catalog = ModelCatalog([_model("a/x", 5, 5), _model("a/y", 1, 1)])
    assert [m.id for m in catalog.ranked(["a/y"])] == ["a/y", "a/x"]
