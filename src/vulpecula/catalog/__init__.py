"""Model catalog: normalisation of provider listings, lookup, and ranking."""
from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence
from decimal import Decimal, InvalidOperation
from typing import Any

from vulpecula.catalog.types import ModelDescriptor

logger = logging.getLogger(__name__)

MAX_RECENT = 10
_PER_MILLION = Decimal(1_000_000)


# ---------------------------------------------------------------------------
# Listing normalisation
# ---------------------------------------------------------------------------


def _per_million(raw: Any) -> float | None:
    """Convert a per-token price (string or number) to USD per 1M tokens."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = Decimal(str(raw))
    except InvalidOperation:
        return None
    if not value.is_finite() or value < 0:
        return None
    return float(value * _PER_MILLION)


def _flag(mapping: Any, *keys: str) -> bool | None:
    if not isinstance(mapping, dict):
        return None
    for key in keys:
        if key in mapping:
            return bool(mapping[key])
    return None


def _normalize_entry(entry: Any) -> ModelDescriptor | None:
    if not isinstance(entry, dict):
        return None
    model_id = entry.get("id")
    if not isinstance(model_id, str) or not model_id.strip():
        return None
    context = entry.get("context_length")
    if isinstance(context, bool) or not isinstance(context, (int, float)) or context <= 0:
        return None
    pricing = entry.get("pricing")
    if not isinstance(pricing, dict):
        return None
    prompt_price = _per_million(pricing.get("prompt"))
    completion_price = _per_million(pricing.get("completion"))
    if prompt_price is None or completion_price is None:
        return None

    capabilities = entry.get("capabilities")
    architecture = entry.get("architecture")
    modalities = architecture.get("input_modalities") or () if isinstance(architecture, dict) else ()
    parameters = entry.get("supported_parameters") or ()
    if not isinstance(parameters, (list, tuple)):
        parameters = ()
    if not isinstance(modalities, (list, tuple)):
        modalities = ()

    vision = _flag(capabilities, "vision")
    tools = _flag(capabilities, "tools", "function_calling")
    streaming = _flag(capabilities, "streaming")

    return ModelDescriptor(
        id=model_id.strip(),
        display_name=str(entry.get("name") or model_id).strip(),
        context_window=int(context),
        prompt_price=prompt_price,
        completion_price=completion_price,
        supports_vision=vision if vision is not None else "image" in modalities,
        supports_tools=tools if tools is not None else "tools" in parameters,
        supports_streaming=streaming if streaming is not None else True,
        description=str(entry.get("description") or ""),
    )


def normalize_listing(raw: Any) -> list[ModelDescriptor]:
    """Turn a raw provider listing into descriptors.

    Accepts ``{"data": [...]}`` or a bare list.  Entries without an id, a
    positive context length, or both prices are dropped.  Later duplicates
    of an id are ignored.
    """
    entries = raw.get("data", []) if isinstance(raw, dict) else raw
    if not isinstance(entries, list):
        return []

    models: list[ModelDescriptor] = []
    seen: set[str] = set()
    for entry in entries:
        model = _normalize_entry(entry)
        if model is None:
            logger.debug("Dropping malformed catalog entry: %r", entry)
            continue
        if model.id in seen:
            continue
        seen.add(model.id)
        models.append(model)
    return models


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------


def rank_models(
    models: Iterable[ModelDescriptor], recent_ids: Sequence[str] = ()
) -> list[ModelDescriptor]:
    """Order models for presentation.

    Recently used models come first, most recent first.  The rest are
    sorted by descending average price with free models last; ties go by id.
    """
    by_id = {m.id: m for m in models}
    ranked: list[ModelDescriptor] = []
    for model_id in list(dict.fromkeys(recent_ids))[:MAX_RECENT]:
        model = by_id.pop(model_id, None)
        if model is not None:
            ranked.append(model)

    rest = sorted(
        by_id.values(),
        key=lambda m: (m.is_free, -m.average_price, m.id),
    )
    ranked.extend(rest)
    return ranked


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class ModelCatalog:
    """Immutable snapshot of known models.

    A refresh builds a new catalog; descriptors are never edited in place.
    """

    def __init__(self, models: Iterable[ModelDescriptor] = ()) -> None:
        self._models: tuple[ModelDescriptor, ...] = tuple(models)
        self._by_id = {m.id: m for m in self._models}

    @classmethod
    def from_listing(cls, raw: Any) -> ModelCatalog:
        """Build a catalog from a raw provider listing."""
        return cls(normalize_listing(raw))

    def refresh(self, raw: Any) -> ModelCatalog:
        """Return a new catalog built from *raw*, replacing this one wholesale."""
        catalog = ModelCatalog.from_listing(raw)
        logger.info("Model catalog refreshed: %d -> %d models", len(self), len(catalog))
        return catalog

    def get(self, model_id: str) -> ModelDescriptor | None:
        """Look up a model by exact id. Returns ``None`` if unknown."""
        return self._by_id.get(model_id)

    def ids(self) -> list[str]:
        return [m.id for m in self._models]

    def providers(self) -> list[str]:
        """Distinct provider tags in definition order."""
        return list(dict.fromkeys(m.provider for m in self._models if m.provider))

    def filter(
        self, provider: str | None = None, capability: str | None = None
    ) -> list[ModelDescriptor]:
        """Return models, optionally filtered by provider and capability.

        *capability* is one of ``"vision"``, ``"tools"``, ``"streaming"``
        or ``"free"``.
        """
        candidates = list(self._models)
        if provider is not None:
            candidates = [m for m in candidates if m.provider == provider]
        if capability == "vision":
            candidates = [m for m in candidates if m.supports_vision]
        elif capability == "tools":
            candidates = [m for m in candidates if m.supports_tools]
        elif capability == "streaming":
            candidates = [m for m in candidates if m.supports_streaming]
        elif capability == "free":
            candidates = [m for m in candidates if m.is_free]
        return candidates

    def ranked(self, recent_ids: Sequence[str] = ()) -> list[ModelDescriptor]:
        return rank_models(self._models, recent_ids)

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._by_id

    def __iter__(self) -> Iterator[ModelDescriptor]:
        return iter(self._models)

    def __len__(self) -> int:
        return len(self._models)


__all__ = [
    "MAX_RECENT",
    "ModelCatalog",
    "ModelDescriptor",
    "normalize_listing",
    "rank_models",
]
