"""Bounded most-recently-used list of model ids."""
from __future__ import annotations

from vulpecula.catalog import MAX_RECENT
from vulpecula.store import KeyValueStore

RECENT_MODELS_KEY = "recent-model-ids"


class RecentModels:
    """Tracks recently selected models in the persistence collaborator."""

    def __init__(
        self, store: KeyValueStore, key: str = RECENT_MODELS_KEY, limit: int = MAX_RECENT
    ) -> None:
        self._store = store
        self._key = key
        self._limit = min(limit, MAX_RECENT)

    def ids(self) -> list[str]:
        raw = self._store.get(self._key, [])
        if not isinstance(raw, list):
            return []
        return [m for m in raw if isinstance(m, str)][: self._limit]

    def touch(self, model_id: str) -> list[str]:
        """Move *model_id* to the front and persist the truncated list."""
        ids = [model_id] + [m for m in self.ids() if m != model_id]
        ids = ids[: self._limit]
        self._store.set(self._key, ids)
        return ids

    def clear(self) -> None:
        self._store.set(self._key, [])
