"""Persistence gateway between the strategy collection and a key-value store."""

from __future__ import annotations

import json

from pydantic import ValidationError

from strategy_hub.errors import DuplicateStrategyError, PersistenceError
from strategy_hub.library.collection import StrategyCollection
from strategy_hub.library.models import saved_strategies_adapter
from strategy_hub.library.store import KeyValueStore
from strategy_hub.utils.logging import get_logger

DEFAULT_LIBRARY_KEY = "tradingStrategies"


class StrategyRepository:
    """Sole reader and writer of the saved-strategy slot.

    Writes always replace the whole collection. Reads never raise: an absent,
    unreadable or malformed slot yields an empty collection.
    """

    def __init__(self, store: KeyValueStore, key: str = DEFAULT_LIBRARY_KEY) -> None:
        self._store = store
        self._key = key
        self._logger = get_logger("strategy_hub.library.repository")

    @property
    def key(self) -> str:
        return self._key

    def load(self) -> StrategyCollection:
        try:
            blob = self._store.get(self._key)
        except PersistenceError as exc:
            self._logger.error("library_load_failed", key=self._key, reason="read_error", error=str(exc))
            return StrategyCollection()

        if blob is None or not blob.strip():
            return StrategyCollection()

        try:
            strategies = saved_strategies_adapter.validate_json(blob)
            collection = StrategyCollection(strategies)
        except ValidationError as exc:
            self._logger.error(
                "library_load_failed",
                key=self._key,
                reason="malformed_blob",
                error_count=exc.error_count(),
            )
            return StrategyCollection()
        except DuplicateStrategyError as exc:
            self._logger.error(
                "library_load_failed",
                key=self._key,
                reason="duplicate_id",
                strategy_id=exc.strategy_id,
            )
            return StrategyCollection()

        self._logger.debug("library_loaded", key=self._key, size=len(collection))
        return collection

    def save(self, collection: StrategyCollection) -> bool:
        """Write the whole collection. Returns False when the store rejected it."""
        blob = json.dumps(
            [strategy.to_wire() for strategy in collection],
            ensure_ascii=False,
        )
        try:
            self._store.set(self._key, blob)
        except PersistenceError as exc:
            self._logger.error("library_save_failed", key=self._key, size=len(collection), error=str(exc))
            return False
        self._logger.debug("library_saved", key=self._key, size=len(collection))
        return True
