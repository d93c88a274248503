"""Immutable id-keyed collection of saved strategies."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from strategy_hub.errors import DuplicateStrategyError, StrategyNotFoundError
from strategy_hub.library.models import SavedStrategy


class StrategyCollection:
    """All saved strategies of one user.

    Ids are unique. Insertion order is kept so that ranking ties are stable,
    but it carries no meaning of its own. Mutators return a new collection and
    leave untouched entries as the very same objects.
    """

    __slots__ = ("_items",)

    def __init__(self, strategies: Iterable[SavedStrategy] = ()) -> None:
        items: dict[str, SavedStrategy] = {}
        for strategy in strategies:
            if strategy.id in items:
                raise DuplicateStrategyError(strategy.id)
            items[strategy.id] = strategy
        self._items = items

    @classmethod
    def _from_items(cls, items: dict[str, SavedStrategy]) -> StrategyCollection:
        collection = cls.__new__(cls)
        collection._items = items
        return collection

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[SavedStrategy]:
        return iter(self._items.values())

    def __contains__(self, strategy_id: object) -> bool:
        return strategy_id in self._items

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StrategyCollection):
            return NotImplemented
        return list(self._items.items()) == list(other._items.items())

    def __repr__(self) -> str:
        return f"StrategyCollection(size={len(self._items)})"

    def get(self, strategy_id: str) -> SavedStrategy | None:
        return self._items.get(strategy_id)

    def require(self, strategy_id: str) -> SavedStrategy:
        """Return the strategy with ``strategy_id`` or raise StrategyNotFoundError."""
        strategy = self._items.get(strategy_id)
        if strategy is None:
            raise StrategyNotFoundError(strategy_id)
        return strategy

    def add(self, strategy: SavedStrategy) -> StrategyCollection:
        if strategy.id in self._items:
            raise DuplicateStrategyError(strategy.id)
        return self._from_items({**self._items, strategy.id: strategy})

    def replace(self, strategy: SavedStrategy) -> StrategyCollection:
        if strategy.id not in self._items:
            raise StrategyNotFoundError(strategy.id)
        return self._from_items({**self._items, strategy.id: strategy})

    def remove(self, strategy_id: str) -> StrategyCollection:
        if strategy_id not in self._items:
            raise StrategyNotFoundError(strategy_id)
        items = dict(self._items)
        del items[strategy_id]
        return self._from_items(items)

    def to_list(self) -> list[SavedStrategy]:
        return list(self._items.values())
