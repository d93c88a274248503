"""Backtest history accumulation for saved strategies."""

from __future__ import annotations

from strategy_hub.library.collection import StrategyCollection
from strategy_hub.library.models import BacktestRecord, SavedStrategy
from strategy_hub.utils.logging import get_logger

_logger = get_logger("strategy_hub.library.history")


def prepend_record(strategy: SavedStrategy, record: BacktestRecord) -> SavedStrategy:
    """Return a copy of ``strategy`` with ``record`` as its newest history entry."""
    return strategy.model_copy(
        update={"backtest_history": (record, *strategy.backtest_history)}
    )


def append_backtest(
    collection: StrategyCollection,
    target_id: str,
    record: BacktestRecord,
) -> StrategyCollection:
    """Record a backtest against the saved strategy with ``target_id``.

    An unknown id leaves the collection as it is: a backtest run on an unsaved
    or stale strategy is simply not kept.
    """
    target = collection.get(target_id)
    if target is None:
        _logger.debug("backtest_not_recorded", strategy_id=target_id, reason="unknown_id")
        return collection
    return collection.replace(prepend_record(target, record))
