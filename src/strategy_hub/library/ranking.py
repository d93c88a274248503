"""Sorted views of the strategy library."""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any, Literal

from strategy_hub.library.models import BacktestMetrics, SavedStrategy

_LEADING_NUMBER = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")


class SortKey(str, Enum):
    """Library sort keys."""

    SAVED_AT = "savedAt"
    NAME = "name"
    CONFIDENCE_SCORE = "confidenceScore"
    BEST_WIN_RATE = "bestWinRate"
    BEST_NET_PROFIT = "bestNetProfit"


class SortDirection(str, Enum):
    ASCENDING = "ascending"
    DESCENDING = "descending"


BestMetricField = Literal["win_rate", "net_profit"]


def parse_metric_value(value: Any) -> float:
    """Parse an opaque metric such as ``"65.2%"``, ``"+1,250.5"`` or ``0.42``.

    Numbers pass through. Strings yield their leading numeric prefix after
    thousands separators are removed. Anything else, including NaN, is -inf.
    """
    if isinstance(value, bool):
        return -math.inf
    if isinstance(value, (int, float)):
        number = float(value)
        return -math.inf if math.isnan(number) else number
    if not isinstance(value, str):
        return -math.inf
    match = _LEADING_NUMBER.match(value.replace(",", ""))
    if match is None:
        return -math.inf
    return float(match.group(1))


def metric_records(strategy: SavedStrategy) -> list[BacktestMetrics]:
    """Highlight metrics followed by the metrics of every recorded backtest."""
    return [strategy.highlights, *(record.metrics for record in strategy.backtest_history)]


def best_metric(strategy: SavedStrategy, field: BestMetricField) -> float:
    """Best value of ``field`` across highlights and history; -inf when none parses."""
    values = [parse_metric_value(getattr(metrics, field)) for metrics in metric_records(strategy)]
    return max(values, default=-math.inf)


_SORT_VALUE: dict[SortKey, Callable[[SavedStrategy], Any]] = {
    SortKey.SAVED_AT: lambda s: s.saved_at,
    SortKey.NAME: lambda s: s.name.casefold(),
    SortKey.CONFIDENCE_SCORE: lambda s: s.confidence_score,
    SortKey.BEST_WIN_RATE: lambda s: best_metric(s, "win_rate"),
    SortKey.BEST_NET_PROFIT: lambda s: best_metric(s, "net_profit"),
}


def rank(
    strategies: Iterable[SavedStrategy],
    metric_key: SortKey | str,
    direction: SortDirection | str = SortDirection.DESCENDING,
) -> list[SavedStrategy]:
    """Return the strategies ordered by ``metric_key``.

    The sort is stable in both directions, so ties keep their input order.
    Nothing is cached and the input is not modified.
    """
    key = SortKey(metric_key)
    descending = SortDirection(direction) is SortDirection.DESCENDING
    return sorted(strategies, key=_SORT_VALUE[key], reverse=descending)
