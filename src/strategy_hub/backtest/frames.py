"""Tabular views of backtest records and of the strategy library."""

from __future__ import annotations

from collections.abc import Sequence

import pandas as pd  # type: ignore[import-untyped]

from strategy_hub.library.models import BacktestRecord, SavedStrategy
from strategy_hub.library.ranking import best_metric

_OHLC_COLUMNS = ["time", "open", "high", "low", "close"]
_TRADE_COLUMNS = ["time", "side", "price"]
_LIBRARY_COLUMNS = [
    "id",
    "name",
    "saved_at",
    "market",
    "trading_style",
    "confidence",
    "backtests",
    "best_win_rate",
    "best_net_profit",
]


def chart_frame(record: BacktestRecord) -> pd.DataFrame:
    """OHLC points as a time-sorted dataframe with UTC timestamps.

    Rows whose time or prices cannot be parsed are dropped.
    """
    df = pd.DataFrame([point.model_dump() for point in record.chart_data], columns=_OHLC_COLUMNS)
    df["time"] = pd.to_datetime(df["time"], utc=True, errors="coerce", format="mixed")
    numeric_cols = ["open", "high", "low", "close"]
    for col in numeric_cols:
        df[col] = pd.to_numeric(df[col], errors="coerce")
    df = df.dropna(subset=["time", *numeric_cols])
    return df.sort_values("time", kind="stable").reset_index(drop=True)


def trades_frame(record: BacktestRecord) -> pd.DataFrame:
    """Trade markers as a time-sorted dataframe."""
    df = pd.DataFrame([trade.model_dump() for trade in record.trades], columns=_TRADE_COLUMNS)
    df["time"] = pd.to_datetime(df["time"], utc=True, errors="coerce", format="mixed")
    df["price"] = pd.to_numeric(df["price"], errors="coerce")
    df = df.dropna(subset=["time", "price"])
    return df.sort_values("time", kind="stable").reset_index(drop=True)


def library_frame(strategies: Sequence[SavedStrategy]) -> pd.DataFrame:
    """One summary row per strategy, in the given order."""
    rows = [
        {
            "id": strategy.id,
            "name": strategy.name,
            "saved_at": strategy.saved_at,
            "market": strategy.market,
            "trading_style": strategy.trading_style,
            "confidence": strategy.confidence_score,
            "backtests": len(strategy.backtest_history),
            "best_win_rate": best_metric(strategy, "win_rate"),
            "best_net_profit": best_metric(strategy, "net_profit"),
        }
        for strategy in strategies
    ]
    return pd.DataFrame(rows, columns=_LIBRARY_COLUMNS)
