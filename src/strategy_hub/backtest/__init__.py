"""Backtest package exports."""

from strategy_hub.backtest.frames import chart_frame, library_frame, trades_frame

__all__ = [
    "chart_frame",
    "library_frame",
    "trades_frame",
]
