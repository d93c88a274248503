"""TradingView chart link helpers."""

from __future__ import annotations

from datetime import datetime, timezone
from urllib.parse import urlencode

from strategy_hub.library.models import BacktestInput

_CHART_URL = "https://www.tradingview.com/chart/"

_MINUTES_PER_UNIT = {"D": 1440, "W": 10080, "M": 43200}


def format_timeframe(timeframe: str) -> str:
    """Convert a timeframe like ``15m``/``4h``/``1d`` to TradingView's interval code."""
    if len(timeframe) == 1:
        return timeframe.upper()

    unit = timeframe[-1]
    try:
        value = int(timeframe[:-1])
    except ValueError:
        return timeframe

    if unit == "m":
        return str(value)
    if unit == "h":
        return str(value * 60)
    if unit == "d":
        return "D"
    if unit in ("W", "M"):
        return unit
    return timeframe


def timeframe_minutes(timeframe: str) -> int | None:
    """Approximate bar length in minutes, or None when the timeframe is unknown."""
    interval = format_timeframe(timeframe)
    if interval.isdigit():
        return int(interval)
    return _MINUTES_PER_UNIT.get(interval)


def chart_url(backtest_input: BacktestInput) -> str:
    """Build a TradingView chart link for one backtest run."""
    params = {
        "symbol": backtest_input.asset,
        "interval": format_timeframe(backtest_input.timeframe),
    }
    if backtest_input.start_date and backtest_input.end_date:
        params["from"] = str(_unix_seconds(backtest_input.start_date))
        params["to"] = str(_unix_seconds(backtest_input.end_date))
    return f"{_CHART_URL}?{urlencode(params)}"


def _unix_seconds(value: str) -> int:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())
