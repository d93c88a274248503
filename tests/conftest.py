from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

import pytest

from strategy_hub.library.models import BacktestRecord, SavedStrategy, Strategy
from strategy_hub.library.versioning import save_strategy


def strategy_payload(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "strategyName": "Crypto RSI Reversion",
        "description": "Buys oversold RSI readings above the 200 EMA.",
        "generationRationale": "Medium risk suits a trend-filtered entry.",
        "tradingStyle": "DayTrading",
        "market": "Crypto",
        "riskTolerance": "Medium",
        "pineScriptVersion": "v5",
        "parameters": {"indicator_period": 14, "stop_loss_percent": 2.0},
        "pineScript": '//@version=5\nstrategy("RSI")',
        "confidenceScore": 0.8,
        "backtestHighlights": {
            "netProfit": "12.5%",
            "totalTrades": 40,
            "winRate": "55%",
            "profitFactor": 1.6,
            "maxDrawdown": "8%",
        },
        "logicBreakdown": [
            {"type": "condition", "description": "RSI(14) below 30"},
            {"type": "entry", "description": "Enter long"},
        ],
    }
    payload.update(overrides)
    return payload


def backtest_payload(
    *,
    asset: str = "BTCUSDT",
    timeframe: str = "1h",
    win_rate: object = "60%",
    net_profit: object = "10%",
) -> dict[str, object]:
    return {
        "input": {"asset": asset, "timeframe": timeframe},
        "metrics": {
            "netProfit": net_profit,
            "totalTrades": 12,
            "winRate": win_rate,
            "profitFactor": 1.4,
            "maxDrawdown": "5%",
        },
        "analysis": {
            "strengths": "Catches trend continuation.",
            "weaknesses": "Whipsaws in ranges.",
            "suggestion": "Add an ADX filter.",
        },
        "chartData": [
            {"time": "2024-01-01T00:00:00Z", "open": 100, "high": 102, "low": 99, "close": 101},
            {"time": "2024-01-01T01:00:00Z", "open": 101, "high": 103, "low": 100, "close": 102},
        ],
        "trades": [
            {"time": "2024-01-01T00:00:00Z", "type": "buy", "price": 100.5},
            {"time": "2024-01-01T01:00:00Z", "type": "sell", "price": 102.0},
        ],
        "updatedPineScript": f'//@version=5\n// {asset} {timeframe}\nstrategy("RSI")',
    }


@pytest.fixture
def make_strategy() -> Callable[..., Strategy]:
    def _make(**overrides: object) -> Strategy:
        return Strategy.model_validate(strategy_payload(**overrides))

    return _make


@pytest.fixture
def make_record() -> Callable[..., BacktestRecord]:
    def _make(**kwargs: object) -> BacktestRecord:
        return BacktestRecord.model_validate(backtest_payload(**kwargs))  # type: ignore[arg-type]

    return _make


@pytest.fixture
def make_saved(
    make_strategy: Callable[..., Strategy],
) -> Callable[..., SavedStrategy]:
    def _make(
        name: str = "Saved Strategy",
        *,
        saved_at: datetime | None = None,
        history: tuple[BacktestRecord, ...] = (),
        **overrides: object,
    ) -> SavedStrategy:
        saved = save_strategy(
            make_strategy(**overrides),
            name,
            saved_at=saved_at or datetime(2024, 1, 1, tzinfo=UTC),
        )
        return saved.model_copy(update={"backtest_history": history})

    return _make


@pytest.fixture
def make_payload() -> Callable[..., dict[str, object]]:
    return strategy_payload


@pytest.fixture
def make_backtest_payload() -> Callable[..., dict[str, object]]:
    return backtest_payload
