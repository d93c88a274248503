"""Generation service providers."""

from __future__ import annotations

import hashlib
import json
import random
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

from strategy_hub.ai.gemini_client import GeminiClient
from strategy_hub.ai.prompts import (
    BACKTEST_RESPONSE_SCHEMA,
    STRATEGY_RESPONSE_SCHEMA,
    build_backtest_prompt,
    build_generate_prompt,
    build_optimize_prompt,
)
from strategy_hub.config import Settings
from strategy_hub.library.models import BacktestInput, Preferences, ScriptVersion, StrategyBody
from strategy_hub.utils.tradingview import timeframe_minutes


class GenerationService(Protocol):
    """Black-box producer of strategy and backtest payloads.

    Payloads are raw JSON-shaped mappings; validation happens in the caller.
    """

    def generate(self, preferences: Preferences) -> Mapping[str, Any]:
        """Design a new strategy for the given preferences."""

    def optimize(self, strategy: StrategyBody) -> Mapping[str, Any]:
        """Return an improved version of ``strategy``."""

    def run_backtest(
        self,
        code: str,
        script_version: ScriptVersion,
        backtest_input: BacktestInput,
    ) -> Mapping[str, Any]:
        """Simulate ``code`` for one asset/timeframe/date range."""


class GeminiGenerationService:
    """Production provider backed by Gemini."""

    GENERATE_TEMPERATURE = 0.8
    OPTIMIZE_TEMPERATURE = 0.7
    BACKTEST_TEMPERATURE = 0.5

    def __init__(self, settings: Settings, client: GeminiClient | None = None) -> None:
        self._client = client or GeminiClient(settings)

    def generate(self, preferences: Preferences) -> Mapping[str, Any]:
        return self._client.generate_json(
            operation="generate",
            prompt=build_generate_prompt(preferences),
            response_schema=STRATEGY_RESPONSE_SCHEMA,
            temperature=self.GENERATE_TEMPERATURE,
        )

    def optimize(self, strategy: StrategyBody) -> Mapping[str, Any]:
        return self._client.generate_json(
            operation="optimize",
            prompt=build_optimize_prompt(strategy),
            response_schema=STRATEGY_RESPONSE_SCHEMA,
            temperature=self.OPTIMIZE_TEMPERATURE,
        )

    def run_backtest(
        self,
        code: str,
        script_version: ScriptVersion,
        backtest_input: BacktestInput,
    ) -> Mapping[str, Any]:
        return self._client.generate_json(
            operation="backtest",
            prompt=build_backtest_prompt(code, script_version, backtest_input),
            response_schema=BACKTEST_RESPONSE_SCHEMA,
            temperature=self.BACKTEST_TEMPERATURE,
        )


_PERIOD_BY_STYLE = {
    "Scalping": 7,
    "HFT": 5,
    "DayTrading": 14,
    "SwingTrading": 21,
    "PositionTrading": 50,
}
_STOP_BY_RISK = {"Low": 1.0, "Medium": 2.0, "High": 3.5, "Aggressive": 5.0}
_CONFIDENCE_BY_RISK = {"Low": 0.72, "Medium": 0.66, "High": 0.58, "Aggressive": 0.51}
_CHART_BARS = 160
_DEFAULT_START = datetime(2024, 1, 1, tzinfo=timezone.utc)


class TemplateGenerationService:
    """Deterministic offline provider.

    Produces payloads shaped like the production service from fixed templates
    and a seeded price walk, so runs are reproducible without network access.
    """

    def generate(self, preferences: Preferences) -> Mapping[str, Any]:
        period = _PERIOD_BY_STYLE[preferences.trading_style]
        stop = _STOP_BY_RISK[preferences.risk_tolerance]
        parameters: dict[str, int | float | str] = {
            "indicator_period": period,
            "stop_loss_percent": stop,
            "take_profit_ratio": 2.0,
        }
        return {
            "strategyName": f"{preferences.market} {preferences.trading_style} RSI Reversion",
            "description": (
                f"Buys oversold RSI({period}) readings above the 200 EMA and exits on "
                f"an overbought reading or a {stop}% stop."
            ),
            "generationRationale": (
                f"A {preferences.risk_tolerance.lower()} risk profile in {preferences.market} "
                f"suits a trend-filtered mean reversion entry with a {stop}% stop."
            ),
            "tradingStyle": preferences.trading_style,
            "market": preferences.market,
            "riskTolerance": preferences.risk_tolerance,
            "pineScriptVersion": preferences.script_version,
            "parameters": parameters,
            "pineScript": _render_script(preferences.script_version, "RSI Reversion", parameters),
            "confidenceScore": _CONFIDENCE_BY_RISK[preferences.risk_tolerance],
            "backtestHighlights": {
                "netProfit": f"{stop * 6.2:.1f}%",
                "totalTrades": 200 // period,
                "winRate": f"{60 - stop * 3:.1f}%",
                "profitFactor": round(1.2 + 0.1 * stop, 2),
                "maxDrawdown": f"{stop * 2.5:.1f}%",
            },
            "logicBreakdown": [
                {"type": "action", "description": f"Compute RSI({period}) and EMA(200)"},
                {"type": "condition", "description": "Close is above EMA(200)"},
                {"type": "entry", "description": "RSI crosses above 30: enter long"},
                {"type": "exit", "description": f"RSI above 70 or {stop}% stop loss hit"},
            ],
        }

    def optimize(self, strategy: StrategyBody) -> Mapping[str, Any]:
        parameters = dict(strategy.parameters)
        period = parameters.get("indicator_period")
        if isinstance(period, int):
            parameters["indicator_period"] = max(2, period - 2)
        parameters["trend_filter_length"] = 200

        name = strategy.name if strategy.name.endswith("(Optimized)") else f"{strategy.name} (Optimized)"
        payload = strategy.to_ephemeral().to_wire()
        payload.pop("kind", None)
        payload.update(
            {
                "strategyName": name,
                "generationRationale": (
                    "Shortened the indicator period by two bars for faster signals and "
                    "added a 200-bar trend filter to skip counter-trend entries."
                ),
                "parameters": parameters,
                "pineScript": _render_script(strategy.script_version, name, parameters),
                "confidenceScore": round(min(1.0, strategy.confidence_score + 0.05), 2),
            }
        )
        return payload

    def run_backtest(
        self,
        code: str,
        script_version: ScriptVersion,
        backtest_input: BacktestInput,
    ) -> Mapping[str, Any]:
        seed = hashlib.sha256(
            f"{backtest_input.asset}|{backtest_input.timeframe}|{code}".encode()
        ).hexdigest()
        rng = random.Random(int(seed[:16], 16))

        step = timedelta(minutes=timeframe_minutes(backtest_input.timeframe) or 60)
        start = _DEFAULT_START
        if backtest_input.start_date:
            start = datetime.fromisoformat(backtest_input.start_date).replace(tzinfo=timezone.utc)

        chart: list[dict[str, Any]] = []
        price = 100.0
        for i in range(_CHART_BARS):
            open_ = price
            close = max(1.0, open_ * (1 + rng.uniform(-0.02, 0.021)))
            chart.append(
                {
                    "time": (start + i * step).strftime("%Y-%m-%dT%H:%M:%SZ"),
                    "open": round(open_, 4),
                    "high": round(max(open_, close) * (1 + rng.uniform(0, 0.005)), 4),
                    "low": round(min(open_, close) * (1 - rng.uniform(0, 0.005)), 4),
                    "close": round(close, 4),
                }
            )
            price = close

        trades: list[dict[str, Any]] = []
        returns: list[float] = []
        for entry_idx in range(5, _CHART_BARS - 10, 20):
            exit_idx = entry_idx + 10
            entry, exit_ = chart[entry_idx], chart[exit_idx]
            trades.append({"time": entry["time"], "type": "buy", "price": entry["close"]})
            trades.append({"time": exit_["time"], "type": "sell", "price": exit_["close"]})
            returns.append(exit_["close"] / entry["close"] - 1)

        gains = sum(r for r in returns if r > 0)
        losses = -sum(r for r in returns if r < 0)
        equity, peak, max_dd = 1.0, 1.0, 0.0
        for r in returns:
            equity *= 1 + r
            peak = max(peak, equity)
            max_dd = max(max_dd, 1 - equity / peak)
        wins = sum(1 for r in returns if r > 0)

        hardcoded = [
            f"// Backtest: {backtest_input.asset} {backtest_input.timeframe}",
        ]
        if backtest_input.has_date_range:
            hardcoded.append(
                f"// Window: {backtest_input.start_date} to {backtest_input.end_date}"
            )

        return {
            "input": backtest_input.to_wire(),
            "metrics": {
                "netProfit": f"{(equity - 1) * 100:.2f}%",
                "totalTrades": len(returns),
                "winRate": f"{wins / len(returns) * 100:.1f}%" if returns else "0%",
                "profitFactor": round(gains / losses, 2) if losses > 0 else round(gains, 2),
                "maxDrawdown": f"{max_dd * 100:.2f}%",
            },
            "analysis": {
                "strengths": "Entries follow the prevailing trend filter.",
                "weaknesses": "Fixed holding period ignores volatility changes.",
                "suggestion": "Exit on an ATR-based trailing stop instead of a fixed bar count.",
            },
            "chartData": chart,
            "trades": trades,
            "updatedPineScript": "\n".join([*hardcoded, code]),
        }


def _render_script(version: str, title: str, parameters: Mapping[str, int | float | str]) -> str:
    inputs = "\n".join(
        f'{key} = input({json.dumps(value)}, "{key}")' for key, value in parameters.items()
    )
    period = parameters.get("indicator_period", 14)
    return (
        f"//@version={version[1:]}\n"
        f'strategy("{title}", overlay=true)\n'
        f"{inputs}\n"
        f"rsiValue = ta.rsi(close, {period})\n"
        "trend = ta.ema(close, 200)\n"
        "if ta.crossover(rsiValue, 30) and close > trend\n"
        '    strategy.entry("Long", strategy.long)\n'
        "if rsiValue > 70\n"
        '    strategy.close("Long")\n'
    )
