"""Prompt text and response schemas for the Gemini generation service."""

from __future__ import annotations

import json
from typing import Any

from strategy_hub.library.models import (
    LOGIC_STEP_KINDS,
    MARKETS,
    RISK_TOLERANCES,
    SCRIPT_VERSIONS,
    TRADING_STYLES,
    BacktestInput,
    Preferences,
    StrategyBody,
)

_METRICS_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "netProfit": {"type": "STRING", "description": "Net profit as a percentage."},
        "totalTrades": {"type": "INTEGER"},
        "winRate": {"type": "STRING", "description": "Win rate as a percentage."},
        "profitFactor": {"type": "NUMBER"},
        "maxDrawdown": {"type": "STRING", "description": "Maximum drawdown as a percentage."},
    },
}

STRATEGY_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "strategyName": {"type": "STRING"},
        "description": {"type": "STRING"},
        "generationRationale": {"type": "STRING"},
        "tradingStyle": {"type": "STRING", "enum": list(TRADING_STYLES)},
        "market": {"type": "STRING", "enum": list(MARKETS)},
        "riskTolerance": {"type": "STRING", "enum": list(RISK_TOLERANCES)},
        "pineScriptVersion": {"type": "STRING", "enum": list(SCRIPT_VERSIONS)},
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "indicator_period": {"type": "INTEGER"},
                "stop_loss_percent": {"type": "NUMBER"},
                "take_profit_ratio": {"type": "NUMBER"},
            },
        },
        "pineScript": {"type": "STRING"},
        "confidenceScore": {"type": "NUMBER"},
        "backtestHighlights": _METRICS_SCHEMA,
        "logicBreakdown": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "type": {"type": "STRING", "enum": list(LOGIC_STEP_KINDS)},
                    "description": {"type": "STRING"},
                },
                "required": ["type", "description"],
            },
        },
    },
    "required": [
        "strategyName",
        "description",
        "pineScript",
        "confidenceScore",
        "backtestHighlights",
        "parameters",
        "tradingStyle",
        "market",
        "riskTolerance",
        "logicBreakdown",
        "generationRationale",
        "pineScriptVersion",
    ],
}

BACKTEST_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "input": {
            "type": "OBJECT",
            "properties": {
                "asset": {"type": "STRING"},
                "timeframe": {"type": "STRING"},
                "startDate": {"type": "STRING"},
                "endDate": {"type": "STRING"},
            },
            "required": ["asset", "timeframe"],
        },
        "metrics": {
            **_METRICS_SCHEMA,
            "required": ["netProfit", "totalTrades", "winRate", "profitFactor", "maxDrawdown"],
        },
        "analysis": {
            "type": "OBJECT",
            "properties": {
                "strengths": {"type": "STRING"},
                "weaknesses": {"type": "STRING"},
                "suggestion": {"type": "STRING"},
            },
            "required": ["strengths", "weaknesses", "suggestion"],
        },
        "chartData": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "time": {"type": "STRING"},
                    "open": {"type": "NUMBER"},
                    "high": {"type": "NUMBER"},
                    "low": {"type": "NUMBER"},
                    "close": {"type": "NUMBER"},
                },
                "required": ["time", "open", "high", "low", "close"],
            },
        },
        "trades": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "time": {"type": "STRING"},
                    "type": {"type": "STRING", "enum": ["buy", "sell"]},
                    "price": {"type": "NUMBER"},
                },
                "required": ["time", "type", "price"],
            },
        },
        "updatedPineScript": {"type": "STRING"},
    },
    "required": ["metrics", "analysis", "chartData", "trades", "input", "updatedPineScript"],
}


def build_generate_prompt(preferences: Preferences) -> str:
    return (
        "Act as a quantitative analyst and design a trading strategy.\n"
        f"Trading style: {preferences.trading_style}\n"
        f"Market: {preferences.market}\n"
        f"Risk tolerance: {preferences.risk_tolerance}\n"
        f"Pine Script version: {preferences.script_version}\n"
        f"Initial capital: ${preferences.capital:,.0f}\n"
        "Explain in generationRationale why the design fits these preferences. "
        "Give a logicBreakdown of 3 to 6 steps typed condition, action, entry or exit. "
        f"Write complete Pine Script {preferences.script_version} code, plausible "
        "hypothetical backtest highlights and a confidence score from 0.0 to 1.0. "
        "Return a single JSON object matching the schema, without markdown."
    )


def build_optimize_prompt(strategy: StrategyBody) -> str:
    return (
        "Act as a quantitative analyst and improve the following trading strategy.\n"
        f"Name: {strategy.name}\n"
        f"Trading style: {strategy.trading_style}\n"
        f"Market: {strategy.market}\n"
        f"Risk tolerance: {strategy.risk_tolerance}\n"
        f"Pine Script version: {strategy.script_version}\n"
        f"Description: {strategy.description}\n"
        f"Parameters: {json.dumps(strategy.parameters)}\n"
        f"Pine Script:\n```pinescript\n{strategy.code}\n```\n"
        "Find concrete weaknesses and fix them. State in generationRationale what "
        f'changed and why. Name the result like "{strategy.name} v2". Return a '
        "complete strategy as a single JSON object matching the schema, without markdown."
    )


def build_backtest_prompt(code: str, script_version: str, backtest_input: BacktestInput) -> str:
    if backtest_input.has_date_range:
        period = (
            f"strictly between {backtest_input.start_date} and {backtest_input.end_date}"
        )
    else:
        period = "over a recent period that suits the timeframe"
    return (
        f"Act as a backtesting engine for TradingView Pine Script {script_version} strategies.\n"
        f"Asset: {backtest_input.asset}\n"
        f"Timeframe: {backtest_input.timeframe}\n"
        f"Period: {period}\n"
        f"Script:\n```pinescript\n{code}\n```\n"
        "Echo the run parameters in 'input'. Produce 150-200 chronologically sorted OHLC "
        "points, the executed trades, standard metrics, an analysis of strengths, "
        "weaknesses and one suggestion, and an updatedPineScript with the asset, "
        "timeframe and dates hardcoded. Timestamps use 'YYYY-MM-DD' or "
        "'YYYY-MM-DDTHH:MM:SSZ'. Return a single JSON object matching the schema."
    )
