from __future__ import annotations

import json
from collections.abc import Callable

import pytest

from strategy_hub.ai.schemas import (
    parse_backtest_payload,
    parse_json_text,
    parse_strategy_payload,
)
from strategy_hub.errors import SchemaValidationError
from strategy_hub.library.models import SavedStrategy, Strategy


def test_parse_strategy_payload_maps_wire_keys(make_payload: Callable[..., dict[str, object]]) -> None:
    strategy = parse_strategy_payload(make_payload())
    assert isinstance(strategy, Strategy)
    assert strategy.kind == "ephemeral"
    assert strategy.name == "Crypto RSI Reversion"
    assert strategy.code.startswith("//@version=5")
    assert strategy.parameters == {"indicator_period": 14, "stop_loss_percent": 2.0}
    assert strategy.logic_breakdown[1].kind == "entry"


def test_parse_strategy_payload_preserves_opaque_values(
    make_payload: Callable[..., dict[str, object]],
) -> None:
    strategy = parse_strategy_payload(make_payload(confidenceScore=1.7))
    assert strategy.confidence_score == 1.7
    assert strategy.highlights.win_rate == "55%"
    assert strategy.highlights.profit_factor == 1.6
    assert strategy.highlights.total_trades == 40


def test_missing_optional_collections_default_to_empty(
    make_payload: Callable[..., dict[str, object]],
) -> None:
    payload = make_payload()
    del payload["parameters"]
    payload["logicBreakdown"] = None
    strategy = parse_strategy_payload(payload)
    assert strategy.parameters == {}
    assert strategy.logic_breakdown == ()


def test_identity_fields_are_stripped(make_payload: Callable[..., dict[str, object]]) -> None:
    payload = make_payload(
        id="abc123",
        savedAt="2024-05-01T10:00:00Z",
        backtestHistory=[{"bogus": True}],
        kind="durable",
    )
    strategy = parse_strategy_payload(payload)
    assert isinstance(strategy, Strategy)
    assert not isinstance(strategy, SavedStrategy)
    assert not hasattr(strategy, "id")
    assert "backtestHistory" not in strategy.to_wire()


def test_missing_required_field_raises(make_payload: Callable[..., dict[str, object]]) -> None:
    payload = make_payload()
    del payload["pineScript"]
    with pytest.raises(SchemaValidationError, match="pineScript"):
        parse_strategy_payload(payload)


def test_invalid_enum_raises(make_payload: Callable[..., dict[str, object]]) -> None:
    with pytest.raises(SchemaValidationError):
        parse_strategy_payload(make_payload(market="Bonds"))


def test_parse_backtest_payload_normalizes_blank_dates() -> None:
    record = parse_backtest_payload(
        {
            "input": {"asset": "BTCUSDT", "timeframe": "1h", "startDate": "", "endDate": ""},
            "metrics": {
                "netProfit": "4.2%",
                "totalTrades": 9,
                "winRate": "55.5%",
                "profitFactor": 1.3,
                "maxDrawdown": "3.1%",
            },
            "analysis": {"strengths": "s", "weaknesses": "w", "suggestion": "x"},
            "chartData": None,
            "updatedPineScript": "//@version=5",
        }
    )
    assert record.backtest_input.start_date is None
    assert not record.backtest_input.has_date_range
    assert record.chart_data == ()
    assert record.trades == ()


def test_parse_backtest_payload_missing_analysis_raises() -> None:
    with pytest.raises(SchemaValidationError):
        parse_backtest_payload(
            {
                "input": {"asset": "BTCUSDT", "timeframe": "1h"},
                "metrics": {},
                "updatedPineScript": "",
            }
        )


def test_parse_json_text_handles_fenced_content() -> None:
    text = "Here you go:\n```json\n" + json.dumps({"strategyName": "X"}) + "\n```"
    assert parse_json_text(text) == {"strategyName": "X"}


def test_parse_json_text_rejects_non_json() -> None:
    with pytest.raises(SchemaValidationError):
        parse_json_text("hello world")
