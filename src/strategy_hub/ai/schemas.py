"""Validation of raw generation results and JSON extraction helpers."""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from strategy_hub.errors import SchemaValidationError
from strategy_hub.library.models import BacktestRecord, Strategy

# Keys that only a saved strategy may carry.
_IDENTITY_KEYS = frozenset({"id", "savedAt", "saved_at", "backtestHistory", "backtest_history", "kind"})

_DEFAULT_EMPTY: dict[str, type] = {
    "parameters": dict,
    "logicBreakdown": list,
}


def parse_strategy_payload(payload: Mapping[str, Any]) -> Strategy:
    """Validate a generated or optimized strategy payload.

    Missing or null ``parameters``/``logicBreakdown`` become empty. Identity
    and history keys are dropped, so the result is always ephemeral.
    """
    if not isinstance(payload, Mapping):
        raise SchemaValidationError("strategy_payload_not_object")

    cleaned = {key: value for key, value in payload.items() if key not in _IDENTITY_KEYS}
    for key, factory in _DEFAULT_EMPTY.items():
        if cleaned.get(key) is None:
            cleaned[key] = factory()

    try:
        return Strategy.model_validate(cleaned)
    except ValidationError as exc:
        raise SchemaValidationError(_describe(exc)) from exc


def parse_backtest_payload(payload: Mapping[str, Any]) -> BacktestRecord:
    """Validate a backtest payload returned by the generation service."""
    if not isinstance(payload, Mapping):
        raise SchemaValidationError("backtest_payload_not_object")

    cleaned = dict(payload)
    for key in ("chartData", "trades"):
        if cleaned.get(key) is None:
            cleaned[key] = []

    try:
        return BacktestRecord.model_validate(cleaned)
    except ValidationError as exc:
        raise SchemaValidationError(_describe(exc)) from exc


def parse_json_text(text: str) -> dict[str, Any]:
    """Decode a model text response into a JSON object."""
    try:
        return _extract_json_obj(text)
    except ValueError as exc:
        raise SchemaValidationError(str(exc)) from exc


def _describe(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "<root>"
    return f"schema_validation_error: {location}: {first['msg']}"


def _extract_json_obj(text: str) -> dict[str, Any]:
    """Extract the first JSON object from plain text or fenced content."""
    stripped = text.strip()
    if stripped.startswith("{") and stripped.endswith("}"):
        decoded = json.loads(stripped)
        if isinstance(decoded, dict):
            return decoded
        raise ValueError("model_response_json_not_object")

    fenced_match = re.search(r"```(?:json)?\s*(\{.*?\})\s*```", stripped, re.DOTALL)
    if fenced_match:
        decoded = json.loads(fenced_match.group(1))
        if isinstance(decoded, dict):
            return decoded
        raise ValueError("model_response_json_not_object")

    brace_match = re.search(r"\{.*\}", stripped, re.DOTALL)
    if brace_match:
        decoded = json.loads(brace_match.group(0))
        if isinstance(decoded, dict):
            return decoded
        raise ValueError("model_response_json_not_object")

    raise ValueError("model_response_not_json")
