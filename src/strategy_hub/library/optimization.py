"""Optimize transition: any strategy in, a brand-new ephemeral strategy out."""

from __future__ import annotations

from typing import TYPE_CHECKING

from strategy_hub.ai.schemas import parse_strategy_payload
from strategy_hub.library.models import SavedStrategy, Strategy

if TYPE_CHECKING:
    from strategy_hub.ai.provider import GenerationService


def optimize(source: Strategy | SavedStrategy, service: GenerationService) -> Strategy:
    """Ask the service for an improved version of ``source``.

    The source is never modified. The service only sees the ephemeral
    projection of it, and whatever comes back is validated into a Strategy,
    which cannot carry an id, a save timestamp or history. Service and schema
    errors propagate unchanged.
    """
    payload = service.optimize(source.to_ephemeral())
    return parse_strategy_payload(payload)
