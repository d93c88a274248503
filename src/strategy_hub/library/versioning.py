"""Turning a generated strategy into a saved, identified one."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from strategy_hub.errors import AlreadySavedError
from strategy_hub.library.models import SavedStrategy, Strategy


def new_strategy_id() -> str:
    """Return a random 128-bit identifier as 32 hex characters."""
    return uuid.uuid4().hex


def save_strategy(
    strategy: Strategy | SavedStrategy,
    display_name: str,
    *,
    saved_at: datetime | None = None,
) -> SavedStrategy:
    """Assign identity, timestamp and empty history to an ephemeral strategy.

    The display name replaces the generated name; every other field is copied
    unchanged. Saving a strategy that already has an id raises
    AlreadySavedError, so a second save can never mint a new identity.
    Inserting the result into a collection and persisting it is up to the
    caller.
    """
    if isinstance(strategy, SavedStrategy):
        raise AlreadySavedError(strategy.id)

    name = display_name.strip()
    if not name:
        raise ValueError("display_name_empty")

    fields = strategy.body_fields()
    fields["name"] = name
    return SavedStrategy(
        **fields,
        id=new_strategy_id(),
        saved_at=saved_at or datetime.now(timezone.utc),
        backtest_history=(),
    )
