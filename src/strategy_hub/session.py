"""Session state and the user-facing strategy actions."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Literal

from strategy_hub.ai.provider import GenerationService
from strategy_hub.ai.schemas import parse_backtest_payload, parse_strategy_payload
from strategy_hub.errors import (
    GenerationServiceError,
    NoCurrentStrategyError,
    SchemaValidationError,
)
from strategy_hub.library.collection import StrategyCollection
from strategy_hub.library.history import append_backtest
from strategy_hub.library.models import (
    BacktestInput,
    BacktestRecord,
    Preferences,
    SavedStrategy,
    Strategy,
)
from strategy_hub.library.optimization import optimize
from strategy_hub.library.ranking import SortDirection, SortKey, rank
from strategy_hub.library.repository import StrategyRepository
from strategy_hub.library.versioning import save_strategy
from strategy_hub.utils.logging import get_logger, log_library_event

PendingKind = Literal["generate", "optimize", "backtest"]

_FAILURE_MESSAGES: dict[PendingKind, str] = {
    "generate": "Failed to generate trading strategy. Please check your connection and API key, then try again.",
    "optimize": "Failed to optimize the strategy. Please try again.",
    "backtest": "The AI failed to run the backtest. This might be a temporary issue. Please try again.",
}


@dataclass(slots=True)
class SessionState:
    """Everything one user session holds in memory."""

    collection: StrategyCollection = field(default_factory=StrategyCollection)
    current: Strategy | SavedStrategy | None = None
    pending: set[str] = field(default_factory=set)
    error: str | None = None
    sort_key: SortKey = SortKey.SAVED_AT
    sort_direction: SortDirection = SortDirection.DESCENDING


class StrategyHubSession:
    """Action handlers over an explicit SessionState.

    The in-memory collection is authoritative for the session; every change to
    it is mirrored to the repository with a full write. A failed service call
    leaves ``current`` and ``collection`` as they were.
    """

    def __init__(
        self,
        service: GenerationService,
        repository: StrategyRepository,
        state: SessionState | None = None,
    ) -> None:
        self._service = service
        self._repository = repository
        self._logger = get_logger("strategy_hub.session")
        self.state = state if state is not None else SessionState(collection=repository.load())

    # ------------------------------------------------------------------ queries

    @property
    def current(self) -> Strategy | SavedStrategy | None:
        return self.state.current

    @property
    def collection(self) -> StrategyCollection:
        return self.state.collection

    def is_pending(self, kind: PendingKind) -> bool:
        return kind in self.state.pending

    def is_current_saved(self) -> bool:
        current = self.state.current
        return isinstance(current, SavedStrategy) and current.id in self.state.collection

    def library_view(self) -> list[SavedStrategy]:
        """Saved strategies in the session's current sort order."""
        return rank(self.state.collection, self.state.sort_key, self.state.sort_direction)

    # ------------------------------------------------------------------ actions

    def submit_preferences(self, preferences: Preferences) -> Strategy:
        """Generate a new ephemeral strategy and make it current."""
        with self._pending("generate"):
            strategy = parse_strategy_payload(self._service.generate(preferences))
        self.state.current = strategy
        self._logger.info(
            "strategy_generated",
            name=strategy.name,
            trading_style=strategy.trading_style,
            market=strategy.market,
        )
        return strategy

    def optimize_current(self) -> Strategy:
        """Replace ``current`` with an optimized, unsaved copy of it."""
        source = self._require_current()
        with self._pending("optimize"):
            optimized = optimize(source, self._service)
        self.state.current = optimized
        self._logger.info("strategy_optimized", source=source.name, name=optimized.name)
        return optimized

    def save_current(self, display_name: str) -> SavedStrategy:
        """Save ``current`` under ``display_name``.

        Saving an already saved strategy changes nothing and returns it.
        """
        current = self._require_current()
        if isinstance(current, SavedStrategy):
            self._logger.info("save_skipped", strategy_id=current.id, reason="already_saved")
            return current

        saved = save_strategy(current, display_name)
        self.state.collection = self.state.collection.add(saved)
        self.state.current = saved
        self._persist("save", saved.id)
        return saved

    def delete_strategy(self, strategy_id: str) -> None:
        """Remove a saved strategy; clears ``current`` if it was that strategy."""
        self.state.collection = self.state.collection.remove(strategy_id)
        current = self.state.current
        if isinstance(current, SavedStrategy) and current.id == strategy_id:
            self.state.current = None
        self._persist("delete", strategy_id)

    def load_strategy(self, strategy_id: str) -> SavedStrategy:
        """Make the saved strategy with ``strategy_id`` current."""
        strategy = self.state.collection.require(strategy_id)
        self.state.current = strategy
        return strategy

    def record_backtest(self, record: BacktestRecord) -> bool:
        """Attach ``record`` to the current strategy's history if it is saved.

        Returns True when the record was kept. The current view is refreshed
        from the collection entry of the same id, so both stay identical.
        """
        current = self.state.current
        if not isinstance(current, SavedStrategy):
            return False
        if current.id not in self.state.collection:
            self._logger.info("backtest_not_recorded", strategy_id=current.id, reason="stale_current")
            return False

        self.state.collection = append_backtest(self.state.collection, current.id, record)
        self.state.current = self.state.collection.require(current.id)
        self._persist("backtest", current.id)
        return True

    def run_backtest(self, backtest_input: BacktestInput) -> BacktestRecord:
        """Backtest the current strategy and record the result when it is saved."""
        current = self._require_current()
        with self._pending("backtest"):
            payload = self._service.run_backtest(current.code, current.script_version, backtest_input)
            record = parse_backtest_payload(payload)
        self.record_backtest(record)
        return record

    def set_sort(self, sort_key: SortKey | str, direction: SortDirection | str) -> None:
        self.state.sort_key = SortKey(sort_key)
        self.state.sort_direction = SortDirection(direction)

    # ------------------------------------------------------------------ helpers

    def _require_current(self) -> Strategy | SavedStrategy:
        if self.state.current is None:
            raise NoCurrentStrategyError("no_current_strategy")
        return self.state.current

    @contextmanager
    def _pending(self, kind: PendingKind) -> Iterator[None]:
        self.state.pending.add(kind)
        self.state.error = None
        try:
            yield
        except (GenerationServiceError, SchemaValidationError) as exc:
            self.state.error = _FAILURE_MESSAGES[kind]
            self._logger.warning(f"{kind}_failed", error=str(exc), error_type=type(exc).__name__)
            raise
        finally:
            self.state.pending.discard(kind)

    def _persist(self, action: str, strategy_id: str) -> None:
        saved = self._repository.save(self.state.collection)
        log_library_event(
            self._logger,
            action=action,
            strategy_id=strategy_id,
            collection_size=len(self.state.collection),
            durable=saved,
        )
