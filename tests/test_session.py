from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import pytest

from strategy_hub.ai.provider import TemplateGenerationService
from strategy_hub.errors import (
    GenerationServiceError,
    NoCurrentStrategyError,
    PersistenceError,
    SchemaValidationError,
    StrategyNotFoundError,
)
from strategy_hub.library.models import (
    BacktestInput,
    BacktestRecord,
    Preferences,
    SavedStrategy,
    Strategy,
    StrategyBody,
)
from strategy_hub.library.ranking import SortDirection, SortKey
from strategy_hub.library.repository import StrategyRepository
from strategy_hub.library.store import MemoryKeyValueStore
from strategy_hub.session import StrategyHubSession

_PREFERENCES = Preferences(
    trading_style="DayTrading",
    market="Crypto",
    risk_tolerance="Medium",
    capital=10_000,
    script_version="v5",
)


class _FailingService(TemplateGenerationService):
    def generate(self, preferences: Preferences) -> Mapping[str, Any]:
        raise GenerationServiceError("timeout")

    def optimize(self, strategy: StrategyBody) -> Mapping[str, Any]:
        return {"strategyName": "broken"}

    def run_backtest(self, code: str, script_version: str, backtest_input: BacktestInput) -> Mapping[str, Any]:
        raise GenerationServiceError("quota")


class _PendingRecorder(TemplateGenerationService):
    def __init__(self) -> None:
        self.session: StrategyHubSession | None = None
        self.seen_pending: list[bool] = []

    def generate(self, preferences: Preferences) -> Mapping[str, Any]:
        assert self.session is not None
        self.seen_pending.append(self.session.is_pending("generate"))
        return super().generate(preferences)


class _BrokenWriteStore(MemoryKeyValueStore):
    def set(self, key: str, blob: str) -> None:
        raise PersistenceError("read-only")


def _session(store: MemoryKeyValueStore | None = None, service: Any = None) -> StrategyHubSession:
    repository = StrategyRepository(store if store is not None else MemoryKeyValueStore())
    return StrategyHubSession(service or TemplateGenerationService(), repository)


def test_generate_save_backtest_scenario() -> None:
    store = MemoryKeyValueStore()
    session = _session(store)

    generated = session.submit_preferences(_PREFERENCES)
    assert isinstance(generated, Strategy)
    assert session.current is generated

    saved = session.save_current("My Strat")
    assert saved.name == "My Strat"
    assert saved.id
    assert saved.saved_at is not None
    assert saved.backtest_history == ()
    assert session.current is saved
    assert session.is_current_saved()

    record = session.run_backtest(BacktestInput(asset="BTCUSDT", timeframe="1h"))
    current = session.current
    assert isinstance(current, SavedStrategy)
    assert len(current.backtest_history) == 1
    assert current.backtest_history[0] is record
    assert current.backtest_history[0].backtest_input.asset == "BTCUSDT"
    assert current.backtest_history[0].backtest_input.timeframe == "1h"
    assert session.collection.require(saved.id) == current

    reloaded = StrategyRepository(store).load()
    assert reloaded.require(saved.id) == current


def test_save_twice_keeps_identity() -> None:
    session = _session()
    session.submit_preferences(_PREFERENCES)
    first = session.save_current("One")
    second = session.save_current("Two")
    assert second is first
    assert second.name == "One"
    assert len(session.collection) == 1


def test_backtests_accumulate_newest_first() -> None:
    session = _session()
    session.submit_preferences(_PREFERENCES)
    session.save_current("History")

    first = session.run_backtest(BacktestInput(asset="BTCUSDT", timeframe="1h"))
    second = session.run_backtest(BacktestInput(asset="ETHUSDT", timeframe="4h"))

    current = session.current
    assert isinstance(current, SavedStrategy)
    assert current.backtest_history == (second, first)


def test_backtest_on_unsaved_strategy_is_not_recorded() -> None:
    session = _session()
    session.submit_preferences(_PREFERENCES)
    record = session.run_backtest(BacktestInput(asset="BTCUSDT", timeframe="1h"))
    assert record.backtest_input.asset == "BTCUSDT"
    assert isinstance(session.current, Strategy)
    assert len(session.collection) == 0


def test_record_backtest_on_stale_current_is_noop(make_saved: Callable[..., SavedStrategy], make_record: Callable[..., BacktestRecord]) -> None:
    session = _session()
    session.state.current = make_saved("Not in library")
    assert session.record_backtest(make_record()) is False
    assert len(session.collection) == 0


def test_delete_current_clears_it() -> None:
    store = MemoryKeyValueStore()
    session = _session(store)
    session.submit_preferences(_PREFERENCES)
    keep = session.save_current("Keep")
    session.submit_preferences(_PREFERENCES)
    drop = session.save_current("Drop")

    session.delete_strategy(drop.id)

    assert session.current is None
    assert drop.id not in session.collection
    assert session.collection.require(keep.id) is keep
    assert [s.id for s in StrategyRepository(store).load()] == [keep.id]


def test_delete_other_keeps_current() -> None:
    session = _session()
    session.submit_preferences(_PREFERENCES)
    other = session.save_current("Other")
    session.submit_preferences(_PREFERENCES)
    current = session.save_current("Current")

    session.delete_strategy(other.id)
    assert session.current is current


def test_unknown_ids_raise_for_load_and_delete() -> None:
    session = _session()
    with pytest.raises(StrategyNotFoundError):
        session.load_strategy("nope")
    with pytest.raises(StrategyNotFoundError):
        session.delete_strategy("nope")


def test_load_strategy_sets_current() -> None:
    session = _session()
    session.submit_preferences(_PREFERENCES)
    saved = session.save_current("Loaded")
    session.state.current = None
    assert session.load_strategy(saved.id) is saved
    assert session.current is saved


def test_optimize_saved_strategy_produces_new_ephemeral() -> None:
    session = _session()
    session.submit_preferences(_PREFERENCES)
    saved = session.save_current("Base")
    session.run_backtest(BacktestInput(asset="BTCUSDT", timeframe="1h"))

    optimized = session.optimize_current()

    assert isinstance(optimized, Strategy)
    assert not isinstance(optimized, SavedStrategy)
    assert session.current is optimized
    assert not session.is_current_saved()
    assert len(session.collection.require(saved.id).backtest_history) == 1
    assert len(session.collection) == 1


def test_failed_generate_leaves_state_untouched() -> None:
    session = _session()
    session.submit_preferences(_PREFERENCES)
    saved = session.save_current("Survivor")

    session._service = _FailingService()
    with pytest.raises(GenerationServiceError):
        session.submit_preferences(_PREFERENCES)

    assert session.current is saved
    assert session.state.error is not None
    assert "generate" in session.state.error
    assert not session.is_pending("generate")


def test_failed_optimize_and_backtest_leave_state_untouched() -> None:
    session = _session()
    session.submit_preferences(_PREFERENCES)
    saved = session.save_current("Survivor")
    collection = session.collection

    session._service = _FailingService()
    with pytest.raises(SchemaValidationError):
        session.optimize_current()
    with pytest.raises(GenerationServiceError):
        session.run_backtest(BacktestInput(asset="BTCUSDT", timeframe="1h"))

    assert session.current is saved
    assert session.collection is collection
    assert session.state.pending == set()


def test_pending_flag_is_set_during_call() -> None:
    recorder = _PendingRecorder()
    session = _session(service=recorder)
    recorder.session = session
    session.submit_preferences(_PREFERENCES)
    assert recorder.seen_pending == [True]
    assert not session.is_pending("generate")


def test_actions_without_current_raise() -> None:
    session = _session()
    with pytest.raises(NoCurrentStrategyError):
        session.save_current("x")
    with pytest.raises(NoCurrentStrategyError):
        session.optimize_current()


def test_write_failure_keeps_in_memory_state() -> None:
    session = _session(_BrokenWriteStore())
    session.submit_preferences(_PREFERENCES)
    saved = session.save_current("Unsynced")
    assert saved.id in session.collection
    assert session.current is saved


def test_library_view_follows_sort_choice() -> None:
    session = _session()
    for name in ("beta", "Alpha", "gamma"):
        session.submit_preferences(_PREFERENCES)
        session.save_current(name)

    session.set_sort(SortKey.NAME, SortDirection.ASCENDING)
    assert [s.name for s in session.library_view()] == ["Alpha", "beta", "gamma"]

    session.set_sort("name", "descending")
    assert [s.name for s in session.library_view()] == ["gamma", "beta", "Alpha"]


def test_session_loads_existing_library() -> None:
    store = MemoryKeyValueStore()
    session = _session(store)
    session.submit_preferences(_PREFERENCES)
    saved = session.save_current("Persisted")

    fresh = _session(store)
    assert fresh.collection.require(saved.id) == saved
    assert fresh.current is None
