from __future__ import annotations

import re
from collections.abc import Callable
from datetime import UTC, datetime

import pytest

from strategy_hub.errors import AlreadySavedError, DuplicateStrategyError, StrategyNotFoundError
from strategy_hub.library.collection import StrategyCollection
from strategy_hub.library.history import append_backtest
from strategy_hub.library.models import BacktestRecord, SavedStrategy, Strategy
from strategy_hub.library.versioning import save_strategy

MakeStrategy = Callable[..., Strategy]
MakeRecord = Callable[..., BacktestRecord]
MakeSaved = Callable[..., SavedStrategy]


def test_save_assigns_identity_and_empty_history(make_strategy: MakeStrategy) -> None:
    strategy = make_strategy()
    before = datetime.now(UTC)
    saved = save_strategy(strategy, "My Strat")

    assert isinstance(saved, SavedStrategy)
    assert re.fullmatch(r"[0-9a-f]{32}", saved.id)
    assert saved.saved_at >= before
    assert saved.saved_at.tzinfo is not None
    assert saved.backtest_history == ()
    assert saved.name == "My Strat"
    assert saved.to_ephemeral() == strategy.model_copy(update={"name": "My Strat"})


def test_save_rejects_already_saved_strategy(make_strategy: MakeStrategy) -> None:
    saved = save_strategy(make_strategy(), "Once")
    with pytest.raises(AlreadySavedError):
        save_strategy(saved, "Twice")


def test_save_requires_display_name(make_strategy: MakeStrategy) -> None:
    with pytest.raises(ValueError):
        save_strategy(make_strategy(), "   ")


def test_each_save_mints_a_new_id(make_strategy: MakeStrategy) -> None:
    strategy = make_strategy()
    assert save_strategy(strategy, "A").id != save_strategy(strategy, "A").id


def test_collection_enforces_unique_ids(make_saved: MakeSaved) -> None:
    saved = make_saved()
    collection = StrategyCollection([saved])
    with pytest.raises(DuplicateStrategyError):
        collection.add(saved)
    with pytest.raises(DuplicateStrategyError):
        StrategyCollection([saved, saved])
    with pytest.raises(StrategyNotFoundError):
        collection.remove("missing")


def test_append_backtest_prepends_newest_first(make_saved: MakeSaved, make_record: MakeRecord) -> None:
    r0 = make_record(asset="SOLUSDT")
    r1 = make_record(asset="BTCUSDT")
    r2 = make_record(asset="ETHUSDT")
    saved = make_saved(history=(r0,))
    collection = StrategyCollection([saved])

    collection = append_backtest(collection, saved.id, r1)
    collection = append_backtest(collection, saved.id, r2)

    history = collection.require(saved.id).backtest_history
    assert history == (r2, r1, r0)


def test_append_backtest_leaves_other_entries_and_input_untouched(
    make_saved: MakeSaved,
    make_record: MakeRecord,
) -> None:
    target = make_saved("Target")
    other = make_saved("Other")
    before = StrategyCollection([target, other])

    after = append_backtest(before, target.id, make_record())

    assert after.get(other.id) is other
    assert before.require(target.id).backtest_history == ()
    assert len(after.require(target.id).backtest_history) == 1
    assert [s.id for s in after] == [target.id, other.id]


def test_append_backtest_unknown_id_is_noop(make_saved: MakeSaved, make_record: MakeRecord) -> None:
    collection = StrategyCollection([make_saved()])
    assert append_backtest(collection, "not-there", make_record()) is collection
