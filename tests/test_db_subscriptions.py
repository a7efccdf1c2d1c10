"""Tests for continuous queries on LedgerStore."""

from datetime import date

import pytest

from kharchaji.ledger.dates import day_bounds_inclusive, start_of_day_millis
from kharchaji.ledger.db.store import LedgerStore
from kharchaji.ledger.db.subscriptions import ITEMS, SubscriptionRegistry
from kharchaji.ledger.errors import StorageFault
from kharchaji.ledger.models import DailySnapshot, LineItemRecord, RecordItem

DAY = date(2025, 1, 10)


@pytest.fixture
def store(tmp_path):
    ledger = LedgerStore(db_path=tmp_path / "test.db")
    yield ledger
    ledger.close()


def _item(name, hour=0):
    return LineItemRecord(name=name, price=1.0, timestamp_ms=start_of_day_millis(DAY) + hour * 3_600_000)


def test_watch_delivers_current_result_immediately(store):
    store.insert(_item("Milk"))
    seen = []
    store.watch_items(seen.append)
    assert [[i.name for i in r] for r in seen] == [["Milk"]]


def test_watch_receives_update_after_each_commit(store):
    seen = []
    store.watch_items(lambda items: seen.append(len(items)))
    store.insert(_item("a"))
    store.insert_items([_item("b"), _item("c")])
    assert seen == [0, 1, 3]


def test_replace_never_exposes_intermediate_state(store):
    """A subscriber sees the old set or the new set, nothing in between."""
    store.insert_items([_item("old1", 1), _item("old2", 2)])
    seen = []
    store.watch_items_for_date(DAY, lambda items: seen.append({i.name for i in items}))

    store.replace_for_date([_item("X", 3), _item("Y", 4)], DAY)

    assert seen == [{"old1", "old2"}, {"X", "Y"}]


def test_failed_mutation_does_not_notify(store):
    item_id = store.insert(_item("a"))
    seen = []
    store.watch_items(seen.append)

    with pytest.raises(StorageFault):
        store.insert(LineItemRecord(id=item_id, name="dup", price=1.0))

    assert len(seen) == 1


def test_cancel_stops_delivery(store):
    seen = []
    sub = store.watch_items(seen.append)
    assert sub.active
    sub.cancel()
    assert not sub.active
    store.insert(_item("a"))
    assert len(seen) == 1


def test_item_mutation_does_not_wake_snapshot_watchers(store):
    seen = []
    store.watch_all_snapshots(seen.append)
    store.insert(_item("a"))
    assert len(seen) == 1


def test_watch_snapshots_for_date_range(store):
    seen = []
    store.watch_snapshots_for_date_range(
        *day_bounds_inclusive(DAY), lambda snaps: seen.append([s.is_master_save for s in snaps])
    )
    items = [RecordItem(description="Milk", price_text="45.00")]
    store.insert_snapshot(DailySnapshot.from_items(DAY, items))
    store.insert_snapshot(DailySnapshot.from_items(DAY, items, is_master_save=True))
    assert seen == [[], [False], [True, False]]


def test_watch_master_snapshots(store):
    seen = []
    store.watch_master_snapshots_for_date_range(
        *day_bounds_inclusive(DAY), lambda snaps: seen.append(len(snaps))
    )
    store.save_to_master(DAY, [_item("Milk")])
    assert seen == [0, 1]


def test_failing_listener_does_not_block_others(store, caplog):
    seen = []
    calls = []

    def broken(items):
        calls.append(1)
        if len(calls) > 1:
            raise RuntimeError("boom")

    store.watch_items(broken)
    store.watch_items(seen.append)
    store.insert(_item("a"))

    assert len(seen) == 2
    assert "Subscriber on line_items failed" in caplog.text


def test_registry_len_and_remove():
    registry = SubscriptionRegistry()
    sub = registry.add(ITEMS, lambda: [], lambda result: None)
    assert len(registry) == 1
    sub.cancel()
    assert len(registry) == 0


def test_listener_failing_on_first_delivery_is_not_registered(store, caplog):
    def broken(items):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        store.watch_items(broken)

    store.insert(_item("a"))
    assert "Subscriber on line_items failed" not in caplog.text


def test_registry_add_failure_unregisters():
    registry = SubscriptionRegistry()

    def failing_query():
        raise StorageFault("get_items", "disk I/O error")

    with pytest.raises(StorageFault):
        registry.add(ITEMS, failing_query, lambda result: None)
    assert len(registry) == 0
