"""Tests for the asyncio store facade."""

import asyncio
from datetime import date

import pytest

from kharchaji.ledger.dates import start_of_day_millis
from kharchaji.ledger.db.aio import AsyncLedgerStore
from kharchaji.ledger.db.store import LedgerStore
from kharchaji.ledger.errors import StorageFault
from kharchaji.ledger.models import LineItemRecord

DAY = date(2025, 1, 10)


@pytest.fixture
def astore(tmp_path):
    store = AsyncLedgerStore(LedgerStore(db_path=tmp_path / "test.db"))
    yield store
    store.close()


def _item(name):
    return LineItemRecord(name=name, price=10.0, timestamp_ms=start_of_day_millis(DAY))


@pytest.mark.asyncio
async def test_insert_and_read(astore):
    item_id = await astore.insert(_item("Milk"))
    loaded = await astore.get_by_id(item_id)
    assert loaded.name == "Milk"


@pytest.mark.asyncio
async def test_replace_for_date(astore):
    await astore.insert_items([_item("a"), _item("b")])
    await astore.replace_for_date([_item("X")], DAY)
    items = await astore.get_items_for_date(DAY)
    assert [i.name for i in items] == ["X"]


@pytest.mark.asyncio
async def test_calls_run_off_the_event_loop(astore):
    """Other coroutines keep running while a call is outstanding."""
    ticks = []

    async def ticker():
        for _ in range(3):
            ticks.append(1)
            await asyncio.sleep(0)

    await asyncio.gather(astore.insert_items([_item(str(n)) for n in range(50)]), ticker())
    assert len(ticks) == 3
    assert len(await astore.get_items()) == 50


@pytest.mark.asyncio
async def test_storage_fault_propagates(astore):
    item_id = await astore.insert(_item("a"))
    with pytest.raises(StorageFault):
        await astore.insert(LineItemRecord(id=item_id, name="dup", price=1.0))


@pytest.mark.asyncio
async def test_watch_is_synchronous(astore):
    seen = []
    sub = astore.watch_items(seen.append)
    await astore.insert(_item("a"))
    sub.cancel()
    assert [len(s) for s in seen] == [0, 1]


@pytest.mark.asyncio
async def test_category_maintenance(astore):
    item = _item("Milk")
    item.categories = ["Food"]
    await astore.insert(item)
    assert await astore.rename_category("Food", "Groceries") == (1, 0)
    assert await astore.get_all_unique_categories() == ["Groceries"]
