"""Tests for backup export and restore."""

import json
import zipfile
from datetime import date

import pytest

from kharchaji.ledger.backup import (
    BACKUP_ENTRY,
    export_backup,
    import_backup,
    item_from_legacy,
    item_to_legacy,
    read_backup,
)
from kharchaji.ledger.dates import start_of_day_millis
from kharchaji.ledger.db.store import LedgerStore
from kharchaji.ledger.models import DailySnapshot, LineItemRecord, RecordItem

DAY = date(2025, 1, 10)


@pytest.fixture
def store(tmp_path):
    ledger = LedgerStore(db_path=tmp_path / "source.db")
    yield ledger
    ledger.close()


@pytest.fixture
def target(tmp_path):
    ledger = LedgerStore(db_path=tmp_path / "target.db")
    yield ledger
    ledger.close()


def _populate(store):
    ts = start_of_day_millis(DAY)
    store.insert_items(
        [
            LineItemRecord(
                name="Milk", price=45.0, quantity="2L", categories=["Food"],
                timestamp_ms=ts, image_refs=["img/milk.jpg"],
            ),
            LineItemRecord(name="Bread", price=20.0, is_done=True, timestamp_ms=ts + 1),
        ]
    )
    store.insert_snapshot(
        DailySnapshot.from_items(
            DAY, [RecordItem(description="Milk", price_text="45.00")], is_master_save=True
        )
    )


def test_item_legacy_row_uses_descriptor_text():
    item = LineItemRecord(id=3, name="Milk", price=45, quantity="2L", categories=["Food"], timestamp_ms=9)
    row = item_to_legacy(item)
    assert row["text"] == "Milk (2L) - ₹45.00|CATS:Food"
    assert item_from_legacy(row) == item


def test_export_writes_zip(store, tmp_path):
    _populate(store)
    path = export_backup(store, tmp_path / "out" / "backup.zip")

    assert path.exists()
    with zipfile.ZipFile(path) as zf:
        data = json.loads(zf.read(BACKUP_ENTRY))
    assert data["appVersion"] == 4
    assert len(data["todoItems"]) == 2
    assert len(data["calculationRecords"]) == 1


def test_export_default_name(store, tmp_path):
    path = export_backup(store, directory=tmp_path / "backups")
    assert path.parent == tmp_path / "backups"
    assert path.name.startswith("kharchaji_backup_")


def test_export_import_restores_everything(store, target, tmp_path):
    _populate(store)
    target.insert(LineItemRecord(name="Will be wiped", price=1.0))
    path = export_backup(store, tmp_path / "backup.zip")

    assert import_backup(target, path) == (2, 1)

    restored = {i.name: i for i in target.get_all_items()}
    assert set(restored) == {"Milk", "Bread"}
    assert restored["Milk"].quantity == "2L"
    assert restored["Milk"].categories == ["Food"]
    assert restored["Milk"].image_refs == ["img/milk.jpg"]
    assert restored["Bread"].is_done is True
    master = target.get_master_snapshot_for_date(DAY)
    assert master.items[0].description == "Milk"


def test_read_legacy_json_backup(tmp_path):
    """Bare JSON backups with categories only in the text are accepted."""
    legacy = {
        "appVersion": 3,
        "todoItems": [
            {
                "id": 1,
                "text": "Tea (2 cups) - ₹30.00|CATS:Food,Papa",
                "isDone": False,
                "timestamp": 1700000000000,
                "categories": None,
                "imageUris": None,
            },
            {"id": 2, "text": "garbled", "isDone": True, "timestamp": 1700000000001},
        ],
        "calculationRecords": [],
    }
    path = tmp_path / "legacy.json"
    path.write_text(json.dumps(legacy, ensure_ascii=False), encoding="utf-8")

    items, snapshots = read_backup(path)

    assert items[0].name == "Tea"
    assert items[0].quantity == "2 cups"
    assert items[0].categories == ["Food", "Papa"]
    assert items[1].name == "garbled"
    assert items[1].price == 0.0
    assert snapshots == []


def test_read_backup_archive_without_entry(tmp_path):
    path = tmp_path / "empty.zip"
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("other.json", "{}")

    with pytest.raises(ValueError, match="empty.zip"):
        read_backup(path)


def test_read_backup_snapshot_without_record_date(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text(
        json.dumps({"appVersion": 4, "todoItems": [], "calculationRecords": [{"items": []}]}),
        encoding="utf-8",
    )

    with pytest.raises(ValueError, match="recordDate"):
        read_backup(path)


def test_failed_import_leaves_store_untouched(store, tmp_path):
    _populate(store)
    path = tmp_path / "empty.zip"
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("other.json", "{}")

    with pytest.raises(ValueError):
        import_backup(store, path)
    assert len(store.get_all_items()) == 2
