"""Zip/JSON backup of the whole ledger.

Line items are written in the legacy row format, with the descriptor text
carrying name, quantity, price and categories, so older backups and new
ones share one reader.
"""

from __future__ import annotations

import json
import logging
import zipfile
from datetime import datetime
from pathlib import Path

from .dates import now_millis, to_local_date
from .db.store import LedgerStore
from .models import DailySnapshot, LineItemRecord, RecordItem

logger = logging.getLogger(__name__)

BACKUP_VERSION = 4
BACKUP_ENTRY = "backup_data.json"


def item_to_legacy(item: LineItemRecord) -> dict:
    return {
        "id": item.id,
        "text": item.descriptor_text,
        "isDone": item.is_done,
        "timestamp": item.timestamp_ms,
        "categories": item.categories or None,
        "imageUris": item.image_refs,
    }


def item_from_legacy(row: dict) -> LineItemRecord:
    return LineItemRecord.from_descriptor(
        row.get("text", ""),
        is_done=bool(row.get("isDone", False)),
        timestamp_ms=row.get("timestamp"),
        image_refs=row.get("imageUris"),
        categories=row.get("categories"),
        id=row.get("id") or None,
    )


def snapshot_to_dict(snapshot: DailySnapshot) -> dict:
    return {
        "id": snapshot.id,
        "items": [i.to_dict() for i in snapshot.items],
        "totalSum": snapshot.total_sum,
        "checkedItemsCount": snapshot.checked_items_count,
        "checkedItemsSum": snapshot.checked_items_sum,
        "recordDate": snapshot.record_date_millis,
        "isMasterSave": snapshot.is_master_save,
        "timestamp": snapshot.timestamp_ms,
    }


def snapshot_from_dict(data: dict) -> DailySnapshot:
    return DailySnapshot(
        id=data.get("id") or None,
        record_date=to_local_date(data["recordDate"]),
        items=[RecordItem.from_dict(i) for i in data.get("items", [])],
        total_sum=data.get("totalSum", 0.0),
        checked_items_count=data.get("checkedItemsCount", 0),
        checked_items_sum=data.get("checkedItemsSum", 0.0),
        is_master_save=bool(data.get("isMasterSave", False)),
        timestamp_ms=data.get("timestamp", now_millis()),
    )


def build_backup(store: LedgerStore) -> dict:
    items = store.get_all_items()
    snapshots = store.get_all_snapshots()
    return {
        "appVersion": BACKUP_VERSION,
        "backupDate": now_millis(),
        "selectedDate": datetime.now().date().isoformat(),
        "todoItems": [item_to_legacy(i) for i in items],
        "calculationRecords": [snapshot_to_dict(s) for s in snapshots],
        "itemOrder": {str(i.id): idx for idx, i in enumerate(items)},
        "recordOrder": {str(s.id): idx for idx, s in enumerate(snapshots)},
    }


def export_backup(
    store: LedgerStore,
    path: str | Path | None = None,
    *,
    directory: str | Path = "~/.config/kharchaji/backups",
) -> Path:
    """Write a backup archive.

    Args:
        store: Source ledger.
        path: Target file. Defaults to a timestamped name in ``directory``.

    Returns:
        Path of the written archive.
    """
    if path is None:
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        path = Path(directory).expanduser() / f"kharchaji_backup_{stamp}.zip"
    path = Path(path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = build_backup(store)
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(BACKUP_ENTRY, json.dumps(data, ensure_ascii=False, indent=2))

    logger.info(
        "Exported %d items and %d snapshots to %s",
        len(data["todoItems"]),
        len(data["calculationRecords"]),
        path,
    )
    return path


def read_backup(path: str | Path) -> tuple[list[LineItemRecord], list[DailySnapshot]]:
    """Parse a backup archive or a bare JSON backup file.

    Raises:
        ValueError: The file is not a readable backup.
    """
    path = Path(path).expanduser()
    if zipfile.is_zipfile(path):
        with zipfile.ZipFile(path) as zf:
            if BACKUP_ENTRY not in zf.namelist():
                raise ValueError(f"{path}: archive has no {BACKUP_ENTRY}")
            data = json.loads(zf.read(BACKUP_ENTRY).decode("utf-8"))
    else:
        data = json.loads(path.read_text(encoding="utf-8"))

    version = data.get("appVersion", 1)
    if version > BACKUP_VERSION:
        logger.warning("Backup version %s is newer than supported %s", version, BACKUP_VERSION)

    items = [item_from_legacy(r) for r in data.get("todoItems", [])]
    try:
        snapshots = [snapshot_from_dict(r) for r in data.get("calculationRecords", [])]
    except KeyError as e:
        raise ValueError(f"{path}: snapshot record missing {e.args[0]!r}") from e
    return items, snapshots


def import_backup(store: LedgerStore, path: str | Path) -> tuple[int, int]:
    """Replace the whole ledger with the contents of a backup.

    Returns:
        (item_count, snapshot_count)
    """
    items, snapshots = read_backup(path)
    store.clear_and_insert_all_data(items, snapshots)
    return len(items), len(snapshots)
