"""Line item and daily snapshot persistence."""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import date, timedelta
from pathlib import Path
from typing import TYPE_CHECKING

from ..classifier import CategoryClassifier, Tier, combinations
from ..dates import day_bounds_inclusive, day_range, start_of_day_millis, to_local_date
from ..errors import StorageFault
from ..models import DailySnapshot, LineItemRecord, RecordItem
from ..records import items_identical, merge_record_items, plan_day_load
from .schema import ensure_schema
from .subscriptions import ITEMS, SNAPSHOTS, Subscription, SubscriptionRegistry

if TYPE_CHECKING:
    from ..config import LedgerConfig

logger = logging.getLogger(__name__)

_ITEM_COLUMNS = "name, quantity, price, categories, is_done, timestamp_ms, image_refs"
_SNAPSHOT_COLUMNS = (
    "record_date, total_sum, checked_items_count, checked_items_sum, "
    "is_master_save, timestamp_ms, payload"
)
_SNAPSHOT_ORDER = "is_master_save DESC, timestamp_ms DESC"
_HAS_CATEGORY = (
    "EXISTS (SELECT 1 FROM json_each(line_items.categories) WHERE json_each.value = ?)"
)
_COUNT_RELATIONS = {"<": "<", "==": "=", ">": ">"}


def _dump_list(values: list[str] | None) -> str | None:
    if not values:
        return None
    return json.dumps(list(values), ensure_ascii=False)


def _load_list(text: str | None) -> list[str] | None:
    if text is None:
        return None
    return json.loads(text)


def _item_from_row(row: sqlite3.Row) -> LineItemRecord:
    d = dict(row)
    d["categories"] = _load_list(d["categories"])
    d["image_refs"] = _load_list(d["image_refs"])
    return LineItemRecord.from_row(d)


def _snapshot_from_row(row: sqlite3.Row) -> DailySnapshot:
    return DailySnapshot(
        id=row["id"],
        record_date=to_local_date(row["record_date"]),
        items=[RecordItem.from_dict(d) for d in json.loads(row["payload"])],
        total_sum=row["total_sum"],
        checked_items_count=row["checked_items_count"],
        checked_items_sum=row["checked_items_sum"],
        is_master_save=bool(row["is_master_save"]),
        timestamp_ms=row["timestamp_ms"],
    )


def _dump_payload(items: list[RecordItem]) -> str:
    return json.dumps([i.to_dict() for i in items], ensure_ascii=False)


def _item_params(item: LineItemRecord) -> tuple:
    return (
        item.name,
        item.quantity,
        item.price,
        _dump_list(item.categories),
        int(item.is_done),
        item.timestamp_ms,
        _dump_list(item.image_refs),
    )


def _snapshot_params(snapshot: DailySnapshot) -> tuple:
    return (
        snapshot.record_date_millis,
        snapshot.total_sum,
        snapshot.checked_items_count,
        snapshot.checked_items_sum,
        int(snapshot.is_master_save),
        snapshot.timestamp_ms,
        _dump_payload(snapshot.items),
    )


class LedgerStore:
    """Manages the line_items and daily_snapshots tables.

    Every public call makes a single attempt. Multi-row mutations run in one
    ``BEGIN IMMEDIATE`` transaction, so other connections observe either the
    state before the call or the state after it. SQLite errors surface as
    :class:`StorageFault` and the transaction is rolled back.

    When ``enforce_single_master`` is true, writing a master snapshot demotes
    any other master for the same day in the same transaction. When false,
    keeping a single master per day is left to the caller.
    """

    def __init__(
        self,
        db_path: str | Path = "~/.config/kharchaji/ledger.db",
        *,
        enforce_single_master: bool = True,
        classifier: CategoryClassifier | None = None,
    ) -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._subscriptions = SubscriptionRegistry()
        self.enforce_single_master = enforce_single_master
        self.classifier = classifier or CategoryClassifier()

    @classmethod
    def from_config(cls, config: LedgerConfig) -> LedgerStore:
        return cls(
            config.database.path,
            enforce_single_master=config.store.enforce_single_master,
            classifier=CategoryClassifier.from_config(config.classifier),
        )

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            try:
                self._conn = ensure_schema(self._db_path)
            except sqlite3.Error as e:
                raise StorageFault("open", str(e)) from e
        return self._conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    @contextmanager
    def _read(self, operation: str) -> Iterator[sqlite3.Connection]:
        with self._lock:
            conn = self._get_conn()
            try:
                yield conn
            except sqlite3.Error as e:
                raise StorageFault(operation, str(e)) from e

    @contextmanager
    def _transaction(self, operation: str, *tables: str) -> Iterator[sqlite3.Connection]:
        with self._lock:
            conn = self._get_conn()
            try:
                conn.execute("BEGIN IMMEDIATE")
                yield conn
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                self._rollback(conn)
                raise StorageFault(operation, str(e)) from e
            except BaseException:
                self._rollback(conn)
                raise
        self._subscriptions.notify(*tables)

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        if conn.in_transaction:
            conn.execute("ROLLBACK")

    # -- line items: writes -------------------------------------------------

    @staticmethod
    def _insert_item(conn: sqlite3.Connection, item: LineItemRecord) -> int:
        if item.id is None:
            cur = conn.execute(
                f"INSERT INTO line_items ({_ITEM_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                _item_params(item),
            )
        else:
            cur = conn.execute(
                f"INSERT INTO line_items (id, {_ITEM_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (item.id, *_item_params(item)),
            )
        return cur.lastrowid

    @staticmethod
    def _update_item(conn: sqlite3.Connection, item: LineItemRecord) -> None:
        if item.id is None:
            raise ValueError("Cannot update a line item without an id")
        conn.execute(
            """UPDATE line_items
               SET name = ?, quantity = ?, price = ?, categories = ?,
                   is_done = ?, timestamp_ms = ?, image_refs = ?
               WHERE id = ?""",
            (*_item_params(item), item.id),
        )

    def insert(self, item: LineItemRecord) -> int:
        """Insert one line item.

        Returns:
            The row ID assigned by the database.
        """
        with self._transaction("insert", ITEMS) as conn:
            return self._insert_item(conn, item)

    def insert_items(self, items: list[LineItemRecord]) -> list[int]:
        """Insert several line items in one transaction."""
        with self._transaction("insert_items", ITEMS) as conn:
            return [self._insert_item(conn, item) for item in items]

    def update(self, item: LineItemRecord) -> None:
        with self._transaction("update", ITEMS) as conn:
            self._update_item(conn, item)

    def update_items(self, items: list[LineItemRecord]) -> None:
        with self._transaction("update_items", ITEMS) as conn:
            for item in items:
                self._update_item(conn, item)

    def delete_by_id(self, item_id: int) -> None:
        with self._transaction("delete_by_id", ITEMS) as conn:
            conn.execute("DELETE FROM line_items WHERE id = ?", (item_id,))

    def delete_by_ids(self, item_ids: list[int]) -> int:
        """Delete the given rows with a single statement.

        Returns:
            Number of rows deleted.
        """
        if not item_ids:
            return 0
        placeholders = ", ".join("?" for _ in item_ids)
        with self._transaction("delete_by_ids", ITEMS) as conn:
            cur = conn.execute(
                f"DELETE FROM line_items WHERE id IN ({placeholders})",
                list(item_ids),
            )
            return cur.rowcount

    def delete_all_items(self) -> int:
        with self._transaction("delete_all_items", ITEMS) as conn:
            return conn.execute("DELETE FROM line_items").rowcount

    def delete_by_date_range(self, start_ms: int, end_ms: int) -> int:
        """Delete line items with ``start_ms <= timestamp_ms < end_ms``."""
        with self._transaction("delete_by_date_range", ITEMS) as conn:
            cur = conn.execute(
                "DELETE FROM line_items WHERE timestamp_ms >= ? AND timestamp_ms < ?",
                (start_ms, end_ms),
            )
        logger.debug("Deleted %d items in [%d, %d)", cur.rowcount, start_ms, end_ms)
        return cur.rowcount

    def replace_for_date(self, items: list[LineItemRecord], day: date) -> list[int]:
        """Atomically replace every line item of ``day`` with ``items``.

        Returns:
            IDs of the inserted rows.
        """
        start, end = day_range(day)
        with self._transaction("replace_for_date", ITEMS) as conn:
            removed = conn.execute(
                "DELETE FROM line_items WHERE timestamp_ms >= ? AND timestamp_ms < ?",
                (start, end),
            ).rowcount
            ids = [self._insert_item(conn, item) for item in items]
        logger.info(
            "Replaced %d items with %d for %s", removed, len(ids), day.isoformat()
        )
        return ids

    def clear_and_set_items_for_date(self, items: list[LineItemRecord], day: date) -> None:
        """Same contract as :meth:`replace_for_date`, without returning IDs."""
        start, end = day_range(day)
        with self._transaction("clear_and_set_items_for_date", ITEMS) as conn:
            conn.execute(
                "DELETE FROM line_items WHERE timestamp_ms >= ? AND timestamp_ms < ?",
                (start, end),
            )
            for item in items:
                self._insert_item(conn, item)

    def clear_and_load_items(self, items: list[LineItemRecord]) -> list[int]:
        """Atomically replace all line items with ``items``."""
        with self._transaction("clear_and_load_items", ITEMS) as conn:
            conn.execute("DELETE FROM line_items")
            return [self._insert_item(conn, item) for item in items]

    # -- line items: reads --------------------------------------------------

    def _select_items(
        self,
        operation: str,
        where: str = "",
        params: tuple = (),
        order: str = "id DESC",
    ) -> list[LineItemRecord]:
        sql = "SELECT * FROM line_items"
        if where:
            sql += f" WHERE {where}"
        sql += f" ORDER BY {order}"
        with self._read(operation) as conn:
            rows = conn.execute(sql, params).fetchall()
        return [_item_from_row(r) for r in rows]

    def get_by_id(self, item_id: int) -> LineItemRecord | None:
        items = self._select_items("get_by_id", "id = ?", (item_id,))
        return items[0] if items else None

    def get_items(self) -> list[LineItemRecord]:
        """All line items, newest row first."""
        return self._select_items("get_items")

    def get_all_items(self) -> list[LineItemRecord]:
        """All line items for export, newest first and pending before done."""
        return self._select_items("get_all_items", order="timestamp_ms DESC, is_done ASC")

    def get_items_for_date_range(self, start_ms: int, end_ms: int) -> list[LineItemRecord]:
        """Line items with ``start_ms <= timestamp_ms <= end_ms`` in insertion order."""
        return self._select_items(
            "get_items_for_date_range",
            "timestamp_ms >= ? AND timestamp_ms <= ?",
            (start_ms, end_ms),
            order="id ASC",
        )

    def get_items_for_date(self, day: date) -> list[LineItemRecord]:
        return self.get_items_for_date_range(*day_bounds_inclusive(day))

    def get_items_by_category(self, category: str) -> list[LineItemRecord]:
        return self._select_items(
            "get_items_by_category",
            _HAS_CATEGORY,
            (category,),
            order="timestamp_ms DESC",
        )

    def get_items_matching_all(self, categories: list[str]) -> list[LineItemRecord]:
        """Line items tagged with every one of ``categories``."""
        wanted = set(categories)
        return [
            item
            for item in self._select_items("get_items_matching_all", order="timestamp_ms DESC")
            if wanted <= set(item.categories)
        ]

    def get_items_for_intersections(self, groups: list[list[str]]) -> list[LineItemRecord]:
        """Line items matching at least one combination drawn from ``groups``.

        Each combination takes one category per group and requires all of
        them, e.g. ``[["Papa", "Priya"], ["Food"]]`` matches items tagged
        Papa+Food or Priya+Food.
        """
        combos = [set(c) for c in combinations(groups)]
        return [
            item
            for item in self._select_items("get_items_for_intersections", order="timestamp_ms DESC")
            if any(combo <= set(item.categories) for combo in combos)
        ]

    def get_items_grouped_by_date(self) -> dict[date, list[LineItemRecord]]:
        grouped: dict[date, list[LineItemRecord]] = {}
        for item in self.get_all_items():
            grouped.setdefault(to_local_date(item.timestamp_ms), []).append(item)
        return grouped

    def get_uncategorized_items(self) -> list[LineItemRecord]:
        return self._select_items(
            "get_uncategorized_items",
            "categories IS NULL OR json_array_length(categories) = 0",
            order="timestamp_ms DESC",
        )

    def get_items_with_category_count(self, relation: str, count: int = 3) -> list[LineItemRecord]:
        """Categorised items whose category count is ``<``, ``==`` or ``>`` ``count``."""
        if relation not in _COUNT_RELATIONS:
            raise ValueError(f"Unknown relation {relation!r}")
        return self._select_items(
            "get_items_with_category_count",
            "categories IS NOT NULL AND json_array_length(categories) > 0 "
            f"AND json_array_length(categories) {_COUNT_RELATIONS[relation]} ?",
            (count,),
            order="timestamp_ms DESC",
        )

    # -- categories ---------------------------------------------------------

    def get_all_unique_categories(self) -> list[str]:
        """Every category used by a line item, sorted."""
        with self._read("get_all_unique_categories") as conn:
            rows = conn.execute(
                """SELECT DISTINCT json_each.value
                   FROM line_items, json_each(line_items.categories)
                   ORDER BY json_each.value"""
            ).fetchall()
        return [r[0] for r in rows]

    def get_categories_by_tier(self) -> dict[Tier, list[str]]:
        """Used categories grouped by tier, for legends and report headers."""
        primary, secondary, tertiary = self.classifier.bucketize(
            self.get_all_unique_categories()
        )
        return {Tier.PRIMARY: primary, Tier.SECONDARY: secondary, Tier.TERTIARY: tertiary}

    def rename_category(self, old: str, new: str) -> tuple[int, int]:
        """Rename a category on every line item and snapshot item.

        Returns:
            (items_changed, snapshots_changed)
        """
        new = new.strip()
        if not new:
            raise ValueError("Category name cannot be empty")

        def rename(categories: list[str]) -> list[str]:
            renamed = [new if c == old else c for c in categories]
            return list(dict.fromkeys(renamed))

        return self._rewrite_category("rename_category", old, rename)

    def delete_category(self, name: str) -> tuple[int, int]:
        """Strip a category from every line item and snapshot item.

        Returns:
            (items_changed, snapshots_changed)
        """
        return self._rewrite_category(
            "delete_category", name, lambda categories: [c for c in categories if c != name]
        )

    def _rewrite_category(
        self,
        operation: str,
        category: str,
        rewrite: Callable[[list[str]], list[str]],
    ) -> tuple[int, int]:
        with self._transaction(operation, ITEMS, SNAPSHOTS) as conn:
            rows = conn.execute(
                f"SELECT id, categories FROM line_items WHERE {_HAS_CATEGORY}",
                (category,),
            ).fetchall()
            for row in rows:
                conn.execute(
                    "UPDATE line_items SET categories = ? WHERE id = ?",
                    (_dump_list(rewrite(_load_list(row["categories"]))), row["id"]),
                )

            snapshots_changed = 0
            for snapshot in self._select_snapshots(operation, conn=conn):
                touched = [i for i in snapshot.items if category in (i.categories or [])]
                if not touched:
                    continue
                for item in touched:
                    item.categories = rewrite(item.categories) or None
                conn.execute(
                    "UPDATE daily_snapshots SET payload = ? WHERE id = ?",
                    (_dump_payload(snapshot.items), snapshot.id),
                )
                snapshots_changed += 1

        logger.info(
            "%s %r: %d items, %d snapshots",
            operation,
            category,
            len(rows),
            snapshots_changed,
        )
        return len(rows), snapshots_changed

    # -- snapshots ----------------------------------------------------------

    def _demote_other_masters(self, conn: sqlite3.Connection, snapshot: DailySnapshot) -> None:
        if not (snapshot.is_master_save and self.enforce_single_master):
            return
        cur = conn.execute(
            """UPDATE daily_snapshots SET is_master_save = 0
               WHERE record_date = ? AND is_master_save = 1 AND id IS NOT ?""",
            (snapshot.record_date_millis, snapshot.id),
        )
        if cur.rowcount:
            logger.info(
                "Demoted %d master snapshot(s) for %s",
                cur.rowcount,
                snapshot.record_date.isoformat(),
            )

    def _insert_snapshot(self, conn: sqlite3.Connection, snapshot: DailySnapshot) -> int:
        self._demote_other_masters(conn, snapshot)
        if snapshot.id is None:
            cur = conn.execute(
                f"INSERT INTO daily_snapshots ({_SNAPSHOT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                _snapshot_params(snapshot),
            )
        else:
            cur = conn.execute(
                f"INSERT OR REPLACE INTO daily_snapshots (id, {_SNAPSHOT_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (snapshot.id, *_snapshot_params(snapshot)),
            )
        return cur.lastrowid

    def _update_snapshot(self, conn: sqlite3.Connection, snapshot: DailySnapshot) -> None:
        if snapshot.id is None:
            raise ValueError("Cannot update a snapshot without an id")
        self._demote_other_masters(conn, snapshot)
        conn.execute(
            """UPDATE daily_snapshots
               SET record_date = ?, total_sum = ?, checked_items_count = ?,
                   checked_items_sum = ?, is_master_save = ?, timestamp_ms = ?,
                   payload = ?
               WHERE id = ?""",
            (*_snapshot_params(snapshot), snapshot.id),
        )

    def insert_snapshot(self, snapshot: DailySnapshot) -> int:
        """Insert a snapshot, replacing any row with the same id."""
        with self._transaction("insert_snapshot", SNAPSHOTS) as conn:
            return self._insert_snapshot(conn, snapshot)

    def insert_snapshots(self, snapshots: list[DailySnapshot]) -> list[int]:
        with self._transaction("insert_snapshots", SNAPSHOTS) as conn:
            return [self._insert_snapshot(conn, s) for s in snapshots]

    def update_snapshot(self, snapshot: DailySnapshot) -> None:
        with self._transaction("update_snapshot", SNAPSHOTS) as conn:
            self._update_snapshot(conn, snapshot)

    def update_snapshots(self, snapshots: list[DailySnapshot]) -> None:
        with self._transaction("update_snapshots", SNAPSHOTS) as conn:
            for snapshot in snapshots:
                self._update_snapshot(conn, snapshot)

    @staticmethod
    def _fetch_snapshot(conn: sqlite3.Connection, snapshot_id: int) -> DailySnapshot:
        row = conn.execute(
            "SELECT * FROM daily_snapshots WHERE id = ?", (snapshot_id,)
        ).fetchone()
        if row is None:
            raise LookupError(f"No snapshot with id {snapshot_id}")
        return _snapshot_from_row(row)

    def promote_to_master(self, snapshot_id: int) -> None:
        """Mark a snapshot as its day's master."""
        with self._transaction("promote_to_master", SNAPSHOTS) as conn:
            snapshot = self._fetch_snapshot(conn, snapshot_id)
            snapshot.is_master_save = True
            self._update_snapshot(conn, snapshot)

    def _edit_snapshot(
        self,
        operation: str,
        snapshot_id: int,
        edit: Callable[[DailySnapshot], DailySnapshot],
    ) -> DailySnapshot:
        with self._transaction(operation, SNAPSHOTS) as conn:
            edited = edit(self._fetch_snapshot(conn, snapshot_id))
            self._update_snapshot(conn, edited)
        return edited

    def add_snapshot_item(self, snapshot_id: int, item: RecordItem) -> DailySnapshot:
        """Append an item to a saved snapshot and recompute its totals."""
        return self._edit_snapshot(
            "add_snapshot_item", snapshot_id, lambda s: s.add_item(item)
        )

    def update_snapshot_item(
        self,
        snapshot_id: int,
        index: int,
        description: str,
        price_text: str,
        quantity: str | None = None,
        categories: list[str] | None = None,
    ) -> DailySnapshot:
        return self._edit_snapshot(
            "update_snapshot_item",
            snapshot_id,
            lambda s: s.update_item(index, description, price_text, quantity, categories),
        )

    def remove_snapshot_item(self, snapshot_id: int, index: int) -> DailySnapshot:
        return self._edit_snapshot(
            "remove_snapshot_item", snapshot_id, lambda s: s.remove_item(index)
        )

    def delete_snapshot_by_id(self, snapshot_id: int) -> None:
        with self._transaction("delete_snapshot_by_id", SNAPSHOTS) as conn:
            conn.execute("DELETE FROM daily_snapshots WHERE id = ?", (snapshot_id,))

    def delete_snapshots_by_date_range(self, start_ms: int, end_ms: int) -> int:
        """Delete snapshots with ``start_ms <= record_date < end_ms``."""
        with self._transaction("delete_snapshots_by_date_range", SNAPSHOTS) as conn:
            return conn.execute(
                "DELETE FROM daily_snapshots WHERE record_date >= ? AND record_date < ?",
                (start_ms, end_ms),
            ).rowcount

    def delete_all_snapshots(self) -> int:
        with self._transaction("delete_all_snapshots", SNAPSHOTS) as conn:
            return conn.execute("DELETE FROM daily_snapshots").rowcount

    def _select_snapshots(
        self,
        operation: str,
        where: str = "",
        params: tuple = (),
        order: str = _SNAPSHOT_ORDER,
        conn: sqlite3.Connection | None = None,
    ) -> list[DailySnapshot]:
        sql = "SELECT * FROM daily_snapshots"
        if where:
            sql += f" WHERE {where}"
        sql += f" ORDER BY {order}"
        if conn is not None:
            rows = conn.execute(sql, params).fetchall()
        else:
            with self._read(operation) as c:
                rows = c.execute(sql, params).fetchall()
        return [_snapshot_from_row(r) for r in rows]

    def get_snapshot_by_id(self, snapshot_id: int) -> DailySnapshot | None:
        found = self._select_snapshots("get_snapshot_by_id", "id = ?", (snapshot_id,))
        return found[0] if found else None

    def get_all_snapshots(self) -> list[DailySnapshot]:
        return self._select_snapshots("get_all_snapshots")

    def get_snapshots_for_date_range(self, start_ms: int, end_ms: int) -> list[DailySnapshot]:
        """Snapshots with ``start_ms <= record_date <= end_ms``, masters first."""
        return self._select_snapshots(
            "get_snapshots_for_date_range",
            "record_date >= ? AND record_date <= ?",
            (start_ms, end_ms),
        )

    def get_master_snapshot_for_date(self, day: date) -> DailySnapshot | None:
        """The newest master snapshot for ``day``, if any."""
        found = self._select_snapshots(
            "get_master_snapshot_for_date",
            "record_date >= ? AND record_date <= ? AND is_master_save = 1",
            day_bounds_inclusive(day),
            order="timestamp_ms DESC",
        )
        return found[0] if found else None

    def get_master_snapshots_for_date_range(self, start_ms: int, end_ms: int) -> list[DailySnapshot]:
        """Master snapshots in range, by day then newest first (calendar view)."""
        return self._select_snapshots(
            "get_master_snapshots_for_date_range",
            "record_date >= ? AND record_date <= ? AND is_master_save = 1",
            (start_ms, end_ms),
            order="record_date ASC, timestamp_ms DESC",
        )

    def get_master_totals_for_range(self, start: date, end: date) -> dict[date, float]:
        """Master total per day for ``start..end`` inclusive."""
        totals: dict[date, float] = {}
        masters = self.get_master_snapshots_for_date_range(
            start_of_day_millis(start),
            start_of_day_millis(end + timedelta(days=1)) - 1,
        )
        for snapshot in masters:
            totals.setdefault(snapshot.record_date, snapshot.total_sum)
        return totals

    # -- compound flows -----------------------------------------------------

    def save_to_master(self, day: date, items: list[LineItemRecord]) -> tuple[bool, bool]:
        """Save ``items`` as a regular snapshot and fold them into the master.

        A regular snapshot is only added when no identical one exists for the
        day. The master is created, or merged and rewritten when the merge
        changes it. Both steps share one transaction.

        Returns:
            (regular_created, master_created_or_updated)
        """
        record_items = [item.to_record_item() for item in items]
        if not record_items:
            return False, False

        with self._transaction("save_to_master", SNAPSHOTS) as conn:
            existing = self._select_snapshots(
                "save_to_master",
                "record_date >= ? AND record_date <= ?",
                day_bounds_inclusive(day),
                conn=conn,
            )

            regular_created = False
            regulars = [s for s in existing if not s.is_master_save]
            if any(items_identical(s.items, record_items) for s in regulars):
                logger.debug("Identical regular snapshot exists for %s", day)
            else:
                self._insert_snapshot(conn, DailySnapshot.from_items(day, record_items))
                regular_created = True

            masters = [s for s in existing if s.is_master_save]
            if not masters:
                self._insert_snapshot(
                    conn, DailySnapshot.from_items(day, record_items, is_master_save=True)
                )
                return regular_created, True

            master = masters[0]
            merged = merge_record_items(master.items, record_items)
            if items_identical(master.items, merged):
                logger.debug("Master snapshot #%s unchanged", master.id)
                return regular_created, False

            updated = DailySnapshot.from_items(day, merged, is_master_save=True)
            updated.id = master.id
            self._update_snapshot(conn, updated)
            logger.info("Updated master snapshot #%s for %s", master.id, day)
            return regular_created, True

    def restore_snapshot(self, snapshot_id: int, day: date | None = None) -> list[int]:
        """Replace a day's working rows with the contents of a snapshot.

        Args:
            snapshot_id: Snapshot to restore.
            day: Target day; defaults to the snapshot's own date.
        """
        snapshot = self.get_snapshot_by_id(snapshot_id)
        if snapshot is None:
            raise LookupError(f"No snapshot with id {snapshot_id}")
        target = day or snapshot.record_date
        timestamp = start_of_day_millis(target)
        items = [i.to_line_item(timestamp) for i in snapshot.items]
        logger.info("Restoring snapshot #%d into %s", snapshot_id, target)
        return self.replace_for_date(items, target)

    def load_record_items(self, record_items: list[RecordItem], day: date) -> tuple[int, int]:
        """Merge snapshot items into ``day`` without dropping its current rows.

        See :func:`~kharchaji.ledger.records.plan_day_load` for the matching
        rules. Runs in one transaction.

        Returns:
            (inserted, updated)
        """
        start, end = day_range(day)
        with self._transaction("load_record_items", ITEMS) as conn:
            rows = conn.execute(
                "SELECT * FROM line_items WHERE timestamp_ms >= ? AND timestamp_ms < ? "
                "ORDER BY id ASC",
                (start, end),
            ).fetchall()
            to_insert, to_update = plan_day_load(
                [_item_from_row(r) for r in rows], record_items, start
            )
            for item in to_update:
                self._update_item(conn, item)
            for item in to_insert:
                self._insert_item(conn, item)
        logger.info(
            "Loaded snapshot items into %s: %d new, %d updated",
            day.isoformat(),
            len(to_insert),
            len(to_update),
        )
        return len(to_insert), len(to_update)

    # -- backup -------------------------------------------------------------

    def clear_and_insert_all_data(
        self, items: list[LineItemRecord], snapshots: list[DailySnapshot]
    ) -> None:
        """Wipe both tables and load ``items`` and ``snapshots`` atomically."""
        with self._transaction("clear_and_insert_all_data", ITEMS, SNAPSHOTS) as conn:
            conn.execute("DELETE FROM line_items")
            conn.execute("DELETE FROM daily_snapshots")
            for item in items:
                self._insert_item(conn, item)
            for snapshot in snapshots:
                conn.execute(
                    f"INSERT INTO daily_snapshots (id, {_SNAPSHOT_COLUMNS}) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    (snapshot.id, *_snapshot_params(snapshot)),
                )
        logger.info(
            "Restored %d items and %d snapshots", len(items), len(snapshots)
        )

    # -- continuous queries -------------------------------------------------

    def watch_items(self, callback: Callable[[list[LineItemRecord]], None]) -> Subscription:
        """Deliver :meth:`get_items` now and after every item mutation."""
        return self._subscriptions.add(ITEMS, self.get_items, callback)

    def watch_items_for_date(
        self, day: date, callback: Callable[[list[LineItemRecord]], None]
    ) -> Subscription:
        return self._subscriptions.add(ITEMS, lambda: self.get_items_for_date(day), callback)

    def watch_all_snapshots(self, callback: Callable[[list[DailySnapshot]], None]) -> Subscription:
        return self._subscriptions.add(SNAPSHOTS, self.get_all_snapshots, callback)

    def watch_snapshots_for_date_range(
        self,
        start_ms: int,
        end_ms: int,
        callback: Callable[[list[DailySnapshot]], None],
    ) -> Subscription:
        return self._subscriptions.add(
            SNAPSHOTS,
            lambda: self.get_snapshots_for_date_range(start_ms, end_ms),
            callback,
        )

    def watch_master_snapshots_for_date_range(
        self,
        start_ms: int,
        end_ms: int,
        callback: Callable[[list[DailySnapshot]], None],
    ) -> Subscription:
        return self._subscriptions.add(
            SNAPSHOTS,
            lambda: self.get_master_snapshots_for_date_range(start_ms, end_ms),
            callback,
        )
