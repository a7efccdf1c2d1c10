"""asyncio facade over LedgerStore."""

from __future__ import annotations

import asyncio
import functools
from typing import Any

from .store import LedgerStore

# Operations run in a worker thread; watch_* and close stay synchronous.
_ASYNC_METHODS = frozenset(
    {
        "insert",
        "insert_items",
        "update",
        "update_items",
        "delete_by_id",
        "delete_by_ids",
        "delete_all_items",
        "delete_by_date_range",
        "replace_for_date",
        "clear_and_set_items_for_date",
        "clear_and_load_items",
        "get_by_id",
        "get_items",
        "get_all_items",
        "get_items_for_date",
        "get_items_for_date_range",
        "get_items_by_category",
        "get_items_matching_all",
        "get_items_for_intersections",
        "get_items_grouped_by_date",
        "get_uncategorized_items",
        "get_items_with_category_count",
        "get_all_unique_categories",
        "get_categories_by_tier",
        "rename_category",
        "delete_category",
        "insert_snapshot",
        "insert_snapshots",
        "update_snapshot",
        "update_snapshots",
        "promote_to_master",
        "add_snapshot_item",
        "update_snapshot_item",
        "remove_snapshot_item",
        "delete_snapshot_by_id",
        "delete_snapshots_by_date_range",
        "delete_all_snapshots",
        "get_snapshot_by_id",
        "get_all_snapshots",
        "get_snapshots_for_date_range",
        "get_master_snapshot_for_date",
        "get_master_snapshots_for_date_range",
        "get_master_totals_for_range",
        "save_to_master",
        "restore_snapshot",
        "load_record_items",
        "clear_and_insert_all_data",
    }
)


class AsyncLedgerStore:
    """Awaitable wrapper: ``await store.replace_for_date(items, day)``.

    Each call is handed to a worker thread with :func:`asyncio.to_thread`,
    so the event loop keeps running while SQLite works. Subscription
    callbacks fire on that worker thread.
    """

    def __init__(self, store: LedgerStore) -> None:
        self._store = store

    @property
    def store(self) -> LedgerStore:
        return self._store

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self._store, name)
        if name not in _ASYNC_METHODS:
            return attr

        @functools.wraps(attr)
        async def call(*args: Any, **kwargs: Any) -> Any:
            return await asyncio.to_thread(attr, *args, **kwargs)

        return call

    def close(self) -> None:
        self._store.close()
