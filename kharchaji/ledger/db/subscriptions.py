"""Continuous query listeners.

A subscription pairs a query with a callback. The store calls
``SubscriptionRegistry.notify`` after each committed mutation; every
subscription watching an affected table re-runs its query and hands the
fresh result to its callback.
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

ITEMS = "line_items"
SNAPSHOTS = "daily_snapshots"


class Subscription:
    """Handle returned to the subscriber. ``cancel()`` stops delivery."""

    def __init__(
        self,
        registry: SubscriptionRegistry,
        key: int,
        table: str,
        query: Callable[[], Any],
        callback: Callable[[Any], None],
    ) -> None:
        self._registry = registry
        self._key = key
        self.table = table
        self._query = query
        self._callback = callback

    @property
    def active(self) -> bool:
        return self._registry.is_registered(self._key)

    def deliver(self) -> None:
        self._callback(self._query())

    def cancel(self) -> None:
        self._registry.remove(self._key)


class SubscriptionRegistry:
    """Active listeners keyed by the table they watch."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subs: dict[int, Subscription] = {}
        self._ids = itertools.count(1)

    def add(
        self,
        table: str,
        query: Callable[[], Any],
        callback: Callable[[Any], None],
    ) -> Subscription:
        with self._lock:
            key = next(self._ids)
            sub = Subscription(self, key, table, query, callback)
            self._subs[key] = sub
        try:
            sub.deliver()
        except Exception:
            self.remove(key)
            raise
        return sub

    def remove(self, key: int) -> None:
        with self._lock:
            self._subs.pop(key, None)

    def is_registered(self, key: int) -> bool:
        with self._lock:
            return key in self._subs

    def __len__(self) -> int:
        with self._lock:
            return len(self._subs)

    def notify(self, *tables: str) -> None:
        """Re-run and deliver every subscription watching ``tables``."""
        with self._lock:
            targets = [s for s in self._subs.values() if s.table in tables]
        for sub in targets:
            try:
                sub.deliver()
            except Exception:
                logger.exception("Subscriber on %s failed", sub.table)
