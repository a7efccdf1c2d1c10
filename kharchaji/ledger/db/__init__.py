"""SQLite persistence for line items and daily snapshots."""

from .aio import AsyncLedgerStore
from .schema import ensure_schema
from .store import LedgerStore
from .subscriptions import Subscription, SubscriptionRegistry

__all__ = [
    "LedgerStore",
    "AsyncLedgerStore",
    "Subscription",
    "SubscriptionRegistry",
    "ensure_schema",
]
