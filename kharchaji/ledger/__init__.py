"""Persistence and encoding core of the Kharchaji expense ledger."""

from .classifier import CategoryClassifier, Tier, bucketize, classify, combinations
from .codec import Descriptor, decode, encode, parse_price
from .config import (
    BackupConfig,
    ClassifierConfig,
    DatabaseConfig,
    LedgerConfig,
    StoreConfig,
    load_config,
)
from .db import AsyncLedgerStore, LedgerStore, Subscription
from .errors import LedgerError, StorageFault
from .models import DailySnapshot, LineItemRecord, RecordItem
from .validation import ValidationResult, validate_expense

__all__ = [
    "encode",
    "decode",
    "parse_price",
    "Descriptor",
    "CategoryClassifier",
    "Tier",
    "classify",
    "bucketize",
    "combinations",
    "LineItemRecord",
    "RecordItem",
    "DailySnapshot",
    "LedgerStore",
    "AsyncLedgerStore",
    "Subscription",
    "LedgerError",
    "StorageFault",
    "ValidationResult",
    "validate_expense",
    "LedgerConfig",
    "DatabaseConfig",
    "StoreConfig",
    "ClassifierConfig",
    "BackupConfig",
    "load_config",
]
