"""TOML configuration loader for the ledger."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

from .classifier import (
    DEFAULT_PRIMARY_KEYWORDS,
    DEFAULT_SECONDARY_KEYWORDS,
    DEFAULT_TERTIARY_KEYWORDS,
)

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

DEFAULT_DB_PATH = "~/.config/kharchaji/ledger.db"
DEFAULT_BACKUP_DIR = "~/.config/kharchaji/backups"


@dataclass
class DatabaseConfig:
    path: str = DEFAULT_DB_PATH


@dataclass
class StoreConfig:
    enforce_single_master: bool = True


@dataclass
class ClassifierConfig:
    primary: list[str] = field(default_factory=lambda: list(DEFAULT_PRIMARY_KEYWORDS))
    secondary: list[str] = field(default_factory=lambda: list(DEFAULT_SECONDARY_KEYWORDS))
    tertiary: list[str] = field(default_factory=lambda: list(DEFAULT_TERTIARY_KEYWORDS))


@dataclass
class BackupConfig:
    directory: str = DEFAULT_BACKUP_DIR


@dataclass
class LedgerConfig:
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    backup: BackupConfig = field(default_factory=BackupConfig)


def load_config(path: str | Path | None = None) -> LedgerConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    The database path can be overridden with ``KHARCHAJI_DB_PATH``.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    db = raw.get("database", {})
    sto = raw.get("store", {})
    cls = raw.get("classifier", {})
    bak = raw.get("backup", {})

    # Resolve DB path: environment variable → config file → default
    db_path = os.environ.get("KHARCHAJI_DB_PATH", "") or db.get("path", DEFAULT_DB_PATH)

    defaults = ClassifierConfig()

    return LedgerConfig(
        database=DatabaseConfig(path=db_path),
        store=StoreConfig(
            enforce_single_master=sto.get("enforce_single_master", True),
        ),
        classifier=ClassifierConfig(
            primary=cls.get("primary", defaults.primary),
            secondary=cls.get("secondary", defaults.secondary),
            tertiary=cls.get("tertiary", defaults.tertiary),
        ),
        backup=BackupConfig(
            directory=bak.get("directory", DEFAULT_BACKUP_DIR),
        ),
    )
