"""Database schema definitions."""

from __future__ import annotations

import sqlite3
from pathlib import Path

_SCHEMA_VERSION = 1

_DDL = """
CREATE TABLE IF NOT EXISTS line_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    quantity TEXT,
    price REAL NOT NULL DEFAULT 0.0,
    categories TEXT,
    is_done INTEGER NOT NULL DEFAULT 0,
    timestamp_ms INTEGER NOT NULL,
    image_refs TEXT
);

CREATE INDEX IF NOT EXISTS idx_line_items_timestamp ON line_items(timestamp_ms);

CREATE TABLE IF NOT EXISTS daily_snapshots (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    record_date INTEGER NOT NULL,
    total_sum REAL NOT NULL DEFAULT 0.0,
    checked_items_count INTEGER NOT NULL DEFAULT 0,
    checked_items_sum REAL NOT NULL DEFAULT 0.0,
    is_master_save INTEGER NOT NULL DEFAULT 0,
    timestamp_ms INTEGER NOT NULL,
    payload TEXT NOT NULL DEFAULT '[]'
);

CREATE INDEX IF NOT EXISTS idx_snapshots_date ON daily_snapshots(record_date);
CREATE INDEX IF NOT EXISTS idx_snapshots_master ON daily_snapshots(record_date, is_master_save);

CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL
);
"""


def ensure_schema(db_path: str | Path) -> sqlite3.Connection:
    """Open (or create) the ledger database and apply the schema.

    The returned connection is in autocommit mode; callers manage
    transactions with explicit ``BEGIN``/``COMMIT``. It may be used from
    other threads as long as access is serialised by the caller.

    Args:
        db_path: Path to the SQLite database file.

    Returns:
        An open sqlite3.Connection with the schema applied.
    """
    db_path = Path(db_path).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path), isolation_level=None, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")

    try:
        row = conn.execute("SELECT version FROM schema_version").fetchone()
        current_version = row["version"] if row else 0
    except sqlite3.OperationalError:
        current_version = 0

    if current_version < _SCHEMA_VERSION:
        conn.execute("BEGIN")
        try:
            for statement in _DDL.split(";"):
                if statement.strip():
                    conn.execute(statement)
            conn.execute("DELETE FROM schema_version")
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (_SCHEMA_VERSION,),
            )
        except sqlite3.Error:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")

    return conn
