"""Exceptions raised by the ledger core."""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for ledger failures."""


class StorageFault(LedgerError):
    """The storage engine rejected or could not complete an operation.

    The underlying ``sqlite3`` exception is chained as ``__cause__``.
    """

    def __init__(self, operation: str, message: str = "") -> None:
        self.operation = operation
        super().__init__(f"{operation} failed: {message}" if message else f"{operation} failed")
