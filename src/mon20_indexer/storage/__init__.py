"""Ledger persistence."""

from mon20_indexer.storage.errors import (
    CursorRegression,
    LedgerError,
    LedgerNotInitialized,
    LedgerWriteError,
    SupplyCapExceeded,
)
from mon20_indexer.storage.sqlite import SQLiteLedgerStore

__all__ = [
    "SQLiteLedgerStore",
    "LedgerError", "LedgerNotInitialized", "LedgerWriteError",
    "SupplyCapExceeded", "CursorRegression",
]
