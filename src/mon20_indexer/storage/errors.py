"""Ledger store failures."""

from __future__ import annotations


class LedgerError(RuntimeError):
    """Base class for ledger store failures."""


class LedgerNotInitialized(LedgerError):
    """The stats row has not been created yet."""


class LedgerWriteError(LedgerError):
    """A write failed and was rolled back."""


class SupplyCapExceeded(LedgerError):
    """Applying the mint would push total_minted past max_supply."""

    def __init__(self, total_minted: int, amount: int, max_supply: int) -> None:
        super().__init__(
            f"mint of {amount} would exceed max supply "
            f"({total_minted} + {amount} > {max_supply})"
        )
        self.total_minted = total_minted
        self.amount = amount
        self.max_supply = max_supply


class CursorRegression(LedgerError):
    """A cursor write at or below the stored height."""

    def __init__(self, stored: int, requested: int) -> None:
        super().__init__(f"cursor regression: stored {stored}, requested {requested}")
        self.stored = stored
        self.requested = requested
