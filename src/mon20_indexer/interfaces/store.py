"""LedgerStore protocol - persists balances, issuance stats and the scan cursor."""

from __future__ import annotations

from typing import Protocol, Sequence

from mon20_indexer.models.records import BlockCommit, HolderBalance, Stats


class LedgerStore(Protocol):
    """Durable ledger state. All writes are committed before returning."""

    # ── Lifecycle ──────────────────────────────────────────

    async def initialize(self) -> None:
        """Create tables if they don't exist."""
        ...

    async def ensure_stats(self, deploy_block: int) -> Stats:
        """Create the stats row at deploy_block - 1 if absent. Returns it."""
        ...

    async def close(self) -> None:
        ...

    # ── Reads ──────────────────────────────────────────────

    async def get_stats(self) -> Stats | None:
        ...

    async def get_cursor(self) -> int | None:
        ...

    async def get_balance(self, address: str) -> int:
        ...

    async def list_top_holders(self, limit: int) -> list[HolderBalance]:
        """Holders by balance descending, ties broken by address."""
        ...

    async def count_holders(self) -> int:
        ...

    # ── Writes ─────────────────────────────────────────────

    async def apply_mint(self, address: str, amount: int, max_supply: int) -> Stats:
        """Credit one mint and update stats atomically."""
        ...

    async def set_cursor(self, height: int) -> None:
        """Advance the cursor. Lower heights raise CursorRegression."""
        ...

    async def commit_block(
        self,
        height: int,
        minters: Sequence[str],
        amount: int,
        max_supply: int,
    ) -> BlockCommit:
        """Apply a block's mints in order and advance the cursor, atomically."""
        ...
