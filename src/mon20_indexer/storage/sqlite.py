"""SQLite implementation of the LedgerStore protocol."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, Sequence

import aiosqlite

from mon20_indexer.models.records import BlockCommit, HolderBalance, Stats
from mon20_indexer.storage.errors import (
    CursorRegression,
    LedgerNotInitialized,
    LedgerWriteError,
    SupplyCapExceeded,
)

SCHEMA = """
-- Issuance counters and scan cursor (singleton)
CREATE TABLE IF NOT EXISTS stats (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    total_minted INTEGER NOT NULL DEFAULT 0 CHECK (total_minted >= 0),
    mint_count INTEGER NOT NULL DEFAULT 0 CHECK (mint_count >= 0),
    last_processed_block INTEGER NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Holder balances
CREATE TABLE IF NOT EXISTS holders (
    address TEXT PRIMARY KEY,
    balance INTEGER NOT NULL CHECK (balance >= 0),
    first_block INTEGER,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_holders_balance ON holders(balance DESC);
"""

MEMORY_DB = ":memory:"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteLedgerStore:
    """SQLite-backed implementation of the LedgerStore protocol.

    Writes run inside BEGIN IMMEDIATE transactions and are committed
    before the call returns. Reads and writes share one lock so an
    in-process reader never sees half of a compound update.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        if self._db_path != MEMORY_DB:
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        if self._db_path != MEMORY_DB:
            await self._db.execute("PRAGMA journal_mode=WAL")
            await self._db.execute("PRAGMA synchronous=FULL")
        await self._db.executescript(SCHEMA)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        assert self._db is not None, "Store not initialized. Call initialize() first."
        return self._db

    async def ensure_stats(self, deploy_block: int) -> Stats:
        async with self._transaction():
            await self.db.execute(
                "INSERT OR IGNORE INTO stats"
                " (id, total_minted, mint_count, last_processed_block, updated_at)"
                " VALUES (1, 0, 0, ?, ?)",
                (deploy_block - 1, _now()),
            )
            stats = await self._require_stats()
        return stats

    # ── Reads ──────────────────────────────────────────────

    async def get_stats(self) -> Stats | None:
        async with self._lock:
            return await self._read_stats()

    async def get_cursor(self) -> int | None:
        stats = await self.get_stats()
        return stats.last_processed_block if stats else None

    async def get_balance(self, address: str) -> int:
        async with self._lock:
            async with self.db.execute(
                "SELECT balance FROM holders WHERE address=?", (address.lower(),)
            ) as cur:
                row = await cur.fetchone()
                return row["balance"] if row else 0

    async def list_top_holders(self, limit: int) -> list[HolderBalance]:
        async with self._lock:
            async with self.db.execute(
                "SELECT * FROM holders ORDER BY balance DESC, address ASC LIMIT ?",
                (limit,),
            ) as cur:
                return [_row_to_holder(row) async for row in cur]

    async def count_holders(self) -> int:
        async with self._lock:
            async with self.db.execute("SELECT COUNT(*) as c FROM holders") as cur:
                row = await cur.fetchone()
                return row["c"] if row else 0

    # ── Writes ─────────────────────────────────────────────

    async def apply_mint(self, address: str, amount: int, max_supply: int) -> Stats:
        now = _now()
        async with self._transaction():
            stats = await self._require_stats()
            if stats.total_minted + amount > max_supply:
                raise SupplyCapExceeded(stats.total_minted, amount, max_supply)

            await self._credit(address.lower(), amount, None, now)
            await self.db.execute(
                "UPDATE stats SET total_minted=total_minted+?, mint_count=mint_count+1,"
                " updated_at=? WHERE id=1",
                (amount, now),
            )
        return Stats(
            total_minted=stats.total_minted + amount,
            mint_count=stats.mint_count + 1,
            last_processed_block=stats.last_processed_block,
            updated_at=now,
        )

    async def set_cursor(self, height: int) -> None:
        async with self._transaction():
            stats = await self._require_stats()
            if height < stats.last_processed_block:
                raise CursorRegression(stats.last_processed_block, height)
            if height == stats.last_processed_block:
                return
            await self.db.execute(
                "UPDATE stats SET last_processed_block=?, updated_at=? WHERE id=1",
                (height, _now()),
            )

    async def commit_block(
        self,
        height: int,
        minters: Sequence[str],
        amount: int,
        max_supply: int,
    ) -> BlockCommit:
        now = _now()
        minted: list[str] = []
        rejected: list[str] = []

        async with self._transaction():
            stats = await self._require_stats()
            if height <= stats.last_processed_block:
                raise CursorRegression(stats.last_processed_block, height)

            total = stats.total_minted
            for address in minters:
                address = address.lower()
                if total + amount > max_supply:
                    rejected.append(address)
                    continue
                await self._credit(address, amount, height, now)
                total += amount
                minted.append(address)

            await self.db.execute(
                "UPDATE stats SET total_minted=?, mint_count=mint_count+?,"
                " last_processed_block=?, updated_at=? WHERE id=1",
                (total, len(minted), height, now),
            )

        return BlockCommit(
            height=height,
            minted=minted,
            cap_rejected=rejected,
            stats=Stats(
                total_minted=total,
                mint_count=stats.mint_count + len(minted),
                last_processed_block=height,
                updated_at=now,
            ),
        )

    # ── Internals ──────────────────────────────────────────

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[None]:
        async with self._lock:
            try:
                await self.db.execute("BEGIN IMMEDIATE")
                yield
                await self.db.commit()
            except aiosqlite.Error as exc:
                await self._rollback()
                raise LedgerWriteError(f"ledger write failed: {exc}") from exc
            except BaseException:
                await self._rollback()
                raise

    async def _rollback(self) -> None:
        if self.db.in_transaction:
            await self.db.rollback()

    async def _read_stats(self) -> Stats | None:
        async with self.db.execute("SELECT * FROM stats WHERE id=1") as cur:
            row = await cur.fetchone()
            if row:
                return Stats(
                    total_minted=row["total_minted"],
                    mint_count=row["mint_count"],
                    last_processed_block=row["last_processed_block"],
                    updated_at=row["updated_at"],
                )
        return None

    async def _require_stats(self) -> Stats:
        stats = await self._read_stats()
        if stats is None:
            raise LedgerNotInitialized("stats row missing; call ensure_stats() first")
        return stats

    async def _credit(self, address: str, amount: int, block: int | None, now: str) -> None:
        await self.db.execute(
            "INSERT INTO holders (address, balance, first_block, updated_at)"
            " VALUES (?, ?, ?, ?)"
            " ON CONFLICT(address) DO UPDATE SET balance=holders.balance+excluded.balance,"
            " updated_at=excluded.updated_at",
            (address, amount, block, now),
        )


# ── Row converters ─────────────────────────────────────────


def _row_to_holder(row: aiosqlite.Row) -> HolderBalance:
    return HolderBalance(
        address=row["address"],
        balance=row["balance"],
        first_block=row["first_block"],
        updated_at=row["updated_at"],
    )
