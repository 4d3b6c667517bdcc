"""SQLite ledger store: atomic commits, supply cap and cursor monotonicity."""

from __future__ import annotations

import aiosqlite
import pytest

from mon20_indexer.storage.errors import (
    CursorRegression,
    LedgerNotInitialized,
    LedgerWriteError,
    SupplyCapExceeded,
)
from mon20_indexer.storage.sqlite import SQLiteLedgerStore

from tests.conftest import DEPLOY_BLOCK, MINT
from tests.factories import ALICE, BOB, CAROL

CAP = 21_000_000


async def _assert_accounting(store):
    """sum(balances) == total_minted == mint_count * MINT"""
    stats = await store.get_stats()
    holders = await store.list_top_holders(10_000)
    assert sum(h.balance for h in holders) == stats.total_minted
    assert stats.total_minted == stats.mint_count * MINT


# ── Initialization ─────────────────────────────────────────


async def test_ensure_stats_seeds_cursor_before_deploy_block(store):
    stats = await store.get_stats()
    assert stats.total_minted == 0
    assert stats.mint_count == 0
    assert stats.last_processed_block == DEPLOY_BLOCK - 1
    assert await store.get_cursor() == DEPLOY_BLOCK - 1


async def test_ensure_stats_is_idempotent(store):
    await store.commit_block(DEPLOY_BLOCK, [ALICE], MINT, CAP)
    stats = await store.ensure_stats(DEPLOY_BLOCK)
    assert stats.last_processed_block == DEPLOY_BLOCK
    assert stats.total_minted == MINT


async def test_uninitialized_store_has_no_cursor():
    s = SQLiteLedgerStore(":memory:")
    await s.initialize()
    try:
        assert await s.get_stats() is None
        assert await s.get_cursor() is None
        with pytest.raises(LedgerNotInitialized):
            await s.commit_block(1, [ALICE], MINT, CAP)
        with pytest.raises(LedgerNotInitialized):
            await s.apply_mint(ALICE, MINT, CAP)
    finally:
        await s.close()


# ── Single mints ───────────────────────────────────────────


async def test_apply_mint_credits_holder(store):
    stats = await store.apply_mint(ALICE, MINT, CAP)
    assert stats.total_minted == MINT
    assert stats.mint_count == 1
    assert await store.get_balance(ALICE) == MINT
    # Addresses are stored lowercase
    assert await store.get_balance(ALICE.lower()) == MINT
    await _assert_accounting(store)


async def test_apply_mint_over_cap_changes_nothing(store):
    await store.apply_mint(ALICE, MINT, 2500)
    await store.apply_mint(ALICE, MINT, 2500)

    with pytest.raises(SupplyCapExceeded) as exc_info:
        await store.apply_mint(BOB, MINT, 2500)
    assert exc_info.value.total_minted == 2000

    stats = await store.get_stats()
    assert stats.total_minted == 2000
    assert stats.mint_count == 2
    assert await store.get_balance(BOB) == 0


async def test_mint_exactly_reaching_cap_is_accepted(store):
    await store.apply_mint(ALICE, MINT, 2000)
    stats = await store.apply_mint(BOB, MINT, 2000)
    assert stats.total_minted == 2000


# ── Block commits ──────────────────────────────────────────


async def test_commit_block_applies_mints_and_cursor_together(store):
    commit = await store.commit_block(DEPLOY_BLOCK, [ALICE, BOB, ALICE], MINT, CAP)

    assert commit.height == DEPLOY_BLOCK
    assert commit.minted == [ALICE.lower(), BOB.lower(), ALICE.lower()]
    assert commit.cap_rejected == []
    assert commit.stats.total_minted == 3000
    assert commit.stats.mint_count == 3
    assert commit.stats.last_processed_block == DEPLOY_BLOCK

    assert await store.get_balance(ALICE) == 2000
    assert await store.get_balance(BOB) == 1000
    assert await store.get_cursor() == DEPLOY_BLOCK
    await _assert_accounting(store)


async def test_commit_block_without_mints_advances_cursor(store):
    commit = await store.commit_block(DEPLOY_BLOCK + 3, [], MINT, CAP)
    assert commit.minted == []
    assert await store.get_cursor() == DEPLOY_BLOCK + 3
    assert (await store.get_stats()).total_minted == 0


async def test_commit_block_caps_mid_block_in_order(store):
    commit = await store.commit_block(DEPLOY_BLOCK, [ALICE, BOB, CAROL], MINT, 2500)

    assert commit.minted == [ALICE.lower(), BOB.lower()]
    assert commit.cap_rejected == [CAROL]
    assert commit.stats.total_minted == 2000
    assert await store.get_balance(CAROL) == 0
    assert await store.get_cursor() == DEPLOY_BLOCK
    await _assert_accounting(store)


async def test_recommitting_a_block_is_refused(store):
    await store.commit_block(DEPLOY_BLOCK, [ALICE], MINT, CAP)

    with pytest.raises(CursorRegression) as exc_info:
        await store.commit_block(DEPLOY_BLOCK, [ALICE], MINT, CAP)
    assert exc_info.value.stored == DEPLOY_BLOCK

    with pytest.raises(CursorRegression):
        await store.commit_block(DEPLOY_BLOCK - 5, [ALICE], MINT, CAP)

    assert await store.get_balance(ALICE) == MINT
    assert (await store.get_stats()).mint_count == 1


async def test_failed_commit_rolls_back_everything(store, monkeypatch):
    await store.commit_block(DEPLOY_BLOCK, [ALICE], MINT, CAP)

    real_credit = store._credit
    calls = {"n": 0}

    async def flaky_credit(address, amount, block, now):
        calls["n"] += 1
        if calls["n"] == 2:
            raise aiosqlite.OperationalError("disk I/O error")
        await real_credit(address, amount, block, now)

    monkeypatch.setattr(store, "_credit", flaky_credit)

    with pytest.raises(LedgerWriteError):
        await store.commit_block(DEPLOY_BLOCK + 1, [BOB, CAROL], MINT, CAP)

    # First credit of the failed block must not survive
    assert await store.get_balance(BOB) == 0
    assert await store.get_cursor() == DEPLOY_BLOCK
    stats = await store.get_stats()
    assert stats.total_minted == MINT
    assert stats.mint_count == 1

    monkeypatch.undo()
    await store.commit_block(DEPLOY_BLOCK + 1, [BOB, CAROL], MINT, CAP)
    assert await store.get_balance(BOB) == MINT
    await _assert_accounting(store)


# ── Cursor ─────────────────────────────────────────────────


async def test_set_cursor_is_monotonic(store):
    await store.set_cursor(DEPLOY_BLOCK + 10)
    await store.set_cursor(DEPLOY_BLOCK + 10)
    assert await store.get_cursor() == DEPLOY_BLOCK + 10

    with pytest.raises(CursorRegression):
        await store.set_cursor(DEPLOY_BLOCK)
    assert await store.get_cursor() == DEPLOY_BLOCK + 10


# ── Holder queries ─────────────────────────────────────────


async def test_top_holders_ordered_by_balance_then_address(store):
    await store.commit_block(DEPLOY_BLOCK, [CAROL, BOB, BOB, ALICE], MINT, CAP)

    holders = await store.list_top_holders(10)
    assert [h.address for h in holders] == [BOB.lower(), ALICE.lower(), CAROL]
    assert [h.balance for h in holders] == [2000, 1000, 1000]
    assert holders[0].first_block == DEPLOY_BLOCK

    assert len(await store.list_top_holders(2)) == 2
    assert await store.count_holders() == 3


async def test_unknown_address_has_zero_balance(store):
    assert await store.get_balance(CAROL) == 0
    assert await store.list_top_holders(5) == []


# ── Durability ─────────────────────────────────────────────


async def test_committed_state_survives_reopen(tmp_path):
    db_path = str(tmp_path / "nested" / "ledger.db")

    first = SQLiteLedgerStore(db_path)
    await first.initialize()
    await first.ensure_stats(DEPLOY_BLOCK)
    await first.commit_block(DEPLOY_BLOCK, [ALICE, BOB], MINT, CAP)
    await first.close()

    second = SQLiteLedgerStore(db_path)
    await second.initialize()
    try:
        stats = await second.ensure_stats(DEPLOY_BLOCK)
        assert stats.last_processed_block == DEPLOY_BLOCK
        assert stats.total_minted == 2000
        assert await second.get_balance(BOB) == MINT
    finally:
        await second.close()
