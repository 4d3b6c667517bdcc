"""Scan loop - walks the chain block by block and feeds mints into the ledger."""

from __future__ import annotations

import asyncio
import logging
import random

from mon20_indexer.chain.errors import ChainError, RateLimited, Rejected, Transient
from mon20_indexer.interfaces.chain import ChainClient
from mon20_indexer.interfaces.store import LedgerStore
from mon20_indexer.models.config import IndexerConfig
from mon20_indexer.models.inscription import NotAnInscription
from mon20_indexer.models.records import BlockCommit, MintDecision, ScanState
from mon20_indexer.protocol.applier import MintApplier
from mon20_indexer.protocol.decoder import decode_inscription
from mon20_indexer.protocol.validator import MintValidator
from mon20_indexer.storage.errors import LedgerError, LedgerNotInitialized

log = logging.getLogger(__name__)

# Caps the exponent, not the delay (max_backoff does that)
_MAX_BACKOFF_DOUBLINGS = 16


class ScanLoop:
    """Single-writer cursor engine.

    Each iteration reads the stored cursor and the live head, then
    processes up to batch_size blocks in ascending order. A block's
    mints and its cursor advance are committed in one store transaction,
    so a committed block can never be applied twice.

    Faults while fetching stop the batch at the failed block:
    - RateLimited / Rejected: rotate endpoint, back off
    - Transient (incl. block not yet available): back off, retry same endpoint
    - LedgerError: nothing was written; back off and retry
    """

    def __init__(
        self,
        chain: ChainClient,
        store: LedgerStore,
        validator: MintValidator,
        applier: MintApplier,
        cfg: IndexerConfig,
        rng: random.Random | None = None,
    ) -> None:
        self._chain = chain
        self._store = store
        self._validator = validator
        self._applier = applier
        self._cfg = cfg
        self._rng = rng or random.Random()

        self._state = ScanState.IDLE
        self._failures = 0
        self._running = False
        self._stop = asyncio.Event()
        self._last_head: int | None = None
        self.blocks_processed = 0
        self.mints_applied = 0

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def consecutive_failures(self) -> int:
        return self._failures

    @property
    def last_head(self) -> int | None:
        return self._last_head

    # ── Lifecycle ──────────────────────────────────────────

    async def run(self) -> None:
        """Run until stop() is called. Never exits on a fault."""
        self._running = True
        self._stop.clear()
        log.info(
            "Scan loop started (batch %d, endpoint %s)",
            self._cfg.batch_size, self._chain.endpoint,
        )

        try:
            while self._running:
                try:
                    delay = await self.step()
                except asyncio.CancelledError:
                    log.info("Scan loop cancelled")
                    raise
                except Exception as exc:
                    log.error("Scan loop error: %s", exc, exc_info=True)
                    delay = self._enter_backoff(rotate=False)

                if self._running:
                    await self._sleep(delay)
        finally:
            self._running = False
            log.info("Scan loop stopped")

    def stop(self) -> None:
        """Request a stop. The block in flight is finished first."""
        self._running = False
        self._stop.set()

    async def _sleep(self, delay: float) -> None:
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    # ── Iteration ──────────────────────────────────────────

    async def step(self) -> float:
        """Run one iteration. Returns the delay before the next one."""
        try:
            cursor = await self._store.get_cursor()
            if cursor is None:
                raise LedgerNotInitialized("no stats row; cursor unknown")
            head = await self._chain.head_height()
        except (RateLimited, Rejected) as exc:
            log.warning("Head check failed: %s; rotating endpoint", exc)
            return self._enter_backoff(rotate=True)
        except (ChainError, LedgerError) as exc:
            log.warning("Head check failed: %s", exc)
            return self._enter_backoff(rotate=False)

        self._last_head = head
        if cursor >= head:
            self._set_state(ScanState.IDLE)
            self._failures = 0
            return self._cfg.idle_interval

        self._set_state(ScanState.CATCHING_UP)
        end = min(cursor + self._cfg.batch_size, head)
        log.info("Syncing from %d to %d (head %d)", cursor + 1, end, head)

        for height in range(cursor + 1, end + 1):
            if self._stop.is_set():
                log.info("Stop requested; batch ends at block %d", height - 1)
                return 0.0
            try:
                await self.process_block(height)
            except (RateLimited, Rejected) as exc:
                log.warning("Block %d: %s; aborting batch", height, exc)
                return self._enter_backoff(rotate=True)
            except ChainError as exc:
                log.warning("Block %d: %s; will retry from this block", height, exc)
                return self._enter_backoff(rotate=False)
            except LedgerError as exc:
                log.error("Block %d: ledger write failed: %s", height, exc)
                return self._enter_backoff(rotate=False)

        self._failures = 0
        log.info("Synced block %d", end)

        if end >= head:
            self._set_state(ScanState.IDLE)
            return self._cfg.idle_interval
        return self._cfg.batch_pause

    async def process_block(self, height: int) -> BlockCommit:
        """Fetch one block, validate its inscriptions and commit it."""
        block = await self._chain.get_block(height)
        if block is None:
            raise Transient(f"block {height} not available", self._chain.endpoint)

        accepted: list[MintDecision] = []
        for tx in block.transactions:
            if not tx.is_self_transfer or not tx.has_payload:
                continue
            decoded = decode_inscription(tx.input)
            if isinstance(decoded, NotAnInscription):
                continue
            decision = self._validator.evaluate(tx, decoded)
            if decision.accepted:
                accepted.append(decision)

        commit = await self._applier.commit_block(height, accepted)
        self.blocks_processed += 1
        self.mints_applied += len(commit.minted)
        return commit

    # ── Failure policy ─────────────────────────────────────

    def backoff_delay(self, failures: int) -> float:
        """Capped exponential delay for the n-th consecutive failure, before jitter."""
        exponent = min(max(failures - 1, 0), _MAX_BACKOFF_DOUBLINGS)
        return min(self._cfg.error_backoff * (2 ** exponent), self._cfg.max_backoff)

    def _enter_backoff(self, rotate: bool) -> float:
        self._set_state(ScanState.ERROR_BACKOFF)
        self._failures += 1
        if rotate:
            self._chain.rotate()

        delay = self.backoff_delay(self._failures)
        delay += self._rng.uniform(0, delay * self._cfg.backoff_jitter)
        log.info("Backing off %.1fs (failure #%d)", delay, self._failures)
        return delay

    def _set_state(self, state: ScanState) -> None:
        if state != self._state:
            log.debug("Scan state: %s -> %s", self._state.value, state.value)
            self._state = state
