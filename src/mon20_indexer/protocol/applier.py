"""Mint applier - writes accepted mints to the ledger under the supply cap."""

from __future__ import annotations

import logging
from typing import Sequence

from mon20_indexer.interfaces.store import LedgerStore
from mon20_indexer.models.config import ProtocolConfig
from mon20_indexer.models.records import BlockCommit, MintDecision

log = logging.getLogger(__name__)


class MintApplier:
    """Applies validated mints with the protocol's fixed amount and cap."""

    def __init__(self, store: LedgerStore, protocol: ProtocolConfig) -> None:
        self._store = store
        self._protocol = protocol

    async def commit_block(
        self, height: int, decisions: Sequence[MintDecision],
    ) -> BlockCommit:
        """Apply a block's accepted mints in order and advance the cursor to height."""
        minters = [d.address for d in decisions if d.accepted]
        commit = await self._store.commit_block(
            height,
            minters,
            self._protocol.mint_amount,
            self._protocol.max_supply,
        )

        for address in commit.minted:
            log.info(
                "Mint: block %d holder %s +%d (total %d/%d)",
                height, address, self._protocol.mint_amount,
                commit.stats.total_minted, self._protocol.max_supply,
            )
        if commit.cap_rejected:
            log.info(
                "Block %d: %d mint(s) rejected, supply cap %d reached",
                height, len(commit.cap_rejected), self._protocol.max_supply,
            )
        return commit
