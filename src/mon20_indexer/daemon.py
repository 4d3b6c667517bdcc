"""Main daemon - wires the chain client, ledger, scan loop and read API together."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Callable

from mon20_indexer.api.server import ReadAPIServer
from mon20_indexer.chain.client import JsonRpcChainClient
from mon20_indexer.interfaces.chain import ChainClient
from mon20_indexer.models.config import IndexerConfig
from mon20_indexer.protocol.applier import MintApplier
from mon20_indexer.protocol.validator import MintValidator
from mon20_indexer.scanner import ScanLoop
from mon20_indexer.storage.sqlite import SQLiteLedgerStore

log = logging.getLogger(__name__)


class IndexerDaemon:
    """MON-20 inscription indexer.

    Owns the single writer: one scan loop over one ledger store. The
    read API, when enabled, shares the store but only reads from it.
    """

    def __init__(
        self,
        cfg: IndexerConfig,
        with_api: bool | None = None,
        chain: ChainClient | None = None,
    ) -> None:
        self._cfg = cfg
        self._with_api = cfg.api_enabled if with_api is None else with_api

        # Core components
        self.store = SQLiteLedgerStore(cfg.db_path)
        self.chain = chain or JsonRpcChainClient(cfg.rpc_endpoints, cfg.rpc_timeout)
        self.validator = MintValidator(cfg.protocol)
        self.applier = MintApplier(self.store, cfg.protocol)
        self.scanner = ScanLoop(
            self.chain, self.store, self.validator, self.applier, cfg,
        )

        self.api: ReadAPIServer | None = None
        if self._with_api:
            self.api = ReadAPIServer(
                self.store, cfg.api_host, cfg.api_port, cfg.holders_page_size,
            )

    async def start(self) -> None:
        """Initialize the ledger and run the scan loop until stopped."""
        proto = self._cfg.protocol
        log.info("Starting mon20_indexer daemon")
        log.info("  Protocol: %s / %s", proto.name, proto.ticker)
        log.info("  Mint: %d, cap %d", proto.mint_amount, proto.max_supply)
        log.info("  Deploy block: %d", proto.deploy_block)
        log.info("  RPC: %s", ", ".join(self._cfg.rpc_endpoints))
        log.info("  DB: %s", self._cfg.db_path)

        await self.store.initialize()
        stats = await self.store.ensure_stats(proto.deploy_block)
        log.info(
            "Resuming after block %d (minted %d in %d mints)",
            stats.last_processed_block, stats.total_minted, stats.mint_count,
        )

        try:
            if self.api:
                await self.api.start()
            await self.scanner.run()
        finally:
            if self.api:
                await self.api.stop()
            await self.chain.close()
            await self.store.close()
            log.info("Daemon shut down cleanly")

    async def stop(self) -> None:
        """Signal the daemon to stop after the block in flight."""
        log.info("Stop requested")
        self.scanner.stop()


def _install_signal_handlers(on_signal: Callable[[], None]) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, on_signal)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass


async def run_daemon(cfg: IndexerConfig, with_api: bool | None = None) -> None:
    """Entry point for running the indexer."""
    daemon = IndexerDaemon(cfg, with_api=with_api)

    def _signal_handler():
        asyncio.ensure_future(daemon.stop())

    _install_signal_handlers(_signal_handler)
    await daemon.start()


async def run_api(cfg: IndexerConfig) -> None:
    """Serve the read API only, against an existing ledger database."""
    store = SQLiteLedgerStore(cfg.db_path)
    await store.initialize()
    server = ReadAPIServer(store, cfg.api_host, cfg.api_port, cfg.holders_page_size)
    stopped = asyncio.Event()
    _install_signal_handlers(stopped.set)

    try:
        await server.start()
        await stopped.wait()
    finally:
        await server.stop()
        await store.close()
        log.info("API shut down cleanly")
