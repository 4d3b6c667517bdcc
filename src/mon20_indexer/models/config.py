"""Configuration models for the indexer."""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_RPC_ENDPOINTS = [
    "https://rpc.ankr.com/monad_testnet",
    "https://testnet-rpc.monad.xyz",
]


@dataclass
class ProtocolConfig:
    """Inscription protocol constants for the single indexed ticker."""

    name: str = "MON-20"  # compared case-insensitively
    ticker: str = "MONS"  # compared case-sensitively
    mint_amount: int = 1000  # fixed amount per mint operation
    max_supply: int = 21_000_000
    deploy_block: int = 32_111_409

    @property
    def canonical_amount(self) -> str:
        return str(self.mint_amount)


@dataclass
class IndexerConfig:
    """Complete indexer configuration."""

    # Scan loop
    batch_size: int = 50  # blocks per batch
    idle_interval: float = 5.0  # seconds to sleep when caught up
    batch_pause: float = 0.5  # seconds between batches
    error_backoff: float = 5.0  # base backoff after a fault
    max_backoff: float = 60.0
    backoff_jitter: float = 0.1  # fraction of the delay added at random
    log_level: str = "info"

    # Protocol
    protocol: ProtocolConfig = field(default_factory=ProtocolConfig)

    # RPC
    rpc_endpoints: list[str] = field(default_factory=lambda: list(DEFAULT_RPC_ENDPOINTS))
    rpc_timeout: float = 15.0

    # Storage
    db_path: str = "~/.mon20_indexer/ledger.db"

    # Read API
    api_enabled: bool = True
    api_host: str = "0.0.0.0"
    api_port: int = 8080
    holders_page_size: int = 20
