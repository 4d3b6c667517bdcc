"""Ledger records and operation results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ScanState(str, Enum):
    """Scan loop state."""

    IDLE = "idle"  # cursor == head, sleeping
    CATCHING_UP = "catching_up"  # cursor < head, fetching blocks
    ERROR_BACKOFF = "error_backoff"  # recovering from a classified fault


@dataclass
class Stats:
    """The singleton issuance / cursor row."""

    total_minted: int = 0
    mint_count: int = 0
    last_processed_block: int = -1
    updated_at: str = ""


@dataclass
class HolderBalance:
    """A holder row as persisted in the ledger."""

    address: str
    balance: int
    first_block: int | None = None
    updated_at: str = ""


@dataclass
class MintDecision:
    """Result of evaluating one transaction against the mint rules."""

    accepted: bool
    reason: str  # "accepted", "not_self_transfer", "wrong_ticker", ...
    tx_hash: str
    address: str = ""


@dataclass
class BlockCommit:
    """Outcome of committing one block's mints and cursor together."""

    height: int
    minted: list[str] = field(default_factory=list)  # addresses credited, in order
    cap_rejected: list[str] = field(default_factory=list)
    stats: Stats = field(default_factory=Stats)
