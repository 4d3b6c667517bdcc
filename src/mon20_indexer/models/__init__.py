"""Data models for the mon20_indexer daemon."""

from mon20_indexer.models.chain import Block, Transaction
from mon20_indexer.models.config import IndexerConfig, ProtocolConfig
from mon20_indexer.models.inscription import DecodeResult, Inscription, NotAnInscription
from mon20_indexer.models.records import (
    BlockCommit,
    HolderBalance,
    MintDecision,
    ScanState,
    Stats,
)

__all__ = [
    "Block", "Transaction",
    "IndexerConfig", "ProtocolConfig",
    "DecodeResult", "Inscription", "NotAnInscription",
    "BlockCommit", "HolderBalance", "MintDecision", "ScanState", "Stats",
]
