"""Protocol interfaces for mon20_indexer components."""

from mon20_indexer.interfaces.chain import ChainClient
from mon20_indexer.interfaces.store import LedgerStore

__all__ = ["ChainClient", "LedgerStore"]
