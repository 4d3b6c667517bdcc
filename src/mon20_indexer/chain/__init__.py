"""Chain access - JSON-RPC client and its error classes."""

from mon20_indexer.chain.client import JsonRpcChainClient
from mon20_indexer.chain.errors import ChainError, RateLimited, Rejected, Transient

__all__ = ["JsonRpcChainClient", "ChainError", "RateLimited", "Rejected", "Transient"]
