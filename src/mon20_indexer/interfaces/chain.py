"""ChainClient protocol - reads blocks and chain head from JSON-RPC endpoints."""

from __future__ import annotations

from typing import Protocol

from mon20_indexer.models.chain import Block


class ChainClient(Protocol):
    """Live, uncached access to the chain through a rotating endpoint list.

    Failures are raised as RateLimited, Rejected or Transient.
    """

    @property
    def endpoint(self) -> str:
        """The endpoint the next call will go to."""
        ...

    async def head_height(self) -> int:
        """Current chain head block number."""
        ...

    async def get_block(self, height: int) -> Block | None:
        """Block with full transactions, or None if the node does not have it."""
        ...

    def rotate(self) -> str:
        """Advance to the next endpoint (round-robin). Returns the new endpoint."""
        ...

    async def close(self) -> None:
        ...
