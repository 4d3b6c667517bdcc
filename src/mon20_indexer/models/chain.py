"""Block and transaction models decoded from JSON-RPC responses."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Transaction:
    """A transaction as returned by eth_getBlockByNumber with full bodies."""

    hash: str
    from_address: str
    to_address: str | None  # None for contract creation
    input: str = "0x"  # hex payload

    @property
    def is_self_transfer(self) -> bool:
        if not self.from_address or not self.to_address:
            return False
        return self.from_address.lower() == self.to_address.lower()

    @property
    def has_payload(self) -> bool:
        return bool(self.input) and self.input not in ("0x", "0X")


@dataclass(frozen=True)
class Block:
    """A block with its ordered transactions."""

    number: int
    hash: str = ""
    transactions: tuple[Transaction, ...] = field(default_factory=tuple)
