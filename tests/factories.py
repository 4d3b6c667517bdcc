"""Synthetic transaction and block factories for testing."""

from __future__ import annotations

import itertools

from mon20_indexer.models.chain import Block, Transaction
from mon20_indexer.protocol.decoder import encode_inscription

ALICE = "0xAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA"
BOB = "0xBbBbBbBbBbBbBbBbBbBbBbBbBbBbBbBbBbBbBbBb"
CAROL = "0xcccccccccccccccccccccccccccccccccccccccc"

_tx_counter = itertools.count(1)


def mint_payload(
    p: str = "MON-20",
    op: str = "mint",
    tick: str = "MONS",
    amt: str | int = "1000",
) -> str:
    return encode_inscription({"p": p, "op": op, "tick": tick, "amt": amt})


def make_tx(
    from_address: str = ALICE,
    to_address: str | None = ALICE,
    input: str = "0x",
    hash: str | None = None,
) -> Transaction:
    return Transaction(
        hash=hash or f"0x{next(_tx_counter):064x}",
        from_address=from_address,
        to_address=to_address,
        input=input,
    )


def make_mint_tx(address: str = ALICE, **fields) -> Transaction:
    """A self-transfer carrying a mint inscription."""
    return make_tx(from_address=address, to_address=address, input=mint_payload(**fields))


def make_block(number: int, *txs: Transaction) -> Block:
    return Block(number=number, hash=f"0x{number:064x}", transactions=tuple(txs))
