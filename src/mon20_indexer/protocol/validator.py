"""Mint validator - evaluates decoded inscriptions against the protocol rules."""

from __future__ import annotations

import logging
import math

from mon20_indexer.models.chain import Transaction
from mon20_indexer.models.config import ProtocolConfig
from mon20_indexer.models.inscription import DecodeResult, NotAnInscription
from mon20_indexer.models.records import MintDecision

log = logging.getLogger(__name__)

MINT_OPERATION = "mint"


def canonical_amount(amount: str | int | float) -> str:
    """String form used for the fixed-amount comparison.

    JSON numbers have no int/float distinction, so an integral float
    (1000.0, 1e3) renders like the integer. Strings are left untouched.
    """
    if isinstance(amount, bool):
        return ""
    if isinstance(amount, float) and math.isfinite(amount) and amount.is_integer():
        return str(int(amount))
    return str(amount)


class MintValidator:
    """Evaluates a transaction and its decoded payload as a mint attempt.

    Checks, cheapest first:
    1. Transaction is a self-transfer (from == to)
    2. Payload decoded to an inscription
    3. Protocol tag matches (case-insensitive)
    4. Operation is "mint" (case-insensitive)
    5. Ticker matches (case-sensitive)
    6. Amount equals the fixed per-mint amount

    The supply cap depends on ledger state and is enforced when the
    mint is applied.
    """

    def __init__(self, protocol: ProtocolConfig) -> None:
        self._protocol = protocol
        self._protocol_name = protocol.name.upper()
        self._amount = protocol.canonical_amount

    @property
    def protocol(self) -> ProtocolConfig:
        return self._protocol

    def evaluate(self, tx: Transaction, decoded: DecodeResult) -> MintDecision:
        # 1. Self-transfer
        if not tx.is_self_transfer:
            return self._reject(tx, "not_self_transfer")

        # 2. Decoded
        if isinstance(decoded, NotAnInscription):
            return self._reject(tx, "not_an_inscription")

        # 3. Protocol tag
        if decoded.protocol.upper() != self._protocol_name:
            return self._reject(tx, "wrong_protocol")

        # 4. Operation
        if decoded.operation.lower() != MINT_OPERATION:
            return self._reject(tx, "wrong_operation")

        # 5. Ticker
        if decoded.ticker != self._protocol.ticker:
            return self._reject(tx, "wrong_ticker")

        # 6. Fixed amount
        if canonical_amount(decoded.amount) != self._amount:
            return self._reject(tx, "wrong_amount")

        return MintDecision(
            accepted=True,
            reason="accepted",
            tx_hash=tx.hash,
            address=tx.from_address.lower(),
        )

    def _reject(self, tx: Transaction, reason: str) -> MintDecision:
        log.debug("Ignoring tx %s: %s", tx.hash, reason)
        return MintDecision(accepted=False, reason=reason, tx_hash=tx.hash)
