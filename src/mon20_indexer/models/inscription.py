"""Inscription decode results."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Inscription:
    """An operation record recovered from a transaction payload.

    Fields are kept as decoded; comparison against protocol constants
    happens in the validator.
    """

    protocol: str
    operation: str
    ticker: str
    amount: str | int | float


@dataclass(frozen=True)
class NotAnInscription:
    """The payload does not carry an inscription."""

    reason: str  # "empty", "odd_length", "not_hex", "not_utf8", "not_json", ...


DecodeResult = Union[Inscription, NotAnInscription]
