"""Inscription decoder - recovers a JSON operation record from tx input data."""

from __future__ import annotations

import json
import string

from mon20_indexer.models.inscription import DecodeResult, Inscription, NotAnInscription

_HEX_DIGITS = frozenset(string.hexdigits)

# Inscription keys, matched case-insensitively
_KEY_PROTOCOL = "p"
_KEY_OPERATION = "op"
_KEY_TICKER = "tick"
_KEY_AMOUNT = "amt"


def _text(value: object) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return ""


def _amount(value: object) -> str | int | float:
    if isinstance(value, bool):
        return ""
    if isinstance(value, (str, int, float)):
        return value
    return ""


def decode_inscription(payload: str | bytes | None) -> DecodeResult:
    """Decode a hex-encoded transaction input into an Inscription.

    Never raises. Anything that is not a hex-encoded UTF-8 JSON object
    carrying a protocol tag comes back as NotAnInscription.
    """
    if payload is None:
        return NotAnInscription("empty")

    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = bytes(payload).decode("ascii")
        except UnicodeDecodeError:
            return NotAnInscription("not_hex")

    hex_str = payload.strip()
    if hex_str[:2] in ("0x", "0X"):
        hex_str = hex_str[2:]

    if not hex_str:
        return NotAnInscription("empty")
    if len(hex_str) % 2:
        return NotAnInscription("odd_length")
    if not _HEX_DIGITS.issuperset(hex_str):
        return NotAnInscription("not_hex")

    try:
        text = bytes.fromhex(hex_str).decode("utf-8")
    except (ValueError, UnicodeDecodeError):
        return NotAnInscription("not_utf8")

    try:
        obj = json.loads(text)
    except (ValueError, RecursionError):
        return NotAnInscription("not_json")

    if not isinstance(obj, dict):
        return NotAnInscription("not_object")

    fields = {str(k).lower(): v for k, v in obj.items()}
    if _KEY_PROTOCOL not in fields:
        return NotAnInscription("no_protocol")

    return Inscription(
        protocol=_text(fields.get(_KEY_PROTOCOL, "")),
        operation=_text(fields.get(_KEY_OPERATION, "")),
        ticker=_text(fields.get(_KEY_TICKER, "")),
        amount=_amount(fields.get(_KEY_AMOUNT, "")),
    )


def encode_inscription(record: dict) -> str:
    """Hex-encode an inscription object as transaction input ("0x" prefixed)."""
    return "0x" + json.dumps(record, separators=(",", ":")).encode("utf-8").hex()
