"""Inscription decoder: valid payloads and robustness against garbage."""

from __future__ import annotations

import json
import random

import pytest

from mon20_indexer.models.inscription import Inscription, NotAnInscription
from mon20_indexer.protocol.decoder import decode_inscription, encode_inscription

from tests.factories import mint_payload


def _hex(text: str) -> str:
    return "0x" + text.encode("utf-8").hex()


def test_decode_valid_mint():
    result = decode_inscription(mint_payload())
    assert result == Inscription(protocol="MON-20", operation="mint", ticker="MONS", amount="1000")


def test_decode_keys_case_insensitive():
    payload = _hex(json.dumps({"P": "mon-20", "Op": "MINT", "TICK": "MONS", "Amt": "1000"}))
    result = decode_inscription(payload)
    assert isinstance(result, Inscription)
    assert result.protocol == "mon-20"
    assert result.operation == "MINT"
    assert result.ticker == "MONS"
    assert result.amount == "1000"


def test_decode_missing_fields_default_to_empty():
    result = decode_inscription(_hex('{"p":"MON-20"}'))
    assert result == Inscription(protocol="MON-20", operation="", ticker="", amount="")


def test_decode_numeric_amount_kept_as_number():
    result = decode_inscription(encode_inscription({"p": "MON-20", "op": "mint", "tick": "MONS", "amt": 1000}))
    assert isinstance(result, Inscription)
    assert result.amount == 1000


def test_decode_without_prefix_and_as_bytes():
    hex_body = mint_payload()[2:]
    assert isinstance(decode_inscription(hex_body), Inscription)
    assert isinstance(decode_inscription(mint_payload().encode("ascii")), Inscription)


def test_decode_non_string_fields_become_empty():
    result = decode_inscription(_hex('{"p":"MON-20","op":["mint"],"tick":{"x":1},"amt":true}'))
    assert result == Inscription(protocol="MON-20", operation="", ticker="", amount="")


@pytest.mark.parametrize(
    "payload, reason",
    [
        (None, "empty"),
        ("", "empty"),
        ("0x", "empty"),
        ("0xabc", "odd_length"),
        ("0xzz11", "not_hex"),
        ("0x" + "0g" * 4, "not_hex"),
        ("0x" + b"\xff\xfe\xfd".hex(), "not_utf8"),
        (_hex("hello world"), "not_json"),
        (_hex('{"p":"MON-20",'), "not_json"),
        (_hex("[1, 2, 3]"), "not_object"),
        (_hex('"MON-20"'), "not_object"),
        (_hex("1000"), "not_object"),
        (_hex('{"foo":"bar","amt":"1000"}'), "no_protocol"),
        (b"\xff\xff", "not_hex"),
    ],
)
def test_decode_rejects_malformed(payload, reason):
    result = decode_inscription(payload)
    assert isinstance(result, NotAnInscription)
    assert result.reason == reason


def test_decode_never_raises_on_random_payloads():
    rng = random.Random(1234)
    alphabet = "0123456789abcdefABCDEFxXg{}\":, "
    for _ in range(500):
        length = rng.randint(0, 64)
        text = "".join(rng.choice(alphabet) for _ in range(length))
        decode_inscription(text)
        raw = bytes(rng.getrandbits(8) for _ in range(rng.randint(0, 32)))
        decode_inscription("0x" + raw.hex())
