"""JSON-RPC chain client - fetches blocks and head height over rotating endpoints."""

from __future__ import annotations

import logging
import re
from typing import Any, Sequence

import httpx

from mon20_indexer.chain.errors import ChainError, RateLimited, Rejected, Transient
from mon20_indexer.models.chain import Block, Transaction

log = logging.getLogger(__name__)

# JSON-RPC error codes that mean the request itself is unacceptable
_REJECTED_CODES = {-32600, -32601}
# Non-standard "limit exceeded" code used by several public providers
_LIMIT_CODE = -32005

_RATE_LIMIT_RE = re.compile(r"rate.?limit|too many requests|request limit|exceeded .*limit", re.I)
_REJECTED_RE = re.compile(r"unauthori[sz]ed|forbidden|not allowed|api key|method not found", re.I)


def classify_rpc_error(method: str, error: Any, endpoint: str) -> ChainError:
    """Map a JSON-RPC error object onto RateLimited / Rejected / Transient."""
    code = None
    message = str(error)
    if isinstance(error, dict):
        code = error.get("code")
        message = str(error.get("message", "")) or message

    text = f"{method}: RPC error {code}: {message}"
    if code == _LIMIT_CODE or _RATE_LIMIT_RE.search(message):
        return RateLimited(text, endpoint)
    if code in _REJECTED_CODES or _REJECTED_RE.search(message):
        return Rejected(text, endpoint)
    return Transient(text, endpoint)


def _quantity(value: Any, endpoint: str) -> int:
    """Parse a JSON-RPC hex quantity."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        try:
            return int(value, 16)
        except ValueError:
            pass
    raise Transient(f"malformed quantity: {value!r}", endpoint)


def _parse_block(raw: dict, height: int, endpoint: str) -> Block:
    txs = raw.get("transactions") or []
    if not isinstance(txs, list):
        raise Transient(f"block {height}: transactions is not a list", endpoint)

    parsed: list[Transaction] = []
    for tx in txs:
        # Hash-only entries mean the node ignored the full-transactions flag
        if not isinstance(tx, dict):
            raise Transient(f"block {height}: transaction bodies missing", endpoint)
        sender, recipient, data = tx.get("from"), tx.get("to"), tx.get("input")
        for name, value in (("from", sender), ("to", recipient), ("input", data)):
            if value is not None and not isinstance(value, str):
                raise Transient(
                    f"block {height}: malformed transaction field {name!r}: {value!r}",
                    endpoint,
                )
        parsed.append(
            Transaction(
                hash=str(tx.get("hash") or ""),
                from_address=sender or "",
                to_address=recipient or None,
                input=data or "0x",
            )
        )

    number = raw.get("number")
    return Block(
        number=_quantity(number, endpoint) if number is not None else height,
        hash=str(raw.get("hash") or ""),
        transactions=tuple(parsed),
    )


class JsonRpcChainClient:
    """EVM JSON-RPC client over an ordered list of endpoints.

    Every call goes to the current endpoint; callers decide when to
    rotate() based on the classified error they receive. There is no
    retry or caching at this layer.
    """

    def __init__(
        self,
        endpoints: Sequence[str],
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not endpoints:
            raise ValueError("At least one RPC endpoint is required")
        self._endpoints = list(endpoints)
        self._index = 0
        self._request_id = 0
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=10),
            transport=transport,
        )

    @property
    def endpoint(self) -> str:
        return self._endpoints[self._index]

    @property
    def endpoints(self) -> list[str]:
        return list(self._endpoints)

    def rotate(self) -> str:
        self._index = (self._index + 1) % len(self._endpoints)
        log.info("Rotated RPC endpoint -> %s", self.endpoint)
        return self.endpoint

    async def close(self) -> None:
        """Close the underlying httpx client."""
        await self._client.aclose()

    # ── Calls ──────────────────────────────────────────────

    async def head_height(self) -> int:
        result = await self._call("eth_blockNumber", [])
        return _quantity(result, self.endpoint)

    async def get_block(self, height: int) -> Block | None:
        endpoint = self.endpoint
        result = await self._call("eth_getBlockByNumber", [hex(height), True])
        if result is None:
            return None
        if not isinstance(result, dict):
            raise Transient(f"block {height}: unexpected result type", endpoint)
        return _parse_block(result, height, endpoint)

    async def _call(self, method: str, params: list) -> Any:
        endpoint = self.endpoint
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params,
        }

        try:
            resp = await self._client.post(endpoint, json=payload)
        except httpx.TimeoutException as exc:
            raise Transient(f"{method}: timeout", endpoint) from exc
        except httpx.HTTPError as exc:
            raise Transient(f"{method}: {exc}", endpoint) from exc

        status = resp.status_code
        if status == 429:
            raise RateLimited(f"{method}: HTTP 429", endpoint)
        if status >= 500:
            raise Transient(f"{method}: HTTP {status}", endpoint)
        if status >= 400:
            raise Rejected(f"{method}: HTTP {status}", endpoint)

        try:
            body = resp.json()
        except ValueError as exc:
            raise Transient(f"{method}: non-JSON response", endpoint) from exc

        if not isinstance(body, dict):
            raise Transient(f"{method}: malformed response", endpoint)
        if body.get("error"):
            raise classify_rpc_error(method, body["error"], endpoint)
        if "result" not in body:
            raise Transient(f"{method}: response has no result", endpoint)

        log.debug("%s %s -> ok (%s)", method, params, endpoint)
        return body["result"]
