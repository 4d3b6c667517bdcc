"""Read-only HTTP API over the ledger store (aiohttp)."""

from __future__ import annotations

import logging

from aiohttp import web

from mon20_indexer.interfaces.store import LedgerStore

log = logging.getLogger(__name__)

API_NAME = "MON20 Indexer API"

STORE_KEY = web.AppKey("store", LedgerStore)
PAGE_SIZE_KEY = web.AppKey("page_size", int)


@web.middleware
async def cors_middleware(request: web.Request, handler) -> web.StreamResponse:
    response = await handler(request)
    response.headers["Access-Control-Allow-Origin"] = "*"
    return response


@web.middleware
async def error_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Turn store/query faults into a 500 with a diagnostic message."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception as exc:
        log.error("%s %s failed: %s", request.method, request.path, exc, exc_info=True)
        return web.json_response({"error": str(exc)}, status=500)


# ── Handlers ───────────────────────────────────────────────


async def handle_index(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok", "msg": API_NAME})


async def handle_stats(request: web.Request) -> web.Response:
    stats = await request.app[STORE_KEY].get_stats()
    if stats is None:
        return web.json_response({"totalMinted": 0, "mintCount": 0, "lastBlock": None})
    return web.json_response({
        "totalMinted": stats.total_minted,
        "mintCount": stats.mint_count,
        "lastBlock": stats.last_processed_block,
    })


async def handle_holders(request: web.Request) -> web.Response:
    page_size = request.app[PAGE_SIZE_KEY]
    raw_limit = request.query.get("limit")
    limit = page_size
    if raw_limit is not None:
        try:
            limit = int(raw_limit)
        except ValueError:
            return web.json_response({"error": f"invalid limit: {raw_limit!r}"}, status=400)
        limit = max(1, min(limit, page_size))

    holders = await request.app[STORE_KEY].list_top_holders(limit)
    return web.json_response([
        {"address": h.address, "balance": h.balance} for h in holders
    ])


async def handle_holder(request: web.Request) -> web.Response:
    address = request.match_info["address"].lower()
    balance = await request.app[STORE_KEY].get_balance(address)
    return web.json_response({"address": address, "balance": balance})


def create_app(store: LedgerStore, page_size: int = 20) -> web.Application:
    """Build the read API application. The store is only ever read."""
    app = web.Application(middlewares=[cors_middleware, error_middleware])
    app[STORE_KEY] = store
    app[PAGE_SIZE_KEY] = page_size
    app.router.add_get("/", handle_index)
    app.router.add_get("/stats", handle_stats)
    app.router.add_get("/holders", handle_holders)
    app.router.add_get("/holders/{address}", handle_holder)
    return app


class ReadAPIServer:
    """Runs the read API on a TCP site alongside other asyncio work."""

    def __init__(
        self,
        store: LedgerStore,
        host: str = "0.0.0.0",
        port: int = 8080,
        page_size: int = 20,
    ) -> None:
        self._app = create_app(store, page_size)
        self._host = host
        self._port = port
        self._runner: web.AppRunner | None = None

    @property
    def app(self) -> web.Application:
        return self._app

    async def start(self) -> None:
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._host, self._port)
        await site.start()
        log.info("API running on %s:%d", self._host, self._port)

    async def stop(self) -> None:
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
