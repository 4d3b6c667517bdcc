"""CLI entry point for the mon20_indexer daemon."""

from __future__ import annotations

import asyncio
import logging
import sys

import click

from mon20_indexer.config import ConfigError, load_config
from mon20_indexer.daemon import run_api, run_daemon
from mon20_indexer.models.config import IndexerConfig
from mon20_indexer.storage.sqlite import SQLiteLedgerStore


def _load(ctx: click.Context) -> IndexerConfig:
    """Load config or exit with the validation error."""
    try:
        cfg = load_config(ctx.obj["config_path"])
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if not ctx.obj["verbose"]:
        logging.getLogger().setLevel(cfg.log_level.upper())
    return cfg


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """mon20_indexer - MON-20 inscription indexer and ledger API."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ── Daemon ─────────────────────────────────────────────


@cli.command()
@click.option("--no-api", is_flag=True, help="Do not serve the read API in-process")
@click.pass_context
def run(ctx: click.Context, no_api: bool) -> None:
    """Start the indexer (and the read API unless --no-api)."""
    cfg = _load(ctx)
    with_api = cfg.api_enabled and not no_api

    click.echo(
        f"Starting mon20_indexer ({cfg.protocol.name}/{cfg.protocol.ticker}, "
        f"api: {'on' if with_api else 'off'})"
    )
    asyncio.run(run_daemon(cfg, with_api=with_api))


@cli.command()
@click.pass_context
def serve(ctx: click.Context) -> None:
    """Serve the read API only."""
    cfg = _load(ctx)
    click.echo(f"Serving read API on {cfg.api_host}:{cfg.api_port}")
    asyncio.run(run_api(cfg))


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show indexer configuration."""
    cfg = _load(ctx)
    proto = cfg.protocol
    click.echo(f"Protocol:     {proto.name}")
    click.echo(f"Ticker:       {proto.ticker}")
    click.echo(f"Mint amount:  {proto.mint_amount}")
    click.echo(f"Max supply:   {proto.max_supply}")
    click.echo(f"Deploy block: {proto.deploy_block}")
    click.echo(f"Batch size:   {cfg.batch_size}")
    click.echo(f"RPC:          {', '.join(cfg.rpc_endpoints)}")
    click.echo(f"DB path:      {cfg.db_path}")
    click.echo(f"API:          {cfg.api_host}:{cfg.api_port} ({'enabled' if cfg.api_enabled else 'disabled'})")


@cli.command()
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Show stored issuance stats and scan progress."""
    cfg = _load(ctx)

    async def _stats():
        store = SQLiteLedgerStore(cfg.db_path)
        await store.initialize()
        try:
            s = await store.get_stats()
            if s is None:
                click.echo("No stats yet. Run the indexer first.")
                return
            holders = await store.count_holders()
            pct = s.total_minted * 100 / cfg.protocol.max_supply
            click.echo(f"Total minted: {s.total_minted} / {cfg.protocol.max_supply} ({pct:.2f}%)")
            click.echo(f"Mint count:   {s.mint_count}")
            click.echo(f"Holders:      {holders}")
            click.echo(f"Last block:   {s.last_processed_block}")
            click.echo(f"Updated:      {s.updated_at}")
        finally:
            await store.close()

    asyncio.run(_stats())


@cli.command()
@click.option("-n", "--limit", type=int, default=20, help="Number of holders to show")
@click.pass_context
def holders(ctx: click.Context, limit: int) -> None:
    """List top holders by balance."""
    cfg = _load(ctx)

    async def _holders():
        store = SQLiteLedgerStore(cfg.db_path)
        await store.initialize()
        try:
            rows = await store.list_top_holders(limit)
            if not rows:
                click.echo("No holders.")
                return
            for rank, h in enumerate(rows, start=1):
                click.echo(f"  {rank:3d}. {h.address}  {h.balance}")
        finally:
            await store.close()

    asyncio.run(_holders())


@cli.command()
@click.argument("address")
@click.pass_context
def balance(ctx: click.Context, address: str) -> None:
    """Show one holder's balance."""
    cfg = _load(ctx)

    async def _balance():
        store = SQLiteLedgerStore(cfg.db_path)
        await store.initialize()
        try:
            amount = await store.get_balance(address)
            click.echo(f"{address.lower()}  {amount} {cfg.protocol.ticker}")
        finally:
            await store.close()

    asyncio.run(_balance())


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
