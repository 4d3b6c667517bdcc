"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from mon20_indexer.models.config import IndexerConfig, ProtocolConfig


class ConfigError(ValueError):
    """Configuration is missing or inconsistent."""


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "MON20_INDEXER_",
) -> IndexerConfig:
    """Load indexer configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (MON20_INDEXER_RPC_URLS, etc.)
        2. TOML config file
        3. Defaults from IndexerConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = IndexerConfig()

    # ── Indexer section ────────────────────────────────────
    indexer = raw.get("indexer", {})
    if (v := indexer.get("batch_size")) is not None:
        cfg.batch_size = int(v)
    if (v := indexer.get("idle_interval")) is not None:
        cfg.idle_interval = float(v)
    if (v := indexer.get("batch_pause")) is not None:
        cfg.batch_pause = float(v)
    if (v := indexer.get("error_backoff")) is not None:
        cfg.error_backoff = float(v)
    if (v := indexer.get("max_backoff")) is not None:
        cfg.max_backoff = float(v)
    if (v := indexer.get("backoff_jitter")) is not None:
        cfg.backoff_jitter = float(v)
    if v := indexer.get("log_level"):
        cfg.log_level = str(v)

    # ── Protocol section ───────────────────────────────────
    proto = raw.get("protocol", {})
    defaults = ProtocolConfig()
    cfg.protocol = ProtocolConfig(
        name=str(proto.get("name", defaults.name)),
        ticker=str(proto.get("ticker", defaults.ticker)),
        mint_amount=int(proto.get("mint_amount", defaults.mint_amount)),
        max_supply=int(proto.get("max_supply", defaults.max_supply)),
        deploy_block=int(proto.get("deploy_block", defaults.deploy_block)),
    )

    # ── RPC section ────────────────────────────────────────
    rpc = raw.get("rpc", {})
    if (v := rpc.get("endpoints")) is not None:
        cfg.rpc_endpoints = [str(u) for u in v]
    if (v := rpc.get("timeout")) is not None:
        cfg.rpc_timeout = float(v)

    # ── Storage section ────────────────────────────────────
    storage = raw.get("storage", {})
    if v := storage.get("db_path"):
        cfg.db_path = str(v)

    # ── API section ────────────────────────────────────────
    api = raw.get("api", {})
    if (v := api.get("enabled")) is not None:
        cfg.api_enabled = bool(v)
    if v := api.get("host"):
        cfg.api_host = str(v)
    if (v := api.get("port")) is not None:
        cfg.api_port = int(v)
    if (v := api.get("page_size")) is not None:
        cfg.holders_page_size = int(v)

    # ── Environment variable overrides (highest priority) ──
    if urls := os.environ.get(f"{env_prefix}RPC_URLS"):
        cfg.rpc_endpoints = [u.strip() for u in urls.split(",") if u.strip()]
    if db_path := os.environ.get(f"{env_prefix}DB_PATH"):
        cfg.db_path = db_path
    if port := os.environ.get(f"{env_prefix}PORT"):
        cfg.api_port = _env_int(f"{env_prefix}PORT", port)
    if v := os.environ.get(f"{env_prefix}BATCH_SIZE"):
        cfg.batch_size = _env_int(f"{env_prefix}BATCH_SIZE", v)
    if v := os.environ.get(f"{env_prefix}DEPLOY_BLOCK"):
        cfg.protocol.deploy_block = _env_int(f"{env_prefix}DEPLOY_BLOCK", v)
    if v := os.environ.get(f"{env_prefix}TICKER"):
        cfg.protocol.ticker = v
    if v := os.environ.get(f"{env_prefix}MINT_AMOUNT"):
        cfg.protocol.mint_amount = _env_int(f"{env_prefix}MINT_AMOUNT", v)
    if v := os.environ.get(f"{env_prefix}MAX_SUPPLY"):
        cfg.protocol.max_supply = _env_int(f"{env_prefix}MAX_SUPPLY", v)
    if v := os.environ.get(f"{env_prefix}LOG_LEVEL"):
        cfg.log_level = v

    # Expand ~ in paths
    if cfg.db_path != ":memory:":
        cfg.db_path = str(Path(cfg.db_path).expanduser())

    validate_config(cfg)
    return cfg


def validate_config(cfg: IndexerConfig) -> None:
    """Raise ConfigError if the configuration cannot drive the indexer."""
    if not cfg.rpc_endpoints:
        raise ConfigError("At least one RPC endpoint is required")
    if cfg.batch_size < 1:
        raise ConfigError(f"batch_size must be positive, got {cfg.batch_size}")
    for name in ("idle_interval", "batch_pause", "error_backoff", "max_backoff", "backoff_jitter"):
        if getattr(cfg, name) < 0:
            raise ConfigError(f"{name} must be >= 0, got {getattr(cfg, name)}")
    if cfg.rpc_timeout <= 0:
        raise ConfigError(f"rpc timeout must be positive, got {cfg.rpc_timeout}")
    if cfg.protocol.mint_amount < 1:
        raise ConfigError(f"mint_amount must be positive, got {cfg.protocol.mint_amount}")
    if cfg.protocol.max_supply < cfg.protocol.mint_amount:
        raise ConfigError(
            f"max_supply ({cfg.protocol.max_supply}) is below mint_amount "
            f"({cfg.protocol.mint_amount})"
        )
    if cfg.protocol.deploy_block < 0:
        raise ConfigError(f"deploy_block must be >= 0, got {cfg.protocol.deploy_block}")
    if not cfg.protocol.ticker:
        raise ConfigError("ticker must not be empty")
    if cfg.holders_page_size < 1:
        raise ConfigError(f"page_size must be positive, got {cfg.holders_page_size}")


def _env_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from exc
