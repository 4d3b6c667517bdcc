"""Shared fixtures for mon20_indexer tests."""

from __future__ import annotations

import random

import pytest
from pytest_metadata.plugin import metadata_key

from mon20_indexer.models.config import IndexerConfig, ProtocolConfig
from mon20_indexer.protocol.applier import MintApplier
from mon20_indexer.protocol.validator import MintValidator
from mon20_indexer.scanner import ScanLoop
from mon20_indexer.storage.sqlite import SQLiteLedgerStore

from tests.mocks import ENDPOINT_A, ENDPOINT_B, MockChainClient

DEPLOY_BLOCK = 100
MINT = 1000


def pytest_configure(config):
    """Add protocol info to the report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Protocol"] = "MON-20"
    meta["Ticker"] = "MONS"
    meta["Deploy block (tests)"] = str(DEPLOY_BLOCK)


def make_test_config(**overrides) -> IndexerConfig:
    """Build an IndexerConfig suitable for testing."""
    protocol = overrides.pop("protocol", None) or ProtocolConfig(
        name="MON-20",
        ticker="MONS",
        mint_amount=MINT,
        max_supply=21_000_000,
        deploy_block=DEPLOY_BLOCK,
    )
    defaults = dict(
        batch_size=5,
        idle_interval=0.01,
        batch_pause=0.0,
        error_backoff=1.0,
        max_backoff=8.0,
        backoff_jitter=0.0,
        protocol=protocol,
        rpc_endpoints=[ENDPOINT_A, ENDPOINT_B],
        rpc_timeout=5.0,
        db_path=":memory:",
        api_enabled=False,
        holders_page_size=20,
    )
    defaults.update(overrides)
    return IndexerConfig(**defaults)


@pytest.fixture
def test_config():
    """Default IndexerConfig for tests."""
    return make_test_config()


@pytest.fixture
async def store(test_config):
    """In-memory SQLiteLedgerStore with the stats row seeded."""
    s = SQLiteLedgerStore(":memory:")
    await s.initialize()
    await s.ensure_stats(test_config.protocol.deploy_block)
    yield s
    await s.close()


@pytest.fixture
def mock_chain():
    return MockChainClient(head=DEPLOY_BLOCK - 1)


@pytest.fixture
def validator(test_config):
    return MintValidator(test_config.protocol)


@pytest.fixture
def applier(store, test_config):
    return MintApplier(store, test_config.protocol)


@pytest.fixture
def scan_loop(mock_chain, store, validator, applier, test_config):
    """ScanLoop wired to the mock chain and the in-memory store."""
    return ScanLoop(
        mock_chain, store, validator, applier, test_config, rng=random.Random(7),
    )
