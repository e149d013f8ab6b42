"""
Test configuration for the Wallet Bridge test suite.
"""

import os

import pytest
import pytest_asyncio

from tests.fixtures.relay import FakeRelay
from wallet_bridge import BridgeSettings, get_settings


# Test markers
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "slow: mark test as slow running")
    config.addinivalue_line("markers", "external: mark test as requiring a live relay")


# Collection settings
def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)


# Test environment setup
@pytest.fixture(autouse=True)
def test_environment_setup(monkeypatch):
    """Keep the caller's WALLET_BRIDGE_* variables out of the tests."""

    for name in list(os.environ):
        if name.upper().startswith("WALLET_BRIDGE_"):
            monkeypatch.delenv(name)

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def relay():
    """A scripted in-memory relay."""
    return FakeRelay()


@pytest_asyncio.fixture
async def relay_client(relay):
    client = relay.client()
    yield client
    await client.aclose()


@pytest.fixture
def fast_settings():
    """Settings that poll without waiting."""
    return BridgeSettings(poll_interval_seconds=0.001)
