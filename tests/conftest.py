"""Shared test fixtures for all test modules."""

import pytest

from livestore.common.config import ConfigSnapshot
from livestore.services.config.store import ConfigStore
from livestore.services.metrics.counter import EventCounter
from tests.fakes import FakeStoreClient


@pytest.fixture
def counter() -> EventCounter:
    """Fresh event counter."""
    return EventCounter()


@pytest.fixture
def snapshot() -> ConfigSnapshot:
    """Default config snapshot (500ms timeouts)."""
    return ConfigSnapshot()


@pytest.fixture
def config_store(snapshot: ConfigSnapshot) -> ConfigStore:
    """Config store already holding the default snapshot."""
    return ConfigStore(snapshot)


@pytest.fixture
def fake_store_client() -> FakeStoreClient:
    """Store client backed by in-memory collections."""
    return FakeStoreClient()
