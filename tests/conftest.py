"""
Pytest Configuration and Shared Fixtures.

This module contains fixtures available to all tests.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from repacked.adapters.cached_data import CacheContext
from repacked.adapters.metrics_collector import InMemoryMetricsCollector
from repacked.adapters.mock_backend import InMemoryMarketplaceBackend
from repacked.caching.cache_manager import CacheConfig, CacheManager
from repacked.caching.namespaces import MarketplaceCache
from repacked.caching.session_store import InMemorySessionStore


class ManualClock:
    """Time source that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def sample_config_path() -> Path:
    """Path to sample configuration file."""
    return Path(__file__).parent / "fixtures" / "sample_config.yaml"


@pytest.fixture
def clock() -> ManualClock:
    """Controllable clock for expiry tests."""
    return ManualClock()


@pytest.fixture
def session_store() -> InMemorySessionStore:
    """Durable store shared by managers built in one test."""
    return InMemorySessionStore()


@pytest.fixture
def cache_manager(session_store, clock) -> CacheManager:
    """Cache manager on the manual clock with an in-memory session store."""
    return CacheManager(CacheConfig(), store=session_store, clock=clock)


@pytest.fixture
def marketplace_cache(cache_manager) -> MarketplaceCache:
    """Namespace facades over the test cache manager."""
    return MarketplaceCache(cache_manager)


@pytest.fixture
def metrics_collector() -> InMemoryMetricsCollector:
    """Create metrics collector for testing."""
    return InMemoryMetricsCollector()


@pytest.fixture
def cache_context(marketplace_cache, metrics_collector) -> CacheContext:
    """Fetch context over the test cache."""
    return CacheContext(marketplace_cache, metrics=metrics_collector)


@pytest.fixture
def backend() -> InMemoryMarketplaceBackend:
    """Mock backend seeded with two users talking about a lamp."""
    backend = InMemoryMarketplaceBackend()
    backend.add_profile("u1", "alice", full_name="Alice A", avatar_url="https://cdn.test/a.png")
    backend.add_profile("u2", "bob", full_name="Bob B")
    backend.add_post(
        "7",
        "u1",
        "Lamp",
        description="Brass desk lamp",
        price=25.0,
        category="home",
        condition="good",
        created_at="2024-05-01T10:00:00Z",
    )
    backend.add_post(
        "8",
        "u2",
        "Bike",
        description="Road bike, 56cm",
        price=300.0,
        category="sports",
        condition="fair",
        created_at="2024-05-02T10:00:00Z",
    )
    backend.add_tag("7", "vintage", "#aa8800")
    backend.add_conversation("c1", "u2", "u1", post_id="7")
    backend.add_message("m1", "c1", "u2", "Is the lamp available?", "2024-05-03T09:00:00Z")
    backend.add_message("m2", "c1", "u1", "Yes!", "2024-05-03T09:05:00Z")
    backend.add_message("m3", "c1", "u2", "Great, 20?", "2024-05-03T09:06:00Z")
    return backend
