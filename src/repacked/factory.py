"""
Application Wiring.

Builds the one cache an application uses from its configuration. The cache
is created once at startup and passed to whatever needs it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import httpx

from repacked.adapters.avatar import AvatarLoader, ObjectUrlRegistry
from repacked.adapters.cached_data import CacheContext
from repacked.adapters.realtime import RealtimeInvalidator
from repacked.caching.cache_manager import CacheManager
from repacked.caching.namespaces import MarketplaceCache
from repacked.caching.session_store import (
    FileSessionStore,
    InMemorySessionStore,
    SessionStore,
)
from repacked.config.models import AvatarSettings, RepackedConfig, SessionStoreSettings
from repacked.interfaces.metrics_collector import MetricsCollector

logger = logging.getLogger(__name__)


@dataclass
class CacheRuntime:
    """Everything the UI layer needs from the cache subsystem."""

    cache: MarketplaceCache
    context: CacheContext
    invalidator: RealtimeInvalidator
    avatar_settings: AvatarSettings = field(default_factory=AvatarSettings)
    registry: ObjectUrlRegistry = field(default_factory=ObjectUrlRegistry)

    def avatar_loader(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        enabled: bool = True,
    ) -> AvatarLoader:
        """Avatar loader sharing this runtime's cache, registry and settings."""
        return AvatarLoader(
            self.cache,
            self.registry,
            http_client=http_client,
            settings=self.avatar_settings,
            enabled=enabled,
        )

    def close(self) -> None:
        """Stop background work."""
        self.cache.manager.stop()


def create_session_store(settings: SessionStoreSettings) -> Optional[SessionStore]:
    """Durable store for the configured backend (None disables persistence)."""
    if settings.backend == "none":
        return None
    if settings.backend == "file":
        return FileSessionStore(settings.path)
    return InMemorySessionStore(quota_bytes=settings.quota_bytes)


def create_cache_runtime(
    config: Optional[RepackedConfig] = None,
    store: Optional[SessionStore] = None,
    metrics: Optional[MetricsCollector] = None,
) -> CacheRuntime:
    """
    Build manager, namespace facades, fetch context, invalidator and avatar
    loading from one configuration.

    Applies config.log_level to the "repacked" logger. Handlers are left to
    the application (see repacked.configure_logging).

    Args:
        config: Application configuration (defaults if None)
        store: Session store overriding config.session_store
        metrics: Optional metrics collector

    Returns:
        CacheRuntime sharing one CacheManager
    """
    config = config or RepackedConfig()
    logging.getLogger("repacked").setLevel(config.log_level)

    if store is None:
        store = create_session_store(config.session_store)

    manager = CacheManager(config.cache.to_cache_config(), store=store)
    cache = MarketplaceCache(manager, config.cache.namespaces)
    context = CacheContext(cache, metrics=metrics)

    logger.info(
        f"Cache ready (store={config.session_store.backend}, "
        f"entries={manager.get_stats().entry_count}, "
        f"sweeper={'on' if manager.sweeper_running else 'off'})"
    )

    return CacheRuntime(
        cache=cache,
        context=context,
        invalidator=RealtimeInvalidator(context),
        avatar_settings=config.avatars,
    )
