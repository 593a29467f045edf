"""
Adapters Package - Cache Consumers and Infrastructure Implementations.

Fetch handles:
    - use_cached_data / CachedData: cache-first fetch of any key
    - use_cached_messages, use_cached_post, use_cached_post_list,
      use_cached_conversations, use_cached_profile: entity handles

Images:
    - AvatarLoader / ObjectUrlRegistry: cached avatar blobs as object URLs

Invalidation:
    - RealtimeInvalidator: backend change events to cache updates

Infrastructure:
    - InMemoryMarketplaceBackend: Fake backend for development/testing
    - InMemoryMetricsCollector: Simple in-memory collection

Design Principles:
    - All adapters implement or consume protocols from `interfaces`
    - The cache is injected, never a module global
"""

from repacked.adapters.avatar import AvatarFetchError, AvatarLoader, ObjectUrlRegistry
from repacked.adapters.cached_data import (
    CacheContext,
    CacheContextError,
    CachedData,
    cache_scope,
    get_cache_context,
    use_cached_data,
)
from repacked.adapters.cached_resources import (
    ResourceNotFound,
    summarize_conversation,
    use_cached_conversations,
    use_cached_messages,
    use_cached_post,
    use_cached_post_list,
    use_cached_profile,
)
from repacked.adapters.metrics_collector import InMemoryMetricsCollector
from repacked.adapters.mock_backend import BackendError, InMemoryMarketplaceBackend
from repacked.adapters.realtime import RealtimeInvalidator, mark_messages_read

__all__ = [
    "AvatarFetchError",
    "AvatarLoader",
    "ObjectUrlRegistry",
    "CacheContext",
    "CacheContextError",
    "CachedData",
    "cache_scope",
    "get_cache_context",
    "use_cached_data",
    "ResourceNotFound",
    "summarize_conversation",
    "use_cached_conversations",
    "use_cached_messages",
    "use_cached_post",
    "use_cached_post_list",
    "use_cached_profile",
    "InMemoryMetricsCollector",
    "BackendError",
    "InMemoryMarketplaceBackend",
    "RealtimeInvalidator",
    "mark_messages_read",
]
