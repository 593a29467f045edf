"""
Caching Layer.

Provides the client-side cache used by every data-fetching adapter:
    - CacheManager: TTL-based caching with session persistence
    - CacheConfig: Configuration for cache behavior
    - CacheStats: Statistics tracking for cache operations
    - Session stores: durable per-session mirrors (memory, file)
    - MarketplaceCache: per-namespace facades with fixed policies
"""

from repacked.caching.cache_manager import (
    CacheConfig,
    CacheEntry,
    CacheManager,
    CacheManagerProtocol,
    CacheStats,
    PersistedEntry,
)
from repacked.caching.namespaces import (
    DEFAULT_NAMESPACE_POLICIES,
    MarketplaceCache,
    Namespace,
    NamespacedCache,
    NamespacePolicy,
    namespace_of,
)
from repacked.caching.session_store import (
    FileSessionStore,
    InMemorySessionStore,
    SessionStore,
    SessionStoreError,
    StorageQuotaExceeded,
    StorageUnavailable,
)

__all__ = [
    "CacheConfig",
    "CacheEntry",
    "CacheManager",
    "CacheManagerProtocol",
    "CacheStats",
    "PersistedEntry",
    "DEFAULT_NAMESPACE_POLICIES",
    "MarketplaceCache",
    "Namespace",
    "NamespacedCache",
    "NamespacePolicy",
    "namespace_of",
    "FileSessionStore",
    "InMemorySessionStore",
    "SessionStore",
    "SessionStoreError",
    "StorageQuotaExceeded",
    "StorageUnavailable",
]
