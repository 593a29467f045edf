"""
Cache Manager - TTL-based Caching with Session Persistence.

Keeps fetched marketplace data in memory so that repeated reads return
immediately, optionally mirroring entries into a per-session durable store
so they survive a reload of the application.

Design Notes:
    - TTL-based expiration checked on every read
    - Periodic sweep bounds memory held by entries nobody reads again
    - Durable mirror is best-effort: failures are logged, never raised
    - Namespaces are key prefixes ("posts:7"), cleared in bulk
    - Thread-safe with RLock (the sweeper runs on its own thread)
"""

from __future__ import annotations

import json
import logging
import sys
import threading
import time
from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    List,
    Optional,
    Protocol,
    TypeVar,
    runtime_checkable,
)

from pydantic import BaseModel, Field, ValidationError

from repacked.caching.session_store import SessionStore, SessionStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Errors a durable store call may raise; all are degraded to memory-only.
_STORE_ERRORS = (SessionStoreError, OSError, TypeError, ValueError)


@runtime_checkable
class CacheManagerProtocol(Protocol):
    """Protocol for cache manager implementations."""

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache."""
        ...

    def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: Optional[float] = None,
        persist: bool = False,
    ) -> None:
        """Set value in cache with optional TTL and persistence."""
        ...

    def has(self, key: str) -> bool:
        """Check whether a live entry exists."""
        ...

    def delete(self, key: str) -> None:
        """Delete a cache entry."""
        ...

    def clear_namespace(self, namespace: str) -> int:
        """Delete all entries of a namespace."""
        ...

    def clear(self) -> None:
        """Clear all cache entries."""
        ...


@dataclass
class CacheEntry(Generic[T]):
    """A single cache entry with metadata."""

    value: T
    created_at: float = field(default_factory=time.time)
    ttl_seconds: float = 300.0
    persisted: bool = False

    def is_expired(self, now: float) -> bool:
        """Entry is live while now - created_at <= ttl_seconds."""
        return now - self.created_at > self.ttl_seconds


class PersistedEntry(BaseModel):
    """Shape of an entry in the durable store, validated on rehydration."""

    value: Any
    created_at: float
    ttl_seconds: float = Field(ge=0)


@dataclass
class CacheConfig:
    """Configuration for cache manager."""

    # Default TTL in seconds (default 5 minutes)
    default_ttl_seconds: float = 300.0

    # Interval between background sweeps of expired entries
    sweep_interval_seconds: float = 60.0

    # Start the background sweeper on construction
    auto_sweep: bool = False

    # Prefix marking durable-store keys owned by the cache
    storage_prefix: str = "cache_"

    # Whether to enable caching
    enabled: bool = True

    # Log cache hits/misses
    log_access: bool = False


@dataclass
class CacheStats:
    """Cache statistics."""

    entry_count: int = 0
    approximate_size_bytes: int = 0
    hits: int = 0
    misses: int = 0
    expirations: int = 0
    persist_failures: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


class CacheManager:
    """
    TTL-based cache with optional durable mirroring.

    Features:
        - get/set/has/delete/clear over expiring entries
        - Namespace-scoped bulk invalidation
        - Rehydration of persisted entries on construction
        - Background sweep of expired entries
        - Statistics tracking

    Cache Key Format:
        f"{namespace}:{identifier}"

        Example: "messages:3f2a..." or "profiles:42"
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        store: Optional[SessionStore] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize cache manager.

        Args:
            config: Cache configuration
            store: Durable per-session store (memory-only when None)
            clock: Time source returning epoch seconds
        """
        self.config = config or CacheConfig()
        self._store = store
        self._clock = clock
        self._cache: Dict[str, CacheEntry[Any]] = {}
        self._lock = threading.RLock()
        self._stats = CacheStats()
        self._stop_event = threading.Event()
        self._sweeper: Optional[threading.Thread] = None

        self.rehydrate()

        if self.config.auto_sweep:
            self.start_sweeper()

    @property
    def store(self) -> Optional[SessionStore]:
        """Durable store backing persisted entries."""
        return self._store

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Does not touch the entry's timer. An expired entry is removed from
        memory and from the durable store and reported as a miss.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found/expired
        """
        if not self.config.enabled:
            return None

        with self._lock:
            entry = self._cache.get(key)

            if entry is None:
                self._stats.misses += 1
                if self.config.log_access:
                    logger.debug(f"Cache MISS: {key}")
                return None

            if entry.is_expired(self._clock()):
                self._purge(key)
                self._stats.expirations += 1
                self._stats.misses += 1
                if self.config.log_access:
                    logger.debug(f"Cache EXPIRED: {key}")
                return None

            self._stats.hits += 1
            if self.config.log_access:
                logger.debug(f"Cache HIT: {key}")

            return entry.value

    def has(self, key: str) -> bool:
        """
        Check whether key holds a live entry.

        Args:
            key: Cache key

        Returns:
            True if present and not expired
        """
        if not self.config.enabled:
            return False

        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return False
            if entry.is_expired(self._clock()):
                self._purge(key)
                self._stats.expirations += 1
                return False
            return True

    def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: Optional[float] = None,
        persist: bool = False,
    ) -> None:
        """
        Set value in cache.

        Args:
            key: Cache key
            value: Value to cache (must be JSON-serializable when persisted)
            ttl_seconds: TTL in seconds (uses default if None)
            persist: Mirror the entry into the durable store
        """
        if not self.config.enabled:
            return

        ttl = ttl_seconds if ttl_seconds is not None else self.config.default_ttl_seconds

        with self._lock:
            now = self._clock()
            previous = self._cache.get(key)
            entry = CacheEntry(value=value, created_at=now, ttl_seconds=ttl)

            if persist:
                entry.persisted = self._persist(key, entry)
            elif previous is not None and previous.persisted:
                # Drop the older durable copy so a reload cannot resurrect it
                self._store_remove(self._storage_key(key))

            self._cache[key] = entry

            if self.config.log_access:
                logger.debug(f"Cache SET: {key} (TTL={ttl}s, persisted={entry.persisted})")

    def delete(self, key: str) -> None:
        """
        Delete a cache entry. Deleting an absent key is not an error.

        Args:
            key: Cache key to delete
        """
        with self._lock:
            removed = self._cache.pop(key, None)
            self._store_remove(self._storage_key(key))
            if removed is not None:
                logger.debug(f"Cache DELETED: {key}")

    def clear(self) -> None:
        """Clear all cache entries, in memory and in the durable store."""
        with self._lock:
            self._cache.clear()
            for storage_key in self._store_keys():
                if storage_key.startswith(self.config.storage_prefix):
                    self._store_remove(storage_key)
            logger.info("Cache CLEARED")

    def clear_namespace(self, namespace: str) -> int:
        """
        Delete every entry whose key starts with "<namespace>:".

        Args:
            namespace: Namespace name (e.g. "posts")

        Returns:
            Number of in-memory entries removed
        """
        prefix = f"{namespace}:"
        storage_prefix = self._storage_key(prefix)

        with self._lock:
            keys_to_remove = [k for k in self._cache if k.startswith(prefix)]
            for key in keys_to_remove:
                del self._cache[key]

            for storage_key in self._store_keys():
                if storage_key.startswith(storage_prefix):
                    self._store_remove(storage_key)

            if keys_to_remove:
                logger.info(
                    f"Cache CLEARED namespace '{namespace}' ({len(keys_to_remove)} entries)"
                )

            return len(keys_to_remove)

    def keys(self, namespace: Optional[str] = None) -> List[str]:
        """List live keys, optionally restricted to one namespace."""
        prefix = f"{namespace}:" if namespace is not None else ""
        now = self._clock()
        with self._lock:
            return [
                k for k, entry in self._cache.items()
                if k.startswith(prefix) and not entry.is_expired(now)
            ]

    def get_stats(self) -> CacheStats:
        """Get cache statistics. Size is an estimate, not exact accounting."""
        with self._lock:
            size = sum(self._estimate_entry_size(e) for e in self._cache.values())
            return CacheStats(
                entry_count=len(self._cache),
                approximate_size_bytes=size,
                hits=self._stats.hits,
                misses=self._stats.misses,
                expirations=self._stats.expirations,
                persist_failures=self._stats.persist_failures,
            )

    def sweep(self) -> int:
        """
        Evict all expired entries from memory and the durable store.

        Returns:
            Number of entries evicted
        """
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._cache.items() if e.is_expired(now)]
            for key in expired:
                self._purge(key)
            self._stats.expirations += len(expired)

        if expired:
            logger.debug(f"Cache SWEEP evicted {len(expired)} entries")
        return len(expired)

    def rehydrate(self) -> int:
        """
        Load live entries previously persisted by a cache with this prefix.

        Expired and corrupt durable entries are deleted from the store.

        Returns:
            Number of entries loaded into memory
        """
        if self._store is None or not self.config.enabled:
            return 0

        prefix = self.config.storage_prefix
        loaded = 0

        with self._lock:
            now = self._clock()
            for storage_key in self._store_keys():
                if not storage_key.startswith(prefix):
                    continue

                key = storage_key[len(prefix):]
                raw = self._store_get(storage_key)
                if raw is None:
                    continue

                try:
                    persisted = PersistedEntry.model_validate_json(raw)
                except ValidationError as e:
                    logger.warning(
                        f"Dropping corrupt persisted cache entry '{key}': "
                        f"{e.error_count()} validation error(s)"
                    )
                    self._store_remove(storage_key)
                    continue

                entry = CacheEntry(
                    value=persisted.value,
                    created_at=persisted.created_at,
                    ttl_seconds=persisted.ttl_seconds,
                    persisted=True,
                )
                if entry.is_expired(now):
                    self._store_remove(storage_key)
                    continue

                self._cache[key] = entry
                loaded += 1

        if loaded:
            logger.info(f"Cache REHYDRATED {loaded} entries from session store")
        return loaded

    def start_sweeper(self) -> None:
        """Start the background sweep thread (no-op if already running)."""
        with self._lock:
            if self._sweeper is not None and self._sweeper.is_alive():
                return
            self._stop_event.clear()
            self._sweeper = threading.Thread(
                target=self._sweep_loop,
                name="repacked-cache-sweeper",
                daemon=True,
            )
            self._sweeper.start()
            logger.debug(
                f"Cache sweeper started (interval={self.config.sweep_interval_seconds}s)"
            )

    def stop(self) -> None:
        """Stop the background sweep thread."""
        self._stop_event.set()
        sweeper = self._sweeper
        if sweeper is not None and sweeper is not threading.current_thread():
            sweeper.join(timeout=5.0)
        self._sweeper = None

    @property
    def sweeper_running(self) -> bool:
        """Whether the background sweeper is alive."""
        return self._sweeper is not None and self._sweeper.is_alive()

    def __enter__(self) -> "CacheManager":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.stop()

    @staticmethod
    def make_key(namespace: str, identifier: Any) -> str:
        """
        Create a cache key from namespace and identifier.

        Args:
            namespace: Namespace name (e.g., "messages")
            identifier: Entity identifier

        Returns:
            Cache key in format "namespace:identifier"
        """
        return f"{namespace}:{identifier}"

    def _sweep_loop(self) -> None:
        """Run sweep() every interval until stopped."""
        while not self._stop_event.wait(self.config.sweep_interval_seconds):
            try:
                self.sweep()
            except Exception:
                logger.exception("Cache sweep failed")

    def _purge(self, key: str) -> None:
        """Remove entry from memory and durable store (must hold lock)."""
        entry = self._cache.pop(key, None)
        if entry is not None and entry.persisted:
            self._store_remove(self._storage_key(key))

    def _persist(self, key: str, entry: CacheEntry[Any]) -> bool:
        """Write entry to the durable store. Returns False on failure."""
        if self._store is None:
            return False

        try:
            payload = json.dumps(
                {
                    "value": entry.value,
                    "created_at": entry.created_at,
                    "ttl_seconds": entry.ttl_seconds,
                }
            )
            self._store.set_item(self._storage_key(key), payload)
            return True
        except _STORE_ERRORS as e:
            self._stats.persist_failures += 1
            logger.warning(f"Failed to persist cache entry '{key}' to session store: {e}")
            # A previous durable copy would now be stale
            self._store_remove(self._storage_key(key))
            return False

    def _storage_key(self, key: str) -> str:
        return f"{self.config.storage_prefix}{key}"

    def _store_get(self, storage_key: str) -> Optional[str]:
        if self._store is None:
            return None
        try:
            return self._store.get_item(storage_key)
        except _STORE_ERRORS as e:
            logger.warning(f"Failed to read '{storage_key}' from session store: {e}")
            return None

    def _store_remove(self, storage_key: str) -> None:
        if self._store is None:
            return
        try:
            self._store.remove_item(storage_key)
        except _STORE_ERRORS as e:
            logger.warning(f"Failed to remove '{storage_key}' from session store: {e}")

    def _store_keys(self) -> List[str]:
        if self._store is None:
            return []
        try:
            return list(self._store.keys())
        except _STORE_ERRORS as e:
            logger.warning(f"Failed to enumerate session store: {e}")
            return []

    def _estimate_entry_size(self, entry: CacheEntry[Any]) -> int:
        """Serialized length of the entry, or a structural estimate."""
        try:
            return len(
                json.dumps(
                    {
                        "value": entry.value,
                        "created_at": entry.created_at,
                        "ttl_seconds": entry.ttl_seconds,
                    }
                )
            )
        except (TypeError, ValueError):
            return self._estimate_size(entry.value)

    def _estimate_size(self, value: Any) -> int:
        """Estimate memory size of a value in bytes."""
        try:
            size = sys.getsizeof(value)

            if isinstance(value, dict):
                for k, v in value.items():
                    size += sys.getsizeof(k)
                    if isinstance(v, (list, dict)):
                        size += self._estimate_size(v)
                    else:
                        size += sys.getsizeof(v)
            elif isinstance(value, (list, tuple)):
                for item in value:
                    if isinstance(item, (list, dict)):
                        size += self._estimate_size(item)
                    else:
                        size += sys.getsizeof(item)

            return size
        except Exception:
            # Fallback: assume 1KB per entry
            return 1024
