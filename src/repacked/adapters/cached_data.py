"""
Cached Data - Cache-First Fetch Handles for UI Code.

Composes any zero-argument async fetcher with the CacheManager: a load
returns cached data instantly when a live entry exists and goes to the
backend otherwise, while exposing loading/error/"came from cache" state.

Design Notes:
    - One CacheContext per application, installed with cache_scope()
    - Handle creation is setup; load() is the mount, close() the unmount
    - Single-flight per key: concurrent loads share one task, refetch() starts
      a new one
    - A fetch started before an invalidation of its key or namespace never
      writes the cache
    - No retries: failures land in `error`, callers decide to refetch()
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from contextvars import ContextVar
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Generic,
    Iterator,
    Optional,
    Tuple,
    TypeVar,
    Union,
)

from repacked.caching.cache_manager import CacheManager
from repacked.caching.namespaces import MarketplaceCache, NamespacePolicy, namespace_of
from repacked.interfaces.metrics_collector import MetricsCollector

logger = logging.getLogger(__name__)

T = TypeVar("T")

Fetcher = Callable[[], Awaitable[T]]


class CacheContextError(RuntimeError):
    """Raised when a cached-data handle is created without a cache context."""
    pass


class CacheContext:
    """
    Shared state behind every cached-data handle of an application.

    Owns the cache (manager plus namespace policies) and the per-key
    in-flight registry.

    Usage:
        context = CacheContext(MarketplaceCache(CacheManager(store=store)))
        with cache_scope(context):
            posts = use_cached_data("posts:7", lambda: backend.get_post("7"))
    """

    def __init__(
        self,
        cache: Union[MarketplaceCache, CacheManager],
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        """
        Initialize context.

        Args:
            cache: Marketplace cache, or a bare manager using default policies
            metrics: Optional metrics collector for hit/miss/error counters
        """
        if isinstance(cache, CacheManager):
            cache = MarketplaceCache(cache)
        self.cache = cache
        self.manager = cache.manager
        self.metrics = metrics
        self._in_flight: Dict[str, asyncio.Future[Any]] = {}
        self._generations: Dict[str, int] = {}
        self._namespace_generations: Dict[str, int] = {}

    def policy(self, namespace: str) -> NamespacePolicy:
        """Policy for a namespace; unknown ones get the manager default TTL."""
        return self.cache.namespace(namespace).policy

    def in_flight(self, key: str) -> bool:
        """Whether a fetch for key is currently running."""
        task = self._in_flight.get(key)
        return task is not None and not task.done()

    async def fetch(
        self,
        key: str,
        fetcher: Fetcher[T],
        ttl_seconds: Optional[float] = None,
        persist: bool = False,
        force: bool = False,
    ) -> T:
        """
        Run fetcher for key, joining an in-flight fetch if there is one.

        The result is written to the cache unless the key (or its namespace)
        was invalidated while the fetch was running. Failures are never cached.

        Args:
            key: Cache key
            fetcher: Zero-argument coroutine function
            ttl_seconds: TTL for the stored result
            persist: Mirror the stored result into the session store
            force: Detach a running fetch instead of joining it

        Returns:
            Fetched value
        """
        if force and self.in_flight(key):
            logger.debug(f"Detaching in-flight fetch for {key}: forced refetch")
            self.detach(key)

        task = self._in_flight.get(key)
        if task is None or task.done():
            task = asyncio.ensure_future(
                self._fetch_and_store(
                    key, fetcher, ttl_seconds, persist, self._generation(key)
                )
            )
            self._in_flight[key] = task
            task.add_done_callback(lambda t, k=key: self._release(k, t))
        else:
            logger.debug(f"Joining in-flight fetch for {key}")

        # Shielded so one caller going away does not cancel the others
        return await asyncio.shield(task)

    def detach(self, key: str) -> None:
        """Stop any fetch already running for key from writing the cache."""
        self._generations[key] = self._generations.get(key, 0) + 1
        self._in_flight.pop(key, None)

    def invalidate(self, key: str) -> None:
        """Delete key from the cache and detach any in-flight fetch for it."""
        self.detach(key)
        self.manager.delete(key)

    def invalidate_namespace(self, namespace: str) -> int:
        """
        Clear a namespace and detach every in-flight fetch inside it.

        Returns:
            Number of cached entries removed
        """
        self._namespace_generations[namespace] = (
            self._namespace_generations.get(namespace, 0) + 1
        )
        prefix = f"{namespace}:"
        for key in [k for k in self._in_flight if k.startswith(prefix)]:
            del self._in_flight[key]
        return self.manager.clear_namespace(namespace)

    def record(self, name: str, key: str, value: int = 1) -> None:
        """Increment a counter tagged with the key's namespace."""
        if self.metrics is not None:
            self.metrics.record_count(name, value, tags=self._tags(key))

    def _generation(self, key: str) -> Tuple[int, int]:
        namespace = namespace_of(key) or ""
        return (
            self._generations.get(key, 0),
            self._namespace_generations.get(namespace, 0),
        )

    async def _fetch_and_store(
        self,
        key: str,
        fetcher: Fetcher[T],
        ttl_seconds: Optional[float],
        persist: bool,
        generation: Tuple[int, int],
    ) -> T:
        started = time.perf_counter()
        try:
            value = await fetcher()
        finally:
            if self.metrics is not None:
                self.metrics.record_timing(
                    "fetch_duration",
                    time.perf_counter() - started,
                    tags=self._tags(key),
                )

        if self._generation(key) == generation:
            self.manager.set(key, value, ttl_seconds=ttl_seconds, persist=persist)
        else:
            logger.debug(f"Discarding result for {key}: invalidated during fetch")
        return value

    def _release(self, key: str, task: asyncio.Future[Any]) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        # Mark the failure as retrieved even if every waiter went away
        if not task.cancelled():
            task.exception()

    @staticmethod
    def _tags(key: str) -> Dict[str, str]:
        return {"namespace": namespace_of(key) or "default"}


_current_context: ContextVar[Optional[CacheContext]] = ContextVar(
    "repacked_cache_context", default=None
)


@contextlib.contextmanager
def cache_scope(context: CacheContext) -> Iterator[CacheContext]:
    """Make context the default for use_cached_data() inside the block."""
    token = _current_context.set(context)
    try:
        yield context
    finally:
        _current_context.reset(token)


def get_cache_context() -> CacheContext:
    """
    Return the active cache context.

    Raises:
        CacheContextError: If called outside cache_scope()
    """
    context = _current_context.get()
    if context is None:
        raise CacheContextError(
            "No cache context is active: wrap the caller in cache_scope(context) "
            "or pass context= explicitly"
        )
    return context


class CachedData(Generic[T]):
    """
    Cache-first view of one key.

    State:
        data: Last value delivered (kept on fetch failure)
        loading: A fetch for this handle is running
        error: Failure of the last fetch, None after a success or hit
        is_from_cache: Last delivered value came from the cache
    """

    def __init__(
        self,
        context: CacheContext,
        cache_key: str,
        fetcher: Fetcher[T],
        enabled: bool = True,
        ttl_seconds: Optional[float] = None,
        persist: bool = False,
        on_success: Optional[Callable[[T], Any]] = None,
        on_error: Optional[Callable[[Exception], Any]] = None,
    ) -> None:
        if not cache_key:
            raise ValueError("cache_key must be a non-empty string")
        if not callable(fetcher):
            raise TypeError("fetcher must be a zero-argument coroutine function")

        self._context = context
        self.cache_key = cache_key
        self.fetcher = fetcher
        self.enabled = enabled
        self.ttl_seconds = ttl_seconds
        self.persist = persist
        self.on_success = on_success
        self.on_error = on_error

        self.data: Optional[T] = None
        self.loading = False
        self.error: Optional[Exception] = None
        self.is_from_cache = False

        self._mounted = True
        self._ticket = 0

    @property
    def mounted(self) -> bool:
        """False once close() has been called."""
        return self._mounted

    async def load(self) -> Optional[T]:
        """Serve from cache when possible, otherwise fetch."""
        return await self._run(force=False)

    async def refetch(self) -> Optional[T]:
        """Fetch from the backend, bypassing the cache read."""
        return await self._run(force=True)

    def invalidate(self) -> None:
        """Drop the cached entry without fetching."""
        self._context.invalidate(self.cache_key)

    async def set_key(self, cache_key: str) -> Optional[T]:
        """Point the handle at another key and load it."""
        if not cache_key:
            raise ValueError("cache_key must be a non-empty string")
        self.cache_key = cache_key
        return await self.load()

    def close(self) -> None:
        """Unmount: results arriving after this are discarded."""
        self._mounted = False

    async def __aenter__(self) -> "CachedData[T]":
        await self.load()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()

    async def _run(self, force: bool) -> Optional[T]:
        if not self.enabled or not self._mounted:
            return self.data

        self._ticket += 1
        ticket = self._ticket
        key = self.cache_key

        if not force:
            cached = self._context.manager.get(key)
            if cached is not None:
                self._context.record("cache_hit", key)
                self.data = cached
                self.is_from_cache = True
                self.loading = False
                self.error = None
                if self.on_success is not None:
                    self.on_success(cached)
                return cached
            self._context.record("cache_miss", key)

        self.loading = True
        self.is_from_cache = False
        self.error = None

        try:
            value = await self._context.fetch(
                key,
                self.fetcher,
                ttl_seconds=self.ttl_seconds,
                persist=self.persist,
                force=force,
            )
        except asyncio.CancelledError:
            if self._is_current(ticket):
                self.loading = False
            raise
        except Exception as e:
            self._context.record("fetch_error", key)
            logger.error(f"Fetch failed for {key}: {e}")
            if not self._is_current(ticket):
                return self.data
            self.loading = False
            self.error = e
            if self.on_error is not None:
                self.on_error(e)
            return self.data

        if not self._is_current(ticket):
            logger.debug(f"Discarding stale result for {key}")
            return self.data

        self.data = value
        self.loading = False
        if self.on_success is not None:
            self.on_success(value)
        return value

    def _is_current(self, ticket: int) -> bool:
        """Handle still mounted and no newer load has started."""
        return self._mounted and ticket == self._ticket


def use_cached_data(
    cache_key: str,
    fetcher: Fetcher[T],
    enabled: bool = True,
    ttl_seconds: Optional[float] = None,
    persist: bool = False,
    on_success: Optional[Callable[[T], Any]] = None,
    on_error: Optional[Callable[[Exception], Any]] = None,
    context: Optional[CacheContext] = None,
) -> CachedData[T]:
    """
    Create a cached-data handle for cache_key.

    Args:
        cache_key: Cache key, conventionally "<namespace>:<id>"
        fetcher: Zero-argument coroutine function producing fresh data
        enabled: When False, load()/refetch() do nothing
        ttl_seconds: TTL for fetched values (manager default if None)
        persist: Mirror fetched values into the session store
        on_success: Called with every delivered value (cached or fresh)
        on_error: Called with every fetch failure
        context: Cache context (defaults to the one installed by cache_scope)

    Returns:
        CachedData handle; await handle.load() to populate it

    Raises:
        CacheContextError: If no context is given and none is active
    """
    if context is None:
        context = get_cache_context()
    return CachedData(
        context,
        cache_key,
        fetcher,
        enabled=enabled,
        ttl_seconds=ttl_seconds,
        persist=persist,
        on_success=on_success,
        on_error=on_error,
    )

