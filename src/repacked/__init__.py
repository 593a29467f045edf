"""
Repacked - Client-Side Data Cache for a Peer-to-Peer Resale Marketplace.

Keeps marketplace data (posts, profiles, conversations, messages, avatars)
close to the UI so repeated reads do not hit the hosted backend and do not
flash loading indicators. The backend remains the system of record.

Architecture:
    - Hexagonal Architecture (Ports & Adapters)
    - Dependency Injection: one CacheManager built at startup and passed around
    - Configuration-driven namespace policies via YAML

Main Components:
    - caching: CacheManager, session stores, namespace facades
    - adapters: cached-fetch handles, specialized resources, avatars, realtime
    - interfaces: backend protocol consumed by fetchers
    - domain: row aliases and value objects
    - config: configuration models and loaders

Example:
    >>> from repacked.caching import CacheManager, InMemorySessionStore
    >>> from repacked.adapters import CacheContext, cache_scope, use_cached_data
    >>> context = CacheContext(CacheManager(store=InMemorySessionStore()))
    >>> with cache_scope(context):
    ...     handle = use_cached_data("posts:7", fetch_post)
    >>> await handle.load()

"""

import logging

__version__ = "0.4.0"


def configure_logging(
    level: int = logging.INFO,
    format: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
) -> None:
    """
    Configure logging for Repacked.

    Call this at application startup to see log messages.
    By default, only WARNING and above are visible.

    Args:
        level: Logging level (default: INFO)
        format: Log message format

    Example:
        >>> import repacked
        >>> repacked.configure_logging(logging.DEBUG)
    """
    logging.basicConfig(
        level=level,
        format=format,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("repacked").setLevel(level)
