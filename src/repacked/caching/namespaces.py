"""
Cache Namespaces - Per-Entity Policies and Facades.

Each marketplace entity lives under its own key prefix with its own TTL and
persistence policy. The facades here fix the key shape and the policy so
callers only deal with entity identifiers:

    cache.messages.set(conversation_id, rows)
    cache.profiles.invalidate(user_id)
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field

from repacked.caching.cache_manager import CacheManager, CacheManagerProtocol, CacheStats

logger = logging.getLogger(__name__)


class Namespace(Enum):
    """Built-in cache namespaces."""
    MESSAGES = "messages"
    POSTS = "posts"
    POST_LISTS = "postLists"
    CONVERSATIONS = "conversations"
    PROFILES = "profiles"
    AVATARS = "avatars"


class NamespacePolicy(BaseModel):
    """TTL and persistence applied to every write in a namespace."""

    ttl_seconds: float = Field(default=300.0, gt=0)
    persist: bool = False

    model_config = {"frozen": True}


DEFAULT_NAMESPACE_POLICIES: Dict[str, NamespacePolicy] = {
    Namespace.MESSAGES.value: NamespacePolicy(ttl_seconds=10 * 60, persist=True),
    Namespace.POSTS.value: NamespacePolicy(ttl_seconds=15 * 60, persist=True),
    # Lists change too often to be worth keeping across reloads
    Namespace.POST_LISTS.value: NamespacePolicy(ttl_seconds=5 * 60, persist=False),
    Namespace.CONVERSATIONS.value: NamespacePolicy(ttl_seconds=10 * 60, persist=True),
    Namespace.PROFILES.value: NamespacePolicy(ttl_seconds=30 * 60, persist=True),
    # Binary blobs are never written to the string store
    Namespace.AVATARS.value: NamespacePolicy(ttl_seconds=60 * 60, persist=False),
}


def namespace_of(key: str) -> Optional[str]:
    """Return the namespace part of a key, or None for un-namespaced keys."""
    namespace, sep, _ = key.partition(":")
    return namespace if sep else None


class NamespacedCache:
    """Cache operations bound to one namespace and its policy."""

    def __init__(
        self,
        manager: CacheManagerProtocol,
        namespace: str,
        policy: NamespacePolicy,
    ) -> None:
        if not namespace or ":" in namespace:
            raise ValueError(f"Invalid namespace name: {namespace!r}")
        self._manager = manager
        self.namespace = namespace
        self.policy = policy

    def key(self, identifier: Any) -> str:
        """Full cache key for an identifier."""
        return CacheManager.make_key(self.namespace, identifier)

    def set(self, identifier: Any, value: Any) -> None:
        self._manager.set(
            self.key(identifier),
            value,
            ttl_seconds=self.policy.ttl_seconds,
            persist=self.policy.persist,
        )

    def get(self, identifier: Any) -> Optional[Any]:
        return self._manager.get(self.key(identifier))

    def has(self, identifier: Any) -> bool:
        return self._manager.has(self.key(identifier))

    def invalidate(self, identifier: Any) -> None:
        self._manager.delete(self.key(identifier))

    def clear_all(self) -> int:
        return self._manager.clear_namespace(self.namespace)


class MarketplaceCache:
    """
    One CacheManager plus a facade per marketplace namespace.

    Usage:
        cache = MarketplaceCache(CacheManager(store=store))
        cache.posts.set(post_id, row)
        cache.post_lists.clear_all()
    """

    def __init__(
        self,
        manager: CacheManager,
        policies: Optional[Mapping[str, NamespacePolicy]] = None,
    ) -> None:
        """
        Initialize facades.

        Args:
            manager: Underlying cache manager
            policies: Per-namespace policies overriding the defaults
        """
        self.manager = manager
        self.policies: Dict[str, NamespacePolicy] = dict(DEFAULT_NAMESPACE_POLICIES)
        if policies:
            self.policies.update(policies)

        self.messages = self.namespace(Namespace.MESSAGES.value)
        self.posts = self.namespace(Namespace.POSTS.value)
        self.post_lists = self.namespace(Namespace.POST_LISTS.value)
        self.conversations = self.namespace(Namespace.CONVERSATIONS.value)
        self.profiles = self.namespace(Namespace.PROFILES.value)
        self.avatars = self.namespace(Namespace.AVATARS.value)

    def namespace(self, name: str) -> NamespacedCache:
        """Facade for any namespace; unknown ones get the manager's default TTL."""
        policy = self.policies.get(name)
        if policy is None:
            policy = NamespacePolicy(
                ttl_seconds=self.manager.config.default_ttl_seconds,
                persist=False,
            )
        return NamespacedCache(self.manager, name, policy)

    def policy_for_key(self, key: str) -> Optional[NamespacePolicy]:
        """Policy of the namespace a key belongs to, if any."""
        namespace = namespace_of(key)
        if namespace is None:
            return None
        return self.policies.get(namespace)

    # Generic passthroughs

    def get(self, key: str) -> Optional[Any]:
        return self.manager.get(key)

    def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: Optional[float] = None,
        persist: bool = False,
    ) -> None:
        self.manager.set(key, value, ttl_seconds=ttl_seconds, persist=persist)

    def has(self, key: str) -> bool:
        return self.manager.has(key)

    def delete(self, key: str) -> None:
        self.manager.delete(key)

    def clear(self) -> None:
        self.manager.clear()

    def clear_namespace(self, namespace: str) -> int:
        return self.manager.clear_namespace(namespace)

    def get_stats(self) -> CacheStats:
        return self.manager.get_stats()

    def keys(self, namespace: Optional[str] = None) -> List[str]:
        return self.manager.keys(namespace)
