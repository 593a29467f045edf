"""
Unit Tests for Namespace Facades.

Tests for:
    - Key shape and policy application per namespace
    - Built-in policies
    - Policy overrides
"""

from __future__ import annotations

import pytest

from repacked.caching.namespaces import (
    DEFAULT_NAMESPACE_POLICIES,
    MarketplaceCache,
    Namespace,
    NamespacedCache,
    NamespacePolicy,
    namespace_of,
)


class TestNamespaceOf:
    def test_namespace_of_key(self) -> None:
        assert namespace_of("posts:7") == "posts"
        assert namespace_of("postLists:lamp::::") == "postLists"
        assert namespace_of("plain") is None


class TestDefaultPolicies:
    """Built-in namespace policies."""

    @pytest.mark.parametrize(
        "namespace, ttl_seconds, persist",
        [
            (Namespace.MESSAGES, 600, True),
            (Namespace.POSTS, 900, True),
            (Namespace.POST_LISTS, 300, False),
            (Namespace.CONVERSATIONS, 600, True),
            (Namespace.PROFILES, 1800, True),
            (Namespace.AVATARS, 3600, False),
        ],
    )
    def test_policy(self, namespace, ttl_seconds, persist) -> None:
        policy = DEFAULT_NAMESPACE_POLICIES[namespace.value]
        assert policy.ttl_seconds == ttl_seconds
        assert policy.persist is persist


class TestNamespacedCache:
    """Facade behaviour."""

    def test_set_uses_namespace_key_and_policy(
        self, marketplace_cache, session_store, clock
    ) -> None:
        marketplace_cache.messages.set("c1", [{"id": "m1"}])

        assert marketplace_cache.get("messages:c1") == [{"id": "m1"}]
        assert session_store.get_item("cache_messages:c1") is not None

        clock.advance(601)
        assert marketplace_cache.messages.get("c1") is None

    def test_post_lists_are_not_persisted(self, marketplace_cache, session_store) -> None:
        marketplace_cache.post_lists.set("all", [{"id": "7"}])

        assert marketplace_cache.post_lists.has("all")
        assert session_store.get_item("cache_postLists:all") is None

    def test_invalidate_and_clear_all(self, marketplace_cache) -> None:
        marketplace_cache.profiles.set("1", {"id": "1"})
        marketplace_cache.profiles.set("2", {"id": "2"})
        marketplace_cache.posts.set("1", {"id": "1"})

        marketplace_cache.profiles.invalidate("1")
        assert marketplace_cache.profiles.get("1") is None

        assert marketplace_cache.profiles.clear_all() == 1
        assert marketplace_cache.posts.get("1") == {"id": "1"}

    def test_rejects_separator_in_name(self, cache_manager) -> None:
        with pytest.raises(ValueError):
            NamespacedCache(cache_manager, "a:b", NamespacePolicy())


class TestMarketplaceCache:
    def test_policy_override(self, cache_manager) -> None:
        cache = MarketplaceCache(
            cache_manager,
            {"posts": NamespacePolicy(ttl_seconds=5, persist=False)},
        )

        assert cache.posts.policy.ttl_seconds == 5
        assert cache.profiles.policy.ttl_seconds == 1800

    def test_unknown_namespace_uses_manager_default(self, marketplace_cache) -> None:
        drafts = marketplace_cache.namespace("drafts")
        assert drafts.policy.ttl_seconds == 300
        assert drafts.policy.persist is False

    def test_policy_for_key(self, marketplace_cache) -> None:
        assert marketplace_cache.policy_for_key("avatars:https://x").ttl_seconds == 3600
        assert marketplace_cache.policy_for_key("nonamespace") is None
