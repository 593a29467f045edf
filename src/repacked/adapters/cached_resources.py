"""
Cached Resources - Cached-Data Handles for Marketplace Entities.

Wraps use_cached_data() with a fixed key shape and the namespace's TTL and
persistence policy for each entity the UI reads repeatedly:

    messages:<conversation_id>    message list of a conversation
    posts:<post_id>               a single listing
    postLists:<query key>         a page of listings for a search/filter
    conversations:<user_id>       a user's conversation summaries
    profiles:<user_id>            a single profile

Fetchers go through the MarketplaceBackend protocol.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from repacked.adapters.cached_data import CacheContext, CachedData, get_cache_context
from repacked.caching.namespaces import Namespace
from repacked.domain.value_objects import (
    ConversationSummaries,
    MessageRows,
    PostListQuery,
    Row,
    created_at_key,
)
from repacked.interfaces.marketplace_backend import MarketplaceBackend

logger = logging.getLogger(__name__)


class ResourceNotFound(LookupError):
    """Raised by a fetcher when the backend has no row for an id."""

    def __init__(self, resource: str, identifier: str) -> None:
        super().__init__(f"{resource} not found: {identifier}")
        self.resource = resource
        self.identifier = identifier


def _handle(
    namespace: Namespace,
    identifier: str,
    fetcher: Any,
    enabled: bool,
    context: Optional[CacheContext],
) -> CachedData[Any]:
    context = context or get_cache_context()
    policy = context.policy(namespace.value)
    return CachedData(
        context,
        f"{namespace.value}:{identifier}",
        fetcher,
        enabled=enabled,
        ttl_seconds=policy.ttl_seconds,
        persist=policy.persist,
    )


def use_cached_messages(
    backend: MarketplaceBackend,
    conversation_id: str,
    enabled: bool = True,
    context: Optional[CacheContext] = None,
) -> CachedData[MessageRows]:
    """Messages of a conversation, oldest first."""

    async def fetch_messages() -> MessageRows:
        rows = await backend.list_messages(conversation_id)
        return sorted(rows or [], key=created_at_key)

    return _handle(Namespace.MESSAGES, conversation_id, fetch_messages, enabled, context)


def use_cached_post(
    backend: MarketplaceBackend,
    post_id: str,
    enabled: bool = True,
    context: Optional[CacheContext] = None,
) -> CachedData[Row]:
    """A single listing with its author profile and tags."""

    async def fetch_post() -> Row:
        row = await backend.get_post(post_id)
        if row is None:
            raise ResourceNotFound("post", post_id)
        return row

    return _handle(Namespace.POSTS, post_id, fetch_post, enabled, context)


def use_cached_post_list(
    backend: MarketplaceBackend,
    query: PostListQuery,
    enabled: bool = True,
    context: Optional[CacheContext] = None,
) -> CachedData[List[Row]]:
    """A page of listings for a search/filter combination."""

    async def fetch_posts() -> List[Row]:
        return list(await backend.list_posts(query) or [])

    return _handle(Namespace.POST_LISTS, query.cache_key(), fetch_posts, enabled, context)


def use_cached_profile(
    backend: MarketplaceBackend,
    user_id: str,
    enabled: bool = True,
    context: Optional[CacheContext] = None,
) -> CachedData[Row]:
    """A single user profile."""

    async def fetch_profile() -> Row:
        row = await backend.get_profile(user_id)
        if row is None:
            raise ResourceNotFound("profile", user_id)
        return row

    return _handle(Namespace.PROFILES, user_id, fetch_profile, enabled, context)


def use_cached_conversations(
    backend: MarketplaceBackend,
    user_id: str,
    enabled: bool = True,
    context: Optional[CacheContext] = None,
) -> CachedData[ConversationSummaries]:
    """
    Conversation summaries of a user, most recently updated first.

    Each summary is the conversation row plus `other_user`, `last_message`
    and `unread_count`, gathered concurrently per conversation.
    """

    async def fetch_conversations() -> ConversationSummaries:
        conversations = await backend.list_conversations(user_id) or []
        summaries = await asyncio.gather(
            *(summarize_conversation(backend, conv, user_id) for conv in conversations)
        )
        logger.debug(f"Built {len(summaries)} conversation summaries for {user_id}")
        return sorted(
            summaries,
            key=lambda conv: conv.get("updated_at") or "",
            reverse=True,
        )

    return _handle(Namespace.CONVERSATIONS, user_id, fetch_conversations, enabled, context)


async def summarize_conversation(
    backend: MarketplaceBackend,
    conversation: Row,
    user_id: str,
) -> Row:
    """
    Build the summary shown in a user's conversation list.

    Args:
        backend: Marketplace backend
        conversation: Conversation row (user1_id, user2_id, ...)
        user_id: The user the list belongs to

    Returns:
        Conversation row extended with other_user, last_message, unread_count
    """
    if conversation.get("user1_id") == user_id:
        other_user_id = conversation.get("user2_id")
    else:
        other_user_id = conversation.get("user1_id")

    profile, last_message, unread_count = await asyncio.gather(
        backend.get_profile(other_user_id),
        backend.get_last_message(conversation["id"]),
        backend.count_unread(conversation["id"], user_id),
    )
    profile = profile or {}

    other_user: Dict[str, Any] = {
        "id": other_user_id,
        "username": profile.get("username") or "Unknown",
        "full_name": profile.get("full_name"),
        "avatar_url": profile.get("avatar_url"),
    }
    return {
        **conversation,
        "last_message": last_message,
        "other_user": other_user,
        "unread_count": unread_count or 0,
    }
