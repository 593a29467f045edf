"""
Realtime Invalidation - Keep Cached Rows in Step with Backend Changes.

The backend pushes row-change notifications (INSERT/UPDATE/DELETE per
table). The cache does not subscribe itself; whoever owns the subscription
forwards events to RealtimeInvalidator.handle(), which either patches the
cached value in place (new chat messages, read receipts) or drops the keys
the change makes stale so the next read refetches.

Every change goes through the CacheContext, so a fetch that was already
running when the event arrived cannot write its older result back.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from repacked.adapters.cached_data import CacheContext
from repacked.caching.namespaces import Namespace
from repacked.domain.value_objects import (
    ChangeEvent,
    ChangeType,
    MessageRows,
    Row,
    created_at_key,
)

logger = logging.getLogger(__name__)


class RealtimeInvalidator:
    """
    Applies backend change events to the marketplace cache.

    Usage:
        invalidator = RealtimeInvalidator(context)
        subscription.on_change(invalidator.handle)
    """

    def __init__(self, context: CacheContext) -> None:
        """
        Initialize invalidator.

        Args:
            context: Cache context whose cache and in-flight fetches are
                patched and invalidated
        """
        self._context = context
        self._cache = context.cache
        self._handlers: Dict[str, Callable[[ChangeEvent], None]] = {
            "messages": self._on_message,
            "posts": self._on_post,
            "profiles": self._on_profile,
            "conversations": self._on_conversation,
        }

    def handle(self, event: Union[ChangeEvent, Mapping[str, Any]]) -> None:
        """
        Apply one change event.

        Args:
            event: ChangeEvent or its raw payload
                ({"table", "event_type", "new", "old"})
        """
        if not isinstance(event, ChangeEvent):
            event = ChangeEvent.model_validate(event)

        handler = self._handlers.get(event.table)
        if handler is None:
            logger.debug(f"Ignoring change on untracked table '{event.table}'")
            return
        handler(event)

    def _on_message(self, event: ChangeEvent) -> None:
        row = event.record
        conversation_id = row.get("conversation_id")
        if conversation_id is None:
            logger.warning(f"Message change without conversation_id: {row.get('id')}")
            return

        # A running fetch of this thread may predate the change
        self._context.detach(self._cache.messages.key(conversation_id))

        cached: Optional[MessageRows] = self._cache.messages.get(conversation_id)
        if cached is not None:
            if event.event_type == ChangeType.INSERT:
                updated = _insert_message(cached, row)
            elif event.event_type == ChangeType.UPDATE:
                updated = _replace_message(cached, row)
            else:
                updated = [m for m in cached if m.get("id") != row.get("id")]
            if updated is not cached:
                self._cache.messages.set(conversation_id, updated)

        # Summaries embed the last message and the unread count
        self._context.invalidate_namespace(Namespace.CONVERSATIONS.value)

    def _on_post(self, event: ChangeEvent) -> None:
        post_id = event.record.get("id")
        if post_id is not None:
            self._context.invalidate(self._cache.posts.key(post_id))
        self._context.invalidate_namespace(Namespace.POST_LISTS.value)

    def _on_profile(self, event: ChangeEvent) -> None:
        if event.event_type == ChangeType.INSERT:
            return
        user_id = event.record.get("id")
        if user_id is not None:
            self._context.invalidate(self._cache.profiles.key(user_id))
            # Conversation summaries embed the other user's name and avatar
            self._context.invalidate_namespace(Namespace.CONVERSATIONS.value)

    def _on_conversation(self, event: ChangeEvent) -> None:
        row = event.record
        for column in ("user1_id", "user2_id"):
            user_id = row.get(column)
            if user_id is not None:
                self._context.invalidate(self._cache.conversations.key(user_id))


def _insert_message(messages: MessageRows, row: Row) -> MessageRows:
    """New list with row added in created_at order, unchanged if already present."""
    if any(m.get("id") == row.get("id") for m in messages):
        return messages
    return sorted([*messages, row], key=created_at_key)


def _replace_message(messages: MessageRows, row: Row) -> MessageRows:
    """New list with the row of the same id replaced."""
    if not any(m.get("id") == row.get("id") for m in messages):
        return _insert_message(messages, row)
    return [
        {**m, **row} if m.get("id") == row.get("id") else m
        for m in messages
    ]


def mark_messages_read(
    context: CacheContext,
    conversation_id: str,
    sender_id: str,
    read_at: str,
) -> int:
    """
    Stamp read_at on cached messages from sender_id without refetching.

    Args:
        context: Cache context holding the messages
        conversation_id: Conversation whose messages were read
        sender_id: The other party (whose messages are now read)
        read_at: ISO-8601 timestamp to record

    Returns:
        Number of cached messages updated
    """
    messages = context.cache.messages
    cached: Optional[MessageRows] = messages.get(conversation_id)
    if not cached:
        return 0

    updated: List[Row] = []
    changed = 0
    for message in cached:
        if message.get("sender_id") == sender_id and not message.get("read_at"):
            updated.append({**message, "read_at": read_at})
            changed += 1
        else:
            updated.append(message)

    if changed:
        context.detach(messages.key(conversation_id))
        messages.set(conversation_id, updated)
    return changed
