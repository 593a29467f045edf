"""
In-Memory Marketplace Backend.

A fake backend for development and testing. Holds rows in plain tables,
answers the MarketplaceBackend queries, counts calls per method and can be
told to fail, so cache behaviour (hits, misses, errors) is observable.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from typing import Any, Dict, List, Optional

from repacked.domain.value_objects import PostListQuery, Row, SortOrder, created_at_key


class BackendError(Exception):
    """Raised by the mock backend when failure injection is active."""
    pass


class InMemoryMarketplaceBackend:
    """Fake marketplace backend for development and testing."""

    def __init__(self, latency_seconds: float = 0.0) -> None:
        """
        Initialize empty tables.

        Args:
            latency_seconds: Artificial delay added to every call
        """
        self.latency_seconds = latency_seconds
        self.posts: Dict[str, Row] = {}
        self.profiles: Dict[str, Row] = {}
        self.conversations: Dict[str, Row] = {}
        self.messages: List[Row] = []
        self.post_tags: Dict[str, List[Row]] = {}
        self.calls: Counter = Counter()
        self._failures: Dict[str, Exception] = {}

    # Seeding

    def add_profile(self, user_id: str, username: str, **fields: Any) -> Row:
        row = {"id": user_id, "username": username, "full_name": None, "avatar_url": None}
        row.update(fields)
        self.profiles[user_id] = row
        return row

    def add_post(self, post_id: str, user_id: str, title: str, **fields: Any) -> Row:
        row = {
            "id": post_id,
            "user_id": user_id,
            "title": title,
            "description": "",
            "price": None,
            "category": None,
            "condition": None,
            "created_at": "",
        }
        row.update(fields)
        self.posts[post_id] = row
        return row

    def add_tag(self, post_id: str, name: str, color: str = "#888888") -> None:
        self.post_tags.setdefault(post_id, []).append({"name": name, "color": color})

    def add_conversation(
        self,
        conversation_id: str,
        user_a: str,
        user_b: str,
        **fields: Any,
    ) -> Row:
        # Participants are stored ordered so each pair has one conversation
        user1_id, user2_id = sorted([user_a, user_b])
        row = {
            "id": conversation_id,
            "user1_id": user1_id,
            "user2_id": user2_id,
            "post_id": None,
            "updated_at": "",
        }
        row.update(fields)
        self.conversations[conversation_id] = row
        return row

    def add_message(
        self,
        message_id: str,
        conversation_id: str,
        sender_id: str,
        content: str,
        created_at: str,
        read_at: Optional[str] = None,
    ) -> Row:
        row = {
            "id": message_id,
            "conversation_id": conversation_id,
            "sender_id": sender_id,
            "content": content,
            "created_at": created_at,
            "read_at": read_at,
        }
        self.messages.append(row)
        conversation = self.conversations.get(conversation_id)
        if conversation is not None and created_at > (conversation.get("updated_at") or ""):
            conversation["updated_at"] = created_at
        return row

    # Failure injection

    def fail(self, method: str, error: Optional[Exception] = None) -> None:
        """Make every call to method raise error (BackendError by default)."""
        self._failures[method] = error or BackendError(f"{method} failed")

    def recover(self, method: Optional[str] = None) -> None:
        """Stop failing method (all methods if None)."""
        if method is None:
            self._failures.clear()
        else:
            self._failures.pop(method, None)

    # MarketplaceBackend

    async def list_messages(self, conversation_id: str) -> List[Row]:
        await self._enter("list_messages")
        rows = [dict(m) for m in self.messages if m["conversation_id"] == conversation_id]
        return sorted(rows, key=created_at_key)

    async def get_post(self, post_id: str) -> Optional[Row]:
        await self._enter("get_post")
        post = self.posts.get(post_id)
        if post is None:
            return None
        return self._expand_post(post)

    async def list_posts(self, query: PostListQuery) -> List[Row]:
        await self._enter("list_posts")
        rows = [self._expand_post(p) for p in self.posts.values() if self._matches(p, query)]
        rows = self._sort_posts(rows, query.sort)
        if query.limit is not None:
            rows = rows[: query.limit]
        return rows

    async def list_conversations(self, user_id: str) -> List[Row]:
        await self._enter("list_conversations")
        rows = [
            dict(c) for c in self.conversations.values()
            if user_id in (c["user1_id"], c["user2_id"])
        ]
        return sorted(rows, key=lambda c: c.get("updated_at") or "", reverse=True)

    async def get_profile(self, user_id: str) -> Optional[Row]:
        await self._enter("get_profile")
        profile = self.profiles.get(user_id)
        return dict(profile) if profile is not None else None

    async def get_last_message(self, conversation_id: str) -> Optional[Row]:
        await self._enter("get_last_message")
        rows = [m for m in self.messages if m["conversation_id"] == conversation_id]
        if not rows:
            return None
        last = max(rows, key=created_at_key)
        return {k: last[k] for k in ("content", "created_at", "sender_id")}

    async def count_unread(self, conversation_id: str, reader_id: str) -> int:
        await self._enter("count_unread")
        return sum(
            1 for m in self.messages
            if m["conversation_id"] == conversation_id
            and m["sender_id"] != reader_id
            and m["read_at"] is None
        )

    # Internals

    async def _enter(self, method: str) -> None:
        self.calls[method] += 1
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)
        else:
            await asyncio.sleep(0)
        failure = self._failures.get(method)
        if failure is not None:
            raise failure

    def _expand_post(self, post: Row) -> Row:
        author = self.profiles.get(post["user_id"], {})
        return {
            **post,
            "profiles": {
                "id": author.get("id"),
                "username": author.get("username"),
                "full_name": author.get("full_name"),
            },
            "tags": list(self.post_tags.get(post["id"], [])),
        }

    @staticmethod
    def _matches(post: Row, query: PostListQuery) -> bool:
        if query.search.strip():
            needle = query.search.strip().lower()
            haystack = f"{post.get('title', '')} {post.get('description', '')}".lower()
            if needle not in haystack:
                return False
        if query.category and post.get("category") != query.category:
            return False
        if query.condition and post.get("condition") != query.condition:
            return False
        return True

    @staticmethod
    def _sort_posts(rows: List[Row], sort: SortOrder) -> List[Row]:
        if sort == SortOrder.OLDEST:
            return sorted(rows, key=lambda p: p.get("created_at") or "")
        if sort == SortOrder.TITLE:
            return sorted(rows, key=lambda p: (p.get("title") or "").lower())
        if sort in (SortOrder.PRICE_LOW, SortOrder.PRICE_HIGH):
            priced = [p for p in rows if p.get("price") is not None]
            unpriced = [p for p in rows if p.get("price") is None]
            priced.sort(key=lambda p: p["price"], reverse=sort == SortOrder.PRICE_HIGH)
            # Listings without a price go last either way
            return priced + unpriced
        return sorted(rows, key=lambda p: p.get("created_at") or "", reverse=True)
