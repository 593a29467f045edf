"""
Marketplace Backend Protocol.

Defines the abstract interface the cached resources fetch through. The
production implementation talks to the hosted database; the cache layer
never knows which backend sits behind it.

The backend is responsible for:
    - Returning rows in the backend's own shape (dicts)
    - Raising on failure (the cache never stores failed fetches)

Design Notes:
    - All methods are coroutines: fetching is the only suspension point
    - Missing single rows are reported as None, not as errors
"""

from __future__ import annotations

from typing import List, Optional, Protocol, runtime_checkable

from repacked.domain.value_objects import PostListQuery, Row


@runtime_checkable
class MarketplaceBackend(Protocol):
    """Abstract interface for marketplace data access."""

    async def list_messages(self, conversation_id: str) -> List[Row]:
        """Messages of a conversation ordered by created_at ascending."""
        ...

    async def get_post(self, post_id: str) -> Optional[Row]:
        """A post with its author profile and tags."""
        ...

    async def list_posts(self, query: PostListQuery) -> List[Row]:
        """Posts matching the query in the requested order."""
        ...

    async def list_conversations(self, user_id: str) -> List[Row]:
        """Conversations the user takes part in, most recent first."""
        ...

    async def get_profile(self, user_id: str) -> Optional[Row]:
        """A user profile."""
        ...

    async def get_last_message(self, conversation_id: str) -> Optional[Row]:
        """Most recent message of a conversation."""
        ...

    async def count_unread(self, conversation_id: str, reader_id: str) -> int:
        """Messages not sent by the reader that have no read_at."""
        ...
