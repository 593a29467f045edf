"""
Domain Layer - Row Aliases and Value Objects.

Contains:
    - Row aliases for cached backend data
    - PostListQuery: listing search parameters
    - ChangeEvent: realtime row-change notification
"""

from repacked.domain.value_objects import (
    ChangeEvent,
    ChangeType,
    ConversationSummaries,
    MessageRows,
    PostListQuery,
    Row,
    SortOrder,
    created_at_key,
)

__all__ = [
    "ChangeEvent",
    "ChangeType",
    "ConversationSummaries",
    "MessageRows",
    "PostListQuery",
    "Row",
    "SortOrder",
    "created_at_key",
]
