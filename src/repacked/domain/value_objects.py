"""
Value Objects for Domain Layer.

Marketplace data is cached in the shape the backend returns it: plain rows.
The value objects here describe the inputs that select rows (list queries)
and the change notifications that invalidate them.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# =============================================================================
# Type Aliases for improved readability
# =============================================================================

# A single backend row (post, profile, message, conversation)
Row = Dict[str, Any]

# Messages of one conversation, oldest first
MessageRows = List[Row]

# Conversation summaries of one user, most recently updated first
ConversationSummaries = List[Row]


def created_at_key(row: Row) -> str:
    """Sort key ordering rows by created_at, tolerating missing or non-str values."""
    value = row.get("created_at")
    if value is None:
        return ""
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


class SortOrder(Enum):
    """Orderings offered by the listing browser."""
    NEWEST = "newest"
    OLDEST = "oldest"
    PRICE_LOW = "price_low"
    PRICE_HIGH = "price_high"
    TITLE = "title"


class PostListQuery(BaseModel):
    """Search and filter parameters for a page of listings."""

    search: str = ""
    category: Optional[str] = None
    condition: Optional[str] = None
    sort: SortOrder = SortOrder.NEWEST
    limit: Optional[int] = Field(default=None, ge=1)

    model_config = {"frozen": True}

    def cache_key(self) -> str:
        """Identifier of this query inside the postLists namespace."""
        return ":".join(
            [
                self.search.strip().lower(),
                self.category or "",
                self.condition or "",
                self.sort.value,
                str(self.limit or ""),
            ]
        )


class ChangeType(Enum):
    """Kinds of row change pushed by the realtime feed."""
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class ChangeEvent(BaseModel):
    """A row-change notification from the backend."""

    table: str
    event_type: ChangeType
    new: Row = Field(default_factory=dict)
    old: Row = Field(default_factory=dict)

    model_config = {"frozen": True}

    @property
    def record(self) -> Row:
        """The row the event is about (old row for deletes)."""
        if self.event_type == ChangeType.DELETE:
            return self.old
        return self.new or self.old
