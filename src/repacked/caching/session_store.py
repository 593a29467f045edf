"""
Session Stores - Durable Per-Session Key/Value Storage.

The cache mirrors selected entries into a string-only key/value store that
outlives a single CacheManager instance (a page reload in the browser, a
process restart here). Stores are fallible: they may be full, disabled or
corrupt, and the CacheManager treats every call as one that can raise.

Design Notes:
    - Strings in, strings out (callers serialize)
    - Failures raised as SessionStoreError subclasses
    - File store keeps one JSON document per session
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Union, runtime_checkable

logger = logging.getLogger(__name__)


class SessionStoreError(Exception):
    """Base class for durable store failures."""
    pass


class StorageQuotaExceeded(SessionStoreError):
    """Raised when a write would exceed the store's capacity."""
    pass


class StorageUnavailable(SessionStoreError):
    """Raised when the store cannot be read or written at all."""
    pass


@runtime_checkable
class SessionStore(Protocol):
    """Protocol for durable per-session storage."""

    def get_item(self, key: str) -> Optional[str]:
        """Return stored string or None."""
        ...

    def set_item(self, key: str, value: str) -> None:
        """Store a string under key."""
        ...

    def remove_item(self, key: str) -> None:
        """Remove key (no error if absent)."""
        ...

    def keys(self) -> List[str]:
        """Enumerate stored keys."""
        ...


class InMemorySessionStore:
    """
    Dict-backed session store.

    Optionally enforces a quota on the total number of characters stored
    (keys plus values), which makes quota failures reproducible in tests.
    """

    def __init__(self, quota_bytes: Optional[int] = None) -> None:
        """
        Initialize store.

        Args:
            quota_bytes: Maximum characters stored, None for unlimited
        """
        self._items: Dict[str, str] = {}
        self._quota_bytes = quota_bytes
        self._lock = threading.Lock()

    @property
    def quota_bytes(self) -> Optional[int]:
        return self._quota_bytes

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"Session store values must be str, got {type(value).__name__}")

        with self._lock:
            if self._quota_bytes is not None:
                current = self._used_bytes(exclude=key)
                if current + len(key) + len(value) > self._quota_bytes:
                    raise StorageQuotaExceeded(
                        f"Writing '{key}' would exceed quota of {self._quota_bytes} bytes"
                    )
            self._items[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def _used_bytes(self, exclude: Optional[str] = None) -> int:
        """Characters used by all items except `exclude` (must hold lock)."""
        return sum(
            len(k) + len(v) for k, v in self._items.items() if k != exclude
        )


class FileSessionStore:
    """
    Session store persisted as a single JSON object on disk.

    Every mutation rewrites the file, so a new instance pointed at the same
    path sees everything written by the previous one.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        """
        Initialize store.

        Args:
            path: JSON file holding the session's items
        """
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        """Location of the backing file."""
        return self._path

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"Session store values must be str, got {type(value).__name__}")

        with self._lock:
            items = self._read()
            items[key] = value
            self._write(items)

    def remove_item(self, key: str) -> None:
        with self._lock:
            items = self._read()
            if key in items:
                del items[key]
                self._write(items)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._read())

    def _read(self) -> Dict[str, str]:
        """Load all items (must hold lock)."""
        if not self._path.exists():
            return {}
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StorageUnavailable(f"Cannot read session store {self._path}: {e}") from e

        if not isinstance(data, dict):
            raise StorageUnavailable(f"Session store {self._path} is not a JSON object")
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write(self, items: Dict[str, str]) -> None:
        """Persist all items (must hold lock)."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(items, f)
            tmp_path.replace(self._path)
        except OSError as e:
            raise StorageUnavailable(f"Cannot write session store {self._path}: {e}") from e
