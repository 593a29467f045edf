"""
Unit Tests for Session Stores.

Test Aspects Covered:
    ✅ Business Logic: get/set/remove/keys for memory and file stores
    ✅ Error Handling: Quota exceeded, unreadable files, non-string values
"""

from __future__ import annotations

from pathlib import Path

import pytest

from repacked.caching.cache_manager import CacheManager
from repacked.caching.session_store import (
    FileSessionStore,
    InMemorySessionStore,
    SessionStore,
    StorageQuotaExceeded,
    StorageUnavailable,
)


class TestInMemorySessionStore:
    """Test cases for InMemorySessionStore."""

    def test_round_trip_and_remove(self) -> None:
        store = InMemorySessionStore()

        store.set_item("cache_posts:1", "{}")
        assert store.get_item("cache_posts:1") == "{}"
        assert store.keys() == ["cache_posts:1"]

        store.remove_item("cache_posts:1")
        store.remove_item("cache_posts:1")
        assert store.get_item("cache_posts:1") is None
        assert len(store) == 0

    def test_quota_exceeded(self) -> None:
        """
        SCENARIO: Write larger than the remaining quota
        EXPECTED: StorageQuotaExceeded, existing items untouched
        """
        store = InMemorySessionStore(quota_bytes=20)
        store.set_item("a", "12345")

        with pytest.raises(StorageQuotaExceeded):
            store.set_item("b", "x" * 30)

        assert store.get_item("a") == "12345"
        assert store.get_item("b") is None

    def test_overwrite_counts_against_quota_once(self) -> None:
        store = InMemorySessionStore(quota_bytes=10)
        store.set_item("k", "12345678")
        store.set_item("k", "87654321")
        assert store.get_item("k") == "87654321"

    def test_rejects_non_string_values(self) -> None:
        with pytest.raises(TypeError):
            InMemorySessionStore().set_item("k", 1)  # type: ignore[arg-type]

    def test_satisfies_protocol(self) -> None:
        assert isinstance(InMemorySessionStore(), SessionStore)


class TestFileSessionStore:
    """Test cases for FileSessionStore."""

    def test_items_visible_to_new_instance(self, tmp_path: Path) -> None:
        path = tmp_path / "session.json"
        FileSessionStore(path).set_item("cache_posts:1", '{"value": 1}')

        reopened = FileSessionStore(path)

        assert reopened.get_item("cache_posts:1") == '{"value": 1}'
        assert reopened.keys() == ["cache_posts:1"]

    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        store = FileSessionStore(tmp_path / "nested" / "session.json")
        assert store.keys() == []
        store.set_item("k", "v")
        assert store.path.exists()

    def test_remove_item(self, tmp_path: Path) -> None:
        store = FileSessionStore(tmp_path / "session.json")
        store.set_item("a", "1")
        store.set_item("b", "2")

        store.remove_item("a")
        store.remove_item("missing")

        assert store.keys() == ["b"]

    def test_corrupt_file_raises_unavailable(self, tmp_path: Path) -> None:
        path = tmp_path / "session.json"
        path.write_text("not json at all", encoding="utf-8")

        with pytest.raises(StorageUnavailable):
            FileSessionStore(path).keys()

    def test_cache_survives_process_restart(self, tmp_path: Path, clock) -> None:
        """A persisted entry written through one manager is rehydrated by the next."""
        path = tmp_path / "session.json"
        CacheManager(store=FileSessionStore(path), clock=clock).set(
            "messages:A", [{"id": "m1"}, {"id": "m2"}], ttl_seconds=600, persist=True
        )

        restarted = CacheManager(store=FileSessionStore(path), clock=clock)

        assert restarted.get("messages:A") == [{"id": "m1"}, {"id": "m2"}]

    def test_corrupt_file_degrades_cache_to_memory(self, tmp_path: Path, clock) -> None:
        path = tmp_path / "session.json"
        path.write_text("[1, 2, 3]", encoding="utf-8")

        cache = CacheManager(store=FileSessionStore(path), clock=clock)
        cache.set("posts:1", "a", persist=True)

        assert cache.get("posts:1") == "a"
