"""
Unit Tests for AvatarLoader and ObjectUrlRegistry.

Test Aspects Covered:
    ✅ Business Logic: Download once, serve from cache afterwards
    ✅ Lifecycle: Object URLs revoked on source change and close
    ✅ Error Handling: HTTP errors, transport failures, malformed URLs
"""

from __future__ import annotations

import httpx
import pytest

from repacked.adapters.avatar import AvatarFetchError, AvatarLoader, ObjectUrlRegistry

PNG = b"\x89PNG\r\n\x1a\nfake"


class FakeCdn:
    """Request handler for httpx.MockTransport."""

    def __init__(self) -> None:
        self.requests = []
        self.images = {
            "https://cdn.test/a.png": PNG,
            "https://cdn.test/b.png": b"other",
        }

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(str(request.url))
        if request.url.host == "down.test":
            raise httpx.ConnectError("connection refused", request=request)
        body = self.images.get(str(request.url))
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, content=body)


@pytest.fixture
def cdn() -> FakeCdn:
    return FakeCdn()


@pytest.fixture
def http_client(cdn):
    return httpx.AsyncClient(transport=httpx.MockTransport(cdn))


@pytest.fixture
def registry() -> ObjectUrlRegistry:
    return ObjectUrlRegistry()


class TestObjectUrlRegistry:
    def test_create_resolve_revoke(self, registry) -> None:
        url = registry.create(b"data")

        assert ObjectUrlRegistry.is_object_url(url)
        assert registry.resolve(url) == b"data"
        assert registry.revoke(url) is True
        assert registry.revoke(url) is False
        assert registry.resolve(url) is None
        assert registry.active_count == 0

    def test_remote_urls_are_not_object_urls(self) -> None:
        assert not ObjectUrlRegistry.is_object_url("https://cdn.test/a.png")
        assert not ObjectUrlRegistry.is_object_url(None)


class TestAvatarLoader:
    """Test cases for AvatarLoader."""

    @pytest.mark.asyncio
    async def test_downloads_and_caches(
        self, marketplace_cache, registry, http_client, cdn
    ) -> None:
        """
        SCENARIO: Same avatar shown by two loaders
        EXPECTED: One download, both get a distinct object URL to the same bytes
        """
        first = AvatarLoader(marketplace_cache, registry, http_client=http_client)
        second = AvatarLoader(marketplace_cache, registry, http_client=http_client)

        url_a = await first.load("https://cdn.test/a.png")
        url_b = await second.load("https://cdn.test/a.png")

        assert url_a != url_b
        assert registry.resolve(url_a) == PNG
        assert registry.resolve(url_b) == PNG
        assert cdn.requests == ["https://cdn.test/a.png"]
        assert marketplace_cache.avatars.get("https://cdn.test/a.png") == PNG
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_avatars_never_reach_session_store(
        self, marketplace_cache, registry, http_client, session_store
    ) -> None:
        await AvatarLoader(marketplace_cache, registry, http_client=http_client).load(
            "https://cdn.test/a.png"
        )

        assert session_store.keys() == []
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_source_change_revokes_previous_url(
        self, marketplace_cache, registry, http_client
    ) -> None:
        loader = AvatarLoader(marketplace_cache, registry, http_client=http_client)
        old_url = await loader.load("https://cdn.test/a.png")

        new_url = await loader.load("https://cdn.test/b.png")

        assert registry.resolve(old_url) is None
        assert registry.resolve(new_url) == b"other"
        assert registry.active_count == 1
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_same_source_keeps_url(
        self, marketplace_cache, registry, http_client
    ) -> None:
        loader = AvatarLoader(marketplace_cache, registry, http_client=http_client)
        url = await loader.load("https://cdn.test/a.png")

        assert await loader.load("https://cdn.test/a.png") == url
        assert registry.active_count == 1
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_close_revokes(self, marketplace_cache, registry, http_client) -> None:
        async with AvatarLoader(
            marketplace_cache, registry, http_client=http_client
        ) as loader:
            url = await loader.load("https://cdn.test/a.png")
            assert registry.resolve(url) == PNG

        assert loader.closed
        assert loader.image_url is None
        assert registry.active_count == 0
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_none_clears_avatar(self, marketplace_cache, registry, http_client) -> None:
        loader = AvatarLoader(marketplace_cache, registry, http_client=http_client)
        await loader.load("https://cdn.test/a.png")

        assert await loader.load(None) is None
        assert loader.source_url is None
        assert registry.active_count == 0
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_disabled_loader_does_nothing(
        self, marketplace_cache, registry, http_client, cdn
    ) -> None:
        loader = AvatarLoader(
            marketplace_cache, registry, http_client=http_client, enabled=False
        )

        assert await loader.load("https://cdn.test/a.png") is None
        assert cdn.requests == []
        await http_client.aclose()


class TestAvatarLoaderErrors:
    @pytest.mark.asyncio
    async def test_http_error_status(self, marketplace_cache, registry, http_client) -> None:
        loader = AvatarLoader(marketplace_cache, registry, http_client=http_client)

        result = await loader.load("https://cdn.test/missing.png")

        assert result is None
        assert isinstance(loader.error, AvatarFetchError)
        assert loader.error.status_code == 404
        assert loader.loading is False
        assert not marketplace_cache.avatars.has("https://cdn.test/missing.png")
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_transport_error(self, marketplace_cache, registry, http_client) -> None:
        loader = AvatarLoader(marketplace_cache, registry, http_client=http_client)

        assert await loader.load("https://down.test/a.png") is None
        assert isinstance(loader.error, httpx.ConnectError)
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_retry_after_error_succeeds(
        self, marketplace_cache, registry, http_client, cdn
    ) -> None:
        loader = AvatarLoader(marketplace_cache, registry, http_client=http_client)
        await loader.load("https://cdn.test/late.png")

        cdn.images["https://cdn.test/late.png"] = b"late"
        url = await loader.load("https://cdn.test/late.png")

        assert registry.resolve(url) == b"late"
        assert loader.error is None
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_malformed_url(self, marketplace_cache, registry, http_client, cdn) -> None:
        """
        SCENARIO: Avatar URL that cannot be parsed
        EXPECTED: Reported as the loader's error, loading finishes
        """
        loader = AvatarLoader(marketplace_cache, registry, http_client=http_client)

        result = await loader.load("http://[::1")

        assert result is None
        assert isinstance(loader.error, httpx.InvalidURL)
        assert loader.loading is False
        assert cdn.requests == []
        await http_client.aclose()
