"""
Avatar Loader - Cached Avatar Images with Object-URL Lifecycle.

Avatar images are downloaded once, kept as raw bytes in the `avatars`
namespace (memory only, never in the string-based session store) and handed
to the UI as short-lived local object URLs ("blob:..."). Every object URL a
loader creates is revoked when its source changes or the loader closes, so
the registry never accumulates blobs nobody displays.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

import httpx

from repacked.caching.namespaces import MarketplaceCache
from repacked.config.models import AvatarSettings

logger = logging.getLogger(__name__)


class AvatarFetchError(Exception):
    """Raised when an avatar download returns a non-success status."""

    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(f"Failed to fetch avatar {url}: HTTP {status_code}")
        self.url = url
        self.status_code = status_code


class ObjectUrlRegistry:
    """
    Local object URLs pointing at in-memory blobs.

    Mirrors the browser's createObjectURL/revokeObjectURL pair: a URL stays
    resolvable until it is revoked.
    """

    PREFIX = "blob:repacked/"

    def __init__(self) -> None:
        self._blobs: Dict[str, bytes] = {}

    def create(self, blob: bytes) -> str:
        """Register blob and return a new object URL for it."""
        url = f"{self.PREFIX}{uuid.uuid4()}"
        self._blobs[url] = blob
        return url

    def resolve(self, url: str) -> Optional[bytes]:
        """Blob behind an object URL, None once revoked."""
        return self._blobs.get(url)

    def revoke(self, url: str) -> bool:
        """Release an object URL. Returns False if it was not active."""
        return self._blobs.pop(url, None) is not None

    @classmethod
    def is_object_url(cls, url: Optional[str]) -> bool:
        return bool(url) and url.startswith(cls.PREFIX)

    @property
    def active_count(self) -> int:
        """Number of object URLs not yet revoked."""
        return len(self._blobs)


class AvatarLoader:
    """
    Loads one avatar at a time for a single UI owner.

    Usage:
        loader = AvatarLoader(cache, registry, http_client=client)
        image_url = await loader.load(profile["avatar_url"])
        ...
        loader.close()  # revokes image_url
    """

    def __init__(
        self,
        cache: MarketplaceCache,
        registry: ObjectUrlRegistry,
        http_client: Optional[httpx.AsyncClient] = None,
        settings: Optional[AvatarSettings] = None,
        enabled: bool = True,
    ) -> None:
        """
        Initialize loader.

        Args:
            cache: Marketplace cache holding downloaded avatar bytes
            registry: Object URL registry shared with the renderer
            http_client: Client used for downloads (a short-lived one per
                download is created when None)
            settings: Download settings
            enabled: When False, load() behaves as if no avatar was given
        """
        self._cache = cache
        self._registry = registry
        self._client = http_client
        self._settings = settings or AvatarSettings()
        self.enabled = enabled

        self.source_url: Optional[str] = None
        self.image_url: Optional[str] = None
        self.loading = False
        self.error: Optional[Exception] = None

        self._closed = False
        self._ticket = 0

    @property
    def settings(self) -> AvatarSettings:
        return self._settings

    @property
    def closed(self) -> bool:
        return self._closed

    async def load(self, avatar_url: Optional[str]) -> Optional[str]:
        """
        Show avatar_url, returning the object URL to render (or None).

        Args:
            avatar_url: Remote avatar URL; None clears the avatar
        """
        if self._closed:
            return self.image_url

        self._ticket += 1
        ticket = self._ticket

        if not avatar_url or not self.enabled:
            self._release_image()
            self.source_url = None
            self.loading = False
            self.error = None
            return None

        if avatar_url == self.source_url and self.image_url is not None:
            return self.image_url

        self._release_image()
        self.source_url = avatar_url
        self.loading = True
        self.error = None

        blob = self._cache.avatars.get(avatar_url)
        if blob is None:
            try:
                blob = await self._download(avatar_url)
            except (httpx.HTTPError, httpx.InvalidURL, AvatarFetchError) as e:
                logger.error(f"Error loading avatar {avatar_url}: {e}")
                if self._is_current(ticket):
                    self.error = e
                    self.loading = False
                return None
            self._cache.avatars.set(avatar_url, blob)
        else:
            logger.debug(f"Avatar cache HIT: {avatar_url}")

        if not self._is_current(ticket):
            return self.image_url

        self.image_url = self._registry.create(blob)
        self.loading = False
        return self.image_url

    def close(self) -> None:
        """Unmount: revoke the held object URL and ignore pending loads."""
        self._closed = True
        self._release_image()
        self.loading = False

    async def __aenter__(self) -> "AvatarLoader":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()

    async def _download(self, url: str) -> bytes:
        if self._client is not None:
            return await self._get(self._client, url)

        async with httpx.AsyncClient(
            timeout=self._settings.request_timeout_seconds,
            follow_redirects=self._settings.follow_redirects,
        ) as client:
            return await self._get(client, url)

    async def _get(self, client: httpx.AsyncClient, url: str) -> bytes:
        response = await client.get(url)
        if not response.is_success:
            raise AvatarFetchError(url, response.status_code)
        return response.content

    def _release_image(self) -> None:
        if ObjectUrlRegistry.is_object_url(self.image_url):
            self._registry.revoke(self.image_url)
        self.image_url = None

    def _is_current(self, ticket: int) -> bool:
        return not self._closed and ticket == self._ticket
