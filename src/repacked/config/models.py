"""
Configuration Models - Pydantic Models for Type-Safe Config.

All configuration is validated at load time using Pydantic.
"""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from repacked.caching.cache_manager import CacheConfig
from repacked.caching.namespaces import DEFAULT_NAMESPACE_POLICIES, NamespacePolicy


class SessionStoreSettings(BaseModel):
    """Configuration for the durable per-session store."""

    backend: Literal["memory", "file", "none"] = "memory"
    path: Optional[str] = None
    # Browsers cap session storage at roughly 5 MB per origin
    quota_bytes: Optional[int] = Field(default=5 * 1024 * 1024, ge=0)

    @model_validator(mode="after")
    def _file_backend_needs_path(self) -> "SessionStoreSettings":
        if self.backend == "file" and not self.path:
            raise ValueError("session_store.path is required for the file backend")
        return self


class CacheSettings(BaseModel):
    """Configuration for the cache manager and its namespaces."""

    enabled: bool = True
    default_ttl_seconds: float = Field(default=300.0, gt=0)
    sweep_interval_seconds: float = Field(default=60.0, gt=0)
    auto_sweep: bool = True
    storage_prefix: str = Field(default="cache_", min_length=1)
    log_access: bool = False
    namespaces: Dict[str, NamespacePolicy] = Field(
        default_factory=lambda: dict(DEFAULT_NAMESPACE_POLICIES)
    )

    @field_validator("namespaces", mode="before")
    @classmethod
    def _merge_with_defaults(cls, value: Any) -> Any:
        """Overrides replace single namespaces, the rest keep their defaults."""
        if not isinstance(value, dict):
            return value
        merged: Dict[str, Any] = {
            name: policy.model_dump() for name, policy in DEFAULT_NAMESPACE_POLICIES.items()
        }
        for name, policy in value.items():
            if isinstance(policy, dict) and name in merged:
                merged[name] = {**merged[name], **policy}
            else:
                merged[name] = policy
        return merged

    @field_validator("namespaces")
    @classmethod
    def _no_separator_in_names(
        cls, value: Dict[str, NamespacePolicy]
    ) -> Dict[str, NamespacePolicy]:
        for name in value:
            if not name or ":" in name:
                raise ValueError(f"Invalid namespace name: {name!r}")
        return value

    def to_cache_config(self) -> CacheConfig:
        """Runtime configuration for CacheManager."""
        return CacheConfig(
            default_ttl_seconds=self.default_ttl_seconds,
            sweep_interval_seconds=self.sweep_interval_seconds,
            auto_sweep=self.auto_sweep,
            storage_prefix=self.storage_prefix,
            enabled=self.enabled,
            log_access=self.log_access,
        )


class AvatarSettings(BaseModel):
    """Configuration for avatar image loading."""

    request_timeout_seconds: float = Field(default=10.0, gt=0)
    follow_redirects: bool = True


class RepackedConfig(BaseModel):
    """Root configuration object."""

    version: str = "1.0"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    cache: CacheSettings = Field(default_factory=CacheSettings)
    session_store: SessionStoreSettings = Field(default_factory=SessionStoreSettings)
    avatars: AvatarSettings = Field(default_factory=AvatarSettings)

    model_config = {"populate_by_name": True}
