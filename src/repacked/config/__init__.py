"""
Configuration Package - Models and Loaders.

This package handles all configuration aspects of Repacked:
    - Pydantic models for type-safe configuration
    - YAML loader with validation
    - Support for configuration profiles

Configuration Structure:
    - RepackedConfig: Root configuration object
    - CacheSettings: TTLs, sweep interval, namespace policies
    - SessionStoreSettings: Durable store backend (memory, file, none)
    - AvatarSettings: Avatar download settings

Design Principles:
    - Type-safe via Pydantic
    - Validation on load (fail fast)
    - Support for profiles (e.g. development)
"""

from repacked.config.loader import ConfigLoader, load_config
from repacked.config.models import (
    AvatarSettings,
    CacheSettings,
    RepackedConfig,
    SessionStoreSettings,
)

__all__ = [
    "ConfigLoader",
    "load_config",
    "AvatarSettings",
    "CacheSettings",
    "RepackedConfig",
    "SessionStoreSettings",
]
