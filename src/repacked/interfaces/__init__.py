"""
Interfaces Layer - Abstract Protocols for Dependencies.

This package defines the abstract interfaces (using typing.Protocol) for
external dependencies. High-level modules depend on these abstractions, not
on concrete implementations.

Protocols:
    - MarketplaceBackend: Data access abstraction for cached resources
    - MetricsCollector: Counters and timings for cache behaviour
"""

from repacked.interfaces.marketplace_backend import MarketplaceBackend
from repacked.interfaces.metrics_collector import MetricsCollector

__all__ = ["MarketplaceBackend", "MetricsCollector"]
