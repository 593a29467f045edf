"""
Metrics Collector Protocol.

Defines the abstract interface for cache metrics collection. Cached-fetch
handles report hits, misses, fetch failures and fetch durations through it.

Design Notes:
    - Non-blocking metric recording
    - Tag/label support for dimensionality (namespace)
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, runtime_checkable


@runtime_checkable
class MetricsCollector(Protocol):
    """Abstract interface for metrics collection."""

    def record_timing(
        self,
        name: str,
        duration_seconds: float,
        tags: Optional[Dict[str, str]] = None,
    ) -> None:
        """
        Record a timing metric (histogram).

        Args:
            name: Metric name (e.g., "fetch_duration")
            duration_seconds: Duration value
            tags: Optional dimension tags
        """
        ...

    def record_count(
        self,
        name: str,
        value: int,
        tags: Optional[Dict[str, str]] = None,
    ) -> None:
        """
        Record a count metric (counter).

        Args:
            name: Metric name (e.g., "cache_hit")
            value: Count value
            tags: Optional dimension tags
        """
        ...

    def get_metrics(self) -> Dict[str, Any]:
        """
        Get all collected metrics.

        Returns:
            Dict of metric name to values
        """
        ...
