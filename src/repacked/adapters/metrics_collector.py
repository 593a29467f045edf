"""
In-Memory Metrics Collector.

Keeps cache counters and fetch timings in memory, keyed by metric name and
tag set, so hit rates per namespace can be read back without an exporter.
"""

from __future__ import annotations

from collections import defaultdict
from threading import Lock
from typing import Any, DefaultDict, Dict, FrozenSet, List, Optional, Tuple

TagKey = FrozenSet[Tuple[str, str]]


class InMemoryMetricsCollector:
    """Simple in-memory metrics collector."""

    def __init__(self) -> None:
        """Initialize the metrics collector."""
        self._counts: DefaultDict[str, DefaultDict[TagKey, int]] = defaultdict(
            lambda: defaultdict(int)
        )
        self._timings: DefaultDict[str, List[Tuple[TagKey, float]]] = defaultdict(list)
        self._lock = Lock()

    def record_timing(
        self,
        name: str,
        duration_seconds: float,
        tags: Optional[Dict[str, str]] = None,
    ) -> None:
        """Record a timing metric."""
        with self._lock:
            self._timings[name].append((self._tag_key(tags), duration_seconds))

    def record_count(
        self,
        name: str,
        value: int,
        tags: Optional[Dict[str, str]] = None,
    ) -> None:
        """Increment a counter."""
        with self._lock:
            self._counts[name][self._tag_key(tags)] += value

    def count(self, name: str, tags: Optional[Dict[str, str]] = None) -> int:
        """
        Read a counter.

        Args:
            name: Metric name
            tags: Only sum series carrying all of these tags (all series if None)
        """
        wanted = self._tag_key(tags)
        with self._lock:
            return sum(
                value for key, value in self._counts.get(name, {}).items()
                if wanted <= key
            )

    def timings(self, name: str) -> List[float]:
        """All recorded durations for a timing metric."""
        with self._lock:
            return [duration for _, duration in self._timings.get(name, [])]

    def get_metrics(self) -> Dict[str, Any]:
        """Get a per-metric summary of everything collected."""
        with self._lock:
            summary: Dict[str, Any] = {}
            for name, series in self._counts.items():
                summary[name] = {"type": "count", "total": sum(series.values())}
            for name, samples in self._timings.items():
                durations = [d for _, d in samples]
                summary[name] = {
                    "type": "timing",
                    "count": len(durations),
                    "total": sum(durations),
                    "max": max(durations) if durations else 0.0,
                }
            return summary

    def clear(self) -> None:
        """Clear all metrics."""
        with self._lock:
            self._counts.clear()
            self._timings.clear()

    @staticmethod
    def _tag_key(tags: Optional[Dict[str, str]]) -> TagKey:
        return frozenset((tags or {}).items())
