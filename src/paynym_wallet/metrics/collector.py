"""Directory metrics — Prometheus counters and histograms.

- ``paynym_directory_requests_total``   counter   (endpoint, status)
- ``paynym_directory_retries_total``    counter   (endpoint)
- ``paynym_directory_request_seconds``  histogram (endpoint)
- ``paynym_directory_cache_total``      counter   (result: hit / miss / stale / error)
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Counter, Histogram

if TYPE_CHECKING:
    from collections.abc import Iterator

_PREFIX = "paynym_directory"


class MetricsCollector:
    """Low-level Prometheus collector that owns the registry.

    Use :class:`DirectoryMetrics` for the high-level tracking interface.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._registry

    def histogram(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Histogram:
        """Register and return a Histogram."""
        return Histogram(name, doc, labels, registry=self._registry)

    def counter(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Counter:
        """Register and return a Counter."""
        return Counter(name, doc, labels, registry=self._registry)


class DirectoryMetrics:
    """Request, retry and cache accounting for the directory client."""

    def __init__(self, collector: MetricsCollector | None = None) -> None:
        self._collector = collector or MetricsCollector()

        self._requests = self._collector.counter(
            f"{_PREFIX}_requests_total",
            "Directory requests by endpoint and final HTTP status",
            ("endpoint", "status"),
        )
        self._retries = self._collector.counter(
            f"{_PREFIX}_retries_total",
            "Directory requests retried after HTTP 429",
            ("endpoint",),
        )
        self._latency = self._collector.histogram(
            f"{_PREFIX}_request_seconds",
            "Duration of directory requests including retries",
            ("endpoint",),
        )
        self._cache = self._collector.counter(
            f"{_PREFIX}_cache_total",
            "Directory cache lookups by outcome",
            ("result",),
        )

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._collector.registry

    def record_request(self, endpoint: str, status: int) -> None:
        """Count a completed request (status ``-1`` for transport failures)."""
        self._requests.labels(endpoint=endpoint, status=str(status)).inc()

    def record_retry(self, endpoint: str) -> None:
        """Count a rate-limit retry."""
        self._retries.labels(endpoint=endpoint).inc()

    def record_cache(self, result: str) -> None:
        """Count a cache lookup outcome."""
        self._cache.labels(result=result).inc()

    @contextmanager
    def track_request(self, endpoint: str) -> Iterator[None]:
        """Track the wall-clock duration of a directory request."""
        start = time.monotonic()
        try:
            yield
        finally:
            self._latency.labels(endpoint=endpoint).observe(time.monotonic() - start)
