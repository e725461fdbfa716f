"""Metrics — Prometheus metrics collection."""

from __future__ import annotations

from paynym_wallet.metrics.collector import DirectoryMetrics, MetricsCollector

__all__ = ["DirectoryMetrics", "MetricsCollector"]
