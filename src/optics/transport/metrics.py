"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Self-metrics adapters for collector uploads.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol

METRIC_REPORTS_SENT_TOTAL = "optics_reports_sent_total"
METRIC_REPORTS_FAILED_TOTAL = "optics_reports_failed_total"
METRIC_REPORT_RETRIES_TOTAL = "optics_report_retries_total"


class TransportMetrics(Protocol):
    """Minimal metrics interface for upload instrumentation."""

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        """Increment a counter metric."""


class NoOpTransportMetrics:
    """Default metrics sink when no metrics backend is provided."""

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        _ = name
        _ = value
        _ = tags


class PrometheusTransportMetrics(TransportMetrics):
    """
    Prometheus-backed upload metrics adapter.

    Requires `prometheus_client` package.
    """

    def __init__(self, *, namespace: str = "", registry: object | None = None) -> None:
        try:
            from prometheus_client import REGISTRY, Counter
        except ModuleNotFoundError as exc:  # pragma: no cover
            raise RuntimeError(
                "PrometheusTransportMetrics requires `prometheus_client` to be installed."
            ) from exc

        self._Counter = Counter
        self._namespace = namespace
        self._registry = registry if registry is not None else REGISTRY
        self._counters: dict[str, object] = {}

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        label_names = tuple(sorted((tags or {}).keys()))
        key = f"{name}|{','.join(label_names)}"
        counter = self._counters.get(key)
        if counter is None:
            counter = self._Counter(
                name=name,
                documentation=f"Telemetry agent upload metric {name}",
                namespace=self._namespace,
                labelnames=label_names,
                registry=self._registry,
            )
            self._counters[key] = counter

        if label_names:
            label_values = [str((tags or {})[label]) for label in label_names]
            counter.labels(*label_values).inc(value)
        else:
            counter.inc(value)
