"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Collector transport: HTTP delivery, bounded retry and upload metrics.
"""

from .http import CollectorTransport, HTTPPoster, http_post
from .metrics import (
    METRIC_REPORT_RETRIES_TOTAL,
    METRIC_REPORTS_FAILED_TOTAL,
    METRIC_REPORTS_SENT_TOTAL,
    NoOpTransportMetrics,
    PrometheusTransportMetrics,
    TransportMetrics,
)
from .retry import RetryPolicy, backoff_delay, call_with_retry, classify_error

__all__ = [
    "CollectorTransport",
    "HTTPPoster",
    "http_post",
    "RetryPolicy",
    "backoff_delay",
    "call_with_retry",
    "classify_error",
    "TransportMetrics",
    "NoOpTransportMetrics",
    "PrometheusTransportMetrics",
    "METRIC_REPORTS_SENT_TOTAL",
    "METRIC_REPORTS_FAILED_TOTAL",
    "METRIC_REPORT_RETRIES_TOTAL",
]
