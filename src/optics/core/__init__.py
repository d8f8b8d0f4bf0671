"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

In-memory aggregation engine: histograms, the per-period store, request
lifecycle and trace sampling.
"""

from .context import (
    ClientIdentity,
    HTTPRequestInfo,
    RequestContext,
    RequestState,
    ResolverCall,
)
from .histogram import (
    LATENCY_BUCKET_COUNT,
    LATENCY_GROWTH_FACTOR,
    Histogram,
    expand_latency_counts,
    latency_bucket,
    trim_latency_counts,
)
from .lifecycle import (
    ClientNormalizer,
    QueryNormalizer,
    RequestLifecycle,
    RequestOutcome,
    StartOutcome,
)
from .recorder import record_resolver_call
from .sampler import TraceHandoff, TraceSampler
from .store import (
    AggregationEntry,
    AggregationStore,
    ClientStats,
    FieldStats,
    ensure_fields_initialized,
    get_or_create_client_stats,
    get_or_create_entry,
    record_client_latency,
    record_field_latency,
    referenced_fragments,
)

__all__ = [
    "LATENCY_BUCKET_COUNT",
    "LATENCY_GROWTH_FACTOR",
    "Histogram",
    "latency_bucket",
    "trim_latency_counts",
    "expand_latency_counts",
    "AggregationStore",
    "AggregationEntry",
    "ClientStats",
    "FieldStats",
    "get_or_create_entry",
    "get_or_create_client_stats",
    "ensure_fields_initialized",
    "record_field_latency",
    "record_client_latency",
    "referenced_fragments",
    "ClientIdentity",
    "HTTPRequestInfo",
    "RequestContext",
    "RequestState",
    "ResolverCall",
    "record_resolver_call",
    "TraceSampler",
    "TraceHandoff",
    "RequestLifecycle",
    "RequestOutcome",
    "StartOutcome",
    "QueryNormalizer",
    "ClientNormalizer",
]
