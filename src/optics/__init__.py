"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

In-process telemetry agent for GraphQL servers.

Times every resolver, aggregates per-query-shape, per-client and per-field
latency histograms for one report period at a time, samples one trace per
latency bucket, and uploads stats, traces and a schema snapshot to a
collector.

Quick start::

    from optics import Agent, AgentSettings

    agent = Agent(AgentSettings.from_env())
    agent.instrument_schema(schema)
    await agent.start()
    result = await agent.execute("{ hello }")
    await agent.shutdown()
"""

from .agent import Agent
from .core import (
    AggregationStore,
    ClientIdentity,
    Histogram,
    HTTPRequestInfo,
    RequestContext,
    latency_bucket,
)
from .errors import (
    ConfigurationError,
    OpticsError,
    SchemaIntrospectionError,
    StoreFrozenError,
    TransportError,
)
from .instrumentation import ResolverTimingMiddleware, normalize_client, normalize_query
from .settings import AgentSettings
from .version import __version__

__all__ = [
    "__version__",
    "Agent",
    "AgentSettings",
    "AggregationStore",
    "Histogram",
    "latency_bucket",
    "ClientIdentity",
    "HTTPRequestInfo",
    "RequestContext",
    "ResolverTimingMiddleware",
    "normalize_query",
    "normalize_client",
    "OpticsError",
    "ConfigurationError",
    "StoreFrozenError",
    "SchemaIntrospectionError",
    "TransportError",
]
