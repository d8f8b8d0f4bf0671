"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Typed builders for the three outbound report messages.

Builders only read their inputs: a frozen ``AggregationStore``, a finished
``RequestContext`` or a schema.
"""

from __future__ import annotations

import json
import platform
import socket
import time
from functools import lru_cache

from graphql import GraphQLSchema, print_ast

from ..core.context import RequestContext
from ..core.store import AggregationEntry, AggregationStore
from ..version import AGENT_VERSION
from .models import (
    FieldStat,
    HTTPInfo,
    ReportHeader,
    SchemaReport,
    StatsPerClientName,
    StatsPerSignature,
    StatsReport,
    Timestamp,
    Trace,
    TraceDetails,
    TraceNode,
    TracesReport,
    TypeStat,
)
from .schema import introspection_json, types_from_schema


@lru_cache(maxsize=1)
def report_header() -> ReportHeader:
    """Process-constant header attached to every report."""
    uname = platform.uname()
    return ReportHeader(
        hostname=socket.gethostname(),
        agent_version=AGENT_VERSION,
        runtime_version=f"python {platform.python_version()}",
        uname=f"{uname.system}, {uname.release}, {uname.version}, {uname.machine}",
    )


def build_signature_stats(entry: AggregationEntry) -> StatsPerSignature:
    """Project one aggregation entry into its wire form."""
    per_client = {
        client_name: StatsPerClientName(
            latency_count=stats.histogram.trim(),
            count_per_version=dict(stats.per_version),
        )
        for client_name, stats in entry.per_client.items()
    }
    per_type = [
        TypeStat(
            name=type_name,
            fields=[
                FieldStat(
                    name=field_name,
                    return_type=stats.return_type,
                    latency_count=stats.histogram.trim(),
                )
                for field_name, stats in fields.items()
            ],
        )
        for type_name, fields in entry.per_field.items()
    ]
    return StatsPerSignature(per_client_name=per_client, per_type=per_type)


def build_stats_report(
    store: AggregationStore,
    schema: GraphQLSchema | None,
    *,
    ended_at_ms: int | None = None,
    ended_ns: int | None = None,
) -> StatsReport:
    """
    Build the stats report for one finished report period.

    Args:
        store: The period's store; expected to be frozen already.
        schema: Instrumented schema, used for the type listing.
        ended_at_ms: Wall-clock end of the period (defaults to now).
        ended_ns: Monotonic end of the period (defaults to now).
    """
    end_ms = ended_at_ms if ended_at_ms is not None else int(time.time() * 1000)
    end_ns = ended_ns if ended_ns is not None else time.perf_counter_ns()
    return StatsReport(
        header=report_header(),
        start_time=Timestamp.from_epoch_ms(store.started_at_ms),
        end_time=Timestamp.from_epoch_ms(end_ms),
        realtime_duration=max(0, end_ns - store.started_ns),
        types=types_from_schema(schema),
        per_signature={
            signature: build_signature_stats(entry)
            for signature, entry in store.entries().items()
        },
    )


def _raw_query(ctx: RequestContext) -> str:
    info = ctx.info
    operation = print_ast(info.operation)
    fragments = "\n".join(
        print_ast(fragment) for fragment in (info.fragments or {}).values()
    )
    return f"{operation}\n{fragments}"


def _variables(ctx: RequestContext) -> dict[str, str]:
    values = ctx.info.variable_values or {}
    return {name: json.dumps(value, default=str) for name, value in values.items()}


def build_trace(ctx: RequestContext, *, report_variables: bool) -> Trace:
    """Build one trace from a finished, sampled request."""
    if ctx.info is None or ctx.signature is None or ctx.client is None:
        raise ValueError("Cannot build a trace for a request that never started")
    operation = ctx.info.operation
    request = ctx.request
    calls = sorted(ctx.resolver_calls, key=lambda call: call.start_offset_ns)
    return Trace(
        start_time=Timestamp.from_epoch_ms(ctx.started_at_ms),
        end_time=Timestamp.from_epoch_ms(ctx.ended_at_ms or ctx.started_at_ms),
        duration_ns=ctx.duration_ns,
        signature=ctx.signature,
        details=TraceDetails(
            raw_query=_raw_query(ctx),
            operation_name=operation.name.value if operation.name else None,
            variables=_variables(ctx) if report_variables else None,
        ),
        client_name=ctx.client.name,
        client_version=ctx.client.version,
        client_addr=request.client_addr if request is not None else "",
        http=HTTPInfo(
            host=request.host if request is not None else "",
            path=request.path if request is not None else "",
        ),
        execute=TraceNode(
            child=[
                TraceNode(
                    field_name=call.qualified_name,
                    start_time=call.start_offset_ns,
                    end_time=call.end_offset_ns,
                )
                for call in calls
            ]
        ),
    )


def build_trace_report(ctx: RequestContext, *, report_variables: bool) -> TracesReport:
    """Wrap one trace into a traces report; traces are not batched."""
    return TracesReport(
        header=report_header(),
        trace=[build_trace(ctx, report_variables=report_variables)],
    )


def build_schema_report(schema: GraphQLSchema) -> SchemaReport:
    """
    Build the one-time schema snapshot report.

    Raises:
        SchemaIntrospectionError: If the introspection query fails.
    """
    return SchemaReport(
        header=report_header(),
        introspection_result=introspection_json(schema),
        types=types_from_schema(schema),
    )
