"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Recording of single resolver executions.
"""

from __future__ import annotations

from .context import RequestContext, ResolverCall
from .store import AggregationStore, record_field_latency


def record_resolver_call(
    ctx: RequestContext,
    store: AggregationStore,
    *,
    type_name: str,
    field_name: str,
    start_ns: int,
    end_ns: int,
) -> bool:
    """
    Record one resolver execution.

    The call is always kept on the request context (for a possible trace);
    the latency sample goes to the current store and is dropped silently when
    the request never started or its field slot is gone.
    """
    call = ResolverCall(
        type_name=type_name,
        field_name=field_name,
        start_offset_ns=ctx.offset_ns(start_ns),
        end_offset_ns=ctx.offset_ns(end_ns),
    )
    ctx.resolver_calls.append(call)
    if ctx.signature is None:
        return False
    return record_field_latency(
        store, ctx.signature, type_name, field_name, call.duration_ns
    )
