"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Per-request start/end state machine.

``start`` runs when the first resolver of a request fires (that is the first
moment the operation and schema are known). ``end`` runs once the response
is complete. Between the two a flush may have swapped the store; ``end``
therefore re-runs the start bookkeeping against the store it is given before
counting the request.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Literal

from ..errors import StoreFrozenError
from .context import ClientIdentity, HTTPRequestInfo, RequestContext
from .histogram import latency_bucket
from .sampler import TraceSampler
from .store import (
    AggregationStore,
    ensure_fields_initialized,
    get_or_create_client_stats,
    get_or_create_entry,
    record_client_latency,
)

logger = logging.getLogger("optics.core.lifecycle")

StartOutcome = Literal["started", "skipped", "failed"]
RequestOutcome = Literal["recorded", "dropped", "skipped", "failed"]

QueryNormalizer = Callable[[Any], str]
ClientNormalizer = Callable[[HTTPRequestInfo | None], ClientIdentity]


class RequestLifecycle:
    """
    Start/end bookkeeping for instrumented requests.

    The lifecycle owns no store; callers pass the agent's current store on
    every call so a swapped-out store is never written to.
    """

    def __init__(
        self,
        *,
        normalize_query: QueryNormalizer,
        normalize_client: ClientNormalizer,
        sampler: TraceSampler,
    ) -> None:
        self._normalize_query = normalize_query
        self._normalize_client = normalize_client
        self._sampler = sampler

    def start(self, ctx: RequestContext, store: AggregationStore) -> StartOutcome:
        """
        Derive request identity and make sure its store paths exist.

        Failures are logged and leave the request untracked; they never
        reach the host server.
        """
        if ctx.info is None or ctx.state == "ended":
            return "skipped"
        try:
            self._prepare(ctx, store)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to start request telemetry")
            return "failed"
        ctx.state = "started"
        return "started"

    def end(self, ctx: RequestContext, store: AggregationStore) -> RequestOutcome:
        """
        Count a finished request and offer it to the trace sampler.

        Returns ``"dropped"`` when the client path is still missing after
        self-heal; the sample is lost but nothing is raised.
        """
        if ctx.state == "ended":
            return "skipped"
        ctx.mark_end()
        ctx.state = "ended"
        if ctx.info is None:
            return "skipped"
        try:
            return self._finish(ctx, store)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to record request telemetry")
            return "failed"

    def _prepare(self, ctx: RequestContext, store: AggregationStore) -> None:
        if store.frozen:
            raise StoreFrozenError("Store already handed off for reporting")
        info = ctx.info
        ctx.signature = self._normalize_query(info)
        ctx.client = self._normalize_client(ctx.request)
        entry = get_or_create_entry(store, ctx.signature)
        ensure_fields_initialized(entry, info.schema, info.operation, info.fragments)
        get_or_create_client_stats(entry, ctx.client.name)
        ctx.entry = entry

    def _finish(self, ctx: RequestContext, store: AggregationStore) -> RequestOutcome:
        try:
            self._prepare(ctx, store)
        except StoreFrozenError:
            ctx.entry = None

        client = ctx.client
        signature = ctx.signature
        stats = (
            ctx.entry.per_client.get(client.name)
            if ctx.entry is not None and client is not None
            else None
        )
        if stats is None or signature is None or client is None:
            logger.warning(
                "Client stats missing after self-heal; dropping request sample "
                "(signature=%r)",
                signature,
            )
            return "dropped"

        nanos = ctx.duration_ns
        first_in_bucket = self._sampler.should_sample(stats, latency_bucket(nanos))

        if not record_client_latency(store, signature, client.name, nanos):
            logger.warning(
                "Store rejected request sample after self-heal (signature=%r)",
                signature,
            )
            return "dropped"
        stats.per_version[client.version] = stats.per_version.get(client.version, 0) + 1
        if first_in_bucket:
            self._sampler.sample(ctx)
        return "recorded"
