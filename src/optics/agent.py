"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Agent facade: owns the aggregation store and all telemetry timers.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from graphql import ExecutionResult, GraphQLSchema, graphql

from .core.context import HTTPRequestInfo, RequestContext
from .core.lifecycle import (
    ClientNormalizer,
    QueryNormalizer,
    RequestLifecycle,
    RequestOutcome,
    StartOutcome,
)
from .core.recorder import record_resolver_call
from .core.sampler import TraceSampler
from .core.store import AggregationStore
from .errors import ConfigurationError, SchemaIntrospectionError
from .instrumentation.middleware import ResolverTimingMiddleware, attach_context
from .instrumentation.normalize import normalize_client, normalize_query
from .reports.builder import (
    build_schema_report,
    build_stats_report,
    build_trace_report,
)
from .reports.contracts import SCHEMA_PATH, STATS_PATH, TRACES_PATH
from .reports.encoding import ReportEncoder
from .scheduling import BackgroundTasks, DeferredTask, PeriodicTask
from .settings import AgentSettings
from .transport.http import CollectorTransport
from .transport.metrics import TransportMetrics

logger = logging.getLogger("optics.agent")


class Agent:
    """
    In-process telemetry agent for one GraphQL schema.

    All request callbacks and timers must run on the event loop that called
    ``start()``; that loop is the single owner of the aggregation store.

    Usage::

        agent = Agent(AgentSettings(api_key="..."))
        agent.instrument_schema(schema)
        await agent.start()
        result = await agent.execute("{ hello }", request=request_info)
        ...
        await agent.shutdown()
    """

    def __init__(
        self,
        settings: AgentSettings | None = None,
        *,
        normalize_query: QueryNormalizer = normalize_query,
        normalize_client: ClientNormalizer = normalize_client,
        transport: CollectorTransport | None = None,
        encoder: ReportEncoder | None = None,
        metrics: TransportMetrics | None = None,
    ) -> None:
        self._settings = settings or AgentSettings()
        self._transport = transport or CollectorTransport(
            endpoint_url=self._settings.endpoint_url,
            api_key=self._settings.api_key,
            encoder=encoder,
            retry_policy=self._settings.retry_policy(),
            timeout_s=self._settings.timeout_s,
            metrics=metrics,
            print_reports=self._settings.print_reports,
        )
        self._store = AggregationStore()
        self._schema: GraphQLSchema | None = None
        self._background = BackgroundTasks()
        self._sampler = TraceSampler(
            self._defer_trace, enabled=self._settings.report_traces
        )
        self._lifecycle = RequestLifecycle(
            normalize_query=normalize_query,
            normalize_client=normalize_client,
            sampler=self._sampler,
        )
        self._middleware = ResolverTimingMiddleware(self)
        self._flush_timer: PeriodicTask | None = None
        self._schema_timer: DeferredTask | None = None
        self._running = False

    # --- state ---

    @property
    def settings(self) -> AgentSettings:
        return self._settings

    @property
    def store(self) -> AggregationStore:
        """Store of the current report period."""
        return self._store

    @property
    def schema(self) -> GraphQLSchema | None:
        return self._schema

    @property
    def middleware(self) -> ResolverTimingMiddleware:
        """graphql-core middleware to pass to ``graphql()``/``execute()``."""
        return self._middleware

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def pending_uploads(self) -> int:
        """Number of report uploads still in flight."""
        return self._background.active_count

    def instrument_schema(self, schema: GraphQLSchema) -> GraphQLSchema:
        """Register the schema to report; schedules its snapshot when running."""
        self._schema = schema
        if self._running and self._schema_timer is None:
            self._arm_schema_report()
        return schema

    # --- request callbacks ---

    def new_context(self, request: HTTPRequestInfo | None = None) -> RequestContext:
        """Create the telemetry record for one incoming request."""
        return RequestContext(request=request)

    def request_start(self, ctx: RequestContext) -> StartOutcome:
        return self._lifecycle.start(ctx, self._store)

    def request_end(self, ctx: RequestContext) -> RequestOutcome:
        return self._lifecycle.end(ctx, self._store)

    def record_resolver(
        self,
        ctx: RequestContext,
        *,
        type_name: str,
        field_name: str,
        start_ns: int,
        end_ns: int,
    ) -> bool:
        return record_resolver_call(
            ctx,
            self._store,
            type_name=type_name,
            field_name=field_name,
            start_ns=start_ns,
            end_ns=end_ns,
        )

    async def execute(
        self,
        source: str,
        *,
        request: HTTPRequestInfo | None = None,
        variable_values: dict[str, Any] | None = None,
        operation_name: str | None = None,
        context_value: Any = None,
        root_value: Any = None,
        schema: GraphQLSchema | None = None,
    ) -> ExecutionResult:
        """Execute one instrumented GraphQL request end to end."""
        target = schema or self._schema
        if target is None:
            raise ConfigurationError("No schema to execute against; call instrument_schema()")
        ctx = self.new_context(request)
        try:
            return await graphql(
                target,
                source,
                root_value=root_value,
                context_value=attach_context(context_value, ctx),
                variable_values=variable_values,
                operation_name=operation_name,
                middleware=[self._middleware],
            )
        finally:
            self.request_end(ctx)

    # --- reporting ---

    def flush(self) -> AggregationStore:
        """
        Close the current report period.

        Swaps in a fresh store, freezes the old one and schedules its upload.
        Returns the frozen store.
        """
        ended_at_ms = int(time.time() * 1000)
        ended_ns = time.perf_counter_ns()
        frozen = self._store
        self._store = AggregationStore(started_at_ms=ended_at_ms, started_ns=ended_ns)
        frozen.freeze()

        async def _send() -> None:
            await self._send_stats(frozen, ended_at_ms=ended_at_ms, ended_ns=ended_ns)

        self._background.spawn(_send, name="optics-send-stats")
        return frozen

    async def _send_stats(
        self, store: AggregationStore, *, ended_at_ms: int, ended_ns: int
    ) -> bool:
        try:
            report = build_stats_report(
                store, self._schema, ended_at_ms=ended_at_ms, ended_ns=ended_ns
            )
        except Exception:  # noqa: BLE001
            logger.exception("Failed to build stats report")
            return False
        return await self._transport.send(STATS_PATH, report)

    def _defer_trace(self, ctx: RequestContext) -> None:
        async def _send() -> None:
            await self._send_trace(ctx)

        self._background.spawn(_send, name="optics-send-trace")

    async def _send_trace(self, ctx: RequestContext) -> bool:
        try:
            report = build_trace_report(
                ctx, report_variables=self._settings.report_variables
            )
        except Exception:  # noqa: BLE001
            logger.exception("Failed to build trace report")
            return False
        return await self._transport.send(TRACES_PATH, report)

    async def report_schema(self) -> bool:
        """Build and upload the schema snapshot now."""
        if self._schema is None:
            logger.debug("No schema instrumented; skipping schema report")
            return False
        try:
            report = build_schema_report(self._schema)
        except SchemaIntrospectionError as exc:
            logger.error("Skipping schema report: %s", exc)
            return False
        except Exception:  # noqa: BLE001
            logger.exception("Failed to build schema report")
            return False
        return await self._transport.send(SCHEMA_PATH, report, retry=False)

    def _arm_schema_report(self) -> None:
        async def _report() -> None:
            await self.report_schema()

        self._schema_timer = DeferredTask(
            _report,
            delay_s=self._settings.schema_report_delay_s,
            name="optics-schema-report",
        )
        self._schema_timer.start()

    async def _flush_tick(self) -> None:
        self.flush()

    # --- lifecycle ---

    async def start(self) -> None:
        """Start the periodic flush and arm the one-shot schema report."""
        if self._running:
            raise RuntimeError("Agent is already running")
        self._running = True
        self._flush_timer = PeriodicTask(
            self._flush_tick,
            interval_s=self._settings.report_interval_s,
            name="optics-flush",
        )
        self._flush_timer.start()
        if self._schema is not None:
            self._arm_schema_report()
        logger.info(
            "Telemetry agent started (endpoint=%s, interval=%.1fs)",
            self._transport.endpoint_url,
            self._settings.report_interval_s,
        )

    async def shutdown(self) -> None:
        """
        Stop all timers without sending partial state.

        In-flight uploads get ``shutdown_timeout_s`` to finish.
        """
        self._running = False
        if self._flush_timer is not None:
            await self._flush_timer.cancel()
            self._flush_timer = None
        if self._schema_timer is not None:
            await self._schema_timer.cancel()
            self._schema_timer = None
        await self._background.drain(timeout_s=self._settings.shutdown_timeout_s)
        logger.info("Telemetry agent shut down")

    async def __aenter__(self) -> "Agent":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.shutdown()
