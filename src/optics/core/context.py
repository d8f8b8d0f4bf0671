"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Per-request telemetry records.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from .store import AggregationEntry

RequestState = Literal["not_started", "started", "ended"]


@dataclass(frozen=True, slots=True)
class ClientIdentity:
    """Name and version of the client application that sent a request."""

    name: str
    version: str


@dataclass(frozen=True, slots=True)
class HTTPRequestInfo:
    """
    Transport-level facts about one incoming request.

    Attributes:
        host: Value of the ``Host`` header.
        path: Request path (query string included, when known).
        client_addr: Remote peer address.
        headers: Request headers; looked up case-insensitively.
    """

    host: str = ""
    path: str = ""
    client_addr: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)

    def header(self, name: str, default: str | None = None) -> str | None:
        """Return one header value by case-insensitive name."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return default


@dataclass(frozen=True, slots=True)
class ResolverCall:
    """Timing of one resolver call, as offsets from request start."""

    type_name: str
    field_name: str
    start_offset_ns: int
    end_offset_ns: int

    @property
    def qualified_name(self) -> str:
        return f"{self.type_name}.{self.field_name}"

    @property
    def duration_ns(self) -> int:
        return max(0, self.end_offset_ns - self.start_offset_ns)


@dataclass(slots=True)
class RequestContext:
    """
    Transient telemetry state of one request.

    Created when the request arrives, mutated only by that request's own
    callbacks, discarded once ``end`` has run.

    Attributes:
        request: HTTP facts used for client identification and traces.
        info: Resolve info of the first resolver; carries the operation,
            fragments, variables and schema.
        state: Lifecycle state.
        signature: Query signature derived at start.
        client: Client identity derived at start.
        entry: Aggregation entry resolved by the latest start/self-heal.
        started_at_ms: Wall-clock start, epoch milliseconds.
        start_ns: Monotonic start, nanoseconds.
        ended_at_ms: Wall-clock end, epoch milliseconds.
        end_ns: Monotonic end, nanoseconds.
        resolver_calls: Resolver timings in call order.
    """

    request: HTTPRequestInfo | None = None
    info: Any = None
    state: RequestState = "not_started"
    signature: str | None = None
    client: ClientIdentity | None = None
    entry: AggregationEntry | None = None
    started_at_ms: int = field(default_factory=lambda: int(time.time() * 1000))
    start_ns: int = field(default_factory=time.perf_counter_ns)
    ended_at_ms: int | None = None
    end_ns: int | None = None
    resolver_calls: list[ResolverCall] = field(default_factory=list)

    def offset_ns(self, ns: int) -> int:
        """Convert a monotonic timestamp to an offset from request start."""
        return ns - self.start_ns

    def mark_end(self) -> None:
        """Stamp the end time once; later calls keep the first stamp."""
        if self.end_ns is not None:
            return
        self.end_ns = time.perf_counter_ns()
        self.ended_at_ms = int(time.time() * 1000)

    @property
    def duration_ns(self) -> int:
        """Request duration; zero until ``mark_end`` ran."""
        if self.end_ns is None:
            return 0
        return max(0, self.end_ns - self.start_ns)
