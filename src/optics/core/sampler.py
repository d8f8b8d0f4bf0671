"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Stratified trace sampling.

A request is promoted to a full trace when it is the first request of its
(signature, client) pair to land in its latency bucket during the current
report period. Every latency regime of every query shape and client is
therefore represented by one trace per period, and trace volume is bounded
by signatures x clients x buckets regardless of traffic.
"""

from __future__ import annotations

from collections.abc import Callable

from .context import RequestContext
from .store import ClientStats

TraceHandoff = Callable[[RequestContext], None]


class TraceSampler:
    """
    Decide which finished requests become traces.

    ``handoff`` is called synchronously with the sampled context and must
    only schedule the trace build/send; it must not block.
    """

    def __init__(self, handoff: TraceHandoff | None = None, *, enabled: bool = True) -> None:
        self._handoff = handoff
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        return self._enabled and self._handoff is not None

    def should_sample(self, stats: ClientStats, bucket: int) -> bool:
        """True when ``bucket`` is still empty for this client this period."""
        return self.enabled and stats.histogram.count(bucket) == 0

    def sample(self, ctx: RequestContext) -> None:
        if self._handoff is not None:
            self._handoff(ctx)
