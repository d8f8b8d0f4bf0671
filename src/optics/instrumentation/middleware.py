"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

graphql-core middleware that times every resolver of an instrumented request.
"""

from __future__ import annotations

import inspect
import time
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from graphql import GraphQLResolveInfo

from ..core.context import RequestContext
from ..core.lifecycle import StartOutcome

CONTEXT_KEY = "optics"
CONTEXT_ATTR = "optics_context"


class ResolverHooks(Protocol):
    """Callbacks the middleware drives; implemented by ``Agent``."""

    def request_start(self, ctx: RequestContext) -> StartOutcome:
        ...

    def record_resolver(
        self,
        ctx: RequestContext,
        *,
        type_name: str,
        field_name: str,
        start_ns: int,
        end_ns: int,
    ) -> bool:
        ...


def attach_context(context_value: Any, ctx: RequestContext) -> Any:
    """
    Make ``ctx`` reachable from a GraphQL context value.

    Dicts get a copy with the ``optics`` key, other objects an
    ``optics_context`` attribute; ``None`` becomes a fresh dict.
    """
    if context_value is None:
        return {CONTEXT_KEY: ctx}
    if isinstance(context_value, dict):
        return {**context_value, CONTEXT_KEY: ctx}
    setattr(context_value, CONTEXT_ATTR, ctx)
    return context_value


def context_from_info(info: Any) -> RequestContext | None:
    """Find the request context attached to a resolver's context value."""
    value = info.context
    if isinstance(value, dict):
        found = value.get(CONTEXT_KEY)
    else:
        found = getattr(value, CONTEXT_ATTR, None)
    return found if isinstance(found, RequestContext) else None


class ResolverTimingMiddleware:
    """
    Time resolvers and feed them into the agent.

    The first resolver of a request starts the request lifecycle, since that
    is where the operation and schema first become available. Resolver
    errors pass through untouched.
    """

    def __init__(self, hooks: ResolverHooks) -> None:
        self._hooks = hooks

    def resolve(
        self,
        next_: Callable[..., Any],
        root: Any,
        info: GraphQLResolveInfo,
        **args: Any,
    ) -> Any:
        ctx = context_from_info(info)
        if ctx is None or ctx.state == "ended":
            return next_(root, info, **args)
        if ctx.info is None:
            ctx.info = info
            self._hooks.request_start(ctx)

        type_name = info.parent_type.name
        field_name = info.field_name
        start_ns = time.perf_counter_ns()
        try:
            result = next_(root, info, **args)
        except Exception:
            self._record(ctx, type_name, field_name, start_ns)
            raise
        if inspect.isawaitable(result):
            return self._await_and_record(ctx, type_name, field_name, start_ns, result)
        self._record(ctx, type_name, field_name, start_ns)
        return result

    async def _await_and_record(
        self,
        ctx: RequestContext,
        type_name: str,
        field_name: str,
        start_ns: int,
        result: Awaitable[Any],
    ) -> Any:
        try:
            return await result
        finally:
            self._record(ctx, type_name, field_name, start_ns)

    def _record(
        self, ctx: RequestContext, type_name: str, field_name: str, start_ns: int
    ) -> None:
        self._hooks.record_resolver(
            ctx,
            type_name=type_name,
            field_name=field_name,
            start_ns=start_ns,
            end_ns=time.perf_counter_ns(),
        )
