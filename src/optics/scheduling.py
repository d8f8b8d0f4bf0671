"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Deferred, periodic and fire-and-forget tasks on the agent's event loop.

All three run on the loop that owns the aggregation store, so the work they
schedule interleaves with request callbacks instead of racing them.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger("optics.scheduling")

TaskFactory = Callable[[], Awaitable[None]]


class DeferredTask:
    """
    Run ``fn`` once, no earlier than ``delay_s`` after ``start()``.

    Cancelling before the delay elapses guarantees ``fn`` never runs.
    """

    def __init__(self, fn: TaskFactory, *, delay_s: float, name: str) -> None:
        if delay_s < 0:
            raise ValueError("delay_s must be >= 0")
        self._fn = fn
        self._delay_s = delay_s
        self._name = name
        self._task: asyncio.Task[None] | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def started(self) -> bool:
        return self._task is not None

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def start(self) -> None:
        """Arm the timer on the running loop."""
        if self._task is not None:
            raise RuntimeError(f"Deferred task '{self._name}' already started")
        self._task = asyncio.create_task(self._run(), name=self._name)

    async def _run(self) -> None:
        await asyncio.sleep(self._delay_s)
        try:
            await self._fn()
        except asyncio.CancelledError:
            raise
        except Exception:  # noqa: BLE001
            logger.exception("Deferred task '%s' failed", self._name)

    async def cancel(self) -> None:
        """Cancel the timer (or the running call) and wait for it to settle."""
        if self._task is None or self._task.done():
            return
        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)


class PeriodicTask:
    """Run ``fn`` every ``interval_s`` until cancelled; errors do not stop it."""

    def __init__(self, fn: TaskFactory, *, interval_s: float, name: str) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self._fn = fn
        self._interval_s = interval_s
        self._name = name
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            raise RuntimeError(f"Periodic task '{self._name}' already running")
        self._task = asyncio.create_task(self._loop(), name=self._name)

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval_s)
            try:
                await self._fn()
            except asyncio.CancelledError:
                raise
            except Exception:  # noqa: BLE001
                logger.exception("Periodic task '%s' failed", self._name)

    async def cancel(self) -> None:
        if self._task is None or self._task.done():
            self._task = None
            return
        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None


class BackgroundTasks:
    """Tracked fire-and-forget tasks with a bounded drain on shutdown."""

    def __init__(self) -> None:
        self._active: set[asyncio.Task[None]] = set()

    @property
    def active_count(self) -> int:
        return len(self._active)

    def spawn(self, fn: TaskFactory, *, name: str) -> asyncio.Task[None] | None:
        """
        Schedule ``fn`` on the running loop without waiting for it.

        Returns ``None`` (and logs) when called outside a running loop.
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; dropping background task '%s'", name)
            return None
        task = asyncio.create_task(self._guard(fn, name), name=name)
        self._active.add(task)
        task.add_done_callback(self._active.discard)
        return task

    async def _guard(self, fn: TaskFactory, name: str) -> None:
        try:
            await fn()
        except asyncio.CancelledError:
            raise
        except Exception:  # noqa: BLE001
            logger.exception("Background task '%s' failed", name)

    async def drain(self, *, timeout_s: float) -> None:
        """Wait for active tasks up to ``timeout_s``, then cancel the rest."""
        if not self._active:
            return
        logger.info("Waiting for %d background task(s)...", len(self._active))
        _, pending = await asyncio.wait(set(self._active), timeout=timeout_s)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
