"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Bounded retry with exponential backoff for collector uploads.
"""

from __future__ import annotations

import asyncio
import random
import socket
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from ..errors import TransportError

T = TypeVar("T")

RetryCallback = Callable[[int, TransportError, float], None]
Sleeper = Callable[[float], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """
    Retry semantics for one upload.

    Attributes:
        max_attempts: Total attempts, first attempt included.
        backoff_base_s: Delay before the first retry; doubles per retry.
        backoff_max_s: Upper bound for one delay.
        backoff_jitter_s: Random extra delay in ``[0, jitter]``.
    """

    max_attempts: int = 3
    backoff_base_s: float = 1.0
    backoff_max_s: float = 30.0
    backoff_jitter_s: float = 0.0


def backoff_delay(retry_index: int, policy: RetryPolicy) -> float:
    """Delay before retry number ``retry_index`` (0-based)."""
    delay = min(policy.backoff_max_s, policy.backoff_base_s * (2**retry_index))
    if policy.backoff_jitter_s > 0:
        delay += random.uniform(0.0, policy.backoff_jitter_s)
    return delay


def classify_error(error: Exception) -> TransportError:
    """Classify exceptions into retryable/non-retryable transport errors."""
    if isinstance(error, TransportError):
        return error
    if isinstance(error, (asyncio.TimeoutError, TimeoutError, socket.timeout)):
        return TransportError(f"Timed out: {error}", retryable=True)
    if isinstance(error, (ConnectionError, OSError)):
        return TransportError(f"Network error: {error}", retryable=True)
    return TransportError(str(error) or type(error).__name__)


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy,
    on_retry: RetryCallback | None = None,
    sleep: Sleeper = asyncio.sleep,
) -> T:
    """
    Execute ``fn`` under a bounded retry policy.

    Raises:
        TransportError: The last classified error once attempts are exhausted
            or a non-retryable error occurred.
    """
    attempts = max(1, policy.max_attempts)
    last: TransportError | None = None
    for attempt in range(attempts):
        try:
            return await fn()
        except asyncio.CancelledError:
            raise
        except Exception as error:
            classified = classify_error(error)
            last = classified
            if classified.retryable and attempt < attempts - 1:
                delay = backoff_delay(attempt, policy)
                if on_retry is not None:
                    on_retry(attempt + 1, classified, delay)
                await sleep(delay)
                continue
            if classified is error:
                raise
            raise classified from error
    raise TransportError("Retry loop exhausted") from last
