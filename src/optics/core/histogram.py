"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Fixed-size logarithmic latency histogram and its compact serialization.

Durations are bucketed in microseconds on a 1.1 growth scale:

- bucket ``0`` holds everything up to one microsecond,
- bucket ``i`` holds durations in ``(1.1 ** (i - 1), 1.1 ** i]`` microseconds,
- bucket ``255`` is the overflow catch-all (roughly nine hours and up).

These constants are shared with the collector; changing them breaks the
wire contract.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

LATENCY_BUCKET_COUNT = 256
LATENCY_GROWTH_FACTOR = 1.1

_LOG_GROWTH = math.log(LATENCY_GROWTH_FACTOR)
_OVERFLOW_BUCKET = LATENCY_BUCKET_COUNT - 1


def latency_bucket(nanos: float) -> int:
    """Map a duration in nanoseconds to its histogram bucket index."""
    micros = nanos / 1000 if nanos > 0 else 0.0
    if micros <= 1:
        return 0
    if math.isinf(micros):
        return _OVERFLOW_BUCKET
    bucket = math.ceil(math.log(micros) / _LOG_GROWTH)
    return min(bucket, _OVERFLOW_BUCKET)


def trim_latency_counts(counts: Iterable[int]) -> list[int]:
    """
    Serialize bucket counts compactly.

    Each maximal run of empty buckets becomes one negative number (the run
    length to skip); non-empty buckets are emitted as-is, in bucket order.
    """
    out: list[int] = []
    zeros = 0
    for value in counts:
        if value == 0:
            zeros += 1
            continue
        if zeros:
            out.append(-zeros)
            zeros = 0
        out.append(value)
    if zeros:
        out.append(-zeros)
    return out


def expand_latency_counts(
    trimmed: Iterable[int], *, size: int = LATENCY_BUCKET_COUNT
) -> list[int]:
    """Inverse of ``trim_latency_counts``; pads the result to ``size``."""
    counts: list[int] = []
    for value in trimmed:
        if value < 0:
            counts.extend([0] * -value)
        else:
            counts.append(value)
    if len(counts) > size:
        raise ValueError(
            f"Trimmed histogram describes {len(counts)} buckets, expected at most {size}"
        )
    counts.extend([0] * (size - len(counts)))
    return counts


@dataclass(slots=True)
class Histogram:
    """Bucketed latency counters for one field, client or request shape."""

    counts: list[int] = field(default_factory=lambda: [0] * LATENCY_BUCKET_COUNT)

    def add(self, nanos: float) -> int:
        """Count one duration; returns the bucket it landed in."""
        bucket = latency_bucket(nanos)
        self.counts[bucket] += 1
        return bucket

    def count(self, bucket: int) -> int:
        """Return the number of observations in one bucket."""
        return self.counts[bucket]

    @property
    def total(self) -> int:
        """Total number of observations."""
        return sum(self.counts)

    def trim(self) -> list[int]:
        """Compact serialization of this histogram."""
        return trim_latency_counts(self.counts)

    @classmethod
    def from_trimmed(cls, trimmed: Sequence[int]) -> "Histogram":
        """Rebuild a histogram from its compact serialization."""
        return cls(counts=expand_latency_counts(trimmed))
