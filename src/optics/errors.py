"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Error hierarchy for the telemetry agent.
"""

from __future__ import annotations


class OpticsError(RuntimeError):
    """Base error for the telemetry agent."""


class ConfigurationError(OpticsError):
    """Raised when agent settings are invalid."""


class StoreFrozenError(OpticsError):
    """Raised when a mutation targets a store already handed off for reporting."""


class SchemaIntrospectionError(OpticsError):
    """Raised when the schema snapshot query cannot be executed."""


class TransportError(OpticsError):
    """
    Raised when one upload attempt to the collector fails.

    Attributes:
        status: HTTP status code, when the collector answered at all.
        retryable: Whether another attempt may succeed.
    """

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.retryable = retryable
