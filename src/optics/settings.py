"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Agent settings and explicit config loading.
"""

from __future__ import annotations

import os
import urllib.parse
from dataclasses import dataclass

from .errors import ConfigurationError
from .transport.retry import RetryPolicy

DEFAULT_ENDPOINT_URL = "https://optics-report.apollodata.com"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(frozen=True, slots=True)
class AgentSettings:
    """
    Explicit settings used by the agent, its scheduler and its transport.

    Attributes:
        api_key: Collector API key sent as ``x-api-key`` when set.
        endpoint_url: Collector base URL; upload paths are appended to it.
        report_interval_s: Length of one report period (flush interval).
        schema_report_delay_s: Delay between ``start()`` and the one-shot
            schema report.
        report_traces: Whether sampled requests are uploaded as traces.
        report_variables: Whether traces include operation variable values.
        print_reports: Whether outbound messages are logged as JSON.
        timeout_s: HTTP timeout for one upload attempt.
        max_attempts: Upload attempts per report, first attempt included.
        backoff_base_s: Delay before the first retry; doubles per retry.
        backoff_max_s: Upper bound for one retry delay.
        backoff_jitter_s: Random extra delay added to each retry.
        shutdown_timeout_s: Grace period for in-flight uploads on shutdown.
    """

    api_key: str | None = None
    endpoint_url: str = DEFAULT_ENDPOINT_URL
    report_interval_s: float = 60.0
    schema_report_delay_s: float = 10.0
    report_traces: bool = True
    report_variables: bool = True
    print_reports: bool = False

    timeout_s: float = 10.0
    max_attempts: int = 3
    backoff_base_s: float = 1.0
    backoff_max_s: float = 30.0
    backoff_jitter_s: float = 0.0
    shutdown_timeout_s: float = 5.0

    def __post_init__(self) -> None:
        parsed = urllib.parse.urlparse(self.endpoint_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigurationError(
                f"endpoint_url must be an absolute http(s) URL, got '{self.endpoint_url}'"
            )
        if self.report_interval_s <= 0:
            raise ConfigurationError("report_interval_s must be > 0")
        if self.schema_report_delay_s < 0:
            raise ConfigurationError("schema_report_delay_s must be >= 0")
        if self.timeout_s <= 0:
            raise ConfigurationError("timeout_s must be > 0")
        if self.max_attempts < 1:
            raise ConfigurationError("max_attempts must be >= 1")
        if self.backoff_base_s < 0 or self.backoff_jitter_s < 0:
            raise ConfigurationError("backoff delays must be >= 0")
        if self.shutdown_timeout_s < 0:
            raise ConfigurationError("shutdown_timeout_s must be >= 0")

    @staticmethod
    def from_env() -> "AgentSettings":
        """Load settings from environment variables."""
        return AgentSettings(
            api_key=os.getenv("OPTICS_API_KEY") or None,
            endpoint_url=os.getenv("OPTICS_ENDPOINT_URL", DEFAULT_ENDPOINT_URL),
            report_interval_s=float(os.getenv("OPTICS_REPORT_INTERVAL_S", "60")),
            schema_report_delay_s=float(
                os.getenv("OPTICS_SCHEMA_REPORT_DELAY_S", "10")
            ),
            report_traces=_env_flag("OPTICS_REPORT_TRACES", True),
            report_variables=_env_flag("OPTICS_REPORT_VARIABLES", True),
            print_reports=_env_flag("OPTICS_PRINT_REPORTS", False),
            timeout_s=float(os.getenv("OPTICS_TIMEOUT_S", "10")),
            max_attempts=int(os.getenv("OPTICS_MAX_ATTEMPTS", "3")),
            backoff_base_s=float(os.getenv("OPTICS_BACKOFF_BASE_S", "1")),
            backoff_max_s=float(os.getenv("OPTICS_BACKOFF_MAX_S", "30")),
            backoff_jitter_s=float(os.getenv("OPTICS_BACKOFF_JITTER_S", "0")),
            shutdown_timeout_s=float(os.getenv("OPTICS_SHUTDOWN_TIMEOUT_S", "5")),
        )

    def retry_policy(self) -> RetryPolicy:
        """Build the upload retry policy described by these settings."""
        return RetryPolicy(
            max_attempts=self.max_attempts,
            backoff_base_s=self.backoff_base_s,
            backoff_max_s=self.backoff_max_s,
            backoff_jitter_s=self.backoff_jitter_s,
        )


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean flag, got '{raw}'")
