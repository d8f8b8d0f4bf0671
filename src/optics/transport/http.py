"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Best-effort HTTP delivery of encoded reports to the collector.
"""

from __future__ import annotations

import asyncio
import logging
import urllib.error
import urllib.request
from collections.abc import Callable, Mapping

from ..errors import TransportError
from ..reports.encoding import JSONReportEncoder, ReportEncoder
from ..reports.models import ReportMessage
from ..version import AGENT_NAME
from .metrics import (
    METRIC_REPORT_RETRIES_TOTAL,
    METRIC_REPORTS_FAILED_TOTAL,
    METRIC_REPORTS_SENT_TOTAL,
    NoOpTransportMetrics,
    TransportMetrics,
)
from .retry import RetryPolicy, Sleeper, call_with_retry

logger = logging.getLogger("optics.transport")
report_logger = logging.getLogger("optics.reports")

# (url, body, headers, timeout_s) -> (status, response body)
HTTPPoster = Callable[[str, bytes, Mapping[str, str], float], tuple[int, bytes]]

_RETRYABLE_STATUSES = {408, 429}
_SINGLE_ATTEMPT = RetryPolicy(max_attempts=1)


def http_post(
    url: str, body: bytes, headers: Mapping[str, str], timeout_s: float
) -> tuple[int, bytes]:
    """POST one body; HTTP error statuses are returned, network errors raised."""
    req = urllib.request.Request(url, data=body, method="POST", headers=dict(headers))
    try:
        with urllib.request.urlopen(req, timeout=timeout_s) as resp:  # noqa: S310
            return resp.status, resp.read()
    except urllib.error.HTTPError as e:
        payload = b""
        try:
            payload = e.read()
        except Exception:  # noqa: BLE001
            payload = b""
        return e.code, payload
    except urllib.error.URLError as e:
        raise TransportError(f"Network error: {e.reason}", retryable=True) from e


class CollectorTransport:
    """
    Upload report messages to ``endpoint_url + path``.

    ``send`` never raises: failures are logged and counted, and the report
    is discarded once the retry budget is spent.
    """

    def __init__(
        self,
        *,
        endpoint_url: str,
        api_key: str | None = None,
        encoder: ReportEncoder | None = None,
        retry_policy: RetryPolicy | None = None,
        timeout_s: float = 10.0,
        metrics: TransportMetrics | None = None,
        print_reports: bool = False,
        post: HTTPPoster | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._endpoint_url = endpoint_url.rstrip("/")
        self._api_key = api_key
        self._encoder: ReportEncoder = encoder or JSONReportEncoder()
        self._retry_policy = retry_policy or RetryPolicy()
        self._timeout_s = timeout_s
        self._metrics: TransportMetrics = metrics or NoOpTransportMetrics()
        self._print_reports = print_reports
        self._post = post or http_post
        self._sleep = sleep

    @property
    def endpoint_url(self) -> str:
        return self._endpoint_url

    def headers(self) -> dict[str, str]:
        """Headers attached to every upload."""
        headers = {
            "user-agent": AGENT_NAME,
            "content-type": self._encoder.content_type,
        }
        if self._api_key:
            headers["x-api-key"] = self._api_key
        return headers

    async def send(
        self, path: str, message: ReportMessage, *, retry: bool = True
    ) -> bool:
        """
        Deliver one message; returns whether the collector accepted it.

        With ``retry=False`` exactly one attempt is made.
        """
        tags = {"path": path}
        try:
            body = self._encoder.encode(message)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to encode report for %s", path)
            self._metrics.incr(METRIC_REPORTS_FAILED_TOTAL, tags=tags)
            return False

        if self._print_reports:
            report_logger.info(
                "OPTICS %s %s", path, message.model_dump_json(by_alias=True)
            )

        url = f"{self._endpoint_url}{path}"

        def _on_retry(attempt: int, error: TransportError, delay: float) -> None:
            self._metrics.incr(METRIC_REPORT_RETRIES_TOTAL, tags=tags)
            logger.info(
                "Retrying report upload to %s in %.1fs (attempt %d failed: %s)",
                url,
                delay,
                attempt,
                error,
            )

        try:
            await call_with_retry(
                lambda: self._post_once(url, body),
                policy=self._retry_policy if retry else _SINGLE_ATTEMPT,
                on_retry=_on_retry,
                sleep=self._sleep,
            )
        except TransportError as exc:
            self._metrics.incr(METRIC_REPORTS_FAILED_TOTAL, tags=tags)
            if exc.status is not None:
                logger.warning("Collector rejected report for %s: %s", path, exc)
            else:
                logger.warning("Error trying to report to collector: %s", exc)
            return False

        self._metrics.incr(METRIC_REPORTS_SENT_TOTAL, tags=tags)
        return True

    async def _post_once(self, url: str, body: bytes) -> None:
        status, payload = await asyncio.to_thread(
            self._post, url, body, self.headers(), self._timeout_s
        )
        if 200 <= status <= 299:
            return
        detail = payload.decode("utf-8", errors="replace")[:200]
        raise TransportError(
            f"Collector returned HTTP {status}: {detail}",
            status=status,
            retryable=status in _RETRYABLE_STATUSES or status >= 500,
        )
