from __future__ import annotations

import asyncio
import json

import pytest

from optics.errors import TransportError
from optics.reports import STATS_PATH, SCHEMA_PATH, Timestamp
from optics.transport import (
    METRIC_REPORT_RETRIES_TOTAL,
    METRIC_REPORTS_FAILED_TOTAL,
    METRIC_REPORTS_SENT_TOTAL,
    CollectorTransport,
    RetryPolicy,
    backoff_delay,
    call_with_retry,
    classify_error,
)


def run_async(coro):
    return asyncio.run(coro)


class ScriptedPoster:
    """Replays scripted responses; exceptions in the script are raised."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls: list[tuple[str, bytes, dict, float]] = []

    def __call__(self, url, body, headers, timeout_s):
        self.calls.append((url, body, dict(headers), timeout_s))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response, b"detail"


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class RecordingMetrics:
    def __init__(self) -> None:
        self.counts: list[tuple[str, dict]] = []

    def incr(self, name, value=1, *, tags=None):
        self.counts.append((name, dict(tags or {})))


def make_transport(poster, **kwargs):
    sleep = RecordingSleep()
    metrics = RecordingMetrics()
    transport = CollectorTransport(
        endpoint_url="https://collector.example.com/",
        post=poster,
        sleep=sleep,
        metrics=metrics,
        **kwargs,
    )
    return transport, sleep, metrics


MESSAGE = Timestamp(seconds=1, nanos=2)


def test_successful_upload_posts_encoded_body():
    poster = ScriptedPoster(200)
    transport, sleep, metrics = make_transport(poster, api_key="secret", timeout_s=3.0)

    assert run_async(transport.send(STATS_PATH, MESSAGE)) is True

    url, body, headers, timeout_s = poster.calls[0]
    assert url == "https://collector.example.com/api/ss/stats"
    assert json.loads(body) == {"seconds": 1, "nanos": 2}
    assert headers["x-api-key"] == "secret"
    assert headers["content-type"] == "application/json"
    assert headers["user-agent"] == "optics-agent-py"
    assert timeout_s == 3.0
    assert sleep.delays == []
    assert metrics.counts == [(METRIC_REPORTS_SENT_TOTAL, {"path": STATS_PATH})]


def test_api_key_header_is_omitted_without_key():
    transport, _, _ = make_transport(ScriptedPoster())

    assert "x-api-key" not in transport.headers()


def test_server_errors_are_retried_with_backoff():
    poster = ScriptedPoster(503, 500, 503)
    transport, sleep, metrics = make_transport(poster)

    assert run_async(transport.send(STATS_PATH, MESSAGE)) is False

    assert len(poster.calls) == 3
    assert sleep.delays == [1.0, 2.0]
    names = [name for name, _ in metrics.counts]
    assert names == [
        METRIC_REPORT_RETRIES_TOTAL,
        METRIC_REPORT_RETRIES_TOTAL,
        METRIC_REPORTS_FAILED_TOTAL,
    ]


def test_retry_succeeds_after_transient_failure():
    poster = ScriptedPoster(429, 204)
    transport, sleep, metrics = make_transport(poster)

    assert run_async(transport.send(STATS_PATH, MESSAGE)) is True
    assert sleep.delays == [1.0]
    assert metrics.counts[-1][0] == METRIC_REPORTS_SENT_TOTAL


def test_client_errors_are_not_retried():
    poster = ScriptedPoster(400)
    transport, sleep, _ = make_transport(poster)

    assert run_async(transport.send(STATS_PATH, MESSAGE)) is False
    assert len(poster.calls) == 1
    assert sleep.delays == []


def test_network_errors_are_retried_and_never_raised():
    poster = ScriptedPoster(
        TransportError("Network error: refused", retryable=True),
        ConnectionResetError("reset"),
        OSError("unreachable"),
    )
    transport, sleep, _ = make_transport(poster)

    assert run_async(transport.send(STATS_PATH, MESSAGE)) is False
    assert len(poster.calls) == 3
    assert sleep.delays == [1.0, 2.0]


def test_single_attempt_send_skips_retries():
    poster = ScriptedPoster(503)
    transport, sleep, _ = make_transport(poster)

    assert run_async(transport.send(SCHEMA_PATH, MESSAGE, retry=False)) is False
    assert len(poster.calls) == 1
    assert sleep.delays == []


def test_backoff_doubles_and_is_capped():
    policy = RetryPolicy(backoff_base_s=1.0, backoff_max_s=5.0)

    assert [backoff_delay(i, policy) for i in range(5)] == [1.0, 2.0, 4.0, 5.0, 5.0]


def test_classify_error_marks_network_failures_retryable():
    assert classify_error(TimeoutError("slow")).retryable
    assert classify_error(ConnectionRefusedError("refused")).retryable
    assert not classify_error(ValueError("bad")).retryable


def test_call_with_retry_raises_last_error_when_exhausted():
    attempts: list[int] = []

    async def failing():
        attempts.append(1)
        raise TransportError("HTTP 502", status=502, retryable=True)

    async def no_sleep(_delay):
        return None

    with pytest.raises(TransportError) as excinfo:
        run_async(
            call_with_retry(failing, policy=RetryPolicy(max_attempts=2), sleep=no_sleep)
        )

    assert excinfo.value.status == 502
    assert len(attempts) == 2


def test_prometheus_metrics_count_uploads():
    prometheus_client = pytest.importorskip("prometheus_client")
    from optics.transport import PrometheusTransportMetrics

    registry = prometheus_client.CollectorRegistry()
    metrics = PrometheusTransportMetrics(registry=registry)
    transport = CollectorTransport(
        endpoint_url="https://collector.example.com",
        post=ScriptedPoster(500, 200),
        sleep=RecordingSleep(),
        metrics=metrics,
    )

    assert run_async(transport.send(STATS_PATH, MESSAGE)) is True

    labels = {"path": STATS_PATH}
    assert registry.get_sample_value(METRIC_REPORTS_SENT_TOTAL, labels) == 1.0
    assert registry.get_sample_value(METRIC_REPORT_RETRIES_TOTAL, labels) == 1.0
    assert registry.get_sample_value(METRIC_REPORTS_FAILED_TOTAL, labels) is None
