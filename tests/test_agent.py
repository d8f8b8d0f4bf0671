from __future__ import annotations

import asyncio

import pytest
from graphql import build_schema

from optics import Agent, AgentSettings, ConfigurationError
from optics.core import HTTPRequestInfo
from optics.reports import (
    SCHEMA_PATH,
    STATS_PATH,
    TRACES_PATH,
    SchemaReport,
    StatsReport,
    TracesReport,
)

SDL = "type Query { hello: String }"
ROOT = {"hello": "world"}
WEB = HTTPRequestInfo(
    host="api.example.com",
    path="/graphql",
    client_addr="10.0.0.1",
    headers={"apollographql-client-name": "web", "apollographql-client-version": "1"},
)


def run_async(coro):
    return asyncio.run(coro)


class FakeTransport:
    endpoint_url = "https://collector.example.com"

    def __init__(self) -> None:
        self.sent: list[tuple[str, object, bool]] = []

    async def send(self, path, message, *, retry=True):
        self.sent.append((path, message, retry))
        return True

    def paths(self) -> list[str]:
        return [path for path, _, _ in self.sent]


def make_agent(transport: FakeTransport, *, sdl: str = SDL, **settings) -> Agent:
    agent = Agent(AgentSettings(**settings), transport=transport)
    agent.instrument_schema(build_schema(sdl))
    return agent


def test_flush_swaps_in_fresh_store_and_uploads_old_one():
    async def scenario() -> None:
        transport = FakeTransport()
        agent = make_agent(transport, report_traces=False)
        await agent.execute("{ hello }", request=WEB, root_value=ROOT)
        before = agent.store

        frozen = agent.flush()
        await agent.shutdown()

        assert frozen is before
        assert frozen.frozen
        assert agent.store is not frozen
        assert len(agent.store) == 0
        assert agent.store.started_at_ms >= frozen.started_at_ms
        assert transport.paths() == [STATS_PATH]
        report = transport.sent[0][1]
        assert isinstance(report, StatsReport)
        assert list(report.per_signature) == ["# -\n{ hello }"]
        stats = report.per_signature["# -\n{ hello }"].per_client_name["web"]
        assert stats.count_per_version == {"1": 1}

    run_async(scenario())


def test_requests_after_flush_land_in_new_store():
    async def scenario() -> None:
        agent = make_agent(FakeTransport(), report_traces=False)
        await agent.execute("{ hello }", root_value=ROOT)
        frozen = agent.flush()
        await agent.execute("{ hello }", root_value=ROOT)
        await agent.shutdown()

        sig = "# -\n{ hello }"
        assert frozen.get(sig).per_client["none"].histogram.total == 1
        assert agent.store.get(sig).per_client["none"].histogram.total == 1

    run_async(scenario())


def test_first_request_in_bucket_is_traced():
    async def scenario() -> None:
        transport = FakeTransport()
        agent = make_agent(transport)
        await agent.execute("{ hello }", request=WEB, root_value=ROOT)
        await agent.shutdown()

        assert TRACES_PATH in transport.paths()
        report = next(m for p, m, _ in transport.sent if p == TRACES_PATH)
        assert isinstance(report, TracesReport)
        trace = report.trace[0]
        assert trace.client_name == "web"
        assert trace.http.host == "api.example.com"
        assert [node.field_name for node in trace.execute.child] == ["Query.hello"]

    run_async(scenario())


def test_traces_can_be_disabled():
    async def scenario() -> None:
        transport = FakeTransport()
        agent = make_agent(transport, report_traces=False)
        await agent.execute("{ hello }", request=WEB, root_value=ROOT)
        await agent.shutdown()

        assert transport.sent == []

    run_async(scenario())


def test_schema_is_reported_once_without_retry():
    async def scenario() -> None:
        transport = FakeTransport()
        agent = make_agent(transport, schema_report_delay_s=0.01, report_interval_s=3600)
        await agent.start()
        await asyncio.sleep(0.1)
        await agent.shutdown()

        schema_sends = [(m, retry) for p, m, retry in transport.sent if p == SCHEMA_PATH]
        assert len(schema_sends) == 1
        report, retry = schema_sends[0]
        assert isinstance(report, SchemaReport)
        assert retry is False

    run_async(scenario())


def test_periodic_flush_uploads_stats():
    async def scenario() -> None:
        transport = FakeTransport()
        agent = make_agent(transport, report_interval_s=0.02, schema_report_delay_s=60)
        await agent.start()
        await asyncio.sleep(0.1)
        await agent.shutdown()

        assert STATS_PATH in transport.paths()
        assert SCHEMA_PATH not in transport.paths()

    run_async(scenario())


def test_shutdown_cancels_timers_without_sending():
    async def scenario() -> None:
        transport = FakeTransport()
        agent = make_agent(transport, report_interval_s=60, schema_report_delay_s=60)
        async with agent:
            assert agent.is_running
        await asyncio.sleep(0.01)

        assert not agent.is_running
        assert transport.sent == []

    run_async(scenario())


def test_start_twice_is_rejected():
    async def scenario() -> None:
        agent = make_agent(FakeTransport())
        await agent.start()
        try:
            with pytest.raises(RuntimeError):
                await agent.start()
        finally:
            await agent.shutdown()

    run_async(scenario())


def test_execute_without_schema_is_rejected():
    agent = Agent(transport=FakeTransport())

    with pytest.raises(ConfigurationError):
        run_async(agent.execute("{ hello }"))


def test_schema_report_skipped_without_schema():
    agent = Agent(transport=FakeTransport())

    assert run_async(agent.report_schema()) is False


GATED_SDL = "type Query { hello: String slow: String }"


def gated_root(gate: asyncio.Event) -> dict:
    async def slow(_info):
        await gate.wait()
        return "late"

    return {"hello": "world", "slow": slow}


def test_concurrent_requests_with_different_shapes_stay_separate():
    async def scenario() -> None:
        gate = asyncio.Event()
        root = gated_root(gate)
        agent = make_agent(FakeTransport(), sdl=GATED_SDL, report_traces=False)

        slow_request = asyncio.create_task(agent.execute("{ slow }", root_value=root))
        hello_request = asyncio.create_task(
            agent.execute("{ hello }", request=WEB, root_value=root)
        )
        await asyncio.sleep(0.01)
        gate.set()
        await asyncio.gather(slow_request, hello_request)
        await agent.shutdown()

        slow_entry = agent.store.get("# -\n{ slow }")
        hello_entry = agent.store.get("# -\n{ hello }")
        assert set(slow_entry.per_field["Query"]) == {"slow"}
        assert set(hello_entry.per_field["Query"]) == {"hello"}
        assert slow_entry.per_field["Query"]["slow"].histogram.total == 1
        assert hello_entry.per_field["Query"]["hello"].histogram.total == 1
        assert list(slow_entry.per_client) == ["none"]
        assert list(hello_entry.per_client) == ["web"]
        assert slow_entry.per_client["none"].histogram.total == 1
        assert hello_entry.per_client["web"].histogram.total == 1

    run_async(scenario())


def test_flush_during_live_request_never_double_counts():
    async def scenario() -> None:
        gate = asyncio.Event()
        root = gated_root(gate)
        agent = make_agent(FakeTransport(), sdl=GATED_SDL, report_traces=False)
        sig = "# -\n{ slow hello }"

        live = asyncio.create_task(agent.execute("{ slow hello }", root_value=root))
        await asyncio.sleep(0.01)
        frozen = agent.flush()
        await agent.execute("{ hello }", root_value=root)
        gate.set()
        result = await live
        await agent.shutdown()

        assert result.data == {"slow": "late", "hello": "world"}

        old_entry = frozen.get(sig)
        assert old_entry.per_field["Query"]["hello"].histogram.total == 1
        assert old_entry.per_field["Query"]["slow"].histogram.total == 0
        assert old_entry.per_client["none"].histogram.total == 0
        assert old_entry.per_client["none"].per_version == {}

        new_entry = agent.store.get(sig)
        assert new_entry.per_client["none"].histogram.total == 1
        assert new_entry.per_client["none"].per_version == {"none": 1}
        assert new_entry.per_field["Query"]["slow"].histogram.total == 0
        assert new_entry.per_field["Query"]["hello"].histogram.total == 0

        other = agent.store.get("# -\n{ hello }")
        assert other.per_client["none"].histogram.total == 1
        assert frozen.get("# -\n{ hello }") is None

    run_async(scenario())
