"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Outbound report messages.

Field names follow the collector's wire schema; Python attribute names that
differ from it carry an alias and are serialized ``by_alias``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ReportMessage(BaseModel):
    """Base for immutable report messages."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Timestamp(ReportMessage):
    seconds: int
    nanos: int

    @classmethod
    def from_epoch_ms(cls, epoch_ms: int) -> "Timestamp":
        """Split epoch milliseconds into whole seconds and the nanosecond rest."""
        ms = int(epoch_ms)
        return cls(seconds=ms // 1000, nanos=(ms % 1000) * 1_000_000)


class ReportHeader(ReportMessage):
    hostname: str
    agent_version: str
    runtime_version: str
    uname: str


class SchemaField(ReportMessage):
    """One field of a schema type listing."""

    name: str
    return_type: str = Field(alias="returnType")


class SchemaType(ReportMessage):
    """One object type of a schema type listing."""

    name: str
    fields: list[SchemaField] = Field(default_factory=list, alias="field")


class StatsPerClientName(ReportMessage):
    latency_count: list[int] = Field(default_factory=list)
    count_per_version: dict[str, int] = Field(default_factory=dict)


class FieldStat(ReportMessage):
    name: str
    return_type: str = Field(alias="returnType")
    latency_count: list[int] = Field(default_factory=list)


class TypeStat(ReportMessage):
    name: str
    fields: list[FieldStat] = Field(default_factory=list, alias="field")


class StatsPerSignature(ReportMessage):
    per_client_name: dict[str, StatsPerClientName] = Field(default_factory=dict)
    per_type: list[TypeStat] = Field(default_factory=list)


class StatsReport(ReportMessage):
    header: ReportHeader
    start_time: Timestamp
    end_time: Timestamp
    realtime_duration: int
    types: list[SchemaType] = Field(default_factory=list, alias="type")
    per_signature: dict[str, StatsPerSignature] = Field(default_factory=dict)


class TraceNode(ReportMessage):
    field_name: str = ""
    start_time: int = 0
    end_time: int = 0
    child: list["TraceNode"] = Field(default_factory=list)


class TraceDetails(ReportMessage):
    raw_query: str = ""
    operation_name: str | None = None
    variables: dict[str, str] | None = None


class HTTPInfo(ReportMessage):
    host: str = ""
    path: str = ""


class Trace(ReportMessage):
    start_time: Timestamp
    end_time: Timestamp
    duration_ns: int
    signature: str
    details: TraceDetails
    client_name: str
    client_version: str
    client_addr: str = ""
    http: HTTPInfo = Field(default_factory=HTTPInfo)
    execute: TraceNode = Field(default_factory=TraceNode)


class TracesReport(ReportMessage):
    header: ReportHeader
    trace: list[Trace] = Field(default_factory=list)


class SchemaReport(ReportMessage):
    header: ReportHeader
    introspection_result: str
    types: list[SchemaType] = Field(default_factory=list, alias="type")
