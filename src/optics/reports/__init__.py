"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Report messages, builders and encoders.
"""

from .builder import (
    build_schema_report,
    build_signature_stats,
    build_stats_report,
    build_trace,
    build_trace_report,
    report_header,
)
from .contracts import SCHEMA_PATH, STATS_PATH, TRACES_PATH
from .encoding import JSONReportEncoder, ReportEncoder
from .models import (
    FieldStat,
    HTTPInfo,
    ReportHeader,
    ReportMessage,
    SchemaField,
    SchemaReport,
    SchemaType,
    StatsPerClientName,
    StatsPerSignature,
    StatsReport,
    Timestamp,
    Trace,
    TraceDetails,
    TraceNode,
    TracesReport,
    TypeStat,
)
from .schema import (
    SHORTER_INTROSPECTION_QUERY,
    introspect_schema,
    introspection_json,
    types_from_schema,
)

__all__ = [
    "STATS_PATH",
    "TRACES_PATH",
    "SCHEMA_PATH",
    "ReportMessage",
    "ReportHeader",
    "Timestamp",
    "SchemaField",
    "SchemaType",
    "StatsPerClientName",
    "FieldStat",
    "TypeStat",
    "StatsPerSignature",
    "StatsReport",
    "TraceNode",
    "TraceDetails",
    "HTTPInfo",
    "Trace",
    "TracesReport",
    "SchemaReport",
    "ReportEncoder",
    "JSONReportEncoder",
    "report_header",
    "build_signature_stats",
    "build_stats_report",
    "build_trace",
    "build_trace_report",
    "build_schema_report",
    "SHORTER_INTROSPECTION_QUERY",
    "types_from_schema",
    "introspect_schema",
    "introspection_json",
]
