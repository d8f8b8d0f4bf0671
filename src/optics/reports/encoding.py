"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Wire encoders for report messages.
"""

from __future__ import annotations

from typing import Protocol

from .models import ReportMessage


class ReportEncoder(Protocol):
    """Encoder contract used by the collector transport."""

    content_type: str

    def encode(self, message: ReportMessage) -> bytes:
        """Serialize one report message into an upload body."""
        ...


class JSONReportEncoder:
    """Encode report messages as compact JSON using wire field names."""

    content_type = "application/json"

    def encode(self, message: ReportMessage) -> bytes:
        return message.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")
