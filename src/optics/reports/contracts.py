"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Collector upload paths, relative to the configured endpoint URL.
"""

from __future__ import annotations

STATS_PATH = "/api/ss/stats"
TRACES_PATH = "/api/ss/traces"
SCHEMA_PATH = "/api/ss/schema"
