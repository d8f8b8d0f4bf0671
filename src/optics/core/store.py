"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Per-report-period aggregation store.

One ``AggregationStore`` covers exactly one report period. The agent swaps
in a fresh store on every flush and freezes the old one before handing it to
the report builder, so recording helpers here treat a missing path or a
frozen store as "sample dropped" instead of an error.
"""

from __future__ import annotations

import time
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field

from graphql import (
    FragmentDefinitionNode,
    GraphQLSchema,
    OperationDefinitionNode,
    TypeInfo,
    TypeInfoVisitor,
    Visitor,
    visit,
)

from ..errors import StoreFrozenError
from .histogram import Histogram


@dataclass(slots=True)
class FieldStats:
    """Latency histogram for one declared field of one query shape."""

    return_type: str
    histogram: Histogram = field(default_factory=Histogram)


@dataclass(slots=True)
class ClientStats:
    """Request latency histogram and version counts for one client name."""

    histogram: Histogram = field(default_factory=Histogram)
    per_version: dict[str, int] = field(default_factory=dict)


@dataclass(slots=True)
class AggregationEntry:
    """
    Aggregated state for one query signature in one report period.

    Attributes:
        per_client: Client name → request latency stats.
        per_field: Parent type name → field name → field latency stats.
    """

    per_client: dict[str, ClientStats] = field(default_factory=dict)
    per_field: dict[str, dict[str, FieldStats]] = field(default_factory=dict)


class AggregationStore:
    """Mapping of query signature to ``AggregationEntry`` for one period."""

    def __init__(
        self,
        *,
        started_at_ms: int | None = None,
        started_ns: int | None = None,
    ) -> None:
        self._entries: dict[str, AggregationEntry] = {}
        self._frozen = False
        self.started_at_ms = (
            started_at_ms if started_at_ms is not None else int(time.time() * 1000)
        )
        self.started_ns = (
            started_ns if started_ns is not None else time.perf_counter_ns()
        )

    @property
    def frozen(self) -> bool:
        """Whether this store has been handed off for reporting."""
        return self._frozen

    def freeze(self) -> None:
        """Mark the store read-only; subsequent recordings are dropped."""
        self._frozen = True

    def get(self, signature: str) -> AggregationEntry | None:
        """Return the entry for one signature, if it exists this period."""
        return self._entries.get(signature)

    def entries(self) -> Mapping[str, AggregationEntry]:
        """Read-only view of all entries."""
        return self._entries

    def __contains__(self, signature: object) -> bool:
        return signature in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def setdefault_entry(self, signature: str) -> AggregationEntry:
        """
        Return the entry for ``signature``, inserting an empty one if needed.

        Raises:
            StoreFrozenError: If the entry is missing and the store is frozen.
        """
        entry = self._entries.get(signature)
        if entry is not None:
            return entry
        if self._frozen:
            raise StoreFrozenError(
                "Cannot create entries in a store already handed off for reporting"
            )
        entry = AggregationEntry()
        self._entries[signature] = entry
        return entry


def get_or_create_entry(store: AggregationStore, signature: str) -> AggregationEntry:
    """Return the entry for ``signature``, creating an empty one if needed."""
    return store.setdefault_entry(signature)


def get_or_create_client_stats(
    entry: AggregationEntry, client_name: str
) -> ClientStats:
    """Return client stats for ``client_name``, creating them if needed."""
    stats = entry.per_client.get(client_name)
    if stats is None:
        stats = ClientStats()
        entry.per_client[client_name] = stats
    return stats


class _FragmentSpreadCollector(Visitor):
    def __init__(self) -> None:
        super().__init__()
        self.names: list[str] = []

    def enter_fragment_spread(self, node, *_args):
        self.names.append(node.name.value)


def referenced_fragments(
    operation: OperationDefinitionNode,
    fragments: Mapping[str, FragmentDefinitionNode] | None,
) -> list[FragmentDefinitionNode]:
    """Return fragments reachable from ``operation``, sorted by name."""
    available = fragments or {}
    seen: dict[str, FragmentDefinitionNode] = {}
    pending: list[OperationDefinitionNode | FragmentDefinitionNode] = [operation]
    while pending:
        collector = _FragmentSpreadCollector()
        visit(pending.pop(), collector)
        for name in collector.names:
            if name in seen or name not in available:
                continue
            seen[name] = available[name]
            pending.append(available[name])
    return [seen[name] for name in sorted(seen)]


class _FieldSlotCollector(Visitor):
    def __init__(
        self,
        type_info: TypeInfo,
        per_field: dict[str, dict[str, FieldStats]],
    ) -> None:
        super().__init__()
        self._type_info = type_info
        self._per_field = per_field

    def enter_field(self, node, *_args):
        parent_type = self._type_info.get_parent_type()
        field_def = self._type_info.get_field_def()
        if parent_type is None or field_def is None:
            return None
        fields = self._per_field.setdefault(parent_type.name, {})
        field_name = node.name.value
        if field_name not in fields:
            fields[field_name] = FieldStats(return_type=str(field_def.type))
        return None


def ensure_fields_initialized(
    entry: AggregationEntry,
    schema: GraphQLSchema,
    operation: OperationDefinitionNode,
    fragments: Mapping[str, FragmentDefinitionNode] | None = None,
) -> bool:
    """
    Populate ``entry.per_field`` from the declared selections of a query.

    Walks the operation (and the fragments it references) with schema type
    information, so fields skipped at runtime by errors or directives are
    still reported. Runs only while ``per_field`` is empty; returns whether
    it populated anything.
    """
    if entry.per_field:
        return False
    type_info = TypeInfo(schema)
    visitor = TypeInfoVisitor(type_info, _FieldSlotCollector(type_info, entry.per_field))
    visit(operation, visitor)
    for fragment in referenced_fragments(operation, fragments):
        visit(fragment, visitor)
    return bool(entry.per_field)


def record_field_latency(
    store: AggregationStore,
    signature: str,
    type_name: str,
    field_name: str,
    nanos: int,
) -> bool:
    """
    Count one resolver duration for a declared field.

    Drops the sample when the path does not exist in ``store`` (for example
    after a flush mid-request) or when the store is frozen.
    """
    if store.frozen:
        return False
    entry = store.get(signature)
    if entry is None:
        return False
    stats = entry.per_field.get(type_name, {}).get(field_name)
    if stats is None:
        return False
    stats.histogram.add(nanos)
    return True


def record_client_latency(
    store: AggregationStore,
    signature: str,
    client_name: str,
    nanos: int,
) -> bool:
    """Count one request duration for a client; drops when the path is missing."""
    if store.frozen:
        return False
    entry = store.get(signature)
    if entry is None:
        return False
    stats = entry.per_client.get(client_name)
    if stats is None:
        return False
    stats.histogram.add(nanos)
    return True
