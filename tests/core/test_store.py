from __future__ import annotations

import pytest

from optics.core import (
    AggregationStore,
    ensure_fields_initialized,
    get_or_create_client_stats,
    get_or_create_entry,
    latency_bucket,
    record_client_latency,
    record_field_latency,
    referenced_fragments,
)
from optics.errors import StoreFrozenError


def test_recording_on_missing_entry_is_a_noop():
    store = AggregationStore()

    assert record_field_latency(store, "# -\n{hello}", "Query", "hello", 1_000) is False
    assert record_client_latency(store, "# -\n{hello}", "web", 1_000) is False
    assert len(store) == 0


def test_recording_on_missing_field_or_client_is_a_noop():
    store = AggregationStore()
    entry = get_or_create_entry(store, "sig")

    assert record_field_latency(store, "sig", "Query", "hello", 1_000) is False
    assert record_client_latency(store, "sig", "web", 1_000) is False
    assert entry.per_field == {}
    assert entry.per_client == {}


def test_frozen_store_rejects_new_entries_and_drops_samples():
    store = AggregationStore()
    entry = get_or_create_entry(store, "sig")
    stats = get_or_create_client_stats(entry, "web")
    store.freeze()

    assert store.frozen
    assert record_client_latency(store, "sig", "web", 5_000) is False
    assert stats.histogram.total == 0
    with pytest.raises(StoreFrozenError):
        get_or_create_entry(store, "other")


def test_get_or_create_entry_reuses_existing_entry():
    store = AggregationStore()
    first = get_or_create_entry(store, "sig")

    assert get_or_create_entry(store, "sig") is first
    assert "sig" in store
    assert list(store) == ["sig"]


def test_fields_are_initialized_from_declared_selections(make_info):
    info = make_info(
        """
        query Profile {
          hello
          user(id: "1") { ...UserParts friends { id } }
        }
        fragment UserParts on User { id name }
        """
    )
    store = AggregationStore()
    entry = get_or_create_entry(store, "sig")

    assert ensure_fields_initialized(entry, info.schema, info.operation, info.fragments)

    assert set(entry.per_field) == {"Query", "User"}
    assert {
        name: stats.return_type for name, stats in entry.per_field["Query"].items()
    } == {"hello": "String", "user": "User"}
    assert {
        name: stats.return_type for name, stats in entry.per_field["User"].items()
    } == {"id": "ID!", "name": "String", "friends": "[User!]"}


def test_fields_are_initialized_only_once(make_info):
    schema_info = make_info("{ hello }")
    store = AggregationStore()
    entry = get_or_create_entry(store, "sig")
    ensure_fields_initialized(entry, schema_info.schema, schema_info.operation)

    other = make_info('{ user(id: "1") { id } }', schema=schema_info.schema)

    assert ensure_fields_initialized(entry, other.schema, other.operation) is False
    assert set(entry.per_field) == {"Query"}
    assert set(entry.per_field["Query"]) == {"hello"}


def test_unknown_fields_are_skipped(make_info):
    info = make_info("{ hello missing }")
    store = AggregationStore()
    entry = get_or_create_entry(store, "sig")

    ensure_fields_initialized(entry, info.schema, info.operation)

    assert set(entry.per_field["Query"]) == {"hello"}


def test_field_latency_lands_in_its_bucket(make_info):
    info = make_info("{ hello }")
    store = AggregationStore()
    entry = get_or_create_entry(store, "sig")
    ensure_fields_initialized(entry, info.schema, info.operation)

    assert record_field_latency(store, "sig", "Query", "hello", 2_000_000)

    histogram = entry.per_field["Query"]["hello"].histogram
    assert histogram.count(latency_bucket(2_000_000)) == 1
    assert histogram.total == 1


def test_stores_do_not_share_state():
    old = AggregationStore()
    new = AggregationStore()
    entry = get_or_create_entry(old, "sig")
    get_or_create_client_stats(entry, "web")
    record_client_latency(old, "sig", "web", 1_000_000)

    assert len(new) == 0
    assert record_client_latency(new, "sig", "web", 1_000_000) is False


def test_referenced_fragments_are_transitive_and_sorted(make_info):
    info = make_info(
        """
        { user(id: "1") { ...B } }
        fragment B on User { id ...A }
        fragment A on User { name }
        fragment Unused on User { id }
        """
    )

    names = [f.name.value for f in referenced_fragments(info.operation, info.fragments)]

    assert names == ["A", "B"]


def test_setdefault_entry_returns_existing_entry_of_frozen_store():
    store = AggregationStore()
    entry = store.setdefault_entry("sig")
    store.freeze()

    assert store.setdefault_entry("sig") is entry
    with pytest.raises(StoreFrozenError):
        store.setdefault_entry("other")
    assert list(store) == ["sig"]
