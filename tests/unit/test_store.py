"""Unit tests for the incident stores and listing."""
from __future__ import annotations

import json
from datetime import timedelta

import pytest

from conftest import NOW, make_incident
from raven_local.errors import StoreError, StoreQueryError, StoreWriteError
from raven_local.store import JsonlIncidentStore, MemoryIncidentStore
from raven_local.store.listing import MAX_LIMIT, list_incidents


def test_memory_insert_is_all_or_nothing():
    store = MemoryIncidentStore([make_incident("a")])
    with pytest.raises(StoreWriteError):
        store.insert_many([make_incident("b"), make_incident("a")])
    assert len(store) == 1
    assert store.existing_external_ids(["a", "b"]) == {"a"}


def test_query_window_is_half_open_and_newest_first():
    store = MemoryIncidentStore(
        [
            make_incident("old", occurred_at=NOW - timedelta(days=8)),
            make_incident("edge", occurred_at=NOW - timedelta(days=7)),
            make_incident("new", occurred_at=NOW - timedelta(hours=1)),
            make_incident("undated", occurred_at=None),
            make_incident("elsewhere", municipality="Cary", occurred_at=NOW - timedelta(hours=2)),
        ]
    )
    rows = store.query(since=NOW - timedelta(days=7), until=NOW, municipality="Crystal Lake")
    assert [r.external_id for r in rows] == ["new", "edge"]
    assert [r.external_id for r in store.query(until=NOW - timedelta(days=7))] == ["old"]
    assert len(store.query()) == 5


def test_jsonl_roundtrips_rows(tmp_path):
    path = tmp_path / "data" / "incidents.jsonl"
    store = JsonlIncidentStore(path)
    stored = store.insert_many(
        [
            make_incident("a", "traffic", occurred_at=NOW, raw_data={"url": "https://x.test"}),
            make_incident("b", "fire", occurred_at=NOW - timedelta(days=1)),
        ]
    )
    assert all(r.id for r in stored)

    reopened = JsonlIncidentStore(path)
    rows = reopened.query()
    assert [r.external_id for r in rows] == ["a", "b"]
    assert rows[0].occurred_at == NOW
    assert rows[0].raw_data == {"url": "https://x.test"}
    assert reopened.existing_external_ids(["a", "z"]) == {"a"}
    assert [r.external_id for r in reopened.query(category="fire")] == ["b"]


def test_jsonl_failed_batch_leaves_file_unchanged(tmp_path):
    path = tmp_path / "incidents.jsonl"
    store = JsonlIncidentStore(path)
    store.insert_many([make_incident("a")])
    before = path.read_text(encoding="utf-8")

    with pytest.raises(StoreWriteError):
        store.insert_many([make_incident("b"), make_incident("a")])
    assert path.read_text(encoding="utf-8") == before


def test_jsonl_unreadable_row(tmp_path):
    path = tmp_path / "incidents.jsonl"
    path.write_text(json.dumps({"title": "no key"}) + "\n", encoding="utf-8")
    with pytest.raises(StoreQueryError):
        JsonlIncidentStore(path).query()


def test_jsonl_invalid_utf8_row(tmp_path):
    path = tmp_path / "incidents.jsonl"
    path.write_bytes(b"\xff\xfe garbage\n")
    store = JsonlIncidentStore(path)
    with pytest.raises(StoreQueryError):
        store.existing_external_ids(["x"])
    with pytest.raises(StoreWriteError):
        store.insert_many([make_incident("x")])


def test_jsonl_non_object_row(tmp_path):
    path = tmp_path / "incidents.jsonl"
    path.write_text("[1, 2]\n", encoding="utf-8")
    with pytest.raises(StoreQueryError):
        JsonlIncidentStore(path).query()


def test_jsonl_unusable_location(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    with pytest.raises(StoreError):
        JsonlIncidentStore(blocker / "sub" / "incidents.jsonl")


def test_list_incidents_pages_and_counts():
    rows = [make_incident(f"t{i}", "traffic", occurred_at=NOW - timedelta(hours=i + 1)) for i in range(5)]
    rows.append(make_incident("f", "fire", municipality="Cary", occurred_at=NOW - timedelta(minutes=5)))
    rows.append(make_incident("stale", "fire", occurred_at=NOW - timedelta(days=30)))
    store = MemoryIncidentStore(rows)

    page = list_incidents(store, limit=2, offset=1, now=NOW)
    assert page["total"] == 6
    assert [r["external_id"] for r in page["items"]] == ["t0", "t1"]
    assert page["categoryCounts"] == {"traffic": 5, "fire": 1}

    cary = list_incidents(store, municipality="Cary", now=NOW)
    assert [r["external_id"] for r in cary["items"]] == ["f"]

    assert list_incidents(store, limit=10_000, now=NOW)["limit"] == MAX_LIMIT
