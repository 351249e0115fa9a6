"""Unit tests for fingerprints and the deduplicating writer."""
from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import NOW, make_incident
from raven_local.errors import StoreQueryError, StoreWriteError
from raven_local.ingest.dedupe import (
    FINGERPRINT_LENGTH,
    DedupWriter,
    dedupe_batch,
    external_id,
    fingerprint,
)
from raven_local.store import MemoryIncidentStore


def test_fingerprint_is_deterministic_and_short():
    a = fingerprint("scanner", "Crash in Cary", "Two cars")
    assert a == fingerprint("scanner", "Crash in Cary", "Two cars")
    assert len(a) == FINGERPRINT_LENGTH
    assert all(c in "0123456789abcdef" for c in a)


def test_fingerprint_ignores_description_beyond_prefix():
    base = "x" * 100
    a = fingerprint("scanner", "title", (base + " first edit")[:100])
    b = fingerprint("scanner", "title", (base + " second edit")[:100])
    assert a == b


def test_fingerprint_parts_are_delimited():
    assert fingerprint("ab", "c") != fingerprint("a", "bc")
    assert fingerprint("a", None) == fingerprint("a", "")


def test_external_id_prefix():
    assert external_id("county", "0123456789abcdef") == "county_0123456789abcdef"


def test_dedupe_batch_first_wins():
    rows = [make_incident("x", title="first"), make_incident("y"), make_incident("x", title="second")]
    uniques, dropped = dedupe_batch(rows)
    assert [r.title for r in uniques] == ["first", "y"]
    assert dropped == {2: "x"}


def test_writer_inserts_only_new_rows():
    store = MemoryIncidentStore([make_incident("a")])
    result = DedupWriter(store).write([make_incident("a"), make_incident("b"), make_incident("b")], now=NOW)
    assert (result.fetched, result.inserted, result.skipped) == (3, 1, 2)
    assert [r.external_id for r in result.rows] == ["b"]
    assert result.rows[0].reported_at == NOW
    assert result.rows[0].id
    assert len(store) == 2


def test_writer_is_idempotent():
    store = MemoryIncidentStore()
    batch = [make_incident("a", occurred_at=NOW), make_incident("b", occurred_at=NOW - timedelta(hours=1))]
    first = DedupWriter(store).write(batch, now=NOW)
    second = DedupWriter(store).write(batch, now=NOW)
    assert first.inserted == 2
    assert second.inserted == 0
    assert second.skipped == 2
    assert len(store) == 2


def test_writer_with_empty_batch_does_not_touch_store():
    class Untouchable(MemoryIncidentStore):
        def existing_external_ids(self, external_ids):
            raise AssertionError("store should not be queried")

    result = DedupWriter(Untouchable()).write([])
    assert (result.fetched, result.inserted, result.skipped) == (0, 0, 0)


def test_writer_propagates_store_errors():
    class Failing(MemoryIncidentStore):
        def existing_external_ids(self, external_ids):
            raise StoreQueryError("connection refused")

    with pytest.raises(StoreQueryError):
        DedupWriter(Failing()).write([make_incident("a")])


def test_writer_write_failure_leaves_store_empty():
    class Failing(MemoryIncidentStore):
        def insert_many(self, incidents):
            raise StoreWriteError("disk full")

    store = Failing()
    with pytest.raises(StoreWriteError):
        DedupWriter(store).write([make_incident("a"), make_incident("b")])
    assert len(store) == 0
