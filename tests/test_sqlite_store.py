# tests/test_sqlite_store.py

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from taskmaster.store.errors import DocumentNotFoundError
from taskmaster.store.sqlite_store import SQLiteDocumentStore


def test_create_get_update_delete(tmp_path: Path) -> None:
    store = SQLiteDocumentStore(tmp_path / "docs.sqlite3")

    doc_id = store.create("goals", {"owner_id": "u1", "title": "Read", "progress": 0})
    assert doc_id

    assert store.get("goals", doc_id) == {"owner_id": "u1", "title": "Read", "progress": 0}
    assert store.get("goals", "missing") is None
    assert store.get("other", doc_id) is None

    store.update("goals", doc_id, {"progress": 40, "previous_progress": None})
    doc = store.get("goals", doc_id)
    assert doc is not None
    assert doc["progress"] == 40
    assert doc["title"] == "Read"
    assert "previous_progress" in doc and doc["previous_progress"] is None

    store.delete("goals", doc_id)
    assert store.get("goals", doc_id) is None
    assert store.count_documents("goals") == 0


def test_missing_document_writes_raise(tmp_path: Path) -> None:
    store = SQLiteDocumentStore(tmp_path / "docs.sqlite3")
    with pytest.raises(DocumentNotFoundError):
        store.update("goals", "nope", {"progress": 1})
    with pytest.raises(DocumentNotFoundError):
        store.delete("goals", "nope")


def test_query_is_owner_scoped_and_ordered(tmp_path: Path) -> None:
    store = SQLiteDocumentStore(tmp_path / "docs.sqlite3")
    a = store.create("goals", {"owner_id": "u1", "title": "first"})
    store.create("goals", {"owner_id": "u2", "title": "not mine"})
    b = store.create("goals", {"owner_id": "u1", "title": "second"})

    rows = store.query("goals", owner_id="u1")
    assert [doc_id for doc_id, _ in rows] == [a, b]
    assert store.query("goals", owner_id="") == []


def test_data_survives_reopen(tmp_path: Path) -> None:
    path = tmp_path / "docs.sqlite3"
    doc_id = SQLiteDocumentStore(path).create("goals", {"owner_id": "u1", "title": "keep"})

    reopened = SQLiteDocumentStore(path)
    assert reopened.get("goals", doc_id) == {"owner_id": "u1", "title": "keep"}


@pytest.mark.asyncio
async def test_subscription_pushes_full_snapshots(tmp_path: Path) -> None:
    store = SQLiteDocumentStore(tmp_path / "docs.sqlite3")
    existing = store.create("goals", {"owner_id": "u1", "title": "existing"})

    sub = store.subscribe("goals", owner_id="u1")

    first = await asyncio.wait_for(anext(sub), timeout=1.0)
    assert [doc_id for doc_id, _ in first.docs] == [existing]

    new_id = store.create("goals", {"owner_id": "u1", "title": "new"})
    second = await asyncio.wait_for(anext(sub), timeout=1.0)
    assert [doc_id for doc_id, _ in second.docs] == [existing, new_id]
    assert second.seq > first.seq

    store.update("goals", existing, {"title": "renamed"})
    third = await asyncio.wait_for(anext(sub), timeout=1.0)
    assert dict(third.docs)[existing]["title"] == "renamed"

    store.delete("goals", new_id)
    fourth = await asyncio.wait_for(anext(sub), timeout=1.0)
    assert [doc_id for doc_id, _ in fourth.docs] == [existing]

    sub.close()


@pytest.mark.asyncio
async def test_subscription_ignores_other_owners(tmp_path: Path) -> None:
    store = SQLiteDocumentStore(tmp_path / "docs.sqlite3")
    sub = store.subscribe("goals", owner_id="u1")
    assert len(sub.drain()) == 1  # initial (empty) snapshot

    store.create("goals", {"owner_id": "u2", "title": "someone else"})
    store.create("other", {"owner_id": "u1", "title": "other collection"})
    assert sub.pending() == 0

    store.create("goals", {"owner_id": "u1", "title": "mine"})
    assert sub.pending() == 1
    sub.close()


@pytest.mark.asyncio
async def test_closed_subscription_stops_iteration_and_unregisters(tmp_path: Path) -> None:
    store = SQLiteDocumentStore(tmp_path / "docs.sqlite3")
    sub = store.subscribe("goals", owner_id="u1")
    assert store.subscriber_count("goals", "u1") == 1

    sub.close()
    assert sub.closed
    assert store.subscriber_count("goals", "u1") == 0

    store.create("goals", {"owner_id": "u1", "title": "after close"})
    received = [snapshot async for snapshot in sub]
    assert received == []


@pytest.mark.asyncio
async def test_close_wakes_pending_reader(tmp_path: Path) -> None:
    store = SQLiteDocumentStore(tmp_path / "docs.sqlite3")
    sub = store.subscribe("goals", owner_id="u1")
    sub.drain()

    async def read_all() -> list:
        return [s async for s in sub]

    reader = asyncio.create_task(read_all())
    await asyncio.sleep(0)
    sub.close()
    assert await asyncio.wait_for(reader, timeout=1.0) == []
