# src/taskmaster/store/sqlite_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import time
import uuid
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from ..core.ports import Document, Snapshot
from .errors import DocumentNotFoundError, StoreError
from .subscription import QueueSubscription

logger = logging.getLogger(__name__)


class SQLiteDocumentStore:
    """
    SQLite document store with owner-filtered push subscriptions.

    Documents are JSON objects grouped by collection. The owner is taken from
    the document's "owner_id" field and mirrored into its own column so that
    owner-scoped queries stay indexed.

    The schema is migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Subscriptions:
    - every successful write re-runs the owner query and pushes the full
      result set to each open subscription on that (collection, owner)
    - publishing happens on the writer's thread; keep the store and its
      subscribers on one event loop thread
    """

    def __init__(self, db_path: str | Path = "goals.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._subscribers: dict[tuple[str, str], list[QueueSubscription]] = {}
        self._seq = 0
        self._ensure_schema()
        try:
            total = self.count_documents()
        except Exception:
            total = -1
        logger.info("DocumentStore ready db=%s total=%s", self._db_path, total)

    def close(self) -> None:
        """Close every open subscription (no persistent connections to close)."""
        for subs in list(self._subscribers.values()):
            for sub in list(subs):
                sub.close()
        self._subscribers.clear()

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")

    @contextlib.contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open {self._db_path}: {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._conn() as conn:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    collection TEXT NOT NULL,
                    id TEXT NOT NULL,
                    owner_id TEXT,
                    data TEXT NOT NULL DEFAULT '{}',
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    PRIMARY KEY (collection, id)
                )
                """
            )

            cur.execute("PRAGMA table_info(documents)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE documents ADD COLUMN {name} {decl}")
                logger.info("DocumentStore migration: added column %s", name)

            add_col("owner_id", "TEXT")
            add_col("data", "TEXT NOT NULL DEFAULT '{}'")
            add_col("created_at", "REAL NOT NULL DEFAULT 0")
            add_col("updated_at", "REAL NOT NULL DEFAULT 0")

            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_documents_owner "
                "ON documents(collection, owner_id, created_at)"
            )

    @staticmethod
    def _doc_to_str(doc: Document) -> str:
        try:
            return json.dumps(doc, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StoreError(f"Document is not JSON-serializable: {e}") from e

    @staticmethod
    def _str_to_doc(s: str | None) -> Document:
        if not s:
            return {}
        try:
            val = json.loads(s)
            return val if isinstance(val, dict) else {}
        except ValueError:
            logger.warning("Corrupt document payload ignored: %.80s", s)
            return {}

    @staticmethod
    def _owner_of(doc: Document) -> str | None:
        owner = doc.get("owner_id")
        return str(owner) if owner is not None else None

    @staticmethod
    def _check_collection(collection: str) -> str:
        if not collection or not collection.strip():
            raise ValueError("collection is required")
        return collection.strip()

    def _load_row(self, conn: sqlite3.Connection, collection: str, doc_id: str) -> sqlite3.Row | None:
        cur = conn.execute(
            "SELECT id, owner_id, data FROM documents WHERE collection = ? AND id = ?",
            (collection, str(doc_id)),
        )
        return cur.fetchone()

    # ---- public API ----

    def count_documents(self, collection: str | None = None) -> int:
        with self._conn() as conn:
            if collection is None:
                cur = conn.execute("SELECT COUNT(*) FROM documents")
            else:
                cur = conn.execute(
                    "SELECT COUNT(*) FROM documents WHERE collection = ?", (collection,)
                )
            (n,) = cur.fetchone()
            return int(n)

    def create(self, collection: str, doc: Document) -> str:
        collection = self._check_collection(collection)
        doc_id = uuid.uuid4().hex
        owner_id = self._owner_of(doc)
        now = time.time()

        with self._conn() as conn:
            conn.execute(
                """
                INSERT INTO documents(collection, id, owner_id, data, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (collection, doc_id, owner_id, self._doc_to_str(doc), now, now),
            )

        logger.debug("Document created %s/%s owner=%s", collection, doc_id, owner_id)
        self._publish(collection, owner_id)
        return doc_id

    def get(self, collection: str, doc_id: str) -> Document | None:
        collection = self._check_collection(collection)
        with self._conn() as conn:
            row = self._load_row(conn, collection, doc_id)
            return self._str_to_doc(row["data"]) if row else None

    def update(self, collection: str, doc_id: str, fields: Document) -> None:
        """Merge `fields` into the stored document (shallow, like a partial update)."""
        collection = self._check_collection(collection)
        if not fields:
            return

        with self._conn() as conn:
            row = self._load_row(conn, collection, doc_id)
            if row is None:
                raise DocumentNotFoundError(collection, doc_id)

            old_owner = row["owner_id"]
            merged = self._str_to_doc(row["data"])
            merged.update(fields)
            new_owner = self._owner_of(merged)

            conn.execute(
                """
                UPDATE documents
                SET data = ?, owner_id = ?, updated_at = ?
                WHERE collection = ? AND id = ?
                """,
                (self._doc_to_str(merged), new_owner, time.time(), collection, str(doc_id)),
            )

        logger.debug("Document updated %s/%s fields=%s", collection, doc_id, sorted(fields))
        self._publish(collection, old_owner)
        if new_owner != old_owner:
            self._publish(collection, new_owner)

    def delete(self, collection: str, doc_id: str) -> None:
        collection = self._check_collection(collection)
        with self._conn() as conn:
            row = self._load_row(conn, collection, doc_id)
            if row is None:
                raise DocumentNotFoundError(collection, doc_id)
            owner_id = row["owner_id"]
            conn.execute(
                "DELETE FROM documents WHERE collection = ? AND id = ?",
                (collection, str(doc_id)),
            )

        logger.debug("Document deleted %s/%s", collection, doc_id)
        self._publish(collection, owner_id)

    def query(self, collection: str, *, owner_id: str) -> list[tuple[str, Document]]:
        """All documents of `owner_id` in `collection`, oldest first."""
        collection = self._check_collection(collection)
        if not owner_id:
            return []

        with self._conn() as conn:
            cur = conn.execute(
                """
                SELECT id, data
                FROM documents
                WHERE collection = ?
                  AND owner_id = ?
                ORDER BY created_at ASC, rowid ASC
                """,
                (collection, str(owner_id)),
            )
            return [(str(r["id"]), self._str_to_doc(r["data"])) for r in cur.fetchall()]

    def subscribe(self, collection: str, *, owner_id: str) -> QueueSubscription:
        """
        Open a snapshot channel for (collection, owner_id).

        The current result set is pushed immediately.
        """
        collection = self._check_collection(collection)
        if not owner_id:
            raise ValueError("owner_id is required")

        key = (collection, str(owner_id))
        sub = QueueSubscription(collection, str(owner_id), on_close=self._unsubscribe)
        self._subscribers.setdefault(key, []).append(sub)
        logger.debug("Subscription opened %r", sub)

        sub.push(self._snapshot(collection, str(owner_id)))
        return sub

    def subscriber_count(self, collection: str, owner_id: str) -> int:
        return len(self._subscribers.get((collection, owner_id), []))

    # ---- push side ----

    def _unsubscribe(self, sub: QueueSubscription) -> None:
        key = (sub.collection, sub.owner_id)
        subs = self._subscribers.get(key)
        if not subs:
            return
        with contextlib.suppress(ValueError):
            subs.remove(sub)
        if not subs:
            del self._subscribers[key]

    def _snapshot(self, collection: str, owner_id: str) -> Snapshot:
        self._seq += 1
        return Snapshot(
            collection=collection,
            owner_id=owner_id,
            docs=self.query(collection, owner_id=owner_id),
            seq=self._seq,
        )

    def _publish(self, collection: str, owner_id: Any) -> None:
        if owner_id is None:
            return
        subs = list(self._subscribers.get((collection, str(owner_id)), []))
        if not subs:
            return
        try:
            snapshot = self._snapshot(collection, str(owner_id))
        except StoreError:
            # The write itself succeeded; listeners catch up on the next change.
            logger.exception("Snapshot query failed collection=%s owner=%s", collection, owner_id)
            return
        for sub in subs:
            sub.push(snapshot)
