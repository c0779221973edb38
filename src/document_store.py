"""
Per-user document persistence.

Insight results and learning records are small JSON documents addressed
by (user_id, collection, doc_id).  ``PostgresDocumentStore`` keeps them in
one JSONB table; ``InMemoryDocumentStore`` offers the same interface for
tests and local runs.

Failures surface as ``PersistenceError``.  Whether a failure is fatal is
the caller's decision: reads are usually treated as "not found", writes
are re-raised.
"""

from __future__ import annotations

import copy
import json
import logging
import threading
from contextlib import contextmanager
from datetime import date, datetime
from functools import lru_cache
from typing import Any, Dict, Iterator, Optional

import numpy as np
import psycopg2
from psycopg2.extras import Json

from db_utils import connect, get_conn_str

log = logging.getLogger("document_store")


class PersistenceError(RuntimeError):
    """A read or write against the document store failed."""


USER_DOCUMENTS_SQL = """
CREATE TABLE IF NOT EXISTS user_documents (
    user_id     TEXT        NOT NULL,
    collection  TEXT        NOT NULL,
    doc_id      TEXT        NOT NULL,
    body        JSONB       NOT NULL,
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (user_id, collection, doc_id)
);
CREATE INDEX IF NOT EXISTS idx_user_documents_collection
    ON user_documents(user_id, collection);
"""

_SELECT_ONE = "SELECT body FROM user_documents WHERE user_id = %s AND collection = %s AND doc_id = %s"
_SELECT_COLLECTION = "SELECT doc_id, body FROM user_documents WHERE user_id = %s AND collection = %s"
_UPSERT = """
    INSERT INTO user_documents (user_id, collection, doc_id, body, updated_at)
    VALUES (%s, %s, %s, %s, NOW())
    ON CONFLICT (user_id, collection, doc_id)
    DO UPDATE SET body = EXCLUDED.body, updated_at = NOW()
"""
_MERGE = """
    UPDATE user_documents
    SET body = body || %s, updated_at = NOW()
    WHERE user_id = %s AND collection = %s AND doc_id = %s
"""


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, (set, tuple)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_json_document(body: Dict[str, Any]) -> Dict[str, Any]:
    """Round-trip through JSON so stored bodies hold plain JSON types only."""
    return json.loads(json.dumps(body, default=_json_default))


class DocumentTransaction:
    """Handle yielded by ``transact``: the current body plus a pending write."""

    def __init__(self, current: Optional[Dict[str, Any]]):
        self.current = current
        self.pending: Optional[Dict[str, Any]] = None

    def write(self, body: Dict[str, Any]) -> None:
        self.pending = to_json_document(body)


class InMemoryDocumentStore:
    def __init__(self):
        self._docs: Dict[tuple, Dict[str, Any]] = {}
        self._lock = threading.RLock()

    def get(self, user_id: str, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            body = self._docs.get((user_id, collection, doc_id))
            return copy.deepcopy(body) if body is not None else None

    def put(self, user_id: str, collection: str, doc_id: str, body: Dict[str, Any]) -> None:
        with self._lock:
            self._docs[(user_id, collection, doc_id)] = to_json_document(body)

    def merge(self, user_id: str, collection: str, doc_id: str, fields: Dict[str, Any]) -> bool:
        """Shallow-merge ``fields`` into an existing document; False if absent."""
        with self._lock:
            key = (user_id, collection, doc_id)
            if key not in self._docs:
                return False
            self._docs[key].update(to_json_document(fields))
            return True

    def list(self, user_id: str, collection: str) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return {
                doc_id: copy.deepcopy(body)
                for (uid, coll, doc_id), body in self._docs.items()
                if uid == user_id and coll == collection
            }

    @contextmanager
    def transact(self, user_id: str, collection: str, doc_id: str) -> Iterator[DocumentTransaction]:
        with self._lock:
            txn = DocumentTransaction(self.get(user_id, collection, doc_id))
            yield txn
            if txn.pending is not None:
                self._docs[(user_id, collection, doc_id)] = txn.pending

    def bootstrap_schema(self) -> None:
        return None


class PostgresDocumentStore:
    """JSONB-backed store; every call opens and closes its own connection."""

    def __init__(self, conn_str: Optional[str] = None):
        self.conn_str = conn_str or get_conn_str()
        if not self.conn_str:
            raise PersistenceError("POSTGRES_CONNECTION_STRING (or DATABASE_URL) is not configured")

    def _open(self):
        try:
            return connect(self.conn_str)
        except psycopg2.Error as exc:
            raise PersistenceError(f"connect failed: {exc}") from exc

    def _run(self, action: str, fn):
        conn = self._open()
        try:
            with conn:
                with conn.cursor() as cur:
                    return fn(cur)
        except psycopg2.Error as exc:
            log.error("Document store %s failed: %s", action, exc)
            raise PersistenceError(f"{action} failed: {exc}") from exc
        finally:
            conn.close()

    def bootstrap_schema(self) -> None:
        """Run the startup migrations against this store's database."""
        from pipeline.migrations import ensure_startup_schema

        try:
            ensure_startup_schema(self.conn_str)
        except psycopg2.Error as exc:
            log.error("Document store bootstrap failed: %s", exc)
            raise PersistenceError(f"bootstrap failed: {exc}") from exc

    def get(self, user_id: str, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        def _fetch(cur):
            cur.execute(_SELECT_ONE, (user_id, collection, doc_id))
            row = cur.fetchone()
            return row[0] if row else None

        return self._run("get", _fetch)

    def put(self, user_id: str, collection: str, doc_id: str, body: Dict[str, Any]) -> None:
        payload = Json(to_json_document(body))
        self._run("put", lambda cur: cur.execute(_UPSERT, (user_id, collection, doc_id, payload)))

    def merge(self, user_id: str, collection: str, doc_id: str, fields: Dict[str, Any]) -> bool:
        payload = Json(to_json_document(fields))

        def _update(cur):
            cur.execute(_MERGE, (payload, user_id, collection, doc_id))
            return cur.rowcount > 0

        return self._run("merge", _update)

    def list(self, user_id: str, collection: str) -> Dict[str, Dict[str, Any]]:
        def _fetch(cur):
            cur.execute(_SELECT_COLLECTION, (user_id, collection))
            return {doc_id: body for doc_id, body in cur.fetchall()}

        return self._run("list", _fetch)

    @contextmanager
    def transact(self, user_id: str, collection: str, doc_id: str) -> Iterator[DocumentTransaction]:
        """Serialise read-modify-write of one document.

        An advisory lock covers documents that do not exist yet, which a
        plain ``SELECT ... FOR UPDATE`` would not.
        """
        conn = self._open()
        try:
            with conn:
                with conn.cursor() as cur:
                    cur.execute(
                        "SELECT pg_advisory_xact_lock(hashtext(%s))",
                        (f"{user_id}/{collection}/{doc_id}",),
                    )
                    cur.execute(_SELECT_ONE, (user_id, collection, doc_id))
                    row = cur.fetchone()
                    txn = DocumentTransaction(row[0] if row else None)
                    yield txn
                    if txn.pending is not None:
                        cur.execute(_UPSERT, (user_id, collection, doc_id, Json(txn.pending)))
        except psycopg2.Error as exc:
            log.error("Document store transaction failed: %s", exc)
            raise PersistenceError(f"transaction failed: {exc}") from exc
        finally:
            conn.close()


@lru_cache(maxsize=1)
def get_default_store():
    """PostgreSQL when a connection string is configured, else in-memory."""
    if get_conn_str():
        store = PostgresDocumentStore()
        store.bootstrap_schema()
        return store
    log.warning("No database configured; insight documents are kept in memory only")
    return InMemoryDocumentStore()
