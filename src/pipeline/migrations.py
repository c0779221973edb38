"""Startup migration and audit helpers for the document store."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from db_utils import connect, get_conn_str
from document_store import USER_DOCUMENTS_SQL

log = logging.getLogger("pipeline.migrations")

REQUIRED_COLUMNS: Dict[str, List[str]] = {
    "user_documents": ["user_id", "collection", "doc_id", "body", "updated_at"],
}

REQUIRED_INDEXES = ["idx_user_documents_collection"]


def ensure_startup_schema(conn_str: str | None = None) -> None:
    """Run idempotent startup migrations before serving insight requests."""
    cs = conn_str or get_conn_str()
    if not cs:
        raise RuntimeError("POSTGRES_CONNECTION_STRING (or DATABASE_URL) is not configured")

    conn = connect(cs)
    conn.autocommit = True
    try:
        with conn.cursor() as cur:
            cur.execute(USER_DOCUMENTS_SQL)
            # Tables created before updated_at existed
            cur.execute(
                """
                ALTER TABLE IF EXISTS user_documents
                ADD COLUMN IF NOT EXISTS updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                """
            )
    finally:
        conn.close()

    log.info("Startup migrations completed.")


def schema_audit(conn_str: str | None = None) -> Dict[str, Any]:
    """Report missing document-store tables, columns and indexes."""
    cs = conn_str or get_conn_str()
    if not cs:
        return {
            "ok": False,
            "error": "POSTGRES_CONNECTION_STRING (or DATABASE_URL) is not configured",
            "tables": {},
            "missing_tables": [],
            "missing_indexes": [],
        }

    out: Dict[str, Any] = {"ok": True, "tables": {}, "missing_tables": [], "missing_indexes": []}
    conn = connect(cs)
    try:
        with conn.cursor() as cur:
            for table, expected in REQUIRED_COLUMNS.items():
                cur.execute(
                    """
                    SELECT column_name
                    FROM information_schema.columns
                    WHERE table_schema = 'public' AND table_name = %s
                    ORDER BY ordinal_position
                    """,
                    (table,),
                )
                cols = [r[0] for r in cur.fetchall()]
                if not cols:
                    out["missing_tables"].append(table)
                out["tables"][table] = {
                    "exists": bool(cols),
                    "columns": cols,
                    "missing_columns": [c for c in expected if c not in cols] if cols else list(expected),
                }

            cur.execute("SELECT indexname FROM pg_indexes WHERE schemaname = 'public'")
            present = {r[0] for r in cur.fetchall()}
            out["missing_indexes"] = [i for i in REQUIRED_INDEXES if i not in present]

        out["ok"] = (
            not out["missing_tables"]
            and not out["missing_indexes"]
            and not any(info["missing_columns"] for info in out["tables"].values())
        )
        return out
    finally:
        conn.close()
