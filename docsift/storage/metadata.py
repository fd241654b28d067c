"""Key-value metadata and database statistics."""

from __future__ import annotations

import sqlite3
from typing import Any

_UPSERT_METADATA = """
INSERT INTO metadata (key, value) VALUES (?, ?)
ON CONFLICT(key) DO UPDATE SET value = excluded.value
"""


def set_metadata(conn: sqlite3.Connection, key: str, value: str) -> None:
    """Store a metadata value, overwriting any earlier one."""
    with conn:
        conn.execute(_UPSERT_METADATA, (key, value))


def get_metadata(conn: sqlite3.Connection, key: str) -> str | None:
    row = conn.execute("SELECT value FROM metadata WHERE key = ?", (key,)).fetchone()
    return None if row is None else row["value"]


def get_all_metadata(conn: sqlite3.Connection) -> dict[str, str]:
    rows = conn.execute("SELECT key, value FROM metadata ORDER BY key").fetchall()
    return {row["key"]: row["value"] for row in rows}


def get_stats(conn: sqlite3.Connection) -> dict[str, Any]:
    """
    Totals across the database.

    Returns:
        Dict with total_documents, total_chunks, total_size_bytes,
        total_words and total_vision_calls
    """
    row = conn.execute(
        """
        SELECT
            COUNT(*) AS documents,
            COALESCE(SUM(size_bytes), 0) AS size,
            COALESCE(SUM(word_count), 0) AS words,
            COALESCE(SUM(vision_calls), 0) AS calls,
            (SELECT COUNT(*) FROM chunks) AS chunks
        FROM documents
        """
    ).fetchone()

    return {
        "total_documents": row["documents"],
        "total_chunks": row["chunks"],
        "total_size_bytes": row["size"],
        "total_words": row["words"],
        "total_vision_calls": row["calls"],
    }
