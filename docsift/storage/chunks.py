"""Chunk storage operations."""

from __future__ import annotations

import sqlite3
from typing import Any, Iterable

from .documents import require_document
from .schema import IntegrityError


def replace_chunks(
    conn: sqlite3.Connection,
    document_id: int,
    chunks: Iterable[tuple[int, str, int]],
) -> int:
    """
    Replace all chunks of a document in one transaction.

    Chunks are never edited in place: a new extraction deletes the old set
    and writes the new one.

    Args:
        conn: Database connection
        document_id: ID of the parent document
        chunks: (chunk_index, text, word_count) tuples in order

    Returns:
        Number of chunks written

    Raises:
        NotFoundError: If the document does not exist
        IntegrityError: If two chunks share an index
    """
    require_document(conn, document_id)
    rows = [(document_id, index, text, words) for index, text, words in chunks]

    try:
        with conn:
            conn.execute("DELETE FROM chunks WHERE document_id = ?", (document_id,))
            conn.executemany(
                """
                INSERT INTO chunks (document_id, chunk_index, text, word_count)
                VALUES (?, ?, ?, ?)
                """,
                rows,
            )
    except sqlite3.IntegrityError as e:
        raise IntegrityError(str(e)) from e

    return len(rows)


def get_chunks(
    conn: sqlite3.Connection,
    document_id: int | None = None,
) -> list[dict[str, Any]]:
    """
    Retrieve chunks in storage order, optionally filtered by document.

    Args:
        conn: Database connection
        document_id: If provided, filter to chunks of this document only

    Returns:
        List of chunk dictionaries with keys:
        id, document_id, chunk_index, text, word_count
    """
    if document_id is not None:
        cursor = conn.execute(
            """
            SELECT id, document_id, chunk_index, text, word_count
            FROM chunks
            WHERE document_id = ?
            ORDER BY chunk_index
            """,
            (document_id,),
        )
    else:
        cursor = conn.execute(
            """
            SELECT id, document_id, chunk_index, text, word_count
            FROM chunks
            ORDER BY document_id, chunk_index
            """
        )

    return [dict(row) for row in cursor.fetchall()]


def get_document_text(conn: sqlite3.Connection, document_id: int) -> str:
    """Reassemble a document's text by joining its chunks in storage order."""
    return " ".join(chunk["text"] for chunk in get_chunks(conn, document_id))
