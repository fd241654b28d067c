"""Document storage operations."""

from __future__ import annotations

import sqlite3
from typing import Any

from .schema import NotFoundError, StorageError

_COLUMNS = "id, name, mime_type, size_bytes, sha256_hash, page_count, word_count, vision_calls, created_at, updated_at"


def upsert_document(
    conn: sqlite3.Connection,
    name: str,
    mime_type: str,
    size_bytes: int,
    sha256_hash: str,
    *,
    page_count: int | None = None,
    word_count: int = 0,
    vision_calls: int = 0,
) -> int:
    """
    Insert a document record, or update the one with the same content hash.

    Re-ingesting identical bytes keeps the document ID, so its chunks can be
    replaced in place.

    Args:
        conn: Database connection
        name: Original filename
        mime_type: Declared content type
        size_bytes: Size of the raw document
        sha256_hash: SHA-256 hash of the raw document
        page_count: Page count, when the format has pages
        word_count: Words in the extracted text
        vision_calls: Vision OCR calls spent on the extraction

    Returns:
        The document_id of the inserted or updated record
    """
    conn.execute(
        """
        INSERT INTO documents (name, mime_type, size_bytes, sha256_hash, page_count, word_count, vision_calls)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(sha256_hash) DO UPDATE SET
            name = excluded.name,
            mime_type = excluded.mime_type,
            page_count = excluded.page_count,
            word_count = excluded.word_count,
            vision_calls = excluded.vision_calls,
            updated_at = datetime('now')
        """,
        (name, mime_type, size_bytes, sha256_hash, page_count, word_count, vision_calls),
    )
    conn.commit()

    row = conn.execute(
        "SELECT id FROM documents WHERE sha256_hash = ?", (sha256_hash,)
    ).fetchone()
    if row is None:
        raise StorageError("Failed to upsert document")
    return row["id"]


def get_document(conn: sqlite3.Connection, document_id: int) -> dict[str, Any] | None:
    """Retrieve a document by ID."""
    cursor = conn.execute(f"SELECT {_COLUMNS} FROM documents WHERE id = ?", (document_id,))
    row = cursor.fetchone()
    return dict(row) if row else None


def get_document_by_hash(conn: sqlite3.Connection, sha256_hash: str) -> dict[str, Any] | None:
    """Retrieve a document by content hash."""
    cursor = conn.execute(
        f"SELECT {_COLUMNS} FROM documents WHERE sha256_hash = ?", (sha256_hash,)
    )
    row = cursor.fetchone()
    return dict(row) if row else None


def get_all_documents(conn: sqlite3.Connection) -> list[dict[str, Any]]:
    """Retrieve all documents, oldest first."""
    cursor = conn.execute(f"SELECT {_COLUMNS} FROM documents ORDER BY id")
    return [dict(row) for row in cursor.fetchall()]


def require_document(conn: sqlite3.Connection, document_id: int) -> dict[str, Any]:
    """
    Retrieve a document by ID.

    Raises:
        NotFoundError: If no document has this ID
    """
    document = get_document(conn, document_id)
    if document is None:
        raise NotFoundError(f"Document with id {document_id} not found")
    return document
