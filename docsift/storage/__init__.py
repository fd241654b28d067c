"""
Docsift storage layer.

All SQL operations are encapsulated here. No other module should
contain SQL strings or direct database operations.

A document row records one uploaded file; its chunks are the ordered,
immutable text segments produced from the extracted text.

Usage:
    from docsift.storage import init_db, upsert_document, replace_chunks

    conn = init_db("library.db")
    doc_id = upsert_document(conn, "report.pdf", "application/pdf", 1234, "abc123...")
    replace_chunks(conn, doc_id, [(0, "first chunk", 2)])
"""

from .chunks import get_chunks, get_document_text, replace_chunks
from .connection import init_db
from .documents import (
    get_all_documents,
    get_document,
    get_document_by_hash,
    require_document,
    upsert_document,
)
from .metadata import get_all_metadata, get_metadata, get_stats, set_metadata
from .schema import IntegrityError, NotFoundError, StorageError

__all__ = [
    # Connection
    "init_db",
    # Documents
    "upsert_document",
    "get_document",
    "get_document_by_hash",
    "get_all_documents",
    "require_document",
    # Chunks
    "replace_chunks",
    "get_chunks",
    "get_document_text",
    # Metadata
    "set_metadata",
    "get_metadata",
    "get_all_metadata",
    "get_stats",
    # Exceptions
    "StorageError",
    "IntegrityError",
    "NotFoundError",
]
