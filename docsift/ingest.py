"""
Ingest an uploaded document: extract its text, store it, and chunk it.

This is the caller side of the extraction pipeline. An empty extraction is
not an error here either: the document is recorded without chunks and the
result carries a message the user can act on.
"""

from __future__ import annotations

import asyncio
import hashlib
import sqlite3
from dataclasses import dataclass

from docsift import FORMAT_VERSION, __version__
from docsift.chunk import chunk_document
from docsift.extract import EMPTY_DOCUMENT_MESSAGE, DocumentBuffer, ExtractionResult, aextract_document
from docsift.logging_config import get_logger
from docsift.runtime import RuntimeConfig, get_global_config
from docsift.storage import set_metadata, upsert_document
from docsift.vision import ImageTextReader

logger = get_logger(__name__)


@dataclass
class IngestResult:
    """Outcome of ingesting one document."""

    document_id: int
    chunk_count: int
    result: ExtractionResult
    warning: str | None = None


async def aingest_document(
    conn: sqlite3.Connection,
    document: DocumentBuffer,
    *,
    config: RuntimeConfig | None = None,
    vision: ImageTextReader | None = None,
) -> IngestResult:
    """
    Extract, store and chunk one document.

    Args:
        conn: Database connection
        document: Raw bytes, declared MIME type and name
        config: Runtime configuration
        vision: Image text reader for OCR

    Returns:
        IngestResult; warning is set when no text could be extracted

    Raises:
        UnsupportedFormatError: If the MIME type is not supported
        MalformedDocumentError: If the bytes do not match the declared type
    """
    cfg = config or get_global_config()
    result = await aextract_document(document, config=cfg, vision=vision)

    sha256 = hashlib.sha256(document.data).hexdigest()
    document_id = upsert_document(
        conn,
        document.name or f"document-{sha256[:12]}",
        document.mime_type,
        document.size_bytes,
        sha256,
        page_count=result.page_count,
        word_count=len(result.combined_text.split()),
        vision_calls=result.vision_call_count,
    )

    # Always replace, so a re-ingest that finds no text clears stale chunks
    chunk_count = chunk_document(
        conn,
        document_id,
        result.combined_text,
        max_words=cfg.chunk_max_words,
    )
    set_metadata(conn, "format_version", FORMAT_VERSION)
    set_metadata(conn, "docsift_version", __version__)
    set_metadata(conn, "last_ingested_document", str(document_id))

    warning = None
    if result.is_empty:
        warning = EMPTY_DOCUMENT_MESSAGE
        logger.warning("ingest_no_text", document_id=document_id, name=document.name)
    else:
        logger.info(
            "ingest_finished",
            document_id=document_id,
            chunks=chunk_count,
            vision_calls=result.vision_call_count,
        )

    return IngestResult(
        document_id=document_id,
        chunk_count=chunk_count,
        result=result,
        warning=warning,
    )


def ingest_document(
    conn: sqlite3.Connection,
    data: bytes,
    mime_type: str,
    name: str = "",
    *,
    config: RuntimeConfig | None = None,
    vision: ImageTextReader | None = None,
) -> IngestResult:
    """Synchronous aingest_document() for raw bytes."""
    document = DocumentBuffer(data=data, mime_type=mime_type, name=name)
    return asyncio.run(aingest_document(conn, document, config=config, vision=vision))
