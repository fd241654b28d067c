"""Page count and document info, resolved through a chain of fallbacks."""

from __future__ import annotations

import asyncio
import math
from typing import Any

from docsift.logging_config import get_logger

from .base import DocumentMetadata, ParseResult
from .loader import ParserAdapter
from .session import ExtractionSession, ParseCache

logger = get_logger(__name__)


WORDS_PER_PAGE = 500

INFO_KEYS = ("title", "author", "subject", "creator", "producer")


def _renderer_metadata(doc: Any) -> DocumentMetadata | None:
    """Page count and info from an open PyMuPDF document."""
    page_count = doc.page_count
    if page_count < 1:
        return None

    info: dict[str, Any] = {}
    doc_metadata = doc.metadata or {}
    for key in INFO_KEYS:
        if doc_metadata.get(key):
            info[key] = doc_metadata[key]

    # PyMuPDF reports the version as e.g. "PDF 1.7"
    fmt = doc_metadata.get("format") or ""
    version = fmt.split(" ", 1)[1] if fmt.startswith("PDF ") else None

    return DocumentMetadata(page_count=page_count, info=info, format_version=version)


def _read_with_renderer(data: bytes) -> DocumentMetadata | None:
    import fitz  # pymupdf

    with fitz.open(stream=data, filetype="pdf") as doc:
        return _renderer_metadata(doc)


def _from_parse_result(parsed: ParseResult, words_per_page: int) -> DocumentMetadata | None:
    info = {k.lower(): v for k, v in parsed.info.items() if k.lower() in INFO_KEYS}
    if parsed.page_count:
        return DocumentMetadata(parsed.page_count, info, parsed.format_version)
    if parsed.word_count:
        estimate = math.ceil(parsed.word_count / words_per_page)
        logger.info("page_count_estimated", words=parsed.word_count, page_count=estimate)
        return DocumentMetadata(estimate, info, parsed.format_version)
    return None


async def resolve_metadata(
    data: bytes,
    *,
    parser: ParserAdapter | None = None,
    cache: ParseCache | None = None,
    session: ExtractionSession | None = None,
    words_per_page: int = WORDS_PER_PAGE,
) -> DocumentMetadata:
    """
    Determine page count and basic info for a PDF.

    Stops at the first source that answers:
    1. PyMuPDF page count
    2. Parser adapter page count
    3. Estimate of ceil(words / words_per_page) from the adapter's text
    4. A single page

    Never raises for unreadable documents; the page count is at least 1.

    Args:
        data: Raw PDF bytes
        parser: Parser adapter for step 2 (pypdf by default)
        cache: Session parse cache, so the whole-document parse is shared
        session: Extraction session; its open document and parse cache are
            reused instead of opening the PDF again
        words_per_page: Words assumed per page for the estimate

    Returns:
        DocumentMetadata with page_count >= 1
    """
    if session is not None:
        cache = session.parse_cache

    try:
        if session is not None:
            metadata = await session.with_document(_renderer_metadata)
        else:
            metadata = await asyncio.to_thread(_read_with_renderer, data)
    except Exception as e:
        logger.warning("renderer_metadata_failed", error=str(e))
    else:
        if metadata is not None:
            return metadata

    try:
        if cache is not None:
            parsed = await cache.get(data)
        else:
            parsed = await (parser or ParserAdapter()).parse(data)
    except Exception as e:
        logger.warning("parser_metadata_failed", error=str(e))
    else:
        metadata = _from_parse_result(parsed, words_per_page)
        if metadata is not None:
            return metadata

    logger.warning("page_count_defaulted", page_count=1)
    return DocumentMetadata(page_count=1)
