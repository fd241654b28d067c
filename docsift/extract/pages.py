"""Per-page native text extraction using PyMuPDF, with a whole-document fallback."""

from __future__ import annotations

import math
from typing import Any

from docsift.logging_config import get_logger

from .session import ExtractionSession

logger = get_logger(__name__)


def render_page_text(doc: Any, page_number: int) -> str:
    """
    Read the text layer of one page.

    Args:
        doc: Open PyMuPDF document
        page_number: 1-indexed page number

    Returns:
        The page's words joined by single spaces
    """
    page = doc.load_page(page_number - 1)
    words = page.get_text("words")
    return " ".join(word[4] for word in words)


def slice_page_words(text: str, page_number: int, total_pages: int) -> str:
    """
    Approximate one page's text from the whole document's text.

    Words are spread evenly over the pages, so page boundaries are only
    approximate: a dense page borrows words from its neighbours.
    """
    words = text.split()
    if not words:
        return ""
    words_per_page = math.ceil(len(words) / max(1, total_pages))
    start = (page_number - 1) * words_per_page
    return " ".join(words[start : page_number * words_per_page])


class PageTextExtractor:
    """Extracts native text for one page at a time within a session."""

    def __init__(self, session: ExtractionSession, total_pages: int = 1):
        self.session = session
        self.total_pages = max(1, total_pages)

    async def extract(self, page_number: int) -> str:
        """
        Extract the native text of a page.

        Tries the renderer first. If it fails, the whole document is parsed
        once per session and the page is sliced out proportionally. Returns
        an empty string when neither path produces text.
        """
        try:
            return await self.session.with_document(render_page_text, page_number)
        except Exception as e:
            logger.info("page_render_failed", page_number=page_number, error=str(e))

        try:
            parsed = await self.session.parsed()
        except Exception as e:
            logger.warning("page_text_unavailable", page_number=page_number, error=str(e))
            return ""

        total_pages = parsed.page_count or self.total_pages
        text = slice_page_words(parsed.text, page_number, total_pages)
        logger.debug(
            "page_text_sliced",
            page_number=page_number,
            total_pages=total_pages,
            chars=len(text),
        )
        return text
