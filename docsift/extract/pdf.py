"""
Hybrid PDF text extraction.

Native text comes from the PDF's text layer. Vision OCR is spent only where
it adds something: on the largest few embedded images of a page, or on a
rendered image of a page that looks scanned (no images, almost no text).
Pages run concurrently in small batches and are assembled in page order.
"""

from __future__ import annotations

import asyncio
from typing import Iterable

from docsift.logging_config import get_logger
from docsift.runtime import RuntimeConfig, get_global_config
from docsift.vision import ImageTextReader, VisionOCR

from .base import ExtractionResult, PageResult, ParserIncompatibleError, SelectedImage, validate_pdf
from .embedded import extract_page_images, render_page_png, select_largest_images
from .loader import ParserAdapter
from .metadata import resolve_metadata
from .pages import PageTextExtractor
from .session import ExtractionSession

logger = get_logger(__name__)


PAGE_MARKER = "\n\n=== Page {page} ===\n\n"
IMAGES_MARKER = "\n\n--- Images from Page {page} ---\n"
IMAGE_ENTRY = "\n[Image {index}]:\n{text}\n"


def combine_page_results(results: Iterable[PageResult]) -> str:
    """
    Join page results into one text, always in ascending page order.

    Returns an empty string when no page produced any text.
    """
    parts: list[str] = []
    for result in sorted(results, key=lambda r: r.page_number):
        if result.native_text and result.native_text.strip():
            parts.append(PAGE_MARKER.format(page=result.page_number))
            parts.append(result.native_text)

        if result.image_texts:
            parts.append(IMAGES_MARKER.format(page=result.page_number))
            for index, text in enumerate(result.image_texts, start=1):
                parts.append(IMAGE_ENTRY.format(index=index, text=text))

    combined = "".join(parts)
    return combined if combined.strip() else ""


class HybridPdfExtractor:
    """
    Extracts text from PDFs, using vision OCR only where native text falls short.

    Args:
        config: Runtime configuration (global config by default)
        vision: Image text reader (VisionOCR built from config by default)
        parser: Whole-document parser adapter used for fallbacks
    """

    def __init__(
        self,
        config: RuntimeConfig | None = None,
        *,
        vision: ImageTextReader | None = None,
        parser: ParserAdapter | None = None,
    ):
        self.config = config or get_global_config()
        self.vision = vision or VisionOCR.from_config(self.config)
        self.parser = parser or ParserAdapter()

    # -------------------------------------------------------------------------
    # Per-page steps
    # -------------------------------------------------------------------------

    async def largest_images(self, session: ExtractionSession, page_number: int) -> list[SelectedImage]:
        """The page's largest embedded images, at most max_images_per_page."""
        try:
            images = await session.with_document(extract_page_images, page_number)
        except Exception as e:
            logger.info("page_images_unavailable", page_number=page_number, error=str(e))
            return []
        return select_largest_images(images, self.config.max_images_per_page)

    async def page_screenshot(self, session: ExtractionSession, page_number: int) -> bytes | None:
        """Render the page to PNG, or None when rendering is unavailable."""
        try:
            return await session.with_document(render_page_png, page_number, self.config.render_zoom)
        except Exception as e:
            logger.info("page_render_unavailable", page_number=page_number, error=str(e))
            return None

    async def read_image(self, session: ExtractionSession, image_data: bytes) -> str | None:
        """One vision OCR call, counted against the session."""
        session.vision_calls.increment()
        try:
            return await session.run_blocking(self.vision.extract_text, image_data)
        except Exception as e:
            logger.warning("vision_ocr_failed", error=str(e))
            return None

    async def process_page(
        self,
        session: ExtractionSession,
        text_extractor: PageTextExtractor,
        page_number: int,
    ) -> PageResult:
        """
        Apply the page policy.

        1. Native text; stop here when image text extraction is off.
        2. Embedded images: OCR the largest few, keep native text too.
        3. No images and sparse text: OCR a render of the page instead.
        4. Otherwise native text only, with no vision calls.
        """
        native_text = await text_extractor.extract(page_number)
        result = PageResult(page_number=page_number, native_text=native_text)

        if not self.config.extract_image_text:
            return result

        images = await self.largest_images(session, page_number)
        if images:
            for image in images:
                result.vision_calls += 1
                text = await self.read_image(session, image.data)
                if text:
                    result.image_texts.append(text)
            logger.debug(
                "page_images_read",
                page_number=page_number,
                images=len(images),
                texts=len(result.image_texts),
            )
            return result

        if len(native_text.strip()) < self.config.sparse_text_threshold:
            screenshot = await self.page_screenshot(session, page_number)
            if screenshot:
                result.vision_calls += 1
                text = await self.read_image(session, screenshot)
                if text:
                    logger.debug("page_ocr_replaced_text", page_number=page_number)
                    result.native_text = text
                    result.scanned = True

        return result

    async def _guarded_page(
        self,
        session: ExtractionSession,
        text_extractor: PageTextExtractor,
        page_number: int,
    ) -> PageResult:
        try:
            return await self.process_page(session, text_extractor, page_number)
        except Exception as e:
            logger.warning("page_failed", page_number=page_number, error=str(e))
            return PageResult(page_number=page_number)

    # -------------------------------------------------------------------------
    # Whole document
    # -------------------------------------------------------------------------

    async def process(
        self,
        data: bytes,
        *,
        total_pages: int | None = None,
        timeout: float | None = None,
    ) -> ExtractionResult:
        """
        Extract the text of a whole PDF.

        Args:
            data: Raw PDF bytes
            total_pages: Page count, resolved from the document when omitted
            timeout: Seconds allowed for the whole call (config.timeout by default),
                page count resolution included; pages finished before the
                deadline are kept and vision calls still running are abandoned

        Returns:
            ExtractionResult; combined_text may be empty for unreadable documents

        Raises:
            MalformedDocumentError: If the buffer is empty or not a PDF
            ParserIncompatibleError: If neither the renderer nor the parser
                could read the document at all
        """
        validate_pdf(data)
        cfg = self.config
        timeout = timeout if timeout is not None else cfg.timeout

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout else None

        # One vision call per page in flight, plus renderer and parser work
        workers = cfg.batch_size + 2
        with ExtractionSession(data, parser=self.parser, max_workers=workers) as session:
            page_count = total_pages
            if page_count is None:
                remaining = None if deadline is None else max(0.0, deadline - loop.time())
                try:
                    metadata = await asyncio.wait_for(
                        resolve_metadata(
                            data,
                            session=session,
                            words_per_page=cfg.words_per_page_estimate,
                        ),
                        timeout=remaining,
                    )
                except asyncio.TimeoutError:
                    logger.warning("pdf_metadata_timed_out", timeout=timeout)
                    return ExtractionResult(combined_text="", timed_out=True)
                page_count = metadata.page_count
            page_count = max(1, page_count)

            pages_to_process = page_count
            if cfg.max_pages is not None:
                pages_to_process = min(page_count, cfg.max_pages)

            logger.info("pdf_processing_started", page_count=page_count, pages=pages_to_process)

            text_extractor = PageTextExtractor(session, total_pages=page_count)
            results: dict[int, PageResult] = {}
            timed_out = False

            for start in range(1, pages_to_process + 1, cfg.batch_size):
                batch = range(start, min(start + cfg.batch_size, pages_to_process + 1))
                tasks = [
                    asyncio.ensure_future(self._guarded_page(session, text_extractor, n))
                    for n in batch
                ]

                remaining = None if deadline is None else max(0.0, deadline - loop.time())
                done, pending = await asyncio.wait(tasks, timeout=remaining)

                for task in done:
                    result = task.result()
                    results[result.page_number] = result

                if pending:
                    for task in pending:
                        task.cancel()
                    await asyncio.gather(*pending, return_exceptions=True)
                    timed_out = True
                    logger.warning(
                        "pdf_processing_timed_out",
                        pages_done=len(results),
                        pages=pages_to_process,
                    )
                    break

            pages = [results[n] for n in sorted(results)]
            combined_text = combine_page_results(pages)
            vision_calls = session.vision_calls.value

            if not combined_text:
                self._check_unreadable(session)
                logger.warning("pdf_no_text_extracted", pages=len(pages))

        logger.info(
            "pdf_processing_finished",
            pages_processed=len(pages),
            vision_calls=vision_calls,
            chars=len(combined_text),
            timed_out=timed_out,
        )

        return ExtractionResult(
            combined_text=combined_text,
            vision_call_count=vision_calls,
            pages_processed=len(pages),
            page_count=page_count,
            timed_out=timed_out,
            pages=pages,
        )

    def _check_unreadable(self, session: ExtractionSession) -> None:
        """Raise when no path could read the document at all."""
        outcome = session.parse_cache.peek(session.data)
        if session.renderer_failed and isinstance(outcome, ParserIncompatibleError):
            raise outcome

    def extract(self, data: bytes, **kwargs) -> ExtractionResult:
        """Synchronous wrapper around process(); not for use inside a running event loop."""
        return asyncio.run(self.process(data, **kwargs))


def extract_pdf(
    data: bytes,
    config: RuntimeConfig | None = None,
    *,
    vision: ImageTextReader | None = None,
) -> ExtractionResult:
    """
    Extract text from PDF bytes.

    Args:
        data: Raw PDF file bytes
        config: Runtime configuration
        vision: Image text reader for embedded images and scanned pages

    Returns:
        ExtractionResult with the combined page text
    """
    return HybridPdfExtractor(config, vision=vision).extract(data)
