"""Document extraction for PDF, Word, plain text and image uploads."""

from __future__ import annotations

import asyncio
import os

from docsift.runtime import RuntimeConfig, get_global_config
from docsift.vision import ImageTextReader, VisionOCR

from .base import (
    EMPTY_DOCUMENT_MESSAGE,
    DocumentBuffer,
    DocumentMetadata,
    ExtractionError,
    ExtractionResult,
    MalformedDocumentError,
    PageResult,
    ParseResult,
    ParserIncompatibleError,
    SelectedImage,
    UnsupportedFormatError,
)
from .embedded import select_largest_images
from .image import IMAGE_MIME_TYPES, describe_image_file, load_image
from .loader import ParserAdapter
from .metadata import resolve_metadata
from .pdf import IMAGE_ENTRY, HybridPdfExtractor, combine_page_results, extract_pdf

PDF_MIME_TYPE = "application/pdf"
DOCX_MIME_TYPES: frozenset[str] = frozenset({
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/msword",
})
TEXT_MIME_TYPES: frozenset[str] = frozenset({"text/plain", "text/markdown"})

# All MIME types that can be extracted
EXTRACTABLE_MIME_TYPES: frozenset[str] = (
    frozenset({PDF_MIME_TYPE}) | DOCX_MIME_TYPES | TEXT_MIME_TYPES | IMAGE_MIME_TYPES
)

EXTENSION_MIME_TYPES: dict[str, str] = {
    ".pdf": PDF_MIME_TYPE,
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".doc": "application/msword",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".markdown": "text/markdown",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
}


def normalize_mime_type(mime_type: str) -> str:
    """Lowercase a MIME type and drop parameters such as charset."""
    return mime_type.split(";", 1)[0].strip().lower()


def mime_type_for(filename: str) -> str:
    """
    Guess the MIME type of a file from its extension.

    Raises:
        UnsupportedFormatError: If the extension is not supported
    """
    _, ext = os.path.splitext(filename)
    try:
        return EXTENSION_MIME_TYPES[ext.lower()]
    except KeyError:
        raise UnsupportedFormatError(f"Unsupported document format: {ext or filename}") from None


def can_extract(mime_type: str) -> bool:
    """Check if the given MIME type is extractable."""
    return normalize_mime_type(mime_type) in EXTRACTABLE_MIME_TYPES


async def _read_images(
    vision: ImageTextReader,
    images: list[SelectedImage],
) -> list[str]:
    texts: list[str] = []
    for image in images:
        text = await asyncio.to_thread(vision.extract_text, image.data)
        if text:
            texts.append(text)
    return texts


async def _extract_docx(
    document: DocumentBuffer,
    config: RuntimeConfig,
    vision: ImageTextReader,
) -> ExtractionResult:
    from .docx import extract_docx

    content = await asyncio.to_thread(extract_docx, document.data)
    page = PageResult(page_number=1, native_text=content.text)

    if config.extract_image_text and content.images:
        selected = select_largest_images(content.images, config.max_images_per_page)
        page.vision_calls = len(selected)
        page.image_texts = await _read_images(vision, selected)

    parts = [content.text]
    if page.image_texts:
        parts.append("\n\n--- Images ---\n")
        for index, text in enumerate(page.image_texts, start=1):
            parts.append(IMAGE_ENTRY.format(index=index, text=text))
    combined = "".join(parts)

    return ExtractionResult(
        combined_text=combined if combined.strip() else "",
        vision_call_count=page.vision_calls,
        pages_processed=1,
        pages=[page],
    )


async def _extract_image(
    document: DocumentBuffer,
    mime_type: str,
    config: RuntimeConfig,
    vision: ImageTextReader,
) -> ExtractionResult:
    if not document.data:
        raise MalformedDocumentError("Image buffer is empty")

    image = await asyncio.to_thread(load_image, document.data)
    text = None
    calls = 0
    if config.extract_image_text:
        calls = 1
        text = await asyncio.to_thread(vision.extract_text, image.data)

    return ExtractionResult(
        combined_text=text or describe_image_file(image, document.name, mime_type),
        vision_call_count=calls,
        pages_processed=1,
    )


async def aextract_document(
    document: DocumentBuffer | bytes,
    mime_type: str | None = None,
    *,
    config: RuntimeConfig | None = None,
    vision: ImageTextReader | None = None,
) -> ExtractionResult:
    """
    Extract text from a document based on its declared content type.

    Args:
        document: DocumentBuffer, or raw bytes together with mime_type
        mime_type: Declared content type (overrides document.mime_type)
        config: Runtime configuration
        vision: Image text reader for embedded images, scans and image files

    Returns:
        ExtractionResult with the document's text

    Raises:
        UnsupportedFormatError: If the content type is not supported
        MalformedDocumentError: If the bytes do not match the declared type
    """
    if not isinstance(document, DocumentBuffer):
        if mime_type is None:
            raise UnsupportedFormatError("A MIME type is required for raw bytes")
        document = DocumentBuffer(data=bytes(document), mime_type=mime_type)

    kind = normalize_mime_type(mime_type or document.mime_type)
    cfg = config or get_global_config()

    if kind == PDF_MIME_TYPE:
        extractor = HybridPdfExtractor(cfg, vision=vision)
        return await extractor.process(document.data)

    reader = vision or VisionOCR.from_config(cfg)
    if kind in DOCX_MIME_TYPES:
        return await _extract_docx(document, cfg, reader)
    elif kind in TEXT_MIME_TYPES:
        text = document.data.decode("utf-8-sig", errors="replace")
        return ExtractionResult(combined_text=text, pages_processed=1)
    elif kind in IMAGE_MIME_TYPES:
        return await _extract_image(document, kind, cfg, reader)
    else:
        raise UnsupportedFormatError(f"Unsupported file type: {kind}")


def extract_document(
    document: DocumentBuffer | bytes,
    mime_type: str | None = None,
    *,
    config: RuntimeConfig | None = None,
    vision: ImageTextReader | None = None,
) -> ExtractionResult:
    """Synchronous aextract_document(); not for use inside a running event loop."""
    return asyncio.run(aextract_document(document, mime_type, config=config, vision=vision))


__all__ = [
    "DocumentBuffer",
    "DocumentMetadata",
    "ExtractionResult",
    "PageResult",
    "ParseResult",
    "SelectedImage",
    "ExtractionError",
    "MalformedDocumentError",
    "ParserIncompatibleError",
    "UnsupportedFormatError",
    "EMPTY_DOCUMENT_MESSAGE",
    "EXTRACTABLE_MIME_TYPES",
    "HybridPdfExtractor",
    "ParserAdapter",
    "combine_page_results",
    "aextract_document",
    "extract_document",
    "extract_pdf",
    "resolve_metadata",
    "can_extract",
    "mime_type_for",
    "normalize_mime_type",
]
