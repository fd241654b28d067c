"""Base types and errors for document extraction."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


PDF_SIGNATURE = b"%PDF"

EMPTY_DOCUMENT_MESSAGE = (
    "No text could be extracted. This document appears to be image-only "
    "or corrupted. Try uploading a text-based PDF or a clearer scan."
)


# -----------------------------------------------------------------------------
# Exceptions
# -----------------------------------------------------------------------------


class ExtractionError(Exception):
    """Base exception for extraction operations."""

    pass


class MalformedDocumentError(ExtractionError):
    """Raised when the buffer is empty or fails the file signature check."""

    pass


class ParserIncompatibleError(ExtractionError):
    """Raised when no calling convention of a parser backend could be used."""

    pass


class RendererUnavailableError(ExtractionError):
    """Raised when the page renderer cannot open the document."""

    pass


class UnsupportedFormatError(ExtractionError, ValueError):
    """Raised when no extractor handles the declared content type."""

    pass


def validate_pdf(data: bytes) -> None:
    """
    Check that a buffer looks like a PDF.

    Raises:
        MalformedDocumentError: If the buffer is empty or lacks the %PDF header
    """
    if not data:
        raise MalformedDocumentError("PDF buffer is empty")
    header = bytes(data[:4])
    if header != PDF_SIGNATURE:
        raise MalformedDocumentError(
            f"Invalid PDF file: expected PDF header, got {header!r}"
        )


# -----------------------------------------------------------------------------
# Data model
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class DocumentBuffer:
    """Raw document bytes plus the declared content type."""

    data: bytes
    mime_type: str
    name: str = ""

    @property
    def size_bytes(self) -> int:
        return len(self.data)


@dataclass
class DocumentMetadata:
    """Page count and basic info for a document. page_count is never below 1."""

    page_count: int = 1
    info: dict[str, Any] = field(default_factory=dict)
    format_version: str | None = None

    def __post_init__(self):
        self.page_count = max(1, int(self.page_count or 1))


@dataclass
class ParseResult:
    """Normalized output of a PDF parser backend."""

    text: str = ""
    page_count: int | None = None
    info: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] | None = None
    format_version: str | None = None

    @property
    def word_count(self) -> int:
        return len(self.text.split())


@dataclass
class SelectedImage:
    """An image taken from a page, ranked by pixel area."""

    width: int
    height: int
    data: bytes
    format: str = "png"  # 'png', 'jpeg', etc.

    @property
    def area(self) -> int:
        return max(0, self.width or 0) * max(0, self.height or 0)


@dataclass
class PageResult:
    """Text produced for one page."""

    page_number: int  # 1-indexed
    native_text: str = ""
    image_texts: list[str] = field(default_factory=list)
    vision_calls: int = 0
    scanned: bool = False  # native text was replaced by page-render OCR


@dataclass
class ExtractionResult:
    """Result of extracting a whole document."""

    combined_text: str
    vision_call_count: int = 0
    pages_processed: int = 0
    page_count: int | None = None
    timed_out: bool = False
    pages: list[PageResult] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.combined_text.strip()
