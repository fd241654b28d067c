"""Hybrid document text extraction with bounded vision OCR."""

from __future__ import annotations

__version__ = "0.1.0"
FORMAT_VERSION = "1"

from docsift.chunk import TextChunk, chunk_text
from docsift.extract import (
    DocumentBuffer,
    ExtractionResult,
    HybridPdfExtractor,
    aextract_document,
    extract_document,
)
from docsift.runtime import RuntimeConfig

__all__ = [
    "__version__",
    "FORMAT_VERSION",
    "DocumentBuffer",
    "ExtractionResult",
    "HybridPdfExtractor",
    "RuntimeConfig",
    "TextChunk",
    "aextract_document",
    "chunk_text",
    "extract_document",
]
