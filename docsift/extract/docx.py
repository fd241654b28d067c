"""Word documents, read with python-docx."""

from __future__ import annotations

import io
import zipfile
from dataclasses import dataclass, field
from typing import Any

from .base import MalformedDocumentError, SelectedImage

# Content type subtype -> format name used elsewhere in the pipeline
IMAGE_SUBTYPES = {
    "png": "png",
    "jpeg": "jpeg",
    "jpg": "jpeg",
    "pjpeg": "jpeg",
    "gif": "gif",
    "bmp": "bmp",
    "x-ms-bmp": "bmp",
    "tiff": "tiff",
}


@dataclass
class DocxContent:
    """Text, embedded images and core properties of a DOCX file."""

    text: str
    images: list[SelectedImage] = field(default_factory=list)
    metadata: dict[str, str] = field(default_factory=dict)


def _table_text(table: Any) -> str:
    rows = []
    for row in table.rows:
        cells = [cell.text.strip() for cell in row.cells]
        if any(cells):
            rows.append(" | ".join(cells))
    return "\n".join(rows)


def _pixel_size(part: Any) -> tuple[int, int]:
    """Pixel size from python-docx's header parsing, then Pillow."""
    from docx.image.exceptions import UnrecognizedImageError
    from PIL import Image, UnidentifiedImageError

    try:
        image = part.image
    except UnrecognizedImageError:
        pass
    else:
        return image.px_width, image.px_height

    try:
        with Image.open(io.BytesIO(part.blob)) as img:
            return img.size
    except (UnidentifiedImageError, OSError):
        return 0, 0


def _document_images(doc: Any) -> list[SelectedImage]:
    """Images related to the main document part, in relationship order."""
    from docx.opc.constants import RELATIONSHIP_TYPE as RT

    images: list[SelectedImage] = []
    for rel in doc.part.rels.values():
        if rel.is_external or rel.reltype != RT.IMAGE:
            continue
        part = rel.target_part
        subtype = part.content_type.rsplit("/", 1)[-1].lower()
        width, height = _pixel_size(part)
        images.append(
            SelectedImage(
                width=width,
                height=height,
                data=part.blob,
                format=IMAGE_SUBTYPES.get(subtype, "unknown"),
            )
        )
    return images


def extract_docx(data: bytes) -> DocxContent:
    """
    Extract text and images from DOCX bytes.

    Paragraphs come first, then each table as " | "-separated rows.

    Raises:
        MalformedDocumentError: If the bytes are not a readable DOCX package
    """
    from docx import Document
    from docx.opc.exceptions import PackageNotFoundError

    if not data:
        raise MalformedDocumentError("DOCX buffer is empty")

    try:
        doc = Document(io.BytesIO(data))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as e:
        raise MalformedDocumentError(f"Invalid DOCX file: {e}") from e

    blocks = [p.text.strip() for p in doc.paragraphs]
    blocks.extend(_table_text(table) for table in doc.tables)

    props = doc.core_properties
    metadata = {
        name: value
        for name, value in (("title", props.title), ("author", props.author))
        if value
    }

    return DocxContent(
        text="\n\n".join(block for block in blocks if block),
        images=_document_images(doc),
        metadata=metadata,
    )
