"""Embedded image extraction and page rendering using PyMuPDF."""

from __future__ import annotations

import io
from typing import Any

from docsift.logging_config import get_logger

from .base import SelectedImage

logger = get_logger(__name__)


def extract_page_images(doc: Any, page_number: int) -> list[SelectedImage]:
    """
    Extract the raster images embedded on one page.

    Args:
        doc: Open PyMuPDF document
        page_number: 1-indexed page number

    Returns:
        Images in the order the page references them
    """
    page = doc.load_page(page_number - 1)
    images: list[SelectedImage] = []

    for img_info in page.get_images(full=True):
        xref = img_info[0]
        try:
            base_image = doc.extract_image(xref)
        except Exception as e:
            # Skip problematic images
            logger.debug("image_extract_failed", page_number=page_number, xref=xref, error=str(e))
            continue
        if not base_image:
            continue

        img_data = base_image["image"]
        width = base_image.get("width", 0)
        height = base_image.get("height", 0)

        # If dimensions not in metadata, read them from the image itself
        if width == 0 or height == 0:
            width, height = _image_size(img_data)

        images.append(
            SelectedImage(
                width=width,
                height=height,
                data=img_data,
                format=base_image.get("ext", "png"),
            )
        )

    return images


def _image_size(data: bytes) -> tuple[int, int]:
    from PIL import Image, UnidentifiedImageError

    try:
        with Image.open(io.BytesIO(data)) as pil_img:
            return pil_img.size
    except (UnidentifiedImageError, OSError):
        return 0, 0


def select_largest_images(images: list[SelectedImage], max_images: int = 2) -> list[SelectedImage]:
    """
    Keep the largest images by pixel area.

    Ties keep page order. At most max_images survive.
    """
    if max_images < 1 or not images:
        return []
    return sorted(images, key=lambda img: img.area, reverse=True)[:max_images]


def render_page_png(doc: Any, page_number: int, zoom: float = 2.0) -> bytes:
    """Render one page to PNG bytes for OCR of scanned pages."""
    import fitz  # pymupdf

    page = doc.load_page(page_number - 1)
    pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom))
    return pix.tobytes("png")
