"""Standalone image files.

Images have no text layer: their text comes from vision OCR. When OCR is
off or finds nothing, a short description of the file stands in so the
document is still stored and searchable by name.
"""

from __future__ import annotations

import io

from .base import SelectedImage


IMAGE_MIME_TYPES: frozenset[str] = frozenset({
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/bmp",
    "image/tiff",
})


def _detect_format(data: bytes) -> str:
    """Detect the format from magic bytes."""
    if data.startswith(b"\x89PNG"):
        return "png"
    if data.startswith(b"\xff\xd8\xff"):
        return "jpeg"
    if data.startswith(b"GIF8"):
        return "gif"
    if data.startswith(b"RIFF") and b"WEBP" in data[:12]:
        return "webp"
    if data.startswith(b"BM"):
        return "bmp"
    if data.startswith((b"II*\x00", b"MM\x00*")):
        return "tiff"
    return "unknown"


def load_image(data: bytes) -> SelectedImage:
    """
    Wrap image bytes with their dimensions and format.

    Falls back to magic-byte detection when PIL cannot read the image.
    """
    from PIL import Image, UnidentifiedImageError

    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
            fmt = img.format.lower() if img.format else "unknown"
    except (UnidentifiedImageError, OSError):
        width, height = 0, 0
        fmt = _detect_format(data)

    if fmt == "jpg":
        fmt = "jpeg"
    elif fmt == "tif":
        fmt = "tiff"

    return SelectedImage(width=width, height=height, data=data, format=fmt)


def describe_image_file(image: SelectedImage, name: str, mime_type: str) -> str:
    """Placeholder text for an image whose content could not be read."""
    lines = [
        f"Image: {name or 'image'}",
        f"File type: {mime_type}",
        f"Size: {len(image.data)} bytes",
    ]
    if image.width and image.height:
        lines.append(f"Dimensions: {image.width}x{image.height}")
    lines.append("Note: No text was read from this image.")
    return "\n".join(lines)
