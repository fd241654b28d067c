"""
Runtime configuration for docsift.

Holds the knobs that bound the extraction pipeline: batch size, the number
of vision calls per page, the scanned-page threshold and the vision model.
One RuntimeConfig flows through a whole extraction call.
"""

from __future__ import annotations

from dataclasses import dataclass


DEFAULT_VISION_MODEL = "qwen3-vl:2b"


@dataclass
class RuntimeConfig:
    """
    Runtime configuration for extraction.

    Attributes:
        batch_size: Pages processed concurrently per batch
        max_images_per_page: Largest embedded images sent to the vision model
        sparse_text_threshold: Native text shorter than this marks a likely scanned page
        words_per_page_estimate: Words per page when estimating page count from text
        chunk_max_words: Word cap for stored chunks
        extract_image_text: Run vision OCR on images and scanned pages
        max_pages: Stop after this many pages (None = all)
        timeout: Seconds allowed for one document (None = unbounded)
        vision_model: Ollama vision model
        vision_max_tokens: Output token ceiling for one vision call
        vision_temperature: Sampling temperature for vision calls
        render_zoom: Scale factor when rendering a page to an image
        verbose: Print debug information
    """

    # Scheduling
    batch_size: int = 3
    max_pages: int | None = None
    timeout: float | None = None

    # Page policy
    max_images_per_page: int = 2
    sparse_text_threshold: int = 100
    words_per_page_estimate: int = 500
    extract_image_text: bool = True
    render_zoom: float = 2.0

    # Chunking
    chunk_max_words: int = 500

    # Vision settings
    vision_model: str = DEFAULT_VISION_MODEL
    vision_max_tokens: int = 2048
    vision_temperature: float = 0.0

    # Debug
    verbose: bool = False

    def __post_init__(self):
        """Reject sizes that would stall the pipeline."""
        for name in ("batch_size", "max_images_per_page", "words_per_page_estimate", "chunk_max_words"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1")
        if self.max_pages is not None and self.max_pages < 1:
            raise ValueError("max_pages must be at least 1")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be positive")


def get_runtime_config(
    *,
    extract_image_text: bool = True,
    vision_model: str | None = None,
    batch_size: int | None = None,
    max_pages: int | None = None,
    timeout: float | None = None,
    verbose: bool = False,
) -> RuntimeConfig:
    """
    Create a runtime configuration with sensible defaults.

    Args:
        extract_image_text: Enable vision OCR for images and scanned pages
        vision_model: Override vision model
        batch_size: Override pages per batch
        max_pages: Cap on pages processed
        timeout: Seconds allowed per document
        verbose: Enable verbose output

    Returns:
        Configured RuntimeConfig instance
    """
    config = RuntimeConfig(
        extract_image_text=extract_image_text,
        max_pages=max_pages,
        timeout=timeout,
        verbose=verbose,
    )

    if vision_model:
        config.vision_model = vision_model
    if batch_size is not None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        config.batch_size = batch_size

    return config


# Process-wide default for callers that pass no config
_global_config: RuntimeConfig | None = None


def set_global_config(config: RuntimeConfig) -> None:
    """Set the global runtime configuration."""
    global _global_config
    _global_config = config


def get_global_config() -> RuntimeConfig:
    """Get the global runtime configuration, creating default if needed."""
    global _global_config
    if _global_config is None:
        _global_config = RuntimeConfig()
    return _global_config
