"""
Vision model OCR for images taken from documents.

Uses Ollama with qwen3-vl:2b (or similar vision models) to read the text
visible in an embedded image or a rendered scanned page. The model answers
with a fixed sentinel when an image holds no text.
"""

from __future__ import annotations

import base64
from typing import Any, Protocol

from docsift.logging_config import get_logger
from docsift.runtime import DEFAULT_VISION_MODEL, RuntimeConfig

logger = get_logger(__name__)


NO_TEXT_SENTINEL = "NO_TEXT_FOUND"

OCR_PROMPT = (
    "Extract all visible text from this image including labels, annotations, "
    "chart data, diagram text, and any other readable content. "
    f"If no text is visible, respond with '{NO_TEXT_SENTINEL}'."
)


class ImageTextReader(Protocol):
    """Anything that can turn image bytes into text, or None for no text."""

    def extract_text(self, image_data: bytes) -> str | None: ...


def clean_ocr_response(content: str | None) -> str | None:
    """Map a raw model answer to text, or None when it reports no text."""
    if content is None:
        return None
    text = content.strip()
    if not text or text.strip("'\".") == NO_TEXT_SENTINEL:
        return None
    return text


class VisionOCR:
    """
    Reads text from images with an Ollama vision model.

    Args:
        model: Vision model to use
        max_tokens: Output token ceiling for one call
        temperature: Sampling temperature (0 for repeatable output)
        client: Optional ollama.Client; the module-level ollama.chat is used otherwise
    """

    def __init__(
        self,
        model: str = DEFAULT_VISION_MODEL,
        *,
        max_tokens: int = 2048,
        temperature: float = 0.0,
        client: Any = None,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.client = client

    @classmethod
    def from_config(cls, config: RuntimeConfig, client: Any = None) -> VisionOCR:
        return cls(
            config.vision_model,
            max_tokens=config.vision_max_tokens,
            temperature=config.vision_temperature,
            client=client,
        )

    def _chat(self, **kwargs: Any) -> Any:
        if self.client is not None:
            return self.client.chat(**kwargs)
        from ollama import chat

        return chat(**kwargs)

    def extract_text(self, image_data: bytes) -> str | None:
        """
        Extract the visible text of one image.

        Args:
            image_data: Raw image bytes (PNG, JPEG, ...)

        Returns:
            The text, or None when the image has no text or the call failed
        """
        b64_image = base64.b64encode(image_data).decode("utf-8")

        try:
            response = self._chat(
                model=self.model,
                messages=[
                    {
                        "role": "user",
                        "content": OCR_PROMPT,
                        "images": [b64_image],
                    }
                ],
                options={
                    "temperature": self.temperature,
                    "num_predict": self.max_tokens,
                },
            )
            content = response.message.content
        except Exception as e:
            # Unreachable server, missing model, or a model without vision support
            logger.warning("vision_call_failed", model=self.model, error=str(e))
            return None

        return clean_ocr_response(content)
