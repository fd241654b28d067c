import base64
from types import SimpleNamespace

import pytest

from docsift.runtime import RuntimeConfig
from docsift.vision import NO_TEXT_SENTINEL, OCR_PROMPT, VisionOCR, clean_ocr_response


class FakeClient:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.requests = []

    def chat(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(message=SimpleNamespace(content=self.content))


@pytest.mark.parametrize(
    "content, expected",
    [
        ("  Quarterly revenue 42%\n", "Quarterly revenue 42%"),
        (NO_TEXT_SENTINEL, None),
        (f"'{NO_TEXT_SENTINEL}'.", None),
        ("", None),
        (None, None),
    ],
)
def test_clean_ocr_response(content, expected):
    assert clean_ocr_response(content) == expected


def test_request_shape():
    client = FakeClient(content="Axis: time (s)")
    ocr = VisionOCR("llava:7b", max_tokens=256, temperature=0.0, client=client)

    text = ocr.extract_text(b"\x89PNG fake")

    assert text == "Axis: time (s)"
    request = client.requests[0]
    assert request["model"] == "llava:7b"
    message = request["messages"][0]
    assert message["role"] == "user"
    assert message["content"] == OCR_PROMPT
    assert message["images"] == [base64.b64encode(b"\x89PNG fake").decode("utf-8")]
    assert request["options"] == {"temperature": 0.0, "num_predict": 256}


def test_sentinel_means_no_text():
    ocr = VisionOCR(client=FakeClient(content=NO_TEXT_SENTINEL))

    assert ocr.extract_text(b"img") is None


def test_call_failure_means_no_text():
    ocr = VisionOCR(client=FakeClient(error=ConnectionError("connection refused")))

    assert ocr.extract_text(b"img") is None


def test_from_config():
    config = RuntimeConfig(vision_model="qwen2.5vl:3b", vision_max_tokens=512, vision_temperature=0.1)

    ocr = VisionOCR.from_config(config)

    assert ocr.model == "qwen2.5vl:3b"
    assert ocr.max_tokens == 512
    assert ocr.temperature == 0.1
    assert ocr.client is None
