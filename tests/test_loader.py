import asyncio
import io
from types import SimpleNamespace

import pytest

from docsift.extract import pages as pages_module
from docsift.extract.base import DocumentMetadata, MalformedDocumentError, ParserIncompatibleError
from docsift.extract.loader import ParserAdapter
from docsift.extract.metadata import resolve_metadata
from docsift.extract.pages import PageTextExtractor, slice_page_words
from docsift.extract.session import CallCounter, ExtractionSession, ParseCache

from tests.pdfs import build_pdf, page_text

GARBAGE_PDF = b"%PDF-1.4\nthis is not really a pdf"


def parse(adapter: ParserAdapter, data: bytes = GARBAGE_PDF):
    return asyncio.run(adapter.parse(data))


# -----------------------------------------------------------------------------
# Parser adapter
# -----------------------------------------------------------------------------


def test_function_backend_returning_text():
    result = parse(ParserAdapter(lambda data: "alpha beta gamma"))

    assert result.text == "alpha beta gamma"
    assert result.word_count == 3


def test_function_backend_returning_mapping():
    backend = lambda data: {"text": "one two", "numpages": 4, "info": {"/Title": "Report"}}

    result = parse(ParserAdapter(backend))

    assert result.text == "one two"
    assert result.page_count == 4
    assert result.info == {"Title": "Report"}


def test_nested_doc_mapping_is_unwrapped():
    backend = lambda data: {"doc": {"content": "nested text", "pageCount": 2}}

    result = parse(ParserAdapter(backend))

    assert result.text == "nested text"
    assert result.page_count == 2


class StreamReader:
    """Class backend that only accepts a stream and exposes accessors."""

    def __init__(self, stream):
        self.data = stream.read()

    def get_text(self):
        return "streamed words"

    def get_info(self):
        return {"info": {"/Author": "Ada", "Pages": 9}, "numPages": 3}


def test_class_backend_is_constructed_and_probed():
    result = parse(ParserAdapter(StreamReader))

    assert result.text == "streamed words"
    assert result.page_count == 3
    assert result.info == {"Author": "Ada", "Pages": 9}


def test_direct_call_type_error_falls_back_to_construction():
    calls = []

    def backend(source):
        calls.append(type(source))
        if isinstance(source, bytes):
            raise TypeError("expected a stream")
        return SimpleNamespace(text="from stream", num_pages=2)

    result = parse(ParserAdapter(backend))

    assert calls == [bytes, io.BytesIO]
    assert result.text == "from stream"
    assert result.page_count == 2


class AsyncAccessors:
    def __init__(self, stream):
        pass

    async def getText(self):
        return {"pages": [{"text": "first page"}, {"text": "second page"}]}

    async def getInfo(self):
        return {"info": {"Title": "Async"}, "total": 2}


def test_async_accessors_are_awaited_and_merged():
    result = parse(ParserAdapter(AsyncAccessors))

    assert result.text == "first page\n\nsecond page"
    assert result.page_count == 2
    assert result.info == {"Title": "Async"}


def test_failing_accessor_keeps_other_results():
    class HalfBroken:
        def __init__(self, stream):
            pass

        def get_text(self):
            raise RuntimeError("font table missing")

        def get_info(self):
            return {"numpages": 5}

    result = parse(ParserAdapter(HalfBroken))

    assert result.text == ""
    assert result.page_count == 5


def test_backend_without_accessors_is_incompatible():
    class Opaque:
        def __init__(self, stream):
            pass

    with pytest.raises(ParserIncompatibleError):
        parse(ParserAdapter(Opaque))


def test_unconstructible_backend_is_incompatible():
    class NeedsPassword:
        def __init__(self, stream, password):
            pass

    with pytest.raises(ParserIncompatibleError):
        parse(ParserAdapter(NeedsPassword))


def test_unusable_direct_result_is_incompatible():
    with pytest.raises(ParserIncompatibleError):
        parse(ParserAdapter(lambda data: 42))


@pytest.mark.parametrize("data", [b"", b"GIF89a"])
def test_parse_rejects_malformed_buffers(data):
    with pytest.raises(MalformedDocumentError):
        parse(ParserAdapter(lambda d: "text"), data)


def test_default_backend_reads_real_pdf():
    data = build_pdf([{"text": page_text(1)}, {"text": page_text(2)}])

    result = parse(ParserAdapter(), data)

    assert result.page_count == 2
    assert "p1w0" in result.text
    assert "p2w59" in result.text
    assert result.format_version


# -----------------------------------------------------------------------------
# Session state
# -----------------------------------------------------------------------------


def test_parse_cache_is_single_flight():
    calls = []

    async def backend(data):
        calls.append(data)
        await asyncio.sleep(0.01)
        return "cached text"

    cache = ParseCache(ParserAdapter(backend))

    async def run():
        return await asyncio.gather(*(cache.get(GARBAGE_PDF) for _ in range(5)))

    results = asyncio.run(run())

    assert len(calls) == 1
    assert cache.parse_count == 1
    assert {r.text for r in results} == {"cached text"}


def test_parse_cache_remembers_failures():
    calls = []

    def backend(data):
        calls.append(data)
        raise ValueError("xref table broken")

    cache = ParseCache(ParserAdapter(backend))

    async def run():
        for _ in range(3):
            with pytest.raises(ValueError):
                await cache.get(GARBAGE_PDF)

    asyncio.run(run())

    assert len(calls) == 1
    assert isinstance(cache.peek(GARBAGE_PDF), ValueError)


def test_parse_cache_keys_by_buffer_identity():
    cache = ParseCache(ParserAdapter(lambda data: "text"))
    other = bytes(bytearray(GARBAGE_PDF))

    async def run():
        await cache.get(GARBAGE_PDF)
        await cache.get(other)

    asyncio.run(run())

    assert cache.parse_count == 2
    assert cache.peek(b"%PDF-unseen") is None


def test_call_counter_counts_across_threads():
    counter = CallCounter()

    async def run():
        await asyncio.gather(*(asyncio.to_thread(counter.increment) for _ in range(50)))

    asyncio.run(run())

    assert counter.value == 50


# -----------------------------------------------------------------------------
# Page text
# -----------------------------------------------------------------------------


def test_slice_page_words_spreads_words_evenly():
    text = " ".join(f"w{i}" for i in range(10))

    assert slice_page_words(text, 1, 3) == "w0 w1 w2 w3"
    assert slice_page_words(text, 3, 3) == "w8 w9"
    assert slice_page_words(text, 4, 3) == ""
    assert slice_page_words("", 1, 3) == ""


def test_page_text_from_renderer():
    data = build_pdf([{"text": page_text(1)}, {"text": page_text(2)}])

    async def run():
        with ExtractionSession(data) as session:
            extractor = PageTextExtractor(session, total_pages=2)
            return await extractor.extract(2), session.parse_cache.parse_count

    text, parse_count = asyncio.run(run())

    assert text == page_text(2)
    assert parse_count == 0


def test_page_text_falls_back_to_proportional_slice(monkeypatch):
    def broken_renderer(doc, page_number):
        raise RuntimeError("renderer incompatible")

    monkeypatch.setattr(pages_module, "render_page_text", broken_renderer)
    parser = ParserAdapter(lambda data: {"text": "a b c d e f", "numpages": 2})

    async def run():
        with ExtractionSession(GARBAGE_PDF, parser=parser) as session:
            extractor = PageTextExtractor(session, total_pages=2)
            texts = [await extractor.extract(n) for n in (1, 2)]
            return texts, session.parse_cache.parse_count

    texts, parse_count = asyncio.run(run())

    assert texts == ["a b c", "d e f"]
    assert parse_count == 1


def test_page_text_total_failure_is_empty(monkeypatch):
    def broken_renderer(doc, page_number):
        raise RuntimeError("renderer incompatible")

    def broken_parser(data):
        raise ValueError("no trailer")

    monkeypatch.setattr(pages_module, "render_page_text", broken_renderer)

    async def run():
        with ExtractionSession(GARBAGE_PDF, parser=ParserAdapter(broken_parser)) as session:
            return await PageTextExtractor(session, total_pages=3).extract(2)

    assert asyncio.run(run()) == ""


# -----------------------------------------------------------------------------
# Metadata
# -----------------------------------------------------------------------------


def test_metadata_from_renderer():
    data = build_pdf([{"text": page_text(n)} for n in range(1, 5)])

    metadata = asyncio.run(resolve_metadata(data))

    assert metadata.page_count == 4
    assert metadata.format_version


def test_page_count_floor_when_parser_reports_zero():
    parser = ParserAdapter(lambda data: {"text": "", "numpages": 0})

    metadata = asyncio.run(resolve_metadata(GARBAGE_PDF, parser=parser))

    assert metadata.page_count == 1


def test_page_count_floor_when_parser_raises():
    def backend(data):
        raise RuntimeError("page tree missing")

    metadata = asyncio.run(resolve_metadata(GARBAGE_PDF, parser=ParserAdapter(backend)))

    assert metadata.page_count == 1


def test_page_count_estimated_from_words():
    text = " ".join(["word"] * 1200)
    parser = ParserAdapter(lambda data: {"text": text, "numpages": 0})

    metadata = asyncio.run(resolve_metadata(GARBAGE_PDF, parser=parser))

    assert metadata.page_count == 3


def test_page_count_from_parser():
    parser = ParserAdapter(lambda data: {"text": "x", "num_pages": 7, "info": {"/Title": "Deck"}})

    metadata = asyncio.run(resolve_metadata(GARBAGE_PDF, parser=parser))

    assert metadata.page_count == 7
    assert metadata.info == {"title": "Deck"}


def test_document_metadata_floors_page_count():
    assert DocumentMetadata(page_count=0).page_count == 1
    assert DocumentMetadata(page_count=-3).page_count == 1
