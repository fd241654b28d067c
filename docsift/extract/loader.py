"""
Parser adapter for whole-document PDF text and metadata backends.

Backends differ in how they must be called: some are plain functions that
take the raw bytes, some are classes that wrap a stream, and some expose
their results only through accessor methods (sync or async) on the
constructed object. ParserAdapter tries the cheap direct call first, then
constructs and probes, and always hands back a ParseResult.

Usage:
    adapter = ParserAdapter()              # pypdf.PdfReader
    result = await adapter.parse(data)
    result.text, result.page_count
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import io
from collections.abc import Mapping
from concurrent.futures import Executor
from typing import Any, Callable

from docsift.logging_config import get_logger

from .base import ParseResult, ParserIncompatibleError, validate_pdf

logger = get_logger(__name__)


PAGE_COUNT_FIELDS = ("num_pages", "numpages", "numPages", "page_count", "pageCount", "total")
TEXT_ACCESSORS = ("get_text", "getText")
INFO_ACCESSORS = ("get_info", "getInfo")


def default_backend() -> Callable[..., Any]:
    """Return the default parser backend (pypdf's PdfReader)."""
    from pypdf import PdfReader

    return PdfReader


async def _call(fn: Callable[..., Any], *args: Any, executor: Executor | None = None) -> Any:
    """Invoke a sync or async callable without blocking the event loop."""
    if inspect.iscoroutinefunction(fn):
        result = await fn(*args)
    else:
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(executor, functools.partial(fn, *args))
    if inspect.isawaitable(result):
        result = await result
    return result


def _field(source: Any, name: str) -> Any:
    """Read a data field from a mapping or an object, ignoring methods."""
    if isinstance(source, Mapping):
        return source.get(name)
    value = getattr(source, name, None)
    return None if callable(value) else value


def _positive_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int) and value > 0:
        return value
    return None


def _page_count(source: Any) -> int | None:
    """Read a page count from any of the field names backends use."""
    for name in PAGE_COUNT_FIELDS:
        count = _positive_int(_field(source, name))
        if count:
            return count

    pages = _field(source, "pages")
    count = _positive_int(pages)
    if count:
        return count
    if isinstance(pages, (list, tuple)) and pages:
        return len(pages)

    info = _field(source, "info")
    if isinstance(info, Mapping):
        return _positive_int(info.get("Pages"))
    return None


def _normalize_info(raw: Any) -> dict[str, Any]:
    """Copy a document-info mapping, dropping pypdf's leading slashes."""
    if not isinstance(raw, Mapping):
        return {}
    info: dict[str, Any] = {}
    for key, value in raw.items():
        if value is None:
            continue
        name = str(key).lstrip("/")
        info[name] = value if isinstance(value, (int, float, bool)) else str(value)
    return info


def _version(source: Any, info: Mapping[str, Any]) -> str | None:
    version = _field(source, "version") or info.get("PDFFormatVersion")
    return str(version) if version else None


def _merge_text(result: ParseResult, value: Any) -> None:
    """Merge the output of a text accessor into result."""
    if isinstance(value, str):
        result.text = value
        return
    if value is None:
        return

    text = _field(value, "text")
    if isinstance(text, str):
        result.text = text

    pages = _field(value, "pages")
    if isinstance(pages, (list, tuple)):
        if not result.text:
            page_texts = [_field(page, "text") for page in pages]
            result.text = "\n\n".join(t for t in page_texts if isinstance(t, str) and t)
        if pages:
            result.page_count = len(pages)


def _merge_info(result: ParseResult, value: Any) -> None:
    """Merge the output of an info accessor into result."""
    if value is None:
        return
    info = _field(value, "info")
    if isinstance(info, Mapping):
        result.info.update(_normalize_info(info))
    metadata = _field(value, "metadata")
    if isinstance(metadata, Mapping):
        result.metadata = dict(metadata)
    count = _page_count(value)
    if count:
        result.page_count = count
    result.format_version = result.format_version or _version(value, result.info)


def _from_fields(source: Any) -> ParseResult:
    """Build a ParseResult from a result object that carries its data as fields."""
    doc = _field(source, "doc")
    if isinstance(doc, Mapping) and not isinstance(_field(source, "text"), str):
        source = doc

    text = _field(source, "text")
    if not isinstance(text, str):
        content = _field(source, "content")
        text = content if isinstance(content, str) else ""

    info = _normalize_info(_field(source, "info"))
    metadata = _field(source, "metadata")
    return ParseResult(
        text=text,
        page_count=_page_count(source),
        info=info,
        metadata=dict(metadata) if isinstance(metadata, Mapping) else None,
        format_version=_version(source, info),
    )


def _read_pages(reader: Any) -> ParseResult | None:
    """Read a pypdf-style reader: a pages sequence with extract_text()."""
    pages = getattr(reader, "pages", None)
    if pages is None or isinstance(pages, (int, str, bytes)):
        return None

    texts: list[str] = []
    for page in pages:
        extract = getattr(page, "extract_text", None)
        if not callable(extract):
            return None
        texts.append(extract() or "")

    result = ParseResult(text="\n".join(texts), page_count=len(texts) or None)
    result.info = _normalize_info(getattr(reader, "metadata", None))
    header = getattr(reader, "pdf_header", None)
    if isinstance(header, str) and header.startswith("%PDF-"):
        result.format_version = header[5:]
    return result


class ParserAdapter:
    """Presents any supported parser backend as parse(data) -> ParseResult."""

    def __init__(self, backend: Callable[..., Any] | None = None):
        self._backend = backend

    @property
    def backend(self) -> Callable[..., Any]:
        if self._backend is None:
            self._backend = default_backend()
        return self._backend

    async def parse(self, data: bytes, *, executor: Executor | None = None) -> ParseResult:
        """
        Parse a whole PDF into text, page count and info.

        Returns an empty-text result for documents without a text layer.
        Blocking backend calls run on executor, or the loop's default pool.

        Raises:
            MalformedDocumentError: If the buffer is empty or not a PDF
            ParserIncompatibleError: If no calling convention of the backend works
        """
        validate_pdf(data)
        backend = self.backend

        if not inspect.isclass(backend):
            try:
                raw = await _call(backend, data, executor=executor)
            except TypeError as e:
                # Backend refused the direct call; it needs to be constructed
                logger.debug("parser_direct_call_rejected", error=str(e))
            else:
                result = await self._probe(raw, executor)
                if result is None:
                    raise ParserIncompatibleError(
                        f"Parser returned an unusable {type(raw).__name__}"
                    )
                return result

        try:
            instance = await _call(backend, io.BytesIO(data), executor=executor)
        except TypeError as e:
            raise ParserIncompatibleError(f"Parser backend cannot be constructed: {e}") from e

        result = await self._probe(instance, executor)
        if result is None:
            raise ParserIncompatibleError(
                f"No usable text accessor on {type(instance).__name__}"
            )
        return result

    async def _probe(self, obj: Any, executor: Executor | None = None) -> ParseResult | None:
        """Find the cheapest way to read results off obj, in order."""
        if obj is None:
            return None
        if isinstance(obj, str):
            return ParseResult(text=obj)
        if isinstance(obj, Mapping) or isinstance(_field(obj, "text"), str):
            return _from_fields(obj)

        result = await self._probe_accessors(obj, executor)
        if result is not None:
            return result

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(executor, _read_pages, obj)

    async def _probe_accessors(self, obj: Any, executor: Executor | None = None) -> ParseResult | None:
        """Query get_text/get_info style accessors and merge what each yields."""
        text_fn = _first_callable(obj, TEXT_ACCESSORS)
        info_fn = _first_callable(obj, INFO_ACCESSORS)
        if text_fn is None and info_fn is None:
            return None

        result = ParseResult()
        if text_fn is not None:
            try:
                _merge_text(result, await _call(text_fn, executor=executor))
            except Exception as e:
                logger.warning("parser_text_accessor_failed", error=str(e))
        if info_fn is not None:
            try:
                _merge_info(result, await _call(info_fn, executor=executor))
            except Exception as e:
                logger.warning("parser_info_accessor_failed", error=str(e))
        return result


def _first_callable(obj: Any, names: tuple[str, ...]) -> Callable[..., Any] | None:
    for name in names:
        fn = getattr(obj, name, None)
        if callable(fn):
            return fn
    return None
