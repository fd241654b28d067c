"""
Per-call extraction state.

Everything one extraction call shares between its page tasks lives on an
ExtractionSession: the PyMuPDF document handle, the whole-document parse
cache, the vision call counter and the worker threads blocking calls run
on. Nothing here is module-level, so two documents extracted at the same
time never see each other's state.
"""

from __future__ import annotations

import asyncio
import functools
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Callable, TypeVar

from docsift.logging_config import get_logger

from .base import ParseResult, RendererUnavailableError
from .loader import ParserAdapter

logger = get_logger(__name__)

T = TypeVar("T")


class CallCounter:
    """Thread-safe counter for vision model invocations."""

    def __init__(self):
        self._value = 0
        self._lock = threading.Lock()

    def increment(self, amount: int = 1) -> int:
        with self._lock:
            self._value += amount
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


class ParseCache:
    """
    Memoized whole-document parses, keyed by buffer identity.

    Concurrent callers for the same buffer wait on one parse. A failed parse
    is remembered too, so every page sees the same error without retrying.
    """

    def __init__(self, adapter: ParserAdapter, executor: Executor | None = None):
        self._adapter = adapter
        self._executor = executor
        self._lock = asyncio.Lock()
        self._entries: dict[int, tuple[bytes, ParseResult | Exception]] = {}
        self.parse_count = 0

    async def get(self, data: bytes) -> ParseResult:
        async with self._lock:
            entry = self._entries.get(id(data))
            if entry is None or entry[0] is not data:
                self.parse_count += 1
                try:
                    outcome: ParseResult | Exception = await self._adapter.parse(data, executor=self._executor)
                except Exception as e:
                    outcome = e
                entry = (data, outcome)
                self._entries[id(data)] = entry

        outcome = entry[1]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def peek(self, data: bytes) -> ParseResult | Exception | None:
        """Return the cached outcome for data without parsing."""
        entry = self._entries.get(id(data))
        if entry is None or entry[0] is not data:
            return None
        return entry[1]


class ExtractionSession:
    """
    State scoped to one extraction call.

    PyMuPDF documents are not thread-safe, so every renderer operation runs
    under the session's document lock in a worker thread.

    Blocking calls run on the session's own thread pool. close() does not
    wait for calls still in flight, so a timed-out extraction returns
    without waiting on a slow vision model.
    """

    def __init__(
        self,
        data: bytes,
        *,
        parser: ParserAdapter | None = None,
        max_workers: int | None = None,
    ):
        self.data = data
        self._executor = ThreadPoolExecutor(max_workers, thread_name_prefix="docsift")
        self.parse_cache = ParseCache(parser or ParserAdapter(), self._executor)
        self.vision_calls = CallCounter()
        self._doc: Any = None
        self._doc_error: Exception | None = None
        self._doc_lock = threading.Lock()
        self._closed = False

    @property
    def renderer_failed(self) -> bool:
        """True once the renderer has been tried and could not open the document."""
        return self._doc_error is not None

    def _open_document(self) -> Any:
        """Open the document once. Caller holds _doc_lock."""
        if self._closed:
            raise RendererUnavailableError("Session is closed")
        if self._doc is None and self._doc_error is None:
            import fitz  # pymupdf

            try:
                self._doc = fitz.open(stream=self.data, filetype="pdf")
            except Exception as e:
                self._doc_error = e
                logger.warning("renderer_open_failed", error=str(e))
        if self._doc_error is not None:
            raise RendererUnavailableError(str(self._doc_error)) from self._doc_error
        return self._doc

    def run_with_document(self, fn: Callable[..., T], *args: Any) -> T:
        """Call fn(doc, *args) while holding the document lock."""
        with self._doc_lock:
            doc = self._open_document()
            return fn(doc, *args)

    async def run_blocking(self, fn: Callable[..., T], *args: Any) -> T:
        """Run fn(*args) on the session's thread pool."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(fn, *args))

    async def with_document(self, fn: Callable[..., T], *args: Any) -> T:
        """Run a renderer operation in a worker thread."""
        return await self.run_blocking(self.run_with_document, fn, *args)

    async def parsed(self) -> ParseResult:
        """Whole-document parse through the cache."""
        return await self.parse_cache.get(self.data)

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
        with self._doc_lock:
            self._closed = True
            if self._doc is not None:
                self._doc.close()
                self._doc = None

    def __enter__(self) -> ExtractionSession:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
