"""
Chunking module for splitting extracted text into fixed-size word chunks.

Chunks are the unit of storage and retrieval. A document's chunks are
written once per extraction; regenerating them replaces the whole set.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

from docsift.storage import replace_chunks

DEFAULT_MAX_WORDS = 500


@dataclass(frozen=True)
class TextChunk:
    """A segment of a document's text with its position in the sequence."""

    text: str
    ordinal: int

    @property
    def word_count(self) -> int:
        """Number of whitespace-separated words in the chunk."""
        return len(self.text.split())


def chunk_text(text: str, max_words: int = DEFAULT_MAX_WORDS) -> list[TextChunk]:
    """
    Split text into chunks of at most max_words words.

    Words are whitespace-separated tokens; each chunk joins its words with
    single spaces. Concatenating the chunks' words in order gives back the
    original word sequence.

    Args:
        text: Text to split
        max_words: Word cap per chunk

    Returns:
        Chunks in order, ordinals starting at 0
    """
    if max_words < 1:
        raise ValueError("max_words must be at least 1")

    words = text.split()
    chunks: list[TextChunk] = []
    for start in range(0, len(words), max_words):
        segment = " ".join(words[start : start + max_words]).strip()
        if segment:
            chunks.append(TextChunk(text=segment, ordinal=len(chunks)))
    return chunks


def chunk_document(
    conn: sqlite3.Connection,
    document_id: int,
    text: str,
    *,
    max_words: int = DEFAULT_MAX_WORDS,
) -> int:
    """
    Chunk a document's text and store the chunks, replacing any earlier set.

    Args:
        conn: Database connection
        document_id: ID of the stored document
        text: Extracted text of the document
        max_words: Word cap per chunk

    Returns:
        Number of chunks stored
    """
    chunks = chunk_text(text, max_words)
    replace_chunks(conn, document_id, [(c.ordinal, c.text, c.word_count) for c in chunks])
    return len(chunks)
