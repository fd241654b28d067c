"""
Reading statistics computed from extracted text.

Word counts and a reading-time estimate, the most frequent keywords with
English and Arabic stopwords left out, and one bookmark per page titled
by the page's first meaningful line.
"""

from __future__ import annotations

import math
import re
from collections import Counter
from dataclasses import dataclass
from typing import Sequence

from docsift.extract.base import ExtractionResult

DEFAULT_WORDS_PER_MINUTE = 200
DEFAULT_TOP_KEYWORDS = 20

MIN_TITLE_LETTERS = 3
MAX_TITLE_LENGTH = 100

ENGLISH_STOPWORDS = frozenset({
    "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "has",
    "he", "in", "is", "it", "its", "of", "on", "that", "the", "to", "was",
    "will", "with", "this", "but", "they", "have", "had", "what", "said",
    "each", "which", "their", "time", "if", "up", "out", "many", "then",
    "them", "these", "so", "some", "her", "would", "make", "like", "into",
    "him", "two", "more", "very", "after", "words", "long", "than", "first",
    "been", "call", "who", "oil", "sit", "now", "find", "down", "day", "did",
    "get", "come", "made", "may", "part", "i", "we", "you", "she", "do",
    "can", "could", "should", "might", "must", "shall", "am", "were",
    "being", "having", "does", "doing",
})

ARABIC_STOPWORDS = frozenset({
    "في", "من", "إلى", "على", "هذا", "هذه", "ذلك", "تلك", "التي", "الذي",
    "كان", "كانت", "يكون", "تكون", "كانوا", "يكونون", "له", "لها", "لهم",
    "لهن", "به", "بها", "بهم", "عنه", "عنها", "عنهم", "عنهن", "إليه",
    "إليها", "إليهم", "إليهن", "ال", "و", "أو", "لكن", "إذا", "إن", "أن",
    "ما", "لا", "لم", "لن", "ليس", "ليست", "لست", "لستم", "لستن", "لستما",
})

# Word characters plus the Arabic block, which also holds Arabic punctuation
_NOT_WORD = re.compile(r"[^\w\u0600-\u06FF]")
_NOT_LETTER = re.compile(r"[\d\s\W]")


@dataclass
class ReadingInsights:
    """Word counts and reading-time estimate for a document."""

    total_word_count: int
    total_character_count: int
    total_pages: int
    estimated_reading_minutes: int
    average_words_per_page: int


@dataclass
class KeywordFrequency:
    word: str
    count: int


@dataclass
class Bookmark:
    """A page and the title it is listed under."""

    title: str
    page: int


def reading_insights(
    text: str,
    page_count: int | None = None,
    *,
    words_per_minute: int = DEFAULT_WORDS_PER_MINUTE,
) -> ReadingInsights:
    """
    Compute reading statistics for a document's text.

    Args:
        text: Extracted document text
        page_count: Page count from the document metadata (1 if unknown)
        words_per_minute: Reading speed for the time estimate

    Returns:
        ReadingInsights for the text
    """
    words = text.split()
    total_pages = max(1, page_count or 1)
    return ReadingInsights(
        total_word_count=len(words),
        total_character_count=len(text),
        total_pages=total_pages,
        estimated_reading_minutes=math.ceil(len(words) / words_per_minute),
        average_words_per_page=round(len(words) / total_pages),
    )


def clean_word(word: str) -> str:
    """Lowercase a word and strip everything but letters, digits and Arabic."""
    return _NOT_WORD.sub("", word.lower())


def is_stopword(word: str) -> bool:
    if len(word) < 2:
        return True
    return word.lower() in ENGLISH_STOPWORDS or word.strip() in ARABIC_STOPWORDS


def keyword_frequencies(text: str, top_n: int = DEFAULT_TOP_KEYWORDS) -> list[KeywordFrequency]:
    """
    Most frequent non-stopword words in text, most frequent first.

    Words that tie keep the order they first appeared in.
    """
    words = (clean_word(word) for word in text.split())
    counts = Counter(word for word in words if not is_stopword(word))
    return [KeywordFrequency(word, count) for word, count in counts.most_common(max(0, top_n))]


def page_title(text: str) -> str | None:
    """First line with at least three letters, whitespace collapsed and cut to length."""
    for line in text.split("\n"):
        line = line.strip()
        if len(line) < MIN_TITLE_LETTERS:
            continue
        if len(_NOT_LETTER.sub("", line)) >= MIN_TITLE_LETTERS:
            return " ".join(line.split())[:MAX_TITLE_LENGTH]
    return None


def generate_bookmarks(page_texts: Sequence[str]) -> list[Bookmark]:
    """One bookmark per page; pages without a usable line are titled "Page N"."""
    return [
        Bookmark(title=page_title(text) or f"Page {page}", page=page)
        for page, text in enumerate(page_texts, start=1)
    ]


def plain_page_texts(result: ExtractionResult) -> list[str]:
    """
    Text of every page of an extraction result, without page markers.

    Pages that were not processed come back empty. Results without page
    records (plain text files) are treated as a single page.
    """
    if not result.pages:
        return [result.combined_text]

    texts = {
        page.page_number: "\n".join([page.native_text, *page.image_texts])
        for page in result.pages
    }
    last_page = max(result.page_count or 0, *texts)
    return [texts.get(page, "") for page in range(1, last_page + 1)]


def document_bookmarks(result: ExtractionResult) -> list[Bookmark]:
    return generate_bookmarks(plain_page_texts(result))


def document_keywords(result: ExtractionResult, top_n: int = DEFAULT_TOP_KEYWORDS) -> list[KeywordFrequency]:
    return keyword_frequencies("\n".join(plain_page_texts(result)), top_n)
