import pytest

from docsift.storage import (
    IntegrityError,
    NotFoundError,
    get_all_documents,
    get_all_metadata,
    get_chunks,
    get_document,
    get_document_by_hash,
    get_document_text,
    get_metadata,
    get_stats,
    replace_chunks,
    require_document,
    set_metadata,
    upsert_document,
)


def test_upsert_same_hash_keeps_id(conn):
    first = upsert_document(conn, "a.pdf", "application/pdf", 100, "abc", page_count=2, word_count=10)
    second = upsert_document(conn, "renamed.pdf", "application/pdf", 100, "abc", page_count=2, word_count=12)

    assert first == second
    doc = get_document(conn, first)
    assert doc["name"] == "renamed.pdf"
    assert doc["word_count"] == 12
    assert get_document_by_hash(conn, "abc")["id"] == first
    assert len(get_all_documents(conn)) == 1


def test_require_document_raises_for_missing(conn):
    assert get_document(conn, 99) is None
    with pytest.raises(NotFoundError):
        require_document(conn, 99)


def test_replace_chunks_and_read_back_in_order(conn):
    doc_id = upsert_document(conn, "a.txt", "text/plain", 5, "h1")

    replace_chunks(conn, doc_id, [(1, "world", 1), (0, "hello", 1)])

    assert [c["text"] for c in get_chunks(conn, doc_id)] == ["hello", "world"]
    assert get_document_text(conn, doc_id) == "hello world"

    replace_chunks(conn, doc_id, [(0, "fresh", 1)])
    assert get_document_text(conn, doc_id) == "fresh"


def test_replace_chunks_requires_document(conn):
    with pytest.raises(NotFoundError):
        replace_chunks(conn, 42, [(0, "orphan", 1)])


def test_duplicate_chunk_index_rolls_back(conn):
    doc_id = upsert_document(conn, "a.txt", "text/plain", 5, "h1")
    replace_chunks(conn, doc_id, [(0, "kept", 1)])

    with pytest.raises(IntegrityError):
        replace_chunks(conn, doc_id, [(0, "one", 1), (0, "two", 1)])

    assert get_document_text(conn, doc_id) == "kept"


def test_chunks_across_documents(conn):
    a = upsert_document(conn, "a.txt", "text/plain", 1, "ha")
    b = upsert_document(conn, "b.txt", "text/plain", 1, "hb")
    replace_chunks(conn, b, [(0, "bee", 1)])
    replace_chunks(conn, a, [(0, "ay", 1)])

    assert [(c["document_id"], c["text"]) for c in get_chunks(conn)] == [(a, "ay"), (b, "bee")]


def test_metadata_and_stats(conn):
    set_metadata(conn, "format_version", "1")
    set_metadata(conn, "format_version", "2")
    doc_id = upsert_document(conn, "a.pdf", "application/pdf", 300, "h", word_count=7, vision_calls=2)
    replace_chunks(conn, doc_id, [(0, "a b c", 3), (1, "d e f g", 4)])

    assert get_metadata(conn, "format_version") == "2"
    assert get_metadata(conn, "missing") is None
    assert get_all_metadata(conn) == {"format_version": "2"}
    assert get_stats(conn) == {
        "total_documents": 1,
        "total_chunks": 2,
        "total_size_bytes": 300,
        "total_words": 7,
        "total_vision_calls": 2,
    }


def test_empty_database_stats(conn):
    stats = get_stats(conn)

    assert stats["total_documents"] == 0
    assert stats["total_words"] == 0
