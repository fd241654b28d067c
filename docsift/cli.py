"""
Docsift CLI.

Commands:
    extract    Print the text of a document (PDF, DOCX, TXT, MD, images)
    ingest     Extract a document and store its chunks in a database
    info       Inspect a database: documents, chunks, metadata
    show       Print the stored text of one document
    insights   Word count and reading time for a document
    keywords   Most frequent words, English and Arabic stopwords excluded
    bookmarks  One title per page from its first meaningful line

Examples:
    docsift extract report.pdf -o report.txt
    docsift extract scan.pdf --stats -v
    docsift ingest report.pdf --db library.db
    docsift info library.db
    docsift show library.db 1
    docsift keywords report.pdf -n 10 --no-images
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path


def _build_config(args: argparse.Namespace):
    from docsift.runtime import get_runtime_config

    return get_runtime_config(
        extract_image_text=not args.no_images,
        vision_model=args.model,
        batch_size=args.batch_size,
        max_pages=args.max_pages,
        timeout=args.timeout,
        verbose=args.verbose,
    )


def _read_input(args: argparse.Namespace):
    from docsift.extract import DocumentBuffer, mime_type_for

    path = Path(args.file)
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")
    mime_type = args.mime or mime_type_for(path.name)
    return DocumentBuffer(data=path.read_bytes(), mime_type=mime_type, name=path.name)


def cmd_extract(args: argparse.Namespace) -> int:
    """Handle extract command."""
    from docsift.extract import EMPTY_DOCUMENT_MESSAGE, ExtractionError, extract_document

    try:
        config = _build_config(args)
        document = _read_input(args)
        result = extract_document(document, config=config)
    except (FileNotFoundError, ValueError, ExtractionError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if result.is_empty:
        print(EMPTY_DOCUMENT_MESSAGE, file=sys.stderr)
    elif args.output:
        Path(args.output).write_text(result.combined_text, encoding="utf-8")
        print(f"Wrote: {args.output}")
    else:
        print(result.combined_text.strip())

    if args.stats:
        print(file=sys.stderr)
        print("Stats:", file=sys.stderr)
        if result.page_count is not None:
            print(f"  Pages: {result.pages_processed}/{result.page_count}", file=sys.stderr)
        print(f"  Vision calls: {result.vision_call_count}", file=sys.stderr)
        print(f"  Characters: {len(result.combined_text):,}", file=sys.stderr)
        if result.timed_out:
            print("  Timed out: partial result", file=sys.stderr)

    return 1 if result.is_empty else 0


def cmd_ingest(args: argparse.Namespace) -> int:
    """Handle ingest command."""
    from docsift.extract import ExtractionError
    from docsift.ingest import ingest_document
    from docsift.storage import StorageError, init_db

    try:
        config = _build_config(args)
        document = _read_input(args)
        conn = init_db(args.db)
    except (FileNotFoundError, ValueError, StorageError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        outcome = ingest_document(
            conn,
            document.data,
            document.mime_type,
            document.name,
            config=config,
        )
    except (ExtractionError, StorageError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        conn.close()

    print(f"Document {outcome.document_id}: {outcome.chunk_count} chunks")
    if args.verbose:
        print(f"  Vision calls: {outcome.result.vision_call_count}")
        print(f"  Pages processed: {outcome.result.pages_processed}")
    if outcome.warning:
        print(f"Warning: {outcome.warning}", file=sys.stderr)
    return 0


def cmd_info(args: argparse.Namespace) -> int:
    """Handle info command."""
    from docsift.storage import get_all_documents, get_all_metadata, get_stats, init_db

    db_path = Path(args.db)
    if not db_path.exists():
        print(f"Error: File not found: {db_path}", file=sys.stderr)
        return 1

    conn = init_db(str(db_path))
    try:
        stats = get_stats(conn)
        metadata = get_all_metadata(conn)

        print(f"Database: {db_path}")
        print(f"Size: {db_path.stat().st_size:,} bytes")

        if "format_version" in metadata or "docsift_version" in metadata:
            print()
            print("Version:")
            if "format_version" in metadata:
                print(f"  Format: {metadata['format_version']}")
            if "docsift_version" in metadata:
                print(f"  Docsift: {metadata['docsift_version']}")

        print()
        print("Stats:")
        print(f"  Documents: {stats['total_documents']}")
        print(f"  Chunks: {stats['total_chunks']}")
        print(f"  Words: {stats['total_words']:,}")
        print(f"  Vision calls: {stats['total_vision_calls']}")
        print(f"  Content size: {stats['total_size_bytes']:,} bytes")

        documents = get_all_documents(conn)
        if documents:
            print()
            print("Documents:")
            for doc in documents:
                pages = f", {doc['page_count']} pages" if doc["page_count"] else ""
                print(f"  [{doc['id']}] {doc['name']} ({doc['mime_type']}{pages}, {doc['word_count']:,} words)")

        return 0
    finally:
        conn.close()


def cmd_show(args: argparse.Namespace) -> int:
    """Handle show command."""
    from docsift.storage import NotFoundError, get_document_text, init_db, require_document

    db_path = Path(args.db)
    if not db_path.exists():
        print(f"Error: File not found: {db_path}", file=sys.stderr)
        return 1

    conn = init_db(str(db_path))
    try:
        require_document(conn, args.document_id)
        print(get_document_text(conn, args.document_id))
        return 0
    except NotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        conn.close()


def cmd_insights(args: argparse.Namespace) -> int:
    """Handle insights command."""
    from docsift.extract import ExtractionError, extract_document
    from docsift.insights import reading_insights

    try:
        config = _build_config(args)
        document = _read_input(args)
        result = extract_document(document, config=config)
    except (FileNotFoundError, ValueError, ExtractionError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    insights = reading_insights(result.combined_text, result.page_count)
    print(f"Words: {insights.total_word_count:,}")
    print(f"Characters: {insights.total_character_count:,}")
    print(f"Pages: {insights.total_pages}")
    print(f"Reading time: ~{insights.estimated_reading_minutes} min")
    print(f"Words per page: {insights.average_words_per_page}")
    return 0


def cmd_keywords(args: argparse.Namespace) -> int:
    """Handle keywords command."""
    from docsift.extract import ExtractionError, extract_document
    from docsift.insights import document_keywords

    try:
        config = _build_config(args)
        document = _read_input(args)
        result = extract_document(document, config=config)
    except (FileNotFoundError, ValueError, ExtractionError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for keyword in document_keywords(result, args.top):
        print(f"{keyword.count:>6}  {keyword.word}")
    return 0


def cmd_bookmarks(args: argparse.Namespace) -> int:
    """Handle bookmarks command."""
    from docsift.extract import ExtractionError, extract_document
    from docsift.insights import document_bookmarks

    try:
        config = _build_config(args)
        document = _read_input(args)
        result = extract_document(document, config=config)
    except (FileNotFoundError, ValueError, ExtractionError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for bookmark in document_bookmarks(result):
        print(f"{bookmark.page:>4}  {bookmark.title}")
    return 0


def _add_extraction_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "file",
        help="Path to the document",
    )
    parser.add_argument(
        "--mime",
        default=None,
        help="Declared MIME type (default: guessed from the extension)",
    )
    parser.add_argument(
        "--no-images",
        action="store_true",
        help="Skip vision OCR of images and scanned pages",
    )
    parser.add_argument(
        "--max-pages",
        type=int,
        default=None,
        help="Process at most this many pages",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds allowed per document; partial text is kept",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Pages processed concurrently (default: 3)",
    )
    parser.add_argument(
        "-m",
        "--model",
        default=None,
        help="Vision model for OCR (default: qwen3-vl:2b via Ollama)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log pipeline progress",
    )


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="docsift",
        description="Hybrid document text extraction with bounded vision OCR",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit logs as JSON lines",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # extract
    extract_parser = subparsers.add_parser(
        "extract",
        help="Print the text of a document",
    )
    _add_extraction_args(extract_parser)
    extract_parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Write the text to this file instead of stdout",
    )
    extract_parser.add_argument(
        "--stats",
        action="store_true",
        help="Print page and vision call counts to stderr",
    )

    # ingest
    ingest_parser = subparsers.add_parser(
        "ingest",
        help="Extract a document and store its chunks",
    )
    _add_extraction_args(ingest_parser)
    ingest_parser.add_argument(
        "--db",
        required=True,
        help="Path to the SQLite database",
    )

    # info
    info_parser = subparsers.add_parser(
        "info",
        help="Inspect documents, chunks and metadata",
    )
    info_parser.add_argument(
        "db",
        help="Path to the SQLite database",
    )

    # show
    show_parser = subparsers.add_parser(
        "show",
        help="Print the stored text of a document",
    )
    show_parser.add_argument(
        "db",
        help="Path to the SQLite database",
    )
    show_parser.add_argument(
        "document_id",
        type=int,
        help="Document ID (see 'info')",
    )

    # insights
    insights_parser = subparsers.add_parser(
        "insights",
        help="Word count and reading time for a document",
    )
    _add_extraction_args(insights_parser)

    # keywords
    keywords_parser = subparsers.add_parser(
        "keywords",
        help="Most frequent words of a document, stopwords excluded",
    )
    _add_extraction_args(keywords_parser)
    keywords_parser.add_argument(
        "-n",
        "--top",
        type=int,
        default=20,
        help="Number of keywords to list (default: 20)",
    )

    # bookmarks
    bookmarks_parser = subparsers.add_parser(
        "bookmarks",
        help="One title per page, from its first meaningful line",
    )
    _add_extraction_args(bookmarks_parser)

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return 0

    from docsift.logging_config import configure_logging

    configure_logging(
        "DEBUG" if getattr(args, "verbose", False) else "WARNING",
        json_logs=args.json_logs,
    )

    if args.command == "extract":
        return cmd_extract(args)
    elif args.command == "ingest":
        return cmd_ingest(args)
    elif args.command == "info":
        return cmd_info(args)
    elif args.command == "show":
        return cmd_show(args)
    elif args.command == "insights":
        return cmd_insights(args)
    elif args.command == "keywords":
        return cmd_keywords(args)
    elif args.command == "bookmarks":
        return cmd_bookmarks(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
