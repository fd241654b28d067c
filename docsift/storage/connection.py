"""Database connection management."""

from __future__ import annotations

import sqlite3
from pathlib import Path

from .schema import SCHEMA_SQL, StorageError

MEMORY_PATH = ":memory:"


def init_db(path: str | Path) -> sqlite3.Connection:
    """
    Open a docsift database, creating its tables on first use.

    File databases use WAL journaling; parent directories are created.

    Args:
        path: SQLite file path, or ":memory:"

    Returns:
        Connection with sqlite3.Row rows and foreign keys enforced

    Raises:
        StorageError: If the file cannot be opened as a database
    """
    in_memory = str(path) == MEMORY_PATH
    if not in_memory:
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    try:
        conn = sqlite3.connect(str(path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        if not in_memory:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
        conn.executescript(SCHEMA_SQL)
    except sqlite3.DatabaseError as e:
        raise StorageError(f"Cannot open database {path}: {e}") from e

    conn.commit()
    return conn
