"""SQLite record store for local runs and schema bootstrap."""

import re
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any
from uuid import uuid4

from bibliotech.errors import MissingColumnError, StoreError, UniqueViolationError
from bibliotech.storage.base import RecordStore

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_MISSING_COLUMN = re.compile(r"no column named (\w+)|no such column: (?:\w+\.)?(\w+)")

FACULTY_SCHEMA = """
CREATE TABLE IF NOT EXISTS faculty (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    email TEXT UNIQUE,
    department TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""

# Current layout: unified uri plus the (source, source_id) legacy key.
BOOKS_SCHEMA = """
CREATE TABLE IF NOT EXISTS books (
    id TEXT PRIMARY KEY,
    book_uri TEXT UNIQUE,
    source TEXT DEFAULT 'gutenberg',
    source_id TEXT,
    gutenberg_id INTEGER,
    title TEXT NOT NULL,
    author TEXT,
    dewey_decimal TEXT,
    language TEXT DEFAULT 'en',
    subject TEXT,
    publisher TEXT,
    publication_date TEXT,
    download_count INTEGER DEFAULT 0,
    faculty_id TEXT REFERENCES faculty(id) ON DELETE SET NULL,
    cover_url TEXT,
    description TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (source, source_id)
);

CREATE INDEX IF NOT EXISTS idx_books_dewey_decimal ON books(dewey_decimal);
CREATE INDEX IF NOT EXISTS idx_books_faculty_id ON books(faculty_id);
CREATE INDEX IF NOT EXISTS idx_books_source ON books(source);
"""

# Layout from before multi-source support: Gutenberg ids only.
LEGACY_BOOKS_SCHEMA = """
CREATE TABLE IF NOT EXISTS books (
    id TEXT PRIMARY KEY,
    gutenberg_id INTEGER UNIQUE NOT NULL,
    title TEXT NOT NULL,
    author TEXT,
    dewey_decimal TEXT,
    language TEXT DEFAULT 'en',
    subject TEXT,
    publisher TEXT,
    publication_date TEXT,
    download_count INTEGER DEFAULT 0,
    faculty_id TEXT REFERENCES faculty(id) ON DELETE SET NULL,
    cover_url TEXT,
    description TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""


def get_connection(db_path: str | Path) -> sqlite3.Connection:
    """Create a connection to the SQLite database.

    Args:
        db_path: Path to the SQLite database file.

    Returns:
        A sqlite3 Connection with row_factory set to Row.
    """
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


def initialize_database(db_path: str | Path, legacy: bool = False) -> None:
    """Create the database schema if it doesn't exist.

    Args:
        db_path: Path to the SQLite database file.
        legacy: Create the pre-migration books table (no uri or source
            columns) instead of the current one.
    """
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = get_connection(db_path)
    try:
        conn.executescript(FACULTY_SCHEMA + (LEGACY_BOOKS_SCHEMA if legacy else BOOKS_SCHEMA))
        conn.commit()
    finally:
        conn.close()


def _check_identifier(name: str) -> str:
    if not _IDENTIFIER.match(name):
        raise StoreError(f"Invalid identifier: {name!r}")
    return name


def _column_list(columns: str) -> str:
    if columns.strip() == "*":
        return "*"
    return ", ".join(_check_identifier(c.strip()) for c in columns.split(",") if c.strip())


def _where(
    match: dict[str, Any] | None,
    prefix: tuple[str, str] | None,
    empty: str | None = None,
) -> tuple[str, list[Any]]:
    clauses: list[str] = []
    params: list[Any] = []
    for column, value in (match or {}).items():
        if value is None:
            clauses.append(f"{_check_identifier(column)} IS NULL")
        else:
            clauses.append(f"{_check_identifier(column)} = ?")
            params.append(value)
    if prefix:
        column, value = prefix
        clauses.append(f"{_check_identifier(column)} LIKE ?")
        params.append(f"{value}%")
    if empty:
        column = _check_identifier(empty)
        clauses.append(f"({column} IS NULL OR {column} = '')")
    return (" WHERE " + " AND ".join(clauses) if clauses else ""), params


class SQLiteRecordStore(RecordStore):
    """Record store over a local SQLite file.

    Rows without an ``id`` get a generated UUID on insert, mirroring the
    ``gen_random_uuid()`` default of the hosted schema.
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        self._conn = get_connection(self._db_path)

    def close(self) -> None:
        self._conn.close()

    def select(
        self,
        table: str,
        match: dict[str, Any] | None = None,
        columns: str = "*",
        prefix: tuple[str, str] | None = None,
        empty: str | None = None,
        order: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        where, params = _where(match, prefix, empty)
        sql = f"SELECT {_column_list(columns)} FROM {_check_identifier(table)}{where}"
        if order:
            sql += f" ORDER BY {_check_identifier(order)} ASC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        with self._translate_errors():
            cursor = self._conn.execute(sql, params)
            return [dict(row) for row in cursor.fetchall()]

    def count(
        self,
        table: str,
        match: dict[str, Any] | None = None,
        prefix: tuple[str, str] | None = None,
    ) -> int:
        where, params = _where(match, prefix)
        with self._translate_errors():
            cursor = self._conn.execute(f"SELECT COUNT(*) FROM {_check_identifier(table)}{where}", params)
            return cursor.fetchone()[0]

    def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        values = dict(row)
        values.setdefault("id", str(uuid4()))
        columns = [_check_identifier(c) for c in values]
        placeholders = ", ".join("?" for _ in columns)
        sql = (
            f"INSERT INTO {_check_identifier(table)} ({', '.join(columns)}) "
            f"VALUES ({placeholders})"
        )
        with self._translate_errors():
            self._conn.execute(sql, list(values.values()))
            self._conn.commit()
        return values

    def update(self, table: str, match: dict[str, Any], changes: dict[str, Any]) -> None:
        if not changes:
            return
        assignments = ", ".join(f"{_check_identifier(c)} = ?" for c in changes)
        conditions = " AND ".join(f"{_check_identifier(c)} = ?" for c in match)
        sql = f"UPDATE {_check_identifier(table)} SET {assignments}, updated_at = CURRENT_TIMESTAMP"
        if conditions:
            sql += f" WHERE {conditions}"
        with self._translate_errors():
            self._conn.execute(sql, [*changes.values(), *match.values()])
            self._conn.commit()

    def has_column(self, table: str, column: str) -> bool:
        with self._translate_errors():
            cursor = self._conn.execute(f"PRAGMA table_info({_check_identifier(table)})")
            return any(row[1] == column for row in cursor.fetchall())

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        try:
            yield
        except sqlite3.IntegrityError as exc:
            self._conn.rollback()
            if "UNIQUE constraint failed" in str(exc):
                raise UniqueViolationError(str(exc)) from exc
            raise StoreError(str(exc)) from exc
        except sqlite3.OperationalError as exc:
            self._conn.rollback()
            match = _MISSING_COLUMN.search(str(exc))
            if match:
                raise MissingColumnError(match.group(1) or match.group(2), str(exc)) from exc
            raise StoreError(str(exc)) from exc
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
