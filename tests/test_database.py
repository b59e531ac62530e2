"""Tests for the SQLite record store."""

import sqlite3
from pathlib import Path

import pytest

from bibliotech.errors import MissingColumnError, StoreError, UniqueViolationError
from bibliotech.storage.database import SQLiteRecordStore, get_connection, initialize_database


@pytest.fixture
def store(tmp_path: Path) -> SQLiteRecordStore:
    db_path = tmp_path / "test.db"
    initialize_database(db_path)
    store = SQLiteRecordStore(db_path)
    yield store
    store.close()


@pytest.fixture
def legacy_store(tmp_path: Path) -> SQLiteRecordStore:
    db_path = tmp_path / "legacy.db"
    initialize_database(db_path, legacy=True)
    store = SQLiteRecordStore(db_path)
    yield store
    store.close()


def _columns(db_path: Path, table: str) -> set[str]:
    conn = sqlite3.connect(str(db_path))
    cursor = conn.execute(f"PRAGMA table_info({table})")
    columns = {row[1] for row in cursor.fetchall()}
    conn.close()
    return columns


class TestInitializeDatabase:
    def test_creates_tables(self, tmp_path: Path) -> None:
        db_path = tmp_path / "test.db"
        initialize_database(db_path)

        conn = sqlite3.connect(str(db_path))
        cursor = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
        )
        tables = [row[0] for row in cursor.fetchall()]
        conn.close()

        assert "books" in tables
        assert "faculty" in tables

    def test_idempotent(self, tmp_path: Path) -> None:
        db_path = tmp_path / "test.db"
        initialize_database(db_path)
        initialize_database(db_path)  # Should not raise
        assert "book_uri" in _columns(db_path, "books")

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        db_path = tmp_path / "nested" / "dir" / "test.db"
        initialize_database(db_path)
        assert db_path.exists()

    def test_books_table_schema(self, tmp_path: Path) -> None:
        db_path = tmp_path / "test.db"
        initialize_database(db_path)
        columns = _columns(db_path, "books")
        for column in ("id", "book_uri", "source", "source_id", "gutenberg_id", "title",
                       "dewey_decimal", "faculty_id", "cover_url", "description"):
            assert column in columns

    def test_legacy_schema_lacks_uri_columns(self, tmp_path: Path) -> None:
        db_path = tmp_path / "legacy.db"
        initialize_database(db_path, legacy=True)
        columns = _columns(db_path, "books")
        assert "gutenberg_id" in columns
        assert "book_uri" not in columns
        assert "source" not in columns


class TestGetConnection:
    def test_returns_connection_with_row_factory(self, tmp_path: Path) -> None:
        db_path = tmp_path / "test.db"
        initialize_database(db_path)

        conn = get_connection(db_path)
        assert conn.row_factory == sqlite3.Row
        conn.close()

    def test_wal_mode_enabled(self, tmp_path: Path) -> None:
        db_path = tmp_path / "test.db"
        initialize_database(db_path)

        conn = get_connection(db_path)
        cursor = conn.execute("PRAGMA journal_mode")
        mode = cursor.fetchone()[0]
        conn.close()
        assert mode == "wal"


class TestSQLiteRecordStore:
    def test_insert_assigns_id(self, store: SQLiteRecordStore) -> None:
        row = store.insert("books", {"title": "Dracula", "book_uri": "gutenberg://345"})
        assert row["id"]
        assert store.get_one("books", {"book_uri": "gutenberg://345"})["title"] == "Dracula"

    def test_get_one_missing(self, store: SQLiteRecordStore) -> None:
        assert store.get_one("books", {"book_uri": "gutenberg://1"}) is None

    def test_unique_violation(self, store: SQLiteRecordStore) -> None:
        store.insert("books", {"title": "A", "book_uri": "custom://a"})
        with pytest.raises(UniqueViolationError):
            store.insert("books", {"title": "A again", "book_uri": "custom://a"})

    def test_composite_unique_violation(self, store: SQLiteRecordStore) -> None:
        store.insert("books", {"title": "A", "source": "wikibooks", "source_id": "A"})
        with pytest.raises(UniqueViolationError):
            store.insert("books", {"title": "A", "source": "wikibooks", "source_id": "A"})

    def test_missing_column_on_insert(self, legacy_store: SQLiteRecordStore) -> None:
        with pytest.raises(MissingColumnError) as excinfo:
            legacy_store.insert("books", {"title": "A", "gutenberg_id": 1, "book_uri": "gutenberg://1"})
        assert excinfo.value.column == "book_uri"

    def test_missing_column_on_select(self, legacy_store: SQLiteRecordStore) -> None:
        with pytest.raises(MissingColumnError) as excinfo:
            legacy_store.get_one("books", {"source": "gutenberg"})
        assert excinfo.value.column == "source"

    def test_other_integrity_errors(self, legacy_store: SQLiteRecordStore) -> None:
        with pytest.raises(StoreError) as excinfo:
            legacy_store.insert("books", {"title": "No id"})
        assert not isinstance(excinfo.value, UniqueViolationError)

    def test_select_filters(self, store: SQLiteRecordStore) -> None:
        store.insert("books", {"title": "B", "dewey_decimal": "510", "cover_url": None})
        store.insert("books", {"title": "A", "dewey_decimal": "500", "cover_url": ""})
        store.insert("books", {"title": "C", "dewey_decimal": "800", "cover_url": "x.jpg"})

        by_prefix = store.select("books", prefix=("dewey_decimal", "5"), order="title")
        assert [r["title"] for r in by_prefix] == ["A", "B"]

        without_cover = store.select("books", empty="cover_url", columns="title", order="title")
        assert without_cover == [{"title": "A"}, {"title": "B"}]

        assert len(store.select("books", limit=2)) == 2

    def test_update(self, store: SQLiteRecordStore) -> None:
        row = store.insert("books", {"title": "A"})
        store.update("books", {"id": row["id"]}, {"cover_url": "a.jpg"})
        assert store.get_one("books", {"id": row["id"]})["cover_url"] == "a.jpg"

    def test_has_column(self, store: SQLiteRecordStore, legacy_store: SQLiteRecordStore) -> None:
        assert store.has_column("books", "book_uri") is True
        assert legacy_store.has_column("books", "book_uri") is False

    def test_rejects_unsafe_identifiers(self, store: SQLiteRecordStore) -> None:
        with pytest.raises(StoreError):
            store.select("books; DROP TABLE books")

    def test_count(self, store: SQLiteRecordStore) -> None:
        store.insert("books", {"title": "A", "dewey_decimal": "510", "source": "wikibooks", "source_id": "A"})
        store.insert("books", {"title": "B", "dewey_decimal": "500", "source": "gutenberg", "source_id": "2"})
        store.insert("books", {"title": "C", "dewey_decimal": "800", "source": "wikibooks", "source_id": "C"})

        assert store.count("books") == 3
        assert store.count("books", prefix=("dewey_decimal", "5")) == 2
        assert store.count("books", match={"source": "wikibooks"}, prefix=("dewey_decimal", "5")) == 1
