"""Tests for the cover backfill job."""

import logging
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from bibliotech.config import GutenbergConfig
from bibliotech.errors import ConfigurationError, StoreError
from bibliotech.pipeline.covers import backfill_covers
from bibliotech.storage.database import SQLiteRecordStore, initialize_database

CONFIG = GutenbergConfig(cover_url_template="https://covers.example/{id}.jpg", cover_update_delay=0)


def _open(tmp_path: Path, legacy: bool = False) -> SQLiteRecordStore:
    db_path = tmp_path / "books.db"
    initialize_database(db_path, legacy=legacy)
    return SQLiteRecordStore(db_path)


@pytest.fixture
def store(tmp_path: Path) -> SQLiteRecordStore:
    store = _open(tmp_path)
    store.insert("books", {"title": "Emma", "source": "gutenberg", "source_id": "158", "gutenberg_id": 158})
    store.insert("books", {"title": "Dracula", "source": "gutenberg", "source_id": "345",
                           "gutenberg_id": 345, "cover_url": "https://existing/345.jpg"})
    store.insert("books", {"title": "Calculus", "source": "wikibooks", "source_id": "Calculus"})
    yield store
    store.close()


def _covers(store: SQLiteRecordStore) -> dict[str, str | None]:
    return {row["title"]: row["cover_url"] for row in store.select("books")}


class TestBackfillCovers:
    def test_fills_only_empty_gutenberg_covers(self, store: SQLiteRecordStore) -> None:
        updated, failed = backfill_covers(store, CONFIG, sleep=lambda s: None)

        assert (updated, failed) == (1, 0)
        assert _covers(store) == {
            "Emma": "https://covers.example/158.jpg",
            "Dracula": "https://existing/345.jpg",
            "Calculus": None,
        }

    def test_second_run_finds_nothing(self, store: SQLiteRecordStore) -> None:
        backfill_covers(store, CONFIG, sleep=lambda s: None)
        assert backfill_covers(store, CONFIG, sleep=lambda s: None) == (0, 0)

    def test_dry_run(self, store: SQLiteRecordStore) -> None:
        updated, _ = backfill_covers(store, CONFIG, dry_run=True, sleep=lambda s: None)
        assert updated == 1
        assert _covers(store)["Emma"] is None

    def test_legacy_table_without_source_column(self, tmp_path: Path) -> None:
        store = _open(tmp_path, legacy=True)
        store.insert("books", {"title": "Emma", "gutenberg_id": 158})

        assert backfill_covers(store, CONFIG, sleep=lambda s: None) == (1, 0)
        assert _covers(store)["Emma"] == "https://covers.example/158.jpg"
        store.close()

    def test_counts_failed_updates(self) -> None:
        store = MagicMock()
        store.has_column.return_value = True
        store.select.return_value = [
            {"id": "a", "gutenberg_id": 1, "title": "One", "cover_url": None},
            {"id": "b", "gutenberg_id": 2, "title": "Two", "cover_url": ""},
        ]
        store.update.side_effect = [StoreError("timeout"), None]

        assert backfill_covers(store, CONFIG, sleep=lambda s: None) == (1, 1)

    def test_unreadable_store(self) -> None:
        store = MagicMock()
        store.has_column.side_effect = StoreError("unauthorized")
        with pytest.raises(ConfigurationError):
            backfill_covers(store, CONFIG)

    def test_dry_run_does_not_pause(self, store: SQLiteRecordStore) -> None:
        sleeps: list[float] = []
        backfill_covers(store, GutenbergConfig(), dry_run=True, sleep=sleeps.append)
        assert sleeps == []

    def test_progress_counts_updates_not_rows(self, caplog: pytest.LogCaptureFixture) -> None:
        store = MagicMock()
        store.has_column.return_value = True
        # Rows without a Gutenberg id are passed over and must not advance the count.
        store.select.return_value = [{"id": "x", "gutenberg_id": None, "title": "?"}] * 3 + [
            {"id": str(n), "gutenberg_id": n, "title": f"Book {n}"} for n in range(1, 11)
        ]

        with caplog.at_level(logging.INFO, logger="bibliotech.pipeline.covers"):
            assert backfill_covers(store, CONFIG, sleep=lambda s: None) == (10, 0)

        progress = [r.getMessage() for r in caplog.records if r.getMessage().endswith("books...")]
        assert progress == ["Updated 10/13 books..."]
