"""Tests for data models."""

from bibliotech.models import (
    BookRecord,
    RawRecord,
    RunSummary,
    UpsertOutcome,
    UpsertResult,
)


def _book(**overrides) -> BookRecord:
    values = {"uri": "gutenberg://1342", "source": "gutenberg", "source_id": "1342"}
    values.update(overrides)
    return BookRecord(**values)


class TestBookRecord:
    def test_defaults(self) -> None:
        book = _book()
        assert book.title == "Untitled"
        assert book.author == "Unknown"
        assert book.language == "en"
        assert book.cover_uri is None
        assert book.curator_id is None

    def test_to_row_uses_store_columns(self) -> None:
        book = _book(legacy_numeric_id=1342, classification="800", curator_id="f-1")
        row = book.to_row()
        assert row["book_uri"] == "gutenberg://1342"
        assert row["gutenberg_id"] == 1342
        assert row["dewey_decimal"] == "800"
        assert row["faculty_id"] == "f-1"
        assert "id" not in row


class TestRawRecord:
    def test_optional_fields(self) -> None:
        raw = RawRecord(source="wikibooks", natural_key="Cookbook")
        assert raw.title is None
        assert raw.extra == {}


class TestRunSummary:
    def test_record_counts_outcomes(self) -> None:
        summary = RunSummary()
        for outcome in (UpsertOutcome.INSERTED, UpsertOutcome.SKIPPED, UpsertOutcome.SKIPPED):
            summary.record(UpsertResult(outcome=outcome, uri="x://y"))
        summary.errors += 1
        assert summary.inserted == 1
        assert summary.skipped == 2
        assert summary.total_processed == 4
