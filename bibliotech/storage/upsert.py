"""Idempotent, schema-drift tolerant writes of BookRecords."""

import logging
from typing import Any

from bibliotech.errors import (
    ConfigurationError,
    MissingColumnError,
    PersistenceError,
    StoreError,
    UniqueViolationError,
)
from bibliotech.models.book import BookRecord
from bibliotech.models.results import UpsertOutcome, UpsertResult
from bibliotech.storage.base import RecordStore

logger = logging.getLogger(__name__)

# Columns added by later migrations; older stores may lack any of them.
OPTIONAL_COLUMNS: tuple[str, ...] = (
    "book_uri",
    "source",
    "source_id",
    "gutenberg_id",
    "cover_url",
)

REQUIRED_COLUMNS: tuple[str, ...] = ("title",)

# Columns an existing record may receive through this path, and only while empty.
BACKFILL_COLUMNS: tuple[str, ...] = ("cover_url", "faculty_id")


class UpsertEngine:
    """Inserts new books and backfills existing ones, never duplicating.

    Existence is checked by uri first, then by ``(source, source_id)``,
    then by legacy Gutenberg id, so rows written before the uri migration
    are still found. Columns the store reports missing are remembered and
    left out of later lookups and inserts.

    Args:
        store: The record store.
        table: Books table name.
        dry_run: Run lookups but suppress every write.
    """

    def __init__(self, store: RecordStore, table: str = "books", dry_run: bool = False) -> None:
        self._store = store
        self._table = table
        self._dry_run = dry_run
        self._missing_columns: set[str] = set()

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    @property
    def missing_columns(self) -> frozenset[str]:
        return frozenset(self._missing_columns)

    def check_schema(self, required: tuple[str, ...] = REQUIRED_COLUMNS) -> None:
        """Probe the books table before a run.

        Raises:
            ConfigurationError: If a required column is absent.
        """
        try:
            absent = [c for c in required if not self._store.has_column(self._table, c)]
            self._missing_columns.update(
                c for c in OPTIONAL_COLUMNS if not self._store.has_column(self._table, c)
            )
        except StoreError as exc:
            raise ConfigurationError(f"Could not inspect table '{self._table}': {exc}") from exc

        if absent:
            raise ConfigurationError(
                f"Table '{self._table}' is missing required column(s): {', '.join(absent)}. "
                "Run the schema migrations first."
            )
        if self._missing_columns:
            logger.warning(
                "Table '%s' lacks optional column(s) %s; writing without them",
                self._table,
                ", ".join(sorted(self._missing_columns)),
            )

    def upsert(self, book: BookRecord) -> UpsertResult:
        """Insert ``book`` or backfill the matching stored record.

        Raises:
            PersistenceError: For store failures other than a uniqueness
                violation.
        """
        try:
            existing = self.find_existing(book)
            if existing is not None:
                return self._backfill(book, existing)
            return self._insert(book)
        except UniqueViolationError:
            logger.info("Skipping %s: inserted concurrently by another writer", book.uri)
            return UpsertResult(outcome=UpsertOutcome.SKIPPED, uri=book.uri, dry_run=self._dry_run)
        except StoreError as exc:
            raise PersistenceError(book.uri, str(exc)) from exc

    def find_existing(self, book: BookRecord) -> dict[str, Any] | None:
        """Look the book up by each identity the store can answer for."""
        lookups: list[dict[str, Any]] = [
            {"book_uri": book.uri},
            {"source": book.source, "source_id": book.source_id},
        ]
        if book.legacy_numeric_id is not None:
            lookups.append({"gutenberg_id": book.legacy_numeric_id})

        for match in lookups:
            if self._missing_columns.intersection(match):
                continue
            try:
                row = self._store.get_one(self._table, match)
            except MissingColumnError as exc:
                self._mark_missing(exc, match)
                continue
            if row is not None:
                return row
        return None

    def _backfill(self, book: BookRecord, existing: dict[str, Any]) -> UpsertResult:
        candidate = book.to_row()
        changes = {
            column: candidate[column]
            for column in BACKFILL_COLUMNS
            if column not in self._missing_columns
            and candidate.get(column)
            and not existing.get(column)
        }
        record_id = str(existing["id"]) if existing.get("id") is not None else None

        if not changes:
            return UpsertResult(
                outcome=UpsertOutcome.SKIPPED,
                uri=book.uri,
                record_id=record_id,
                dry_run=self._dry_run,
            )

        if not self._dry_run:
            self._store.update(self._table, {"id": existing["id"]}, changes)
        logger.debug("Backfilled %s on %s", ", ".join(changes), book.uri)
        return UpsertResult(
            outcome=UpsertOutcome.UPDATED,
            uri=book.uri,
            record_id=record_id,
            backfilled=sorted(changes),
            dry_run=self._dry_run,
        )

    def _insert(self, book: BookRecord) -> UpsertResult:
        row = {k: v for k, v in book.to_row().items() if k not in self._missing_columns}

        if self._dry_run:
            return UpsertResult(outcome=UpsertOutcome.INSERTED, uri=book.uri, dry_run=True)

        # First tier is the full row; each missing optional column reported
        # by the store drops it for this and every later insert.
        for _ in range(len(OPTIONAL_COLUMNS) + 1):
            try:
                stored = self._store.insert(self._table, row)
            except MissingColumnError as exc:
                dropped = self._mark_missing(exc, row)
                if not dropped:
                    raise PersistenceError(book.uri, str(exc)) from exc
                row = {k: v for k, v in row.items() if k not in dropped}
                continue
            record_id = stored.get("id")
            return UpsertResult(
                outcome=UpsertOutcome.INSERTED,
                uri=book.uri,
                record_id=str(record_id) if record_id is not None else None,
            )
        raise PersistenceError(book.uri, "insert kept failing on missing columns")

    def _mark_missing(self, exc: MissingColumnError, referenced: dict[str, Any]) -> set[str]:
        """Record which optional columns the store lacks.

        If the error names a column, only that one is dropped; otherwise all
        optional columns referenced by the request are.
        """
        if exc.column is not None:
            candidates = {exc.column}
        else:
            candidates = set(referenced)
        dropped = {c for c in candidates if c in OPTIONAL_COLUMNS and c in referenced}
        if dropped - self._missing_columns:
            logger.warning(
                "Store has no column(s) %s in '%s'; continuing without them",
                ", ".join(sorted(dropped)),
                self._table,
            )
        self._missing_columns.update(dropped)
        return dropped
