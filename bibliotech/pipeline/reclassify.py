"""Revision of stored classifications with a pluggable classifier."""

import logging
import time
from collections.abc import Callable

from bibliotech.config import ClassifierConfig
from bibliotech.errors import BibliotechError, ConfigurationError, StoreError
from bibliotech.ingestion.classifier import Classifier, category_name
from bibliotech.models.results import ClassificationChange, ReclassifySummary
from bibliotech.pipeline.orchestrator import batched
from bibliotech.storage.base import RecordStore

logger = logging.getLogger(__name__)


def _short(title: str, width: int = 50) -> str:
    return title[:width] + ("..." if len(title) > width else "")


class Reclassifier:
    """Re-runs stored books through a classifier and applies the changes.

    Only ``dewey_decimal`` is written. A failed classification leaves the
    stored code untouched.

    Args:
        store: The record store.
        classifier: Classifier to apply, usually an ``LLMClassifier``.
        config: Batch size and pacing.
        table: Books table name.
        dry_run: Report proposed changes without writing them.
        sleep: Delay function.
    """

    def __init__(
        self,
        store: RecordStore,
        classifier: Classifier,
        config: ClassifierConfig,
        table: str = "books",
        dry_run: bool = False,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._store = store
        self._classifier = classifier
        self._config = config
        self._table = table
        self._dry_run = dry_run
        self._sleep = sleep

    def run(
        self,
        source: str | None = "wikibooks",
        limit: int | None = None,
        prefix: str | None = None,
    ) -> ReclassifySummary:
        """Classify stored books and record before/after diffs.

        Args:
            source: Only books from this source (None for all).
            limit: Maximum number of books.
            prefix: Only books whose current code starts with this prefix.

        Raises:
            ConfigurationError: If the books cannot be read.
        """
        try:
            books = self._store.select(
                self._table,
                match={"source": source} if source else None,
                columns="id,title,description,dewey_decimal,source",
                prefix=("dewey_decimal", prefix) if prefix else None,
                order="title",
                limit=limit,
            )
        except StoreError as exc:
            raise ConfigurationError(f"Could not read books from '{self._table}': {exc}") from exc

        summary = ReclassifySummary(dry_run=self._dry_run)
        if not books:
            logger.info("No books found to evaluate.")
            return summary

        logger.info("Found %d books to evaluate", len(books))
        total_batches = -(-len(books) // self._config.batch_size)
        for number, batch in enumerate(batched(books, self._config.batch_size), start=1):
            start = (number - 1) * self._config.batch_size
            logger.info(
                "Batch %d/%d (%d-%d of %d)...",
                number,
                total_batches,
                start + 1,
                start + len(batch),
                len(books),
            )
            for index, book in enumerate(batch):
                self._reclassify(book, summary)
                if index < len(batch) - 1:
                    self._sleep(self._config.item_delay)
            if number < total_batches:
                self._sleep(self._config.batch_delay)

        self.log_summary(summary)
        return summary

    def _reclassify(self, book: dict, summary: ReclassifySummary) -> None:
        title = book.get("title") or ""
        old_code = book.get("dewey_decimal") or "000"
        try:
            new_code = self._classifier.classify(title, book.get("description") or "")
            if new_code == old_code:
                summary.unchanged += 1
                logger.info('  - "%s" [%s - %s] (unchanged)', _short(title), old_code, category_name(old_code))
                return

            if not self._dry_run:
                self._store.update(self._table, {"id": book["id"]}, {"dewey_decimal": new_code})
        except BibliotechError as exc:
            summary.errors += 1
            logger.error('  Error processing "%s": %s', title, exc)
            return

        change = ClassificationChange(
            title=title,
            old_code=old_code,
            new_code=new_code,
            old_name=category_name(old_code),
            new_name=category_name(new_code),
        )
        summary.changes.append(change)
        summary.updated += 1
        logger.info(
            '  "%s" %s -> %s (%s -> %s)',
            _short(title),
            old_code,
            new_code,
            change.old_name,
            change.new_name,
        )

    def log_summary(self, summary: ReclassifySummary) -> None:
        logger.info("=" * 60)
        logger.info("%s: %d", "Would update" if summary.dry_run else "Updated", summary.updated)
        logger.info("Unchanged: %d", summary.unchanged)
        logger.info("Errors: %d", summary.errors)
        logger.info("Total processed: %d", summary.total_processed)
        logger.info("=" * 60)

        shown = summary.changes[: self._config.max_reported_changes]
        if shown:
            logger.info("Classification changes:")
        for change in shown:
            logger.info('  "%s": %s - %s -> %s - %s', change.title, change.old_code,
                        change.old_name, change.new_code, change.new_name)
        hidden = len(summary.changes) - len(shown)
        if hidden > 0:
            logger.info("  ... and %d more changes", hidden)
        if summary.dry_run:
            logger.info("This was a dry run. No changes were made.")
