"""Batch orchestration of a catalog ingestion run."""

import logging
import time
from collections.abc import Callable, Iterable, Iterator
from itertools import islice
from typing import Any, TypeVar

from bibliotech.config import AppConfig
from bibliotech.errors import ApiError, BibliotechError, ConfigurationError, TransientFetchError
from bibliotech.ingestion.classifier import Classifier, classifier_for_source
from bibliotech.ingestion.filters import is_catalog_entry
from bibliotech.ingestion.identity import resolve_identity
from bibliotech.ingestion.matcher import CuratorMatcher, load_curators
from bibliotech.ingestion.normalizer import normalize
from bibliotech.models.curator import Curator
from bibliotech.models.raw import RawRecord
from bibliotech.models.results import RunSummary, UpsertOutcome
from bibliotech.sources.gutenberg import GutenbergCatalogClient
from bibliotech.sources.wikibooks import WikibooksClient
from bibliotech.storage.base import RecordStore
from bibliotech.storage.upsert import UpsertEngine

logger = logging.getLogger(__name__)

T = TypeVar("T")

SOURCES = ("gutenberg", "wikibooks")


def batched(iterable: Iterable[T], size: int) -> Iterator[list[T]]:
    """Yield lists of up to ``size`` items, preserving order."""
    iterator = iter(iterable)
    while batch := list(islice(iterator, size)):
        yield batch


class IngestionPipeline:
    """Drives records from a source client through to the store.

    Items are processed strictly one after another, with a pause between
    items and a longer one between batches. A failure in one item is
    logged and counted; the run moves on to the next item.

    Args:
        source: A source client exposing ``name``, ``iter_records`` and ``enrich``.
        engine: Upsert engine bound to the books table.
        classifier: Maps ``(title, text)`` to a code.
        matcher: Curator matcher.
        curators: Curators to match against (empty disables matching).
        batch_size: Items per batch.
        item_delay: Seconds to wait after each item.
        batch_delay: Seconds to wait between batches.
        sleep: Delay function.
    """

    def __init__(
        self,
        source: Any,
        engine: UpsertEngine,
        classifier: Classifier,
        matcher: CuratorMatcher,
        curators: list[Curator] | None = None,
        batch_size: int = 10,
        item_delay: float = 0.0,
        batch_delay: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._source = source
        self._engine = engine
        self._classifier = classifier
        self._matcher = matcher
        self._curators = curators or []
        self._batch_size = max(1, batch_size)
        self._item_delay = item_delay
        self._batch_delay = batch_delay
        self._sleep = sleep

    def run(self, limit: int | None = None) -> RunSummary:
        """Ingest up to ``limit`` records (all of them when None).

        Raises:
            ConfigurationError: Propagated immediately; everything else is
                handled per item.
        """
        summary = RunSummary(dry_run=self._engine.dry_run)
        processed = 0
        batches = batched(self._accepted(self._source.iter_records(limit), summary), self._batch_size)

        for number, batch in enumerate(batches, start=1):
            if number > 1:
                self._sleep(self._batch_delay)
            logger.info(
                "Processing batch %d (%d-%d)...",
                number,
                processed + 1,
                processed + len(batch),
            )
            for index, record in enumerate(batch):
                self.process(record, summary)
                processed += 1
                if self._item_delay and index < len(batch) - 1:
                    self._sleep(self._item_delay)

        log_summary(summary)
        return summary

    def process(self, record: RawRecord, summary: RunSummary) -> None:
        """Run one accepted record through enrichment, resolution and upsert."""
        try:
            enriched = self._source.enrich(record)
            if enriched is None:
                summary.skipped += 1
                return

            identity = resolve_identity(enriched)
            classification = self._classifier.classify(
                enriched.title or "",
                " ".join(filter(None, [enriched.description, enriched.subject])),
            )
            curator_id = self._matcher.match(
                self._curators, enriched.title or "", enriched.description, enriched.subject
            )
            book = normalize(enriched, identity, classification, curator_id)
            result = self._engine.upsert(book)
        except ConfigurationError:
            raise
        except BibliotechError as exc:
            logger.error("Error processing %r: %s", record.natural_key, exc)
            summary.errors += 1
            return
        except Exception:
            logger.exception("Unexpected error processing %r", record.natural_key)
            summary.errors += 1
            return

        summary.record(result)
        linked = curator_id is not None and (
            result.outcome is UpsertOutcome.INSERTED or "faculty_id" in result.backfilled
        )
        if linked:
            summary.curator_linked += 1

        prefix = "[dry run] would insert" if result.dry_run else result.outcome.value.capitalize()
        if result.outcome is UpsertOutcome.INSERTED:
            logger.info(
                "  %s: %r%s", prefix, book.title, " (linked to curator)" if linked else ""
            )
        elif result.outcome is UpsertOutcome.UPDATED:
            logger.info(
                "  %s %s on %r",
                "[dry run] would backfill" if result.dry_run else "Backfilled",
                ", ".join(result.backfilled),
                book.title,
            )
        else:
            logger.debug("  Skipped %s: already exists", book.uri)

    def _accepted(self, records: Iterable[RawRecord], summary: RunSummary) -> Iterator[RawRecord]:
        try:
            for record in records:
                summary.fetched += 1
                if is_catalog_entry(record.title):
                    yield record
                else:
                    summary.filtered += 1
                    logger.debug("Filtered out %r", record.title)
        except (TransientFetchError, ApiError) as exc:
            # Records already fetched are still processed.
            logger.error("Fetching from %s stopped after %d records: %s",
                         self._source.name, summary.fetched, exc)
            summary.errors += 1


def log_summary(summary: RunSummary) -> None:
    if summary.dry_run:
        inserted, updated, linked = "Would insert", "Would update", "Would link curator"
    else:
        inserted, updated, linked = "Inserted", "Updated", "Curator linked"
    logger.info("=== Summary ===")
    logger.info("%s: %d", inserted, summary.inserted)
    logger.info("%s: %d", updated, summary.updated)
    logger.info("Skipped: %d", summary.skipped)
    logger.info("Errors: %d", summary.errors)
    logger.info("%s: %d", linked, summary.curator_linked)
    logger.info("Filtered: %d", summary.filtered)
    logger.info("Total processed: %d", summary.total_processed)
    if summary.dry_run:
        logger.info("This was a dry run. No changes were made.")


def build_pipeline(
    source_name: str,
    config: AppConfig,
    store: RecordStore,
    dry_run: bool = False,
    sleep: Callable[[float], None] = time.sleep,
) -> IngestionPipeline:
    """Wire a pipeline for one of the known sources.

    Raises:
        ConfigurationError: For an unknown source or an unusable books table.
    """
    if source_name == "gutenberg":
        source: Any = GutenbergCatalogClient(config.gutenberg, config.http)
        pacing = config.gutenberg
    elif source_name == "wikibooks":
        source = WikibooksClient(config.wikibooks, config.http, sleep=sleep)
        pacing = config.wikibooks
    else:
        raise ConfigurationError(f"Unknown source '{source_name}' (expected one of {SOURCES})")

    engine = UpsertEngine(store, config.store.books_table, dry_run=dry_run)
    engine.check_schema()

    curators = load_curators(store, config.store.curators_table, config.matcher.curator_limit)
    return IngestionPipeline(
        source=source,
        engine=engine,
        classifier=classifier_for_source(source_name),
        matcher=CuratorMatcher(config.matcher),
        curators=curators,
        batch_size=pacing.batch_size,
        item_delay=pacing.item_delay,
        batch_delay=pacing.batch_delay,
        sleep=sleep,
    )
