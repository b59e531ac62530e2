"""Catalog totals per top-level category."""

import logging

from bibliotech.errors import ConfigurationError, StoreError
from bibliotech.ingestion.classifier import CATEGORY_NAMES
from bibliotech.models.results import CatalogStats, CategoryCount
from bibliotech.storage.base import RecordStore

logger = logging.getLogger(__name__)


def collect_stats(store: RecordStore, table: str = "books") -> CatalogStats:
    """Count all books, then the books in each hundreds range of the taxonomy.

    A category is matched by the first digit of ``dewey_decimal``, so
    ``"510"`` and ``"500"`` both count under ``"500"``.

    Raises:
        ConfigurationError: If the books table cannot be read.
    """
    try:
        stats = CatalogStats(total=store.count(table))
        if stats.total:
            for code, name in CATEGORY_NAMES.items():
                count = store.count(table, prefix=("dewey_decimal", code[0]))
                stats.categories.append(CategoryCount(code=code, name=name, count=count))
    except StoreError as exc:
        raise ConfigurationError(f"Could not read books from '{table}': {exc}") from exc
    return stats


def log_stats(stats: CatalogStats) -> None:
    logger.info("Total books in database: %d", stats.total)
    if not stats.total:
        logger.warning("No books found. Run the gutenberg or wikibooks command to populate the catalog.")
        return
    logger.info("Books by category:")
    for category in stats.categories:
        logger.info("  %s: %d books - %s", category.code, category.count, category.name)
