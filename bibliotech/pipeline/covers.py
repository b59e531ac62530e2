"""Backfill of cover URLs for stored Gutenberg books."""

import logging
import time
from collections.abc import Callable

from bibliotech.config import GutenbergConfig
from bibliotech.errors import ConfigurationError, StoreError
from bibliotech.storage.base import RecordStore

logger = logging.getLogger(__name__)


def backfill_covers(
    store: RecordStore,
    config: GutenbergConfig,
    table: str = "books",
    limit: int | None = None,
    dry_run: bool = False,
    sleep: Callable[[float], None] = time.sleep,
) -> tuple[int, int]:
    """Set the Gutenberg cover URL on books that have none.

    Only empty ``cover_url`` values are touched.

    Returns:
        ``(updated, failed)`` counts.

    Raises:
        ConfigurationError: If the books cannot be read.
    """
    try:
        books = store.select(
            table,
            match={"source": "gutenberg"} if store.has_column(table, "source") else None,
            columns="id,gutenberg_id,title,cover_url",
            empty="cover_url",
            limit=limit,
        )
    except StoreError as exc:
        raise ConfigurationError(f"Could not read books from '{table}': {exc}") from exc

    if not books:
        logger.info("All books already have cover URLs")
        return 0, 0

    logger.info("Found %d books without cover URLs", len(books))
    updated = failed = 0
    for book in books:
        if book.get("gutenberg_id") is None:
            continue
        cover_url = config.cover_url_template.format(id=book["gutenberg_id"])
        if dry_run:
            updated += 1
            continue
        try:
            store.update(table, {"id": book["id"]}, {"cover_url": cover_url})
        except StoreError as exc:
            logger.error("Failed to update %s: %s", book["gutenberg_id"], exc)
            failed += 1
            continue
        updated += 1
        if updated % 10 == 0:
            logger.info("Updated %d/%d books...", updated, len(books))
        sleep(config.cover_update_delay)

    if dry_run:
        logger.info("Would update %d books. This was a dry run. No changes were made.", updated)
    else:
        logger.info("Updated %d books", updated)
    if failed:
        logger.warning("Failed to update %d books", failed)
    return updated, failed
