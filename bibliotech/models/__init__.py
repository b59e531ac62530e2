"""Data models for the Bibliotech ingestion pipeline."""

from bibliotech.models.book import BookIdentity, BookRecord
from bibliotech.models.curator import Curator
from bibliotech.models.raw import RawRecord
from bibliotech.models.results import (
    CatalogStats,
    CategoryCount,
    ClassificationChange,
    ReclassifySummary,
    RunSummary,
    UpsertOutcome,
    UpsertResult,
)

__all__ = [
    "BookIdentity",
    "BookRecord",
    "CatalogStats",
    "CategoryCount",
    "ClassificationChange",
    "Curator",
    "RawRecord",
    "ReclassifySummary",
    "RunSummary",
    "UpsertOutcome",
    "UpsertResult",
]
