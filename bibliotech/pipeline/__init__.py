"""Pipeline runs: ingestion, classification revision, cover backfill, catalog stats."""

from bibliotech.pipeline.covers import backfill_covers
from bibliotech.pipeline.orchestrator import IngestionPipeline, batched, build_pipeline
from bibliotech.pipeline.reclassify import Reclassifier
from bibliotech.pipeline.stats import collect_stats, log_stats

__all__ = [
    "IngestionPipeline",
    "Reclassifier",
    "backfill_covers",
    "batched",
    "build_pipeline",
    "collect_stats",
    "log_stats",
]
