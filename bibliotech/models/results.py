"""Outcome and summary models for pipeline runs."""

from enum import Enum

from pydantic import BaseModel, Field


class UpsertOutcome(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    SKIPPED = "skipped"


class UpsertResult(BaseModel):
    """What the upsert engine did with one record."""

    outcome: UpsertOutcome
    uri: str
    record_id: str | None = None
    backfilled: list[str] = Field(default_factory=list)
    dry_run: bool = False


class RunSummary(BaseModel):
    """Counters accumulated over one ingestion run."""

    dry_run: bool = False
    fetched: int = 0
    filtered: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0
    curator_linked: int = 0

    @property
    def total_processed(self) -> int:
        return self.inserted + self.updated + self.skipped + self.errors

    def record(self, result: UpsertResult) -> None:
        """Count an upsert result under its outcome."""
        if result.outcome is UpsertOutcome.INSERTED:
            self.inserted += 1
        elif result.outcome is UpsertOutcome.UPDATED:
            self.updated += 1
        else:
            self.skipped += 1


class ClassificationChange(BaseModel):
    """A before/after classification diff for one book."""

    title: str
    old_code: str
    new_code: str
    old_name: str = ""
    new_name: str = ""


class ReclassifySummary(BaseModel):
    """Counters and diffs from a classification revision run."""

    updated: int = 0
    unchanged: int = 0
    errors: int = 0
    dry_run: bool = False
    changes: list[ClassificationChange] = Field(default_factory=list)

    @property
    def total_processed(self) -> int:
        return self.updated + self.unchanged + self.errors


class CategoryCount(BaseModel):
    code: str
    name: str
    count: int = 0


class CatalogStats(BaseModel):
    """Book totals for the whole catalog and per top-level category."""

    total: int = 0
    categories: list[CategoryCount] = Field(default_factory=list)
