"""Normalization of raw source records into BookRecords."""

from bibliotech.models.book import BookIdentity, BookRecord
from bibliotech.models.raw import RawRecord

DEFAULT_TITLE = "Untitled"
DEFAULT_AUTHOR = "Unknown"
DEFAULT_LANGUAGE = "en"


def normalize(
    record: RawRecord,
    identity: BookIdentity,
    classification: str,
    curator_id: str | None = None,
) -> BookRecord:
    """Combine a raw record with its resolved identity and derived fields."""
    return BookRecord(
        uri=identity.uri,
        source=identity.source,
        source_id=identity.source_id,
        legacy_numeric_id=identity.legacy_numeric_id,
        title=record.title or DEFAULT_TITLE,
        author=record.author or DEFAULT_AUTHOR,
        classification=classification,
        language=record.language or DEFAULT_LANGUAGE,
        subject_text=record.subject,
        publisher_text=record.publisher,
        publication_date=record.publication_date,
        description=record.description or "",
        cover_uri=record.cover_uri,
        curator_id=curator_id,
    )
