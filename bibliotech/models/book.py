"""Book identity and catalog record models."""

from typing import Any

from pydantic import BaseModel

# BookRecord field -> store column
COLUMN_MAP: dict[str, str] = {
    "id": "id",
    "uri": "book_uri",
    "source": "source",
    "source_id": "source_id",
    "legacy_numeric_id": "gutenberg_id",
    "title": "title",
    "author": "author",
    "classification": "dewey_decimal",
    "language": "language",
    "subject_text": "subject",
    "publisher_text": "publisher",
    "publication_date": "publication_date",
    "description": "description",
    "cover_uri": "cover_url",
    "curator_id": "faculty_id",
}


class BookIdentity(BaseModel):
    """The resolved identity of a book: ``source://source_id``."""

    uri: str
    source: str
    source_id: str
    legacy_numeric_id: int | None = None


class BookRecord(BaseModel):
    """A normalized catalog entry ready to be written to the store."""

    id: str | None = None
    uri: str
    source: str
    source_id: str
    legacy_numeric_id: int | None = None
    title: str = "Untitled"
    author: str = "Unknown"
    classification: str = "000"
    language: str = "en"
    subject_text: str | None = None
    publisher_text: str | None = None
    publication_date: str | None = None  # free text, may not parse as a date
    description: str = ""
    cover_uri: str | None = None
    curator_id: str | None = None

    def to_row(self) -> dict[str, Any]:
        """Map the record onto store column names, leaving out the store-assigned id."""
        data = self.model_dump()
        return {
            column: data[field]
            for field, column in COLUMN_MAP.items()
            if field != "id"
        }

