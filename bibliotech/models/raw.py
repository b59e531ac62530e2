"""Raw source record model."""

from typing import Any

from pydantic import BaseModel, Field


class RawRecord(BaseModel):
    """A record as yielded by a source client, before normalization.

    ``natural_key`` is the source-specific identifier: the ebook number
    for Gutenberg, the page title for Wikibooks.
    """

    source: str
    natural_key: str
    title: str | None = None
    author: str | None = None
    language: str | None = None
    subject: str | None = None
    description: str | None = None
    publisher: str | None = None
    publication_date: str | None = None
    cover_uri: str | None = None
    url: str | None = None
    extra: dict[str, Any] = Field(default_factory=dict)
