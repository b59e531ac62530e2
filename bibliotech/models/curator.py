"""Curator data model."""

from pydantic import BaseModel


class Curator(BaseModel):
    """A domain expert who may sponsor a book. Read-only for the pipeline."""

    id: str
    name: str = ""
    department: str = ""
