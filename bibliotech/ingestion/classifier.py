"""Keyword-based Dewey-style classification."""

from collections.abc import Sequence
from typing import Protocol

from pydantic import BaseModel


class ClassificationEntry(BaseModel):
    """A lowercased keyword and the 3-digit code it maps to."""

    keyword: str
    code: str


class Classifier(Protocol):
    def classify(self, title: str, text: str | None = None) -> str: ...


def _table(pairs: Sequence[tuple[str, str]]) -> tuple[ClassificationEntry, ...]:
    return tuple(ClassificationEntry(keyword=k.lower(), code=c) for k, c in pairs)


# Order matters: the first keyword found wins, so "History of Science"
# maps to 500 rather than 900.
WIKIBOOKS_TABLE = _table(
    [
        ("computer", "000"),
        ("programming", "000"),
        ("software", "000"),
        ("information", "000"),
        ("philosophy", "100"),
        ("psychology", "100"),
        ("religion", "200"),
        ("social", "300"),
        ("sociology", "300"),
        ("economics", "300"),
        ("politics", "300"),
        ("language", "400"),
        ("linguistics", "400"),
        ("science", "500"),
        ("mathematics", "500"),
        ("physics", "500"),
        ("chemistry", "500"),
        ("biology", "500"),
        ("technology", "600"),
        ("engineering", "600"),
        ("medicine", "600"),
        ("arts", "700"),
        ("music", "780"),
        ("literature", "800"),
        ("poetry", "800"),
        ("history", "900"),
        ("geography", "910"),
    ]
)
WIKIBOOKS_DEFAULT = "000"

GUTENBERG_TABLE = _table(
    [
        ("Fiction", "800"),
        ("Literature", "800"),
        ("Poetry", "800"),
        ("Drama", "800"),
        ("History", "900"),
        ("Biography", "920"),
        ("Philosophy", "100"),
        ("Religion", "200"),
        ("Social Sciences", "300"),
        ("Language", "400"),
        ("Science", "500"),
        ("Technology", "600"),
        ("Arts", "700"),
        ("Geography", "910"),
        ("Travel", "910"),
    ]
)
GUTENBERG_DEFAULT = "800"

CATEGORY_NAMES: dict[str, str] = {
    "000": "Computer Science, Information & General Works",
    "100": "Philosophy & Psychology",
    "200": "Religion",
    "300": "Social Sciences",
    "400": "Language",
    "500": "Science",
    "600": "Technology",
    "700": "Arts & Recreation",
    "800": "Literature",
    "900": "History & Geography",
}


def category_name(code: str | None) -> str:
    """Return the top-level category name for a code ("Uncategorized" if unknown)."""
    if not code or not code[:1].isdigit():
        return "Uncategorized"
    return CATEGORY_NAMES.get(code[0] + "00", "Uncategorized")


class KeywordClassifier:
    """Maps free text to a code via first-match keyword lookup.

    Args:
        entries: Keyword table, scanned in order.
        default_code: Returned when no keyword occurs in the text.
    """

    def __init__(self, entries: Sequence[ClassificationEntry], default_code: str) -> None:
        self._entries = tuple(entries)
        self._default = default_code

    @property
    def default_code(self) -> str:
        return self._default

    @property
    def codes(self) -> frozenset[str]:
        """Every code this classifier can return."""
        return frozenset(e.code for e in self._entries) | {self._default}

    def classify(self, title: str, text: str | None = None) -> str:
        haystack = f"{title or ''} {text or ''}".lower()
        for entry in self._entries:
            if entry.keyword in haystack:
                return entry.code
        return self._default


def classifier_for_source(source: str) -> KeywordClassifier:
    """Pick the keyword table configured for a source.

    Gutenberg records default to literature; everything else defaults to
    general works.
    """
    if source == "gutenberg":
        return KeywordClassifier(GUTENBERG_TABLE, GUTENBERG_DEFAULT)
    return KeywordClassifier(WIKIBOOKS_TABLE, WIKIBOOKS_DEFAULT)
