"""Book identity resolution: ``source://source_id`` URIs."""

from urllib.parse import quote

from bibliotech.models.book import BookIdentity
from bibliotech.models.raw import RawRecord

URI_SEPARATOR = "://"

# Sources whose natural key is a bare integer. Their historical store
# identity was that integer, kept in the legacy numeric id column.
NUMERIC_KEY_SOURCES = frozenset({"gutenberg"})

# Characters encodeURIComponent leaves alone beyond alphanumerics and "-_.~".
_URI_SAFE = "!*'()"


def encode_source_id(natural_key: str) -> str:
    """Turn a title-like key into a URI-safe segment.

    Spaces become underscores first, matching MediaWiki's canonical page
    names, so "Python Programming" maps to "Python_Programming".
    """
    return quote(natural_key.strip().replace(" ", "_"), safe=_URI_SAFE)


def build_uri(source: str, source_id: str) -> str:
    return f"{source}{URI_SEPARATOR}{source_id}"


def parse_uri(uri: str) -> tuple[str, str]:
    """Split a book URI on the first separator.

    Raises:
        ValueError: If the URI has no ``://`` separator.
    """
    source, sep, source_id = uri.partition(URI_SEPARATOR)
    if not sep or not source or not source_id:
        raise ValueError(f"Not a book URI: {uri!r}")
    return source, source_id


def resolve_identity(record: RawRecord) -> BookIdentity:
    """Derive the identity of a raw record.

    Deterministic: the same raw record always resolves to the same URI.

    Raises:
        ValueError: If a numeric-key source yields a non-numeric key.
    """
    source = record.source.strip().lower()
    if source in NUMERIC_KEY_SOURCES:
        numeric_id = int(record.natural_key.strip())
        source_id = str(numeric_id)
        legacy_id: int | None = numeric_id
    else:
        source_id = encode_source_id(record.natural_key)
        legacy_id = None

    return BookIdentity(
        uri=build_uri(source, source_id),
        source=source,
        source_id=source_id,
        legacy_numeric_id=legacy_id,
    )
