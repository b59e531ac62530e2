"""Project Gutenberg source client backed by the bulk catalog dump."""

import csv
import io
import logging
from collections.abc import Iterator

import requests

from bibliotech.config import GutenbergConfig, HttpConfig
from bibliotech.models.raw import RawRecord
from bibliotech.sources.http import create_session, decode_payload, get

logger = logging.getLogger(__name__)

SOURCE_NAME = "gutenberg"
GUTENBERG_PUBLISHER = "Project Gutenberg"

# Candidate header names per field, matched case-insensitively.
# The dump has changed column names over the years.
COLUMN_CANDIDATES: dict[str, tuple[str, ...]] = {
    "title": ("title",),
    "author": ("authors", "author"),
    "language": ("language",),
    "subject": ("subjects", "subject"),
    "publication_date": ("issued", "release date"),
    "description": ("note", "notes"),
}


def detect_delimiter(header_line: str) -> str:
    """Return tab if the header line contains one, otherwise comma."""
    return "\t" if "\t" in header_line else ","


def _find_id_column(headers: list[str]) -> int:
    lowered = [h.lower() for h in headers]
    for index, header in enumerate(headers):
        if header == "Text#":
            return index
    for index, header in enumerate(lowered):
        if header == "id":
            return index
    for index, header in enumerate(lowered):
        if "text" in header:
            return index
    return -1


def _find_column(headers: list[str], candidates: tuple[str, ...]) -> int:
    lowered = [h.lower() for h in headers]
    for candidate in candidates:
        if candidate in lowered:
            return lowered.index(candidate)
    return -1


def _first_author(value: str) -> str:
    return value.split(";")[0].strip()


def parse_catalog(text: str, cover_url_template: str | None = None) -> list[RawRecord]:
    """Parse a delimited catalog dump into raw records.

    The delimiter is detected from the header line. Quoted fields may
    contain the delimiter or literal newlines. Rows without a positive
    integer identifier are dropped.

    Args:
        text: The full catalog payload.
        cover_url_template: Optional ``str.format`` template with an ``{id}``
            placeholder used to fill ``cover_uri``.

    Returns:
        Raw records in catalog order.
    """
    if not text.strip():
        return []

    header_line = text.lstrip().split("\n", 1)[0]
    delimiter = detect_delimiter(header_line)
    reader = csv.reader(io.StringIO(text.lstrip()), delimiter=delimiter)

    try:
        headers = [h.strip() for h in next(reader)]
    except StopIteration:
        return []

    id_col = _find_id_column(headers)
    if id_col == -1:
        logger.warning("Catalog header has no identifier column: %s", headers)
        return []
    columns = {field: _find_column(headers, names) for field, names in COLUMN_CANDIDATES.items()}

    records: list[RawRecord] = []
    for row in reader:
        if id_col >= len(row):
            continue
        raw_id = row[id_col].strip()
        if not raw_id.isdigit() or int(raw_id) <= 0:
            continue

        values: dict[str, str | None] = {}
        for field, index in columns.items():
            value = row[index].strip() if 0 <= index < len(row) else ""
            values[field] = value or None

        if values["author"]:
            values["author"] = _first_author(values["author"]) or None

        ebook_id = str(int(raw_id))
        records.append(
            RawRecord(
                source=SOURCE_NAME,
                natural_key=ebook_id,
                publisher=GUTENBERG_PUBLISHER,
                cover_uri=cover_url_template.format(id=ebook_id) if cover_url_template else None,
                url=f"https://www.gutenberg.org/ebooks/{ebook_id}",
                **values,
            )
        )
    return records


class GutenbergCatalogClient:
    """Downloads and parses the Project Gutenberg catalog dump.

    The whole catalog arrives in a single response, so there is no
    per-item network traffic and ``enrich`` is a pass-through.
    """

    name = SOURCE_NAME

    def __init__(
        self,
        config: GutenbergConfig,
        http_config: HttpConfig,
        session: requests.Session | None = None,
    ) -> None:
        self._config = config
        self._timeout = http_config.timeout
        self._session = session or create_session(http_config)

    def fetch_all(self) -> list[RawRecord]:
        """Download the catalog and parse every row.

        Raises:
            TransientFetchError: On network failure or a non-200 status.
        """
        logger.info("Fetching Project Gutenberg catalog from %s", self._config.catalog_url)
        response = get(self._session, self._config.catalog_url, timeout=self._timeout)
        text = decode_payload(response.content)
        records = parse_catalog(text, self._config.cover_url_template)
        logger.info("Parsed %d books from catalog", len(records))
        return records

    def iter_records(self, limit: int | None = None) -> Iterator[RawRecord]:
        records = self.fetch_all()
        yield from records if limit is None else records[:limit]

    def enrich(self, record: RawRecord) -> RawRecord | None:
        return record
