"""Wikibooks source client backed by the MediaWiki query API."""

import logging
import time
from collections.abc import Callable, Iterator
from typing import Any
from urllib.parse import quote

import requests

from bibliotech.config import HttpConfig, WikibooksConfig
from bibliotech.errors import TransientFetchError
from bibliotech.models.raw import RawRecord
from bibliotech.sources.http import create_session, get, parse_json_payload

logger = logging.getLogger(__name__)

SOURCE_NAME = "wikibooks"
WIKIBOOKS_AUTHOR = "Wikibooks Contributors"
WIKIBOOKS_PUBLISHER = "Wikibooks"
# MediaWiki caps list=allpages at 500 titles per request for regular clients.
MAX_PAGE_SIZE = 500


class WikibooksClient:
    """Fetches book pages from the Wikibooks main namespace.

    Listing is cursor-paginated: each response may carry an ``apcontinue``
    token, which is passed back verbatim to get the next page. Details
    (intro extract, canonical URL) are fetched per page with a separate
    request.

    Args:
        config: Wikibooks endpoint, paging and pacing settings.
        http_config: Shared HTTP settings (User-Agent, timeout).
        session: Optional pre-built session, mainly for tests.
        sleep: Delay function used between consecutive requests.
    """

    name = SOURCE_NAME

    def __init__(
        self,
        config: WikibooksConfig,
        http_config: HttpConfig,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._timeout = http_config.timeout
        self._session = session or create_session(http_config)
        self._sleep = sleep
        self._requests_made = 0

    def fetch_page(
        self, cursor: str | None = None, page_size: int | None = None
    ) -> tuple[list[RawRecord], str | None]:
        """Fetch one page of the allpages listing.

        Args:
            cursor: Continuation token from the previous page, or None
                for the first page.
            page_size: Number of titles to request (capped at 500).

        Returns:
            The page's records and the next cursor (None when exhausted).

        Raises:
            TransientFetchError: On network failure, non-200 status or a
                non-JSON body.
            ApiError: When the API reports a structured error.
        """
        limit = min(page_size or self._config.page_size, MAX_PAGE_SIZE)
        params: dict[str, Any] = {
            "action": "query",
            "format": "json",
            "list": "allpages",
            "apnamespace": "0",
            "aplimit": str(limit),
        }
        if cursor:
            params["apcontinue"] = cursor

        payload = self._request(params)
        pages = payload.get("query", {}).get("allpages", [])
        records = [
            RawRecord(
                source=SOURCE_NAME,
                natural_key=page["title"],
                title=page["title"],
                extra={"pageid": page.get("pageid")},
            )
            for page in pages
            if page.get("title")
        ]
        next_cursor = payload.get("continue", {}).get("apcontinue")
        return records, next_cursor

    def iter_records(self, limit: int | None = None) -> Iterator[RawRecord]:
        """Yield listing records, following continuation tokens.

        Args:
            limit: Maximum number of records, or None to walk the whole
                namespace.
        """
        cursor: str | None = None
        fetched = 0
        while True:
            remaining = None if limit is None else limit - fetched
            if remaining is not None and remaining <= 0:
                return

            page_size = self._config.page_size
            if remaining is not None:
                page_size = min(remaining, page_size)
            records, cursor = self.fetch_page(cursor, page_size=page_size)
            for record in records[:remaining]:
                fetched += 1
                if fetched % self._config.progress_every == 0:
                    logger.info("Fetched %d wikibooks pages so far", fetched)
                yield record

            if not cursor:
                logger.info("Wikibooks listing exhausted after %d titles", fetched)
                return

    def fetch_details(self, title: str) -> dict[str, Any] | None:
        """Fetch the intro extract and canonical URL for a page.

        The lookup is idempotent, so a transient failure is retried once.

        Args:
            title: The page title.

        Returns:
            A dict with ``title``, ``extract``, ``fullurl`` and ``pageid``,
            or None if the page does not exist.
        """
        params = {
            "action": "query",
            "format": "json",
            "titles": title,
            "prop": "extracts|info",
            "exintro": "true",
            "explaintext": "true",
            "inprop": "url",
        }
        try:
            payload = self._request(params)
        except TransientFetchError as exc:
            logger.warning("Retrying details for %r after: %s", title, exc)
            payload = self._request(params)

        pages = payload.get("query", {}).get("pages") or {}
        if not pages:
            return None
        page = next(iter(pages.values()))
        if "missing" in page:
            return None
        return {
            "title": page.get("title", title),
            "extract": page.get("extract") or "",
            "fullurl": page.get("fullurl")
            or f"https://en.wikibooks.org/wiki/{quote(title.replace(' ', '_'))}",
            "pageid": page.get("pageid"),
        }

    def enrich(self, record: RawRecord) -> RawRecord | None:
        """Attach page details to a listing record.

        Returns:
            The enriched record, or None if details could not be found.
        """
        details = self.fetch_details(record.natural_key)
        if details is None:
            logger.info("Skipping %s: could not fetch details", record.natural_key)
            return None

        extract = details["extract"]
        max_len = self._config.description_length
        if extract:
            description = extract[:max_len] + ("..." if len(extract) > max_len else "")
        else:
            description = f"A collaborative textbook from Wikibooks. {details['fullurl']}"

        return record.model_copy(
            update={
                "author": WIKIBOOKS_AUTHOR,
                "publisher": WIKIBOOKS_PUBLISHER,
                "language": "en",
                "description": description,
                "url": details["fullurl"],
                "extra": {**record.extra, "pageid": details["pageid"]},
            }
        )

    def _request(self, params: dict[str, Any]) -> dict[str, Any]:
        if self._requests_made:
            self._sleep(self._config.request_delay)
        self._requests_made += 1
        response = get(self._session, self._config.api_url, params=params, timeout=self._timeout)
        return parse_json_payload(response)
