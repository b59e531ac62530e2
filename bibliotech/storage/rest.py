"""Record store backed by a PostgREST (Supabase) endpoint."""

import logging
import re
from typing import Any

import requests

from bibliotech.config import StoreConfig
from bibliotech.errors import MissingColumnError, StoreError, UniqueViolationError
from bibliotech.storage.base import RecordStore

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION_CODES = frozenset({"23505"})
MISSING_COLUMN_CODES = frozenset({"PGRST204", "42703"})

_COLUMN_PATTERNS = (
    re.compile(r"'(\w+)' column"),
    re.compile(r"column (?:\w+\.)?(\w+) does not exist"),
)


def _column_from_message(message: str) -> str | None:
    for pattern in _COLUMN_PATTERNS:
        match = pattern.search(message)
        if match:
            return match.group(1)
    return None


def _filter_value(value: Any) -> str:
    if value is None:
        return "is.null"
    return f"eq.{value}"


def _filters(
    match: dict[str, Any] | None, prefix: tuple[str, str] | None
) -> dict[str, str]:
    params = {column: _filter_value(value) for column, value in (match or {}).items()}
    if prefix:
        column, value = prefix
        params[column] = f"like.{value}*"
    return params


class RestRecordStore(RecordStore):
    """Talks to ``<url>/rest/v1/<table>`` with a service-role key.

    Args:
        config: Store URL, key and timeout. Credentials must already be
            validated with ``AppConfig.require_store_credentials``.
        session: Optional pre-built session, mainly for tests.
    """

    def __init__(self, config: StoreConfig, session: requests.Session | None = None) -> None:
        self._base_url = f"{(config.url or '').rstrip('/')}/rest/v1"
        self._timeout = config.timeout
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "apikey": config.service_key or "",
                "Authorization": f"Bearer {config.service_key}",
                "Content-Type": "application/json",
            }
        )

    def select(
        self,
        table: str,
        match: dict[str, Any] | None = None,
        columns: str = "*",
        prefix: tuple[str, str] | None = None,
        empty: str | None = None,
        order: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        params = {"select": columns, **_filters(match, prefix)}
        if empty:
            params["or"] = f"({empty}.is.null,{empty}.eq.)"
        if order:
            params["order"] = f"{order}.asc"
        if limit is not None:
            params["limit"] = str(limit)

        response = self._send("GET", table, params=params)
        return response.json()

    def count(
        self,
        table: str,
        match: dict[str, Any] | None = None,
        prefix: tuple[str, str] | None = None,
    ) -> int:
        response = self._send(
            "HEAD",
            table,
            params={"select": "id", **_filters(match, prefix)},
            headers={"Prefer": "count=exact"},
        )
        # Content-Range: "0-24/3573", or "*/0" for an empty result.
        total = response.headers.get("Content-Range", "").rpartition("/")[2]
        if not total.isdigit():
            raise StoreError(f"HEAD {table} returned no exact count")
        return int(total)

    def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        response = self._send(
            "POST",
            table,
            json=[row],
            headers={"Prefer": "return=representation"},
        )
        rows = response.json()
        return rows[0] if rows else row

    def update(self, table: str, match: dict[str, Any], changes: dict[str, Any]) -> None:
        params = {column: _filter_value(value) for column, value in match.items()}
        self._send("PATCH", table, params=params, json=changes)

    def has_column(self, table: str, column: str) -> bool:
        try:
            self._send("GET", table, params={"select": column, "limit": "1"})
        except MissingColumnError:
            return False
        return True

    def _send(self, method: str, table: str, **kwargs: Any) -> requests.Response:
        url = f"{self._base_url}/{table}"
        try:
            response = self._session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.RequestException as exc:
            raise StoreError(f"{method} {table} failed: {exc}") from exc

        if response.ok:
            return response
        self._raise_for_error(response)
        return response

    @staticmethod
    def _raise_for_error(response: requests.Response) -> None:
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        code = str(payload.get("code") or "")
        message = str(payload.get("message") or response.text[:200])
        logger.debug("Store error %s (HTTP %s): %s", code, response.status_code, message)

        if code in UNIQUE_VIOLATION_CODES:
            raise UniqueViolationError(message)
        if code in MISSING_COLUMN_CODES:
            raise MissingColumnError(_column_from_message(message), message)
        raise StoreError(f"HTTP {response.status_code} {code}: {message}".strip())
