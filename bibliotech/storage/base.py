"""Record store interface used by the upsert engine and jobs."""

from typing import Any


class RecordStore:
    """A keyed record store reachable over some backend.

    Implementations translate backend failures into ``UniqueViolationError``,
    ``MissingColumnError`` or ``StoreError``.
    """

    def get_one(
        self, table: str, match: dict[str, Any], columns: str = "*"
    ) -> dict[str, Any] | None:
        """Return the first row whose columns equal ``match``, or None."""
        rows = self.select(table, match=match, columns=columns, limit=1)
        return rows[0] if rows else None

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
        """Query rows.

        Args:
            table: Table name.
            match: Column equality filters (None values match NULL).
            columns: Comma-separated column list, or ``*``.
            prefix: ``(column, prefix)`` filter on string prefix.
            empty: Column that must be NULL or the empty string.
            order: Column to sort ascending by.
            limit: Maximum number of rows.
        """
        raise NotImplementedError

    def count(
        self,
        table: str,
        match: dict[str, Any] | None = None,
        prefix: tuple[str, str] | None = None,
    ) -> int:
        """Return the number of rows matching the filters of ``select``."""
        raise NotImplementedError

    def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        """Insert one row and return it as stored."""
        raise NotImplementedError

    def update(self, table: str, match: dict[str, Any], changes: dict[str, Any]) -> None:
        """Apply ``changes`` to the rows matching ``match``."""
        raise NotImplementedError

    def has_column(self, table: str, column: str) -> bool:
        """Probe whether ``table`` has ``column``."""
        raise NotImplementedError
