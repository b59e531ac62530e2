"""Error taxonomy for the ingestion pipeline."""


class BibliotechError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(BibliotechError):
    """Required configuration is missing. Fatal, raised before any item is processed."""


class TransientFetchError(BibliotechError):
    """Retryable network or HTTP failure while talking to a source."""


class ApiError(BibliotechError):
    """The source answered with a structured error payload."""

    def __init__(self, code: str, info: str = "") -> None:
        self.code = code
        self.info = info
        super().__init__(f"{code}: {info}" if info else code)


class ClassificationError(BibliotechError):
    """The classifier could not produce a valid 3-digit code."""


class PersistenceError(BibliotechError):
    """A store write failed for a reason other than a uniqueness violation."""

    def __init__(self, natural_key: str, message: str) -> None:
        self.natural_key = natural_key
        super().__init__(f"{natural_key}: {message}")


class StoreError(BibliotechError):
    """Raised by record stores for backend failures."""


class UniqueViolationError(StoreError):
    """An insert collided with a uniqueness constraint."""


class MissingColumnError(StoreError):
    """The store's schema lacks a column the request referenced."""

    def __init__(self, column: str | None, message: str = "") -> None:
        self.column = column
        super().__init__(message or f"Missing column: {column}")
