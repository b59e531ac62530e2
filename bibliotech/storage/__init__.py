"""Record stores and the upsert engine."""

from bibliotech.config import AppConfig
from bibliotech.errors import ConfigurationError
from bibliotech.storage.base import RecordStore
from bibliotech.storage.database import SQLiteRecordStore, initialize_database
from bibliotech.storage.rest import RestRecordStore
from bibliotech.storage.upsert import UpsertEngine


def open_store(config: AppConfig) -> RecordStore:
    """Build the record store selected in the configuration.

    Raises:
        ConfigurationError: If credentials are missing or the backend is unknown.
    """
    backend = config.store.backend
    if backend == "rest":
        config.require_store_credentials()
        return RestRecordStore(config.store)
    if backend == "sqlite":
        initialize_database(config.store.sqlite_path)
        return SQLiteRecordStore(config.store.sqlite_path)
    raise ConfigurationError(f"Unknown store backend '{backend}' (expected 'rest' or 'sqlite')")


__all__ = [
    "RecordStore",
    "RestRecordStore",
    "SQLiteRecordStore",
    "UpsertEngine",
    "initialize_database",
    "open_store",
]
