"""Bibliotech catalog ingestion and classification pipeline."""

__version__ = "1.0.0"
