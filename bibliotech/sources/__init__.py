"""Source clients for external bibliographic catalogs."""

from bibliotech.sources.gutenberg import GutenbergCatalogClient, parse_catalog
from bibliotech.sources.wikibooks import WikibooksClient

__all__ = ["GutenbergCatalogClient", "WikibooksClient", "parse_catalog"]
