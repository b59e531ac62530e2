"""Book ingestion: filtering, identity, classification and curator matching."""

from bibliotech.ingestion.classifier import KeywordClassifier, classifier_for_source
from bibliotech.ingestion.filters import is_catalog_entry
from bibliotech.ingestion.identity import build_uri, parse_uri, resolve_identity
from bibliotech.ingestion.llm_classifier import LLMClassifier
from bibliotech.ingestion.matcher import CuratorMatcher, load_curators
from bibliotech.ingestion.normalizer import normalize

__all__ = [
    "CuratorMatcher",
    "KeywordClassifier",
    "LLMClassifier",
    "build_uri",
    "classifier_for_source",
    "is_catalog_entry",
    "load_curators",
    "normalize",
    "parse_uri",
    "resolve_identity",
]
