"""Tests for book identity resolution."""

import pytest

from bibliotech.ingestion.identity import (
    build_uri,
    encode_source_id,
    parse_uri,
    resolve_identity,
)
from bibliotech.models.raw import RawRecord


class TestResolveIdentity:
    def test_gutenberg_numeric_key(self) -> None:
        identity = resolve_identity(RawRecord(source="gutenberg", natural_key="12345"))
        assert identity.uri == "gutenberg://12345"
        assert identity.source == "gutenberg"
        assert identity.source_id == "12345"
        assert identity.legacy_numeric_id == 12345

    def test_gutenberg_key_is_canonicalized(self) -> None:
        identity = resolve_identity(RawRecord(source="gutenberg", natural_key=" 00042 "))
        assert identity.uri == "gutenberg://42"

    def test_gutenberg_non_numeric_key_raises(self) -> None:
        with pytest.raises(ValueError):
            resolve_identity(RawRecord(source="gutenberg", natural_key="abc"))

    def test_wikibooks_title_key(self) -> None:
        identity = resolve_identity(RawRecord(source="wikibooks", natural_key="Python Programming"))
        assert identity.uri == "wikibooks://Python_Programming"
        assert identity.legacy_numeric_id is None

    def test_unsafe_characters_are_encoded(self) -> None:
        identity = resolve_identity(RawRecord(source="wikibooks", natural_key="C++ & You/Part 1"))
        assert identity.source_id == "C%2B%2B_%26_You%2FPart_1"
        assert " " not in identity.uri

    def test_deterministic(self) -> None:
        record = RawRecord(source="wikibooks", natural_key="Guide to Unix (Beginner's)")
        assert resolve_identity(record) == resolve_identity(record)

    def test_source_is_lowercased(self) -> None:
        identity = resolve_identity(RawRecord(source="Custom", natural_key="my-book-001"))
        assert identity.uri == "custom://my-book-001"


class TestUriHelpers:
    def test_build_uri(self) -> None:
        assert build_uri("custom", "my-book-001") == "custom://my-book-001"

    def test_parse_uri_splits_on_first_separator(self) -> None:
        assert parse_uri("archive://item://nested") == ("archive", "item://nested")

    @pytest.mark.parametrize("uri", ["gutenberg", "://123", "gutenberg://", ""])
    def test_parse_uri_rejects_malformed(self, uri: str) -> None:
        with pytest.raises(ValueError):
            parse_uri(uri)

    def test_encode_keeps_encode_uri_component_safe_set(self) -> None:
        assert encode_source_id("A-b_c.d~e!f*g'h(i)") == "A-b_c.d~e!f*g'h(i)"
