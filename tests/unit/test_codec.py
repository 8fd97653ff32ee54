"""
Unit tests for blob content encoding.

Tests cover:
- UTF-8 safe base64 round trip
- Wrapped base64 from the contents API
- Collection parsing and its failure modes
"""

import base64

import pytest

from repodb_sdk.codec import decode_content, dump_collection, encode_content, load_collection
from repodb_sdk.errors import ParseError


class TestContentEncoding:
    """Tests for encode_content/decode_content."""

    def test_non_ascii_round_trip(self):
        """Multi-byte characters survive encode/decode."""
        text = '[{"name": "Crème brûlée", "store": "Łódź 市場 🛒"}]'

        encoded = encode_content(text.encode("utf-8"))

        assert decode_content(encoded).decode("utf-8") == text

    def test_encoded_form_is_ascii_base64(self):
        """Encoded content is plain base64 of the UTF-8 bytes."""
        encoded = encode_content("ü".encode("utf-8"))

        assert encoded == base64.b64encode(b"\xc3\xbc").decode("ascii")

    def test_decode_wrapped_content(self):
        """Newlines inserted by the API are ignored."""
        raw = ("é" * 100).encode("utf-8")
        encoded = encode_content(raw)
        wrapped = "\n".join(encoded[i:i + 60] for i in range(0, len(encoded), 60)) + "\n"

        assert decode_content(wrapped) == raw

    def test_decode_invalid_base64(self):
        """Garbage is rejected."""
        with pytest.raises(ValueError):
            decode_content("not base64 at all!")


class TestCollectionParsing:
    """Tests for load_collection/dump_collection."""

    def test_dump_is_pretty_and_keeps_unicode(self):
        """Stored JSON is indented and not ASCII-escaped."""
        dumped = dump_collection([{"name": "Café"}])

        assert "\n  " in dumped
        assert "Café" in dumped

    def test_load_round_trip(self):
        items = [{"id": "a1", "tags": ["x", "y"], "price": 1.5}]

        assert load_collection("Product", dump_collection(items).encode("utf-8")) == items

    def test_load_absent_is_empty(self):
        assert load_collection("Product", None) == []

    def test_load_blank_is_empty(self):
        assert load_collection("Product", b"") == []
        assert load_collection("Product", "  \n") == []

    def test_load_invalid_json(self):
        with pytest.raises(ParseError) as exc_info:
            load_collection("Product", "[{broken")

        assert exc_info.value.name == "Product"
        assert exc_info.value.code == "PARSE_ERROR"

    def test_load_non_array(self):
        """Only arrays are valid collections."""
        with pytest.raises(ParseError, match="expected array"):
            load_collection("Store", '{"id": "x"}')

    def test_load_invalid_utf8(self):
        with pytest.raises(ParseError, match="not UTF-8"):
            load_collection("Store", b"\xff\xfe[]")
