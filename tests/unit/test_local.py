"""
Unit tests for local fallback storage and attribution.

Tests cover:
- SQLite key-value persistence
- Fallback key naming
- Session identity resolution
"""

import json
import tempfile
from pathlib import Path

import pytest

from repodb_sdk.identity import ANONYMOUS, Actor, AttributionResolver
from repodb_sdk.local import (
    InMemoryKeyValueStore,
    KeyValueStore,
    LocalFallbackStore,
    SqliteKeyValueStore,
)


class TestSqliteKeyValueStore:
    """Tests for SqliteKeyValueStore."""

    @pytest.fixture
    def data_dir(self):
        """Create temporary data directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield tmpdir

    @pytest.fixture
    def kv(self, data_dir):
        return SqliteKeyValueStore(Path(data_dir) / "nested" / "local.db")

    def test_implements_protocol(self, kv):
        assert isinstance(kv, KeyValueStore)

    def test_get_missing(self, kv):
        assert kv.get("nope") is None

    def test_set_and_get(self, kv):
        kv.set("k", "v")

        assert kv.get("k") == "v"

    def test_overwrite(self, kv):
        """Last writer wins."""
        kv.set("k", "one")
        kv.set("k", "two")

        assert kv.get("k") == "two"
        assert kv.keys() == ["k"]

    def test_persists_across_instances(self, kv):
        kv.set("pricepilot_user", '{"id": "u1"}')

        reopened = SqliteKeyValueStore(kv.path)

        assert reopened.get("pricepilot_user") == '{"id": "u1"}'

    def test_unicode_values(self, kv):
        kv.set("k", "Grüße 🍞")

        assert kv.get("k") == "Grüße 🍞"


class TestLocalFallbackStore:
    """Tests for LocalFallbackStore."""

    def test_key_naming(self):
        kv = InMemoryKeyValueStore()
        store = LocalFallbackStore(kv)

        store.write("Product", "[]")

        assert kv.get("pricepilot_db_data/Product.json") == "[]"
        assert store.read("Product") == "[]"

    def test_read_absent(self):
        store = LocalFallbackStore(InMemoryKeyValueStore(), prefix="x/")

        assert store.read("Store") is None


class TestAttributionResolver:
    """Tests for AttributionResolver."""

    def test_anonymous_without_session(self):
        resolver = AttributionResolver(InMemoryKeyValueStore())

        assert resolver.current() == ANONYMOUS
        assert resolver.current() == Actor("anonymous", "Anonymous")

    def test_full_name_preferred(self):
        kv = InMemoryKeyValueStore(
            {"pricepilot_user": json.dumps({"id": "u1", "full_name": "Ada L", "name": "ada"})}
        )

        assert AttributionResolver(kv).current() == Actor("u1", "Ada L")

    def test_name_fallback(self):
        kv = InMemoryKeyValueStore({"pricepilot_user": json.dumps({"id": "u2", "name": "bob"})})

        assert AttributionResolver(kv).current() == Actor("u2", "bob")

    def test_missing_fields(self):
        kv = InMemoryKeyValueStore({"pricepilot_user": json.dumps({"email": "x@y.z"})})

        assert AttributionResolver(kv).current() == ANONYMOUS

    @pytest.mark.parametrize("raw", ["{not json", "[1, 2]", '"just a string"', "null"])
    def test_malformed_session(self, raw):
        kv = InMemoryKeyValueStore({"pricepilot_user": raw})

        assert AttributionResolver(kv).current() == ANONYMOUS

    def test_failing_store_is_anonymous(self):
        """Resolver never raises, even if the store does."""

        class BrokenStore:
            def get(self, key):
                raise OSError("disk gone")

            def set(self, key, value):
                raise OSError("disk gone")

        assert AttributionResolver(BrokenStore()).current() == ANONYMOUS

    def test_remember(self):
        kv = InMemoryKeyValueStore()
        resolver = AttributionResolver(kv, key="session")

        resolver.remember({"id": "u3", "full_name": "Cy"})

        assert resolver.current() == Actor("u3", "Cy")
