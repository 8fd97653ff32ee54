"""
Integration tests for concurrent sessions and fallback behaviour.

Two clients share one in-memory repository, each with its own revision
cache and local store, like two browsers pointed at the same repo.

Tests cover:
- Conflict detection and the single refresh-and-retry
- Falling back to local storage when the remote fails
- Unconfigured remote
"""

import json

import pytest

from repodb_sdk import RepoDbClient, Settings
from repodb_sdk.blob import InMemoryBlobStore, InMemoryRepository
from repodb_sdk.errors import ConflictError, TransportError
from repodb_sdk.local import InMemoryKeyValueStore

PRODUCTS = "data/Product.json"


class InterleavingBlobStore(InMemoryBlobStore):
    """Runs a hook right before its first write, after the read happened."""

    def __init__(self, repository, hook=None):
        super().__init__(repository)
        self.hook = hook
        self.conflicts = 0

    async def write(self, path, content, message, revision=None):
        hook, self.hook = self.hook, None
        if hook is not None:
            await hook()
        try:
            return await super().write(path, content, message, revision)
        except ConflictError:
            self.conflicts += 1
            raise


def make_client(blob_store, user_id, settings=None):
    kv = InMemoryKeyValueStore({"pricepilot_user": json.dumps({"id": user_id, "name": user_id})})
    return RepoDbClient(settings or Settings(), blob_store=blob_store, kv=kv)


@pytest.fixture
def repo():
    return InMemoryRepository()


class TestConflictRetry:
    """Tests for the compare-and-swap retry protocol."""

    @pytest.mark.asyncio
    async def test_different_records_both_survive(self, repo):
        """B's stale write conflicts, B re-reads and both changes land."""
        alice = make_client(InMemoryBlobStore(repo), "alice")
        seed = await alice.entities.Product.create({"name": "Milk", "price": 1})
        other = await alice.entities.Product.create({"name": "Eggs", "price": 2})

        async def alice_writes():
            await alice.entities.Product.update(seed["id"], {"price": 5})

        bob_store = InterleavingBlobStore(repo, alice_writes)
        bob = make_client(bob_store, "bob")

        await bob.entities.Product.update(other["id"], {"price": 7})

        assert bob_store.conflicts == 1
        products = {p["id"]: p for p in json.loads(repo.blobs[PRODUCTS])}
        assert products[seed["id"]]["price"] == 5
        assert products[other["id"]]["price"] == 7
        assert bob.kv.get("pricepilot_db_data/Product.json") is None

    @pytest.mark.asyncio
    async def test_same_record_retry_reapplies_on_fresh_state(self, repo):
        """B's mutation is recomputed against A's write, so history shows both."""
        alice = make_client(InMemoryBlobStore(repo), "alice")
        seed = await alice.entities.Product.create({"name": "Milk", "price": 1})

        async def alice_writes():
            await alice.entities.Product.update(seed["id"], {"price": 2})

        bob = make_client(InterleavingBlobStore(repo, alice_writes), "bob")

        result = await bob.entities.Product.update(seed["id"], {"price": 3})

        assert result["price"] == 3
        history = result["edit_history"]
        assert [(e["user_id"], e["changes"][0]["old"], e["changes"][0]["new"]) for e in history] == [
            ("alice", 1, 2),
            ("bob", 2, 3),
        ]

    @pytest.mark.asyncio
    async def test_concurrent_creates_keep_both(self, repo):
        alice = make_client(InMemoryBlobStore(repo), "alice")
        created = {}

        async def alice_creates():
            created["alice"] = await alice.entities.Store.create({"name": "A"})

        bob = make_client(InterleavingBlobStore(repo, alice_creates), "bob")
        created["bob"] = await bob.entities.Store.create({"name": "B"})

        stores = await alice.entities.Store.list()
        assert {s["id"] for s in stores} == {created["alice"]["id"], created["bob"]["id"]}

    @pytest.mark.asyncio
    async def test_retry_noop_when_change_already_applied(self, repo):
        """A retried delete of a record someone else removed writes nothing."""
        alice = make_client(InMemoryBlobStore(repo), "alice")
        seed = await alice.entities.Product.create({"name": "Milk"})

        async def alice_deletes():
            await alice.entities.Product.delete(seed["id"])

        bob_store = InterleavingBlobStore(repo, alice_deletes)
        bob = make_client(bob_store, "bob")

        assert await bob.entities.Product.delete(seed["id"]) is True
        assert bob_store.conflicts == 1
        assert bob_store.writes == 0
        assert json.loads(repo.blobs[PRODUCTS]) == []

    @pytest.mark.asyncio
    async def test_second_conflict_falls_back_to_local(self, repo):
        """Only one retry: a second conflict sends the write to local storage."""
        alice = make_client(InMemoryBlobStore(repo), "alice")
        seed = await alice.entities.Product.create({"name": "Milk", "price": 1})

        bob_store = InMemoryBlobStore(repo)
        bob_store.fail_next_write(ConflictError(PRODUCTS))
        bob_store.fail_next_write(ConflictError(PRODUCTS))
        bob = make_client(bob_store, "bob")

        result = await bob.entities.Product.update(seed["id"], {"price": 9})

        assert result["price"] == 9
        local = json.loads(bob.kv.get("pricepilot_db_data/Product.json"))
        assert local[0]["price"] == 9
        assert json.loads(repo.blobs[PRODUCTS])[0]["price"] == 1

    @pytest.mark.asyncio
    async def test_more_retries_from_settings(self, repo):
        alice = make_client(InMemoryBlobStore(repo), "alice")
        seed = await alice.entities.Product.create({"name": "Milk", "price": 1})

        bob_store = InMemoryBlobStore(repo)
        bob_store.fail_next_write(ConflictError(PRODUCTS))
        bob_store.fail_next_write(ConflictError(PRODUCTS))
        bob = make_client(bob_store, "bob", Settings(max_conflict_retries=2))

        await bob.entities.Product.update(seed["id"], {"price": 9})

        assert json.loads(repo.blobs[PRODUCTS])[0]["price"] == 9


class TestLocalFallback:
    """Tests for degrading to the local fallback store."""

    @pytest.mark.asyncio
    async def test_create_while_unreachable(self, repo):
        store = InMemoryBlobStore(repo)
        client = make_client(store, "alice")
        store.set_unreachable()

        created = await client.entities.Product.create({"name": "Offline milk"})

        assert PRODUCTS not in repo.blobs
        assert (await client.entities.Product.get(created["id"]))["name"] == "Offline milk"
        local = json.loads(client.kv.get("pricepilot_db_data/Product.json"))
        assert local[0]["id"] == created["id"]

    @pytest.mark.asyncio
    async def test_no_reconciliation_after_recovery(self, repo):
        """Records written offline stay local once the remote is back."""
        store = InMemoryBlobStore(repo)
        client = make_client(store, "alice")
        store.set_unreachable()
        created = await client.entities.Product.create({"name": "Offline milk"})

        store.set_unreachable(False)

        assert await client.entities.Product.get(created["id"]) is None
        assert client.kv.get("pricepilot_db_data/Product.json") is not None

    @pytest.mark.asyncio
    async def test_write_failure_falls_back(self, repo):
        store = InMemoryBlobStore(repo)
        client = make_client(store, "alice")
        store.fail_next_write(TransportError("rate limited", status_code=403))

        created = await client.entities.Store.create({"name": "Kiosk"})

        assert "data/Store.json" not in repo.blobs
        local = json.loads(client.kv.get("pricepilot_db_data/Store.json"))
        assert local == [created]

    @pytest.mark.asyncio
    async def test_malformed_remote_is_empty(self, repo):
        store = InMemoryBlobStore(repo)
        store.put_external(PRODUCTS, b'{"not": "an array"}')
        client = make_client(store, "alice")

        assert await client.entities.Product.list() == []
        assert repo.blobs[PRODUCTS] == b'{"not": "an array"}'

    @pytest.mark.asyncio
    async def test_unconfigured_remote_uses_local(self):
        kv = InMemoryKeyValueStore()
        client = RepoDbClient(Settings(), kv=kv)

        assert not client.remote_enabled
        created = await client.entities.User.create({"email": "a@b.c"})

        assert await client.entities.User.get(created["id"]) == created
        assert json.loads(kv.get("pricepilot_db_data/User.json")) == [created]

    @pytest.mark.asyncio
    async def test_malformed_local_is_empty(self):
        kv = InMemoryKeyValueStore({"pricepilot_db_data/Store.json": "oops"})
        client = RepoDbClient(Settings(), kv=kv)

        assert await client.entities.Store.list() == []
