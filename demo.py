#!/usr/bin/env python3
"""
RepoDB Demo - Two sessions sharing one repository.

Uses the in-memory blob backend so it runs without GitHub credentials.
Set REPODB_GITHUB_OWNER/REPO/TOKEN and use RepoDbClient() to run the same
calls against a real repository.
"""

import asyncio
import json

from repodb_sdk import InMemoryBlobStore, InMemoryKeyValueStore, RepoDbClient, Settings
from repodb_sdk.blob import InMemoryRepository
from repodb_sdk.logging_setup import setup_logging


def session(repo: InMemoryRepository, user_id: str, name: str) -> RepoDbClient:
    kv = InMemoryKeyValueStore({"pricepilot_user": json.dumps({"id": user_id, "full_name": name})})
    return RepoDbClient(Settings(), blob_store=InMemoryBlobStore(repo), kv=kv)


async def main():
    settings = Settings()
    setup_logging(settings)

    print("=" * 60)
    print("RepoDB Demo - Shared collections")
    print("=" * 60)

    repo = InMemoryRepository()
    alice = session(repo, "user_alice", "Alice")
    bob = session(repo, "user_bob", "Bob")

    print("\n[Step 1] Alice adds a store and a product...")
    store = await alice.entities.Store.create({"name": "Corner Shop", "city": "Köln"})
    milk = await alice.entities.Product.create({"name": "Milk", "store_id": store["id"]})
    print(f"  Store {store['id']}, Product {milk['id']}")

    print("\n[Step 2] Bob edits the product Alice created...")
    updated = await bob.entities.Product.update(milk["id"], {"name": "Whole milk"})
    for entry in updated["edit_history"]:
        print(f"  {entry['user_name']}: {entry['changes']}")

    print("\n[Step 3] Both react to it...")
    await alice.entities.Product.toggle_like(milk["id"], "user_alice")
    reacted = await bob.entities.Product.toggle_dislike(milk["id"], "user_bob")
    print(f"  likes={reacted['likes']} dislikes={reacted['dislikes']}")

    print("\n[Step 4] Private shopping lists...")
    await alice.entities.ShoppingList.create({"user_id": "user_alice", "title": "Weekend"})
    await bob.entities.ShoppingList.create({"user_id": "user_bob", "title": "Party"})
    mine = await alice.entities.ShoppingList.list(owner="user_alice")
    print(f"  Alice sees: {[item['title'] for item in mine]}")

    print("\n[Step 5] Commits in the repository:")
    for commit in repo.commits:
        print(f"  {commit.revision[:7]} {commit.message}")


if __name__ == "__main__":
    asyncio.run(main())
