"""
Collection persistence for RepoDB.

Every entity type is one JSON array stored as one blob. This module reads
whole collections and applies mutations as read -> mutate -> write:
- Reads come from the remote blob store, or the local fallback
- Writes are compare-and-swap against the revision seen by the read
- A conflicting write is retried after re-reading and re-applying the
  mutation to the fresh collection
- Anything the remote cannot take lands in the local fallback

Invariants:
    - Remote errors never reach the caller; operations always complete
    - A mutation is a pure function of the collection it is given, so it can
      be re-applied on retry
    - Mutations that change nothing are never written
    - A write that fell back to local storage is never reconciled with the
      remote afterwards

How to change safely:
    - Raising max_conflict_retries trades latency for fewer local fallbacks
    - Keep blob paths stable: other sessions read the same paths
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from .blob.base import NEW_BLOB, BlobStore
from .codec import dump_collection, load_collection
from .errors import BlobNotFoundError, ConflictError, ParseError, TransportError
from .local import LocalFallbackStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

Collection = list[dict[str, Any]]


@dataclass
class Mutation(Generic[T]):
    """Outcome of applying a change to a collection.

    Attributes:
        result: Value handed back to the caller
        changed: Whether the collection was modified and must be written
        message: Commit message to use instead of the one given to mutate()
    """

    result: T
    changed: bool = True
    message: Optional[str] = None


MutationFn = Callable[[Collection], Mutation[T]]


@dataclass
class Snapshot:
    """A collection as read, with where it came from.

    Attributes:
        items: Decoded records
        source: Human-readable origin for logs
        revision: Remote revision read (NEW_BLOB if the blob is absent),
            None when the data did not come from the remote
    """

    items: Collection
    source: str
    revision: Optional[str] = None

    @property
    def remote(self) -> bool:
        return self.revision is not None


class CollectionStorage:
    """Reads and writes entity collections.

    Example:
        >>> storage = CollectionStorage(blob_store, fallback)
        >>> items = await storage.load("Product")
        >>> await storage.mutate("Product", add_item, "Create Product: abc")
    """

    def __init__(
        self,
        blob_store: Optional[BlobStore],
        fallback: LocalFallbackStore,
        data_prefix: str = "data",
        max_conflict_retries: int = 1,
    ) -> None:
        """Initialize storage.

        Args:
            blob_store: Remote backend, or None when unconfigured
            fallback: Local store used when the remote is unavailable
            data_prefix: Directory holding collection blobs
            max_conflict_retries: Refresh-and-retry attempts after a conflict
        """
        self.blob_store = blob_store
        self.fallback = fallback
        self.data_prefix = data_prefix.strip("/")
        self.max_conflict_retries = max_conflict_retries

    @property
    def remote_enabled(self) -> bool:
        return self.blob_store is not None

    def path_for(self, name: str) -> str:
        """Blob path of an entity collection."""
        if not self.data_prefix:
            return f"{name}.json"
        return f"{self.data_prefix}/{name}.json"

    async def load(self, name: str) -> Collection:
        """Read a whole collection. Never raises for remote failures."""
        snapshot = await self._read(name)
        logger.debug(f"[DB] {name}: {len(snapshot.items)} items from {snapshot.source}")
        return snapshot.items

    async def mutate(self, name: str, fn: MutationFn[T], message: str) -> T:
        """Apply a mutation to a collection and persist it.

        Args:
            name: Entity type name
            fn: Mutation applied to the freshest collection (may run twice)
            message: Commit message, unless the mutation supplies one

        Returns:
            The result of the last application of fn
        """
        snapshot = await self._read(name)
        outcome = fn(snapshot.items)
        if not outcome.changed:
            return outcome.result

        if not snapshot.remote:
            self._write_local(name, snapshot.items, snapshot.source)
            return outcome.result

        path = self.path_for(name)
        items = snapshot.items
        revision = snapshot.revision
        retries = 0

        while True:
            try:
                await self.blob_store.write(
                    path,
                    dump_collection(items).encode("utf-8"),
                    outcome.message or message,
                    revision=revision,
                )
            except ConflictError:
                if retries >= self.max_conflict_retries:
                    logger.error(f"[DB] {name}: conflict persisted after {retries} retries")
                    break
                retries += 1
                logger.warning(f"[DB] {name}: revision conflict detected, refreshing and retrying")
                try:
                    snapshot = await self._read_remote(name)
                except TransportError as e:
                    logger.error(f"[DB] {name}: refresh after conflict failed: {e}")
                    break
                items = snapshot.items
                revision = snapshot.revision
                outcome = fn(items)
                if not outcome.changed:
                    return outcome.result
            except TransportError as e:
                logger.error(f"[DB] {name}: remote save failed: {e}")
                break
            else:
                suffix = " (retry)" if retries else ""
                logger.info(f"[DB] {name}: saved {len(items)} items to remote{suffix}")
                return outcome.result

        self._write_local(name, items, "remote save failed")
        return outcome.result

    async def _read(self, name: str) -> Snapshot:
        if self.blob_store is None:
            return self._read_local(name, "local (no remote config)")
        try:
            return await self._read_remote(name)
        except TransportError as e:
            logger.error(f"[DB] {name}: remote fetch failed: {e}")
            return self._read_local(name, "local (remote fallback)")

    async def _read_remote(self, name: str) -> Snapshot:
        try:
            blob = await self.blob_store.read(self.path_for(name))
        except BlobNotFoundError:
            self.blob_store.revisions.forget(self.path_for(name))
            return Snapshot(items=[], source="remote (new blob)", revision=NEW_BLOB)

        try:
            items = load_collection(name, blob.content)
        except ParseError as e:
            logger.error(f"[DB] {e.message}, treating as empty")
            items = []
        return Snapshot(items=items, source="remote", revision=blob.revision)

    def _read_local(self, name: str, source: str) -> Snapshot:
        try:
            items = load_collection(name, self.fallback.read(name))
        except ParseError as e:
            logger.error(f"[DB] {e.message}, treating as empty")
            items = []
        return Snapshot(items=items, source=source)

    def _write_local(self, name: str, items: Collection, reason: str) -> None:
        self.fallback.write(name, dump_collection(items))
        logger.info(f"[DB] {name}: saved {len(items)} items to local storage ({reason})")

