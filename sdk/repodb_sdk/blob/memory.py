"""
In-memory blob store implementation for testing.

This module provides a versioned in-memory backend for:
- Unit tests
- Integration tests of concurrent writers
- Local development without a remote repository

Invariants:
    - Blobs and commits live only as long as their InMemoryRepository
    - Revisions are git blob SHAs of the content, like the real backend
    - Same compare-and-swap and error semantics as GitHubBlobStore

How to change safely:
    - Error behaviour must track GitHubBlobStore: a test that passes here
      should mean the same thing against the contents API
    - Injected failures (set_unreachable, fail_next_write) fire before the
      revision check, so a failed write never changes stored content
    - Share one InMemoryRepository between stores to model separate sessions
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..errors import BlobNotFoundError, ConflictError, RepoDbError, TransportError
from .base import NEW_BLOB, BlobContent, BlobStore, RevisionCache

logger = logging.getLogger(__name__)


def blob_sha(content: bytes) -> str:
    """Git blob SHA-1 of some content."""
    header = f"blob {len(content)}\0".encode("ascii")
    return hashlib.sha1(header + content).hexdigest()


@dataclass
class Commit:
    """A write recorded by the in-memory store."""

    path: str
    message: str
    revision: str


@dataclass
class InMemoryRepository:
    """Blob contents shared by several InMemoryBlobStore clients.

    Each client keeps its own revision cache, so two stores over one
    repository behave like two independent sessions.
    """

    blobs: Dict[str, bytes] = field(default_factory=dict)
    commits: List[Commit] = field(default_factory=list)


class InMemoryBlobStore(BlobStore):
    """In-memory implementation of BlobStore for testing.

    Attributes:
        repository: Shared blob contents
        reads: Number of read() calls that reached the repository
        writes: Number of successful writes

    Example:
        >>> repo = InMemoryRepository()
        >>> alice, bob = InMemoryBlobStore(repo), InMemoryBlobStore(repo)
        >>> await alice.read("data/Product.json")
    """

    def __init__(
        self,
        repository: Optional[InMemoryRepository] = None,
        base_url: str = "memory://repodb",
    ) -> None:
        self.repository = repository if repository is not None else InMemoryRepository()
        self.revisions = RevisionCache()
        self.reads = 0
        self.writes = 0
        self._base_url = base_url.rstrip("/")
        self._unreachable = False
        self._pending_failures: List[RepoDbError] = []
        self._lock = asyncio.Lock()

    def locator(self, path: str) -> str:
        return f"{self._base_url}/{path}"

    async def read(self, path: str) -> BlobContent:
        self._check_reachable(path)
        async with self._lock:
            self.reads += 1
            content = self.repository.blobs.get(path)
            if content is None:
                raise BlobNotFoundError(path)
            revision = blob_sha(content)
        self.revisions.set(path, revision)
        return BlobContent(path=path, content=content, revision=revision)

    async def write(
        self,
        path: str,
        content: bytes,
        message: str,
        revision: Optional[str] = None,
    ) -> str:
        self._check_reachable(path)
        if self._pending_failures:
            raise self._pending_failures.pop(0)

        expected = revision if revision is not None else self.revisions.get(path)

        async with self._lock:
            current = self.repository.blobs.get(path)
            current_revision = blob_sha(current) if current is not None else None
            if (current_revision or NEW_BLOB) != (expected or NEW_BLOB):
                logger.debug(
                    "Rejected stale write",
                    extra={"path": path, "expected": expected, "current": current_revision},
                )
                raise ConflictError(path, expected)

            self.repository.blobs[path] = content
            new_revision = blob_sha(content)
            self.repository.commits.append(Commit(path, message, new_revision))
            self.writes += 1

        self.revisions.set(path, new_revision)
        return new_revision

    def _check_reachable(self, path: str) -> None:
        if self._unreachable:
            raise TransportError(f"Repository unreachable for {path}", path=path)

    # Testing helpers

    def set_unreachable(self, unreachable: bool = True) -> None:
        """Make every subsequent call fail with TransportError."""
        self._unreachable = unreachable

    def fail_next_write(self, error: RepoDbError) -> None:
        """Queue an error to be raised by the next write() call."""
        self._pending_failures.append(error)

    def put_external(self, path: str, content: bytes, message: str = "external") -> str:
        """Write as another session would, bypassing this store's cache."""
        self.repository.blobs[path] = content
        revision = blob_sha(content)
        self.repository.commits.append(Commit(path, message, revision))
        return revision

    def get_raw(self, path: str) -> Optional[bytes]:
        """Stored bytes for a path (testing helper)."""
        return self.repository.blobs.get(path)

    def commit_messages(self, path: Optional[str] = None) -> List[str]:
        """Commit messages in write order, optionally for one path."""
        return [c.message for c in self.repository.commits if path is None or c.path == path]
