"""
Base protocol and types for versioned blob storage.

This module defines the BlobStore protocol that all backends must implement,
along with the revision cache shared by implementations.

Invariants:
    - A revision token identifies exactly one content state of a blob
    - write() succeeds only if the caller's token matches the current one
      (creating a blob requires that it does not exist yet)
    - Every successful read() or write() refreshes the cached token

How to change safely:
    - Protocol changes must land in GitHubBlobStore and InMemoryBlobStore together
    - Keep error mapping identical across backends (tests rely on it)
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional, Protocol, runtime_checkable

from ..errors import BlobNotFoundError


# Expected revision for a write that must create the blob
NEW_BLOB = ""


@dataclass(frozen=True)
class BlobContent:
    """Content of a blob plus the revision it was read at.

    Attributes:
        path: Blob path in the repository
        content: Raw bytes (already base64-decoded)
        revision: Revision token (blob SHA)
    """

    path: str
    content: bytes
    revision: str

    def text(self) -> str:
        """Content decoded as UTF-8."""
        return self.content.decode("utf-8")


class RevisionCache:
    """Last-seen revision token per blob path.

    Owned by a single BlobStore instance; avoids a read before every write.
    """

    def __init__(self) -> None:
        self._revisions: Dict[str, str] = {}

    def get(self, path: str) -> Optional[str]:
        return self._revisions.get(path)

    def set(self, path: str, revision: Optional[str]) -> None:
        if revision is None:
            self._revisions.pop(path, None)
        else:
            self._revisions[path] = revision

    def forget(self, path: str) -> None:
        self._revisions.pop(path, None)


@runtime_checkable
class BlobStore(Protocol):
    """Protocol for versioned blob backends.

    Consistency contract:
        - write() is a compare-and-swap on the revision token
        - A stale token raises ConflictError, never overwrites

    Example:
        >>> store = GitHubBlobStore(settings, http_client)
        >>> blob = await store.read("data/Product.json")
        >>> await store.write("data/Product.json", body, "Update Product: abc")
    """

    revisions: RevisionCache

    @abstractmethod
    async def read(self, path: str) -> BlobContent:
        """Read a blob and remember its revision.

        Raises:
            BlobNotFoundError: If the blob does not exist
            TransportError: For any other failure
        """
        ...

    @abstractmethod
    async def write(
        self,
        path: str,
        content: bytes,
        message: str,
        revision: Optional[str] = None,
    ) -> str:
        """Write a blob with compare-and-swap.

        Args:
            path: Blob path
            content: Raw bytes to store
            message: Commit message
            revision: Expected current revision (defaults to the cached one,
                NEW_BLOB when the blob must not exist yet)

        Returns:
            The new revision token

        Raises:
            ConflictError: If the expected revision is stale
            TransportError: For any other failure
        """
        ...

    @abstractmethod
    def locator(self, path: str) -> str:
        """Stable retrieval URL for a blob path."""
        ...

    async def refresh(self, path: str) -> Optional[str]:
        """Re-read a blob only to refresh its cached revision.

        Returns:
            The current revision, or None if the blob does not exist
        """
        try:
            blob = await self.read(path)
        except BlobNotFoundError:
            self.revisions.forget(path)
            return None
        return blob.revision

    def cached_revision(self, path: str) -> Optional[str]:
        """Last revision seen for a path, if any."""
        return self.revisions.get(path)
