"""
Versioned blob storage for RepoDB.

This module provides a pluggable blob backend interface supporting:
- GitHub contents API (production)
- In-memory (for testing)

A collection is one blob rewritten as a whole on every mutation. The blob's
revision token makes every write a compare-and-swap.

Invariants:
    - write() never overwrites a blob whose revision changed since it was read
    - Each store instance owns its revision cache (one per session)

How to change safely:
    - New backends must implement BlobStore protocol
    - Map backend errors onto BlobNotFoundError/ConflictError/TransportError
"""

from .base import NEW_BLOB, BlobContent, BlobStore, RevisionCache
from .github import GitHubBlobStore
from .memory import InMemoryBlobStore, InMemoryRepository, blob_sha

__all__ = [
    # Protocol and types
    "BlobStore",
    "BlobContent",
    "RevisionCache",
    "NEW_BLOB",
    # Implementations
    "GitHubBlobStore",
    "InMemoryBlobStore",
    "InMemoryRepository",
    "blob_sha",
]
