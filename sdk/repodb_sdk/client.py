"""
RepoDB client for Python SDK.

This module wires the SDK together:
- Settings decide whether the GitHub backend is used
- One blob store, one local fallback and one attribution resolver are
  shared by every entity collection
- The client owns the HTTP connection pool

Example:
    >>> async with RepoDbClient() as db:
    ...     store = await db.entities.Store.create({"name": "Corner Shop"})
    ...     await db.entities.Store.toggle_like(store["id"], "user_1")

Invariants:
    - Entity operations work with or without a remote repository
    - Only upload_file() raises when the remote is not configured
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from .blob.base import BlobStore
from .blob.github import GitHubBlobStore
from .config import Settings, get_settings
from .identity import AttributionResolver
from .local import KeyValueStore, LocalFallbackStore, SqliteKeyValueStore
from .registry import EntityRegistry
from .storage import CollectionStorage
from .uploader import RawBlobUploader, UploadResult

logger = logging.getLogger(__name__)


class RepoDbClient:
    """Entry point to a repository-backed document store.

    Attributes:
        settings: Effective configuration
        entities: Registry of entity collections
        uploader: Raw blob uploader
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        blob_store: Optional[BlobStore] = None,
        kv: Optional[KeyValueStore] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialize client.

        Args:
            settings: Configuration (loaded from environment if omitted)
            blob_store: Explicit remote backend (overrides settings)
            kv: Local key-value store (SQLite file from settings if omitted)
            http_client: HTTP client for the GitHub backend (created if omitted)
        """
        self.settings = settings or get_settings()
        self._owns_http = False
        self._http = http_client

        if blob_store is None and self.settings.remote_configured:
            if self._http is None:
                self._http = httpx.AsyncClient(timeout=self.settings.request_timeout)
                self._owns_http = True
            blob_store = GitHubBlobStore(self.settings, self._http)
        elif blob_store is None:
            logger.info("Remote repository not configured, using local storage only")

        self.blob_store = blob_store
        self.kv = kv if kv is not None else SqliteKeyValueStore(self.settings.local_db_file)
        self.fallback = LocalFallbackStore(self.kv, self.settings.local_key_prefix)
        self.resolver = AttributionResolver(self.kv, self.settings.user_key)
        self.storage = CollectionStorage(
            blob_store,
            self.fallback,
            data_prefix=self.settings.data_prefix,
            max_conflict_retries=self.settings.max_conflict_retries,
        )
        self.entities = EntityRegistry(self.storage, self.resolver)
        self.uploader = RawBlobUploader(blob_store)

    @property
    def remote_enabled(self) -> bool:
        return self.blob_store is not None

    async def upload_file(
        self,
        path: str,
        data: bytes,
        message: Optional[str] = None,
    ) -> UploadResult:
        """Upload a binary asset. See RawBlobUploader.upload()."""
        return await self.uploader.upload(path, data, message)

    async def close(self) -> None:
        """Close the HTTP client if this client created it."""
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None
            self._owns_http = False

    async def __aenter__(self) -> RepoDbClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
