"""
Raw blob uploads for attachment-style assets.

Binary assets go straight to the remote repository through the same
compare-and-swap write as collections. There is no local fallback: without
a remote backend, upload() raises NotConfiguredError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .blob.base import BlobStore
from .errors import NotConfiguredError, RepoDbError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadResult:
    """Where an uploaded blob can be fetched.

    Attributes:
        path: Blob path in the repository
        locator: Retrieval URL
        revision: Revision token of the written blob
    """

    path: str
    locator: str
    revision: str


class RawBlobUploader:
    """Writes arbitrary bytes to caller-chosen paths.

    Example:
        >>> result = await uploader.upload("images/milk.png", png_bytes)
        >>> result.locator
        'https://raw.githubusercontent.com/acme/prices/main/images/milk.png'
    """

    def __init__(self, blob_store: Optional[BlobStore]) -> None:
        self.blob_store = blob_store

    async def upload(
        self,
        path: str,
        data: bytes,
        message: Optional[str] = None,
    ) -> UploadResult:
        """Upload bytes.

        Args:
            path: Destination path in the repository
            data: Raw content
            message: Commit message (defaults to ``Add {path}``)

        Returns:
            UploadResult with the retrieval locator

        Raises:
            NotConfiguredError: If no remote backend is configured
            ConflictError: If the blob changed between lookup and write
            TransportError: For any other remote failure
        """
        if self.blob_store is None:
            raise NotConfiguredError("Remote repository not configured")

        path = path.lstrip("/")

        # Existing blobs need their current revision to be replaced
        try:
            await self.blob_store.refresh(path)
        except RepoDbError as e:
            logger.debug(f"Revision lookup for {path} failed: {e}")

        try:
            revision = await self.blob_store.write(path, data, message or f"Add {path}")
        except RepoDbError:
            logger.exception(f"Upload failed for {path}")
            raise

        logger.info(f"Uploaded {len(data)} bytes to {path}")
        return UploadResult(path=path, locator=self.blob_store.locator(path), revision=revision)
