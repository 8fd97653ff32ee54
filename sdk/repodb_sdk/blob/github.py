"""
GitHub contents API blob store.

Stores each blob as a file in a repository branch. The file's blob SHA is
the revision token: the API rejects a PUT whose ``sha`` does not match the
file's current SHA, which gives compare-and-swap writes for free.

Invariants:
    - Content is base64 of the raw bytes (UTF-8 safe by construction)
    - 404 on read means "no blob", never an error for collections
    - 409, or 422 complaining about the sha, means a stale revision

How to change safely:
    - Keep status mapping in _raise_for_status() in sync with InMemoryBlobStore
    - Test against a scratch repository before pointing at shared data
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from ..codec import decode_content, encode_content
from ..config import Settings
from ..errors import BlobNotFoundError, ConflictError, TransportError
from .base import BlobContent, BlobStore, RevisionCache

logger = logging.getLogger(__name__)

GITHUB_API_VERSION = "2022-11-28"


class GitHubBlobStore(BlobStore):
    """GitHub implementation of the BlobStore protocol.

    Uses an injected httpx.AsyncClient so callers control pooling, timeouts
    and (in tests) the transport.

    Example:
        >>> async with httpx.AsyncClient() as http:
        ...     store = GitHubBlobStore(settings, http)
        ...     blob = await store.read("data/Store.json")
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient) -> None:
        """Initialize the store.

        Args:
            settings: Settings with owner, repo, token and branch
            http_client: Shared async HTTP client
        """
        self._owner = settings.github_owner
        self._repo = settings.github_repo
        self._token = settings.github_token
        self._branch = settings.github_branch
        self._api_url = settings.github_api_url.rstrip("/")
        self._raw_base_url = settings.raw_base_url.rstrip("/")
        self._http = http_client
        self.revisions = RevisionCache()

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }

    def _contents_url(self, path: str) -> str:
        return f"{self._api_url}/repos/{self._owner}/{self._repo}/contents/{quote(path)}"

    def locator(self, path: str) -> str:
        return f"{self._raw_base_url}/{self._owner}/{self._repo}/{self._branch}/{path}"

    async def read(self, path: str) -> BlobContent:
        try:
            response = await self._http.get(
                self._contents_url(path),
                params={"ref": self._branch},
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            raise TransportError(f"GET {path} failed: {e}", path=path) from e

        self._raise_for_status(response, path)
        body = self._json(response, path)

        revision = body.get("sha")
        if not revision:
            raise TransportError(f"GET {path} returned no sha", path=path)

        try:
            content = decode_content(body.get("content") or "")
        except ValueError as e:
            raise TransportError(str(e), path=path) from e

        self.revisions.set(path, revision)
        logger.debug("Blob read", extra={"path": path, "revision": revision})
        return BlobContent(path=path, content=content, revision=revision)

    async def write(
        self,
        path: str,
        content: bytes,
        message: str,
        revision: Optional[str] = None,
    ) -> str:
        expected = revision if revision is not None else self.revisions.get(path)

        payload: dict[str, Any] = {
            "message": message,
            "content": encode_content(content),
            "branch": self._branch,
        }
        if expected:
            payload["sha"] = expected

        try:
            response = await self._http.put(
                self._contents_url(path),
                json=payload,
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            raise TransportError(f"PUT {path} failed: {e}", path=path) from e

        self._raise_for_status(response, path, expected)
        body = self._json(response, path)

        new_revision = (body.get("content") or {}).get("sha")
        if not new_revision:
            raise TransportError(f"PUT {path} returned no sha", path=path)

        self.revisions.set(path, new_revision)
        logger.debug(
            "Blob written",
            extra={"path": path, "revision": new_revision, "previous": expected},
        )
        return new_revision

    def _raise_for_status(
        self,
        response: httpx.Response,
        path: str,
        expected: Optional[str] = None,
    ) -> None:
        """Map API status codes onto the SDK error taxonomy."""
        status = response.status_code
        if status < 400:
            return
        if status == 404:
            raise BlobNotFoundError(path)
        if status == 409:
            raise ConflictError(path, expected)
        if status == 422 and "sha" in response.text.lower():
            raise ConflictError(path, expected)
        raise TransportError(
            f"{response.request.method} {path} failed with status {status}",
            path=path,
            status_code=status,
        )

    @staticmethod
    def _json(response: httpx.Response, path: str) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError as e:
            raise TransportError(f"Invalid JSON response for {path}", path=path) from e
        if not isinstance(body, dict):
            # A directory listing comes back as an array
            raise TransportError(f"{path} is not a file", path=path)
        return body
