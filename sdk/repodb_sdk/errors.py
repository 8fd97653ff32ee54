"""
Error types for RepoDB SDK.

This module defines all exception types raised by the SDK:
- RepoDbError: Base exception
- NotConfiguredError: No remote backend credentials
- TransportError: Network or authentication failure against the remote
- ConflictError: Revision token mismatch on a compare-and-swap write
- BlobNotFoundError: Blob does not exist in the remote repository
- ParseError: Stored collection content is not a JSON array
- UnknownEntityError: Entity type is not registered

Invariants:
    - All errors inherit from RepoDbError
    - Remote errors never leave CollectionStorage; they degrade to the
      local fallback store
    - Error messages never include the access token
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class RepoDbError(Exception):
    """Base exception for all RepoDB SDK errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "REPODB_ERROR"
        self.details = details or {}


class NotConfiguredError(RepoDbError):
    """No remote blob repository is configured.

    Raised when owner, repository or token settings are missing and an
    operation has no local fallback (raw blob uploads).
    """

    def __init__(self, message: str = "Remote repository not configured") -> None:
        super().__init__(message, code="NOT_CONFIGURED")


class TransportError(RepoDbError):
    """Request to the remote repository failed.

    Raised when:
    - Remote is unreachable
    - Authentication fails
    - Server responds with an unexpected status
    """

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(
            message,
            code="TRANSPORT_ERROR",
            details={"path": path, "status_code": status_code},
        )
        self.path = path
        self.status_code = status_code


class ConflictError(RepoDbError):
    """Write was rejected because the revision token is stale."""

    def __init__(self, path: str, revision: Optional[str] = None) -> None:
        super().__init__(
            f"Revision conflict writing '{path}'",
            code="CONFLICT",
            details={"path": path, "revision": revision},
        )
        self.path = path
        self.revision = revision


class BlobNotFoundError(RepoDbError):
    """Blob does not exist at the requested path."""

    def __init__(self, path: str) -> None:
        super().__init__(
            f"Blob not found: {path}",
            code="NOT_FOUND",
            details={"path": path},
        )
        self.path = path


class ParseError(RepoDbError):
    """Stored collection content could not be decoded as a JSON array."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(
            f"Collection '{name}' is malformed: {reason}",
            code="PARSE_ERROR",
            details={"name": name, "reason": reason},
        )
        self.name = name
        self.reason = reason


class UnknownEntityError(RepoDbError):
    """Entity type is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Entity {name} not found",
            code="UNKNOWN_ENTITY",
            details={"name": name},
        )
        self.name = name
