"""
RepoDB Python SDK - document store on top of a versioned blob repository.

Each entity type is one JSON array stored as one file in a GitHub
repository. The file's SHA is used for compare-and-swap writes, so
independent clients can share the data without a server:
- Entity collections (list, filter, get, create, update, delete)
- Likes/dislikes and per-field edit history on every record
- Local SQLite fallback when the repository is unreachable
- Raw binary uploads for attachments

Example:
    >>> from repodb_sdk import RepoDbClient
    >>>
    >>> async with RepoDbClient() as db:
    ...     milk = await db.entities.Product.create({"name": "Milk"})
    ...     await db.entities.Product.update(milk["id"], {"name": "Whole milk"})

Invariants:
    - Every mutation rewrites the whole collection
    - A write conflict is retried once against the refreshed collection
    - Remote failures degrade to local storage, never to an exception

Version: 1.0.0
"""

__version__ = "1.0.0"

from .blob import BlobContent, BlobStore, GitHubBlobStore, InMemoryBlobStore
from .client import RepoDbClient
from .collection import EntityCollection, Visibility
from .config import Settings, get_settings
from .errors import (
    BlobNotFoundError,
    ConflictError,
    NotConfiguredError,
    ParseError,
    RepoDbError,
    TransportError,
    UnknownEntityError,
)
from .identity import ANONYMOUS, Actor, AttributionResolver
from .local import (
    InMemoryKeyValueStore,
    KeyValueStore,
    LocalFallbackStore,
    SqliteKeyValueStore,
)
from .registry import DEFAULT_ENTITIES, EntityRegistry
from .storage import CollectionStorage
from .uploader import RawBlobUploader, UploadResult

__all__ = [
    # Version
    "__version__",
    # Client
    "RepoDbClient",
    "Settings",
    "get_settings",
    # Entities
    "EntityRegistry",
    "EntityCollection",
    "Visibility",
    "DEFAULT_ENTITIES",
    # Storage
    "CollectionStorage",
    "BlobStore",
    "BlobContent",
    "GitHubBlobStore",
    "InMemoryBlobStore",
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "SqliteKeyValueStore",
    "LocalFallbackStore",
    # Attribution
    "Actor",
    "ANONYMOUS",
    "AttributionResolver",
    # Uploads
    "RawBlobUploader",
    "UploadResult",
    # Errors
    "RepoDbError",
    "NotConfiguredError",
    "TransportError",
    "ConflictError",
    "BlobNotFoundError",
    "ParseError",
    "UnknownEntityError",
]
