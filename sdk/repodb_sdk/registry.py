"""
Entity registry for RepoDB SDK.

Binds entity type names to EntityCollection instances that share one
CollectionStorage and one AttributionResolver.

Default entity types:
    - Product, PriceEntry, Store, User: shared, every caller sees every record
    - ShoppingList: private, filtered by ``user_id`` when an owner is given

Example:
    >>> registry = EntityRegistry(storage, resolver)
    >>> await registry.Product.list(sort="-created_date", limit=10)
    >>> await registry["ShoppingList"].list(owner="user_1")
"""

from __future__ import annotations

from collections.abc import Iterator

from .collection import EntityCollection, Visibility
from .errors import UnknownEntityError
from .identity import AttributionResolver
from .storage import CollectionStorage

DEFAULT_ENTITIES: dict[str, Visibility] = {
    "Product": Visibility.SHARED,
    "PriceEntry": Visibility.SHARED,
    "Store": Visibility.SHARED,
    "ShoppingList": Visibility.PRIVATE,
    "User": Visibility.SHARED,
}


class EntityRegistry:
    """Namespace of entity collections.

    Collections are reachable as attributes (``registry.Product``) or items
    (``registry["Product"]``).
    """

    def __init__(
        self,
        storage: CollectionStorage,
        resolver: AttributionResolver,
        entities: dict[str, Visibility] | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            storage: Storage shared by all collections
            resolver: Attribution shared by all collections
            entities: Entity names and visibility (defaults to DEFAULT_ENTITIES)
        """
        self.storage = storage
        self.resolver = resolver
        self._collections: dict[str, EntityCollection] = {}
        for name, visibility in (entities or DEFAULT_ENTITIES).items():
            self.register(name, visibility)

    def register(
        self,
        name: str,
        visibility: Visibility = Visibility.SHARED,
    ) -> EntityCollection:
        """Add an entity type.

        Raises:
            ValueError: If the name is already registered or not an identifier
        """
        if not name.isidentifier():
            raise ValueError(f"Entity name must be an identifier: {name!r}")
        if name in self._collections:
            raise ValueError(f"Entity {name} already registered")
        collection = EntityCollection(name, self.storage, self.resolver, visibility)
        self._collections[name] = collection
        return collection

    def get(self, name: str) -> EntityCollection:
        """Collection for an entity type.

        Raises:
            UnknownEntityError: If the name is not registered
        """
        try:
            return self._collections[name]
        except KeyError:
            raise UnknownEntityError(name) from None

    def names(self) -> list[str]:
        return list(self._collections)

    def __getitem__(self, name: str) -> EntityCollection:
        return self.get(name)

    def __getattr__(self, name: str) -> EntityCollection:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._collections[name]
        except KeyError:
            raise AttributeError(f"Entity {name} not found") from None

    def __contains__(self, name: object) -> bool:
        return name in self._collections

    def __iter__(self) -> Iterator[EntityCollection]:
        return iter(self._collections.values())

    def __len__(self) -> int:
        return len(self._collections)
