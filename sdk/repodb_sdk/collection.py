"""
Entity collections for RepoDB.

An EntityCollection is the CRUD and reaction API for one entity type. It
works on whole collections through CollectionStorage: every mutating call
re-reads the collection, changes it in memory and writes it back.

Invariants:
    - ids are unique within a collection and never change
    - likes and dislikes never both hold the same actor id
    - edit_history only grows, oldest entry first
    - Private collections filter by owner only when an owner is given;
      shared collections ignore owner filters

How to change safely:
    - Mutation closures must only depend on their input collection
      (they are re-applied after a write conflict)
    - New system fields must be added to records.SYSTEM_FIELDS
"""

from __future__ import annotations

import copy
import logging
from enum import Enum
from functools import cmp_to_key
from typing import Any, Optional

from .identity import AttributionResolver
from .records import (
    MISSING,
    SYSTEM_FIELDS,
    EditHistoryEntry,
    as_text,
    compare_values,
    diff_fields,
    find_index,
    new_record_id,
    utc_now_iso,
)
from .storage import Collection, CollectionStorage, Mutation

logger = logging.getLogger(__name__)

Record = dict[str, Any]


class Visibility(Enum):
    """Who sees the records of an entity type."""

    SHARED = "shared"
    PRIVATE = "private"


class EntityCollection:
    """CRUD, filtering and reactions for one entity type.

    Example:
        >>> products = registry.Product
        >>> item = await products.create({"name": "Milk"})
        >>> await products.update(item["id"], {"name": "Oat milk"})
        >>> await products.toggle_like(item["id"], "user_1")
    """

    def __init__(
        self,
        name: str,
        storage: CollectionStorage,
        resolver: AttributionResolver,
        visibility: Visibility = Visibility.SHARED,
        owner_field: str = "user_id",
    ) -> None:
        """Initialize a collection.

        Args:
            name: Entity type name (also the blob name)
            storage: Shared collection storage
            resolver: Source of the acting identity
            visibility: Shared or private records
            owner_field: Field naming the owner of a private record
        """
        self.name = name
        self.storage = storage
        self.resolver = resolver
        self.visibility = visibility
        self.owner_field = owner_field

    @property
    def private(self) -> bool:
        return self.visibility is Visibility.PRIVATE

    def __repr__(self) -> str:
        return f"EntityCollection({self.name!r}, {self.visibility.value})"

    async def list(
        self,
        sort: Optional[str] = None,
        limit: Optional[int] = None,
        owner: Optional[str] = None,
    ) -> list[Record]:
        """List records.

        Args:
            sort: Field to sort by; prefix with ``-`` for descending
            limit: Maximum number of records (ignored when falsy)
            owner: Owner id, honoured only by private entity types

        Returns:
            Matching records
        """
        items = _records(await self.storage.load(self.name))

        if self.private and owner:
            wanted = as_text(owner)
            items = [
                item
                for item in items
                if as_text(item.get(self.owner_field, MISSING)) == wanted
            ]

        if sort:
            descending = sort.startswith("-")
            key = sort[1:] if descending else sort

            def order(a: Record, b: Record) -> int:
                result = compare_values(a.get(key, MISSING), b.get(key, MISSING))
                return -result if descending else result

            items = sorted(items, key=cmp_to_key(order))

        if limit:
            items = items[:limit]
        return items

    async def filter(self, criteria: dict[str, Any]) -> list[Record]:
        """Records whose fields equal every value in ``criteria`` (as text)."""
        wanted = {key: as_text(value) for key, value in criteria.items()}
        return [
            item
            for item in _records(await self.storage.load(self.name))
            if all(as_text(item.get(key, MISSING)) == text for key, text in wanted.items())
        ]

    async def get(self, record_id: str) -> Optional[Record]:
        """Record with ``record_id``, or None."""
        items = await self.storage.load(self.name)
        index = find_index(items, record_id)
        return None if index is None else items[index]

    async def create(self, data: Record, actor_id: Optional[str] = None) -> Record:
        """Create a record.

        System fields (id, dates, attribution, reactions, history) always
        override same-named payload fields.

        Args:
            data: Entity payload
            actor_id: Actor to credit instead of the session identity

        Returns:
            The stored record
        """
        actor = self.resolver.current()
        user_id = actor_id or actor.id
        now = utc_now_iso()
        record_id = new_record_id()

        def apply(items: Collection) -> Mutation[Record]:
            nonlocal record_id
            existing = [as_text(item.get("id", MISSING)) for item in _records(items)]
            if record_id in existing:
                record_id = new_record_id(existing)
            record = {
                **copy.deepcopy(data),
                "id": record_id,
                "created_date": now,
                "created_by": user_id,
                "created_by_name": actor.name,
                "updated_date": now,
                "updated_by": user_id,
                "updated_by_name": actor.name,
                "likes": [],
                "dislikes": [],
                "edit_history": [],
            }
            items.append(record)
            return Mutation(record, message=f"Create {self.name}: {record_id}")

        record = await self.storage.mutate(self.name, apply, f"Create {self.name}")
        logger.debug(f"Created {self.name} {record['id']}")
        return record

    async def update(
        self,
        record_id: str,
        data: Record,
        actor_id: Optional[str] = None,
    ) -> Optional[Record]:
        """Update fields of a record and log the change.

        Fields not present in ``data`` are left untouched. System fields
        (id, creation and update attribution, reactions, history) in
        ``data`` are ignored. An update that changes nothing is not written
        and adds no history.

        Args:
            record_id: Record to update
            data: Fields to set
            actor_id: Actor to credit instead of the session identity

        Returns:
            The updated record, or None if it does not exist
        """
        actor = self.resolver.current()
        user_id = actor_id or actor.id
        patch = {key: value for key, value in data.items() if key not in SYSTEM_FIELDS}

        def apply(items: Collection) -> Mutation[Optional[Record]]:
            index = find_index(items, record_id)
            if index is None:
                return Mutation(None, changed=False)

            old = items[index]
            changes = diff_fields(old, patch)
            if not changes:
                return Mutation(old, changed=False)

            now = utc_now_iso()
            entry = EditHistoryEntry(
                timestamp=now,
                user_id=user_id,
                user_name=actor.name,
                changes=tuple(changes),
            )
            items[index] = {
                **old,
                **copy.deepcopy(patch),
                "updated_date": now,
                "updated_by": user_id,
                "updated_by_name": actor.name,
                "edit_history": [*(old.get("edit_history") or []), entry.to_dict()],
            }
            return Mutation(items[index])

        return await self.storage.mutate(self.name, apply, f"Update {self.name}: {record_id}")

    async def delete(self, record_id: str) -> bool:
        """Remove a record. Always returns True."""

        def apply(items: Collection) -> Mutation[bool]:
            index = find_index(items, record_id)
            if index is None:
                return Mutation(True, changed=False)
            del items[index]
            return Mutation(True)

        return await self.storage.mutate(self.name, apply, f"Delete {self.name}: {record_id}")

    async def toggle_like(self, record_id: str, actor_id: str) -> Optional[Record]:
        """Like a record, or take the like back. Drops any dislike by the actor."""
        return await self._toggle(record_id, actor_id, "likes", "dislikes", "Toggle Like")

    async def toggle_dislike(self, record_id: str, actor_id: str) -> Optional[Record]:
        """Dislike a record, or take the dislike back. Drops any like by the actor."""
        return await self._toggle(record_id, actor_id, "dislikes", "likes", "Toggle Dislike")

    async def _toggle(
        self,
        record_id: str,
        actor_id: str,
        field: str,
        opposite: str,
        verb: str,
    ) -> Optional[Record]:
        def apply(items: Collection) -> Mutation[Optional[Record]]:
            index = find_index(items, record_id)
            if index is None:
                return Mutation(None, changed=False)

            item = items[index]
            chosen = list(item.get(field) or [])
            other = list(item.get(opposite) or [])

            if actor_id in chosen:
                chosen = [a for a in chosen if a != actor_id]
            else:
                chosen.append(actor_id)
                other = [a for a in other if a != actor_id]

            item[field] = chosen
            item[opposite] = other
            return Mutation(item)

        return await self.storage.mutate(self.name, apply, f"{verb} {self.name}: {record_id}")


def _records(items: Collection) -> list[Record]:
    return [item for item in items if isinstance(item, dict)]
