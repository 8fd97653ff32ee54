"""
Record helpers for RepoDB collections.

Records are plain JSON objects. This module holds the pieces shared by all
entity types: id and timestamp generation, edit-history entries, field
diffing, and the text/ordering rules used by list() and filter().
"""

from __future__ import annotations

import json
import math
import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

SYSTEM_FIELDS = (
    "id",
    "created_date",
    "created_by",
    "created_by_name",
    "updated_date",
    "updated_by",
    "updated_by_name",
    "likes",
    "dislikes",
    "edit_history",
)

ID_ALPHABET = string.ascii_lowercase + string.digits
ID_LENGTH = 9

# Marks a field absent from a record (distinct from an explicit null)
MISSING = object()


def new_record_id(existing: Iterable[str] = ()) -> str:
    """Random record id not present in ``existing``."""
    taken = set(existing)
    while True:
        candidate = "".join(secrets.choice(ID_ALPHABET) for _ in range(ID_LENGTH))
        if candidate not in taken:
            return candidate


def utc_now_iso() -> str:
    """Current time as ISO 8601 UTC with milliseconds, e.g. 2026-01-01T10:00:00.000Z."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


@dataclass(frozen=True)
class FieldChange:
    """One changed field in an update."""

    field: str
    old: Any
    new: Any

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "old": self.old, "new": self.new}


@dataclass(frozen=True)
class EditHistoryEntry:
    """Summary of one update.

    Attributes:
        timestamp: When the update happened (ISO 8601)
        user_id: Actor id
        user_name: Actor display name
        changes: Changed fields in payload order
    """

    timestamp: str
    user_id: str
    user_name: str
    changes: tuple[FieldChange, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "changes": [c.to_dict() for c in self.changes],
        }


def _canonical(value: Any) -> str:
    if value is MISSING:
        return "<missing>"
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def diff_fields(record: dict[str, Any], patch: dict[str, Any]) -> list[FieldChange]:
    """Fields of ``patch`` whose serialized value differs from ``record``.

    ``edit_history`` is never diffed. A field absent from the record differs
    from every value, including None.
    """
    changes = []
    for key, new in patch.items():
        if key == "edit_history":
            continue
        old = record.get(key, MISSING)
        if _canonical(old) != _canonical(new):
            changes.append(FieldChange(key, None if old is MISSING else old, new))
    return changes


def as_text(value: Any) -> str:
    """String form of a field value for equality matching.

    Mirrors how loosely typed clients stringify JSON values, so ``"3"``
    matches ``3`` and ``"true"`` matches ``True``.
    """
    if value is MISSING:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (list, tuple)):
        return ",".join("" if v is None else as_text(v) for v in value)
    if isinstance(value, dict):
        return "[object Object]"
    return str(value)


def compare_values(a: Any, b: Any) -> int:
    """Three-way comparison for sorting.

    Missing and null values rank below everything else. Values of types that
    cannot be ordered against each other are grouped by type name.
    """
    a_blank = a is MISSING or a is None
    b_blank = b is MISSING or b is None
    if a_blank or b_blank:
        return int(b_blank) - int(a_blank)
    try:
        if a < b:
            return -1
        if a > b:
            return 1
        return 0
    except TypeError:
        pass
    a_type, b_type = type(a).__name__, type(b).__name__
    return (a_type > b_type) - (a_type < b_type)


def find_index(items: list[Any], record_id: Any) -> Optional[int]:
    """Position of the record with ``record_id`` (compared as text)."""
    wanted = as_text(record_id)
    for i, item in enumerate(items):
        if isinstance(item, dict) and as_text(item.get("id", MISSING)) == wanted:
            return i
    return None
