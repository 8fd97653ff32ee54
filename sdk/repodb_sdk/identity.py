"""
Actor attribution for RepoDB writes.

The session identity is persisted elsewhere (by whatever signs the user in)
as JSON ``{"id": ..., "full_name" | "name": ...}``. AttributionResolver only
reads it, and falls back to the anonymous actor.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from .local import KeyValueStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """Identity credited with a write.

    Attributes:
        id: Actor identifier
        name: Display name
    """

    id: str
    name: str


ANONYMOUS = Actor(id="anonymous", name="Anonymous")


class AttributionResolver:
    """Resolves the acting identity for the current session.

    Example:
        >>> resolver = AttributionResolver(kv)
        >>> resolver.current()
        Actor(id='anonymous', name='Anonymous')
    """

    def __init__(self, kv: KeyValueStore, key: str = "pricepilot_user") -> None:
        self.kv = kv
        self.key = key

    def current(self) -> Actor:
        """Current actor. Never raises."""
        try:
            raw = self.kv.get(self.key)
            if not raw:
                return ANONYMOUS
            user = json.loads(raw)
        except Exception:
            logger.debug("Unreadable session identity, using anonymous", exc_info=True)
            return ANONYMOUS

        if not isinstance(user, dict):
            return ANONYMOUS

        return Actor(
            id=str(user.get("id") or ANONYMOUS.id),
            name=str(user.get("full_name") or user.get("name") or ANONYMOUS.name),
        )

    def remember(self, user: dict[str, Any]) -> None:
        """Persist a session identity record."""
        self.kv.set(self.key, json.dumps(user))
