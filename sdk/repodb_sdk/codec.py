"""
Content encoding for collection blobs.

The contents API transports blob bodies as base64. Text is always encoded
to UTF-8 bytes before base64 and decoded from bytes after, so multi-byte
characters survive the round trip.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

from .errors import ParseError


def encode_content(data: bytes) -> str:
    """Encode raw bytes as base64 text."""
    return base64.b64encode(data).decode("ascii")


def decode_content(encoded: str) -> bytes:
    """Decode base64 text to raw bytes.

    The contents API wraps base64 at 60 columns, so whitespace is dropped
    before decoding.

    Raises:
        ValueError: If the text is not valid base64
    """
    compact = "".join(encoded.split())
    try:
        return base64.b64decode(compact, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 content: {e}") from e


def dump_collection(items: list[dict[str, Any]]) -> str:
    """Serialize a collection the way it is stored (pretty-printed JSON)."""
    return json.dumps(items, indent=2, ensure_ascii=False)


def load_collection(name: str, raw: bytes | str | None) -> list[dict[str, Any]]:
    """Parse stored collection content.

    Args:
        name: Entity type name (for error context)
        raw: Stored content, or None when nothing is stored

    Returns:
        The decoded array (empty when nothing is stored)

    Raises:
        ParseError: If the content is not UTF-8 JSON or not an array
    """
    if raw is None:
        return []
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(name, f"not UTF-8: {e}") from e
    if not raw.strip():
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ParseError(name, f"invalid JSON: {e}") from e
    if not isinstance(data, list):
        raise ParseError(name, f"expected array, got {type(data).__name__}")
    return data
