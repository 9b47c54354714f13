"""Serializer between snapshot ``content`` strings and flat key/value maps.

JSON is written with ``ensure_ascii=False`` so any Unicode text, embedded
newlines included, survives a round trip byte for byte once decoded.
"""

from __future__ import annotations

import json
from collections.abc import Mapping

from draftline.core.errors import StructuredContentError

from .keys import find_collisions


def loads(content: str) -> dict[str, str]:
    """Parse ``content`` into a flat ``{key: str}`` map.

    Empty content is an empty document. Scalars other than strings are
    stringified (``null`` becomes ``""``); nested objects and arrays are
    rejected.
    """
    if not content.strip():
        return {}
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise StructuredContentError(f"content is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise StructuredContentError("structured content must be a JSON object")

    out: dict[str, str] = {}
    for key, value in data.items():
        if isinstance(value, dict | list):
            raise StructuredContentError(f"field {key!r} must be a string, not a nested value")
        if value is None:
            out[key] = ""
        elif isinstance(value, str):
            out[key] = value
        else:
            out[key] = json.dumps(value)
    return out


def dumps(fields: Mapping[str, str]) -> str:
    """Serialize a flat map back to the stored JSON string."""
    return json.dumps(dict(fields), ensure_ascii=False, indent=2)


def validate(fields: Mapping[str, str]) -> None:
    """Reject maps whose keys collide under case/separator normalization."""
    collisions = find_collisions(fields)
    if collisions:
        detail = "; ".join(f"{', '.join(map(repr, ks))}" for ks in collisions.values())
        raise StructuredContentError(f"keys collide after normalization: {detail}")


__all__ = ["dumps", "loads", "validate"]
