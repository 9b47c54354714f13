"""Structured (flat JSON) documents: key matching, merge engine, codec."""

from __future__ import annotations

from .codec import dumps, loads, validate
from .keys import LEAN_CANVAS_KEYS, SPECIAL_KEYS, find_key, keys_match, normalize_key
from .merge import (
    DELETE_MARKER,
    SectionUpdate,
    deletion_update,
    merge_fields,
    single_field_update,
    try_merge,
)
from .sections import Sections, ensure_sections, split_sections

__all__ = [
    "DELETE_MARKER",
    "LEAN_CANVAS_KEYS",
    "SPECIAL_KEYS",
    "SectionUpdate",
    "Sections",
    "deletion_update",
    "dumps",
    "ensure_sections",
    "find_key",
    "keys_match",
    "loads",
    "merge_fields",
    "normalize_key",
    "single_field_update",
    "split_sections",
    "try_merge",
    "validate",
]
