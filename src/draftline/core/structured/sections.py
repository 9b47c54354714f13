"""Section layout helpers for structured documents.

A structured document renders in three regions: special keys (header and
footer), the fixed vocabulary grid, and free-form cards for everything else.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from .keys import LEAN_CANVAS_KEYS, SPECIAL_KEYS, find_key, matches_any

DEFAULT_CANVAS_TITLE = "My Lean Canvas"


@dataclass
class Sections:
    """A structured document split by render region (stored spellings kept)."""

    special: dict[str, str] = field(default_factory=dict)
    canvas: dict[str, str] = field(default_factory=dict)
    other: dict[str, str] = field(default_factory=dict)


def split_sections(
    fields: Mapping[str, str], vocabulary: Iterable[str] = LEAN_CANVAS_KEYS
) -> Sections:
    """Partition ``fields`` into special, vocabulary and free-form sections."""
    vocab = tuple(vocabulary)
    out = Sections()
    for key, value in fields.items():
        if matches_any(key, SPECIAL_KEYS):
            out.special[key] = value
        elif matches_any(key, vocab):
            out.canvas[key] = value
        else:
            out.other[key] = value
    return out


def ensure_sections(
    fields: Mapping[str, str],
    vocabulary: Iterable[str] = LEAN_CANVAS_KEYS,
    default_title: str = DEFAULT_CANVAS_TITLE,
) -> tuple[dict[str, str], bool]:
    """Add a missing title and any missing vocabulary section (empty value).

    Returns the completed map and whether anything was added. Ambiguous
    spellings count as present.
    """
    out = dict(fields)
    added = False
    if find_key(fields, "title").get_or("title") is None:
        out["title"] = default_title
        added = True
    for key in vocabulary:
        if find_key(fields, key).get_or(key) is None:
            out[key] = ""
            added = True
    return out, added


__all__ = ["DEFAULT_CANVAS_TITLE", "Sections", "ensure_sections", "split_sections"]
