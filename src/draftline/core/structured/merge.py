"""
Structured-field merge engine.

A structured document is edited through independent section widgets. Each
widget only knows its own slice (often a single key) and reports that slice
back after an edit. Replacing the whole document with a widget's report would
erase every sibling key, so this module rebuilds the full document from
``previous`` (last known-good whole) and ``update`` (one widget's report).

Reports come in two shapes. A section widget (title, subtitle, notes,
footnotes, one canvas cell) reports a :class:`SectionUpdate`; a free-form card
list reports a plain mapping holding every card it shows.

Algorithm
---------
1. **Classify.** A section report with exactly one key that matches a special
   key or a vocabulary section is a *single-field* update.
2. **Single field.** Resolve the key against ``previous`` (falling back to the
   literal key for first-time fields) and set its value. Nothing else moves.
3. **Multi key.** Update keys overwrite their matching ``previous`` keys (the
   stored spelling is kept) or are added. ``previous`` keys missing from the
   update are dropped, except protected ones (special keys and vocabulary).
4. **Explicit deletion.** The reserved ``__deleted__`` entry names a key to
   remove even when it is protected. The marker never reaches the result.

Ambiguous keys (one key matching several stored keys) turn the whole merge
into a no-op. The engine never raises.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from draftline.core.errors import MergeAmbiguity
from draftline.core.result import Result, err, ok
from draftline.core.settings import get_logger

from .keys import LEAN_CANVAS_KEYS, SPECIAL_KEYS, find_collisions, find_key, is_protected
from .keys import keys_match, matches_any

logger = get_logger(__name__)

#: Reserved update entry whose value names a key to delete unconditionally.
DELETE_MARKER = "__deleted__"


class SectionUpdate(dict[str, str]):
    """Report from a widget that owns a single section of the document."""


def single_field_update(key: str, value: str) -> SectionUpdate:
    """Build the report a single-section widget sends after an edit."""
    return SectionUpdate({key: value})


def deletion_update(current: Mapping[str, str], key: str) -> dict[str, str]:
    """Build a card-list report that explicitly deletes ``key`` from ``current``."""
    update = {k: v for k, v in current.items() if not keys_match(k, key)}
    update[DELETE_MARKER] = key
    return update


def is_single_field_update(
    update: Mapping[str, str], vocabulary: Iterable[str] = LEAN_CANVAS_KEYS
) -> bool:
    """Return True when ``update`` is a section report for one protected field."""
    if not isinstance(update, SectionUpdate) or len(update) != 1:
        return False
    (key,) = update
    return matches_any(key, SPECIAL_KEYS) or matches_any(key, vocabulary)


def try_merge(
    previous: Mapping[str, str],
    update: Mapping[str, str],
    vocabulary: Iterable[str] = LEAN_CANVAS_KEYS,
) -> Result[dict[str, str], MergeAmbiguity]:
    """Merge ``update`` into ``previous``; ``Err`` on ambiguous keys."""
    vocab = tuple(vocabulary)

    if is_single_field_update(update, vocab):
        ((key, value),) = update.items()
        resolved = find_key(previous, key)
        if resolved.is_err():
            return err(resolved.unwrap_err())
        merged = dict(previous)
        merged[resolved.unwrap() or key] = value
        return ok(merged)

    fields = dict(update)
    forced = fields.pop(DELETE_MARKER, None)
    if forced is not None:
        fields = {k: v for k, v in fields.items() if not keys_match(k, forced)}

    collisions = find_collisions(fields)
    if collisions:
        dupes = next(iter(collisions.values()))
        return err(MergeAmbiguity(key=dupes[0], candidates=tuple(dupes)))

    targets: dict[str, str] = {}
    for key in fields:
        resolved = find_key(previous, key)
        if resolved.is_err():
            return err(resolved.unwrap_err())
        targets[key] = resolved.unwrap() or key

    kept = set(targets.values())
    merged: dict[str, str] = {}
    for key, value in previous.items():
        if forced is not None and keys_match(key, forced):
            continue
        if key in kept or is_protected(key, vocab):
            merged[key] = value
    for key, value in fields.items():
        merged[targets[key]] = value
    return ok(merged)


def merge_fields(
    previous: Mapping[str, str],
    update: Mapping[str, str],
    vocabulary: Iterable[str] = LEAN_CANVAS_KEYS,
) -> dict[str, str]:
    """Merge ``update`` into ``previous``; ambiguity returns ``previous`` unchanged."""
    result = try_merge(previous, update, vocabulary)
    if result.is_err():
        logger.warning("merge skipped, %s", result.unwrap_err())
        return dict(previous)
    return result.unwrap()


__all__ = [
    "DELETE_MARKER",
    "SectionUpdate",
    "deletion_update",
    "is_single_field_update",
    "merge_fields",
    "single_field_update",
    "try_merge",
]
