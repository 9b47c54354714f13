"""
Case- and separator-insensitive key matching for structured documents.

Widgets display keys in whatever spelling suits them ("PROBLEM",
"Key Metrics", "key_metrics"), while the stored document keeps the spelling it
was created with. Every comparison in the merge engine goes through
:func:`normalize_key`: lowercase, then any run of underscores and whitespace
collapses to a single ``_``.

>>> normalize_key("Unique  Value_Proposition")
'unique_value_proposition'
>>> keys_match("Key Metrics", "KEY_METRICS")
True
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping

from draftline.core.errors import MergeAmbiguity
from draftline.core.result import Result, err, ok

_SEPARATORS = re.compile(r"[\s_]+")

#: Keys rendered outside the generic grid (header and footer widgets).
SPECIAL_KEYS: tuple[str, ...] = ("title", "subtitle", "notes", "footnotes")

#: Fixed lean-canvas section vocabulary.
LEAN_CANVAS_KEYS: tuple[str, ...] = (
    "problem",
    "existing_alternatives",
    "solution",
    "key_metrics",
    "unique_value_proposition",
    "high_level_concept",
    "unfair_advantage",
    "channels",
    "customer_segments",
    "early_adopters",
    "cost_structure",
    "revenue_streams",
)


def normalize_key(key: str) -> str:
    """Return the canonical comparison form of ``key``."""
    return _SEPARATORS.sub("_", key.strip().lower())


def keys_match(a: str, b: str) -> bool:
    """Return True if ``a`` and ``b`` name the same field."""
    return normalize_key(a) == normalize_key(b)


def matches_any(key: str, candidates: Iterable[str]) -> bool:
    """Return True if ``key`` matches any of ``candidates``."""
    norm = normalize_key(key)
    return any(norm == normalize_key(c) for c in candidates)


def find_key(mapping: Mapping[str, object], target: str) -> Result[str | None, MergeAmbiguity]:
    """Resolve ``target`` to the spelling used in ``mapping``.

    Returns ``Ok(key)`` for a unique match, ``Ok(None)`` when nothing matches,
    and ``Err(MergeAmbiguity)`` when several stored keys normalize alike.
    """
    norm = normalize_key(target)
    hits = tuple(k for k in mapping if normalize_key(k) == norm)
    if len(hits) > 1:
        return err(MergeAmbiguity(key=target, candidates=hits))
    return ok(hits[0] if hits else None)


def find_collisions(keys: Iterable[str]) -> dict[str, list[str]]:
    """Group keys that normalize to the same form; only groups of two or more."""
    groups: dict[str, list[str]] = {}
    for key in keys:
        groups.setdefault(normalize_key(key), []).append(key)
    return {norm: ks for norm, ks in groups.items() if len(ks) > 1}


def is_protected(key: str, vocabulary: Iterable[str] = LEAN_CANVAS_KEYS) -> bool:
    """Return True for special keys and members of the domain vocabulary."""
    return matches_any(key, SPECIAL_KEYS) or matches_any(key, vocabulary)


__all__ = [
    "LEAN_CANVAS_KEYS",
    "SPECIAL_KEYS",
    "find_collisions",
    "find_key",
    "is_protected",
    "keys_match",
    "matches_any",
    "normalize_key",
]
