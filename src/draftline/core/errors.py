"""Error taxonomy for the versioning engine.

Raised errors share the :class:`DraftlineError` base so the API layer can map
them to HTTP statuses in one place. :class:`MergeAmbiguity` is the exception:
the merge engine never raises, it carries the ambiguity inside a ``Result``.
"""

from __future__ import annotations

from dataclasses import dataclass


class DraftlineError(Exception):
    """Base class for every error raised by the engine."""


class NotFound(DraftlineError):
    """A referenced document or snapshot does not exist."""

    def __init__(self, kind: str, ident: str) -> None:
        super().__init__(f"{kind} {ident} not found")
        self.kind = kind
        self.ident = ident


class ConflictViolatesInvariant(DraftlineError):
    """A pending write would leave a document with zero or several current snapshots."""


class PersistenceFailure(DraftlineError):
    """The backing store failed during a write; the operation may be retried."""


class StructuredContentError(DraftlineError):
    """Content declared as JSON is not a flat string map, or its keys collide."""


@dataclass(frozen=True)
class MergeAmbiguity:
    """An update key matched more than one key of the stored document."""

    key: str
    candidates: tuple[str, ...]

    def __str__(self) -> str:
        return f"key {self.key!r} matches {', '.join(map(repr, self.candidates))}"


__all__ = [
    "ConflictViolatesInvariant",
    "DraftlineError",
    "MergeAmbiguity",
    "NotFound",
    "PersistenceFailure",
    "StructuredContentError",
]
