"""Snapshot contracts: immutable version records.

A snapshot is written once with its payload, version number and provenance.
The only fields that change afterwards are ``is_current`` (flipped when a newer
snapshot takes over), ``base_version_id`` (re-linked by pruning) and, within an
editing session, ``payload`` (in-place autosave).
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from .document import new_id, utcnow


class VersionKind(str, Enum):
    """How a snapshot came to exist."""

    INITIAL = "initial"
    UPDATE = "update"
    RESTORE = "restore"


class Origin(str, Enum):
    """Who produced the snapshot content."""

    HUMAN = "human"
    AUTOMATED = "automated"


class SnapshotPayload(BaseModel):
    """Versioned content: a title and a content string (free text or JSON)."""

    title: str
    content: str = ""


class Snapshot(BaseModel):
    """Immutable version record of a document."""

    id: str = Field(default_factory=new_id)
    document_id: str
    version: int = Field(ge=1)
    payload: SnapshotPayload
    kind: VersionKind
    origin: Origin = Origin.HUMAN
    is_current: bool = False
    base_version_id: str | None = None
    created_at: datetime = Field(default_factory=utcnow)


__all__ = ["Origin", "Snapshot", "SnapshotPayload", "VersionKind"]
