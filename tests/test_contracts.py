"""Tests for the document and snapshot contracts.

Scope
-----
- Metadata accepts the stored camelCase keys and the Python field names.
- Unknown metadata keys survive a `from_raw` / `to_raw` round trip.
- Snapshots reject version numbers below one.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from draftline.core.contracts.document import (
    LISTED_TYPES,
    ContentFormat,
    Document,
    DocumentMetadata,
    DocumentType,
)
from draftline.core.contracts.snapshot import Origin, Snapshot, SnapshotPayload, VersionKind


def test_metadata_reads_camel_case_and_keeps_unknown_keys() -> None:
    raw = {"contentFormat": "json", "projectId": "p-1", "color": "teal", "pinned": True}
    meta = DocumentMetadata.from_raw(raw)

    assert meta.content_format is ContentFormat.JSON
    assert meta.project_id == "p-1"
    assert meta.is_structured
    assert meta.extra == {"color": "teal", "pinned": True}
    assert meta.to_raw() == raw


def test_metadata_defaults_and_field_names() -> None:
    assert DocumentMetadata.from_raw(None).content_format is ContentFormat.MARKDOWN
    meta = DocumentMetadata(content_format=ContentFormat.HTML, tags=["a"])
    assert meta.to_raw() == {"contentFormat": "html", "tags": ["a"]}
    assert not meta.is_structured


def test_document_defaults() -> None:
    doc = Document(owner_id="u1", title="Notes")
    assert doc.id
    assert doc.last_version == 0
    assert doc.current_snapshot_id is None
    assert doc.document_type is DocumentType.USER_DOCUMENT
    assert doc.created_at.tzinfo is not None


def test_projects_are_not_listed_with_documents() -> None:
    assert DocumentType.PROJECT not in LISTED_TYPES
    assert DocumentType.LEAN_CANVAS in LISTED_TYPES


def test_snapshot_version_must_be_positive() -> None:
    payload = SnapshotPayload(title="t")
    snap = Snapshot(document_id="d", version=1, payload=payload, kind=VersionKind.INITIAL)
    assert snap.origin is Origin.HUMAN
    assert snap.is_current is False
    assert snap.payload.content == ""

    with pytest.raises(ValidationError):
        Snapshot(document_id="d", version=0, payload=payload, kind=VersionKind.UPDATE)
