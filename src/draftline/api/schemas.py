"""
Request and response bodies for the HTTP API.

Domain models (:class:`Document`, :class:`Snapshot`) are returned as-is; the
models here only wrap them or describe inputs.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from draftline.core.contracts.document import Document, DocumentType
from draftline.core.contracts.snapshot import Snapshot


class CreateDocumentRequest(BaseModel):
    """Body of ``POST /documents``."""

    owner_id: str = Field(..., min_length=1)
    title: str
    content: str = ""
    metadata: dict[str, Any] | None = None
    document_type: DocumentType = DocumentType.USER_DOCUMENT


class DraftRequest(BaseModel):
    """Title and content of a save or autosave."""

    title: str
    content: str = ""


class FieldsRequest(BaseModel):
    """Partial field map reported by a structured-document widget.

    ``section=True`` marks the report of a widget that owns a single section;
    otherwise the map is treated as a full card list.
    """

    fields: dict[str, str]
    section: bool = False


class DocumentView(BaseModel):
    """A document together with its current snapshot."""

    document: Document
    snapshot: Snapshot


class AutosaveResponse(BaseModel):
    """Outcome of a heuristic save."""

    snapshot: Snapshot
    created: bool


class PruneResponse(BaseModel):
    """Snapshot ids removed by a prune."""

    deleted: list[str]


__all__ = [
    "AutosaveResponse",
    "CreateDocumentRequest",
    "DocumentView",
    "DraftRequest",
    "FieldsRequest",
    "PruneResponse",
]
