"""Document contracts: the mutable shell that points at a current snapshot.

This module defines three Pydantic v2 models and two enums:

- `ContentFormat`   : how the snapshot ``content`` string is interpreted.
- `DocumentType`    : routing tag used by front ends (not by the engine).
- `DocumentMetadata`: typed known fields plus a residual ``extra`` map.
- `Document`        : identity, owner, title and the current-snapshot pointer.

Metadata wire format
--------------------
Stored metadata keeps the camelCase keys written by existing clients
(``contentFormat``, ``projectId``). Unknown keys are never dropped: they are
collected into ``extra`` on the way in and flattened back out by
:meth:`DocumentMetadata.to_raw`.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ContentFormat(str, Enum):
    """Interpretation of the ``content`` string of a snapshot payload."""

    MARKDOWN = "markdown"
    JSON = "json"
    HTML = "html"


class DocumentType(str, Enum):
    """Front-end routing tag for a document."""

    USER_DOCUMENT = "user_document"
    CANVAS = "canvas"
    LEAN_CANVAS = "lean_canvas"
    PROJECT = "project"
    JOURNAL_ENTRY = "journal_entry"
    FUTURE_PRESS_RELEASE = "future_press_release"
    SALES_PAGE = "sales_page"


#: Types listed alongside regular documents (projects are listed separately).
LISTED_TYPES: frozenset[DocumentType] = frozenset(
    t for t in DocumentType if t is not DocumentType.PROJECT
)


def utcnow() -> datetime:
    """Return an aware UTC timestamp."""
    return datetime.now(UTC)


def new_id() -> str:
    """Return a fresh opaque identifier."""
    return str(uuid.uuid4())


class DocumentMetadata(BaseModel):
    """Small metadata bag with typed known fields and a residual open map."""

    model_config = ConfigDict(populate_by_name=True)

    content_format: ContentFormat = Field(
        default=ContentFormat.MARKDOWN, alias="contentFormat"
    )
    project_id: str | None = Field(default=None, alias="projectId")
    tags: list[str] = Field(default_factory=list)
    category: str | None = None
    extra: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _collect_extra(cls, data: Any) -> Any:
        """Move unknown top-level keys into ``extra`` so they survive round trips."""
        if not isinstance(data, dict):
            return data
        known = {"contentFormat", "content_format", "projectId", "project_id"}
        known |= {"tags", "category", "extra"}
        residual = {k: v for k, v in data.items() if k not in known}
        if not residual:
            return data
        out = {k: v for k, v in data.items() if k in known}
        out["extra"] = {**residual, **dict(data.get("extra") or {})}
        return out

    @classmethod
    def from_raw(cls, raw: dict[str, Any] | None) -> DocumentMetadata:
        """Build metadata from a stored JSON object (``None`` means defaults)."""
        return cls.model_validate(raw or {})

    def to_raw(self) -> dict[str, Any]:
        """Flatten back to the stored camelCase object, residual keys included."""
        raw: dict[str, Any] = dict(self.extra)
        raw["contentFormat"] = self.content_format.value
        if self.project_id is not None:
            raw["projectId"] = self.project_id
        if self.tags:
            raw["tags"] = list(self.tags)
        if self.category is not None:
            raw["category"] = self.category
        return raw

    @property
    def is_structured(self) -> bool:
        """Return True when content is a flat JSON key/value document."""
        return self.content_format is ContentFormat.JSON


class Document(BaseModel):
    """Mutable document shell.

    ``last_version`` is the highest version number ever allocated for this
    document; it only grows, so numbers stay unique after pruning.
    """

    id: str = Field(default_factory=new_id)
    owner_id: str
    title: str
    document_type: DocumentType = DocumentType.USER_DOCUMENT
    current_snapshot_id: str | None = None
    last_version: int = Field(default=0, ge=0)
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


__all__ = [
    "ContentFormat",
    "Document",
    "DocumentMetadata",
    "DocumentType",
    "LISTED_TYPES",
    "new_id",
    "utcnow",
]
