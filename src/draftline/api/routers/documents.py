"""
API Routes for documents and their versions.

Endpoints
---------
- `POST /documents`: create a document with its initial snapshot.
- `GET /documents`: list an owner's documents (optionally by project).
- `GET /documents/{document_id}`: document plus current snapshot.
- `DELETE /documents/{document_id}`: delete (projects cascade).
- `POST /documents/{document_id}/duplicate`: copy into a new document.
- `PUT /documents/{document_id}/draft`: explicit save, always a new version.
- `POST /documents/{document_id}/autosave`: save under the session heuristic.
- `PATCH /documents/{document_id}/fields`: merge a widget report, then autosave.
- `GET /documents/{document_id}/versions`: history, newest first.
- `POST /documents/{document_id}/prune`: retention pass.
- `POST /versions/{snapshot_id}/restore`: append-only restore.

Domain errors propagate to the handlers registered in :mod:`draftline.api.app`.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response, status

from draftline.api.schemas import (
    AutosaveResponse,
    CreateDocumentRequest,
    DocumentView,
    DraftRequest,
    FieldsRequest,
    PruneResponse,
)
from draftline.core.contracts.document import Document
from draftline.core.contracts.snapshot import Snapshot
from draftline.core.errors import StructuredContentError
from draftline.core.structured import codec
from draftline.core.structured.merge import SectionUpdate, merge_fields
from draftline.core.versioning.lifecycle import VersionManager

router = APIRouter(tags=["Documents"])


def get_manager(request: Request) -> VersionManager:
    """Return the manager bound to the application."""
    manager: VersionManager = request.app.state.manager
    return manager


@router.post(
    "/documents",
    response_model=DocumentView,
    status_code=status.HTTP_201_CREATED,
    summary="Create a document",
)
async def create_document(
    body: CreateDocumentRequest, manager: VersionManager = Depends(get_manager)
) -> DocumentView:
    doc, snap = manager.create_document(
        body.owner_id, body.title, body.content, body.metadata, body.document_type
    )
    return DocumentView(document=doc, snapshot=snap)


@router.get("/documents", response_model=list[Document], summary="List documents")
async def list_documents(
    owner_id: str,
    project_id: str | None = None,
    manager: VersionManager = Depends(get_manager),
) -> list[Document]:
    return manager.list_documents(owner_id, project_id=project_id)


@router.get("/documents/{document_id}", response_model=DocumentView)
async def get_document(
    document_id: str, manager: VersionManager = Depends(get_manager)
) -> DocumentView:
    doc = manager.get_document(document_id)
    return DocumentView(document=doc, snapshot=manager.get_current_snapshot(document_id))


@router.delete("/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: str, manager: VersionManager = Depends(get_manager)
) -> Response:
    manager.delete_document(document_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/documents/{document_id}/duplicate",
    response_model=DocumentView,
    status_code=status.HTTP_201_CREATED,
)
async def duplicate_document(
    document_id: str, manager: VersionManager = Depends(get_manager)
) -> DocumentView:
    doc, snap = manager.duplicate_document(document_id)
    return DocumentView(document=doc, snapshot=snap)


@router.put(
    "/documents/{document_id}/draft",
    response_model=Snapshot,
    status_code=status.HTTP_201_CREATED,
    summary="Save a new version",
)
async def save_draft(
    document_id: str, body: DraftRequest, manager: VersionManager = Depends(get_manager)
) -> Snapshot:
    return manager.save_draft(document_id, body.title, body.content)


@router.post("/documents/{document_id}/autosave", response_model=AutosaveResponse)
async def autosave(
    document_id: str, body: DraftRequest, manager: VersionManager = Depends(get_manager)
) -> AutosaveResponse:
    snap, created = manager.autosave(document_id, body.title, body.content)
    return AutosaveResponse(snapshot=snap, created=created)


@router.patch("/documents/{document_id}/fields", response_model=AutosaveResponse)
async def merge_document_fields(
    document_id: str, body: FieldsRequest, manager: VersionManager = Depends(get_manager)
) -> AutosaveResponse:
    """
    Merge a widget's partial field map into the current JSON content.

    A merge that changes nothing (including an ambiguous one) returns the
    current snapshot without writing.
    """
    doc = manager.get_document(document_id)
    if not doc.metadata.is_structured:
        raise StructuredContentError(f"document {document_id} does not hold JSON content")
    current = manager.get_current_snapshot(document_id)
    fields = codec.loads(current.payload.content)
    update = SectionUpdate(body.fields) if body.section else body.fields
    merged = merge_fields(fields, update)
    if merged == fields:
        return AutosaveResponse(snapshot=current, created=False)
    snap, created = manager.autosave(document_id, current.payload.title, codec.dumps(merged))
    return AutosaveResponse(snapshot=snap, created=created)


@router.get("/documents/{document_id}/versions", response_model=list[Snapshot])
async def list_versions(
    document_id: str, manager: VersionManager = Depends(get_manager)
) -> list[Snapshot]:
    return manager.list_versions(document_id)


@router.post("/documents/{document_id}/prune", response_model=PruneResponse)
async def prune(
    document_id: str,
    keep: int | None = None,
    manager: VersionManager = Depends(get_manager),
) -> PruneResponse:
    return PruneResponse(deleted=manager.prune(document_id, keep))


@router.post(
    "/versions/{snapshot_id}/restore",
    response_model=Snapshot,
    status_code=status.HTTP_201_CREATED,
    summary="Restore a historical version",
)
async def restore_version(
    snapshot_id: str, manager: VersionManager = Depends(get_manager)
) -> Snapshot:
    return manager.restore_version(snapshot_id)


__all__ = ["get_manager", "router"]
