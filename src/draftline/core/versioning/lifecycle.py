"""
Version lifecycle manager.

:class:`VersionManager` creates, saves, restores and retires snapshots on top
of a :class:`~draftline.core.store.base.SnapshotStore`. It is constructed
explicitly with its collaborators (store, change feed, clock, session policy,
retention limit); there is no module-level instance.

Guarantees
----------
- **Single current snapshot.** Every transition runs inside one store
  transaction whose commit check rejects a document with zero or several
  current snapshots.
- **Monotonic versions.** New numbers come from ``Document.last_version + 1``;
  the counter only grows, so pruned numbers are never reused.
- **Append-only restore.** Restoring copies a historical payload into a new
  snapshot tagged ``restore``; history is never rewritten.
- **Non-blocking retention.** Pruning runs after the save has committed; its
  failures are logged and never fail the save.

Every mutation publishes a :class:`~draftline.core.store.feed.ChangeEvent` for
the document owner after commit.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

from draftline.core.contracts.document import (
    LISTED_TYPES,
    ContentFormat,
    Document,
    DocumentMetadata,
    DocumentType,
    utcnow,
)
from draftline.core.contracts.snapshot import Origin, Snapshot, SnapshotPayload, VersionKind
from draftline.core.errors import NotFound
from draftline.core.settings import get_logger, load_settings
from draftline.core.store.base import SnapshotStore
from draftline.core.store.feed import ChangeEvent, ChangeFeed
from draftline.core.structured import codec

from .retention import plan_prune
from .session import AutosaveDecision, SessionPolicy

logger = get_logger(__name__)

Clock = Callable[[], datetime]
MetadataInput = DocumentMetadata | dict[str, Any] | None


def _coerce_metadata(metadata: MetadataInput) -> DocumentMetadata:
    if isinstance(metadata, DocumentMetadata):
        return metadata.model_copy(deep=True)
    return DocumentMetadata.from_raw(metadata)


class VersionManager:
    """Snapshot lifecycle operations over an injected store."""

    def __init__(
        self,
        store: SnapshotStore,
        feed: ChangeFeed | None = None,
        *,
        clock: Clock = utcnow,
        policy: SessionPolicy | None = None,
        keep: int | None = None,
    ) -> None:
        cfg = load_settings()
        self.store = store
        self.feed = feed if feed is not None else ChangeFeed()
        self.clock = clock
        self.policy = policy if policy is not None else SessionPolicy(cfg.session_timeout)
        self.keep = keep if keep is not None else cfg.retention_keep

    # ------------------------------------------------------------------ reads

    def get_document(self, document_id: str) -> Document:
        """Return the document or raise :class:`NotFound`."""
        doc = self.store.get_document(document_id)
        if doc is None:
            raise NotFound("document", document_id)
        return doc

    def get_snapshot(self, snapshot_id: str) -> Snapshot:
        """Return the snapshot or raise :class:`NotFound`."""
        snap = self.store.get_snapshot(snapshot_id)
        if snap is None:
            raise NotFound("snapshot", snapshot_id)
        return snap

    def get_current_snapshot(self, document_id: str) -> Snapshot:
        """Return the document's current snapshot."""
        self.get_document(document_id)
        snap = self.store.current_snapshot(document_id)
        if snap is None:
            raise NotFound("current snapshot of document", document_id)
        return snap

    def list_versions(self, document_id: str) -> list[Snapshot]:
        """Return every snapshot of the document, newest first."""
        self.get_document(document_id)
        return list(reversed(self.store.list_snapshots(document_id)))

    def list_documents(
        self,
        owner_id: str,
        *,
        project_id: str | None = None,
        document_types: Iterable[DocumentType] | None = None,
    ) -> list[Document]:
        """Return the owner's documents, most recently updated first."""
        types = frozenset(document_types) if document_types is not None else LISTED_TYPES
        docs = [d for d in self.store.list_documents(owner_id) if d.document_type in types]
        if project_id is not None:
            docs = [d for d in docs if d.metadata.project_id == project_id]
        return docs

    def list_projects(self, owner_id: str) -> list[Document]:
        """Return the owner's project documents."""
        return self.list_documents(owner_id, document_types=[DocumentType.PROJECT])

    def list_unassigned_documents(self, owner_id: str) -> list[Document]:
        """Return the owner's plain documents that belong to no project."""
        docs = self.list_documents(owner_id, document_types=[DocumentType.USER_DOCUMENT])
        return [d for d in docs if d.metadata.project_id is None]

    # ---------------------------------------------------------------- creation

    def create_document(
        self,
        owner_id: str,
        title: str,
        content: str = "",
        metadata: MetadataInput = None,
        document_type: DocumentType = DocumentType.USER_DOCUMENT,
    ) -> tuple[Document, Snapshot]:
        """Create a document together with its ``initial`` snapshot (version 1)."""
        meta = _coerce_metadata(metadata)
        self._check_content(meta, content)
        now = self.clock()
        doc = Document(
            owner_id=owner_id,
            title=title,
            document_type=document_type,
            metadata=meta,
            last_version=1,
            created_at=now,
            updated_at=now,
        )
        snap = Snapshot(
            document_id=doc.id,
            version=1,
            payload=SnapshotPayload(title=title, content=content),
            kind=VersionKind.INITIAL,
            is_current=True,
            created_at=now,
        )
        doc.current_snapshot_id = snap.id
        with self.store.transaction():
            self.store.insert_document(doc)
            self.store.insert_snapshot(snap)
        logger.info("created document %s (v1) for owner %s", doc.id, owner_id)
        self._notify(doc, "created")
        return doc, snap

    def create_project(self, owner_id: str, title: str, content: str = "") -> Document:
        """Create a project document."""
        doc, _ = self.create_document(owner_id, title, content, document_type=DocumentType.PROJECT)
        return doc

    def duplicate_document(self, document_id: str) -> tuple[Document, Snapshot]:
        """Copy the current content and metadata into a new ``(Copy)`` document."""
        original = self.get_document(document_id)
        current = self.get_current_snapshot(document_id)
        return self.create_document(
            original.owner_id,
            f"{original.title} (Copy)",
            current.payload.content,
            original.metadata,
            original.document_type,
        )

    # ------------------------------------------------------------------ saving

    def save_draft(self, document_id: str, title: str, content: str) -> Snapshot:
        """Write a new ``update`` snapshot and make it current."""
        doc = self.get_document(document_id)
        self._check_content(doc.metadata, content)
        snap = self._append(
            doc, SnapshotPayload(title=title, content=content), VersionKind.UPDATE, Origin.HUMAN
        )
        self.prune_quietly(document_id)
        return snap

    def record_automated_edit(self, document_id: str, title: str, content: str) -> Snapshot:
        """Write a new snapshot produced by an automated process."""
        doc = self.get_document(document_id)
        self._check_content(doc.metadata, content)
        snap = self._append(
            doc, SnapshotPayload(title=title, content=content), VersionKind.UPDATE, Origin.AUTOMATED
        )
        self.prune_quietly(document_id)
        return snap

    def autosave(self, document_id: str, title: str, content: str) -> tuple[Snapshot, bool]:
        """Save under the session heuristic.

        Returns the resulting snapshot and whether a new one was created.
        """
        doc = self.get_document(document_id)
        self._check_content(doc.metadata, content)
        current = self.store.current_snapshot(document_id)
        decision: AutosaveDecision = self.policy.decide(current, self.clock())
        if decision.creates_snapshot or current is None:
            logger.debug("autosave %s: new snapshot (%s)", document_id, decision.reason)
            snap = self._append(
                doc,
                SnapshotPayload(title=title, content=content),
                VersionKind.UPDATE,
                Origin.HUMAN,
            )
            self.prune_quietly(document_id)
            return snap, True

        current.payload = SnapshotPayload(title=title, content=content)
        doc.title = title
        doc.updated_at = self.clock()
        with self.store.transaction():
            self.store.update_snapshot(current)
            self.store.update_document(doc)
        logger.debug("autosave %s: updated v%d in place", document_id, current.version)
        self._notify(doc, "autosaved")
        return current, False

    def restore_version(self, snapshot_id: str) -> Snapshot:
        """Copy a historical snapshot into a new current ``restore`` snapshot."""
        source = self.get_snapshot(snapshot_id)
        doc = self.get_document(source.document_id)
        self._check_content(doc.metadata, source.payload.content)
        snap = self._append(
            doc,
            source.payload.model_copy(),
            VersionKind.RESTORE,
            Origin.HUMAN,
            base_id=source.id,
        )
        self.prune_quietly(doc.id)
        return snap

    def _append(
        self,
        doc: Document,
        payload: SnapshotPayload,
        kind: VersionKind,
        origin: Origin,
        *,
        base_id: str | None = None,
    ) -> Snapshot:
        now = self.clock()
        with self.store.transaction():
            snaps = self.store.list_snapshots(doc.id)
            previous = next((s for s in snaps if s.is_current), None)
            highest = max((s.version for s in snaps), default=0)
            version = max(doc.last_version, highest) + 1

            for stale in snaps:
                if stale.is_current:
                    stale.is_current = False
                    self.store.update_snapshot(stale)

            snap = Snapshot(
                document_id=doc.id,
                version=version,
                payload=payload,
                kind=kind,
                origin=origin,
                is_current=True,
                base_version_id=base_id if base_id is not None else (
                    previous.id if previous else None
                ),
                created_at=now,
            )
            self.store.insert_snapshot(snap)

            doc.title = payload.title
            doc.current_snapshot_id = snap.id
            doc.last_version = version
            doc.updated_at = now
            self.store.update_document(doc)
        logger.info("document %s: v%d (%s, %s)", doc.id, version, kind.value, origin.value)
        self._notify(doc, kind.value)
        return snap

    # --------------------------------------------------------------- retention

    def prune(self, document_id: str, keep: int | None = None) -> list[str]:
        """Delete the oldest non-current snapshots beyond ``keep``.

        Returns the deleted snapshot ids.
        """
        doc = self.get_document(document_id)
        limit = keep if keep is not None else self.keep
        with self.store.transaction():
            plan = plan_prune(self.store.list_snapshots(document_id), limit)
            if plan.is_empty:
                return []
            for snap_id, base_id in plan.relinks.items():
                snap = self.store.get_snapshot(snap_id)
                if snap is not None:
                    snap.base_version_id = base_id
                    self.store.update_snapshot(snap)
            self.store.delete_snapshots(document_id, plan.delete_ids)
        logger.info("pruned %d old versions of document %s", len(plan.delete_ids), document_id)
        self._notify(doc, "pruned")
        return plan.delete_ids

    def prune_quietly(self, document_id: str) -> None:
        """Run :meth:`prune` as a post-step; failures are logged, never raised."""
        try:
            self.prune(document_id)
        except Exception:
            logger.exception("pruning failed for document %s", document_id)

    # ---------------------------------------------------------------- metadata

    def update_metadata(self, document_id: str, metadata: MetadataInput) -> Document:
        """Replace the document's metadata."""
        doc = self.get_document(document_id)
        doc.metadata = _coerce_metadata(metadata)
        if doc.metadata.is_structured:
            self._check_content(doc.metadata, self.get_current_snapshot(document_id).payload.content)
        return self._touch(doc, "metadata")

    def set_content_format(self, document_id: str, content_format: ContentFormat) -> Document:
        """Change how the document's content is interpreted."""
        meta = self.get_document(document_id).metadata
        meta.content_format = content_format
        return self.update_metadata(document_id, meta)

    def set_document_project(self, document_id: str, project_id: str | None) -> Document:
        """Assign the document to a project, or clear the assignment with ``None``."""
        doc = self.get_document(document_id)
        if project_id is not None:
            self.get_document(project_id)
        doc.metadata.project_id = project_id
        return self._touch(doc, "project")

    def update_document_type(self, document_id: str, document_type: DocumentType) -> Document:
        """Change the document's routing tag."""
        doc = self.get_document(document_id)
        doc.document_type = document_type
        return self._touch(doc, "type")

    def _touch(self, doc: Document, reason: str) -> Document:
        doc.updated_at = self.clock()
        self.store.update_document(doc)
        self._notify(doc, reason)
        return doc

    # ---------------------------------------------------------------- deletion

    def delete_document(self, document_id: str, *, cascade: bool = True) -> list[str]:
        """Delete a document and all of its snapshots.

        Deleting a project with ``cascade`` also deletes every document
        assigned to it. Returns the deleted document ids.
        """
        doc = self.get_document(document_id)
        doomed = [doc.id]
        if cascade and doc.document_type is DocumentType.PROJECT:
            members = self.list_documents(doc.owner_id, project_id=doc.id)
            doomed = [m.id for m in members] + doomed
        with self.store.transaction():
            for ident in doomed:
                self.store.delete_document(ident)
        logger.info("deleted %d document(s) for owner %s", len(doomed), doc.owner_id)
        self._notify(doc, "deleted")
        return doomed

    # ----------------------------------------------------------------- helpers

    @staticmethod
    def _check_content(metadata: DocumentMetadata, content: str) -> None:
        if metadata.is_structured:
            codec.validate(codec.loads(content))

    def _notify(self, doc: Document, reason: str) -> None:
        self.feed.publish(ChangeEvent(owner_id=doc.owner_id, document_id=doc.id, reason=reason))


__all__ = ["Clock", "VersionManager"]
