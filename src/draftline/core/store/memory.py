"""
In-memory snapshot store.

Keeps documents and snapshots in plain dicts. Records go in and come out as
deep copies so callers can never mutate stored state behind the store's back.

Transactions copy both tables on begin and swap the copy back on rollback;
that is cheap at the sizes an editor deals with and gives exact
all-or-nothing semantics.
"""

from __future__ import annotations

from draftline.core.contracts.document import Document
from draftline.core.contracts.snapshot import Snapshot

from .base import SnapshotStore


class MemoryStore(SnapshotStore):
    """Dictionary-backed :class:`SnapshotStore`."""

    def __init__(self) -> None:
        super().__init__()
        self._documents: dict[str, Document] = {}
        self._snapshots: dict[str, Snapshot] = {}
        self._saved: tuple[dict[str, Document], dict[str, Snapshot]] | None = None

    def _begin(self) -> None:
        self._saved = (dict(self._documents), dict(self._snapshots))

    def _commit(self) -> None:
        self._saved = None

    def _rollback(self) -> None:
        if self._saved is not None:
            self._documents, self._snapshots = self._saved
            self._saved = None

    # ------------------------------- documents ------------------------------

    def insert_document(self, document: Document) -> None:
        with self.transaction():
            if document.id in self._documents:
                raise ValueError(f"document {document.id} already exists")
            self._documents[document.id] = document.model_copy(deep=True)
            self._touch(document.id)

    def update_document(self, document: Document) -> None:
        with self.transaction():
            if document.id not in self._documents:
                raise KeyError(document.id)
            self._documents[document.id] = document.model_copy(deep=True)
            self._touch(document.id)

    def delete_document(self, document_id: str) -> None:
        with self.transaction():
            self._documents.pop(document_id, None)
            self._snapshots = {
                k: v for k, v in self._snapshots.items() if v.document_id != document_id
            }

    def get_document(self, document_id: str) -> Document | None:
        doc = self._documents.get(document_id)
        return doc.model_copy(deep=True) if doc else None

    def list_documents(self, owner_id: str) -> list[Document]:
        docs = [d for d in self._documents.values() if d.owner_id == owner_id]
        docs.sort(key=lambda d: d.updated_at, reverse=True)
        return [d.model_copy(deep=True) for d in docs]

    # ------------------------------- snapshots ------------------------------

    def insert_snapshot(self, snapshot: Snapshot) -> None:
        with self.transaction():
            if snapshot.id in self._snapshots:
                raise ValueError(f"snapshot {snapshot.id} already exists")
            for other in self._snapshots.values():
                if other.document_id == snapshot.document_id and other.version == snapshot.version:
                    raise ValueError(
                        f"version {snapshot.version} already exists for {snapshot.document_id}"
                    )
            self._snapshots[snapshot.id] = snapshot.model_copy(deep=True)
            self._touch(snapshot.document_id)

    def update_snapshot(self, snapshot: Snapshot) -> None:
        with self.transaction():
            if snapshot.id not in self._snapshots:
                raise KeyError(snapshot.id)
            self._snapshots[snapshot.id] = snapshot.model_copy(deep=True)
            self._touch(snapshot.document_id)

    def delete_snapshots(self, document_id: str, snapshot_ids: list[str]) -> None:
        with self.transaction():
            doomed = set(snapshot_ids)
            self._snapshots = {
                k: v
                for k, v in self._snapshots.items()
                if not (k in doomed and v.document_id == document_id)
            }
            self._touch(document_id)

    def get_snapshot(self, snapshot_id: str) -> Snapshot | None:
        snap = self._snapshots.get(snapshot_id)
        return snap.model_copy(deep=True) if snap else None

    def list_snapshots(self, document_id: str) -> list[Snapshot]:
        snaps = [s for s in self._snapshots.values() if s.document_id == document_id]
        snaps.sort(key=lambda s: s.version)
        return [s.model_copy(deep=True) for s in snaps]


__all__ = ["MemoryStore"]
