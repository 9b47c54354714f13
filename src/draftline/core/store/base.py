"""
Snapshot store interface.

The lifecycle manager talks to storage only through :class:`SnapshotStore`.
Implementations provide row-level reads and writes; this base class owns the
transaction protocol shared by all of them:

- ``transaction()`` nests: only the outermost block begins and commits.
- Every mutator registers the document it touched.
- Before the outermost commit, each touched document is checked for the
  single-current invariant. A violation raises
  :class:`~draftline.core.errors.ConflictViolatesInvariant` and the whole
  block is rolled back, so the bad state is never written.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager

from draftline.core.contracts.document import Document
from draftline.core.contracts.snapshot import Snapshot
from draftline.core.errors import ConflictViolatesInvariant


class SnapshotStore(ABC):
    """Append-only snapshot table plus the mutable document table."""

    def __init__(self) -> None:
        self._depth = 0
        self._touched: set[str] = set()

    # ------------------------------ transactions ----------------------------

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """All-or-nothing block; nested calls join the outer transaction."""
        outermost = self._depth == 0
        if outermost:
            self._touched = set()
            self._begin()
        self._depth += 1
        try:
            yield
            if outermost:
                for document_id in sorted(self._touched):
                    self._verify_single_current(document_id)
        except BaseException:
            self._depth -= 1
            if outermost:
                self._rollback()
            raise
        self._depth -= 1
        if outermost:
            self._commit()

    def _touch(self, document_id: str) -> None:
        self._touched.add(document_id)

    def _verify_single_current(self, document_id: str) -> None:
        snaps = self.list_snapshots(document_id)
        if not snaps:
            return
        current = [s.version for s in snaps if s.is_current]
        if len(current) != 1:
            raise ConflictViolatesInvariant(
                f"document {document_id} would have {len(current)} current snapshots "
                f"(versions {current})"
            )

    @abstractmethod
    def _begin(self) -> None: ...

    @abstractmethod
    def _commit(self) -> None: ...

    @abstractmethod
    def _rollback(self) -> None: ...

    # ------------------------------- documents ------------------------------

    @abstractmethod
    def insert_document(self, document: Document) -> None: ...

    @abstractmethod
    def update_document(self, document: Document) -> None: ...

    @abstractmethod
    def delete_document(self, document_id: str) -> None:
        """Delete the document row and every snapshot it owns."""

    @abstractmethod
    def get_document(self, document_id: str) -> Document | None: ...

    @abstractmethod
    def list_documents(self, owner_id: str) -> list[Document]:
        """Return the owner's documents, most recently updated first."""

    # ------------------------------- snapshots ------------------------------

    @abstractmethod
    def insert_snapshot(self, snapshot: Snapshot) -> None: ...

    @abstractmethod
    def update_snapshot(self, snapshot: Snapshot) -> None: ...

    @abstractmethod
    def delete_snapshots(self, document_id: str, snapshot_ids: list[str]) -> None: ...

    @abstractmethod
    def get_snapshot(self, snapshot_id: str) -> Snapshot | None: ...

    @abstractmethod
    def list_snapshots(self, document_id: str) -> list[Snapshot]:
        """Return the document's snapshots ordered oldest to newest."""

    def current_snapshot(self, document_id: str) -> Snapshot | None:
        """Return the snapshot flagged current, if any."""
        for snap in self.list_snapshots(document_id):
            if snap.is_current:
                return snap
        return None

    def close(self) -> None:  # noqa: B027 - optional hook
        """Release backend resources."""


__all__ = ["SnapshotStore"]
