"""SQLite-backed snapshot store.

Schema
------
``documents``  one row per document; ``metadata`` is a JSON object.
``snapshots``  one row per version; ``(document_id, version)`` is unique.

Timestamps are stored as ISO-8601 strings. The connection runs in autocommit
mode and the base class drives explicit ``BEGIN``/``COMMIT``/``ROLLBACK``, so a
lifecycle operation spanning several statements lands atomically. Backend
errors surface as :class:`~draftline.core.errors.PersistenceFailure`.
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from draftline.core.contracts.document import Document, DocumentMetadata, DocumentType
from draftline.core.contracts.snapshot import Origin, Snapshot, SnapshotPayload, VersionKind
from draftline.core.errors import PersistenceFailure

from .base import SnapshotStore

_SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    title TEXT NOT NULL,
    document_type TEXT NOT NULL,
    current_snapshot_id TEXT,
    last_version INTEGER NOT NULL DEFAULT 0,
    metadata TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_documents_owner ON documents(owner_id);

CREATE TABLE IF NOT EXISTS snapshots (
    id TEXT PRIMARY KEY,
    document_id TEXT NOT NULL REFERENCES documents(id),
    version INTEGER NOT NULL,
    title TEXT NOT NULL,
    content TEXT NOT NULL,
    kind TEXT NOT NULL,
    origin TEXT NOT NULL,
    is_current INTEGER NOT NULL DEFAULT 0,
    base_version_id TEXT,
    created_at TEXT NOT NULL,
    UNIQUE (document_id, version)
);
CREATE INDEX IF NOT EXISTS idx_snapshots_document ON snapshots(document_id);
"""


class SQLiteStore(SnapshotStore):
    """File-backed :class:`SnapshotStore` (``":memory:"`` works for tests)."""

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self.path = str(path)
        self.conn = sqlite3.connect(self.path, isolation_level=None, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        with self._errors():
            self.conn.executescript(_SCHEMA)

    @contextmanager
    def _errors(self) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"sqlite: {exc}") from exc

    def _begin(self) -> None:
        with self._errors():
            self.conn.execute("BEGIN IMMEDIATE")

    def _commit(self) -> None:
        try:
            self.conn.execute("COMMIT")
        except sqlite3.Error as exc:
            self._rollback()
            raise PersistenceFailure(f"sqlite commit failed: {exc}") from exc

    def _rollback(self) -> None:
        if self.conn.in_transaction:
            self.conn.execute("ROLLBACK")

    def close(self) -> None:
        self.conn.close()

    # ------------------------------- documents ------------------------------

    def insert_document(self, document: Document) -> None:
        with self.transaction(), self._errors():
            self.conn.execute(
                "INSERT INTO documents (id, owner_id, title, document_type, current_snapshot_id,"
                " last_version, metadata, created_at, updated_at)"
                " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                self._document_row(document),
            )
            self._touch(document.id)

    def update_document(self, document: Document) -> None:
        with self.transaction(), self._errors():
            row = self._document_row(document)
            cur = self.conn.execute(
                "UPDATE documents SET owner_id = ?, title = ?, document_type = ?,"
                " current_snapshot_id = ?, last_version = ?, metadata = ?, created_at = ?,"
                " updated_at = ? WHERE id = ?",
                (*row[1:], row[0]),
            )
            if cur.rowcount == 0:
                raise KeyError(document.id)
            self._touch(document.id)

    def delete_document(self, document_id: str) -> None:
        with self.transaction(), self._errors():
            self.conn.execute("DELETE FROM snapshots WHERE document_id = ?", (document_id,))
            self.conn.execute("DELETE FROM documents WHERE id = ?", (document_id,))

    def get_document(self, document_id: str) -> Document | None:
        with self._errors():
            row = self.conn.execute(
                "SELECT * FROM documents WHERE id = ?", (document_id,)
            ).fetchone()
        return self._to_document(row) if row else None

    def list_documents(self, owner_id: str) -> list[Document]:
        with self._errors():
            rows = self.conn.execute(
                "SELECT * FROM documents WHERE owner_id = ? ORDER BY updated_at DESC",
                (owner_id,),
            ).fetchall()
        return [self._to_document(r) for r in rows]

    # ------------------------------- snapshots ------------------------------

    def insert_snapshot(self, snapshot: Snapshot) -> None:
        with self.transaction(), self._errors():
            self.conn.execute(
                "INSERT INTO snapshots (id, document_id, version, title, content, kind, origin,"
                " is_current, base_version_id, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                self._snapshot_row(snapshot),
            )
            self._touch(snapshot.document_id)

    def update_snapshot(self, snapshot: Snapshot) -> None:
        with self.transaction(), self._errors():
            row = self._snapshot_row(snapshot)
            cur = self.conn.execute(
                "UPDATE snapshots SET document_id = ?, version = ?, title = ?, content = ?,"
                " kind = ?, origin = ?, is_current = ?, base_version_id = ?, created_at = ?"
                " WHERE id = ?",
                (*row[1:], row[0]),
            )
            if cur.rowcount == 0:
                raise KeyError(snapshot.id)
            self._touch(snapshot.document_id)

    def delete_snapshots(self, document_id: str, snapshot_ids: list[str]) -> None:
        if not snapshot_ids:
            return
        marks = ", ".join("?" for _ in snapshot_ids)
        with self.transaction(), self._errors():
            self.conn.execute(
                f"DELETE FROM snapshots WHERE document_id = ? AND id IN ({marks})",
                (document_id, *snapshot_ids),
            )
            self._touch(document_id)

    def get_snapshot(self, snapshot_id: str) -> Snapshot | None:
        with self._errors():
            row = self.conn.execute(
                "SELECT * FROM snapshots WHERE id = ?", (snapshot_id,)
            ).fetchone()
        return self._to_snapshot(row) if row else None

    def list_snapshots(self, document_id: str) -> list[Snapshot]:
        with self._errors():
            rows = self.conn.execute(
                "SELECT * FROM snapshots WHERE document_id = ? ORDER BY version ASC",
                (document_id,),
            ).fetchall()
        return [self._to_snapshot(r) for r in rows]

    # ------------------------------- row mapping ----------------------------

    @staticmethod
    def _document_row(doc: Document) -> tuple[object, ...]:
        return (
            doc.id,
            doc.owner_id,
            doc.title,
            doc.document_type.value,
            doc.current_snapshot_id,
            doc.last_version,
            json.dumps(doc.metadata.to_raw(), ensure_ascii=False),
            doc.created_at.isoformat(),
            doc.updated_at.isoformat(),
        )

    @staticmethod
    def _to_document(row: sqlite3.Row) -> Document:
        return Document(
            id=row["id"],
            owner_id=row["owner_id"],
            title=row["title"],
            document_type=DocumentType(row["document_type"]),
            current_snapshot_id=row["current_snapshot_id"],
            last_version=row["last_version"],
            metadata=DocumentMetadata.from_raw(json.loads(row["metadata"])),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    @staticmethod
    def _snapshot_row(snap: Snapshot) -> tuple[object, ...]:
        return (
            snap.id,
            snap.document_id,
            snap.version,
            snap.payload.title,
            snap.payload.content,
            snap.kind.value,
            snap.origin.value,
            int(snap.is_current),
            snap.base_version_id,
            snap.created_at.isoformat(),
        )

    @staticmethod
    def _to_snapshot(row: sqlite3.Row) -> Snapshot:
        return Snapshot(
            id=row["id"],
            document_id=row["document_id"],
            version=row["version"],
            payload=SnapshotPayload(title=row["title"], content=row["content"]),
            kind=VersionKind(row["kind"]),
            origin=Origin(row["origin"]),
            is_current=bool(row["is_current"]),
            base_version_id=row["base_version_id"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )


__all__ = ["SQLiteStore"]
