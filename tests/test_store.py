"""Tests for the snapshot store backends (memory and SQLite).

Every test runs against both backends through the parametrized `store`
fixture. Covered:
- Records round-trip, including metadata residual keys.
- Snapshots list oldest to newest; the current one is found.
- The commit-time check rejects zero or several current snapshots and rolls
  the whole transaction back.
- Nested transactions join the outer one.
- Deleting a document removes its snapshots.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from draftline.core.contracts.document import Document, DocumentMetadata
from draftline.core.contracts.snapshot import Snapshot, SnapshotPayload, VersionKind
from draftline.core.errors import ConflictViolatesInvariant, PersistenceFailure
from draftline.core.store.base import SnapshotStore
from draftline.core.store.sqlite import SQLiteStore


def _doc(owner: str = "u1", title: str = "Doc") -> Document:
    return Document(
        owner_id=owner,
        title=title,
        metadata=DocumentMetadata.from_raw({"contentFormat": "json", "color": "red"}),
    )


def _snap(doc: Document, version: int, *, current: bool) -> Snapshot:
    return Snapshot(
        document_id=doc.id,
        version=version,
        payload=SnapshotPayload(title=doc.title, content=f"v{version}"),
        kind=VersionKind.INITIAL if version == 1 else VersionKind.UPDATE,
        is_current=current,
    )


def _seed(store: SnapshotStore) -> tuple[Document, Snapshot]:
    doc = _doc()
    snap = _snap(doc, 1, current=True)
    doc.current_snapshot_id = snap.id
    doc.last_version = 1
    with store.transaction():
        store.insert_document(doc)
        store.insert_snapshot(snap)
    return doc, snap


def test_round_trip(store: SnapshotStore) -> None:
    doc, snap = _seed(store)

    loaded = store.get_document(doc.id)
    assert loaded is not None
    assert loaded.title == "Doc"
    assert loaded.current_snapshot_id == snap.id
    assert loaded.metadata.is_structured
    assert loaded.metadata.extra == {"color": "red"}
    assert loaded.created_at == doc.created_at

    got = store.get_snapshot(snap.id)
    assert got == snap
    assert store.current_snapshot(doc.id) == snap
    assert store.get_document("missing") is None
    assert store.get_snapshot("missing") is None


def test_list_snapshots_oldest_first(store: SnapshotStore) -> None:
    doc, v1 = _seed(store)
    v2 = _snap(doc, 2, current=True)
    with store.transaction():
        v1.is_current = False
        store.update_snapshot(v1)
        store.insert_snapshot(v2)

    assert [s.version for s in store.list_snapshots(doc.id)] == [1, 2]
    current = store.current_snapshot(doc.id)
    assert current is not None and current.id == v2.id


def test_two_current_snapshots_rejected_and_rolled_back(store: SnapshotStore) -> None:
    doc, v1 = _seed(store)
    with pytest.raises(ConflictViolatesInvariant):
        with store.transaction():
            store.insert_snapshot(_snap(doc, 2, current=True))

    assert [s.version for s in store.list_snapshots(doc.id)] == [1]


def test_zero_current_snapshots_rejected(store: SnapshotStore) -> None:
    doc, v1 = _seed(store)
    v1.is_current = False
    with pytest.raises(ConflictViolatesInvariant):
        store.update_snapshot(v1)

    current = store.current_snapshot(doc.id)
    assert current is not None and current.id == v1.id


def test_failure_inside_block_rolls_back_everything(store: SnapshotStore) -> None:
    doc, v1 = _seed(store)
    with pytest.raises(RuntimeError):
        with store.transaction():
            doc.title = "Renamed"
            store.update_document(doc)
            raise RuntimeError("boom")

    loaded = store.get_document(doc.id)
    assert loaded is not None and loaded.title == "Doc"


def test_nested_transactions_join_outer(store: SnapshotStore) -> None:
    doc, v1 = _seed(store)
    v2 = _snap(doc, 2, current=True)
    with store.transaction():
        with store.transaction():
            # Two currents inside the inner block; only the outer commit checks.
            store.insert_snapshot(v2)
        v1.is_current = False
        store.update_snapshot(v1)

    assert [s.is_current for s in store.list_snapshots(doc.id)] == [False, True]


def test_duplicate_version_rejected(store: SnapshotStore) -> None:
    doc, v1 = _seed(store)
    dup = _snap(doc, 1, current=False)
    with pytest.raises((ValueError, PersistenceFailure)):
        store.insert_snapshot(dup)
    assert len(store.list_snapshots(doc.id)) == 1


def test_delete_snapshots_and_document(store: SnapshotStore) -> None:
    doc, v1 = _seed(store)
    v2 = _snap(doc, 2, current=True)
    with store.transaction():
        v1.is_current = False
        store.update_snapshot(v1)
        store.insert_snapshot(v2)

    store.delete_snapshots(doc.id, [v1.id])
    assert [s.id for s in store.list_snapshots(doc.id)] == [v2.id]

    store.delete_document(doc.id)
    assert store.get_document(doc.id) is None
    assert store.list_snapshots(doc.id) == []


def test_list_documents_by_owner(store: SnapshotStore) -> None:
    a = _doc("alice", "A")
    b = _doc("bob", "B")
    store.insert_document(a)
    store.insert_document(b)

    assert [d.id for d in store.list_documents("alice")] == [a.id]
    assert store.list_documents("carol") == []


def test_sqlite_persists_across_connections(tmp_path: Path) -> None:
    path = tmp_path / "db.sqlite"
    first = SQLiteStore(path)
    doc, snap = _seed(first)
    first.close()

    second = SQLiteStore(path)
    try:
        current = second.current_snapshot(doc.id)
        assert current is not None and current.payload.content == "v1"
    finally:
        second.close()
