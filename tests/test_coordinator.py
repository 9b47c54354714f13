"""
Tests for the editor session (dirty state, autosave timer, switching).

Timers run on a `ManualScheduler`, so "30 seconds later" is a call to
`advance(30)` and nothing sleeps. The manager uses a `FakeClock`.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest
from conftest import FakeClock

from draftline.core.contracts.snapshot import VersionKind
from draftline.core.editor.coordinator import (
    EditorSession,
    SaveStatus,
    SwitchChoice,
    filter_documents,
)
from draftline.core.editor.timers import ManualScheduler
from draftline.core.errors import PersistenceFailure
from draftline.core.structured.merge import single_field_update
from draftline.core.versioning.lifecycle import VersionManager


@pytest.fixture  # type: ignore[misc]
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture  # type: ignore[misc]
def session(manager: VersionManager, scheduler: ManualScheduler) -> EditorSession:
    return EditorSession(manager, "u1", scheduler=scheduler, autosave_delay=30)


def _fail_writes(manager: VersionManager, monkeypatch: Any) -> None:
    def boom(*args: Any, **kwargs: Any) -> Any:
        raise PersistenceFailure("database is locked")

    monkeypatch.setattr(manager, "save_draft", boom)
    monkeypatch.setattr(manager, "autosave", boom)


# --------------------------------------------------------------------------- #
# Dirty state
# --------------------------------------------------------------------------- #


def test_load_starts_idle(manager: VersionManager, session: EditorSession) -> None:
    doc, snap = manager.create_document("u1", "Plan", "hello")
    session.load(doc.id)

    assert session.status is SaveStatus.IDLE
    assert session.title == "Plan" and session.content == "hello"
    assert not session.has_unsaved_changes
    assert session.last_saved is None


def test_edit_marks_unsaved_and_back_to_baseline_clears(
    manager: VersionManager, session: EditorSession, scheduler: ManualScheduler
) -> None:
    doc, _ = manager.create_document("u1", "Plan", "hello")
    session.load(doc.id)

    assert session.edit(content="hello!") is SaveStatus.UNSAVED
    assert session.autosave_armed

    assert session.edit(content="hello") is SaveStatus.IDLE
    assert not session.autosave_armed
    assert scheduler.pending == 0


def test_edit_without_document_raises(session: EditorSession) -> None:
    with pytest.raises(RuntimeError):
        session.edit(content="x")


def test_explicit_save_creates_version(
    manager: VersionManager, session: EditorSession, clock: FakeClock
) -> None:
    doc, _ = manager.create_document("u1", "Plan", "a")
    session.load(doc.id)
    session.edit(content="b")

    snap = session.save()

    assert snap is not None and snap.version == 2
    assert session.status is SaveStatus.SAVED
    assert session.last_saved == clock.now
    assert not session.has_unsaved_changes
    assert not session.autosave_armed
    # Nothing to save now.
    assert session.save() is None


def test_editing_back_after_save_returns_to_saved(
    manager: VersionManager, session: EditorSession
) -> None:
    doc, _ = manager.create_document("u1", "Plan", "a")
    session.load(doc.id)
    session.edit(content="b")
    session.save()

    session.edit(content="c")
    assert session.status is SaveStatus.UNSAVED
    session.edit(content="b")
    assert session.status is SaveStatus.SAVED


def test_discard_after_save_returns_to_idle(
    manager: VersionManager, session: EditorSession
) -> None:
    doc, _ = manager.create_document("u1", "Plan", "a")
    session.load(doc.id)
    session.edit(content="b")
    session.save()
    session.edit(content="scratch")

    session.discard()

    assert session.status is SaveStatus.IDLE
    assert session.content == "b"
    assert not session.autosave_armed


# --------------------------------------------------------------------------- #
# Autosave timer
# --------------------------------------------------------------------------- #


def test_timer_debounces_and_autosaves_in_place(
    manager: VersionManager, session: EditorSession, scheduler: ManualScheduler
) -> None:
    doc, v1 = manager.create_document("u1", "Plan", "a")
    session.load(doc.id)

    session.edit(content="ab")
    scheduler.advance(20)
    session.edit(content="abc")  # re-arms
    assert scheduler.advance(20) == 0
    assert session.status is SaveStatus.UNSAVED

    assert scheduler.advance(10) == 1
    assert session.status is SaveStatus.SAVED
    current = manager.get_current_snapshot(doc.id)
    assert current.id == v1.id
    assert current.payload.content == "abc"


def test_timer_does_nothing_when_no_longer_unsaved(
    manager: VersionManager, session: EditorSession, scheduler: ManualScheduler
) -> None:
    doc, _ = manager.create_document("u1", "Plan", "a")
    session.load(doc.id)
    session.edit(content="b")
    session.save()
    versions_before = len(manager.list_versions(doc.id))

    scheduler.advance(60)

    assert len(manager.list_versions(doc.id)) == versions_before


def test_autosave_after_session_timeout_creates_version(
    manager: VersionManager, session: EditorSession, scheduler: ManualScheduler, clock: FakeClock
) -> None:
    doc, _ = manager.create_document("u1", "Plan", "a")
    session.load(doc.id)

    clock.advance(minutes=45)
    session.edit(content="after lunch")
    scheduler.advance(30)

    assert session.baseline is not None
    assert session.baseline.version == 2
    assert session.baseline.kind is VersionKind.UPDATE


def test_close_cancels_timer_without_saving(
    manager: VersionManager, session: EditorSession, scheduler: ManualScheduler
) -> None:
    doc, _ = manager.create_document("u1", "Plan", "a")
    session.load(doc.id)
    session.edit(content="unsaved work")

    session.close()

    assert scheduler.advance(60) == 0
    assert session.has_unsaved_changes
    assert manager.get_current_snapshot(doc.id).payload.content == "a"
    assert manager.feed.subscriber_count("u1") == 0


def test_default_scheduler_requires_running_loop(manager: VersionManager) -> None:
    with pytest.raises(RuntimeError, match="running event loop"):
        EditorSession(manager, "u1")
    assert manager.feed.subscriber_count("u1") == 0


def test_default_scheduler_autosaves_on_running_loop(manager: VersionManager) -> None:
    doc, v1 = manager.create_document("u1", "Plan", "a")

    async def main() -> EditorSession:
        session = EditorSession(manager, "u1", autosave_delay=0.01)
        session.load(doc.id)
        session.edit(content="ab")
        assert session.autosave_armed
        await asyncio.sleep(0.05)
        return session

    session = asyncio.run(main())
    assert session.status is SaveStatus.SAVED
    assert manager.get_current_snapshot(doc.id).id == v1.id
    assert manager.get_current_snapshot(doc.id).payload.content == "ab"


# --------------------------------------------------------------------------- #
# Failures
# --------------------------------------------------------------------------- #


def test_failed_save_keeps_draft_and_allows_retry(
    manager: VersionManager, session: EditorSession, monkeypatch: Any
) -> None:
    doc, _ = manager.create_document("u1", "Plan", "a")
    session.load(doc.id)
    session.edit(content="precious")

    with monkeypatch.context() as m:
        _fail_writes(manager, m)
        assert session.save() is None

    assert session.status is SaveStatus.ERROR
    assert session.error is not None and "locked" in session.error
    assert session.content == "precious"
    assert session.has_unsaved_changes

    snap = session.save()
    assert snap is not None and snap.payload.content == "precious"
    assert session.status is SaveStatus.SAVED
    assert session.error is None


def test_failed_timer_save_moves_to_error(
    manager: VersionManager, session: EditorSession, scheduler: ManualScheduler, monkeypatch: Any
) -> None:
    doc, _ = manager.create_document("u1", "Plan", "a")
    session.load(doc.id)
    session.edit(content="b")
    _fail_writes(manager, monkeypatch)

    scheduler.advance(30)

    assert session.status is SaveStatus.ERROR
    assert session.content == "b"
    # A further edit re-arms the timer.
    session.edit(content="bc")
    assert session.status is SaveStatus.UNSAVED
    assert session.autosave_armed


def test_unexpected_save_error_does_not_wedge_saving(
    manager: VersionManager, session: EditorSession, monkeypatch: Any
) -> None:
    doc, _ = manager.create_document("u1", "Plan", "a")
    session.load(doc.id)
    session.edit(content="precious")

    def crash(*args: Any, **kwargs: Any) -> Any:
        raise KeyError("snapshot row")

    with monkeypatch.context() as m:
        m.setattr(manager, "save_draft", crash)
        with pytest.raises(KeyError):
            session.save()

    assert session.status is SaveStatus.ERROR
    assert session.content == "precious"

    snap = session.save()
    assert snap is not None and snap.payload.content == "precious"
    assert session.status is SaveStatus.SAVED


# --------------------------------------------------------------------------- #
# Switching
# --------------------------------------------------------------------------- #


def test_switch_without_changes_is_immediate(
    manager: VersionManager, session: EditorSession
) -> None:
    a, _ = manager.create_document("u1", "A", "a")
    b, _ = manager.create_document("u1", "B", "b")
    session.load(a.id)

    outcome = session.request_switch(b.id)

    assert outcome.switched and not outcome.needs_decision
    assert session.document is not None and session.document.id == b.id
    assert session.content == "b"


def test_switch_to_same_document_is_no_op(
    manager: VersionManager, session: EditorSession
) -> None:
    a, _ = manager.create_document("u1", "A", "a")
    session.load(a.id)
    session.edit(content="draft")

    outcome = session.request_switch(a.id)

    assert not outcome.switched and not outcome.needs_decision
    assert session.content == "draft"


def test_switch_with_unsaved_changes_is_staged(
    manager: VersionManager, session: EditorSession
) -> None:
    a, _ = manager.create_document("u1", "A", "a")
    b, _ = manager.create_document("u1", "B", "b")
    session.load(a.id)
    session.edit(content="draft")

    outcome = session.request_switch(b.id)

    assert not outcome.switched
    assert outcome.pending_document_id == b.id
    assert session.document is not None and session.document.id == a.id
    assert session.content == "draft"


def test_resolve_cancel_stays(manager: VersionManager, session: EditorSession) -> None:
    a, _ = manager.create_document("u1", "A", "a")
    b, _ = manager.create_document("u1", "B", "b")
    session.load(a.id)
    session.edit(content="draft")
    session.request_switch(b.id)

    outcome = session.resolve_switch(SwitchChoice.CANCEL)

    assert not outcome.switched
    assert session.pending_document_id is None
    assert session.content == "draft"


def test_resolve_discard_switches_and_drops_edits(
    manager: VersionManager, session: EditorSession, scheduler: ManualScheduler
) -> None:
    a, _ = manager.create_document("u1", "A", "a")
    b, _ = manager.create_document("u1", "B", "b")
    session.load(a.id)
    session.edit(content="draft")
    session.request_switch(b.id)

    outcome = session.resolve_switch(SwitchChoice.DISCARD)

    assert outcome.switched
    assert session.document is not None and session.document.id == b.id
    assert manager.get_current_snapshot(a.id).payload.content == "a"
    assert scheduler.advance(60) == 0


def test_resolve_save_and_switch(manager: VersionManager, session: EditorSession) -> None:
    a, _ = manager.create_document("u1", "A", "a")
    b, _ = manager.create_document("u1", "B", "b")
    session.load(a.id)
    session.edit(content="draft")
    session.request_switch(b.id)

    outcome = session.resolve_switch(SwitchChoice.SAVE_AND_SWITCH)

    assert outcome.switched
    assert session.document is not None and session.document.id == b.id
    assert manager.get_current_snapshot(a.id).payload.content == "draft"


def test_save_and_switch_failure_stays_in_error(
    manager: VersionManager, session: EditorSession, monkeypatch: Any
) -> None:
    a, _ = manager.create_document("u1", "A", "a")
    b, _ = manager.create_document("u1", "B", "b")
    session.load(a.id)
    session.edit(content="draft")
    session.request_switch(b.id)
    _fail_writes(manager, monkeypatch)

    outcome = session.resolve_switch(SwitchChoice.SAVE_AND_SWITCH)

    assert not outcome.switched
    assert outcome.pending_document_id == b.id
    assert outcome.error is not None
    assert session.status is SaveStatus.ERROR
    assert session.document is not None and session.document.id == a.id
    assert session.content == "draft"
    assert session.pending_document_id == b.id


# --------------------------------------------------------------------------- #
# Structured fields and the document list
# --------------------------------------------------------------------------- #


def test_edit_fields_merges_into_draft(manager: VersionManager, session: EditorSession) -> None:
    content = json.dumps({"title": "Acme", "problem": "", "Pricing": "Free"})
    doc, _ = manager.create_document("u1", "Acme", content, {"contentFormat": "json"})
    session.load(doc.id)

    status = session.edit_fields(single_field_update("PROBLEM", "No budget"))

    assert status is SaveStatus.UNSAVED
    assert json.loads(session.content) == {
        "title": "Acme",
        "problem": "No budget",
        "Pricing": "Free",
    }


def test_document_list_refreshes_on_change_events(
    manager: VersionManager, session: EditorSession
) -> None:
    assert session.documents == []
    a, _ = manager.create_document("u1", "Alpha", "first")
    assert [d.id for d in session.documents] == [a.id]

    session.load(a.id)
    session.edit(content="local draft")
    manager.save_draft(a.id, "Alpha", "written elsewhere")

    assert session.documents[0].title == "Alpha"
    assert session.content == "local draft"


def test_filter_documents(manager: VersionManager, session: EditorSession, clock: FakeClock) -> None:
    a, _ = manager.create_document("u1", "Roadmap", "quarterly goals")
    clock.advance(minutes=1)
    b, _ = manager.create_document("u1", "Retro", "what went well")

    assert [d.id for d in session.visible_documents()] == [b.id, a.id]
    assert [d.id for d in session.visible_documents(direction="asc")] == [a.id, b.id]
    assert [d.id for d in session.visible_documents("GOALS")] == [a.id]
    assert [d.id for d in filter_documents(session.documents, "retro")] == [b.id]
