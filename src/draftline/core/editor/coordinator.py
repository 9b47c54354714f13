"""
Dirty-state and document-switch coordinator.

:class:`EditorSession` sits between an editor front end and the
:class:`~draftline.core.versioning.lifecycle.VersionManager`. It owns the
in-memory draft of the loaded document and the save status machine:

    idle ──edit──▶ unsaved ──save / timer──▶ saving ──ok──▶ saved
                      ▲                         │
                      └──────── edit ◀── error ◀┘ (failure)

Rules
-----
- The draft is *unsaved* iff its title or content differs from the snapshot
  it was loaded from (the baseline). Editing back to the baseline clears it.
- Every edit that leaves the draft unsaved re-arms the autosave timer
  (debounce). The timer fires an autosave only if the draft is still unsaved.
- Only one save is in flight at a time; a save requested while ``saving`` is
  ignored.
- A failed save keeps the draft untouched and moves to ``error``. Nothing the
  user typed is dropped except through an explicit discard.
- A discard restores the baseline and always lands in ``idle``.
- Switching away from unsaved work is never automatic. The target is staged
  and the caller resolves with discard, save-and-switch or cancel.
- Change events refresh the cached document list only; the draft always wins.
- ``close()`` cancels the timer and unsubscribes. It does not save.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Literal

from draftline.core.contracts.document import Document
from draftline.core.contracts.snapshot import Snapshot
from draftline.core.errors import DraftlineError
from draftline.core.settings import get_logger, load_settings
from draftline.core.store.feed import ChangeEvent
from draftline.core.structured import codec
from draftline.core.structured.merge import merge_fields
from draftline.core.versioning.lifecycle import VersionManager

from .timers import AsyncioScheduler, Scheduler, TimerHandle

logger = get_logger(__name__)

SortDirection = Literal["asc", "desc"]


class SaveStatus(str, Enum):
    """Save status shown next to the editor."""

    IDLE = "idle"
    UNSAVED = "unsaved"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"


class SwitchChoice(str, Enum):
    """Resolution of a staged switch away from unsaved work."""

    DISCARD = "discard"
    SAVE_AND_SWITCH = "save_and_switch"
    CANCEL = "cancel"


@dataclass(frozen=True)
class SwitchOutcome:
    """Result of a switch request or resolution."""

    switched: bool
    pending_document_id: str | None = None
    error: str | None = None

    @property
    def needs_decision(self) -> bool:
        return self.pending_document_id is not None


def filter_documents(
    documents: list[Document],
    query: str = "",
    direction: SortDirection = "desc",
    contents: Mapping[str, str] | None = None,
) -> list[Document]:
    """Search titles (and ``contents`` by document id) and sort by ``updated_at``."""
    needle = query.strip().lower()
    out = list(documents)
    if needle:
        texts = contents or {}
        out = [
            d
            for d in out
            if needle in d.title.lower() or needle in texts.get(d.id, "").lower()
        ]
    out.sort(key=lambda d: d.updated_at, reverse=direction == "desc")
    return out


class EditorSession:
    """Draft, save status and switch arbitration for one owner's editor."""

    def __init__(
        self,
        manager: VersionManager,
        owner_id: str,
        *,
        scheduler: Scheduler | None = None,
        autosave_delay: float | None = None,
    ) -> None:
        self.manager = manager
        self.owner_id = owner_id
        # Without an explicit scheduler this must be built inside a running loop.
        self.scheduler: Scheduler = scheduler if scheduler is not None else AsyncioScheduler()
        self.autosave_delay = (
            autosave_delay
            if autosave_delay is not None
            else load_settings().autosave_delay_seconds
        )

        self.document: Document | None = None
        self.baseline: Snapshot | None = None
        self.title = ""
        self.content = ""
        self.status = SaveStatus.IDLE
        self.last_saved: datetime | None = None
        self.error: str | None = None
        self.pending_document_id: str | None = None
        self.documents: list[Document] = []

        self._timer: TimerHandle | None = None
        self._unsubscribe: Callable[[], None] | None = manager.feed.subscribe(
            owner_id, self._on_change
        )
        self.refresh_documents()

    # ------------------------------------------------------------------ state

    @property
    def has_unsaved_changes(self) -> bool:
        if self.baseline is None:
            return False
        return (
            self.title != self.baseline.payload.title
            or self.content != self.baseline.payload.content
        )

    @property
    def autosave_armed(self) -> bool:
        return self._timer is not None

    def _refresh_status(self) -> None:
        if self.status is SaveStatus.SAVING:
            return
        if self.has_unsaved_changes:
            self.status = SaveStatus.UNSAVED
        else:
            self.status = SaveStatus.SAVED if self.last_saved else SaveStatus.IDLE

    # ---------------------------------------------------------------- loading

    def load(self, document_id: str) -> None:
        """Load a document's current snapshot into the draft (no unsaved check)."""
        doc = self.manager.get_document(document_id)
        snap = self.manager.get_current_snapshot(document_id)
        self._cancel_timer()
        self.document = doc
        self.baseline = snap
        self.title = snap.payload.title
        self.content = snap.payload.content
        self.status = SaveStatus.IDLE
        self.last_saved = None
        self.error = None
        self.pending_document_id = None

    def refresh_documents(self) -> list[Document]:
        """Re-read the owner's document list."""
        self.documents = self.manager.list_documents(self.owner_id)
        return self.documents

    def visible_documents(self, query: str = "", direction: SortDirection = "desc") -> list[Document]:
        """Return the cached list filtered by ``query`` and sorted by update time."""
        contents: dict[str, str] = {}
        if query.strip():
            for doc in self.documents:
                snap = self.manager.store.current_snapshot(doc.id)
                contents[doc.id] = snap.payload.content if snap else ""
        return filter_documents(self.documents, query, direction, contents)

    def _on_change(self, event: ChangeEvent) -> None:
        self.refresh_documents()

    # ---------------------------------------------------------------- editing

    def edit(self, *, title: str | None = None, content: str | None = None) -> SaveStatus:
        """Apply a keystroke-level change to the draft."""
        if self.document is None:
            raise RuntimeError("no document loaded")
        if title is not None:
            self.title = title
        if content is not None:
            self.content = content
        self._refresh_status()
        if self.status is SaveStatus.UNSAVED:
            self._arm_timer()
        else:
            self._cancel_timer()
        return self.status

    def edit_fields(self, update: Mapping[str, str]) -> SaveStatus:
        """Merge a section widget's partial map into a structured draft."""
        fields = codec.loads(self.content)
        merged = merge_fields(fields, update)
        if merged == fields:
            return self.status
        return self.edit(content=codec.dumps(merged))

    def discard(self) -> None:
        """Drop the draft and return to the loaded snapshot."""
        if self.baseline is None:
            return
        self._cancel_timer()
        self.title = self.baseline.payload.title
        self.content = self.baseline.payload.content
        self.error = None
        self.last_saved = None
        self.status = SaveStatus.IDLE

    # ----------------------------------------------------------------- saving

    def save(self) -> Snapshot | None:
        """Explicit save: write a new snapshot when the draft has changes."""
        return self._persist(autosave=False)

    def _persist(self, *, autosave: bool) -> Snapshot | None:
        if self.document is None or self.status is SaveStatus.SAVING:
            return None
        if not self.has_unsaved_changes:
            return None
        self._cancel_timer()
        self.status = SaveStatus.SAVING
        doc_id = self.document.id
        try:
            if autosave:
                snap, _ = self.manager.autosave(doc_id, self.title, self.content)
            else:
                snap = self.manager.save_draft(doc_id, self.title, self.content)
            doc = self.manager.get_document(doc_id)
        except DraftlineError as exc:
            logger.warning("save failed for document %s: %s", doc_id, exc)
            self.status = SaveStatus.ERROR
            self.error = str(exc)
            return None
        except Exception as exc:
            logger.exception("unexpected error saving document %s", doc_id)
            self.status = SaveStatus.ERROR
            self.error = str(exc) or type(exc).__name__
            raise

        self.document = doc
        self.baseline = snap
        self.last_saved = self.manager.clock()
        self.error = None
        self.status = SaveStatus.SAVED
        self._refresh_status()
        return snap

    def _arm_timer(self) -> None:
        self._cancel_timer()
        self._timer = self.scheduler.call_later(self.autosave_delay, self._on_timer)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        if self.status is SaveStatus.UNSAVED:
            self._persist(autosave=True)

    # -------------------------------------------------------------- switching

    def request_switch(self, document_id: str) -> SwitchOutcome:
        """Switch to ``document_id`` unless that would drop unsaved work."""
        if self.document is not None and self.document.id == document_id:
            latest = self.manager.get_document(document_id)
            if self.baseline is not None and latest.current_snapshot_id == self.baseline.id:
                return SwitchOutcome(switched=False)
        if self.has_unsaved_changes:
            self.pending_document_id = document_id
            return SwitchOutcome(switched=False, pending_document_id=document_id)
        self.load(document_id)
        return SwitchOutcome(switched=True)

    def resolve_switch(self, choice: SwitchChoice) -> SwitchOutcome:
        """Resolve a staged switch."""
        target = self.pending_document_id
        if target is None:
            return SwitchOutcome(switched=False)
        if choice is SwitchChoice.CANCEL:
            self.pending_document_id = None
            return SwitchOutcome(switched=False)
        if choice is SwitchChoice.SAVE_AND_SWITCH:
            self.save()
            if self.status is SaveStatus.ERROR:
                return SwitchOutcome(switched=False, pending_document_id=target, error=self.error)
        else:
            logger.info("discarding unsaved edits to document %s", self.document and self.document.id)
            self.discard()
        self.load(target)
        return SwitchOutcome(switched=True)

    # -------------------------------------------------------------- lifecycle

    def close(self) -> None:
        """Cancel pending autosave and stop listening for change events."""
        self._cancel_timer()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None


__all__ = [
    "EditorSession",
    "SaveStatus",
    "SortDirection",
    "SwitchChoice",
    "SwitchOutcome",
    "filter_documents",
]
