"""
Session autosave heuristic.

Decides whether an autosave folds into the current snapshot or opens a new
one. Keystroke-level saves inside one editing session collapse into a single
version; a lapsed session or automated output always gets a fresh one.

Decision order
--------------
1. No current snapshot           -> new snapshot.
2. Current snapshot is automated -> new snapshot (never overwrite it).
3. Idle longer than the timeout  -> new snapshot (session boundary).
4. Otherwise                     -> update the current snapshot in place.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from draftline.core.contracts.snapshot import Origin, Snapshot

DEFAULT_SESSION_TIMEOUT = timedelta(minutes=30)


class AutosaveAction(str, Enum):
    """Outcome of the heuristic."""

    CREATE = "create"
    UPDATE_IN_PLACE = "update_in_place"


@dataclass(frozen=True)
class AutosaveDecision:
    """Action plus a short machine-readable reason (for logs and API replies)."""

    action: AutosaveAction
    reason: str

    @property
    def creates_snapshot(self) -> bool:
        return self.action is AutosaveAction.CREATE


@dataclass(frozen=True)
class SessionPolicy:
    """Session-based autosave policy with a configurable idle timeout."""

    timeout: timedelta = DEFAULT_SESSION_TIMEOUT

    def decide(self, current: Snapshot | None, now: datetime) -> AutosaveDecision:
        if current is None:
            return AutosaveDecision(AutosaveAction.CREATE, "no_current_snapshot")
        if current.origin is Origin.AUTOMATED:
            return AutosaveDecision(AutosaveAction.CREATE, "automated_origin")
        if now - current.created_at > self.timeout:
            return AutosaveDecision(AutosaveAction.CREATE, "session_expired")
        return AutosaveDecision(AutosaveAction.UPDATE_IN_PLACE, "same_session")


__all__ = ["AutosaveAction", "AutosaveDecision", "DEFAULT_SESSION_TIMEOUT", "SessionPolicy"]
