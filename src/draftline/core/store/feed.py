"""
Change notification feed.

Delivers coarse "something changed for this owner" events. No diff travels
with an event; subscribers re-read whatever they cache. Registration is an
explicit call returning an ``unsubscribe`` callable, independent of any UI
lifecycle.

A failing handler is logged and skipped so one broken subscriber cannot stop
the others or fail the write that triggered the event.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from draftline.core.settings import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ChangeEvent:
    """Notification that ``owner_id``'s documents changed."""

    owner_id: str
    document_id: str | None = None
    reason: str = "changed"


ChangeHandler = Callable[[ChangeEvent], None]


class ChangeFeed:
    """Owner-scoped publish/subscribe registry."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[ChangeHandler]] = {}

    def subscribe(self, owner_id: str, handler: ChangeHandler) -> Callable[[], None]:
        """Register ``handler`` for ``owner_id`` and return its unsubscribe callable."""
        self._handlers.setdefault(owner_id, []).append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(owner_id, [])
            if handler in handlers:
                handlers.remove(handler)
            if not handlers:
                self._handlers.pop(owner_id, None)

        return unsubscribe

    def publish(self, event: ChangeEvent) -> None:
        """Deliver ``event`` to every handler registered for its owner."""
        for handler in list(self._handlers.get(event.owner_id, ())):
            try:
                handler(event)
            except Exception:
                logger.exception("change handler failed for owner %s", event.owner_id)

    def subscriber_count(self, owner_id: str) -> int:
        """Return how many handlers are registered for ``owner_id``."""
        return len(self._handlers.get(owner_id, ()))


__all__ = ["ChangeEvent", "ChangeFeed", "ChangeHandler"]
