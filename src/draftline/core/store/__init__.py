"""Storage backends and the change feed."""

from __future__ import annotations

from .base import SnapshotStore
from .feed import ChangeEvent, ChangeFeed
from .memory import MemoryStore
from .sqlite import SQLiteStore

__all__ = ["ChangeEvent", "ChangeFeed", "MemoryStore", "SQLiteStore", "SnapshotStore"]
