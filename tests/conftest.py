"""Shared fixtures: a controllable clock and managers over each store backend."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from draftline.core.settings import load_settings
from draftline.core.store.base import SnapshotStore
from draftline.core.store.feed import ChangeFeed
from draftline.core.store.memory import MemoryStore
from draftline.core.store.sqlite import SQLiteStore
from draftline.core.versioning.lifecycle import VersionManager


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)  # type: ignore[misc]
def _fresh_settings() -> Iterator[None]:
    """Drop cached settings so env tweaks in one test never leak into the next."""
    load_settings.cache_clear()
    yield
    load_settings.cache_clear()


@pytest.fixture  # type: ignore[misc]
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture  # type: ignore[misc]
def manager(clock: FakeClock) -> VersionManager:
    """Manager over a fresh in-memory store with retention 20."""
    return VersionManager(MemoryStore(), ChangeFeed(), clock=clock, keep=20)


@pytest.fixture(params=["memory", "sqlite"])  # type: ignore[misc]
def store(request: pytest.FixtureRequest, tmp_path: Path) -> Iterator[SnapshotStore]:
    """Each store backend in turn."""
    backend: SnapshotStore
    if request.param == "memory":
        backend = MemoryStore()
    else:
        backend = SQLiteStore(tmp_path / "draftline.db")
    yield backend
    backend.close()
