"""
Retention planning for snapshot history.

:func:`plan_prune` is pure: given a document's snapshots it returns which ones
to delete and which surviving snapshots need their ``base_version_id``
re-pointed. The lifecycle manager applies the plan inside one transaction,
re-links first and deletes second, so no snapshot ever references a missing
base.

Rules
-----
- ``count <= keep``: nothing to do.
- Otherwise delete the oldest ``count - keep`` *non-current* snapshots.
- Survivors pointing at a deleted snapshot are re-pointed to the oldest
  survivor; the oldest survivor itself gets ``None`` instead of a self-link.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from draftline.core.contracts.snapshot import Snapshot

DEFAULT_KEEP = 20


@dataclass(frozen=True)
class PrunePlan:
    """Deletions and base re-links computed for one document."""

    delete_ids: list[str] = field(default_factory=list)
    relinks: dict[str, str | None] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.delete_ids


def plan_prune(snapshots: list[Snapshot], keep: int = DEFAULT_KEEP) -> PrunePlan:
    """Compute the prune plan for ``snapshots`` (any order)."""
    if keep < 1:
        raise ValueError("keep must be at least 1")
    ordered = sorted(snapshots, key=lambda s: s.version)
    if len(ordered) <= keep:
        return PrunePlan()

    excess = len(ordered) - keep
    doomed = [s.id for s in ordered if not s.is_current][:excess]
    if not doomed:
        return PrunePlan()

    doomed_set = set(doomed)
    survivors = [s for s in ordered if s.id not in doomed_set]
    oldest = survivors[0]

    relinks: dict[str, str | None] = {}
    for snap in survivors:
        if snap.base_version_id in doomed_set:
            relinks[snap.id] = None if snap.id == oldest.id else oldest.id
    return PrunePlan(delete_ids=doomed, relinks=relinks)


__all__ = ["DEFAULT_KEEP", "PrunePlan", "plan_prune"]
