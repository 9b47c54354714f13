"""Core package initializer for Draftline.

The engine is plain Python with no I/O outside the store implementations:
    from draftline.core.versioning.lifecycle import VersionManager
    from draftline.core.editor.coordinator import EditorSession
"""

from __future__ import annotations

__all__ = ["__doc__"]
