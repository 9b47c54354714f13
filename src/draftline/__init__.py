"""Draftline: document versioning and autosave engine.

Subpackages
-----------
- ``draftline.core``: snapshot store, version lifecycle, session heuristic,
  editor coordinator and the structured-field merge engine.
- ``draftline.api``: FastAPI service exposing the lifecycle operations.
- ``draftline.cli``: Typer command-line interface over a SQLite store.
"""

from __future__ import annotations

__all__ = ["__version__"]
__version__ = "0.3.0"
