"""
FastAPI Application Factory & Configuration.

This module builds the HTTP surface over a :class:`VersionManager`:
1.  **Middleware Setup**: CORS for browser front ends.
2.  **Exception Handling**: domain errors become structured JSON with a stable
    status code per error class.
3.  **Routing**: mounts the documents router and a health probe.
4.  **Lifecycle**: closes the store on shutdown.

The manager is injected (``create_app(manager)``) and kept on ``app.state``;
tests pass one backed by :class:`MemoryStore`.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from draftline import __version__
from draftline.api.routers import documents
from draftline.core.errors import (
    ConflictViolatesInvariant,
    DraftlineError,
    NotFound,
    PersistenceFailure,
    StructuredContentError,
)
from draftline.core.settings import get_logger, load_settings
from draftline.core.store.memory import MemoryStore
from draftline.core.versioning.lifecycle import VersionManager

logger = get_logger(__name__)

# Most specific first; DraftlineError itself falls through to 400.
_STATUS_BY_ERROR: tuple[tuple[type[DraftlineError], int, str], ...] = (
    (NotFound, 404, "Not Found"),
    (ConflictViolatesInvariant, 409, "Conflict"),
    (StructuredContentError, 422, "Invalid Structured Content"),
    (PersistenceFailure, 503, "Persistence Failure"),
)


def error_status(exc: DraftlineError) -> tuple[int, str]:
    """Return the HTTP status code and label for a domain error."""
    for cls, code, label in _STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return code, label
    return 400, "Bad Request"


def create_app(manager: VersionManager | None = None) -> FastAPI:
    """
    Construct and configure the Draftline FastAPI application.

    Parameters
    ----------
    manager:
        Lifecycle manager serving every request. Defaults to one over a fresh
        in-memory store.
    """
    if manager is None:
        manager = VersionManager(MemoryStore())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Draftline API starting (%s)", type(manager.store).__name__)
        yield
        manager.store.close()
        logger.info("Draftline API stopped")

    app = FastAPI(
        title="Draftline API",
        description="Document versioning and autosave",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.manager = manager

    # -----------------------------------------------------------------------
    # Middleware
    # -----------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -----------------------------------------------------------------------
    # Exception Handlers
    # -----------------------------------------------------------------------
    @app.exception_handler(DraftlineError)
    async def domain_error_handler(request: Request, exc: DraftlineError) -> JSONResponse:
        """Map engine errors to their HTTP status."""
        code, label = error_status(exc)
        if code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=code, content={"error": label, "detail": str(exc)})

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        """Map Python ValueErrors to HTTP 400 Bad Request."""
        return JSONResponse(
            status_code=400,
            content={"error": "Bad Request", "detail": str(exc)},
        )

    # -----------------------------------------------------------------------
    # Routes
    # -----------------------------------------------------------------------
    app.include_router(documents.router)

    @app.get("/health", tags=["System"])
    async def health_check() -> dict[str, str]:
        """Simple liveness probe."""
        return {
            "status": "ok",
            "environment": load_settings().environment,
            "version": __version__,
        }

    return app


__all__ = ["create_app", "error_status"]
