"""
ASGI Entry Point for the Draftline API.

Loads `.env` before settings are read, then serves an app backed by the SQLite
database at ``DRAFTLINE_DB_PATH``.

Usage
-----
    $ python -m draftline.api.server
    $ uvicorn draftline.api.server:app --reload
"""

from pathlib import Path

import uvicorn
from dotenv import load_dotenv

load_dotenv(dotenv_path=Path(".env"))

from draftline.api.app import create_app  # noqa: E402
from draftline.core.settings import get_logger, load_settings  # noqa: E402
from draftline.core.store.sqlite import SQLiteStore  # noqa: E402
from draftline.core.versioning.lifecycle import VersionManager  # noqa: E402

logger = get_logger(__name__)

app = create_app(VersionManager(SQLiteStore(load_settings().db_path)))


def main() -> None:
    """Run the API server locally for development."""
    cfg = load_settings()
    logger.info("serving %s (env=%s)", cfg.db_path, cfg.environment)
    uvicorn.run(
        "draftline.api.server:app",
        host="0.0.0.0",
        port=8000,
        reload=cfg.is_dev,
        log_level=cfg.log_level.lower(),
    )


if __name__ == "__main__":
    main()
