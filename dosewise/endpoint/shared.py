"""
Process-wide resources for the dashboard server.

The database handle and the Jinja2 environment are created lazily on first
use and released by the FastAPI lifespan handler.
"""

import os
from pathlib import Path
from typing import Optional

from fastapi.templating import Jinja2Templates

from dosewise.config.settings import DEFAULT_DB_PATH
from dosewise.logging.Database import DatabaseManager
from dosewise.utils.AppLogging import logger

TEMPLATES_DIR = Path(__file__).parent / "templates"

_db: Optional[DatabaseManager] = None
_templates: Optional[Jinja2Templates] = None


def get_db() -> DatabaseManager:
    """Database shared by all requests; DB_PATH is read on first use."""
    global _db
    if _db is None:
        _db = DatabaseManager(os.getenv("DB_PATH", DEFAULT_DB_PATH))
    return _db


def get_templates() -> Jinja2Templates:
    """
    Template engine for the dashboard page.

    Raises:
        RuntimeError: If the templates directory is missing from the install
    """
    global _templates
    if _templates is None:
        if not TEMPLATES_DIR.is_dir():
            raise RuntimeError(f"Dashboard templates missing: {TEMPLATES_DIR}")
        _templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
    return _templates


def init_shared_resources() -> None:
    get_db()
    get_templates()
    logger.info(f"[Shared] Ready (db={_db.db_path})")


def cleanup_shared_resources() -> None:
    global _db, _templates
    if _db is not None:
        _db.close()
        _db = None
    _templates = None
    logger.info("[Shared] Released")
