"""
FastAPI Server for the DoseWise dashboard.

Serves the adherence views over the persisted document and forwards
dashboard commands to the running session through the config table.
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse

from dosewise.config.settings import AppConfig
from dosewise.endpoint.routes import adherence, control
from dosewise.endpoint.session_state import read_state
from dosewise.endpoint.shared import cleanup_shared_resources, get_db, get_templates, init_shared_resources
from dosewise.utils.AppLogging import logger

APP_VERSION = AppConfig.APP_VERSION

# Server start time for uptime tracking
_SERVER_START_TIME = time.time()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Open the database and templates on startup, release them on shutdown."""
    logger.info("[Endpoint] Starting up...")
    init_shared_resources()
    yield
    logger.info("[Endpoint] Shutting down...")
    cleanup_shared_resources()


app = FastAPI(
    title="DoseWise API",
    description="Medication adherence dashboard",
    version="1.2.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(adherence.router)
app.include_router(control.router)


@app.get("/", response_class=HTMLResponse)
async def root(request: Request):
    """Dashboard page; data is fetched client-side from the /api routes."""
    templates = get_templates()
    return templates.TemplateResponse(request, 'dashboard.html', {
        'version': APP_VERSION
    })


@app.get("/health")
async def health() -> Dict[str, Any]:
    """
    Health check with uptime, DB connectivity and session liveness.
    """
    now = time.time()
    uptime_seconds = now - _SERVER_START_TIME

    hours, remainder = divmod(int(uptime_seconds), 3600)
    minutes, seconds = divmod(remainder, 60)
    uptime_str = f"{hours:02d}:{minutes:02d}:{seconds:02d}"

    db_ok = False
    try:
        get_db().get_config('detection_enabled')
        db_ok = True
    except Exception as e:
        logger.warning(f"[Endpoint] Health DB check failed: {e}")

    session = read_state()
    last_update = session.get("_updated_at", 0) or 0

    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": APP_VERSION,
        "uptime_seconds": round(uptime_seconds, 1),
        "uptime": uptime_str,
        "database": "connected" if db_ok else "disconnected",
        "session_active": last_update > 0 and now - last_update < 10,
        "session": {
            "detecting": session.get("detecting", False),
            "camera_state": session.get("camera_state", "pending"),
            "classifier_loaded": session.get("classifier_loaded", False),
        },
    }
