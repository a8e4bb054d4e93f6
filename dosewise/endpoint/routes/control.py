"""
Control Routes - dashboard commands for the running session.

Provides:
- GET  /api/session               → live session snapshot (alert, camera, prediction)
- POST /api/detection/start       → request detection start
- POST /api/detection/stop        → request detection stop
- POST /api/classifier-source     → persist and load a new classifier source
- POST /api/detection/simulate    → test-mode detection (default confidence 0.98)
- POST /api/reset                 → clear all persisted data

Commands are written to the config table; the session process picks them
up through its ConfigWatcher within one poll interval.
"""

import json
import time
from typing import Any, Dict

from fastapi import APIRouter, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from dosewise.adherence.DoseTypes import normalize_label
from dosewise.constants import (
    classifier_source_request_key,
    detection_enabled_key,
    reset_requested_key,
    simulated_detection_key,
)
from dosewise.endpoint.session_state import read_state
from dosewise.endpoint.shared import get_db
from dosewise.utils.AppLogging import logger

router = APIRouter(tags=["control"])


@router.get("/api/session")
async def api_session() -> Dict[str, Any]:
    """
    Live session snapshot written by the session process.

    An alert whose lifetime has elapsed since the last write is dropped here
    so the dashboard never shows a stale message.
    """
    state = read_state()
    alert = state.get("alert")
    if alert and alert.get("expires_at") is not None and alert["expires_at"] <= time.time():
        state["alert"] = None
    return {k: v for k, v in state.items() if not k.startswith("_")}


@router.post("/api/detection/start", response_class=JSONResponse)
async def start_detection():
    await run_in_threadpool(get_db().set_config, detection_enabled_key, '1')
    logger.info("[Control] Detection start requested")
    return {"status": "ok", "detection_enabled": True}


@router.post("/api/detection/stop", response_class=JSONResponse)
async def stop_detection():
    await run_in_threadpool(get_db().set_config, detection_enabled_key, '0')
    logger.info("[Control] Detection stop requested")
    return {"status": "ok", "detection_enabled": False}


@router.post("/api/classifier-source", response_class=JSONResponse)
async def set_classifier_source(request: Request):
    """
    Request a new classifier source.

    Accepts JSON body: {"source": "<url or weights path>"}
    """
    body = await request.json()
    source = str(body.get("source") or "").strip()
    if not source:
        raise HTTPException(status_code=400, detail="Please provide a valid Model URL first")

    await run_in_threadpool(get_db().set_config, classifier_source_request_key, source)
    logger.info(f"[Control] Classifier source requested: {source}")
    return {"status": "ok", "source": source}


@router.post("/api/detection/simulate", response_class=JSONResponse)
async def simulate_detection(request: Request):
    """
    Inject a detection as if the classifier had produced it.

    Accepts JSON body: {"label": "pill_morning", "confidence": 0.98}
    """
    body = await request.json()
    label = normalize_label(body.get("label"))
    if not label:
        raise HTTPException(status_code=400, detail="label is required")
    try:
        confidence = float(body.get("confidence", 0.98))
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="confidence must be a number")

    # Nonce makes repeated identical requests visible as config changes
    payload = json.dumps({"label": label, "confidence": confidence, "nonce": time.time()})
    await run_in_threadpool(get_db().set_config, simulated_detection_key, payload)
    logger.info(f"[Control] Simulated detection requested: {label} ({confidence:.2f})")
    return {"status": "ok", "label": label, "confidence": confidence}


@router.post("/api/reset", response_class=JSONResponse)
async def reset_data():
    """Request a full reset of adherence data and the classifier source."""
    await run_in_threadpool(get_db().set_config, reset_requested_key, '1')
    logger.warning("[Control] Full data reset requested")
    return {"status": "ok", "reset_requested": True}
