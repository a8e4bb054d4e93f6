"""
Session State - cross-process snapshot of the live detection session.

The session (DoseWiseApp) writes its transient state to a JSON file and the
FastAPI server reads it to show the current alert, camera banner and last
prediction. Durable adherence data is read from the database instead.
"""

import json
import os
import time
from typing import Any, Dict, Optional

from dosewise.config.settings import DEFAULT_SESSION_STATE_FILE
from dosewise.utils.AppLogging import logger


def _get_state_path() -> str:
    """Get the state file path, checking env var at call time."""
    return os.getenv("SESSION_STATE_FILE", DEFAULT_SESSION_STATE_FILE)


def write_state(state: Dict[str, Any], state_file: Optional[str] = None) -> bool:
    """
    Write session state atomically (temp file + rename).

    Returns:
        True if written successfully
    """
    filepath = state_file or _get_state_path()
    try:
        os.makedirs(os.path.dirname(filepath) or ".", exist_ok=True)
        state["_updated_at"] = time.time()

        tmp_path = filepath + ".tmp"
        with open(tmp_path, "w") as f:
            json.dump(state, f)
        os.replace(tmp_path, filepath)
        return True
    except (OSError, TypeError, ValueError) as e:
        logger.error(f"[SessionState] Failed to write state: {e}")
        return False


def read_state(state_file: Optional[str] = None) -> Dict[str, Any]:
    """
    Read session state; a default empty state if missing or unreadable.
    """
    filepath = state_file or _get_state_path()
    try:
        if not os.path.exists(filepath):
            return empty_state()

        with open(filepath, "r") as f:
            return json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"[SessionState] Failed to read state: {e}")
        return empty_state()


def empty_state() -> Dict[str, Any]:
    """Default state before any session has run."""
    return {
        "detecting": False,
        "camera_state": "pending",
        "camera_banner": None,
        "classifier_loaded": False,
        "classifier_source": None,
        "prediction": {"label": "no_pill", "confidence": 0.0},
        "alert": None,
        "_updated_at": 0,
    }
