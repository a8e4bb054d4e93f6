"""
Application settings for DoseWise.

Paths, camera source and classifier source, with environment overrides.
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple, Union


DEFAULT_DB_PATH = "data/db/dosewise.db"
DEFAULT_SESSION_STATE_FILE = "data/session_state.json"


def _parse_bool_env(key: str, default: bool) -> bool:
    """Parse boolean environment variable."""
    val = os.getenv(key, str(default)).lower()
    return val in ('true', '1', 'yes', 'on')


def _parse_camera_source(raw: str) -> Union[int, str]:
    """Camera index when numeric, otherwise a file path or stream URL."""
    return int(raw) if raw.isdigit() else raw


@dataclass
class AppConfig:
    """
    Application configuration for DoseWise.
    """

    APP_VERSION: str = "19-10-2026_v1.2.0"

    # Database (blob store + runtime control keys)
    db_path: str = os.getenv("DB_PATH", DEFAULT_DB_PATH)

    # Session snapshot shared with the dashboard process
    session_state_file: str = os.getenv("SESSION_STATE_FILE", DEFAULT_SESSION_STATE_FILE)

    # Camera
    camera_source: Union[int, str] = _parse_camera_source(os.getenv("CAMERA_SOURCE", "0"))
    frame_size: Tuple[int, int] = (640, 480)  # width, height of the detection canvas

    # Classifier source used when nothing has been persisted yet
    default_classifier_source: Optional[str] = os.getenv("CLASSIFIER_SOURCE") or None
    classifier_device: Optional[str] = os.getenv("CLASSIFIER_DEVICE") or None

    # Display / notifications
    enable_display: bool = _parse_bool_env("ENABLE_DISPLAY", False)
    desktop_notifications: bool = _parse_bool_env("DESKTOP_NOTIFICATIONS", True)

    # How often the session polls the config table for dashboard commands
    control_poll_interval_s: float = float(os.getenv("CONTROL_POLL_INTERVAL_S", "1.0"))

    def log_configuration(self):
        """Log current configuration."""
        from dosewise.utils.AppLogging import logger
        logger.info(f"[Config] App Version: {self.APP_VERSION}")
        logger.info(f"[Config] Database: {self.db_path}")
        logger.info(f"[Config] Camera source: {self.camera_source}")
        logger.info(f"[Config] Default classifier source: {self.default_classifier_source}")
