"""
Adherence pipeline configuration for DoseWise.

Thresholds, cadences and alert lifetimes, each overridable through an
environment variable. Dose schedules default to a morning and an evening
slot; DOSE_SCHEDULES can replace them with a JSON list, e.g.::

    DOSE_SCHEDULES='[{"dose_type": "morning", "label": "pill_morning",
                      "scheduled_time": "07:30", "window": [6, 9]}]'
"""

import json
import os
from dataclasses import dataclass, field
from typing import Dict, Tuple

from dosewise.adherence.DoseTypes import DEFAULT_SCHEDULES, DoseSchedule, DoseType


def _parse_bool_env(key: str, default: bool) -> bool:
    """Parse boolean environment variable."""
    val = os.getenv(key, str(default)).lower()
    return val in ('true', '1', 'yes', 'on')


def _parse_float_env(key: str, default: float) -> float:
    """Parse float environment variable."""
    try:
        return float(os.getenv(key, str(default)))
    except ValueError:
        return default


def _parse_int_env(key: str, default: int) -> int:
    """Parse integer environment variable."""
    try:
        return int(os.getenv(key, str(default)))
    except ValueError:
        return default


def _parse_list_env(key: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    """Parse comma-separated environment variable."""
    raw = os.getenv(key)
    if not raw:
        return default
    return tuple(part.strip().lower() for part in raw.split(',') if part.strip())


def _parse_schedules_env(key: str) -> Dict[DoseType, DoseSchedule]:
    raw = os.getenv(key)
    if not raw:
        return dict(DEFAULT_SCHEDULES)
    schedules = {}
    for entry in json.loads(raw):
        dose_type = DoseType(entry['dose_type'])
        start, end = entry['window']
        schedules[dose_type] = DoseSchedule(
            dose_type=dose_type,
            label=entry['label'],
            scheduled_time=entry['scheduled_time'],
            window_start_hour=int(start),
            window_end_hour=int(end),
        )
    return schedules


@dataclass
class AdherenceConfig:
    """
    Configuration for detection gating, reminders and user feedback.
    """

    # ==========================================================================
    # Detection Gate
    # ==========================================================================

    confidence_threshold: float = _parse_float_env("CONFIDENCE_THRESHOLD", 0.75)
    """Detections must be strictly above this to reach the ledger."""

    detection_interval_ms: int = _parse_int_env("DETECTION_INTERVAL_MS", 500)
    """Sampling cadence while detection is active."""

    # ==========================================================================
    # Reminders
    # ==========================================================================

    reminder_interval_s: float = _parse_float_env("REMINDER_INTERVAL_S", 60.0)
    reminder_grace_minutes: int = _parse_int_env("REMINDER_GRACE_MINUTES", 15)
    reminder_title: str = os.getenv("REMINDER_TITLE", "DoseWise Reminder")

    # ==========================================================================
    # Alerts
    # ==========================================================================

    info_alert_seconds: float = _parse_float_env("INFO_ALERT_SECONDS", 3.0)
    success_alert_seconds: float = _parse_float_env("SUCCESS_ALERT_SECONDS", 5.0)
    warning_alert_seconds: float = _parse_float_env("WARNING_ALERT_SECONDS", 4.0)
    model_loaded_alert_seconds: float = _parse_float_env("MODEL_LOADED_ALERT_SECONDS", 3.0)

    medication_label_markers: Tuple[str, ...] = _parse_list_env(
        "MEDICATION_LABEL_MARKERS", ("pill", "med")
    )
    """Substrings that make a NOT_SCHEDULED label worth a warning."""

    play_confirmation_tone: bool = field(
        default_factory=lambda: _parse_bool_env("PLAY_CONFIRMATION_TONE", True)
    )

    # ==========================================================================
    # Schedules
    # ==========================================================================

    schedules: Dict[DoseType, DoseSchedule] = field(
        default_factory=lambda: _parse_schedules_env("DOSE_SCHEDULES")
    )

    @property
    def detection_interval_s(self) -> float:
        return self.detection_interval_ms / 1000.0

    def looks_like_medication(self, label: str) -> bool:
        """Substring heuristic deciding whether an off-schedule label deserves a warning."""
        text = label.lower()
        return any(marker in text for marker in self.medication_label_markers)

    def log_configuration(self):
        from dosewise.utils.AppLogging import logger
        logger.info(
            f"[AdherenceConfig] threshold={self.confidence_threshold}, "
            f"interval={self.detection_interval_ms}ms, "
            f"reminder_grace={self.reminder_grace_minutes}min"
        )
        for schedule in self.schedules.values():
            logger.info(
                f"[AdherenceConfig] {schedule.dose_type.value}: label={schedule.label}, "
                f"scheduled={schedule.scheduled_time}, "
                f"window=[{schedule.window_start_hour}, {schedule.window_end_hour}]"
            )
