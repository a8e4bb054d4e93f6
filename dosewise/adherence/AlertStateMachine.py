"""
Alert / feedback state machine.

States:
- EMPTY:   nothing shown
- INFO:    a dose label was identified (3 s)
- SUCCESS: dose accepted into the ledger (5 s, plays the confirmation tone)
- WARNING: medication-like label seen outside its window, or an operator
           problem (model not loaded, ...)

At most one alert is visible. A newer alert always pre-empts the current
one. Every alert carries its own alert_id and expiry, and expiry only ever
clears the alert it belongs to, so an INFO timeout can never clear the
SUCCESS/WARNING that superseded it.
"""

import itertools
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from dosewise.adherence.AdherenceLedger import RecordOutcome
from dosewise.adherence.DoseTypes import label_words
from dosewise.config.adherence_config import AdherenceConfig
from dosewise.utils.AppLogging import logger


class AlertKind(str, Enum):
    INFO = 'info'
    SUCCESS = 'success'
    WARNING = 'warning'


@dataclass(frozen=True)
class AlertState:
    """One visible alert."""
    alert_id: int
    kind: AlertKind
    message: str
    created_at: float
    expires_at: Optional[float]  # None = stays until superseded or cleared

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.alert_id,
            "type": self.kind.value,
            "message": self.message,
            "created_at": self.created_at,
            "expires_at": self.expires_at,
        }


class AlertStateMachine:
    """
    Turns ledger outcomes into transient user-facing messages.

    Args:
        config: Alert lifetimes and the medication-label matcher
        audio_cue: Called with no arguments when a dose is accepted
        clock: Wall-clock seconds (time.time by default)
    """

    EMPTY = 'empty'

    def __init__(
        self,
        config: Optional[AdherenceConfig] = None,
        audio_cue: Optional[Callable[[], None]] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.config = config or AdherenceConfig()
        self.audio_cue = audio_cue
        self._clock = clock or time.time
        self._ids = itertools.count(1)
        self._current: Optional[AlertState] = None
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> str:
        alert = self.current()
        return alert.kind.value if alert else self.EMPTY

    def current(self) -> Optional[AlertState]:
        """Visible alert after applying any due expiry."""
        self.tick()
        return self._current

    def tick(self, now: Optional[float] = None) -> None:
        """Clear the current alert if its own lifetime has elapsed."""
        now = self._clock() if now is None else now
        with self._lock:
            if self._current is not None and self._current.is_expired(now):
                logger.debug(f"[AlertStateMachine] Alert {self._current.alert_id} ({self._current.kind.value}) expired")
                self._current = None

    def show(self, kind: AlertKind, message: str, lifetime: Optional[float]) -> AlertState:
        """Pre-empt whatever is visible with a new alert."""
        now = self._clock()
        alert = AlertState(
            alert_id=next(self._ids),
            kind=kind,
            message=message,
            created_at=now,
            expires_at=now + lifetime if lifetime is not None else None,
        )
        with self._lock:
            self._current = alert
        logger.debug(f"[AlertStateMachine] {kind.value}: {message}")
        return alert

    def clear(self, alert_id: Optional[int] = None) -> bool:
        """
        Clear the visible alert.

        With *alert_id*, clears only if that alert is still the visible one.
        """
        with self._lock:
            if self._current is None:
                return False
            if alert_id is not None and self._current.alert_id != alert_id:
                return False
            self._current = None
            return True

    # ------------------------------------------------------------------
    # Pipeline feedback
    # ------------------------------------------------------------------

    def on_detection(self, label: str, outcome: RecordOutcome) -> Optional[AlertState]:
        """
        Apply the feedback rules for one forwarded detection.

        Returns the alert left visible, or None for ignored labels.
        """
        if outcome == RecordOutcome.IGNORED:
            return None

        words = label_words(label)
        alert = self.show(
            AlertKind.INFO,
            f"Identification: {words} detected.",
            self.config.info_alert_seconds,
        )

        if outcome == RecordOutcome.ACCEPTED:
            alert = self.show(AlertKind.SUCCESS, f"{words} Taken!", self.config.success_alert_seconds)
            self._play_confirmation()
        elif outcome == RecordOutcome.NOT_SCHEDULED and self.config.looks_like_medication(label):
            alert = self.show(
                AlertKind.WARNING,
                f"{words} is not scheduled for now.",
                self.config.warning_alert_seconds,
            )

        return alert

    def _play_confirmation(self) -> None:
        if self.audio_cue is None or not self.config.play_confirmation_tone:
            return
        try:
            self.audio_cue()
        except Exception as e:
            logger.warning(f"[AlertStateMachine] Confirmation tone failed (ignored): {e}")

    def model_loaded(self) -> AlertState:
        return self.show(AlertKind.SUCCESS, "AI Model Loaded Successfully!", self.config.model_loaded_alert_seconds)

    def model_load_failed(self) -> AlertState:
        return self.show(
            AlertKind.WARNING,
            "Unable to load AI model. Ensure the URL is correct and public.",
            None,
        )

    def classifier_missing(self) -> AlertState:
        return self.show(AlertKind.WARNING, "Please provide a valid Model URL first", None)
