"""
Main DoseWise session.

This is the central orchestrator that:
1. Opens the camera and loads the classifier (both optional; failures
   degrade to "detection unavailable")
2. Samples the newest frame every 500 ms while detection is active
3. Gates the classifier output and records confident, on-schedule doses
4. Turns ledger outcomes into alerts and the confirmation tone
5. Sweeps for missed doses once a minute and sends reminders
6. Publishes a session snapshot for the dashboard and reacts to its commands

All session state lives on this object; components receive what they need
through their constructors.
"""

import json
import signal
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from dosewise.adherence.AdherenceLedger import AdherenceLedger, RecordOutcome
from dosewise.adherence.AlertStateMachine import AlertStateMachine
from dosewise.adherence.DetectionGate import DetectionGate, GateResult, RenderInstruction
from dosewise.adherence.ReminderScheduler import ReminderScheduler
from dosewise.adherence.SchedulePolicy import SchedulePolicy
from dosewise.app.detection_visualizer import DetectionVisualizer
from dosewise.classifier.BaseClassifier import BaseClassifier
from dosewise.classifier.ClassifierFactory import ClassifierFactory
from dosewise.config.adherence_config import AdherenceConfig
from dosewise.config.settings import AppConfig
from dosewise.constants import (
    BLOB_KEYS,
    classifier_source_key,
    classifier_source_request_key,
    detection_enabled_key,
    enable_display_key,
    notifications_enabled_key,
    reset_requested_key,
    simulated_detection_key,
)
from dosewise.endpoint.session_state import write_state as write_session_state
from dosewise.errors import CameraAccessError, ClassifierInferenceError, ClassifierLoadError
from dosewise.frame_source.FrameSource import FrameSource
from dosewise.frame_source.FrameSourceFactory import FrameSourceFactory
from dosewise.logging.ConfigWatcher import ConfigWatcher
from dosewise.logging.Database import DatabaseManager
from dosewise.notify.AudioCue import ToneAudioCue
from dosewise.notify.Notifier import BaseNotifier, DesktopNotifier, LogNotifier
from dosewise.utils.AppLogging import logger
from dosewise.utils.PeriodicTask import PeriodicTask


@dataclass
class SessionState:
    """Transient, non-persisted state of the running session."""
    camera_state: str = 'pending'          # pending, active, denied, error
    camera_banner: Optional[str] = None
    prediction_label: str = 'no_pill'
    prediction_confidence: float = 0.0
    last_render: Optional[RenderInstruction] = None
    ticks: int = 0
    discarded_results: int = 0
    inference_failures: int = 0
    last_outcome: Optional[str] = None
    recent_events: list = field(default_factory=list)

    def add_event(self, event: str):
        self.recent_events.append((time.time(), event))
        if len(self.recent_events) > 10:
            self.recent_events = self.recent_events[-10:]


class DoseWiseApp:
    """
    One detection/adherence session.

    Pipeline:
    Frame → DetectionGate → SchedulePolicy → AdherenceLedger → AlertStateMachine
    ReminderScheduler sweeps the ledger on its own timer.
    """

    CAMERA_BANNERS = {
        CameraAccessError.DENIED: "Camera access denied. Please enable camera permissions.",
        CameraAccessError.ERROR: "Camera unavailable. Check that a camera is connected.",
    }

    def __init__(
        self,
        app_config: Optional[AppConfig] = None,
        adherence_config: Optional[AdherenceConfig] = None,
        db: Optional[DatabaseManager] = None,
        frame_source: Optional[FrameSource] = None,
        classifier: Optional[BaseClassifier] = None,
        notifier: Optional[BaseNotifier] = None,
        audio_cue: Optional[Callable[[], None]] = None,
        clock: Optional[Callable[[], datetime]] = None,
        alert_clock: Optional[Callable[[], float]] = None,
        watch_controls: bool = True,
    ):
        """
        Initialize the session.

        Args:
            app_config: Paths and camera/classifier sources
            adherence_config: Thresholds, cadences, schedules
            db: Optional pre-opened database (blob store + control keys)
            frame_source: Optional pre-opened camera
            classifier: Optional pre-loaded classifier
            notifier: Reminder notification collaborator
            audio_cue: Confirmation tone callable
            clock: Local datetime source for schedule/ledger/reminders
            alert_clock: Seconds source for alert lifetimes
            watch_controls: Poll the config table for dashboard commands
        """
        self.app_config = app_config or AppConfig()
        self.adherence_config = adherence_config or AdherenceConfig()
        self._clock = clock or datetime.now
        self.watch_controls = watch_controls

        self._db = db or DatabaseManager(self.app_config.db_path)
        self._frame_source = frame_source
        self._classifier = classifier
        self._classifier_source: Optional[str] = classifier.source if classifier else None

        if notifier is None:
            notifier = DesktopNotifier() if self.app_config.desktop_notifications else LogNotifier()
        self.notifier = notifier

        # Adherence components
        self.policy = SchedulePolicy(self.adherence_config.schedules)
        self.ledger = AdherenceLedger(store=self._db, policy=self.policy, clock=self._clock)
        self.gate = DetectionGate(self.policy, self.adherence_config.confidence_threshold)
        self.alerts = AlertStateMachine(
            config=self.adherence_config,
            audio_cue=audio_cue if audio_cue is not None else ToneAudioCue(),
            clock=alert_clock,
        )
        self.reminders = ReminderScheduler(
            ledger=self.ledger,
            notifier=self.notifier,
            grace_minutes=self.adherence_config.reminder_grace_minutes,
            title=self.adherence_config.reminder_title,
            clock=self._clock,
        )

        # Periodic triggers
        self._sampling_task = PeriodicTask(
            "DetectionSampler", self.adherence_config.detection_interval_s, self._sample_tick
        )
        self._reminder_task = PeriodicTask(
            "ReminderSweep", self.adherence_config.reminder_interval_s, self._reminder_tick
        )
        self._control_watcher: Optional[ConfigWatcher] = None
        self._visualizer: Optional[DetectionVisualizer] = None
        self.enable_display = False

        # Session flags
        self._active = threading.Event()     # detection running
        self._lock = threading.RLock()       # single owner of ledger mutations
        self._running = False
        self._started = False

        self.state = SessionState()
        logger.info("[DoseWiseApp] Initialized")

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def is_detecting(self) -> bool:
        return self._active.is_set()

    @property
    def classifier(self) -> Optional[BaseClassifier]:
        return self._classifier

    @property
    def stats(self):
        return self.ledger.stats

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    def startup(self) -> None:
        """
        Load persisted history, acquire camera and classifier, start the
        reminder sweep. Never raises for camera/classifier problems.
        """
        if self._started:
            return
        self._started = True

        self.ledger.load()
        self._open_camera()

        if self._classifier is None:
            source = self._db.get_blob(classifier_source_key) or self.app_config.default_classifier_source
            if source:
                self.load_classifier(source)
            else:
                logger.info("[DoseWiseApp] No classifier source configured yet")

        self.notifier.permission_granted = self._db.get_config(notifications_enabled_key, '1') == '1'
        self.enable_display = (
            self.app_config.enable_display or self._db.get_config(enable_display_key, '0') == '1'
        )
        if self.enable_display:
            self._visualizer = DetectionVisualizer(display_size=self.app_config.frame_size)

        self._reminder_task.start()
        self._start_control_watcher()

        self._publish_state()
        logger.info("[DoseWiseApp] Session started")

    def _open_camera(self) -> None:
        if self._frame_source is not None:
            self.state.camera_state = 'active'
            return
        try:
            self._frame_source = FrameSourceFactory.create(
                'opencv',
                source=self.app_config.camera_source,
                frame_size=self.app_config.frame_size,
            )
            self.state.camera_state = 'active'
        except CameraAccessError as e:
            logger.error(f"[DoseWiseApp] Camera access error ({e.reason}): {e}")
            self.state.camera_state = 'denied' if e.reason == CameraAccessError.DENIED else 'error'
            self.state.camera_banner = self.CAMERA_BANNERS[e.reason]

    def _start_control_watcher(self) -> None:
        # A fresh session is never detecting; stale requests from a previous run are dropped
        self._db.set_config(detection_enabled_key, '0')
        self._db.set_config(classifier_source_request_key, '')

        watcher = ConfigWatcher(self._db, poll_interval=self.app_config.control_poll_interval_s)
        watcher.add_watch(detection_enabled_key, self._on_detection_toggle)
        watcher.add_watch(classifier_source_request_key, self._on_classifier_source_request)
        watcher.add_watch(reset_requested_key, self._on_reset_request)
        watcher.add_watch(simulated_detection_key, self._on_simulated_detection)
        if self.watch_controls:
            watcher.start()
        self._control_watcher = watcher

    # ------------------------------------------------------------------
    # Classifier
    # ------------------------------------------------------------------

    def load_classifier(self, source: str) -> bool:
        """
        Load a classifier and make it the session's classifier.

        On failure a warning alert is shown and detection stays disabled.
        """
        try:
            classifier = ClassifierFactory.load(source, device=self.app_config.classifier_device)
        except ClassifierLoadError as e:
            logger.error(f"[DoseWiseApp] Classifier load failed: {e}")
            self.stop_detection()
            self._release_classifier()
            self.alerts.model_load_failed()
            self._publish_state()
            return False

        with self._lock:
            previous = self._classifier
            self._classifier = classifier
            self._classifier_source = source
        if previous is not None and previous is not classifier:
            previous.cleanup()

        self.alerts.model_loaded()
        self.state.add_event(f"Classifier loaded: {source}")
        logger.info(f"[DoseWiseApp] Classifier initialized: {source}")
        self._publish_state()
        return True

    def set_classifier_source(self, source: str) -> bool:
        """Persist *source* as the classifier configuration and load it."""
        source = (source or "").strip()
        self._db.set_blob(classifier_source_key, source)
        return self.load_classifier(source)

    def _release_classifier(self) -> None:
        with self._lock:
            classifier = self._classifier
            self._classifier = None
            self._classifier_source = None
        if classifier is not None:
            classifier.cleanup()

    # ------------------------------------------------------------------
    # Detection control
    # ------------------------------------------------------------------

    def start_detection(self) -> bool:
        """
        Start the 500 ms sampling loop.

        Returns False (with a warning alert) when no classifier is loaded.
        """
        if self._classifier is None:
            logger.warning("[DoseWiseApp] Cannot start detection: no classifier loaded")
            self.alerts.classifier_missing()
            self._publish_state()
            return False
        if self._active.is_set():
            return True

        self._active.set()
        self._sampling_task.start()
        self.state.add_event("Detection started")
        logger.info("[DoseWiseApp] Detection started")
        self._publish_state()
        return True

    def stop_detection(self) -> None:
        """Clear the sampling timer; an in-flight result will be discarded."""
        was_active = self._active.is_set()
        self._active.clear()
        self._sampling_task.stop()
        self._set_control(detection_enabled_key, '0')
        if was_active:
            self.state.add_event("Detection stopped")
            logger.info("[DoseWiseApp] Detection stopped")
            self._publish_state()

    # ------------------------------------------------------------------
    # Sampling
    # ------------------------------------------------------------------

    def _sample_tick(self) -> None:
        self.sample_once()

    def sample_once(self) -> Optional[GateResult]:
        """
        One sampling tick: classify the newest frame and act on the winner.

        Returns the gate result, or None when the tick was a no-op.
        """
        if not self._active.is_set():
            return None

        classifier = self._classifier
        frame_source = self._frame_source
        if classifier is None or frame_source is None:
            return None

        frame = frame_source.latest_frame()
        if frame is None:
            return None

        self.state.ticks += 1
        try:
            predictions = classifier.predict(frame)
        except ClassifierInferenceError as e:
            self.state.inference_failures += 1
            logger.debug(f"[DoseWiseApp] Inference failed, tick skipped: {e}")
            return None

        # Session may have been stopped while predict() was running
        if not self._active.is_set():
            self.state.discarded_results += 1
            logger.debug("[DoseWiseApp] Discarding late classifier result for stopped session")
            return None

        result = self.gate.evaluate(predictions, self._clock())
        if result is None:
            return None

        self.state.prediction_label = result.detection.label
        self.state.prediction_confidence = result.detection.confidence
        self.state.last_render = result.render

        if result.forward:
            self.handle_detection(result.detection.label, result.detection.confidence)
        else:
            self._publish_state()

        if self._visualizer is not None:
            annotated = self._visualizer.draw(frame, result.render, self.alerts.current())
            if not self._visualizer.show(annotated):
                self._running = False

        return result

    def handle_detection(self, label: str, confidence: float, now: Optional[datetime] = None) -> RecordOutcome:
        """
        Run a confident detection through ledger and alerts.

        Detections at or below the confidence threshold are IGNORED and
        leave ledger and alerts untouched, whichever path they came from.
        """
        if not self.gate.passes_threshold(confidence):
            logger.debug(f"[DoseWiseApp] Below threshold, ignored: {label} ({confidence:.2f})")
            self.state.last_outcome = RecordOutcome.IGNORED.value
            return RecordOutcome.IGNORED

        with self._lock:
            outcome = self.ledger.record(label, confidence, now or self._clock())
            self.alerts.on_detection(label, outcome)

        self.state.last_outcome = outcome.value
        if outcome != RecordOutcome.IGNORED:
            self.state.add_event(f"{label} ({confidence:.2f}) -> {outcome.value}")
        self._publish_state()
        return outcome

    def simulate_detection(self, label: str, confidence: float = 0.98) -> RecordOutcome:
        """Test-mode detection: enters the pipeline like a forwarded detection."""
        logger.info(f"[DoseWiseApp] Simulated detection: {label} ({confidence:.2f})")
        return self.handle_detection(label, confidence)

    # ------------------------------------------------------------------
    # Reminders
    # ------------------------------------------------------------------

    def _reminder_tick(self) -> None:
        self.reminders.sweep(self._clock())

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """
        Clear both persisted keys and restart the session fresh: empty
        ledger, zero stats, no classifier, detection stopped.
        """
        logger.warning("[DoseWiseApp] Full reset requested")
        self.stop_detection()
        with self._lock:
            self._db.delete_blobs(BLOB_KEYS)
            self.ledger.reset()
            self.reminders.reset()
            self.alerts.clear()
        self._release_classifier()
        self.state = SessionState(camera_state=self.state.camera_state, camera_banner=self.state.camera_banner)
        self._publish_state()

    # ------------------------------------------------------------------
    # Dashboard commands
    # ------------------------------------------------------------------

    def _set_control(self, key: str, value: str) -> None:
        """Write a control key and make it the watcher's baseline."""
        self._db.set_config(key, value)
        if self._control_watcher is not None:
            self._control_watcher.mark_seen(key, value)

    def _on_detection_toggle(self, _old: str, new: str) -> None:
        if new == '1':
            if not self.start_detection():
                self._set_control(detection_enabled_key, '0')
        else:
            self.stop_detection()

    def _on_classifier_source_request(self, _old: str, new: str) -> None:
        if new:
            # Cleared so the same source can be requested again
            self._set_control(classifier_source_request_key, '')
            self.set_classifier_source(new)

    def _on_reset_request(self, _old: str, new: str) -> None:
        if new == '1':
            self.reset()
            self._set_control(reset_requested_key, '0')

    def _on_simulated_detection(self, _old: str, new: str) -> None:
        if not new:
            return
        try:
            request = json.loads(new)
        except json.JSONDecodeError:
            logger.warning(f"[DoseWiseApp] Ignoring malformed simulated detection: {new}")
            return
        self.simulate_detection(request.get("label", ""), float(request.get("confidence", 0.98)))

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        """Transient session view for the dashboard."""
        alert = self.alerts.current()
        render = self.state.last_render
        return {
            "detecting": self.is_detecting,
            "camera_state": self.state.camera_state,
            "camera_banner": self.state.camera_banner,
            "classifier_loaded": self._classifier is not None,
            "classifier_source": self._classifier_source,
            "prediction": {
                "label": self.state.prediction_label,
                "confidence": round(self.state.prediction_confidence, 4),
            },
            "overlay": None if render is None else {
                "box": list(render.box),
                "caption": render.caption,
                "schedule_valid": render.schedule_valid,
            },
            "alert": alert.to_dict() if alert else None,
            "last_outcome": self.state.last_outcome,
            "recent_events": list(self.state.recent_events),
            "stats": self.ledger.stats.to_dict(),
        }

    def _publish_state(self) -> None:
        write_session_state(self.snapshot(), self.app_config.session_state_file)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _signal_handler(self, signum, _frame):
        logger.info(f"[DoseWiseApp] Received signal {signum}, shutting down...")
        self._running = False

    def run(self, start_detection: bool = False, max_seconds: Optional[float] = None):
        """
        Run the session until interrupted.

        Args:
            start_detection: Start sampling immediately
            max_seconds: Optional run time limit
        """
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        self._running = True
        started = time.monotonic()
        try:
            self.startup()
            if start_detection and self.start_detection():
                self._set_control(detection_enabled_key, '1')

            while self._running:
                if max_seconds is not None and time.monotonic() - started >= max_seconds:
                    break
                # Republish so alert expiry is visible to the dashboard
                self._publish_state()
                time.sleep(1.0)
        finally:
            self.cleanup()

    def cleanup(self):
        """Release timers, camera, classifier and database on every exit path."""
        logger.info("[DoseWiseApp] Cleaning up...")
        self._active.clear()
        self._sampling_task.stop()
        self._reminder_task.stop()

        if self._control_watcher is not None:
            self._control_watcher.stop()
            self._control_watcher = None

        try:
            self._db.set_config(detection_enabled_key, '0')
            self._publish_state()
        finally:
            self._release_classifier()

            if self._frame_source is not None:
                self._frame_source.cleanup()
                self._frame_source = None

            if self._visualizer is not None:
                self._visualizer.cleanup()

            self._db.close()

        stats = self.ledger.stats
        logger.info("=" * 50)
        logger.info("[DoseWiseApp] Final Statistics:")
        logger.info(f"  Sampling ticks: {self.state.ticks}")
        logger.info(f"  Inference failures: {self.state.inference_failures}")
        logger.info(f"  Total taken: {stats.total_taken} / scheduled {stats.total_scheduled}")
        logger.info(f"  Current streak: {stats.current_streak}")
        logger.info("=" * 50)

    def stop(self):
        """Stop the session loop."""
        self._running = False
