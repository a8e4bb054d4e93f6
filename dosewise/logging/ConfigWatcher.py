"""
Polls the config table for dashboard commands.

The dashboard process writes control keys (detection_enabled,
classifier_source_request, reset_requested, simulated_detection); the
running session registers a handler per key and is called with
(old, new) whenever the stored value differs from the last one seen.
"""

import threading
from typing import Callable, Dict, Optional

from dosewise.logging.Database import DatabaseManager
from dosewise.utils.AppLogging import logger

Handler = Callable[[str, str], None]


class ConfigWatcher:
    """Background poller dispatching config-key changes to handlers."""

    def __init__(self, db: DatabaseManager, poll_interval: float = 1.0):
        self._db = db
        self.poll_interval = poll_interval

        self._handlers: Dict[str, Handler] = {}
        self._last_seen: Dict[str, str] = {}
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def add_watch(self, key: str, handler: Handler):
        """Register *handler*; the current value is the baseline, not a change."""
        self._handlers[key] = handler
        self._last_seen[key] = self._db.get_config(key, "")

    def mark_seen(self, key: str, value: str):
        """Adopt a value the session wrote itself, so it is not dispatched back."""
        if key in self._handlers:
            self._last_seen[key] = value

    def start(self):
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="ConfigWatcher", daemon=True)
        self._thread.start()
        logger.info(f"[ConfigWatcher] Polling {len(self._handlers)} key(s) every {self.poll_interval}s")

    def stop(self):
        self._stop.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=2.0)
        self._thread = None

    def _run(self):
        while not self._stop.is_set():
            try:
                self.check_changes()
            except Exception as e:
                logger.error(f"[ConfigWatcher] Poll failed: {e}")
            self._stop.wait(self.poll_interval)

    def check_changes(self):
        """One poll: dispatch every key whose value moved since the last poll."""
        for key, handler in list(self._handlers.items()):
            value = self._db.get_config(key, "")
            previous = self._last_seen.get(key, "")
            if value == previous:
                continue

            self._last_seen[key] = value
            logger.info(f"[ConfigWatcher] {key}: {previous!r} -> {value!r}")
            try:
                handler(previous, value)
            except Exception as e:
                logger.error(f"[ConfigWatcher] Handler for {key} failed: {e}", exc_info=True)
