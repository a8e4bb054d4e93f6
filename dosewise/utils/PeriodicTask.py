"""
Fixed-cadence background task.

Each task owns one thread, so a tick is never re-entered: if a tick runs
longer than the interval, the next one starts as soon as it returns and
missed ticks are not replayed.
"""

import threading
import time
from typing import Callable, Optional

from dosewise.utils.AppLogging import logger


class PeriodicTask:
    """
    Run *callback* every *interval* seconds on a daemon thread.

    Exceptions raised by the callback are logged and the task keeps running.
    """

    def __init__(self, name: str, interval: float, callback: Callable[[], None]):
        self.name = name
        self.interval = interval
        self.callback = callback

        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.tick_count = 0

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop.is_set()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._loop, args=(self._stop,), name=self.name, daemon=True)
        self._thread.start()
        logger.info(f"[PeriodicTask] {self.name} started (every {self.interval:.2f}s)")

    def stop(self, timeout: float = 2.0) -> None:
        """
        Clear the timer. A tick already in progress finishes on its own;
        callers must not rely on its result.
        """
        self._stop.set()
        thread = self._thread
        if thread is not None and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning(f"[PeriodicTask] {self.name} tick still running after stop")
        self._thread = None
        logger.info(f"[PeriodicTask] {self.name} stopped after {self.tick_count} ticks")

    def _loop(self, stop: threading.Event) -> None:
        while not stop.is_set():
            started = time.monotonic()
            try:
                self.callback()
            except Exception as e:
                logger.error(f"[PeriodicTask] {self.name} tick failed: {e}", exc_info=True)
            self.tick_count += 1
            remaining = self.interval - (time.monotonic() - started)
            if remaining > 0:
                stop.wait(remaining)
