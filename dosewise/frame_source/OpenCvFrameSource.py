"""
OpenCV-based camera source for webcams, video files or RTSP streams.

A background thread keeps only the newest frame; the detection loop samples
it at its own cadence.
"""

import os
import threading
import time
from typing import Optional, Tuple, Union

import cv2
import numpy as np

from dosewise.errors import CameraAccessError
from dosewise.frame_source.FrameSource import FrameSource
from dosewise.utils.AppLogging import logger


def _classify_open_failure(source: Union[int, str]) -> str:
    """
    Tell a refused camera apart from a missing/broken one.

    On Linux a webcam index maps to /dev/videoN; if the node exists but
    cannot be read, access was denied.
    """
    if isinstance(source, int):
        device = f"/dev/video{source}"
        if os.path.exists(device) and not os.access(device, os.R_OK):
            return CameraAccessError.DENIED
    elif os.path.exists(source) and not os.access(source, os.R_OK):
        return CameraAccessError.DENIED
    return CameraAccessError.ERROR


class OpenCVFrameSource(FrameSource):
    """
    OpenCV camera source.

    Key features:
    - Latest-frame buffer: the reader never blocks on a slow consumer
    - Graceful shutdown with threading.Event
    - Frames resized to the detection canvas size
    """

    def __init__(
        self,
        source: Union[int, str] = 0,
        frame_size: Tuple[int, int] = (640, 480),
        target_fps: Optional[float] = None,
    ):
        """
        Open the camera and start the reader thread.

        Args:
            source: Camera index, file path or RTSP URL
            frame_size: (width, height) frames are resized to
            target_fps: Read pacing (None = source FPS)

        Raises:
            CameraAccessError: If the source cannot be opened
        """
        self.source = source
        self.frame_size = frame_size
        self.cap = cv2.VideoCapture(source)

        if not self.cap.isOpened():
            self.cap.release()
            reason = _classify_open_failure(source)
            raise CameraAccessError(f"Could not open camera source: {source}", reason=reason)

        self.source_fps = self.cap.get(cv2.CAP_PROP_FPS) or 30.0
        if target_fps and target_fps > 0:
            self.frame_interval = 1.0 / target_fps
        else:
            self.frame_interval = 1.0 / self.source_fps

        logger.info(
            f"[OpenCVFrameSource] Source: {source}, FPS: {self.source_fps}, "
            f"Canvas: {frame_size[0]}x{frame_size[1]}"
        )

        self.running = True
        self._stopped = threading.Event()
        self._lock = threading.Lock()
        self._latest: Optional[np.ndarray] = None
        self._frame_count = 0

        self.read_thread = threading.Thread(target=self._read_frames, name="CameraReader", daemon=True)
        self.read_thread.start()

    def _read_frames(self):
        """Background reader: keep the newest frame, pace to frame_interval."""
        logger.info("[OpenCVFrameSource] Background reader started")

        while self.running and not self._stopped.is_set():
            cycle_start = time.perf_counter()
            try:
                ret, frame = self.cap.read()
            except cv2.error as e:
                logger.error(f"[OpenCVFrameSource] Read error: {e}")
                self._stopped.wait(0.1)
                continue

            if not ret:
                logger.info("[OpenCVFrameSource] End of video stream")
                self.running = False
                break

            if (frame.shape[1], frame.shape[0]) != self.frame_size:
                frame = cv2.resize(frame, self.frame_size)

            with self._lock:
                self._latest = frame
                self._frame_count += 1

            sleep_time = self.frame_interval - (time.perf_counter() - cycle_start)
            if sleep_time > 0:
                # Event.wait returns early on cleanup()
                self._stopped.wait(sleep_time)

        if self.cap.isOpened():
            self.cap.release()

        logger.info(f"[OpenCVFrameSource] Background reader stopped. Total frames: {self._frame_count}")

    def latest_frame(self) -> Optional[np.ndarray]:
        with self._lock:
            return None if self._latest is None else self._latest.copy()

    def cleanup(self):
        """
        Stop the reader thread and release the capture.

        Safe to call more than once.
        """
        logger.info("[OpenCVFrameSource] Cleanup starting...")
        self.running = False
        self._stopped.set()

        if self.read_thread is not None and self.read_thread.is_alive():
            self.read_thread.join(timeout=3.0)
            if self.read_thread.is_alive():
                logger.warning("[OpenCVFrameSource] Background thread did not stop cleanly")

        if self.cap is not None and self.cap.isOpened():
            self.cap.release()

        logger.info(f"[OpenCVFrameSource] Cleanup complete. Processed {self._frame_count} frames")
