"""
Detection visualizer for drawing the gate's overlay and the alert banner.

Separates rendering from the adherence logic: it only consumes
RenderInstruction / AlertState values.
"""

from typing import Optional, Tuple

import cv2
import numpy as np

from dosewise.adherence.AlertStateMachine import AlertKind, AlertState
from dosewise.adherence.DetectionGate import RenderInstruction


class DetectionVisualizer:
    """
    Draws detection overlays and manages the optional display window.
    """

    ALERT_COLORS = {
        AlertKind.INFO: (230, 160, 40),     # BGR blue
        AlertKind.SUCCESS: (102, 170, 0),   # green
        AlertKind.WARNING: (51, 51, 221),   # red
    }

    FONT = cv2.FONT_HERSHEY_SIMPLEX
    FONT_SCALE_CAPTION = 0.8
    FONT_SCALE_BANNER = 0.6
    BOX_THICKNESS = 4

    def __init__(self, window_name: str = "DoseWise", display_size: Tuple[int, int] = (640, 480)):
        self.window_name = window_name
        self.display_size = display_size
        self._window_created = False

    def draw(
        self,
        frame: np.ndarray,
        render: Optional[RenderInstruction],
        alert: Optional[AlertState] = None,
    ) -> np.ndarray:
        """
        Return an annotated copy of *frame*.

        Nothing is drawn for the detection when *render* is None (no_pill).
        """
        annotated = frame.copy()

        if render is not None:
            x1, y1, x2, y2 = render.box
            cv2.rectangle(annotated, (x1, y1), (x2, y2), render.color, self.BOX_THICKNESS)
            cv2.putText(
                annotated, render.caption, (x1 + 5, y1 - 10),
                self.FONT, self.FONT_SCALE_CAPTION, render.color, 2, cv2.LINE_AA
            )

        if alert is not None:
            self._draw_banner(annotated, alert)

        return annotated

    def _draw_banner(self, frame: np.ndarray, alert: AlertState) -> None:
        height, width = frame.shape[:2]
        banner_height = 32
        top = height - banner_height
        overlay = frame.copy()
        cv2.rectangle(overlay, (0, top), (width, height), self.ALERT_COLORS[alert.kind], -1)
        cv2.addWeighted(overlay, 0.7, frame, 0.3, 0, dst=frame)
        cv2.putText(
            frame, alert.message, (10, height - 10),
            self.FONT, self.FONT_SCALE_BANNER, (255, 255, 255), 1, cv2.LINE_AA
        )

    def show(self, frame: np.ndarray) -> bool:
        """
        Display frame in window.

        Returns:
            False if user pressed 'q' to quit
        """
        if not self._window_created:
            cv2.namedWindow(self.window_name, cv2.WINDOW_NORMAL)
            self._window_created = True

        cv2.imshow(self.window_name, cv2.resize(frame, self.display_size))
        key = cv2.waitKey(1) & 0xFF
        return key != ord('q')

    def cleanup(self):
        """Close display window."""
        if self._window_created:
            cv2.destroyWindow(self.window_name)
            self._window_created = False
