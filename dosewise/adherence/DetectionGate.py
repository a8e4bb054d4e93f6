"""
Detection gate: reduce one classifier call to a single winning detection.

Per sampling tick:
1. Pick the highest-probability prediction (first seen wins ties)
2. Build the overlay instruction (green if on schedule, red otherwise,
   nothing for no_pill)
3. Forward to the adherence pipeline only above the confidence threshold
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Tuple

from dosewise.adherence.DoseTypes import NO_PILL, normalize_label
from dosewise.adherence.SchedulePolicy import SchedulePolicy
from dosewise.classifier.BaseClassifier import Prediction


@dataclass(frozen=True)
class Detection:
    """Winning classifier output for one tick."""
    label: str
    confidence: float


@dataclass(frozen=True)
class RenderInstruction:
    """Overlay to draw for the current detection."""
    box: Tuple[int, int, int, int]      # x1, y1, x2, y2 on the detection canvas
    color: Tuple[int, int, int]         # BGR
    caption: str
    schedule_valid: bool


@dataclass(frozen=True)
class GateResult:
    """Outcome of one sampling tick."""
    detection: Detection
    forward: bool
    render: Optional[RenderInstruction]


class DetectionGate:
    """
    Confidence gate between the classifier and the adherence ledger.
    """

    VALID_COLOR = (102, 170, 0)     # #00AA66
    INVALID_COLOR = (51, 51, 221)   # #DD3333
    OVERLAY_BOX = (100, 100, 540, 380)

    def __init__(self, policy: SchedulePolicy, confidence_threshold: float = 0.75):
        self.policy = policy
        self.confidence_threshold = confidence_threshold

    @staticmethod
    def select_best(predictions: Iterable[Prediction]) -> Optional[Detection]:
        """
        Highest probability wins; ties keep the first-seen prediction.

        Returns None for an empty prediction set.
        """
        best: Optional[Prediction] = None
        for prediction in predictions:
            if best is None or prediction.probability > best.probability:
                best = prediction
        if best is None:
            return None
        return Detection(label=normalize_label(best.label), confidence=float(best.probability))

    def passes_threshold(self, confidence: float) -> bool:
        return confidence > self.confidence_threshold

    def render_for(self, detection: Detection, now: Optional[datetime] = None) -> Optional[RenderInstruction]:
        if detection.label == NO_PILL:
            return None
        valid = self.policy.is_valid_now(detection.label, now).is_valid
        return RenderInstruction(
            box=self.OVERLAY_BOX,
            color=self.VALID_COLOR if valid else self.INVALID_COLOR,
            caption=f"{detection.label} ({detection.confidence * 100:.0f}%)",
            schedule_valid=valid,
        )

    def evaluate(self, predictions: Iterable[Prediction], now: Optional[datetime] = None) -> Optional[GateResult]:
        """
        Gate one classifier invocation.

        Returns None when there is nothing to act on (no candidates).
        """
        detection = self.select_best(predictions)
        if detection is None:
            return None
        return GateResult(
            detection=detection,
            forward=self.passes_threshold(detection.confidence),
            render=self.render_for(detection, now),
        )
