"""
Tests for DetectionGate - winner selection, threshold and overlay instruction.

Run with: python test_detection_gate.py
"""

import os
import sys
from datetime import datetime

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from dosewise.adherence.DetectionGate import DetectionGate
from dosewise.adherence.SchedulePolicy import SchedulePolicy
from dosewise.classifier.BaseClassifier import Prediction

MORNING = datetime(2026, 3, 14, 8, 0)
AFTERNOON = datetime(2026, 3, 14, 14, 0)


def _gate(threshold: float = 0.75) -> DetectionGate:
    return DetectionGate(SchedulePolicy(), confidence_threshold=threshold)


def _preds(*pairs):
    return [Prediction(label, prob) for label, prob in pairs]


def test_highest_probability_wins():
    result = _gate().evaluate(_preds(("no_pill", 0.05), ("pill_morning", 0.9), ("pill_evening", 0.05)), MORNING)
    assert result.detection.label == "pill_morning"
    assert result.detection.confidence == 0.9
    assert result.forward
    print("PASS test_highest_probability_wins")


def test_tie_keeps_first_seen():
    detection = DetectionGate.select_best(_preds(("pill_evening", 0.5), ("pill_morning", 0.5)))
    assert detection.label == "pill_evening", "first-seen prediction should win a tie"
    print("PASS test_tie_keeps_first_seen")


def test_threshold_is_strict():
    gate = _gate()
    assert not gate.evaluate(_preds(("pill_morning", 0.75)), MORNING).forward, "0.75 must not forward"
    assert not gate.evaluate(_preds(("pill_morning", 0.60)), MORNING).forward
    assert gate.evaluate(_preds(("pill_morning", 0.7501)), MORNING).forward
    print("PASS test_threshold_is_strict")


def test_empty_predictions():
    assert _gate().evaluate([], MORNING) is None
    print("PASS test_empty_predictions")


def test_render_colors_follow_schedule():
    gate = _gate()
    valid = gate.evaluate(_preds(("pill_morning", 0.95)), MORNING).render
    assert valid.schedule_valid
    assert valid.color == DetectionGate.VALID_COLOR
    assert valid.caption == "pill_morning (95%)"
    assert valid.box == DetectionGate.OVERLAY_BOX

    invalid = gate.evaluate(_preds(("pill_morning", 0.95)), AFTERNOON).render
    assert not invalid.schedule_valid
    assert invalid.color == DetectionGate.INVALID_COLOR
    print("PASS test_render_colors_follow_schedule")


def test_no_pill_draws_nothing():
    result = _gate().evaluate(_preds(("no_pill", 0.99), ("pill_morning", 0.01)), MORNING)
    assert result.render is None, "no_pill must not produce an overlay"
    assert result.forward, "no_pill is still forwarded; the ledger ignores it"
    print("PASS test_no_pill_draws_nothing")


def test_below_threshold_still_renders():
    result = _gate().evaluate(_preds(("pill_evening", 0.4)), AFTERNOON)
    assert not result.forward
    assert result.render is not None
    assert result.render.caption == "pill_evening (40%)"
    print("PASS test_below_threshold_still_renders")


if __name__ == "__main__":
    test_highest_probability_wins()
    test_tie_keeps_first_seen()
    test_threshold_is_strict()
    test_empty_predictions()
    test_render_colors_follow_schedule()
    test_no_pill_draws_nothing()
    test_below_threshold_still_renders()
    print("\nAll detection gate tests passed!")
