"""
Tests for AlertStateMachine - feedback rules, lifetimes and the stale-timer guard.

Run with: python test_alert_state_machine.py
"""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from dosewise.adherence.AdherenceLedger import RecordOutcome
from dosewise.adherence.AlertStateMachine import AlertKind, AlertStateMachine
from dosewise.config.adherence_config import AdherenceConfig


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class ToneRecorder:
    def __init__(self, fail: bool = False):
        self.calls = 0
        self.fail = fail

    def __call__(self):
        self.calls += 1
        if self.fail:
            raise RuntimeError("audio device busy")


def _machine(tone=None):
    clock = FakeClock()
    tone = tone or ToneRecorder()
    return AlertStateMachine(config=AdherenceConfig(), audio_cue=tone, clock=clock), clock, tone


def test_accepted_shows_success_and_plays_tone():
    machine, clock, tone = _machine()
    alert = machine.on_detection("pill_morning", RecordOutcome.ACCEPTED)

    assert alert.kind == AlertKind.SUCCESS
    assert alert.message == "pill morning Taken!"
    assert tone.calls == 1
    assert machine.state == "success"

    clock.advance(4.9)
    assert machine.state == "success"
    clock.advance(0.2)
    assert machine.state == "empty", "success lasts 5 seconds"
    print("PASS test_accepted_shows_success_and_plays_tone")


def test_not_scheduled_medication_warns():
    machine, _clock, tone = _machine()
    alert = machine.on_detection("pill_evening", RecordOutcome.NOT_SCHEDULED)
    assert alert.kind == AlertKind.WARNING
    assert alert.message == "pill evening is not scheduled for now."
    assert tone.calls == 0
    print("PASS test_not_scheduled_medication_warns")


def test_already_taken_only_identifies():
    machine, clock, _tone = _machine()
    alert = machine.on_detection("pill_morning", RecordOutcome.ALREADY_TAKEN)
    assert alert.kind == AlertKind.INFO
    assert alert.message == "Identification: pill morning detected."
    clock.advance(3.01)
    assert machine.current() is None, "info lasts 3 seconds"
    print("PASS test_already_taken_only_identifies")


def test_ignored_label_leaves_state_alone():
    machine, _clock, _tone = _machine()
    assert machine.on_detection("no_pill", RecordOutcome.IGNORED) is None
    assert machine.state == "empty"
    print("PASS test_ignored_label_leaves_state_alone")


def test_stale_timer_does_not_clear_newer_alert():
    machine, clock, _tone = _machine()
    first = machine.on_detection("pill_morning", RecordOutcome.ALREADY_TAKEN)  # info, 3s
    clock.advance(2.5)
    second = machine.on_detection("pill_morning", RecordOutcome.ACCEPTED)     # success, 5s

    assert machine.clear(first.alert_id) is False, "stale id must not clear the newer alert"
    clock.advance(1.0)  # first alert's deadline has passed
    assert machine.current() is second
    clock.advance(4.1)
    assert machine.current() is None
    print("PASS test_stale_timer_does_not_clear_newer_alert")


def test_tone_failure_is_swallowed():
    machine, _clock, tone = _machine(ToneRecorder(fail=True))
    alert = machine.on_detection("pill_morning", RecordOutcome.ACCEPTED)
    assert alert.kind == AlertKind.SUCCESS
    assert tone.calls == 1
    print("PASS test_tone_failure_is_swallowed")


def test_operator_alerts():
    machine, clock, _tone = _machine()
    assert machine.model_loaded().message == "AI Model Loaded Successfully!"
    clock.advance(3.1)
    assert machine.state == "empty"

    failed = machine.model_load_failed()
    assert failed.kind == AlertKind.WARNING
    clock.advance(3600)
    assert machine.current() is failed, "load failure stays until superseded"

    missing = machine.classifier_missing()
    assert missing.message == "Please provide a valid Model URL first"
    assert machine.current() is missing
    print("PASS test_operator_alerts")


if __name__ == "__main__":
    test_accepted_shows_success_and_plays_tone()
    test_not_scheduled_medication_warns()
    test_already_taken_only_identifies()
    test_ignored_label_leaves_state_alone()
    test_stale_timer_does_not_clear_newer_alert()
    test_tone_failure_is_swallowed()
    test_operator_alerts()
    print("\nAll alert state machine tests passed!")
