"""
Tests for ReminderScheduler - exact-minute, one-shot missed-dose reminders.

Run with: python test_reminder_scheduler.py
"""

import os
import sys
from datetime import datetime

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from dosewise.adherence.AdherenceLedger import AdherenceLedger
from dosewise.adherence.DoseTypes import DoseType
from dosewise.adherence.ReminderScheduler import ReminderScheduler
from dosewise.notify.Notifier import RecordingNotifier


def _at(day: int, hour: int, minute: int, second: int = 0) -> datetime:
    return datetime(2026, 3, day, hour, minute, second)


def _scheduler(notifier=None):
    ledger = AdherenceLedger()
    notifier = notifier or RecordingNotifier()
    return ledger, notifier, ReminderScheduler(ledger, notifier, grace_minutes=15)


def test_fires_at_grace_minute():
    _ledger, notifier, scheduler = _scheduler()
    assert scheduler.reminder_time(DoseType.MORNING) == (8, 15)
    assert scheduler.reminder_time(DoseType.EVENING) == (20, 15)

    assert scheduler.sweep(_at(14, 8, 14)) == []
    assert scheduler.sweep(_at(14, 8, 15, 30)) == [DoseType.MORNING]
    assert notifier.sent == [("DoseWise Reminder", "Reminder: Time to take your morning medication")]
    print("PASS test_fires_at_grace_minute")


def test_fires_once_per_minute():
    _ledger, notifier, scheduler = _scheduler()
    scheduler.sweep(_at(14, 8, 15, 0))
    scheduler.sweep(_at(14, 8, 15, 40))
    assert len(notifier.sent) == 1, "same minute must not notify twice"
    print("PASS test_fires_once_per_minute")


def test_missed_minute_is_not_caught_up():
    _ledger, notifier, scheduler = _scheduler()
    assert scheduler.sweep(_at(14, 8, 16)) == []
    assert notifier.sent == []
    print("PASS test_missed_minute_is_not_caught_up")


def test_taken_dose_suppresses_reminder():
    ledger, notifier, scheduler = _scheduler()
    ledger.record("pill_evening", 0.9, _at(14, 20, 1))
    assert scheduler.sweep(_at(14, 20, 15)) == []
    assert notifier.sent == []
    print("PASS test_taken_dose_suppresses_reminder")


def test_fires_again_next_day():
    _ledger, notifier, scheduler = _scheduler()
    scheduler.sweep(_at(14, 20, 15))
    scheduler.sweep(_at(15, 20, 15))
    assert len(notifier.sent) == 2
    print("PASS test_fires_again_next_day")


def test_permission_denied_skips_notification():
    _ledger, notifier, scheduler = _scheduler(RecordingNotifier(permission_granted=False))
    fired = scheduler.sweep(_at(14, 8, 15))
    assert fired == [DoseType.MORNING], "sweep still marks the slot as reminded"
    assert notifier.sent == []
    print("PASS test_permission_denied_skips_notification")


if __name__ == "__main__":
    test_fires_at_grace_minute()
    test_fires_once_per_minute()
    test_missed_minute_is_not_caught_up()
    test_taken_dose_suppresses_reminder()
    test_fires_again_next_day()
    test_permission_denied_skips_notification()
    print("\nAll reminder scheduler tests passed!")
