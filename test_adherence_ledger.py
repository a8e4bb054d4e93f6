"""
Tests for AdherenceLedger - recording, idempotency, streaks and persistence.

Run with: python test_adherence_ledger.py
"""

import json
import os
import sys
import tempfile
from datetime import date, datetime

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from dosewise.adherence.AdherenceLedger import AdherenceLedger, RecordOutcome, compute_streak
from dosewise.adherence.DoseTypes import DoseType
from dosewise.constants import adherence_data_key
from dosewise.logging.Database import DatabaseManager


def _at(day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(2026, 3, day, hour, minute)


def _day_entry(day: str, morning: bool, evening: bool) -> dict:
    return {
        "date": day,
        "morning": {"scheduled": "08:00", "taken": "08:05" if morning else None, "pillType": "pill_morning"},
        "evening": {"scheduled": "20:00", "taken": "20:10" if evening else None, "pillType": "pill_evening"},
    }


def test_accept_morning_dose():
    ledger = AdherenceLedger()
    outcome = ledger.record("pill_morning", 0.9, _at(14, 8, 0))

    assert outcome == RecordOutcome.ACCEPTED
    assert ledger.stats.total_taken == 1
    assert ledger.stats.current_streak == 1
    assert ledger.stats.total_scheduled == 2, "a new day schedules both slots"

    day = ledger.get_day(date(2026, 3, 14))
    assert day.slot(DoseType.MORNING).taken == "08:00"
    assert day.slot(DoseType.MORNING).pill_type == "pill_morning"
    assert day.slot(DoseType.EVENING).taken is None
    print("PASS test_accept_morning_dose")


def test_record_is_idempotent_per_day():
    ledger = AdherenceLedger()
    first = ledger.record("pill_morning", 0.9, _at(14, 8, 0))
    second = ledger.record("pill_morning", 0.95, _at(14, 8, 30))

    assert first == RecordOutcome.ACCEPTED
    assert second == RecordOutcome.ALREADY_TAKEN
    assert ledger.stats.total_taken == 1, "duplicate detection must not count twice"
    assert ledger.get_day(date(2026, 3, 14)).slot(DoseType.MORNING).taken == "08:00"
    print("PASS test_record_is_idempotent_per_day")


def test_already_taken_wins_over_window():
    ledger = AdherenceLedger()
    ledger.record("pill_morning", 0.9, _at(14, 8))
    assert ledger.record("pill_morning", 0.9, _at(14, 15)) == RecordOutcome.ALREADY_TAKEN
    print("PASS test_already_taken_wins_over_window")


def test_out_of_window_is_not_scheduled_without_mutation():
    ledger = AdherenceLedger()
    outcome = ledger.record("pill_evening", 0.95, _at(14, 14, 0))

    assert outcome == RecordOutcome.NOT_SCHEDULED
    assert ledger.stats.total_taken == 0
    assert ledger.stats.total_scheduled == 0
    assert ledger.day_logs() == [], "rejected dose must not create a day"
    print("PASS test_out_of_window_is_not_scheduled_without_mutation")


def test_non_dose_labels():
    ledger = AdherenceLedger()
    assert ledger.record("no_pill", 0.99, _at(14, 8)) == RecordOutcome.IGNORED
    assert ledger.record("multiple_pills", 0.99, _at(14, 8)) == RecordOutcome.IGNORED
    assert ledger.record("pill_afternoon", 0.99, _at(14, 13)) == RecordOutcome.NOT_SCHEDULED
    assert ledger.day_logs() == []
    print("PASS test_non_dose_labels")


def test_streak_counts_consecutive_recent_days():
    ledger = AdherenceLedger()
    ledger.record("pill_morning", 0.9, _at(12, 8))
    ledger.record("pill_evening", 0.9, _at(13, 20))
    ledger.record("pill_morning", 0.9, _at(14, 8))
    assert ledger.stats.current_streak == 3
    assert ledger.stats.total_taken == 3
    assert ledger.stats.total_scheduled == 6
    print("PASS test_streak_counts_consecutive_recent_days")


def test_streak_breaks_on_empty_day():
    document = {
        "adherenceLog": [
            _day_entry("2026-03-12", True, False),
            _day_entry("2026-03-13", False, False),
            _day_entry("2026-03-14", True, True),
        ],
        "currentStreak": 99,
        "totalPillsTaken": 3,
        "totalPillsScheduled": 6,
    }
    ledger = AdherenceLedger.from_document(document)
    assert ledger.stats.current_streak == 1, "streak is recomputed from the log, not trusted"
    assert compute_streak(ledger.day_logs()) == 1
    assert ledger.stats.adherence_rate == 50
    print("PASS test_streak_breaks_on_empty_day")


def test_week_view_statuses():
    document = {
        "adherenceLog": [
            _day_entry("2026-03-12", True, True),
            _day_entry("2026-03-13", True, False),
            _day_entry("2026-03-14", False, False),
        ],
    }
    week = AdherenceLedger.from_document(document).week_view()
    assert [d["status"] for d in week] == ["full", "partial", "none"]
    assert [d["takenCount"] for d in week] == [2, 1, 0]
    assert week[0]["day"] == "12"
    print("PASS test_week_view_statuses")


def test_today_placeholder_is_not_inserted():
    ledger = AdherenceLedger()
    today = ledger.today(_at(14, 10))
    assert today.date == "2026-03-14"
    assert not today.any_taken
    assert ledger.day_logs() == []
    print("PASS test_today_placeholder_is_not_inserted")


def test_persist_and_reload():
    with tempfile.TemporaryDirectory() as tmp:
        db = DatabaseManager(os.path.join(tmp, "test.db"))
        ledger = AdherenceLedger(store=db)
        ledger.record("pill_morning", 0.9, _at(14, 8, 2))

        stored = json.loads(db.get_blob(adherence_data_key))
        assert stored["totalPillsTaken"] == 1
        assert stored["currentStreak"] == 1
        assert stored["adherenceLog"][0]["morning"]["taken"] == "08:02"

        reloaded = AdherenceLedger(store=db)
        reloaded.load()
        assert reloaded.stats.total_taken == 1
        assert reloaded.is_taken(DoseType.MORNING, date(2026, 3, 14))
        assert reloaded.record("pill_morning", 0.9, _at(14, 9)) == RecordOutcome.ALREADY_TAKEN
        db.close()
    print("PASS test_persist_and_reload")


def test_unreadable_document_starts_empty():
    with tempfile.TemporaryDirectory() as tmp:
        db = DatabaseManager(os.path.join(tmp, "test.db"))
        db.set_blob(adherence_data_key, "{not json")
        ledger = AdherenceLedger(store=db)
        ledger.load()
        assert ledger.day_logs() == []
        assert ledger.stats.total_taken == 0
        db.close()
    print("PASS test_unreadable_document_starts_empty")


def test_reset_zeroes_everything():
    ledger = AdherenceLedger()
    ledger.record("pill_morning", 0.9, _at(14, 8))
    ledger.reset()
    assert ledger.day_logs() == []
    assert ledger.stats.to_dict() == {
        "currentStreak": 0, "totalPillsTaken": 0, "totalPillsScheduled": 0, "adherenceRate": 0,
    }
    print("PASS test_reset_zeroes_everything")


if __name__ == "__main__":
    test_accept_morning_dose()
    test_record_is_idempotent_per_day()
    test_already_taken_wins_over_window()
    test_out_of_window_is_not_scheduled_without_mutation()
    test_non_dose_labels()
    test_streak_counts_consecutive_recent_days()
    test_streak_breaks_on_empty_day()
    test_week_view_statuses()
    test_today_placeholder_is_not_inserted()
    test_persist_and_reload()
    test_unreadable_document_starts_empty()
    test_reset_zeroes_everything()
    print("\nAll adherence ledger tests passed!")
