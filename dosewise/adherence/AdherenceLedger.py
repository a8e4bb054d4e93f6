"""
Adherence ledger: the authoritative per-day record of doses taken.

Responsibilities:
- One taken-event per (day, DoseType); a taken slot is never overwritten
- Lazy creation of today's DayLog on the first accepted dose
- Streak and running totals
- Full-snapshot persistence to the blob store after every accepted dose

All mutation goes through record() and reset().
"""

import json
import threading
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

from dosewise.adherence.DoseTypes import IGNORED_LABELS, DoseType, normalize_label
from dosewise.adherence.SchedulePolicy import SchedulePolicy
from dosewise.constants import (
    DOC_ADHERENCE_LOG,
    DOC_CURRENT_STREAK,
    DOC_TOTAL_SCHEDULED,
    DOC_TOTAL_TAKEN,
    adherence_data_key,
)
from dosewise.utils.AppLogging import logger


class RecordOutcome(str, Enum):
    ACCEPTED = 'accepted'
    ALREADY_TAKEN = 'already_taken'
    NOT_SCHEDULED = 'not_scheduled'
    IGNORED = 'ignored'


@dataclass
class DoseRecord:
    """One dose slot of one day."""
    scheduled: str
    taken: Optional[str] = None          # "HH:MM" local time, set once
    pill_type: Optional[str] = None      # label observed when taken

    def to_dict(self) -> Dict[str, Any]:
        return {"scheduled": self.scheduled, "taken": self.taken, "pillType": self.pill_type}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]], default_scheduled: str) -> 'DoseRecord':
        data = data or {}
        return cls(
            scheduled=data.get("scheduled") or default_scheduled,
            taken=data.get("taken") or None,
            pill_type=data.get("pillType"),
        )


@dataclass
class DayLog:
    """All dose slots of one calendar day."""
    date: str  # ISO yyyy-mm-dd
    doses: Dict[DoseType, DoseRecord] = field(default_factory=dict)

    def slot(self, dose_type: DoseType) -> DoseRecord:
        return self.doses[dose_type]

    def is_taken(self, dose_type: DoseType) -> bool:
        record = self.doses.get(dose_type)
        return record is not None and record.taken is not None

    @property
    def taken_count(self) -> int:
        return sum(1 for record in self.doses.values() if record.taken)

    @property
    def any_taken(self) -> bool:
        return self.taken_count > 0

    @property
    def status(self) -> str:
        """Calendar status: full, partial or none."""
        taken = self.taken_count
        if taken and taken == len(self.doses):
            return 'full'
        return 'partial' if taken else 'none'

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"date": self.date}
        for dose_type, record in self.doses.items():
            data[dose_type.value] = record.to_dict()
        return data


@dataclass
class Stats:
    """Derived view over the ledger."""
    current_streak: int = 0
    total_taken: int = 0
    total_scheduled: int = 0

    @property
    def adherence_rate(self) -> int:
        """Whole-number percentage of scheduled doses taken."""
        if self.total_scheduled <= 0:
            return 0
        return round(self.total_taken / self.total_scheduled * 100)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currentStreak": self.current_streak,
            "totalPillsTaken": self.total_taken,
            "totalPillsScheduled": self.total_scheduled,
            "adherenceRate": self.adherence_rate,
        }


def compute_streak(day_logs: Iterable[DayLog]) -> int:
    """
    Consecutive most-recent days with at least one dose taken.

    Walks from the newest date backwards and stops at the first day where
    no slot is taken. One dose is enough to keep a day.
    """
    streak = 0
    for day in sorted(day_logs, key=lambda d: d.date, reverse=True):
        if not day.any_taken:
            break
        streak += 1
    return streak


class AdherenceLedger:
    """
    Ordered collection of DayLogs plus running stats.

    Args:
        store: Blob store with get_blob/set_blob (None = memory only)
        policy: Schedule policy used to validate dose labels
        clock: Returns the current local datetime
    """

    def __init__(
        self,
        store=None,
        policy: Optional[SchedulePolicy] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.policy = policy or SchedulePolicy()
        self._clock = clock or datetime.now
        self._lock = threading.RLock()

        self._days: Dict[str, DayLog] = {}
        self.stats = Stats()

    # ------------------------------------------------------------------
    # Loading / persistence
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Restore ledger and stats from the blob store."""
        if self.store is None:
            return
        raw = self.store.get_blob(adherence_data_key)
        if not raw:
            logger.info("[AdherenceLedger] No persisted adherence data, starting empty")
            return
        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"[AdherenceLedger] Persisted adherence data is unreadable, starting empty: {e}")
            return
        with self._lock:
            self._apply_document(document)
        logger.info(
            f"[AdherenceLedger] Loaded {len(self._days)} day(s), "
            f"streak={self.stats.current_streak}, taken={self.stats.total_taken}"
        )

    def _apply_document(self, document: Dict[str, Any]) -> None:
        self._days = {}
        for entry in document.get(DOC_ADHERENCE_LOG) or []:
            day = self._day_from_dict(entry)
            self._days[day.date] = day
        self.stats = Stats(
            current_streak=compute_streak(self._days.values()),
            total_taken=int(document.get(DOC_TOTAL_TAKEN) or 0),
            total_scheduled=int(document.get(DOC_TOTAL_SCHEDULED) or 0),
        )

    def _day_from_dict(self, entry: Dict[str, Any]) -> DayLog:
        doses = {}
        for dose_type, schedule in self.policy.schedules.items():
            doses[dose_type] = DoseRecord.from_dict(entry.get(dose_type.value), schedule.scheduled_time)
        return DayLog(date=entry["date"], doses=doses)

    def to_document(self) -> Dict[str, Any]:
        """Full JSON-serializable snapshot (ledger + stats)."""
        with self._lock:
            return {
                DOC_ADHERENCE_LOG: [day.to_dict() for day in self.day_logs()],
                DOC_CURRENT_STREAK: self.stats.current_streak,
                DOC_TOTAL_TAKEN: self.stats.total_taken,
                DOC_TOTAL_SCHEDULED: self.stats.total_scheduled,
            }

    @classmethod
    def from_document(cls, document: Dict[str, Any], policy: Optional[SchedulePolicy] = None) -> 'AdherenceLedger':
        """Read-only ledger built from a persisted document (used by the dashboard)."""
        ledger = cls(store=None, policy=policy)
        ledger._apply_document(document or {})
        return ledger

    def _persist(self) -> None:
        if self.store is None:
            return
        self.store.set_blob(adherence_data_key, json.dumps(self.to_document()))

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record(self, label: str, confidence: float, now: Optional[datetime] = None) -> RecordOutcome:
        """
        Record a confident detection.

        Returns:
            IGNORED for non-dose labels, ALREADY_TAKEN when today's slot is
            filled, NOT_SCHEDULED outside the acceptance window, ACCEPTED
            after the dose has been written and persisted.
        """
        label = normalize_label(label)
        if label in IGNORED_LABELS:
            return RecordOutcome.IGNORED

        dose_type = self.policy.dose_type_for(label)
        if dose_type is None:
            # Unscheduled labels are never ledger entries
            return RecordOutcome.NOT_SCHEDULED

        now = now or self._clock()
        day_key = now.date().isoformat()

        with self._lock:
            existing = self._days.get(day_key)
            if existing is not None and existing.is_taken(dose_type):
                logger.debug(f"[AdherenceLedger] {dose_type.value} already taken on {day_key}")
                return RecordOutcome.ALREADY_TAKEN

            if not self.policy.is_valid_now(label, now).is_valid:
                logger.info(f"[AdherenceLedger] {label} at {now:%H:%M} is outside its window")
                return RecordOutcome.NOT_SCHEDULED

            day = existing or self._create_day(day_key)
            slot = day.slot(dose_type)
            slot.taken = now.strftime("%H:%M")
            slot.pill_type = label

            self.stats.total_taken += 1
            self.stats.current_streak = compute_streak(self._days.values())
            self._persist()

        logger.info(
            f"[AdherenceLedger] ACCEPTED {label} ({confidence:.2f}) at {slot.taken} on {day_key}, "
            f"streak={self.stats.current_streak}, taken={self.stats.total_taken}"
        )
        return RecordOutcome.ACCEPTED

    def _create_day(self, day_key: str) -> DayLog:
        doses = {
            dose_type: DoseRecord(scheduled=schedule.scheduled_time, pill_type=schedule.label)
            for dose_type, schedule in self.policy.schedules.items()
        }
        day = DayLog(date=day_key, doses=doses)
        self._days[day_key] = day
        self.stats.total_scheduled += len(doses)
        logger.debug(f"[AdherenceLedger] Created day log {day_key}")
        return day

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def day_logs(self) -> List[DayLog]:
        """All DayLogs ordered by date ascending."""
        with self._lock:
            return [self._days[key] for key in sorted(self._days)]

    def get_day(self, day: date) -> Optional[DayLog]:
        return self._days.get(day.isoformat())

    def is_taken(self, dose_type: DoseType, day: date) -> bool:
        log = self.get_day(day)
        return log is not None and log.is_taken(dose_type)

    def today(self, now: Optional[datetime] = None) -> DayLog:
        """Today's log, or an untaken placeholder (not inserted) when absent."""
        now = now or self._clock()
        existing = self.get_day(now.date())
        if existing is not None:
            return existing
        return DayLog(
            date=now.date().isoformat(),
            doses={
                dose_type: DoseRecord(scheduled=schedule.scheduled_time)
                for dose_type, schedule in self.policy.schedules.items()
            },
        )

    def week_view(self, days: int = 7) -> List[Dict[str, Any]]:
        """Most recent *days* logged days, oldest first, with calendar status."""
        return [
            {
                "date": day.date,
                "day": day.date.split('-')[2],
                "takenCount": day.taken_count,
                "status": day.status,
            }
            for day in self.day_logs()[-days:]
        ]

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Drop all days and zero the stats (blob keys are cleared by the session)."""
        with self._lock:
            self._days = {}
            self.stats = Stats()
        logger.info("[AdherenceLedger] Ledger reset")
