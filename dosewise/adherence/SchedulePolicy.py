"""
Schedule policy: is a detected label on schedule right now?
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

from dosewise.adherence.DoseTypes import DEFAULT_SCHEDULES, DoseSchedule, DoseType, normalize_label


@dataclass(frozen=True)
class ScheduleCheck:
    """Result of a schedule validity check."""
    is_valid: bool
    dose_type: Optional[DoseType] = None


class SchedulePolicy:
    """
    Maps dose labels to DoseTypes and checks the acceptance window.

    Stateless: the answer depends only on (label, now).
    """

    def __init__(self, schedules: Optional[Dict[DoseType, DoseSchedule]] = None):
        self.schedules = dict(schedules or DEFAULT_SCHEDULES)
        self._by_label = {schedule.label: schedule for schedule in self.schedules.values()}
        if len(self._by_label) != len(self.schedules):
            raise ValueError("Each dose label may be scheduled for only one DoseType")

    def dose_type_for(self, label: str) -> Optional[DoseType]:
        schedule = self._by_label.get(normalize_label(label))
        return schedule.dose_type if schedule else None

    def schedule_for(self, dose_type: DoseType) -> DoseSchedule:
        return self.schedules[dose_type]

    def is_valid_now(self, label: str, now: Optional[datetime] = None) -> ScheduleCheck:
        """
        Check whether *label* is acceptable at *now*.

        Non-dose labels (no_pill, multiple_pills, unknown) give
        ``ScheduleCheck(False, None)``. Dose labels outside their window give
        ``ScheduleCheck(False, dose_type)``.
        """
        schedule = self._by_label.get(normalize_label(label))
        if schedule is None:
            return ScheduleCheck(False, None)
        now = now or datetime.now()
        return ScheduleCheck(schedule.accepts_hour(now.hour), schedule.dose_type)
