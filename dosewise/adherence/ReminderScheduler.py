"""
Reminder scheduler: one notification per untaken dose, per day.

sweep() is driven once per minute. A dose is due for a reminder only at the
exact minute scheduled_time + grace; a sweep that misses that minute
(sleep, suspend) skips the reminder for the day.
"""

from datetime import date, datetime, timedelta
from typing import Callable, List, Optional, Set, Tuple

from dosewise.adherence.AdherenceLedger import AdherenceLedger
from dosewise.adherence.DoseTypes import DoseType
from dosewise.notify.Notifier import BaseNotifier
from dosewise.utils.AppLogging import logger


class ReminderScheduler:
    """
    Compares wall-clock time against unmet dose slots.

    Args:
        ledger: Ledger to read today's slots from (read-only)
        notifier: Notification collaborator
        grace_minutes: Minutes after the scheduled time the reminder fires
        title: Notification title
        clock: Returns the current local datetime
    """

    def __init__(
        self,
        ledger: AdherenceLedger,
        notifier: BaseNotifier,
        grace_minutes: int = 15,
        title: str = "DoseWise Reminder",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.ledger = ledger
        self.notifier = notifier
        self.grace_minutes = grace_minutes
        self.title = title
        self._clock = clock or datetime.now
        self._fired: Set[Tuple[date, DoseType]] = set()

    def reminder_time(self, dose_type: DoseType) -> Tuple[int, int]:
        """(hour, minute) at which *dose_type*'s reminder is due."""
        hour, minute = self.ledger.policy.schedule_for(dose_type).scheduled_hour_minute
        due = datetime(2000, 1, 1, hour, minute) + timedelta(minutes=self.grace_minutes)
        return due.hour, due.minute

    def sweep(self, now: Optional[datetime] = None) -> List[DoseType]:
        """
        Fire reminders due at this exact minute.

        Returns:
            DoseTypes a reminder was sent for.
        """
        now = now or self._clock()
        today = now.date()
        fired = []

        for dose_type in self.ledger.policy.schedules:
            if self.reminder_time(dose_type) != (now.hour, now.minute):
                continue
            if (today, dose_type) in self._fired:
                continue
            if self.ledger.is_taken(dose_type, today):
                continue

            self._fired.add((today, dose_type))
            body = f"Reminder: Time to take your {dose_type.value} medication"
            logger.info(f"[ReminderScheduler] {dose_type.value} dose not taken by {now:%H:%M}, notifying")
            self.notifier.notify(self.title, body)
            fired.append(dose_type)

        # Only today's one-shot markers matter
        self._fired = {entry for entry in self._fired if entry[0] == today}
        return fired

    def reset(self) -> None:
        self._fired.clear()
