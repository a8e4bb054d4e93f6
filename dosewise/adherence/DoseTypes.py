"""
Dose vocabulary shared by every adherence component.

Labels are the classifier's class names in canonical form (lowercase,
underscore-separated). A label maps to at most one DoseType.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple


class DoseType(str, Enum):
    """A scheduled medication slot."""
    MORNING = 'morning'
    EVENING = 'evening'


# Classifier label vocabulary
NO_PILL = 'no_pill'
MULTIPLE_PILLS = 'multiple_pills'
PILL_MORNING = 'pill_morning'
PILL_EVENING = 'pill_evening'
PILL_AFTERNOON = 'pill_afternoon'  # declared by some models, not scheduled
BACKGROUND = 'background_join'     # Teachable Machine default background class

KNOWN_LABELS = (NO_PILL, MULTIPLE_PILLS, PILL_MORNING, PILL_EVENING, PILL_AFTERNOON)

# Never reach the ledger
IGNORED_LABELS = frozenset({NO_PILL, MULTIPLE_PILLS, BACKGROUND})


@dataclass(frozen=True)
class DoseSchedule:
    """Schedule for one DoseType."""
    dose_type: DoseType
    label: str
    scheduled_time: str          # "HH:MM", local time
    window_start_hour: int       # inclusive
    window_end_hour: int         # inclusive

    def accepts_hour(self, hour: int) -> bool:
        return self.window_start_hour <= hour <= self.window_end_hour

    @property
    def scheduled_hour_minute(self) -> Tuple[int, int]:
        hour, minute = self.scheduled_time.split(':')
        return int(hour), int(minute)


DEFAULT_SCHEDULES: Dict[DoseType, DoseSchedule] = {
    DoseType.MORNING: DoseSchedule(DoseType.MORNING, PILL_MORNING, "08:00", 7, 9),
    DoseType.EVENING: DoseSchedule(DoseType.EVENING, PILL_EVENING, "20:00", 19, 21),
}


_SEPARATORS = re.compile(r'[\s\-]+')


def normalize_label(label: Optional[str]) -> str:
    """
    Canonical label form: lowercase, stripped, spaces/hyphens to underscores.

    ``"Pill Morning"`` -> ``"pill_morning"``, ``"Background Join"`` -> ``"background_join"``.
    """
    if not label:
        return ''
    return _SEPARATORS.sub('_', label.strip().lower())


def label_words(label: str) -> str:
    """Human-readable form used in alert text: ``pill_morning`` -> ``pill morning``."""
    return label.replace('_', ' ')
