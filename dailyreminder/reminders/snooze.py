"""
Snooze durations and the snooze resolver
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Union

from .config import settings
from .errors import InvalidDuration
from .recurrence_models import Reminder
from .registrations import RegistrationKey


class SnoozePreset(Enum):
    """Snooze buttons shown on a fired reminder (minutes)"""
    FIVE = 5
    TEN = 10
    FIFTEEN = 15

    @property
    def duration(self) -> timedelta:
        return timedelta(minutes=self.value)

    @property
    def label(self) -> str:
        return f"Snooze {self.value}m"


DEFAULT_SNOOZE = timedelta(minutes=settings.DEFAULT_SNOOZE_MINUTES)

SnoozeDuration = Union[timedelta, SnoozePreset, int]


def to_timedelta(duration: SnoozeDuration) -> timedelta:
    """Normalize a snooze duration; plain integers are milliseconds."""
    if isinstance(duration, SnoozePreset):
        return duration.duration
    if isinstance(duration, timedelta):
        return duration
    if isinstance(duration, int) and not isinstance(duration, bool):
        return timedelta(milliseconds=duration)
    raise InvalidDuration(duration)


def duration_millis(duration: timedelta) -> int:
    return duration // timedelta(milliseconds=1)


def validate_duration(duration: SnoozeDuration) -> timedelta:
    delta = to_timedelta(duration)
    if delta <= timedelta(0):
        raise InvalidDuration(duration)
    return delta


def snooze_key(reminder_id: int, duration: SnoozeDuration) -> RegistrationKey:
    """Registration key for a snooze of this length; one bucket per duration."""
    return RegistrationKey.snooze(reminder_id, duration_millis(validate_duration(duration)))


@dataclass(frozen=True)
class SnoozedAlarm:
    """A snoozed copy of a reminder, registered apart from its series alarm"""
    reminder_id: int
    title: str
    description: str
    fire_at: datetime
    duration: timedelta
    key: RegistrationKey


def resolve_snooze(reminder: Reminder, duration: SnoozeDuration, now: datetime) -> SnoozedAlarm:
    """Compute ``now + duration`` for a snooze of ``reminder``.

    Raises InvalidDuration for zero or negative durations.
    """
    delta = validate_duration(duration)
    return SnoozedAlarm(
        reminder_id=reminder.id,
        title=reminder.title,
        description=reminder.description,
        fire_at=now + delta,
        duration=delta,
        key=RegistrationKey.snooze(reminder.id, duration_millis(delta)),
    )
