"""
Reminder entity and weekday recurrence
"""
from datetime import date, datetime, timedelta
from typing import FrozenSet, Iterable, Optional
from enum import Enum
from dataclasses import dataclass, field, replace
import logging

from dailyreminder.utils.timezone import (
    from_epoch_millis,
    get_zoneinfo,
    to_epoch_millis,
    to_utc_aware,
)

logger = logging.getLogger(__name__)


class Weekday(Enum):
    """Days of the week"""
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @property
    def tag(self) -> str:
        """Three-letter tag used by the day chips ("Sun".."Sat")"""
        return self.name[:3].title()

    @classmethod
    def from_tag(cls, tag: str) -> Optional["Weekday"]:
        return _TAGS.get(tag.strip().lower()[:3]) if tag else None

    @classmethod
    def of(cls, day: date) -> "Weekday":
        return cls(day.weekday())


_TAGS = {day.tag.lower(): day for day in Weekday}

# Display order of the day chips
WEEK_ORDER = (
    Weekday.SUNDAY, Weekday.MONDAY, Weekday.TUESDAY, Weekday.WEDNESDAY,
    Weekday.THURSDAY, Weekday.FRIDAY, Weekday.SATURDAY,
)


def parse_recurrence_days(raw: Optional[str]) -> FrozenSet[Weekday]:
    """Parse the stored comma-joined day list ("Mon,Wed") into a weekday set.

    Unknown tokens are dropped, so garbage collapses to an empty set and the
    reminder behaves as one-shot.
    """
    if not raw:
        return frozenset()
    days = set()
    for token in raw.split(","):
        day = Weekday.from_tag(token)
        if day is None:
            if token.strip():
                logger.debug("Ignoring unknown recurrence day %r", token)
            continue
        days.add(day)
    return frozenset(days)


def format_recurrence_days(days: Iterable[Weekday]) -> str:
    selected = set(days)
    return ",".join(day.tag for day in WEEK_ORDER if day in selected)


@dataclass(frozen=True)
class Reminder:
    """A stored reminder as seen by the scheduling core"""
    id: int
    title: str
    description: str
    fire_at_epoch_millis: int
    is_completed: bool = False
    recurrence_days: FrozenSet[Weekday] = field(default_factory=frozenset)

    @property
    def is_recurring(self) -> bool:
        return bool(self.recurrence_days)

    @property
    def fire_at(self) -> datetime:
        return from_epoch_millis(self.fire_at_epoch_millis)

    def with_fire_at(self, instant: datetime) -> "Reminder":
        return replace(self, fire_at_epoch_millis=to_epoch_millis(instant))


class RecurrenceCalculator:
    """Calculates the next fire time of a weekday-recurring reminder"""

    # Some weekday of the set always matches within a week
    MAX_DAY_STEPS = 7

    @staticmethod
    def next_fire_time(
        recurrence_days: Iterable[Weekday],
        now: datetime,
        stored_fire_at: datetime,
        inclusive: bool = True,
    ) -> datetime:
        """Next instant on a recurrence day at the stored local time-of-day.

        Weekday and time-of-day are evaluated in the zone of ``now`` (the
        configured default zone when ``now`` is naive). With ``inclusive`` a
        candidate equal to ``now`` is accepted, so a same-day tie resolves to
        today; otherwise the result is strictly after ``now``.

        An empty (or empty-after-filter) day set falls back to the stored
        absolute time.
        """
        days = {d for d in recurrence_days if isinstance(d, Weekday)}
        if not days:
            return to_utc_aware(stored_fire_at)

        tz = now.tzinfo if now.tzinfo is not None else get_zoneinfo()
        local_now = to_utc_aware(now).astimezone(tz)
        time_of_day = to_utc_aware(stored_fire_at).astimezone(tz).time()

        for step in range(RecurrenceCalculator.MAX_DAY_STEPS + 1):
            day = local_now.date() + timedelta(days=step)
            if Weekday.of(day) not in days:
                continue
            candidate = datetime.combine(day, time_of_day, tzinfo=tz)
            if candidate > local_now or (inclusive and candidate == local_now):
                return candidate

        # Any match at steps 1..7 is after now, and step 7 repeats today's weekday
        raise AssertionError(f"no occurrence within a week for {sorted(d.tag for d in days)}")

    @staticmethod
    def effective_fire_time(reminder: Reminder, now: datetime, inclusive: bool = True) -> datetime:
        """Fire time to register for a reminder: stored time when one-shot."""
        if not reminder.is_recurring:
            return reminder.fire_at
        return RecurrenceCalculator.next_fire_time(
            reminder.recurrence_days, now, reminder.fire_at, inclusive=inclusive
        )
