"""
Scheduling service: keeps one pending alarm per reminder with the alarm backend
"""
from datetime import datetime
from typing import Callable, List, Optional, Protocol
import logging

from .backends import AlarmBackend, RegistrationResult
from .errors import RegistrationFailed, SchedulingDenied
from .metrics import (
    reminders_cancelled_total,
    reminders_fired_total,
    reminders_rearmed_total,
    reminders_scheduled_total,
    reminders_snoozed_total,
    scheduling_denied_total,
    scheduling_failed_total,
)
from .recurrence_models import RecurrenceCalculator, Reminder
from .registrations import AlarmPurpose, PendingRegistration, RegistrationKey, RegistrationLedger
from .snooze import SnoozeDuration, SnoozedAlarm, resolve_snooze, validate_duration
from dailyreminder.utils.timezone import now_local, to_epoch_millis

logger = logging.getLogger(__name__)


class ReminderStore(Protocol):
    """Persistence the scheduler reads reminders from"""

    def load(self, reminder_id: int) -> Reminder:
        """Return the reminder or raise NotFound"""
        ...

    def save(self, reminder: Reminder) -> Reminder:
        """Keyed update of an existing reminder"""
        ...


class SchedulingService:
    """Registers, replaces and cancels reminder alarms.

    Every reminder has at most one series registration (its primary
    schedule) plus any snooze registrations, one per snooze length. The
    ledger mirroring them is only touched after the backend call succeeded,
    so a refused or failed call leaves the previous state in place.
    """

    def __init__(
        self,
        backend: AlarmBackend,
        store: ReminderStore,
        clock: Callable[[], datetime] = now_local,
    ):
        self.backend = backend
        self.store = store
        self.clock = clock
        self.ledger = RegistrationLedger()

    def schedule(self, reminder: Reminder) -> datetime:
        """Register the reminder's next fire time, replacing anything pending.

        Raises NotFound for a reminder that is not stored, before anything is
        registered. Raises SchedulingDenied when the backend lacks exact-alarm
        authority; the caller should obtain it and call ``schedule`` again.
        If cancelling a stale snooze fails, the previous registrations are
        restored and RegistrationFailed is raised.
        """
        self.store.load(reminder.id)
        instant = RecurrenceCalculator.effective_fire_time(reminder, self.clock())
        key = RegistrationKey.series(reminder.id)
        previous = self.ledger.get(key)
        self._register(key, instant)

        # stale snoozes would fire with the pre-edit content
        cancelled = []
        try:
            for stale in self.ledger.keys_for(reminder.id):
                if stale != key:
                    fire_at = self.ledger.get(stale)
                    self._cancel(stale)
                    cancelled.append(PendingRegistration(stale, fire_at))
        except RegistrationFailed:
            self._restore(key, previous, cancelled)
            raise

        if to_epoch_millis(instant) != reminder.fire_at_epoch_millis:
            self.store.save(reminder.with_fire_at(instant))

        reminders_scheduled_total.inc()
        logger.info(f"Scheduled reminder {reminder.id} at {instant.isoformat()}")
        return instant

    def cancel(self, reminder_id: int) -> None:
        """Remove every pending registration of the reminder. Idempotent."""
        keys = set(self.ledger.keys_for(reminder_id))
        # the backend may hold a series alarm this ledger never saw (e.g. after a restart)
        keys.add(RegistrationKey.series(reminder_id))
        for key in sorted(keys):
            self._cancel(key)
        logger.info(f"Cancelled alarms for reminder {reminder_id}")

    def on_fired(self, reminder_id: int, key: Optional[RegistrationKey] = None) -> Optional[datetime]:
        """Handle delivery of a reminder alarm.

        A recurring, not completed reminder is re-registered strictly after
        the instant that fired. One-shot reminders and snooze alarms are not
        re-registered. Returns the new fire time, if any.
        """
        key = key or RegistrationKey.series(reminder_id)
        if key.reminder_id != reminder_id:
            raise ValueError(f"Key {key} does not belong to reminder {reminder_id}")

        reminder = self.store.load(reminder_id)
        fired_at = self.ledger.discard(key)
        reminders_fired_total.labels(purpose=key.purpose.value).inc()

        if key.purpose is AlarmPurpose.SNOOZE:
            logger.info(f"Snooze {key} fired for reminder {reminder_id}")
            return None
        if not reminder.is_recurring or reminder.is_completed:
            logger.info(f"Reminder {reminder_id} fired; not recurring or completed, nothing to re-arm")
            return None

        if fired_at is None:
            fired_at = reminder.fire_at
        now = self.clock()
        # weekday and time-of-day are evaluated in the clock's zone
        reference = max(now, fired_at).astimezone(now.tzinfo)
        next_at = RecurrenceCalculator.effective_fire_time(reminder, reference, inclusive=False)
        self._register(key, next_at)
        self.store.save(reminder.with_fire_at(next_at))

        reminders_rearmed_total.inc()
        logger.info(f"Re-armed recurring reminder {reminder_id} for {next_at.isoformat()}")
        return next_at

    def on_snooze_requested(self, reminder_id: int, duration: SnoozeDuration) -> SnoozedAlarm:
        """Register a one-shot snooze alarm at now + duration.

        The series registration and the stored fire time are left alone.
        """
        validate_duration(duration)
        reminder = self.store.load(reminder_id)
        snoozed = resolve_snooze(reminder, duration, self.clock())
        self._register(snoozed.key, snoozed.fire_at)

        reminders_snoozed_total.inc()
        logger.info(
            f"Snoozed reminder {reminder_id} for {snoozed.duration} until {snoozed.fire_at.isoformat()}"
        )
        return snoozed

    def pending(self, reminder_id: int) -> List[PendingRegistration]:
        return self.ledger.pending(reminder_id)

    def _register(self, key: RegistrationKey, instant: datetime) -> None:
        try:
            result = self.backend.register(key, instant)
        except Exception as e:
            scheduling_failed_total.inc()
            logger.error(f"Registering {key} failed: {e!r}")
            raise RegistrationFailed(key, str(e)) from e

        if result is RegistrationResult.DENIED:
            scheduling_denied_total.inc()
            logger.warning(f"Registration of {key} denied: exact alarm permission missing")
            raise SchedulingDenied(key)

        self.ledger.record(key, instant)

    def _cancel(self, key: RegistrationKey) -> None:
        try:
            self.backend.cancel(key)
        except Exception as e:
            scheduling_failed_total.inc()
            logger.error(f"Cancelling {key} failed: {e!r}")
            raise RegistrationFailed(key, str(e)) from e

        if self.ledger.discard(key) is not None:
            reminders_cancelled_total.inc()

    def _restore(
        self,
        key: RegistrationKey,
        previous: Optional[datetime],
        cancelled: List[PendingRegistration],
    ) -> None:
        """Put back the registrations a failed ``schedule`` replaced or cancelled."""
        restorations = [(p.key, p.fire_at) for p in cancelled]
        if previous is not None:
            restorations.append((key, previous))
        try:
            for pending_key, fire_at in restorations:
                self.backend.register(pending_key, fire_at)
                self.ledger.record(pending_key, fire_at)
            if previous is None:
                self.backend.cancel(key)
                self.ledger.discard(key)
        except Exception as e:
            scheduling_failed_total.inc()
            logger.error(f"Restoring registrations of reminder {key.reminder_id} failed: {e!r}")
