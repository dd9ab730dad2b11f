"""
Alarm delivery: what happens when a registered alarm goes off or a snooze
button on the resulting notification is pressed.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Protocol, Union
import logging

from .config import settings
from .errors import NotFound, ReminderError
from .recurrence_models import Reminder
from .registrations import RegistrationKey
from .scheduler import SchedulingService
from .snooze import DEFAULT_SNOOZE, SnoozedAlarm, duration_millis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SnoozeAction:
    label: str
    duration_ms: int
    # reminder id + minutes; unique among one notification's buttons only
    request_code: int


@dataclass(frozen=True)
class ReminderNotification:
    reminder_id: int
    title: str
    body: str
    channel_id: str
    actions: List[SnoozeAction] = field(default_factory=list)


class Notifier(Protocol):
    def notify(self, notification: ReminderNotification) -> None:
        ...

    def dismiss(self, reminder_id: int) -> None:
        ...


class LoggingNotifier:
    """Notifier that only writes to the log"""

    def notify(self, notification: ReminderNotification) -> None:
        logger.info(
            f"🔔 [Reminder] {notification.title}: {notification.body} "
            f"(actions={[a.label for a in notification.actions]})"
        )

    def dismiss(self, reminder_id: int) -> None:
        logger.info(f"Dismissed notification for reminder {reminder_id}")


def build_notification(reminder: Reminder) -> ReminderNotification:
    actions = [
        SnoozeAction(
            label=f"Snooze {minutes}m",
            duration_ms=minutes * 60 * 1000,
            request_code=reminder.id + minutes,
        )
        for minutes in settings.SNOOZE_PRESETS_MINUTES
    ]
    return ReminderNotification(
        reminder_id=reminder.id,
        title=reminder.title or settings.DEFAULT_NOTIFICATION_TITLE,
        body=reminder.description or settings.DEFAULT_NOTIFICATION_BODY,
        channel_id=settings.NOTIFICATION_CHANNEL_ID,
        actions=actions,
    )


class AlarmDispatcher:
    """Entry point for the host's alarm and notification-action callbacks"""

    def __init__(self, scheduler: SchedulingService, notifier: Optional[Notifier] = None):
        self.scheduler = scheduler
        self.notifier = notifier or LoggingNotifier()

    def handle_alarm(self, key: Union[RegistrationKey, str]) -> Optional[ReminderNotification]:
        """Re-arm if recurring, then show the notification.

        Alarms for reminders that no longer exist, or that were completed,
        are dropped without a notification. A failed re-arm is logged and the
        notification is still shown; the reminder stays unarmed until it is
        scheduled again.
        """
        if isinstance(key, str):
            key = RegistrationKey.from_token(key)
        try:
            self.scheduler.on_fired(key.reminder_id, key)
        except NotFound:
            logger.warning(f"Alarm {key} fired for a deleted reminder; ignoring")
            return None
        except ReminderError as e:
            logger.error(f"Re-arming reminder {key.reminder_id} after {key} failed: {e}")

        try:
            reminder = self.scheduler.store.load(key.reminder_id)
        except NotFound:
            logger.warning(f"Alarm {key} fired for a deleted reminder; ignoring")
            return None
        if reminder.is_completed:
            logger.info(f"Alarm {key} fired for completed reminder {reminder.id}; not notifying")
            return None

        notification = build_notification(reminder)
        self.notifier.notify(notification)
        return notification

    def handle_snooze_action(self, reminder_id: int, duration_ms: Optional[int] = None) -> SnoozedAlarm:
        """Snooze button pressed: register the snooze and clear the notification."""
        if duration_ms is None:
            duration_ms = duration_millis(DEFAULT_SNOOZE)
        snoozed = self.scheduler.on_snooze_requested(reminder_id, duration_ms)
        self.notifier.dismiss(reminder_id)
        return snoozed

    def run_due(self, backend, now: datetime) -> int:
        """Deliver due alarms from an in-process backend."""
        return backend.fire_due(now, self.handle_alarm)
