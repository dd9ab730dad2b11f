"""
Reminder lifecycle: create, edit, complete and delete, keeping alarms in step
"""
from typing import List
import logging

from sqlalchemy.orm import Session

from .errors import InvalidReminder, NotFound
from .recurrence_models import Reminder
from .repository import (
    create_reminder as repo_create_reminder,
    delete_reminder as repo_delete_reminder,
    get_reminder as repo_get_reminder,
    list_reminders as repo_list_reminders,
    to_domain,
    update_reminder as repo_update_reminder,
)
from .scheduler import SchedulingService
from .schemas import ReminderCreate, ReminderUpdate
from dailyreminder.utils.timezone import to_epoch_millis

logger = logging.getLogger(__name__)


class ReminderService:
    """Reminder CRUD with scheduling side effects.

    Edits are keyed updates: the reminder id, and so its registration key,
    survives every edit. Alarms are only touched when the fire time, the
    recurrence days or the completion flag actually change.
    """

    def __init__(self, db: Session, scheduler: SchedulingService):
        self.db = db
        self.scheduler = scheduler

    def create_reminder(self, data: ReminderCreate) -> Reminder:
        """Store a new reminder and schedule it.

        If scheduling is denied the reminder stays stored and SchedulingDenied
        propagates; call ``schedule`` again once permission is granted.
        """
        self._reject_past(data.fire_at)
        record = repo_create_reminder(self.db, data)
        reminder = to_domain(record)
        logger.info(f"Created reminder {reminder.id} ({reminder.title!r})")

        instant = self.scheduler.schedule(reminder)
        return reminder.with_fire_at(instant)

    def update_reminder(self, reminder_id: int, data: ReminderUpdate) -> Reminder:
        record = repo_get_reminder(self.db, reminder_id)
        if not record:
            raise NotFound(reminder_id)

        values = data.model_dump(exclude_unset=True, exclude_none=True)
        changes = {}
        if "title" in values:
            changes["title"] = values["title"]
        if "description" in values:
            changes["description"] = values["description"]
        if "fire_at" in values:
            self._reject_past(values["fire_at"])
            changes["time_in_millis"] = to_epoch_millis(values["fire_at"])
        if "repeat_days" in values:
            changes["repeat_days"] = values["repeat_days"]
        if "is_completed" in values:
            changes["is_completed"] = values["is_completed"]

        timing_changed = (
            changes.get("time_in_millis", record.time_in_millis) != record.time_in_millis
            or changes.get("repeat_days", record.repeat_days) != record.repeat_days
        )
        completion_changed = changes.get("is_completed", record.is_completed) != record.is_completed

        record = repo_update_reminder(self.db, reminder_id, **changes)
        reminder = to_domain(record)

        if reminder.is_completed:
            if completion_changed:
                self.scheduler.cancel(reminder.id)
        elif timing_changed or completion_changed:
            reminder = reminder.with_fire_at(self.scheduler.schedule(reminder))
        return reminder

    def toggle_completion(self, reminder_id: int) -> Reminder:
        record = repo_get_reminder(self.db, reminder_id)
        if not record:
            raise NotFound(reminder_id)
        return self.update_reminder(reminder_id, ReminderUpdate(is_completed=not record.is_completed))

    def delete_reminder(self, reminder_id: int) -> None:
        """Cancel pending alarms, then remove the reminder."""
        if not repo_get_reminder(self.db, reminder_id):
            raise NotFound(reminder_id)
        self.scheduler.cancel(reminder_id)
        repo_delete_reminder(self.db, reminder_id)
        logger.info(f"Deleted reminder {reminder_id}")

    def get_reminder(self, reminder_id: int) -> Reminder:
        record = repo_get_reminder(self.db, reminder_id)
        if not record:
            raise NotFound(reminder_id)
        return to_domain(record)

    def list_reminders(self, include_completed: bool = True, limit: int = 100) -> List[Reminder]:
        return [to_domain(r) for r in repo_list_reminders(self.db, include_completed=include_completed, limit=limit)]

    def _reject_past(self, fire_at) -> None:
        if to_epoch_millis(fire_at) < to_epoch_millis(self.scheduler.clock()):
            raise InvalidReminder("Time cannot be in the past")
