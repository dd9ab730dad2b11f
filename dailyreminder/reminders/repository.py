from typing import Any, Callable, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import select

from .models import ReminderRecord
from .recurrence_models import Reminder, format_recurrence_days, parse_recurrence_days
from .schemas import ReminderCreate
from .errors import NotFound
from dailyreminder.utils.timezone import to_epoch_millis, utc_now


def to_domain(record: ReminderRecord) -> Reminder:
    return Reminder(
        id=record.id,
        title=record.title,
        description=record.description,
        fire_at_epoch_millis=record.time_in_millis,
        is_completed=bool(record.is_completed),
        recurrence_days=parse_recurrence_days(record.repeat_days),
    )


def create_reminder(db: Session, data: ReminderCreate) -> ReminderRecord:
    record = ReminderRecord(
        title=data.title,
        description=data.description,
        time_in_millis=to_epoch_millis(data.fire_at),
        is_completed=False,
        repeat_days=data.repeat_days,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def get_reminder(db: Session, reminder_id: int) -> Optional[ReminderRecord]:
    # the scheduler writes fire times through its own sessions
    return db.get(ReminderRecord, reminder_id, populate_existing=True)


def list_reminders(
    db: Session,
    include_completed: bool = True,
    limit: int = 100,
) -> List[ReminderRecord]:
    stmt = select(ReminderRecord).order_by(ReminderRecord.time_in_millis.asc(), ReminderRecord.id.asc()).limit(limit)
    stmt = stmt.execution_options(populate_existing=True)
    if not include_completed:
        stmt = stmt.where(ReminderRecord.is_completed == False)  # noqa: E712
    return list(db.execute(stmt).scalars())


def update_reminder(db: Session, reminder_id: int, **values: Any) -> Optional[ReminderRecord]:
    """Keyed update; the id never changes."""
    record = get_reminder(db, reminder_id)
    if not record:
        return None
    for name, value in values.items():
        setattr(record, name, value)
    record.updated_at = utc_now()
    db.commit()
    db.refresh(record)
    return record


def delete_reminder(db: Session, reminder_id: int) -> bool:
    record = get_reminder(db, reminder_id)
    if not record:
        return False
    db.delete(record)
    db.commit()
    return True


class SqlReminderStore:
    """Reminder store backed by the reminders table, one session per call"""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def load(self, reminder_id: int) -> Reminder:
        db = self.session_factory()
        try:
            record = get_reminder(db, reminder_id)
            if not record:
                raise NotFound(reminder_id)
            return to_domain(record)
        finally:
            db.close()

    def save(self, reminder: Reminder) -> Reminder:
        db = self.session_factory()
        try:
            record = update_reminder(
                db,
                reminder.id,
                title=reminder.title,
                description=reminder.description,
                time_in_millis=reminder.fire_at_epoch_millis,
                is_completed=reminder.is_completed,
                repeat_days=format_recurrence_days(reminder.recurrence_days),
            )
            if not record:
                raise NotFound(reminder.id)
            return to_domain(record)
        finally:
            db.close()
