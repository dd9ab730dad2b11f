from datetime import datetime, timedelta
from typing import Dict
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dailyreminder.db.session import init_db
from dailyreminder.reminders.backends import InMemoryAlarmBackend
from dailyreminder.reminders.errors import NotFound
from dailyreminder.reminders.recurrence_models import Reminder
from dailyreminder.reminders.repository import SqlReminderStore
from dailyreminder.reminders.scheduler import SchedulingService
from dailyreminder.reminders.service import ReminderService
from dailyreminder.utils.timezone import to_epoch_millis

UTC = ZoneInfo("UTC")


def at(day: int, hour: int, minute: int = 0) -> datetime:
    """Instant on January <day>, 2024 (UTC)."""
    return datetime(2024, 1, day, hour, minute, tzinfo=UTC)


def make_reminder(reminder_id=1, fire_at=None, days=(), completed=False, title="Water plants", description="Balcony"):
    return Reminder(
        id=reminder_id,
        title=title,
        description=description,
        fire_at_epoch_millis=to_epoch_millis(fire_at or at(2, 12)),
        is_completed=completed,
        recurrence_days=frozenset(days),
    )


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class MemoryStore:
    def __init__(self, *reminders: Reminder):
        self.reminders: Dict[int, Reminder] = {r.id: r for r in reminders}

    def load(self, reminder_id: int) -> Reminder:
        if reminder_id not in self.reminders:
            raise NotFound(reminder_id)
        return self.reminders[reminder_id]

    def save(self, reminder: Reminder) -> Reminder:
        if reminder.id not in self.reminders:
            raise NotFound(reminder.id)
        self.reminders[reminder.id] = reminder
        return reminder


class RecordingBackend(InMemoryAlarmBackend):
    def __init__(self, exact_alarms_allowed: bool = True):
        super().__init__(exact_alarms_allowed=exact_alarms_allowed)
        self.register_calls = []
        self.cancel_calls = []

    def register(self, key, instant):
        self.register_calls.append((key, instant))
        return super().register(key, instant)

    def cancel(self, key):
        self.cancel_calls.append(key)
        super().cancel(key)


@pytest.fixture
def clock():
    # Tuesday 10:00
    return FakeClock(at(2, 10))


@pytest.fixture
def backend():
    return RecordingBackend()


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def memory_scheduler(backend, memory_store, clock):
    return SchedulingService(backend, memory_store, clock=clock)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def scheduler(backend, session_factory, clock):
    return SchedulingService(backend, SqlReminderStore(session_factory), clock=clock)


@pytest.fixture
def reminder_service(db, scheduler):
    return ReminderService(db, scheduler)

