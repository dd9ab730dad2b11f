from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional
import logging

from prometheus_client import start_http_server
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from dailyreminder.core.config import settings
from dailyreminder.core.logging import setup_logging
from dailyreminder.db.session import SessionLocal, engine, init_db
from dailyreminder.reminders.backends import AlarmBackend, InMemoryAlarmBackend
from dailyreminder.reminders.config import settings as reminder_settings
from dailyreminder.reminders.dispatcher import AlarmDispatcher, Notifier
from dailyreminder.reminders.repository import SqlReminderStore
from dailyreminder.reminders.scheduler import SchedulingService
from dailyreminder.reminders.service import ReminderService
from dailyreminder.utils.timezone import now_local

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    db: Session
    backend: AlarmBackend
    scheduler: SchedulingService
    reminders: ReminderService
    dispatcher: AlarmDispatcher

    def close(self) -> None:
        self.db.close()


def create_runtime(
    session_factory: Callable[[], Session] = SessionLocal,
    backend: Optional[AlarmBackend] = None,
    notifier: Optional[Notifier] = None,
    bind: Optional[Engine] = None,
    clock: Callable[[], datetime] = now_local,
    create_tables: bool = True,
) -> Runtime:
    """Wire store, scheduler, lifecycle service and dispatcher together."""
    if create_tables:
        init_db(bind or engine)

    backend = backend or InMemoryAlarmBackend()
    scheduler = SchedulingService(backend, SqlReminderStore(session_factory), clock=clock)
    db = session_factory()
    return Runtime(
        db=db,
        backend=backend,
        scheduler=scheduler,
        reminders=ReminderService(db, scheduler),
        dispatcher=AlarmDispatcher(scheduler, notifier),
    )


def start() -> Runtime:
    setup_logging()
    logger.info(f"Starting {settings.PROJECT_NAME} ({settings.ENVIRONMENT.value})...")
    if reminder_settings.METRICS_ENABLED:
        start_http_server(reminder_settings.METRICS_PORT)
        logger.info(f"Metrics exposed on :{reminder_settings.METRICS_PORT}")
    return create_runtime()
