"""
Reminder table - one row per reminder, one-shot or weekly recurring
"""

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Index, Integer, String

from dailyreminder.db.base import Base
from dailyreminder.utils.timezone import utc_now


class ReminderRecord(Base):
    __tablename__ = "reminders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=False)
    description = Column(String, nullable=False)
    time_in_millis = Column(BigInteger, nullable=False, index=True)  # UTC epoch millis of the next fire
    is_completed = Column(Boolean, nullable=False, default=False)
    repeat_days = Column(String, nullable=False, default="")  # e.g. "Mon,Wed"; empty for one-shot

    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    __table_args__ = (
        Index("ix_reminders_completed_time", "is_completed", "time_in_millis"),
    )
