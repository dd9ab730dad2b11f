from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import List


class ReminderSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="REMINDER_", env_file=".env", extra="ignore")

    # Snooze actions offered on a fired reminder
    SNOOZE_PRESETS_MINUTES: List[int] = Field(default_factory=lambda: [5, 10, 15])
    DEFAULT_SNOOZE_MINUTES: int = 10

    # Alarm backend
    EXACT_ALARMS_ALLOWED: bool = True

    # Notifications
    NOTIFICATION_CHANNEL_ID: str = "daily_reminder_alarm_sound"
    NOTIFICATION_CHANNEL_NAME: str = "Daily Reminders (Loud)"
    DEFAULT_NOTIFICATION_TITLE: str = "Reminder"
    DEFAULT_NOTIFICATION_BODY: str = "Time for your task!"

    # Metrics
    METRICS_ENABLED: bool = False
    METRICS_PORT: int = 9108

    @field_validator("SNOOZE_PRESETS_MINUTES", "DEFAULT_SNOOZE_MINUTES")
    @classmethod
    def positive_minutes(cls, v):
        values = v if isinstance(v, list) else [v]
        if any(m <= 0 for m in values):
            raise ValueError("snooze minutes must be positive")
        return v


settings = ReminderSettings()
