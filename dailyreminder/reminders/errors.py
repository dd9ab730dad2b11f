"""
Errors raised by the reminder scheduling core
"""


class ReminderError(Exception):
    """Base class for reminder errors"""


class InvalidDuration(ReminderError, ValueError):
    """Snooze duration is zero or negative"""

    def __init__(self, duration):
        self.duration = duration
        super().__init__(f"Snooze duration must be positive, got {duration!r}")


class NotFound(ReminderError, LookupError):
    """Operation referenced an unknown reminder id"""

    def __init__(self, reminder_id: int):
        self.reminder_id = reminder_id
        super().__init__(f"Reminder {reminder_id} not found")


class SchedulingDenied(ReminderError):
    """The alarm backend refused to register a precise alarm.

    The caller owns the decision to ask the user for authorization and call
    ``schedule`` again; the service never retries on its own.
    """

    def __init__(self, key):
        self.key = key
        super().__init__(f"Exact alarm scheduling denied for {key}")


class RegistrationFailed(ReminderError):
    """The alarm backend failed for a reason other than missing authority"""

    def __init__(self, key, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Alarm registration failed for {key}: {reason}")


class InvalidReminder(ReminderError, ValueError):
    """Reminder content rejected at save time (e.g. fire time in the past)"""
