from prometheus_client import Counter


reminders_scheduled_total = Counter(
    "reminders_scheduled_total",
    "Total series alarms registered by the scheduler",
)

reminders_cancelled_total = Counter(
    "reminders_cancelled_total",
    "Total pending alarms cancelled",
)

reminders_fired_total = Counter(
    "reminders_fired_total",
    "Total alarm deliveries handled",
    ["purpose"],
)

reminders_rearmed_total = Counter(
    "reminders_rearmed_total",
    "Total recurring reminders re-registered after firing",
)

reminders_snoozed_total = Counter(
    "reminders_snoozed_total",
    "Total snooze alarms registered",
)

scheduling_denied_total = Counter(
    "reminder_scheduling_denied_total",
    "Total registrations refused for lack of exact alarm permission",
)

scheduling_failed_total = Counter(
    "reminder_scheduling_failed_total",
    "Total registrations or cancellations that failed",
)
