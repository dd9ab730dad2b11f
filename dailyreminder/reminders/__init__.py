"""Reminder scheduling module (recurrence, snooze, alarm registration).

The scheduling service keeps exactly one pending alarm per reminder with an
external alarm backend, re-arms recurring reminders after they fire and
registers snoozed copies requested from notification actions.
"""
