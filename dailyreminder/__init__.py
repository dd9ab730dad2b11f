"""
Daily Reminder back end package.

Local reminder store plus the scheduling core that keeps alarms registered
for each reminder.
"""
