"""
Shared constants used across the application.

This module contains constants that need to be consistent across
the store backends, the reminder engines and the HTTP layer.
"""

# Watering schedule defaults
DEFAULT_WATERING_INTERVAL_DAYS = 3
SECONDS_PER_DAY = 86400

CARE_FIELDS = ("water", "light", "soil", "temp", "toxic")

# Store outcomes for update/delete/claim operations
OUTCOME_OK = "ok"
OUTCOME_NOT_FOUND = "not_found"
OUTCOME_CONFLICT = "conflict"

# Reminder delivery outcomes (per entry)
REMINDER_SENT = "sent"
REMINDER_FAILED = "failed"
REMINDER_SKIPPED = "skipped"
REMINDER_CONFLICT = "conflict"
REMINDER_ERROR = "error"

# Reminder strategies (REMINDER_STRATEGY config value)
STRATEGY_SWEEP = "sweep"
STRATEGY_TIMER = "timer"

# APScheduler job ids
SWEEP_JOB_ID = "watering_reminder_sweep"
TIMER_JOB_PREFIX = "watering-reminder:"

# Profile counters adjusted alongside garden mutations
COUNTER_TOTAL_PLANTS = "total_plants"
COUNTER_TASKS_COMPLETED = "tasks_completed"

# Profile activity feed keeps only the newest items
RECENT_ACTIVITY_LIMIT = 10
