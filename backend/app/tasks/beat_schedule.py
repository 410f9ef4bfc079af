# backend/app/tasks/beat_schedule.py
"""
Celery Beat schedule configuration for the coaching scheduler.

The reminder dispatcher looks at a two-hour window (23h to 25h ahead), so
any interval shorter than two hours sees every booking at least once.
"""

from datetime import timedelta
from typing import Any

REMINDER_TASK_NAME = "bookings.dispatch_reminders"


def get_beat_schedule(reminder_interval_minutes: int = 30) -> dict[str, dict[str, Any]]:
    """
    Build the beat schedule.

    Args:
        reminder_interval_minutes: Minutes between reminder dispatcher runs

    Returns:
        Mapping of task name to Celery beat configuration dict
    """
    return {
        "send-booking-reminders-24h": {
            "task": REMINDER_TASK_NAME,
            "schedule": timedelta(minutes=reminder_interval_minutes),
            "options": {
                "queue": "notifications",
                # Skip stale runs; the next tick covers the same window
                "expires": reminder_interval_minutes * 60,
            },
        },
    }
