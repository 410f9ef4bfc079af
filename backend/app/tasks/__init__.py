# backend/app/tasks/__init__.py
"""
Celery tasks package for the coaching scheduler.

Run the worker and the beat scheduler with::

    celery -A app.tasks worker
    celery -A app.tasks beat
"""

from app.tasks.celery_app import BaseTask, celery_app
from app.tasks.reminder_tasks import dispatch_booking_reminders

__all__ = [
    "celery_app",
    "BaseTask",
    "dispatch_booking_reminders",
]
