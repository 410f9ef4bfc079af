# backend/app/tasks/reminder_tasks.py
"""
Periodic 24-hour reminder dispatch.

The task shares ReminderDispatcher with the HTTP trigger. Each booking is
claimed with a conditional update before sending, so overlapping runs (beat
plus a manual trigger, or a retried task) never send the same reminder twice.
"""

from __future__ import annotations

from typing import Any, Dict

from celery.utils.log import get_task_logger

from app.database import get_db_session
from app.services.reminder_dispatcher import ReminderDispatcher
from app.tasks.beat_schedule import REMINDER_TASK_NAME
from app.tasks.celery_app import celery_app

logger = get_task_logger(__name__)


@celery_app.task(name=REMINDER_TASK_NAME, queue="notifications")  # type: ignore[misc]
def dispatch_booking_reminders() -> Dict[str, Any]:
    """
    Send reminder SMS for bookings starting 23h to 25h from now.

    Returns:
        The run summary: ``{ok, attempted, sent, warnings}``
    """
    with get_db_session() as session:
        run = ReminderDispatcher(session).dispatch_due_reminders()

    for warning in run.warnings:
        logger.warning("Reminder dispatch: %s", warning)
    logger.info("Reminder run attempted=%s sent=%s", run.attempted, run.sent)
    return run.to_response()
