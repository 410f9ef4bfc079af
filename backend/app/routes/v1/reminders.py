# backend/app/routes/v1/reminders.py
"""
Reminder trigger - API v1

Machine endpoint called by the scheduler (cron or celery beat) to send the
24-hour reminder SMS. Authenticated by the shared cron secret or the
service-role bearer token, never by a user session.

Endpoints:
    POST /reminders - Dispatch reminders for bookings starting in 23h-25h
"""

import asyncio
import logging

from fastapi import APIRouter, Depends

from ...api.dependencies import get_reminder_dispatcher, require_reminder_credentials
from ...schemas.reminders import ReminderRunResponse
from ...services.reminder_dispatcher import ReminderDispatcher

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reminders-v1"])


@router.post(
    "/reminders",
    response_model=ReminderRunResponse,
    dependencies=[Depends(require_reminder_credentials)],
)
async def dispatch_reminders(
    dispatcher: ReminderDispatcher = Depends(get_reminder_dispatcher),
) -> ReminderRunResponse:
    """
    Send due reminders.

    Per-booking failures never fail the run; they are reported as warnings
    and the booking is left eligible for the next run.
    """
    run = await asyncio.to_thread(dispatcher.dispatch_due_reminders)
    if run.warnings:
        logger.warning("Reminder run finished with %d warning(s)", len(run.warnings))
    return ReminderRunResponse.model_validate(run.to_response())
