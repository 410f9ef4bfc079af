# backend/app/services/reminder_dispatcher.py
"""
Reminder Dispatcher for the coaching scheduler

Sends the 24h reminder SMS for confirmed bookings starting between 23 and 25
hours from now. Runs may overlap (celery beat plus the HTTP trigger), so every
booking is claimed with a conditional UPDATE before anything is sent:

    claim   -> reminder_sent_at = claim_ts   WHERE reminder_sent_at IS NULL
    release -> reminder_sent_at = NULL       WHERE reminder_sent_at = claim_ts

A claim that matches no row means another run owns the booking. A failed or
skipped send releases the claim so a later run retries. A run never raises;
every per-booking problem becomes a warning.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.constants import REMINDER_WINDOW_END_HOURS, REMINDER_WINDOW_START_HOURS
from ..core.exceptions import RepositoryException
from ..models.booking import Booking
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from .base import BaseService
from .booking_notifications import BookingNotificationPayload, BookingNotificationService

logger = logging.getLogger(__name__)


@dataclass
class ReminderRunResult:
    attempted: int = 0
    sent: int = 0
    warnings: List[str] = field(default_factory=list)

    def to_response(self) -> Dict[str, Any]:
        return {
            "ok": True,
            "attempted": self.attempted,
            "sent": self.sent,
            "warnings": list(self.warnings),
        }


def reminder_window(now: datetime) -> tuple:
    return (
        now + timedelta(hours=REMINDER_WINDOW_START_HOURS),
        now + timedelta(hours=REMINDER_WINDOW_END_HOURS),
    )


class ReminderDispatcher(BaseService):
    """
    Claims and sends due booking reminders.
    """

    def __init__(
        self,
        db: Session,
        notification_service: Optional[BookingNotificationService] = None,
        **kwargs: Any,
    ):
        super().__init__(db, **kwargs)
        self.repository = RepositoryFactory.create_booking_repository(db)
        self.notification_service = notification_service or BookingNotificationService(
            db, clock=self.clock
        )

    @BaseService.measure_operation("dispatch_due_reminders")
    def dispatch_due_reminders(self, now: Optional[datetime] = None) -> ReminderRunResult:
        """
        Process every due booking once, in start order.

        Args:
            now: Reference instant; defaults to the service clock

        Returns:
            ReminderRunResult with attempted/sent counts and warnings
        """
        now = now or self.clock.now()
        window_start, window_end = reminder_window(now)
        result = ReminderRunResult()

        try:
            candidates = self.repository.get_reminder_candidates(window_start, window_end)
        except RepositoryException as exc:
            self.db.rollback()
            self.logger.error("Failed to load reminder candidates: %s", exc)
            result.warnings.append(f"Failed to load reminder candidates: {exc}")
            return result

        result.attempted = len(candidates)
        for booking in candidates:
            self._dispatch_one(booking, result)

        self.log_operation(
            "dispatch_due_reminders",
            attempted=result.attempted,
            sent=result.sent,
            warning_count=len(result.warnings),
        )
        return result

    def _claim(self, booking_id: str, claim_ts: datetime) -> int:
        rowcount = self.repository.claim_reminder(booking_id, claim_ts)
        self.db.commit()
        return rowcount

    def _release(self, booking_id: str, claim_ts: datetime, result: ReminderRunResult) -> None:
        try:
            self.repository.release_reminder(booking_id, claim_ts)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            self.logger.error("Failed to release reminder claim for %s: %s", booking_id, exc)
            result.warnings.append(
                f"Failed to release reminder claim for booking {booking_id}: {exc}"
            )

    def _dispatch_one(self, booking: Booking, result: ReminderRunResult) -> None:
        # Read everything needed before the claim commits
        booking_id = booking.id
        payload = BookingNotificationPayload.from_booking(booking)
        claim_ts = self.clock.now()

        try:
            claimed = self._claim(booking_id, claim_ts)
        except SQLAlchemyError as exc:
            self.db.rollback()
            self.logger.warning("Failed to claim booking %s for reminder: %s", booking_id, exc)
            result.warnings.append(
                f"Failed to claim booking {booking_id} for reminder dispatch: {exc}"
            )
            prometheus_metrics.inc_reminder("claim_failed")
            return

        if claimed == 0:
            self.logger.debug("Booking %s already claimed by another run", booking_id)
            prometheus_metrics.inc_reminder("skipped")
            return

        try:
            sent = self.notification_service.send_booking_reminder(payload)
        except Exception as exc:
            self._release(booking_id, claim_ts, result)
            self.logger.error("Reminder dispatch failed for %s: %s", booking_id, exc)
            result.warnings.append(
                f"booking {booking_id}: failed to dispatch reminder: {str(exc) or 'unknown error'}"
            )
            prometheus_metrics.inc_reminder("failed")
            return

        if sent.sms_sent:
            result.sent += 1
            prometheus_metrics.inc_reminder("sent")
        else:
            self._release(booking_id, claim_ts, result)
            prometheus_metrics.inc_reminder("released")

        result.warnings.extend(f"booking {booking_id}: {warning}" for warning in sent.warnings)
