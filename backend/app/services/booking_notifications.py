# backend/app/services/booking_notifications.py
"""
Booking Notification Service for the coaching scheduler

Builds and sends the two booking messages:
- booking_created: email confirmation plus SMS confirmation
- booking_reminder_24h: SMS only

Each channel is best-effort: a missing recipient or a provider failure turns
into a warning on the NotificationResult instead of an exception. Every
channel outcome is appended to the booking_notifications log; a failure to
write that log is only logged.
"""

from dataclasses import dataclass, field
from datetime import datetime
import html
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.timezone_utils import format_for_display, normalize_timezone
from ..models.booking import Booking
from ..models.booking_notification import (
    NotificationChannel,
    NotificationStatus,
    NotificationTemplate,
)
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from .base import BaseService
from .notification_provider import NotificationDelivery, NotificationSender, NotificationSenderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingNotificationPayload:
    booking_id: str
    brand_id: str
    brand_name: str
    instructor_name: str
    student_name: str
    start_at: datetime
    student_timezone: str
    student_email: Optional[str] = None
    student_phone: Optional[str] = None

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingNotificationPayload":
        """Build the payload from a booking with its brand, customer and instructor loaded."""
        customer = booking.customer
        return cls(
            booking_id=booking.id,
            brand_id=booking.brand_id,
            brand_name=booking.brand.name if booking.brand else "Brand",
            instructor_name=booking.instructor.display_name if booking.instructor else "Instructor",
            student_name=customer.display_name if customer else "Student",
            start_at=booking.start_at,
            student_timezone=booking.student_timezone,
            student_email=customer.email if customer else None,
            student_phone=customer.phone if customer else None,
        )

    @property
    def starts_at_label(self) -> str:
        return format_for_display(self.start_at, normalize_timezone(self.student_timezone))


@dataclass
class NotificationResult:
    email_sent: bool = False
    sms_sent: bool = False
    warnings: List[str] = field(default_factory=list)
    deliveries: List[NotificationDelivery] = field(default_factory=list)

    def to_response(self) -> Dict[str, Any]:
        return {
            "emailSent": self.email_sent,
            "smsSent": self.sms_sent,
            "warnings": list(self.warnings),
        }


def _recipient(value: Optional[str]) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def build_created_email(payload: BookingNotificationPayload) -> Dict[str, str]:
    label = payload.starts_at_label
    text = "\n".join(
        [
            f"Hi {payload.student_name},",
            "",
            f"Your 1:1 coaching session with {payload.instructor_name} is booked for {label}.",
            "",
            f"Brand: {payload.brand_name}",
        ]
    )
    body = (
        f"<p>Hi {html.escape(payload.student_name)},</p>"
        f"<p>Your 1:1 coaching session with <strong>{html.escape(payload.instructor_name)}</strong> "
        f"is booked for <strong>{label}</strong>.</p>"
        f"<p>Brand: {html.escape(payload.brand_name)}</p>"
    )
    return {
        "subject": f"{payload.brand_name}: Coaching session booked",
        "text": text,
        "html": body,
    }


def build_created_sms(payload: BookingNotificationPayload) -> str:
    return (
        f"Booking confirmed: {payload.brand_name} with {payload.instructor_name} "
        f"on {payload.starts_at_label}."
    )


def build_reminder_sms(payload: BookingNotificationPayload) -> str:
    return (
        f"Reminder: {payload.brand_name} session with {payload.instructor_name} "
        f"starts at {payload.starts_at_label}."
    )


class BookingNotificationService(BaseService):
    """
    Sends booking messages and records each delivery.
    """

    def __init__(self, db: Session, sender: Optional[NotificationSender] = None, **kwargs: Any):
        super().__init__(db, **kwargs)
        self.sender = sender or NotificationSender()
        self.repository = RepositoryFactory.create_booking_notification_repository(db)

    def _record(
        self,
        payload: BookingNotificationPayload,
        template: NotificationTemplate,
        delivery: NotificationDelivery,
    ) -> None:
        prometheus_metrics.inc_notification(delivery.channel, template.value, delivery.status)
        try:
            self.repository.record(
                booking_id=payload.booking_id,
                brand_id=payload.brand_id,
                channel=delivery.channel,
                template=template.value,
                provider=delivery.provider,
                recipient=delivery.recipient,
                status=delivery.status,
                provider_message_id=delivery.provider_message_id,
                error_message=delivery.error,
                sent_at=self.clock.now() if delivery.sent else None,
            )
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            self.logger.warning(
                "Failed to record %s notification for booking %s: %s",
                delivery.channel,
                payload.booking_id,
                exc,
            )

    def _send_sms(
        self,
        payload: BookingNotificationPayload,
        template: NotificationTemplate,
        recipient: str,
        body: str,
        result: NotificationResult,
    ) -> None:
        try:
            delivery = self.sender.send_sms(recipient, body)
            result.sms_sent = True
        except NotificationSenderError as exc:
            result.warnings.append(str(exc))
            delivery = NotificationDelivery(
                channel=NotificationChannel.SMS.value,
                provider=exc.provider,
                status=NotificationStatus.FAILED.value,
                recipient=recipient,
                error=str(exc),
            )
        result.deliveries.append(delivery)
        self._record(payload, template, delivery)

    def _skip(
        self,
        payload: BookingNotificationPayload,
        template: NotificationTemplate,
        channel: NotificationChannel,
        warning: str,
        result: NotificationResult,
    ) -> None:
        result.warnings.append(warning)
        delivery = NotificationDelivery(
            channel=channel.value,
            provider="twilio" if channel == NotificationChannel.SMS else "resend",
            status=NotificationStatus.SKIPPED.value,
            error=warning,
        )
        result.deliveries.append(delivery)
        self._record(payload, template, delivery)

    @BaseService.measure_operation("send_booking_created")
    def send_booking_created(self, payload: BookingNotificationPayload) -> NotificationResult:
        """Send the booking confirmation by email and SMS."""
        template = NotificationTemplate.BOOKING_CREATED
        result = NotificationResult()

        email = _recipient(payload.student_email)
        if email:
            message = build_created_email(payload)
            try:
                delivery = self.sender.send_email(
                    email, message["subject"], message["text"], message["html"]
                )
                result.email_sent = True
            except NotificationSenderError as exc:
                result.warnings.append(str(exc))
                delivery = NotificationDelivery(
                    channel=NotificationChannel.EMAIL.value,
                    provider=exc.provider,
                    status=NotificationStatus.FAILED.value,
                    recipient=email,
                    error=str(exc),
                )
            result.deliveries.append(delivery)
            self._record(payload, template, delivery)
        else:
            self._skip(
                payload,
                template,
                NotificationChannel.EMAIL,
                "Student email is missing; skipped email confirmation",
                result,
            )

        phone = _recipient(payload.student_phone)
        if phone:
            self._send_sms(payload, template, phone, build_created_sms(payload), result)
        else:
            self._skip(
                payload,
                template,
                NotificationChannel.SMS,
                "Student phone is missing; skipped SMS confirmation",
                result,
            )

        return result

    @BaseService.measure_operation("send_booking_reminder")
    def send_booking_reminder(self, payload: BookingNotificationPayload) -> NotificationResult:
        """Send the 24h reminder SMS."""
        template = NotificationTemplate.BOOKING_REMINDER_24H
        result = NotificationResult()

        phone = _recipient(payload.student_phone)
        if not phone:
            self._skip(
                payload,
                template,
                NotificationChannel.SMS,
                "Student phone is missing; skipped reminder SMS",
                result,
            )
            return result

        self._send_sms(payload, template, phone, build_reminder_sms(payload), result)
        return result
