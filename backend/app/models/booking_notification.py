# backend/app/models/booking_notification.py
"""Delivery log for booking SMS and email notifications."""

from enum import Enum

from sqlalchemy import CheckConstraint, Column, ForeignKey, String, Text
from sqlalchemy.sql import func
import ulid

from ..database import Base
from .types import UTCDateTime, utcnow


class NotificationChannel(str, Enum):
    SMS = "sms"
    EMAIL = "email"


class NotificationTemplate(str, Enum):
    BOOKING_CREATED = "booking_created"
    BOOKING_REMINDER_24H = "booking_reminder_24h"


class NotificationStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


class BookingNotification(Base):
    __tablename__ = "booking_notifications"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    booking_id = Column(String(26), ForeignKey("bookings.id"), nullable=False, index=True)
    brand_id = Column(String(26), ForeignKey("brands.id"), nullable=False)
    channel = Column(String(10), nullable=False)
    template = Column(String(50), nullable=False)
    provider = Column(String(30), nullable=False)
    recipient = Column(String(320), nullable=False, default="")
    status = Column(String(10), nullable=False)
    provider_message_id = Column(String(255), nullable=True)
    error_message = Column(Text, nullable=True)
    sent_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("channel IN ('sms', 'email')", name="ck_booking_notifications_channel"),
        CheckConstraint(
            "status IN ('sent', 'failed', 'skipped')", name="ck_booking_notifications_status"
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<BookingNotification {self.booking_id} {self.template}/{self.channel} "
            f"status={self.status}>"
        )
