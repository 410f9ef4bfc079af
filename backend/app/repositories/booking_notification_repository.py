# backend/app/repositories/booking_notification_repository.py
"""
Repository for the booking notification delivery log.

One row per attempted channel per message. Rows are append-only.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.booking_notification import BookingNotification


class BookingNotificationRepository:
    """Data access helper for booking_notifications rows."""

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        *,
        booking_id: str,
        brand_id: str,
        channel: str,
        template: str,
        provider: str,
        recipient: str,
        status: str,
        provider_message_id: Optional[str] = None,
        error_message: Optional[str] = None,
        sent_at: Optional[datetime] = None,
    ) -> BookingNotification:
        row = BookingNotification(
            booking_id=booking_id,
            brand_id=brand_id,
            channel=channel,
            template=template,
            provider=provider,
            recipient=recipient or "",
            status=status,
            provider_message_id=provider_message_id,
            error_message=error_message,
            sent_at=sent_at,
        )
        self.db.add(row)
        self.db.flush()
        return row

    def list_for_booking(self, booking_id: str) -> List[BookingNotification]:
        return (
            self.db.query(BookingNotification)
            .filter(BookingNotification.booking_id == booking_id)
            .order_by(BookingNotification.created_at, BookingNotification.id)
            .all()
        )
