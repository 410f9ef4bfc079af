# backend/app/models/booking.py
"""
Booking model for the coaching scheduler.

A booking reserves one instructor for one contiguous UTC window. Bookings are
created in ``pending`` status by the atomic booking creator and only change
status through the guarded lifecycle transitions; they are never physically
deleted.

Overlap protection: on PostgreSQL the table carries the exclusion constraint
``bookings_no_overlap_per_instructor`` (added by migration) covering active
bookings, which is the storage-level race-breaker for concurrent inserts.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.timezone_utils import to_iso_z
from ..database import Base
from .types import UTCDateTime, utcnow


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "pending"  # Reserved, awaiting confirmation and payment
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)
TERMINAL_BOOKING_STATUSES = (
    BookingStatus.COMPLETED.value,
    BookingStatus.CANCELLED.value,
    BookingStatus.NO_SHOW.value,
)


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


# Lifecycle timestamp column written when a booking enters each status
STATUS_TIMESTAMP_FIELDS = {
    BookingStatus.CONFIRMED: "confirmed_at",
    BookingStatus.COMPLETED: "completed_at",
    BookingStatus.CANCELLED: "cancelled_at",
    BookingStatus.NO_SHOW: "no_show_at",
}


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    brand_id = Column(String(26), ForeignKey("brands.id"), nullable=False)
    customer_id = Column(String(26), ForeignKey("customers.id"), nullable=False, index=True)
    instructor_id = Column(String(26), ForeignKey("instructors.id"), nullable=False)
    course_id = Column(String(26), nullable=True)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)
    start_at = Column(UTCDateTime, nullable=False)
    end_at = Column(UTCDateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    student_timezone = Column(String(64), nullable=False, default="UTC")
    instructor_timezone = Column(String(64), nullable=False, default="UTC")

    location = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    instructor_notes = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    payment_status = Column(String(20), nullable=False, default=PaymentStatus.UNPAID.value)
    payment_reference = Column(String(255), nullable=True)

    confirmed_at = Column(UTCDateTime, nullable=True)
    completed_at = Column(UTCDateTime, nullable=True)
    cancelled_at = Column(UTCDateTime, nullable=True)
    no_show_at = Column(UTCDateTime, nullable=True)
    reminder_sent_at = Column(UTCDateTime, nullable=True)

    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=True)
    deleted_at = Column(UTCDateTime, nullable=True)

    instructor = relationship("Instructor")
    customer = relationship("Customer")
    brand = relationship("Brand")
    payments = relationship("BookingPayment", back_populates="booking", lazy="select")

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'completed', 'cancelled', 'no_show')",
            name="ck_bookings_status",
        ),
        CheckConstraint(
            "payment_status IN ('unpaid', 'paid', 'failed', 'refunded')",
            name="ck_bookings_payment_status",
        ),
        CheckConstraint("end_at > start_at", name="ck_bookings_time_order"),
        CheckConstraint("duration_minutes >= 15", name="ck_bookings_duration_minimum"),
        Index(
            "ix_bookings_instructor_active_window",
            "instructor_id",
            "start_at",
            "end_at",
            postgresql_where=text("status IN ('pending', 'confirmed') AND deleted_at IS NULL"),
        ),
        Index(
            "ix_bookings_reminder_due",
            "status",
            "start_at",
            postgresql_where=text("reminder_sent_at IS NULL AND deleted_at IS NULL"),
        ),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<Booking {self.id}: customer={self.customer_id}, "
            f"instructor={self.instructor_id}, start={self.start_at}, status={self.status}>"
        )

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_BOOKING_STATUSES and self.deleted_at is None

    def lifecycle_timestamp(self, status: BookingStatus) -> Optional[datetime]:
        field_name = STATUS_TIMESTAMP_FIELDS.get(status)
        return getattr(self, field_name) if field_name else None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""

        def _iso(value: Optional[datetime]) -> Optional[str]:
            return to_iso_z(value) if value else None

        return {
            "id": self.id,
            "brand_id": self.brand_id,
            "customer_id": self.customer_id,
            "instructor_id": self.instructor_id,
            "course_id": self.course_id,
            "status": self.status,
            "start_at": _iso(self.start_at),
            "end_at": _iso(self.end_at),
            "duration_minutes": self.duration_minutes,
            "student_timezone": self.student_timezone,
            "instructor_timezone": self.instructor_timezone,
            "location": self.location,
            "notes": self.notes,
            "instructor_notes": self.instructor_notes,
            "cancellation_reason": self.cancellation_reason,
            "payment_status": self.payment_status,
            "payment_reference": self.payment_reference,
            "confirmed_at": _iso(self.confirmed_at),
            "completed_at": _iso(self.completed_at),
            "cancelled_at": _iso(self.cancelled_at),
            "no_show_at": _iso(self.no_show_at),
            "reminder_sent_at": _iso(self.reminder_sent_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class BookingPayment(Base):
    """Payment record written atomically with a booking confirmation."""

    __tablename__ = "booking_payments"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    booking_id = Column(String(26), ForeignKey("bookings.id"), nullable=False, index=True)
    brand_id = Column(String(26), ForeignKey("brands.id"), nullable=False)
    customer_id = Column(String(26), ForeignKey("customers.id"), nullable=False)
    provider = Column(String(60), nullable=False)
    provider_payment_id = Column(String(255), nullable=True)
    amount_cents = Column(Integer, nullable=False)
    currency = Column(String(8), nullable=False)
    status = Column(String(20), nullable=False, default="succeeded")
    paid_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)

    booking = relationship("Booking", back_populates="payments")

    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="ck_booking_payments_amount_positive"),
    )

    def __repr__(self) -> str:
        return f"<BookingPayment {self.id} booking={self.booking_id} {self.amount_cents} {self.currency}>"
