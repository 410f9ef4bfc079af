# backend/app/schemas/booking.py
"""
Booking schemas for the coaching scheduler.

Request bodies forbid unknown fields. Slot times arrive as ISO-8601 strings
and are parsed by the booking service, which owns their error messages; the
payment descriptor and status are validated here.
"""

from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from ..core.constants import (
    DEFAULT_PAYMENT_CURRENCY,
    DEFAULT_PAYMENT_PROVIDER,
    MAX_CURRENCY_LENGTH,
    MAX_PROVIDER_LENGTH,
)
from ..models.booking import BookingStatus
from ..services.booking_lifecycle import BookingUpdateRequest, PaymentDescriptor
from ..services.booking_service import BookingCreateRequest
from ._strict_base import StrictModel, StrictRequestModel


class BookingCreate(StrictRequestModel):
    """Create a pending booking for one of the instructor's slots."""

    instructor_id: Optional[str] = Field(None, description="Instructor to book")
    start_at: Optional[str] = Field(None, description="Slot start, ISO-8601")
    end_at: Optional[str] = Field(None, description="Slot end, ISO-8601")
    student_timezone: Optional[str] = Field(None, description="IANA timezone of the student")
    location: Optional[str] = None
    notes: Optional[str] = None
    course_id: Optional[str] = None

    def to_request(self) -> BookingCreateRequest:
        return BookingCreateRequest(
            instructor_id=self.instructor_id,
            start_at=self.start_at,
            end_at=self.end_at,
            student_timezone=self.student_timezone,
            location=self.location,
            notes=self.notes,
            course_id=self.course_id,
        )


class PaymentIn(StrictRequestModel):
    """Payment captured with a confirmation."""

    amount_cents: int = Field(..., description="Positive amount in minor units")
    currency: str = DEFAULT_PAYMENT_CURRENCY
    provider: str = DEFAULT_PAYMENT_PROVIDER
    provider_payment_id: Optional[str] = None

    @field_validator("amount_cents", mode="before")
    @classmethod
    def validate_amount(cls, v: Any) -> Any:
        if isinstance(v, bool):
            raise ValueError("payment.amountCents must be a positive integer")
        return v

    @field_validator("amount_cents")
    @classmethod
    def amount_is_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("payment.amountCents must be a positive integer")
        return v

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        v = v.strip().upper()
        if not v or len(v) > MAX_CURRENCY_LENGTH:
            raise ValueError(f"payment.currency must be 1-{MAX_CURRENCY_LENGTH} characters")
        return v

    @field_validator("provider")
    @classmethod
    def normalize_provider(cls, v: str) -> str:
        v = v.strip()
        if not v or len(v) > MAX_PROVIDER_LENGTH:
            raise ValueError(f"payment.provider must be 1-{MAX_PROVIDER_LENGTH} characters")
        return v

    @field_validator("provider_payment_id")
    @classmethod
    def blank_reference_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None

    def to_descriptor(self) -> PaymentDescriptor:
        return PaymentDescriptor(
            amount_cents=self.amount_cents,
            currency=self.currency,
            provider=self.provider,
            provider_payment_id=self.provider_payment_id,
        )


class BookingUpdate(StrictRequestModel):
    """Status transition and/or notes for an existing booking."""

    status: Optional[BookingStatus] = None
    notes: Optional[str] = None
    instructor_notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    payment: Optional[PaymentIn] = Field(None, description="Required to confirm a booking")

    def to_request(self) -> BookingUpdateRequest:
        return BookingUpdateRequest(
            status=self.status.value if self.status else None,
            notes=self.notes,
            instructor_notes=self.instructor_notes,
            cancellation_reason=self.cancellation_reason,
            payment=self.payment.to_descriptor() if self.payment else None,
        )


class NotificationSummary(StrictModel):
    email_sent: bool
    sms_sent: bool
    warnings: List[str] = Field(default_factory=list)


class NextStep(StrictModel):
    action: str
    endpoint: str
    method: str


class BookingCreateResponse(StrictModel):
    ok: bool = True
    booking: Dict[str, Any]
    notifications: NotificationSummary
    next_step: NextStep


class BookingResponse(StrictModel):
    ok: bool = True
    booking: Dict[str, Any]


class BookingListResponse(StrictModel):
    ok: bool = True
    bookings: List[Dict[str, Any]]
