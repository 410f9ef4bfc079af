# backend/app/services/booking_lifecycle.py
"""
Booking status lifecycle for the coaching scheduler.

    pending   -> confirmed | cancelled
    confirmed -> completed | cancelled | no_show
    completed, cancelled, no_show are terminal

``evaluate_update`` decides whether an actor may apply an update request to a
booking and returns a plan; ``apply_update_plan`` performs it on the ORM
object. The split keeps every guard testable without a database.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, FrozenSet, Optional

from ..core.constants import MAX_NOTES_LENGTH, MAX_REASON_LENGTH
from ..core.exceptions import CancellationCutoffException
from ..core.results import Err, Ok, Result, SchedulingError
from ..models.booking import STATUS_TIMESTAMP_FIELDS, Booking, BookingStatus, PaymentStatus
from .identity_service import RequestContext

BOOKING_STATUS_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset(
        {BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.NO_SHOW}
    ),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.NO_SHOW: frozenset(),
}

MANAGER_ONLY_STATUSES = frozenset({BookingStatus.COMPLETED, BookingStatus.NO_SHOW})
POST_SESSION_STATUSES = frozenset(
    {BookingStatus.COMPLETED, BookingStatus.NO_SHOW, BookingStatus.CANCELLED}
)


def parse_status(value: Any) -> Optional[BookingStatus]:
    if not isinstance(value, str):
        return None
    try:
        return BookingStatus(value)
    except ValueError:
        return None


def can_transition(from_status: Any, to_status: Any) -> bool:
    """Whether ``from_status -> to_status`` is a legal edge. Self-transitions are not."""
    source = parse_status(from_status)
    target = parse_status(to_status)
    if source is None or target is None or source == target:
        return False
    return target in BOOKING_STATUS_TRANSITIONS[source]


def transition_error(from_status: BookingStatus, to_status: BookingStatus) -> Optional[str]:
    if can_transition(from_status, to_status):
        return None
    return f"Invalid booking status transition: {from_status.value} -> {to_status.value}"


def can_cancel(start_at: datetime, cutoff_hours: int, now: datetime) -> bool:
    """A booking is cancellable while at least ``cutoff_hours`` remain before it starts."""
    return start_at - now >= timedelta(hours=max(cutoff_hours, 0))


def normalize_text(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


@dataclass(frozen=True)
class PaymentDescriptor:
    """A validated payment; currency is upper-cased ISO-4217."""

    amount_cents: int
    currency: str
    provider: str
    provider_payment_id: Optional[str] = None


@dataclass(frozen=True)
class BookingUpdateRequest:
    status: Optional[str] = None
    notes: Optional[str] = None
    instructor_notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    payment: Optional[PaymentDescriptor] = None


@dataclass(frozen=True)
class UpdatePlan:
    """A validated update, ready to be applied."""

    current_status: BookingStatus
    next_status: Optional[BookingStatus]
    notes: Optional[str]
    instructor_notes: Optional[str]
    cancellation_reason: Optional[str]
    payment: Optional[PaymentDescriptor]

    @property
    def changes_status(self) -> bool:
        return self.next_status is not None and self.next_status != self.current_status


def evaluate_update(
    booking: Booking,
    actor: RequestContext,
    request: BookingUpdateRequest,
    cutoff_hours: int,
    now: datetime,
) -> Result[UpdatePlan]:
    """
    Check an update request against the lifecycle guards, in order.

    Returns:
        Ok(plan) or Err with the first failing guard
    """
    is_owner = bool(actor.customer_id) and actor.customer_id == booking.customer_id
    can_manage = actor.can_manage_instructor(booking.instructor_id)
    if not is_owner and not can_manage:
        return Err(SchedulingError.authorization())

    next_status: Optional[BookingStatus] = None
    if request.status is not None:
        next_status = parse_status(request.status)
        if next_status is None:
            return Err(SchedulingError.validation("Invalid status"))

    notes = normalize_text(request.notes)
    instructor_notes = normalize_text(request.instructor_notes)
    if next_status is None and notes is None and instructor_notes is None:
        return Err(SchedulingError.validation("No updates provided"))
    for label, text in (("notes", notes), ("instructorNotes", instructor_notes)):
        if text is not None and len(text) > MAX_NOTES_LENGTH:
            return Err(
                SchedulingError.validation(f"{label} must be at most {MAX_NOTES_LENGTH} characters")
            )

    current = BookingStatus(booking.status)
    payment: Optional[PaymentDescriptor] = None
    cancellation_reason: Optional[str] = None

    if next_status is not None:
        if next_status == BookingStatus.CONFIRMED and current != BookingStatus.PENDING:
            return Err(
                SchedulingError.conflict(
                    "Only pending bookings can be confirmed", code="BOOKING_NOT_PENDING"
                )
            )

        message = transition_error(current, next_status)
        if message:
            return Err(SchedulingError.validation(message, code="INVALID_STATUS_TRANSITION"))

        if next_status in MANAGER_ONLY_STATUSES and not can_manage:
            return Err(
                SchedulingError.authorization(
                    "Only instructors/admins can mark bookings as completed/no-show"
                )
            )

        if next_status == BookingStatus.CANCELLED:
            if is_owner and not can_manage and not can_cancel(booking.start_at, cutoff_hours, now):
                hours_left = (booking.start_at - now).total_seconds() / 3600
                return Err(
                    SchedulingError.from_exception(
                        CancellationCutoffException(cutoff_hours, hours_left)
                    )
                )
            reason = normalize_text(request.cancellation_reason)
            cancellation_reason = reason[:MAX_REASON_LENGTH] if reason else None

        if next_status == BookingStatus.CONFIRMED:
            payment = request.payment
            if payment is None:
                return Err(SchedulingError.validation("payment is required to confirm a booking"))

    if instructor_notes is not None:
        if not can_manage:
            return Err(
                SchedulingError.authorization("Only instructors/admins can add instructorNotes")
            )
        final_status = next_status or current
        if final_status not in POST_SESSION_STATUSES:
            return Err(SchedulingError.validation("instructorNotes can only be added post-session"))

    return Ok(
        UpdatePlan(
            current_status=current,
            next_status=next_status,
            notes=notes,
            instructor_notes=instructor_notes,
            cancellation_reason=cancellation_reason,
            payment=payment,
        )
    )


def apply_update_plan(booking: Booking, plan: UpdatePlan, now: datetime) -> None:
    """
    Apply a validated plan to a booking.

    Writes exactly one lifecycle timestamp (the one of the new status) and
    leaves every other status timestamp untouched. Payment rows are written
    by the caller.
    """
    if plan.changes_status and plan.next_status is not None:
        booking.status = plan.next_status.value
        setattr(booking, STATUS_TIMESTAMP_FIELDS[plan.next_status], now)
        if plan.next_status == BookingStatus.CANCELLED and plan.cancellation_reason:
            booking.cancellation_reason = plan.cancellation_reason
        if plan.next_status == BookingStatus.CONFIRMED and plan.payment is not None:
            booking.payment_status = PaymentStatus.PAID.value
            booking.payment_reference = plan.payment.provider_payment_id

    if plan.notes is not None:
        booking.notes = plan.notes
    if plan.instructor_notes is not None:
        booking.instructor_notes = plan.instructor_notes
