# backend/app/services/booking_service.py
"""
Booking Service for the coaching scheduler

Handles all booking-related business logic including:
- Atomic creation of pending bookings (validation, slot match, locked insert)
- Guarded status and notes updates, with payment capture on confirmation
- Brand-scoped booking detail for the parties of a booking
- Role-aware booking lists and the instructor calendar
- Best-effort booking-created notifications

Creation never double-books an instructor. The pre-checks reject most
collisions cheaply; the transaction then takes the instructor row lock,
re-checks the buffered window and inserts. On PostgreSQL the exclusion
constraint ``bookings_no_overlap_per_instructor`` backs this up, and any
storage-level rejection is reported as BOOKING_CONFLICT.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.constants import (
    BOOKING_LIST_HORIZON_DAYS,
    BOOKING_LIST_LIMIT,
    BOOKINGS_API_PREFIX,
    DEFAULT_CALENDAR_DAYS,
    MAX_CALENDAR_DAYS,
    MAX_NOTES_LENGTH,
    MIN_SESSION_DURATION,
)
from ..core.exceptions import (
    BookingConflictException,
    RepositoryException,
    ServiceException,
    SlotUnavailableException,
)
from ..core.results import Err, Ok, Result, SchedulingError
from ..core.timezone_utils import (
    format_for_display,
    normalize_timezone,
    parse_iso_instant,
    to_iso_z,
)
from ..models.booking import Booking, BookingStatus, PaymentStatus
from ..models.tenant import Customer, Instructor
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from .availability_resolver import AvailabilityService
from .base import BaseService
from .booking_lifecycle import BookingUpdateRequest, apply_update_plan, evaluate_update, normalize_text
from .booking_notifications import (
    BookingNotificationPayload,
    BookingNotificationService,
    NotificationResult,
)
from .conflict_checker import ConflictChecker
from .identity_service import RequestContext
from .scheduling_settings_service import SchedulingSettingsService

logger = logging.getLogger(__name__)

# SQLSTATEs that mean "another writer got there first"
CONFLICT_SQLSTATES = frozenset({"23P01", "23505", "40001", "40P01"})
CONFLICT_MESSAGE_MARKERS = (
    "bookings_no_overlap_per_instructor",
    "exclusion constraint",
    "unique constraint",
    "deadlock detected",
    "could not serialize access",
    "database is locked",
)


def is_storage_conflict(exc: Union[SQLAlchemyError, RepositoryException]) -> bool:
    """Whether a storage error is a lost race rather than a real failure."""
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if sqlstate in CONFLICT_SQLSTATES:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in CONFLICT_MESSAGE_MARKERS)


@dataclass(frozen=True)
class BookingCreateRequest:
    """Raw booking request as received from the client."""

    instructor_id: Optional[str]
    start_at: Optional[str]
    end_at: Optional[str]
    student_timezone: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    course_id: Optional[str] = None


@dataclass(frozen=True)
class BookingCreation:
    booking: Booking
    notifications: NotificationResult

    @property
    def next_step(self) -> Dict[str, str]:
        return {
            "action": "confirm_and_pay",
            "endpoint": f"{BOOKINGS_API_PREFIX}/{self.booking.id}",
            "method": "PATCH",
        }

    def to_response(self) -> Dict[str, Any]:
        return {
            "ok": True,
            "booking": self.booking.to_dict(),
            "notifications": self.notifications.to_response(),
            "nextStep": self.next_step,
        }


def resolve_calendar_range(
    now: datetime,
    start_from: Optional[str],
    start_to: Optional[str],
    upcoming_days: Optional[str],
) -> Tuple[datetime, datetime]:
    """
    Start-time range of a calendar query.

    ``from`` defaults to now and ``to`` to ``from + upcoming_days`` (30 when
    missing or outside 1..365). Unparseable instants fall back to now and
    now + 30 days.
    """
    days = DEFAULT_CALENDAR_DAYS
    raw_days = (upcoming_days or "").strip()
    if raw_days.isdigit() and 1 <= int(raw_days) <= MAX_CALENDAR_DAYS:
        days = int(raw_days)

    range_start = now
    if start_from:
        range_start = parse_iso_instant(start_from) or now
    range_end = range_start + timedelta(days=days)
    if start_to:
        range_end = parse_iso_instant(start_to) or now + timedelta(days=DEFAULT_CALENDAR_DAYS)
    return range_start, range_end


@dataclass(frozen=True)
class InstructorCalendar:
    instructor_id: str
    timezone: str
    range_start: datetime
    range_end: datetime
    bookings: List[Booking]

    def booking_entry(self, booking: Booking) -> Dict[str, Any]:
        entry = booking.to_dict()
        customer = booking.customer
        entry["customer"] = (
            {
                "first_name": customer.first_name,
                "last_name": customer.last_name,
                "email": customer.email,
            }
            if customer is not None
            else None
        )
        entry["instructor_local_start"] = format_for_display(booking.start_at, self.timezone)
        entry["instructor_local_end"] = format_for_display(booking.end_at, self.timezone)
        return entry

    def to_response(self) -> Dict[str, Any]:
        return {
            "ok": True,
            "instructorId": self.instructor_id,
            "timezone": self.timezone,
            "range": {"from": to_iso_z(self.range_start), "to": to_iso_z(self.range_end)},
            "bookings": [self.booking_entry(booking) for booking in self.bookings],
        }


class BookingService(BaseService):
    """
    Service layer for booking operations.

    Results are returned as ``Ok``/``Err``; only programming errors raise.
    """

    def __init__(
        self,
        db: Session,
        notification_service: Optional[BookingNotificationService] = None,
        settings_service: Optional[SchedulingSettingsService] = None,
        availability_service: Optional[AvailabilityService] = None,
        conflict_checker: Optional[ConflictChecker] = None,
        **kwargs: Any,
    ):
        """
        Initialize booking service.

        Args:
            db: Database session
            notification_service: Optional notification service instance
            settings_service: Optional scheduling settings service
            availability_service: Optional availability service
            conflict_checker: Optional conflict checker
        """
        super().__init__(db, **kwargs)
        self.repository = RepositoryFactory.create_booking_repository(db)
        self.tenant_repository = RepositoryFactory.create_tenant_repository(db)
        self.settings_service = settings_service or SchedulingSettingsService(db, clock=self.clock)
        self.conflict_checker = conflict_checker or ConflictChecker(db, clock=self.clock)
        self.availability_service = availability_service or AvailabilityService(
            db,
            settings_service=self.settings_service,
            conflict_checker=self.conflict_checker,
            clock=self.clock,
        )
        self.notification_service = notification_service or BookingNotificationService(
            db, clock=self.clock
        )

    # Creation

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self, context: RequestContext, request: BookingCreateRequest
    ) -> Result[BookingCreation]:
        """
        Create a pending booking for the requesting customer.

        Args:
            context: Tenant and actor of the request
            request: Raw booking request

        Returns:
            Ok(BookingCreation) or Err with the first failing check
        """
        self.log_operation(
            "create_booking",
            brand_id=context.brand_id,
            instructor_id=request.instructor_id,
            start_at=request.start_at,
        )
        try:
            result = self._create_booking(context, request)
        except RepositoryException as exc:
            self.db.rollback()
            if is_storage_conflict(exc):
                result = Err(SchedulingError.from_exception(BookingConflictException()))
            else:
                self.logger.error("Booking creation failed in storage: %s", exc)
                result = Err(SchedulingError.upstream(str(exc)))
        if isinstance(result, Err):
            # Release read locks taken by the pre-checks
            self.db.rollback()

        outcome = "created" if isinstance(result, Ok) else result.error.kind.value
        prometheus_metrics.inc_booking_created(outcome)
        return result

    def _create_booking(
        self, context: RequestContext, request: BookingCreateRequest
    ) -> Result[BookingCreation]:
        if not context.customer_id:
            return Err(SchedulingError.authorization("Only students can create bookings"))
        customer = self.tenant_repository.get_customer(context.customer_id)
        if customer is None:
            return Err(SchedulingError.authorization("Only students can create bookings"))

        instructor_id = (request.instructor_id or "").strip()
        if not instructor_id:
            return Err(SchedulingError.validation("instructorId is required"))
        instructor = self.tenant_repository.get_instructor_in_brand(context.brand_id, instructor_id)
        if instructor is None:
            return Err(SchedulingError.validation("Instructor is not assigned to this brand"))

        start_at = parse_iso_instant(request.start_at)
        end_at = parse_iso_instant(request.end_at)
        if start_at is None or end_at is None:
            return Err(SchedulingError.validation("startAt/endAt must be valid ISO timestamps"))
        if end_at <= start_at:
            return Err(SchedulingError.validation("endAt must be after startAt"))
        now = self.clock.now()
        if start_at <= now:
            return Err(SchedulingError.validation("startAt must be in the future"))

        duration_minutes = max(
            MIN_SESSION_DURATION, round((end_at - start_at).total_seconds() / 60)
        )

        settings = self.settings_service.get_settings(context.brand_id, instructor_id)
        advance_days = max(settings.advance_booking_days, 1)
        if start_at > now + timedelta(days=advance_days):
            return Err(
                SchedulingError.validation(
                    f"Booking exceeds advance booking limit of {advance_days} days"
                )
            )

        if not self.availability_service.is_slot_available(
            context.brand_id, instructor_id, settings, start_at, end_at, duration_minutes
        ):
            return Err(SchedulingError.from_exception(SlotUnavailableException()))

        if self.conflict_checker.has_conflict(
            instructor_id, start_at, end_at, settings.buffer_minutes
        ):
            return Err(
                SchedulingError.conflict(
                    "Selected slot is unavailable due to an existing booking/buffer window",
                    code="SLOT_TAKEN",
                )
            )

        notes = normalize_text(request.notes)
        fields = {
            "brand_id": context.brand_id,
            "customer_id": customer.id,
            "instructor_id": instructor_id,
            "course_id": normalize_text(request.course_id),
            "status": BookingStatus.PENDING.value,
            "payment_status": PaymentStatus.UNPAID.value,
            "start_at": start_at,
            "end_at": end_at,
            "duration_minutes": duration_minutes,
            "student_timezone": normalize_timezone(request.student_timezone),
            "instructor_timezone": settings.timezone,
            "location": normalize_text(request.location),
            "notes": notes[:MAX_NOTES_LENGTH] if notes else None,
        }

        inserted = self._insert_booking(fields, settings.buffer_minutes)
        if isinstance(inserted, Err):
            return inserted
        booking = inserted.value

        self.logger.info(
            "Created booking %s for instructor %s at %s",
            booking.id,
            instructor_id,
            to_iso_z(start_at),
        )
        notifications = self._send_created_notifications(context, booking, customer, instructor)
        return Ok(BookingCreation(booking, notifications))

    def _insert_booking(self, fields: Dict[str, Any], buffer_minutes: int) -> Result[Booking]:
        """
        Lock, re-check and insert in one transaction.

        The recheck runs after the instructor lock is held, so a booking that
        committed while the pre-checks ran is seen here.
        """
        conflict_details = {
            "instructor_id": fields["instructor_id"],
            "start_at": to_iso_z(fields["start_at"]),
            "end_at": to_iso_z(fields["end_at"]),
        }
        try:
            self.repository.lock_instructor(fields["instructor_id"])
            if self.conflict_checker.has_conflict(
                fields["instructor_id"], fields["start_at"], fields["end_at"], buffer_minutes
            ):
                self.db.rollback()
                return Err(
                    SchedulingError.from_exception(
                        BookingConflictException(details=conflict_details)
                    )
                )
            booking = self.repository.create(**fields)
            self.db.commit()
        except (IntegrityError, OperationalError) as exc:
            self.db.rollback()
            if is_storage_conflict(exc):
                self.logger.info("Booking insert lost a race: %s", exc)
                return Err(
                    SchedulingError.from_exception(
                        BookingConflictException(details=conflict_details)
                    )
                )
            self.logger.error("Booking insert failed: %s", exc)
            return Err(SchedulingError.upstream(f"Failed to create booking: {exc}"))
        except SQLAlchemyError as exc:
            self.db.rollback()
            self.logger.error("Booking insert failed: %s", exc)
            return Err(SchedulingError.upstream(f"Failed to create booking: {exc}"))
        return Ok(booking)

    def _send_created_notifications(
        self,
        context: RequestContext,
        booking: Booking,
        customer: Customer,
        instructor: Instructor,
    ) -> NotificationResult:
        payload = BookingNotificationPayload(
            booking_id=booking.id,
            brand_id=booking.brand_id,
            brand_name=context.brand_name,
            instructor_name=instructor.display_name or "Instructor",
            student_name=customer.display_name,
            start_at=booking.start_at,
            student_timezone=booking.student_timezone,
            student_email=customer.email,
            student_phone=customer.phone,
        )
        try:
            return self.notification_service.send_booking_created(payload)
        except Exception as exc:
            # The booking already exists; notification trouble must not undo it
            self.logger.error(
                "Booking-created notifications failed for %s: %s", booking.id, exc, exc_info=True
            )
            return NotificationResult(warnings=[f"Failed to send booking notifications: {exc}"])

    # Reads

    @BaseService.measure_operation("get_booking")
    def get_booking(self, context: RequestContext, booking_id: str) -> Result[Booking]:
        """Booking detail for its customer, its instructor or a brand admin."""
        booking = self.repository.get_for_brand(context.brand_id, booking_id)
        if booking is None:
            return Err(SchedulingError.not_found("Booking not found"))
        is_owner = bool(context.customer_id) and context.customer_id == booking.customer_id
        if not is_owner and not context.can_manage_instructor(booking.instructor_id):
            return Err(SchedulingError.authorization())
        return Ok(booking)

    @BaseService.measure_operation("list_bookings")
    def list_bookings(self, context: RequestContext) -> Result[List[Booking]]:
        """
        Bookings visible to the actor, ordered by start time.

        Brand admins see every booking of the brand. Everyone else sees their
        own bookings as a student merged with the bookings of the instructors
        they operate, up to a year ahead.
        """
        try:
            if context.is_brand_admin:
                return Ok(self.repository.list_for_brand(context.brand_id, BOOKING_LIST_LIMIT))

            bookings_by_id: Dict[str, Booking] = {}
            if context.customer_id:
                for booking in self.repository.list_for_customer(
                    context.brand_id, context.customer_id, BOOKING_LIST_LIMIT
                ):
                    bookings_by_id[booking.id] = booking
            horizon = self.clock.now() + timedelta(days=BOOKING_LIST_HORIZON_DAYS)
            for instructor_id in context.instructor_ids:
                for booking in self.repository.list_for_instructor(
                    context.brand_id, instructor_id, start_to=horizon
                ):
                    bookings_by_id[booking.id] = booking
        except RepositoryException as exc:
            return Err(SchedulingError.upstream(str(exc)))

        return Ok(sorted(bookings_by_id.values(), key=lambda item: (item.start_at, item.id)))

    @BaseService.measure_operation("get_instructor_calendar")
    def get_instructor_calendar(
        self,
        context: RequestContext,
        instructor_id: str,
        start_from: Optional[str] = None,
        start_to: Optional[str] = None,
        upcoming_days: Optional[str] = None,
    ) -> Result[InstructorCalendar]:
        """
        Bookings of one instructor in a start-time range, with local labels.

        Open to brand admins and the instructor themself.
        """
        instructor_id = (instructor_id or "").strip()
        try:
            instructor = self.tenant_repository.get_instructor_in_brand(
                context.brand_id, instructor_id
            )
            if instructor is None:
                return Err(SchedulingError.not_found("Instructor is not linked to this brand"))
            if not context.can_manage_instructor(instructor_id):
                return Err(SchedulingError.authorization())

            range_start, range_end = resolve_calendar_range(
                self.clock.now(), start_from, start_to, upcoming_days
            )
            settings = self.settings_service.get_settings(context.brand_id, instructor_id)
            bookings = self.repository.list_for_instructor(
                context.brand_id, instructor_id, start_from=range_start, start_to=range_end
            )
        except RepositoryException as exc:
            return Err(SchedulingError.upstream(str(exc)))

        return Ok(
            InstructorCalendar(instructor_id, settings.timezone, range_start, range_end, bookings)
        )

    # Updates

    @BaseService.measure_operation("update_booking")
    def update_booking(
        self,
        context: RequestContext,
        booking_id: str,
        request: BookingUpdateRequest,
    ) -> Result[Booking]:
        """
        Apply a status and/or notes update.

        The booking row stays locked from the guard checks until the commit,
        so two concurrent updates are applied one after the other and the
        second one is judged against the first one's result. Confirmation
        writes the payment row in the same transaction as the status change.

        Returns:
            Ok(updated booking) or Err(not found/authorization/validation/conflict/upstream)
        """
        booking_id = (booking_id or "").strip()
        if not booking_id:
            return Err(SchedulingError.validation("bookingId is required"))

        try:
            booking = self.repository.get_for_update(context.brand_id, booking_id)
            if booking is None:
                self.db.rollback()
                return Err(SchedulingError.not_found("Booking not found"))
            settings = self.settings_service.get_settings(booking.brand_id, booking.instructor_id)
        except RepositoryException as exc:
            self.db.rollback()
            return Err(SchedulingError.upstream(str(exc)))

        now = self.clock.now()
        plan_result = evaluate_update(
            booking, context, request, settings.cancellation_cutoff_hours, now
        )
        if isinstance(plan_result, Err):
            # Release the row lock
            self.db.rollback()
            return plan_result
        plan = plan_result.value

        try:
            with self.transaction():
                apply_update_plan(booking, plan, now)
                if plan.next_status == BookingStatus.CONFIRMED and plan.payment is not None:
                    self.repository.create_payment(
                        booking_id=booking.id,
                        brand_id=booking.brand_id,
                        customer_id=booking.customer_id,
                        provider=plan.payment.provider,
                        provider_payment_id=plan.payment.provider_payment_id,
                        amount_cents=plan.payment.amount_cents,
                        currency=plan.payment.currency,
                        status="succeeded",
                        paid_at=now,
                    )
        except (ServiceException, RepositoryException) as exc:
            return Err(SchedulingError.upstream(f"Unable to update booking: {exc}"))

        if plan.changes_status and plan.next_status is not None:
            prometheus_metrics.inc_booking_transition(
                plan.current_status.value, plan.next_status.value
            )
            self.log_operation(
                "booking_status_changed",
                booking_id=booking.id,
                from_status=plan.current_status.value,
                to_status=plan.next_status.value,
            )
        return Ok(booking)
