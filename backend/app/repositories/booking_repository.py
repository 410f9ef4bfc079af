# backend/app/repositories/booking_repository.py
"""
Booking Repository for the coaching scheduler

Implements data access for bookings:
- Brand-scoped lookups and listings (soft-deleted rows are invisible)
- Row-locked reads for status updates
- The instructor row lock taken by the atomic booking creator
- Payment rows written with a confirmation
- Reminder candidates plus the conditional claim/release updates

Claim and release are single UPDATE statements guarded by a WHERE clause, so
two overlapping dispatcher runs can never both own the same booking. They do
not commit; the caller commits right after to make the claim visible.
"""

from datetime import datetime
import logging
from typing import Any, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.exceptions import RepositoryException
from ..models.booking import Booking, BookingPayment, BookingStatus
from ..models.tenant import Instructor
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    """
    Repository for booking data access.
    """

    def __init__(self, db: Session):
        """Initialize with Booking model."""
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    def get_for_brand(self, brand_id: str, booking_id: str) -> Optional[Booking]:
        """Fetch a live booking within a brand."""
        query = self.db.query(Booking).filter(
            Booking.id == booking_id,
            Booking.brand_id == brand_id,
            Booking.deleted_at.is_(None),
        )
        return self._execute_first(query)

    def get_for_update(self, brand_id: str, booking_id: str) -> Optional[Booking]:
        """
        Fetch a live booking and lock its row until the transaction ends.

        A copy already in the session is refreshed so status guards see the
        committed state, not a stale one.
        """
        query = (
            self.db.query(Booking)
            .filter(
                Booking.id == booking_id,
                Booking.brand_id == brand_id,
                Booking.deleted_at.is_(None),
            )
            .with_for_update()
            .populate_existing()
        )
        return self._execute_first(query)

    def list_for_brand(self, brand_id: str, limit: int) -> List[Booking]:
        query = (
            self.db.query(Booking)
            .filter(Booking.brand_id == brand_id, Booking.deleted_at.is_(None))
            .order_by(Booking.start_at, Booking.id)
            .limit(limit)
        )
        return self._execute_query(query)

    def list_for_customer(self, brand_id: str, customer_id: str, limit: int) -> List[Booking]:
        query = (
            self.db.query(Booking)
            .filter(
                Booking.brand_id == brand_id,
                Booking.customer_id == customer_id,
                Booking.deleted_at.is_(None),
            )
            .order_by(Booking.start_at, Booking.id)
            .limit(limit)
        )
        return self._execute_query(query)

    def list_for_instructor(
        self,
        brand_id: str,
        instructor_id: str,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
    ) -> List[Booking]:
        """
        Live bookings of an instructor in one brand, any status.

        Both bounds apply to the start time and are inclusive.
        """
        query = (
            self.db.query(Booking)
            .options(joinedload(Booking.customer))
            .filter(
                Booking.brand_id == brand_id,
                Booking.instructor_id == instructor_id,
                Booking.deleted_at.is_(None),
            )
        )
        if start_from is not None:
            query = query.filter(Booking.start_at >= start_from)
        if start_to is not None:
            query = query.filter(Booking.start_at <= start_to)
        return self._execute_query(query.order_by(Booking.start_at, Booking.id))

    def lock_instructor(self, instructor_id: str) -> Optional[Instructor]:
        """
        Take the per-instructor scheduling lock for the current transaction.

        On PostgreSQL this is ``SELECT ... FOR UPDATE`` on the instructor row;
        SQLite ignores the clause and serialises writers at the database level.
        """
        query = (
            self.db.query(Instructor)
            .filter(Instructor.id == instructor_id)
            .with_for_update()
        )
        return self._execute_first(query)

    def create_payment(self, **kwargs: Any) -> BookingPayment:
        try:
            payment = BookingPayment(**kwargs)
            self.db.add(payment)
            self.db.flush()
            return payment
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating booking payment: {str(e)}")
            raise RepositoryException(f"Failed to create booking payment: {str(e)}")

    # Reminder candidates and claims

    def get_reminder_candidates(self, window_start: datetime, window_end: datetime) -> List[Booking]:
        """
        Confirmed, unreminded, live bookings starting inside the window.

        Both window bounds are inclusive. Ordered by start time.
        """
        query = (
            self.db.query(Booking)
            .options(
                joinedload(Booking.customer),
                joinedload(Booking.instructor),
                joinedload(Booking.brand),
            )
            .filter(
                Booking.status == BookingStatus.CONFIRMED.value,
                Booking.deleted_at.is_(None),
                Booking.reminder_sent_at.is_(None),
                Booking.start_at >= window_start,
                Booking.start_at <= window_end,
            )
            .order_by(Booking.start_at, Booking.id)
        )
        return self._execute_query(query)

    def claim_reminder(self, booking_id: str, claim_ts: datetime) -> int:
        """
        Mark a booking's reminder as claimed if nobody else has.

        Returns:
            Number of rows updated (1 when the claim was won, 0 otherwise)
        """
        result = self.db.execute(
            update(Booking)
            .where(
                Booking.id == booking_id,
                Booking.status == BookingStatus.CONFIRMED.value,
                Booking.deleted_at.is_(None),
                Booking.reminder_sent_at.is_(None),
            )
            .values(reminder_sent_at=claim_ts)
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)

    def release_reminder(self, booking_id: str, claim_ts: datetime) -> int:
        """
        Undo a claim, but only if it is still the one this run made.

        Returns:
            Number of rows updated
        """
        result = self.db.execute(
            update(Booking)
            .where(Booking.id == booking_id, Booking.reminder_sent_at == claim_ts)
            .values(reminder_sent_at=None)
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)
