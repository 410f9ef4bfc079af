# backend/app/repositories/conflict_checker_repository.py
"""
ConflictChecker Repository for the coaching scheduler

Booking-only queries for overlap detection. Only active bookings (pending or
confirmed, not soft-deleted) take part; terminal bookings never block time.
Callers pass the already buffered window.
"""

from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..models.booking import ACTIVE_BOOKING_STATUSES, Booking
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ConflictCheckerRepository(BaseRepository[Booking]):
    """
    Repository for conflict checking data access.
    """

    def __init__(self, db: Session):
        """Initialize with Booking model as primary."""
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    def _overlap_query(
        self,
        instructor_id: str,
        window_start: datetime,
        window_end: datetime,
        exclude_booking_id: Optional[str],
    ):
        query = self.db.query(Booking).filter(
            Booking.instructor_id == instructor_id,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            Booking.deleted_at.is_(None),
            Booking.start_at < window_end,
            Booking.end_at > window_start,
        )
        if exclude_booking_id:
            query = query.filter(Booking.id != exclude_booking_id)
        return query

    def get_overlapping_bookings(
        self,
        instructor_id: str,
        window_start: datetime,
        window_end: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> List[Booking]:
        """
        Active bookings of the instructor that intersect ``[window_start, window_end)``.

        Args:
            instructor_id: The instructor to check
            window_start: Buffered window start (UTC)
            window_end: Buffered window end (UTC)
            exclude_booking_id: Optional booking ID to exclude from results

        Returns:
            Offending bookings ordered by start time
        """
        query = self._overlap_query(
            instructor_id, window_start, window_end, exclude_booking_id
        ).order_by(Booking.start_at)
        return self._execute_query(query)

    def has_overlapping_booking(
        self,
        instructor_id: str,
        window_start: datetime,
        window_end: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> bool:
        query = self._overlap_query(instructor_id, window_start, window_end, exclude_booking_id)
        return self._execute_first(query) is not None

    def get_active_bookings_in_range(
        self, instructor_id: str, range_start: datetime, range_end: datetime
    ) -> List[Booking]:
        """Active bookings intersecting a range, used to filter candidate slots in bulk."""
        query = self._overlap_query(instructor_id, range_start, range_end, None).order_by(
            Booking.start_at
        )
        return self._execute_query(query)
