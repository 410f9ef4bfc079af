# backend/app/services/conflict_checker.py
"""
Conflict Checker Service for the coaching scheduler

Handles booking conflict detection:
- The pure buffered-overlap test between two intervals
- Checking a requested window against an instructor's active bookings
- Listing offending bookings for diagnostics
- Filtering candidate slots in bulk

A window [start, end) conflicts with an existing booking when the existing
booking intersects [start - buffer, end + buffer). Only pending and
confirmed bookings that are not soft-deleted take part.
"""

from datetime import datetime, timedelta
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..core.constants import MIN_SESSION_DURATION
from ..core.results import Err, Ok, Result, SchedulingError
from ..core.timezone_utils import to_iso_z
from ..repositories import RepositoryFactory
from ..repositories.conflict_checker_repository import ConflictCheckerRepository
from .base import BaseService

logger = logging.getLogger(__name__)


def buffered_window(
    start: datetime, end: datetime, buffer_minutes: int
) -> Tuple[datetime, datetime]:
    buffer = timedelta(minutes=max(buffer_minutes, 0))
    return start - buffer, end + buffer


def intervals_conflict(
    a_start: datetime,
    a_end: datetime,
    b_start: datetime,
    b_end: datetime,
    buffer_minutes: int = 0,
) -> bool:
    """
    Buffered overlap test.

    Symmetric in its two intervals: swapping ``a`` and ``b`` never changes
    the answer.
    """
    window_start, window_end = buffered_window(a_start, a_end, buffer_minutes)
    return b_start < window_end and b_end > window_start


class ConflictChecker(BaseService):
    """
    Service for checking booking conflicts and time validation.
    """

    def __init__(
        self,
        db: Session,
        repository: Optional[ConflictCheckerRepository] = None,
        **kwargs: Any,
    ):
        """
        Initialize conflict checker service.

        Args:
            db: Database session
            repository: Optional ConflictCheckerRepository instance
        """
        super().__init__(db, **kwargs)
        self.logger = logging.getLogger(__name__)
        self.repository = repository or RepositoryFactory.create_conflict_checker_repository(db)

    @BaseService.measure_operation("has_conflict")
    def has_conflict(
        self,
        instructor_id: str,
        start_at: datetime,
        end_at: datetime,
        buffer_minutes: int,
        exclude_booking_id: Optional[str] = None,
    ) -> bool:
        """
        Check whether the buffered window overlaps any active booking.

        Args:
            instructor_id: The instructor to check
            start_at: Requested start (UTC)
            end_at: Requested end (UTC)
            buffer_minutes: Buffer applied on both sides of the request
            exclude_booking_id: Optional booking ID to ignore

        Returns:
            True if at least one active booking is in the way
        """
        window_start, window_end = buffered_window(start_at, end_at, buffer_minutes)
        return self.repository.has_overlapping_booking(
            instructor_id, window_start, window_end, exclude_booking_id
        )

    @BaseService.measure_operation("get_conflicting_bookings")
    def get_conflicting_bookings(
        self,
        instructor_id: str,
        start_at: datetime,
        end_at: datetime,
        buffer_minutes: int,
        exclude_booking_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """List the active bookings that block a window."""
        window_start, window_end = buffered_window(start_at, end_at, buffer_minutes)
        bookings = self.repository.get_overlapping_bookings(
            instructor_id, window_start, window_end, exclude_booking_id
        )
        conflicts = [
            {
                "booking_id": booking.id,
                "start_at": to_iso_z(booking.start_at),
                "end_at": to_iso_z(booking.end_at),
                "status": booking.status,
            }
            for booking in bookings
        ]
        if conflicts:
            self.logger.warning(
                f"Found {len(conflicts)} booking conflicts for {instructor_id} "
                f"between {to_iso_z(start_at)}-{to_iso_z(end_at)} (buffer {buffer_minutes}m)"
            )
        return conflicts

    def filter_conflicting_slots(
        self,
        instructor_id: str,
        slots: Sequence[Tuple[datetime, datetime]],
        buffer_minutes: int,
    ) -> List[Tuple[datetime, datetime]]:
        """Drop candidate slots that conflict with active bookings, in one query."""
        if not slots:
            return []
        range_start, range_end = buffered_window(
            min(slot[0] for slot in slots), max(slot[1] for slot in slots), buffer_minutes
        )
        bookings = self.repository.get_active_bookings_in_range(
            instructor_id, range_start, range_end
        )
        if not bookings:
            return list(slots)
        return [
            slot
            for slot in slots
            if not any(
                intervals_conflict(slot[0], slot[1], booking.start_at, booking.end_at, buffer_minutes)
                for booking in bookings
            )
        ]

    @staticmethod
    def validate_time_range(start_at: datetime, end_at: datetime) -> Result[int]:
        """
        Validate ordering and minimum length of a window.

        Returns:
            Ok(duration in whole minutes) or Err(validation error)
        """
        if end_at <= start_at:
            return Err(SchedulingError.validation("endAt must be after startAt"))
        minutes = (end_at - start_at).total_seconds() / 60
        if minutes < MIN_SESSION_DURATION:
            return Err(
                SchedulingError.validation(
                    f"Session must be at least {MIN_SESSION_DURATION} minutes"
                )
            )
        return Ok(int(minutes))
