# backend/app/models/scheduling_settings.py
"""
Per-instructor scheduling configuration.

One live row per (brand, instructor). Writes update the row in place; rows
are never hard-deleted. When no row exists the service layer materialises
defaults instead of inserting one.
"""

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String, text
from sqlalchemy.sql import func
import ulid

from ..core.constants import (
    DEFAULT_ADVANCE_BOOKING_DAYS,
    DEFAULT_BUFFER_MINUTES,
    DEFAULT_CANCELLATION_CUTOFF_HOURS,
    DEFAULT_SESSION_MINUTES,
    DEFAULT_TIMEZONE,
)
from ..database import Base
from .types import UTCDateTime, utcnow


class InstructorSchedulingSettings(Base):
    __tablename__ = "instructor_scheduling_settings"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    brand_id = Column(String(26), ForeignKey("brands.id"), nullable=False)
    instructor_id = Column(String(26), ForeignKey("instructors.id"), nullable=False)
    timezone = Column(String(64), nullable=False, default=DEFAULT_TIMEZONE)
    session_duration_minutes = Column(Integer, nullable=False, default=DEFAULT_SESSION_MINUTES)
    buffer_minutes = Column(Integer, nullable=False, default=DEFAULT_BUFFER_MINUTES)
    advance_booking_days = Column(Integer, nullable=False, default=DEFAULT_ADVANCE_BOOKING_DAYS)
    cancellation_cutoff_hours = Column(
        Integer, nullable=False, default=DEFAULT_CANCELLATION_CUTOFF_HOURS
    )
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=True)
    deleted_at = Column(UTCDateTime, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "session_duration_minutes >= 15 AND session_duration_minutes <= 480",
            name="ck_scheduling_settings_duration",
        ),
        CheckConstraint(
            "buffer_minutes >= 0 AND buffer_minutes <= 180", name="ck_scheduling_settings_buffer"
        ),
        CheckConstraint(
            "advance_booking_days >= 1 AND advance_booking_days <= 365",
            name="ck_scheduling_settings_advance",
        ),
        CheckConstraint(
            "cancellation_cutoff_hours >= 0 AND cancellation_cutoff_hours <= 720",
            name="ck_scheduling_settings_cutoff",
        ),
        Index(
            "ux_scheduling_settings_brand_instructor",
            "brand_id",
            "instructor_id",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<InstructorSchedulingSettings instructor={self.instructor_id} tz={self.timezone} "
            f"session={self.session_duration_minutes} buffer={self.buffer_minutes}>"
        )
