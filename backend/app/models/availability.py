# backend/app/models/availability.py
"""
Availability models for the coaching scheduler.

Instructors publish recurring weekly windows (AvailabilityRule) and
date-specific exceptions (AvailabilityOverride). Both are stored as local
wall-clock times in the instructor's timezone and are replaced as a full set
on every update: previous rows are soft-deleted, never patched.

Weekday numbering is 0 = Sunday through 6 = Saturday.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Time,
    text,
)
from sqlalchemy.sql import func
import ulid

from ..database import Base
from .types import UTCDateTime, utcnow


class AvailabilityRule(Base):
    """A recurring weekly availability window."""

    __tablename__ = "instructor_availability_rules"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    brand_id = Column(String(26), ForeignKey("brands.id"), nullable=False)
    instructor_id = Column(String(26), ForeignKey("instructors.id"), nullable=False)
    weekday = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)
    deleted_at = Column(UTCDateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("weekday >= 0 AND weekday <= 6", name="ck_availability_rules_weekday"),
        CheckConstraint("end_time > start_time", name="ck_availability_rules_time_order"),
        Index(
            "ix_availability_rules_lookup",
            "brand_id",
            "instructor_id",
            "weekday",
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    def __repr__(self) -> str:
        return f"<AvailabilityRule {self.instructor_id} dow={self.weekday} {self.start_time}-{self.end_time}>"


class AvailabilityOverride(Base):
    """
    A date-specific exception to the weekly rules.

    Unavailable overrides carry no times. Available overrides carry one window;
    several available overrides on the same date form several windows.
    """

    __tablename__ = "instructor_availability_overrides"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    brand_id = Column(String(26), ForeignKey("brands.id"), nullable=False)
    instructor_id = Column(String(26), ForeignKey("instructors.id"), nullable=False)
    override_date = Column(Date, nullable=False)
    is_available = Column(Boolean, nullable=False, default=False)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    reason = Column(String(255), nullable=True)
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)
    deleted_at = Column(UTCDateTime, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "(is_available = false AND start_time IS NULL AND end_time IS NULL) OR "
            "(is_available = true AND start_time IS NOT NULL AND end_time IS NOT NULL "
            "AND end_time > start_time)",
            name="ck_availability_overrides_shape",
        ),
        Index(
            "ix_availability_overrides_lookup",
            "brand_id",
            "instructor_id",
            "override_date",
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    def __repr__(self) -> str:
        return f"<AvailabilityOverride {self.instructor_id} {self.override_date} available={self.is_available}>"
