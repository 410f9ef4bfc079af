# backend/app/schemas/availability.py
"""
Availability schemas for the coaching scheduler.

Weekly slots and date overrides are validated here and handed to the
scheduling settings service as WeeklyRule/DateOverride values. Settings
numbers are clamped by the service and the timezone is checked against the
tz database there.
"""

from datetime import date, time
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator, model_validator

from ..core.constants import MAX_REASON_LENGTH
from ..core.timezone_utils import parse_clock_time, parse_iso_date
from ..services.scheduling_settings_service import DateOverride, SettingsInput, WeeklyRule
from ._strict_base import StrictModel, StrictRequestModel

WEEKLY_RANGE_MESSAGE = "weeklySlots must include valid time ranges"
OVERRIDE_RANGE_MESSAGE = "available date overrides require valid startTime/endTime"
OVERRIDE_FLAG_MESSAGE = "dateOverrides.isAvailable must be boolean"
OVERRIDE_DATE_MESSAGE = "dateOverrides.date must be YYYY-MM-DD"


class WeeklySlotIn(StrictRequestModel):
    """A recurring local window; dayOfWeek 0 = Sunday."""

    day_of_week: int
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    @field_validator("day_of_week", mode="before")
    @classmethod
    def validate_weekday(cls, v: object) -> object:
        if isinstance(v, bool) or not isinstance(v, int) or not 0 <= v <= 6:
            raise ValueError("weeklySlots.dayOfWeek must be between 0 and 6")
        return v

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_time_string(cls, v: object) -> object:
        """Only HH:MM(:SS) strings are accepted."""
        parsed = parse_clock_time(v) if isinstance(v, str) else None
        if parsed is None:
            raise ValueError(WEEKLY_RANGE_MESSAGE)
        return parsed

    @model_validator(mode="after")
    def validate_time_order(self) -> "WeeklySlotIn":
        if self.start_time is None or self.end_time is None or self.start_time >= self.end_time:
            raise ValueError(WEEKLY_RANGE_MESSAGE)
        return self

    def to_rule(self) -> WeeklyRule:
        return WeeklyRule(
            weekday=self.day_of_week, start_time=self.start_time, end_time=self.end_time
        )


class DateOverrideIn(StrictRequestModel):
    """A date-specific exception; available overrides carry one window."""

    override_date: Optional[date] = Field(None, alias="date")
    is_available: Optional[bool] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    reason: Optional[str] = None

    @field_validator("override_date", mode="before")
    @classmethod
    def parse_date_string(cls, v: object) -> object:
        parsed = parse_iso_date(v) if isinstance(v, str) else None
        if parsed is None:
            raise ValueError(OVERRIDE_DATE_MESSAGE)
        return parsed

    @field_validator("is_available", mode="before")
    @classmethod
    def require_boolean(cls, v: object) -> object:
        if not isinstance(v, bool):
            raise ValueError(OVERRIDE_FLAG_MESSAGE)
        return v

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_time_string(cls, v: object) -> object:
        if v is None:
            return None
        parsed = parse_clock_time(v) if isinstance(v, str) else None
        if parsed is None:
            raise ValueError(OVERRIDE_RANGE_MESSAGE)
        return parsed

    @field_validator("reason")
    @classmethod
    def clean_reason(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip()[:MAX_REASON_LENGTH] or None

    @model_validator(mode="after")
    def validate_window(self) -> "DateOverrideIn":
        if self.override_date is None:
            raise ValueError(OVERRIDE_DATE_MESSAGE)
        if self.is_available is None:
            raise ValueError(OVERRIDE_FLAG_MESSAGE)
        if self.is_available and (
            self.start_time is None or self.end_time is None or self.start_time >= self.end_time
        ):
            raise ValueError(OVERRIDE_RANGE_MESSAGE)
        return self

    def to_override(self) -> DateOverride:
        if not self.is_available:
            return DateOverride(self.override_date, False, reason=self.reason)
        return DateOverride(
            self.override_date, True, self.start_time, self.end_time, reason=self.reason
        )


class AvailabilityReplaceRequest(StrictRequestModel):
    """Full replacement of an instructor's settings, weekly slots and date overrides."""

    instructor_id: Optional[str] = None
    timezone: Optional[str] = None
    session_duration_minutes: Optional[int] = None
    buffer_minutes: Optional[int] = None
    advance_booking_days: Optional[int] = None
    cancellation_cutoff_hours: Optional[int] = None
    weekly_slots: List[WeeklySlotIn] = Field(default_factory=list)
    date_overrides: List[DateOverrideIn] = Field(default_factory=list)

    def settings_input(self) -> SettingsInput:
        return SettingsInput(
            timezone=self.timezone,
            session_duration_minutes=self.session_duration_minutes,
            buffer_minutes=self.buffer_minutes,
            advance_booking_days=self.advance_booking_days,
            cancellation_cutoff_hours=self.cancellation_cutoff_hours,
        )

    def weekly_rules(self) -> List[WeeklyRule]:
        return [slot.to_rule() for slot in self.weekly_slots]

    def overrides(self) -> List[DateOverride]:
        return [override.to_override() for override in self.date_overrides]


class SchedulingSettingsResponse(StrictModel):
    timezone: str
    session_duration_minutes: int
    buffer_minutes: int
    advance_booking_days: int
    cancellation_cutoff_hours: int
    session_minutes: Optional[int] = None


class SlotResponse(StrictModel):
    start_at: str
    end_at: str
    student_display: str


class BookableSlotsResponse(StrictModel):
    """Response for the bookable-slot view."""

    ok: bool = True
    instructor_id: str
    settings: SchedulingSettingsResponse
    slots: List[SlotResponse]


class WeeklySlotResponse(StrictModel):
    day_of_week: int
    start_time: str
    end_time: str


class DateOverrideResponse(StrictModel):
    override_date: str = Field(alias="date")
    is_available: bool
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    reason: Optional[str] = None


class AvailabilitySnapshotResponse(StrictModel):
    """Settings, weekly slots and date overrides of one instructor."""

    ok: bool = True
    instructor_id: str
    settings: SchedulingSettingsResponse
    weekly_slots: List[WeeklySlotResponse]
    date_overrides: List[DateOverrideResponse]


class InstructorSummaryResponse(StrictModel):
    id: str
    display_name: str
    email: Optional[str] = None
    is_home_brand: bool
    settings: SchedulingSettingsResponse


class InstructorListResponse(StrictModel):
    """Response for the brand's bookable instructors."""

    ok: bool = True
    instructors: List[InstructorSummaryResponse]


class CalendarRangeResponse(StrictModel):
    from_: str = Field(alias="from")
    to: str


class InstructorCalendarResponse(StrictModel):
    """Response for an instructor's booking calendar."""

    ok: bool = True
    instructor_id: str
    timezone: str
    range: CalendarRangeResponse
    bookings: List[Dict[str, Any]]
