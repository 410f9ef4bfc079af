# backend/app/services/scheduling_settings_service.py
"""
Scheduling Settings Service for the coaching scheduler

Owns the per-instructor scheduling configuration and the instructor's weekly
rules and date overrides:
- Reading settings as an immutable value object (defaults on a missing row)
- Coercing out-of-range persisted values on read
- Replacing settings, rules and overrides atomically
- Listing a brand's bookable instructors with their settings

Every computation elsewhere receives a SchedulingSettings value explicitly;
nothing reads settings implicitly from the store.
"""

from dataclasses import dataclass, field
from datetime import date, time, timedelta
import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.constants import (
    DEFAULT_ADVANCE_BOOKING_DAYS,
    DEFAULT_BUFFER_MINUTES,
    DEFAULT_CANCELLATION_CUTOFF_HOURS,
    DEFAULT_SESSION_MINUTES,
    DEFAULT_TIMEZONE,
    EDITOR_OVERRIDE_DAYS,
    MAX_ADVANCE_BOOKING_DAYS,
    MAX_BUFFER_MINUTES,
    MAX_CANCELLATION_CUTOFF_HOURS,
    MAX_SESSION_DURATION,
    MIN_ADVANCE_BOOKING_DAYS,
    MIN_BUFFER_MINUTES,
    MIN_CANCELLATION_CUTOFF_HOURS,
    MIN_SESSION_DURATION,
)
from ..core.exceptions import RepositoryException, ServiceException
from ..core.results import Err, Ok, Result, SchedulingError
from ..core.timezone_utils import is_valid_timezone, parse_iso_date
from ..models.availability import AvailabilityOverride, AvailabilityRule
from ..models.scheduling_settings import InstructorSchedulingSettings
from ..repositories import RepositoryFactory
from .base import BaseService
from .identity_service import RequestContext

logger = logging.getLogger(__name__)


def clamp_int(value: Any, fallback: int, minimum: int, maximum: int) -> int:
    """
    Parse ``value`` as an integer and clamp it into ``[minimum, maximum]``.

    Missing or unparseable input yields ``fallback`` as given.
    """
    if value is None or value == "" or isinstance(value, bool):
        return fallback
    try:
        parsed = int(str(value).strip())
    except ValueError:
        try:
            parsed = int(float(str(value).strip()))
        except ValueError:
            return fallback
    return min(maximum, max(minimum, parsed))


@dataclass(frozen=True)
class SchedulingSettings:
    """Effective scheduling configuration of one instructor."""

    timezone: str = DEFAULT_TIMEZONE
    session_duration_minutes: int = DEFAULT_SESSION_MINUTES
    buffer_minutes: int = DEFAULT_BUFFER_MINUTES
    advance_booking_days: int = DEFAULT_ADVANCE_BOOKING_DAYS
    cancellation_cutoff_hours: int = DEFAULT_CANCELLATION_CUTOFF_HOURS

    @classmethod
    def defaults(cls) -> "SchedulingSettings":
        return cls()

    @classmethod
    def from_row(cls, row: Optional[InstructorSchedulingSettings]) -> "SchedulingSettings":
        """Build the value object from a persisted row, coercing bad values."""
        if row is None:
            return cls.defaults()

        def _int(value: Any, fallback: int) -> int:
            return fallback if value is None else int(value)

        return cls(
            timezone=row.timezone if is_valid_timezone(row.timezone) else DEFAULT_TIMEZONE,
            session_duration_minutes=max(
                MIN_SESSION_DURATION,
                _int(row.session_duration_minutes, DEFAULT_SESSION_MINUTES),
            ),
            buffer_minutes=max(0, _int(row.buffer_minutes, DEFAULT_BUFFER_MINUTES)),
            advance_booking_days=max(
                1, _int(row.advance_booking_days, DEFAULT_ADVANCE_BOOKING_DAYS)
            ),
            cancellation_cutoff_hours=max(
                0, _int(row.cancellation_cutoff_hours, DEFAULT_CANCELLATION_CUTOFF_HOURS)
            ),
        )

    def to_response(self) -> Dict[str, Any]:
        return {
            "timezone": self.timezone,
            "sessionDurationMinutes": self.session_duration_minutes,
            "bufferMinutes": self.buffer_minutes,
            "advanceBookingDays": self.advance_booking_days,
            "cancellationCutoffHours": self.cancellation_cutoff_hours,
        }


@dataclass(frozen=True)
class WeeklyRule:
    """A recurring local window; weekday 0 = Sunday."""

    weekday: int
    start_time: time
    end_time: time
    is_active: bool = True

    @classmethod
    def from_model(cls, row: AvailabilityRule) -> "WeeklyRule":
        return cls(
            weekday=row.weekday,
            start_time=row.start_time,
            end_time=row.end_time,
            is_active=bool(row.is_active),
        )

    def to_response(self) -> Dict[str, Any]:
        return {
            "dayOfWeek": self.weekday,
            "startTime": self.start_time.strftime("%H:%M"),
            "endTime": self.end_time.strftime("%H:%M"),
        }


@dataclass(frozen=True)
class DateOverride:
    """A date-specific exception; available overrides carry one window."""

    override_date: date
    is_available: bool
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    reason: Optional[str] = None

    @classmethod
    def from_model(cls, row: AvailabilityOverride) -> "DateOverride":
        return cls(
            override_date=row.override_date,
            is_available=bool(row.is_available),
            start_time=row.start_time,
            end_time=row.end_time,
            reason=row.reason,
        )

    def to_response(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "date": self.override_date.isoformat(),
            "isAvailable": self.is_available,
        }
        if self.is_available and self.start_time and self.end_time:
            payload["startTime"] = self.start_time.strftime("%H:%M")
            payload["endTime"] = self.end_time.strftime("%H:%M")
        if self.reason:
            payload["reason"] = self.reason
        return payload


@dataclass(frozen=True)
class AvailabilitySnapshot:
    instructor_id: str
    settings: SchedulingSettings
    weekly_rules: List[WeeklyRule] = field(default_factory=list)
    date_overrides: List[DateOverride] = field(default_factory=list)

    def to_response(self) -> Dict[str, Any]:
        return {
            "ok": True,
            "instructorId": self.instructor_id,
            "settings": self.settings.to_response(),
            "weeklySlots": [rule.to_response() for rule in self.weekly_rules],
            "dateOverrides": [override.to_response() for override in self.date_overrides],
        }


@dataclass(frozen=True)
class SettingsInput:
    """Requested settings; None means "use the default"."""

    timezone: Optional[str] = None
    session_duration_minutes: Optional[int] = None
    buffer_minutes: Optional[int] = None
    advance_booking_days: Optional[int] = None
    cancellation_cutoff_hours: Optional[int] = None


@dataclass(frozen=True)
class InstructorSummary:
    instructor_id: str
    display_name: str
    email: Optional[str]
    is_home_brand: bool
    settings: SchedulingSettings

    def to_response(self) -> Dict[str, Any]:
        return {
            "id": self.instructor_id,
            "displayName": self.display_name,
            "email": self.email,
            "isHomeBrand": self.is_home_brand,
            "settings": self.settings.to_response(),
        }


class SchedulingSettingsService(BaseService):
    """
    Service for instructor scheduling settings and availability sets.
    """

    def __init__(self, db: Session, **kwargs: Any):
        super().__init__(db, **kwargs)
        self.settings_repository = RepositoryFactory.create_scheduling_settings_repository(db)
        self.availability_repository = RepositoryFactory.create_availability_repository(db)
        self.tenant_repository = RepositoryFactory.create_tenant_repository(db)

    @BaseService.measure_operation("get_settings")
    def get_settings(self, brand_id: str, instructor_id: str) -> SchedulingSettings:
        """
        Get the effective settings of an instructor.

        Defaults are materialised when no row exists; nothing is written.
        """
        row = self.settings_repository.get_for_instructor(brand_id, instructor_id)
        return SchedulingSettings.from_row(row)

    def get_rules_and_overrides(
        self,
        brand_id: str,
        instructor_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> tuple:
        rules = [
            WeeklyRule.from_model(row)
            for row in self.availability_repository.get_active_rules(brand_id, instructor_id)
        ]
        overrides = [
            DateOverride.from_model(row)
            for row in self.availability_repository.get_overrides(
                brand_id, instructor_id, start_date, end_date
            )
        ]
        return rules, overrides

    @BaseService.measure_operation("get_availability")
    def get_availability(
        self,
        brand_id: str,
        instructor_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> AvailabilitySnapshot:
        """
        Settings plus the live rules and overrides, for the instructor's editor.

        Overrides are limited to ``[start_date, end_date]`` when given.
        """
        settings = self.get_settings(brand_id, instructor_id)
        rules, overrides = self.get_rules_and_overrides(
            brand_id, instructor_id, start_date, end_date
        )
        return AvailabilitySnapshot(instructor_id, settings, rules, overrides)

    @BaseService.measure_operation("get_editor_availability")
    def get_editor_availability(
        self,
        context: RequestContext,
        instructor_id: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> Result[AvailabilitySnapshot]:
        """
        The availability editor view of one instructor.

        Open to brand admins and the instructor themself. Override dates
        default to ``[today, today + 90 days]``; malformed bounds fall back
        to those defaults.
        """
        instructor_id = (instructor_id or "").strip()
        instructor = self.tenant_repository.get_instructor_in_brand(context.brand_id, instructor_id)
        if instructor is None:
            return Err(SchedulingError.not_found("Instructor is not linked to this brand"))
        if not context.can_manage_instructor(instructor_id):
            return Err(SchedulingError.authorization())

        today = self.clock.now().date()
        range_start = parse_iso_date(start_date) or today
        range_end = parse_iso_date(end_date) or today + timedelta(days=EDITOR_OVERRIDE_DAYS)
        return Ok(self.get_availability(context.brand_id, instructor_id, range_start, range_end))

    @BaseService.measure_operation("list_brand_instructors")
    def list_brand_instructors(self, brand_id: str) -> List[InstructorSummary]:
        """
        Home and linked instructors of a brand with their effective settings.

        Sorted by display name, then id.
        """
        instructors = self.tenant_repository.list_instructors_in_brand(brand_id)
        rows = self.settings_repository.get_for_instructors(
            brand_id, [instructor.id for instructor in instructors]
        )
        settings_by_instructor = {row.instructor_id: row for row in rows}
        summaries = [
            InstructorSummary(
                instructor_id=instructor.id,
                display_name=instructor.display_name,
                email=instructor.email,
                is_home_brand=instructor.brand_id == brand_id,
                settings=SchedulingSettings.from_row(settings_by_instructor.get(instructor.id)),
            )
            for instructor in instructors
        ]
        return sorted(
            summaries, key=lambda item: (item.display_name.lower(), item.instructor_id)
        )

    def build_settings(
        self,
        current: SchedulingSettings,
        settings_input: SettingsInput,
    ) -> Result[SchedulingSettings]:
        """
        Validate and clamp a settings write.

        A missing timezone means UTC; an unknown one is rejected. Numeric
        fields are clamped into their write bounds.
        """
        timezone = settings_input.timezone
        tz_name = timezone.strip() if isinstance(timezone, str) else DEFAULT_TIMEZONE
        if not is_valid_timezone(tz_name):
            return Err(SchedulingError.validation("timezone must be a valid IANA timezone"))

        return Ok(
            SchedulingSettings(
                timezone=tz_name,
                session_duration_minutes=clamp_int(
                    settings_input.session_duration_minutes,
                    min(MAX_SESSION_DURATION, current.session_duration_minutes),
                    MIN_SESSION_DURATION,
                    MAX_SESSION_DURATION,
                ),
                buffer_minutes=clamp_int(
                    settings_input.buffer_minutes,
                    DEFAULT_BUFFER_MINUTES,
                    MIN_BUFFER_MINUTES,
                    MAX_BUFFER_MINUTES,
                ),
                advance_booking_days=clamp_int(
                    settings_input.advance_booking_days,
                    DEFAULT_ADVANCE_BOOKING_DAYS,
                    MIN_ADVANCE_BOOKING_DAYS,
                    MAX_ADVANCE_BOOKING_DAYS,
                ),
                cancellation_cutoff_hours=clamp_int(
                    settings_input.cancellation_cutoff_hours,
                    DEFAULT_CANCELLATION_CUTOFF_HOURS,
                    MIN_CANCELLATION_CUTOFF_HOURS,
                    MAX_CANCELLATION_CUTOFF_HOURS,
                ),
            )
        )

    @BaseService.measure_operation("replace_availability")
    def replace_availability(
        self,
        brand_id: str,
        instructor_id: str,
        settings_input: SettingsInput,
        rules: Sequence[WeeklyRule],
        overrides: Sequence[DateOverride],
    ) -> Result[AvailabilitySnapshot]:
        """
        Replace an instructor's settings, weekly rules and overrides in one transaction.

        Args:
            brand_id: Tenant of the instructor
            instructor_id: Instructor whose availability is replaced
            settings_input: Requested settings; missing numbers take defaults
            rules: Validated weekly rules
            overrides: Validated date overrides

        Returns:
            Ok(snapshot of the new state) or Err(validation/upstream error)
        """
        current = self.get_settings(brand_id, instructor_id)
        settings_result = self.build_settings(current, settings_input)
        if isinstance(settings_result, Err):
            return settings_result

        settings = settings_result.value
        rules = list(rules)
        overrides = list(overrides)
        now = self.clock.now()

        try:
            with self.transaction():
                self.settings_repository.upsert(
                    brand_id,
                    instructor_id,
                    timezone=settings.timezone,
                    session_duration_minutes=settings.session_duration_minutes,
                    buffer_minutes=settings.buffer_minutes,
                    advance_booking_days=settings.advance_booking_days,
                    cancellation_cutoff_hours=settings.cancellation_cutoff_hours,
                )
                self.availability_repository.soft_delete_all(brand_id, instructor_id, now)
                self.availability_repository.insert_rules(
                    brand_id,
                    instructor_id,
                    [
                        {
                            "weekday": rule.weekday,
                            "start_time": rule.start_time,
                            "end_time": rule.end_time,
                            "is_active": True,
                        }
                        for rule in rules
                    ],
                )
                self.availability_repository.insert_overrides(
                    brand_id,
                    instructor_id,
                    [
                        {
                            "override_date": override.override_date,
                            "is_available": override.is_available,
                            "start_time": override.start_time,
                            "end_time": override.end_time,
                            "reason": override.reason,
                        }
                        for override in overrides
                    ],
                )
        except (RepositoryException, ServiceException) as exc:
            self.logger.error("Failed to replace availability for %s: %s", instructor_id, exc)
            return Err(SchedulingError.upstream(str(exc)))

        self.log_operation(
            "replace_availability",
            instructor_id=instructor_id,
            rules=len(rules),
            overrides=len(overrides),
        )
        return Ok(AvailabilitySnapshot(instructor_id, settings, rules, overrides))
