# backend/app/services/availability_resolver.py
"""
Availability Resolver for the coaching scheduler

Turns an instructor's weekly rules and date overrides into concrete UTC
slots. The pure functions at module level do the calendar arithmetic and
never touch the database; AvailabilityService wires them to the store,
clamps the requested range and removes past or booked slots.

Resolution per local calendar date:
- Any override on the date replaces the weekly rules for that date
  (unavailable overrides leave no windows, available ones supply them)
- Each window is cut into back-to-back slots of the session length; a
  trailing remainder that does not fit is dropped
- Every slot boundary is localised on its own, so DST days get the offset
  in force at that instant
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
import logging
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.constants import (
    DEFAULT_AVAILABILITY_DAYS,
    DEFAULT_SESSION_MINUTES,
    MAX_AVAILABILITY_DAYS,
    MAX_SESSION_DURATION,
    MIN_AVAILABILITY_DAYS,
    MIN_SESSION_DURATION,
)
from ..core.timezone_utils import (
    format_for_display,
    local_today,
    local_to_utc,
    normalize_timezone,
    sunday_based_weekday,
    to_iso_z,
)
from .base import BaseService
from .conflict_checker import ConflictChecker
from .scheduling_settings_service import (
    DateOverride,
    SchedulingSettings,
    SchedulingSettingsService,
    WeeklyRule,
    clamp_int,
)

logger = logging.getLogger(__name__)


class Slot(NamedTuple):
    start_at: datetime
    end_at: datetime


def _windows_for_date(
    day: date,
    rules_by_weekday: Dict[int, List[WeeklyRule]],
    overrides_by_date: Dict[date, List[DateOverride]],
) -> List[Tuple[time, time]]:
    overrides = overrides_by_date.get(day)
    if overrides:
        return [
            (override.start_time, override.end_time)
            for override in overrides
            if override.is_available and override.start_time and override.end_time
        ]
    return [
        (rule.start_time, rule.end_time)
        for rule in rules_by_weekday.get(sunday_based_weekday(day), [])
        if rule.is_active
    ]


def resolve_slots(
    settings: SchedulingSettings,
    rules: Iterable[WeeklyRule],
    overrides: Iterable[DateOverride],
    range_start: date,
    days: int,
    session_minutes: int,
) -> List[Slot]:
    """
    Compute bookable UTC slots for ``days`` local dates starting at ``range_start``.

    Args:
        settings: Instructor settings; only the timezone is used here
        rules: Weekly rules (inactive ones are ignored)
        overrides: Date overrides
        range_start: First local date of the range
        days: Number of local dates to cover
        session_minutes: Slot length

    Returns:
        Slots ordered by start, without duplicates
    """
    session = timedelta(minutes=max(session_minutes, MIN_SESSION_DURATION))
    tz_name = normalize_timezone(settings.timezone)

    rules_by_weekday: Dict[int, List[WeeklyRule]] = defaultdict(list)
    for rule in rules:
        rules_by_weekday[rule.weekday].append(rule)
    overrides_by_date: Dict[date, List[DateOverride]] = defaultdict(list)
    for override in overrides:
        overrides_by_date[override.override_date].append(override)

    seen = set()
    slots: List[Slot] = []
    for offset in range(max(days, 0)):
        day = range_start + timedelta(days=offset)
        for window_start, window_end in _windows_for_date(day, rules_by_weekday, overrides_by_date):
            cursor = datetime.combine(day, window_start)
            limit = datetime.combine(day, window_end)
            while cursor + session <= limit:
                slot_end = cursor + session
                slot = Slot(
                    local_to_utc(day, cursor.time(), tz_name),
                    local_to_utc(day, slot_end.time(), tz_name),
                )
                if slot not in seen and slot.end_at > slot.start_at:
                    seen.add(slot)
                    slots.append(slot)
                cursor = slot_end

    slots.sort(key=lambda slot: (slot.start_at, slot.end_at))
    return slots


def is_within_availability(
    settings: SchedulingSettings,
    rules: Iterable[WeeklyRule],
    overrides: Iterable[DateOverride],
    start_at: datetime,
    end_at: datetime,
    session_minutes: int,
    local_date: Optional[date] = None,
) -> bool:
    """
    True only if ``(start_at, end_at)`` is exactly one of the resolved slots.

    The local date defaults to the start's calendar date in the instructor's
    timezone.
    """
    tz_name = normalize_timezone(settings.timezone)
    day = local_date or local_today(start_at, tz_name)
    candidates = resolve_slots(settings, rules, overrides, day, 1, session_minutes)
    return any(slot.start_at == start_at and slot.end_at == end_at for slot in candidates)


@dataclass(frozen=True)
class BookableSlots:
    instructor_id: str
    settings: SchedulingSettings
    session_minutes: int
    student_timezone: str
    slots: List[Slot]

    def to_response(self) -> Dict[str, Any]:
        settings_payload = self.settings.to_response()
        settings_payload["sessionMinutes"] = self.session_minutes
        return {
            "ok": True,
            "instructorId": self.instructor_id,
            "settings": settings_payload,
            "slots": [
                {
                    "startAt": to_iso_z(slot.start_at),
                    "endAt": to_iso_z(slot.end_at),
                    "studentDisplay": format_for_display(slot.start_at, self.student_timezone),
                }
                for slot in self.slots
            ],
        }


class AvailabilityService(BaseService):
    """
    Bookable-slot view of an instructor's calendar.
    """

    def __init__(
        self,
        db: Session,
        settings_service: Optional[SchedulingSettingsService] = None,
        conflict_checker: Optional[ConflictChecker] = None,
        **kwargs: Any,
    ):
        super().__init__(db, **kwargs)
        self.settings_service = settings_service or SchedulingSettingsService(db, clock=self.clock)
        self.conflict_checker = conflict_checker or ConflictChecker(db, clock=self.clock)

    @BaseService.measure_operation("list_bookable_slots")
    def list_bookable_slots(
        self,
        brand_id: str,
        instructor_id: str,
        *,
        start_date: Optional[date] = None,
        days: Any = None,
        session_minutes: Any = None,
        student_timezone: Optional[str] = None,
    ) -> BookableSlots:
        """
        Future, unbooked slots of an instructor.

        The range is clamped to ``[today, today + advance_booking_days]`` in
        the instructor's timezone. Slots that already started, or that clash
        with an active booking (buffer included), are dropped.
        """
        days_value = clamp_int(
            days, DEFAULT_AVAILABILITY_DAYS, MIN_AVAILABILITY_DAYS, MAX_AVAILABILITY_DAYS
        )
        session_value = clamp_int(
            session_minutes, DEFAULT_SESSION_MINUTES, MIN_SESSION_DURATION, MAX_SESSION_DURATION
        )
        student_tz = normalize_timezone(student_timezone)

        settings = self.settings_service.get_settings(brand_id, instructor_id)
        now = self.clock.now()
        today = local_today(now, settings.timezone)
        first_day = max(start_date or today, today)
        last_day = min(
            first_day + timedelta(days=days_value - 1),
            today + timedelta(days=settings.advance_booking_days),
        )
        if last_day < first_day:
            return BookableSlots(instructor_id, settings, session_value, student_tz, [])

        rules, overrides = self.settings_service.get_rules_and_overrides(
            brand_id, instructor_id, first_day, last_day
        )
        span = (last_day - first_day).days + 1
        candidates = [
            slot
            for slot in resolve_slots(settings, rules, overrides, first_day, span, session_value)
            if slot.start_at >= now
        ]
        open_slots = self.conflict_checker.filter_conflicting_slots(
            instructor_id, candidates, settings.buffer_minutes
        )
        return BookableSlots(
            instructor_id,
            settings,
            session_value,
            student_tz,
            [Slot(*slot) for slot in open_slots],
        )

    def is_slot_available(
        self,
        brand_id: str,
        instructor_id: str,
        settings: SchedulingSettings,
        start_at: datetime,
        end_at: datetime,
        session_minutes: int,
    ) -> bool:
        """Exact slot match on the start's local date in the instructor's timezone."""
        local_date = local_today(start_at, settings.timezone)
        rules, overrides = self.settings_service.get_rules_and_overrides(
            brand_id, instructor_id, local_date, local_date
        )
        return is_within_availability(
            settings, rules, overrides, start_at, end_at, session_minutes, local_date
        )
