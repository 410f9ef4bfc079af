"""
Availability request schemas: weekly slots, date overrides and settings.
"""

from datetime import date, time

from pydantic import ValidationError
import pytest

from app.schemas.availability import (
    OVERRIDE_DATE_MESSAGE,
    OVERRIDE_FLAG_MESSAGE,
    OVERRIDE_RANGE_MESSAGE,
    WEEKLY_RANGE_MESSAGE,
    AvailabilityReplaceRequest,
    DateOverrideIn,
    WeeklySlotIn,
)
from app.services.scheduling_settings_service import DateOverride, SettingsInput, WeeklyRule

WEEKDAY_MESSAGE = "weeklySlots.dayOfWeek must be between 0 and 6"


def first_message(exc_info) -> str:
    return exc_info.value.errors()[0]["msg"].removeprefix("Value error, ")


class TestWeeklySlotIn:
    def test_valid_slot_becomes_rule(self):
        slot = WeeklySlotIn.model_validate(
            {"dayOfWeek": 0, "startTime": "09:00", "endTime": "17:30"}
        )

        assert slot.to_rule() == WeeklyRule(weekday=0, start_time=time(9), end_time=time(17, 30))

    @pytest.mark.parametrize(
        "raw, message",
        [
            ({"dayOfWeek": 7, "startTime": "09:00", "endTime": "10:00"}, WEEKDAY_MESSAGE),
            ({"dayOfWeek": "1", "startTime": "09:00", "endTime": "10:00"}, WEEKDAY_MESSAGE),
            ({"dayOfWeek": True, "startTime": "09:00", "endTime": "10:00"}, WEEKDAY_MESSAGE),
            ({"dayOfWeek": 1, "startTime": "10:00", "endTime": "09:00"}, WEEKLY_RANGE_MESSAGE),
            ({"dayOfWeek": 1, "startTime": "25:00", "endTime": "26:00"}, WEEKLY_RANGE_MESSAGE),
            ({"dayOfWeek": 1, "startTime": "09:00"}, WEEKLY_RANGE_MESSAGE),
        ],
    )
    def test_invalid_slots(self, raw, message):
        with pytest.raises(ValidationError) as exc_info:
            WeeklySlotIn.model_validate(raw)

        assert first_message(exc_info) == message


class TestDateOverrideIn:
    def test_blocked_date_drops_times_and_trims_reason(self):
        override = DateOverrideIn.model_validate(
            {"date": "2026-03-20", "isAvailable": False, "startTime": "10:00", "reason": "  Off  "}
        )

        assert override.to_override() == DateOverride(date(2026, 3, 20), False, reason="Off")

    def test_available_date_keeps_window(self):
        override = DateOverrideIn.model_validate(
            {"date": "2026-03-21", "isAvailable": True, "startTime": "10:00", "endTime": "12:00"}
        )

        assert override.to_override() == DateOverride(
            date(2026, 3, 21), True, time(10), time(12), reason=None
        )

    @pytest.mark.parametrize(
        "raw, message",
        [
            ({"date": "03/20/2026", "isAvailable": False}, OVERRIDE_DATE_MESSAGE),
            ({"isAvailable": False}, OVERRIDE_DATE_MESSAGE),
            ({"date": "2026-03-20", "isAvailable": "no"}, OVERRIDE_FLAG_MESSAGE),
            ({"date": "2026-03-20"}, OVERRIDE_FLAG_MESSAGE),
            (
                {"date": "2026-03-20", "isAvailable": True, "startTime": "10:00"},
                OVERRIDE_RANGE_MESSAGE,
            ),
            (
                {"date": "2026-03-20", "isAvailable": True, "startTime": "12:00", "endTime": "10:00"},
                OVERRIDE_RANGE_MESSAGE,
            ),
        ],
    )
    def test_invalid_overrides(self, raw, message):
        with pytest.raises(ValidationError) as exc_info:
            DateOverrideIn.model_validate(raw)

        assert first_message(exc_info) == message


class TestAvailabilityReplaceRequest:
    def test_converts_to_service_values(self):
        payload = AvailabilityReplaceRequest.model_validate(
            {
                "timezone": "Europe/London",
                "bufferMinutes": "30",
                "weeklySlots": [{"dayOfWeek": 2, "startTime": "09:00", "endTime": "11:00"}],
                "dateOverrides": [{"date": "2026-03-17", "isAvailable": False}],
            }
        )

        assert payload.settings_input() == SettingsInput(
            timezone="Europe/London",
            session_duration_minutes=None,
            buffer_minutes=30,
            advance_booking_days=None,
            cancellation_cutoff_hours=None,
        )
        assert payload.weekly_rules() == [WeeklyRule(2, time(9), time(11))]
        assert payload.overrides() == [DateOverride(date(2026, 3, 17), False)]

    def test_unknown_fields_are_rejected(self):
        with pytest.raises(ValidationError):
            AvailabilityReplaceRequest.model_validate({"color": "blue"})
