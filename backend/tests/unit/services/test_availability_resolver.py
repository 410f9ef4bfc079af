"""
Slot resolution: weekly rules, date overrides, timezones and the bookable view.
"""

from dataclasses import replace
from datetime import date, time, timedelta

import pytest

from app.core.clock import FixedClock
from app.services.availability_resolver import (
    AvailabilityService,
    Slot,
    is_within_availability,
    resolve_slots,
)
from app.services.scheduling_settings_service import DateOverride, SchedulingSettings, WeeklyRule
from tests._utils.scheduling import utc

NEW_YORK = replace(SchedulingSettings.defaults(), timezone="America/New_York")
TUESDAY = date(2026, 3, 10)


def weekly(weekday: int, start: str, end: str, is_active: bool = True) -> WeeklyRule:
    return WeeklyRule(
        weekday=weekday,
        start_time=time.fromisoformat(start),
        end_time=time.fromisoformat(end),
        is_active=is_active,
    )


class TestResolveSlots:
    def test_local_rule_is_converted_with_instructor_offset(self):
        slots = resolve_slots(NEW_YORK, [weekly(2, "09:00", "17:00")], [], TUESDAY, 1, 60)

        assert len(slots) == 8
        assert slots[0] == Slot(utc(2026, 3, 10, 13, 0), utc(2026, 3, 10, 14, 0))
        assert slots[-1] == Slot(utc(2026, 3, 10, 20, 0), utc(2026, 3, 10, 21, 0))

    def test_slots_are_back_to_back_and_partial_tail_is_dropped(self):
        slots = resolve_slots(
            SchedulingSettings.defaults(), [weekly(2, "09:00", "11:30")], [], TUESDAY, 1, 60
        )
        assert [slot.start_at.hour for slot in slots] == [9, 10]

    def test_inactive_rules_are_ignored(self):
        rules = [weekly(2, "09:00", "10:00", is_active=False)]
        assert resolve_slots(SchedulingSettings.defaults(), rules, [], TUESDAY, 1, 60) == []

    def test_other_weekdays_produce_nothing(self):
        assert resolve_slots(NEW_YORK, [weekly(3, "09:00", "17:00")], [], TUESDAY, 1, 60) == []

    def test_unavailable_override_blocks_the_whole_day(self):
        overrides = [DateOverride(TUESDAY, False, reason="Conference")]
        slots = resolve_slots(NEW_YORK, [weekly(2, "09:00", "17:00")], overrides, TUESDAY, 7, 60)
        assert slots == []

    def test_available_override_replaces_weekly_rules(self):
        overrides = [DateOverride(TUESDAY, True, time(12, 0), time(14, 0))]
        slots = resolve_slots(NEW_YORK, [weekly(2, "09:00", "17:00")], overrides, TUESDAY, 1, 60)
        assert slots == [
            Slot(utc(2026, 3, 10, 16, 0), utc(2026, 3, 10, 17, 0)),
            Slot(utc(2026, 3, 10, 17, 0), utc(2026, 3, 10, 18, 0)),
        ]

    def test_override_applies_without_any_weekly_rule(self):
        saturday = date(2026, 3, 14)
        overrides = [DateOverride(saturday, True, time(10, 0), time(11, 0))]
        slots = resolve_slots(SchedulingSettings.defaults(), [], overrides, saturday, 1, 30)
        assert [slot.start_at for slot in slots] == [
            utc(2026, 3, 14, 10, 0),
            utc(2026, 3, 14, 10, 30),
        ]

    def test_override_only_affects_its_own_date(self):
        overrides = [DateOverride(TUESDAY, False)]
        rules = [weekly(2, "09:00", "10:00"), weekly(3, "09:00", "10:00")]
        slots = resolve_slots(NEW_YORK, rules, overrides, TUESDAY, 2, 60)
        assert slots == [Slot(utc(2026, 3, 11, 13, 0), utc(2026, 3, 11, 14, 0))]

    def test_offset_changes_across_dst_start(self):
        rules = [weekly(day, "09:00", "10:00") for day in range(7)]
        slots = resolve_slots(NEW_YORK, rules, [], date(2026, 3, 7), 3, 60)
        assert [slot.start_at for slot in slots] == [
            utc(2026, 3, 7, 14, 0),
            utc(2026, 3, 8, 13, 0),
            utc(2026, 3, 9, 13, 0),
        ]

    def test_slot_collapsed_by_spring_forward_gap_is_dropped(self):
        slots = resolve_slots(NEW_YORK, [weekly(0, "01:00", "04:00")], [], date(2026, 3, 8), 1, 60)
        assert slots == [
            Slot(utc(2026, 3, 8, 6, 0), utc(2026, 3, 8, 7, 0)),
            Slot(utc(2026, 3, 8, 7, 0), utc(2026, 3, 8, 8, 0)),
        ]

    def test_fall_back_hour_starts_at_its_first_occurrence(self):
        slots = resolve_slots(NEW_YORK, [weekly(0, "01:00", "03:00")], [], date(2026, 11, 1), 1, 60)
        # 01:00 EDT is 05:00Z; 02:00 only exists once, as EST
        assert slots == [
            Slot(utc(2026, 11, 1, 5, 0), utc(2026, 11, 1, 7, 0)),
            Slot(utc(2026, 11, 1, 7, 0), utc(2026, 11, 1, 8, 0)),
        ]

    def test_overlapping_rules_do_not_duplicate_slots(self):
        rules = [weekly(2, "09:00", "11:00"), weekly(2, "09:00", "10:00")]
        slots = resolve_slots(SchedulingSettings.defaults(), rules, [], TUESDAY, 1, 60)
        assert len(slots) == 2


class TestIsWithinAvailability:
    rules = [weekly(2, "09:00", "17:00")]

    def test_exact_slot_is_available(self):
        assert is_within_availability(
            NEW_YORK, self.rules, [], utc(2026, 3, 10, 14, 0), utc(2026, 3, 10, 15, 0), 60
        )

    @pytest.mark.parametrize(
        "start, end",
        [
            (utc(2026, 3, 10, 12, 0), utc(2026, 3, 10, 13, 0)),  # 08:00 local, before the rule
            (utc(2026, 3, 10, 14, 30), utc(2026, 3, 10, 15, 30)),  # off the slot grid
            (utc(2026, 3, 10, 21, 0), utc(2026, 3, 10, 22, 0)),  # starts at rule end
            (utc(2026, 3, 10, 14, 0), utc(2026, 3, 10, 16, 0)),  # length differs from session
        ],
    )
    def test_non_matching_windows_are_rejected(self, start, end):
        assert not is_within_availability(NEW_YORK, self.rules, [], start, end, 60)

    def test_unavailable_override_rejects_matching_slot(self):
        overrides = [DateOverride(TUESDAY, False)]
        assert not is_within_availability(
            NEW_YORK, self.rules, overrides, utc(2026, 3, 10, 14, 0), utc(2026, 3, 10, 15, 0), 60
        )


class TestBookableSlots:
    @pytest.fixture
    def service(self, db, world):
        world.configure(timezone="America/New_York", buffer_minutes=0)
        world.add_weekly_slots([2], "09:00", "17:00")
        # Tuesday 10:30 local
        clock = FixedClock(utc(2026, 3, 10, 14, 30))
        return AvailabilityService(db, clock=clock)

    def starts(self, view):
        return [slot.start_at.hour for slot in view.slots]

    def test_past_slots_are_excluded(self, service, world):
        view = service.list_bookable_slots(world.brand.id, world.instructor.id, days=1)
        assert self.starts(view) == [15, 16, 17, 18, 19, 20]

    def test_active_bookings_remove_overlapping_slots(self, service, world):
        world.add_booking(utc(2026, 3, 10, 16, 0))
        world.add_booking(utc(2026, 3, 10, 18, 0), status="cancelled")

        view = service.list_bookable_slots(world.brand.id, world.instructor.id, days=1)
        assert self.starts(view) == [15, 17, 18, 19, 20]

    def test_buffer_widens_the_blocked_range(self, db, world):
        world.configure(timezone="America/New_York", buffer_minutes=15)
        world.add_weekly_slots([2], "09:00", "17:00")
        world.add_booking(utc(2026, 3, 10, 16, 0))
        service = AvailabilityService(db, clock=FixedClock(utc(2026, 3, 10, 14, 30)))

        view = service.list_bookable_slots(world.brand.id, world.instructor.id, days=1)
        assert self.starts(view) == [18, 19, 20]

    def test_range_is_capped_by_advance_booking_days(self, db, world):
        world.configure(timezone="UTC", advance_booking_days=2)
        world.add_weekly_slots(start="09:00", end="10:00")
        service = AvailabilityService(db, clock=FixedClock(utc(2026, 3, 10, 8, 0)))

        view = service.list_bookable_slots(world.brand.id, world.instructor.id, days=30)
        assert [slot.start_at.day for slot in view.slots] == [10, 11, 12]

    def test_start_date_in_the_past_is_clamped_to_today(self, service, world):
        view = service.list_bookable_slots(
            world.brand.id, world.instructor.id, start_date=TUESDAY - timedelta(days=5), days=6
        )
        assert self.starts(view) == [15, 16, 17, 18, 19, 20]

    def test_start_date_beyond_the_window_is_empty(self, service, world):
        view = service.list_bookable_slots(
            world.brand.id, world.instructor.id, start_date=TUESDAY + timedelta(days=400)
        )
        assert view.slots == []

    def test_response_uses_student_timezone_for_display(self, service, world):
        view = service.list_bookable_slots(
            world.brand.id,
            world.instructor.id,
            days="1",
            session_minutes="60",
            student_timezone="Europe/London",
        )
        payload = view.to_response()

        assert payload["ok"] is True
        assert payload["instructorId"] == world.instructor.id
        assert payload["settings"]["timezone"] == "America/New_York"
        assert payload["settings"]["sessionMinutes"] == 60
        assert payload["slots"][0] == {
            "startAt": "2026-03-10T15:00:00.000Z",
            "endAt": "2026-03-10T16:00:00.000Z",
            "studentDisplay": "Mar 10, 2026, 3:00 PM",
        }

    def test_unparseable_query_values_fall_back_to_defaults(self, service, world):
        view = service.list_bookable_slots(
            world.brand.id, world.instructor.id, days="many", session_minutes="long"
        )
        assert view.session_minutes == 60
        assert view.student_timezone == "UTC"

    def test_instructor_without_rules_has_no_slots(self, db, world, clock):
        view = AvailabilityService(db, clock=clock).list_bookable_slots(
            world.brand.id, world.instructor.id
        )
        assert view.slots == []
        assert view.settings == SchedulingSettings.defaults()
