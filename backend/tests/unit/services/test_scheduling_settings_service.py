"""
SchedulingSettingsService: defaults, write validation and atomic replacement.
"""

from datetime import date, time

import pytest

from app.core.results import Err, Ok, SchedulingErrorKind
from app.models import AvailabilityRule, Instructor, InstructorBrand, InstructorSchedulingSettings
from app.schemas.availability import AvailabilityReplaceRequest
from app.services.scheduling_settings_service import (
    SchedulingSettings,
    SchedulingSettingsService,
    clamp_int,
)
from tests._utils.scheduling import DEFAULT_NOW, seed_world

WEEKDAY_SLOTS = [
    {"dayOfWeek": 1, "startTime": "09:00", "endTime": "12:00"},
    {"dayOfWeek": 3, "startTime": "13:00", "endTime": "17:30"},
]


@pytest.fixture
def service(db, clock):
    return SchedulingSettingsService(db, clock=clock)


def replace(service, world, settings=None, slots=None, overrides=None):
    payload = AvailabilityReplaceRequest.model_validate(
        {
            **(settings if settings is not None else {"timezone": "America/New_York"}),
            "weeklySlots": WEEKDAY_SLOTS if slots is None else slots,
            "dateOverrides": overrides or [],
        }
    )
    return service.replace_availability(
        world.brand.id,
        world.instructor.id,
        payload.settings_input(),
        payload.weekly_rules(),
        payload.overrides(),
    )


class TestClampInt:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            (None, 7),
            ("", 7),
            (True, 7),
            ("abc", 7),
            ("30", 30),
            (" 45 ", 45),
            (12.9, 12),
            ("500", 120),
            (-10, 0),
        ],
    )
    def test_parses_and_clamps(self, raw, expected):
        assert clamp_int(raw, 7, 0, 120) == expected


class TestSchedulingSettingsValue:
    def test_missing_row_yields_defaults(self):
        assert SchedulingSettings.from_row(None) == SchedulingSettings(
            timezone="UTC",
            session_duration_minutes=60,
            buffer_minutes=15,
            advance_booking_days=90,
            cancellation_cutoff_hours=24,
        )

    def test_bad_persisted_values_are_coerced(self):
        row = InstructorSchedulingSettings(
            timezone="Mars/Olympus",
            session_duration_minutes=5,
            buffer_minutes=-3,
            advance_booking_days=0,
            cancellation_cutoff_hours=-1,
        )

        settings = SchedulingSettings.from_row(row)

        assert settings.timezone == "UTC"
        assert settings.session_duration_minutes == 15
        assert settings.buffer_minutes == 0
        assert settings.advance_booking_days == 1
        assert settings.cancellation_cutoff_hours == 0

    def test_response_uses_camel_case(self):
        assert SchedulingSettings().to_response() == {
            "timezone": "UTC",
            "sessionDurationMinutes": 60,
            "bufferMinutes": 15,
            "advanceBookingDays": 90,
            "cancellationCutoffHours": 24,
        }


class TestGetSettings:
    def test_defaults_are_not_persisted(self, service, world, db):
        assert service.get_settings(world.brand.id, world.instructor.id) == SchedulingSettings()
        assert db.query(InstructorSchedulingSettings).count() == 0

    def test_reads_stored_row(self, service, world):
        world.configure(timezone="Europe/London", buffer_minutes=30)

        settings = service.get_settings(world.brand.id, world.instructor.id)

        assert settings.timezone == "Europe/London"
        assert settings.buffer_minutes == 30


class TestReplaceAvailability:
    def test_replaces_settings_rules_and_overrides(self, service, world):
        result = replace(
            service,
            world,
            settings={
                "timezone": "America/New_York",
                "sessionDurationMinutes": 45,
                "bufferMinutes": 500,
                "advanceBookingDays": "60",
            },
            overrides=[
                {"date": "2026-03-20", "isAvailable": False, "reason": "  Conference  "},
                {
                    "date": "2026-03-21",
                    "isAvailable": True,
                    "startTime": "10:00",
                    "endTime": "12:00",
                },
            ],
        )

        assert isinstance(result, Ok)
        snapshot = service.get_availability(world.brand.id, world.instructor.id)
        assert snapshot.settings.timezone == "America/New_York"
        assert snapshot.settings.session_duration_minutes == 45
        assert snapshot.settings.buffer_minutes == 120
        assert snapshot.settings.advance_booking_days == 60
        assert snapshot.settings.cancellation_cutoff_hours == 24
        assert [rule.to_response() for rule in snapshot.weekly_rules] == WEEKDAY_SLOTS
        assert [override.to_response() for override in snapshot.date_overrides] == [
            {"date": "2026-03-20", "isAvailable": False, "reason": "Conference"},
            {"date": "2026-03-21", "isAvailable": True, "startTime": "10:00", "endTime": "12:00"},
        ]

    def test_second_replace_soft_deletes_previous_set(self, service, world, db, clock):
        replace(service, world)

        result = replace(
            service, world, slots=[{"dayOfWeek": 5, "startTime": "08:00", "endTime": "10:00"}]
        )

        assert isinstance(result, Ok)
        rules, overrides = service.get_rules_and_overrides(world.brand.id, world.instructor.id)
        assert [(rule.weekday, rule.start_time) for rule in rules] == [(5, time(8, 0))]
        assert overrides == []
        db.expire_all()
        deleted = db.query(AvailabilityRule).filter(AvailabilityRule.deleted_at.isnot(None)).all()
        assert len(deleted) == len(WEEKDAY_SLOTS)
        assert all(row.deleted_at == clock.now() for row in deleted)
        assert db.query(InstructorSchedulingSettings).count() == 1

    def test_missing_timezone_means_utc(self, service, world):
        result = replace(service, world, settings={})

        assert result.value.settings.timezone == "UTC"

    def test_empty_sets_clear_availability(self, service, world):
        replace(service, world)

        assert isinstance(replace(service, world, slots=[]), Ok)
        rules, _ = service.get_rules_and_overrides(world.brand.id, world.instructor.id)
        assert rules == []

    def test_override_range_filter(self, service, world):
        replace(
            service,
            world,
            overrides=[
                {"date": "2026-03-20", "isAvailable": False},
                {"date": "2026-04-20", "isAvailable": False},
            ],
        )

        _, overrides = service.get_rules_and_overrides(
            world.brand.id, world.instructor.id, date(2026, 3, 1), date(2026, 3, 31)
        )

        assert [override.override_date for override in overrides] == [date(2026, 3, 20)]

    def test_unknown_timezone_is_rejected_without_writes(self, service, world, db):
        result = replace(service, world, settings={"timezone": "Not/AZone"})

        assert isinstance(result, Err)
        assert result.error.kind == SchedulingErrorKind.VALIDATION
        assert result.error.message == "timezone must be a valid IANA timezone"
        assert db.query(InstructorSchedulingSettings).count() == 0
        assert db.query(AvailabilityRule).count() == 0


class TestEditorAvailability:
    @pytest.fixture
    def overrides(self, world):
        world.add_override(date(2026, 3, 10), False)
        world.add_override(date(2026, 7, 1), False)
        world.add_override(date(2026, 2, 1), False)

    def test_instructor_sees_next_ninety_days_by_default(self, service, world, overrides):
        result = service.get_editor_availability(world.as_instructor(), world.instructor.id)

        assert isinstance(result, Ok)
        assert [o.override_date for o in result.value.date_overrides] == [date(2026, 3, 10)]

    def test_explicit_range_and_malformed_bound(self, service, world, overrides):
        result = service.get_editor_availability(
            world.as_admin(), world.instructor.id, "2026-01-01", "not-a-date"
        )

        assert [o.override_date for o in result.value.date_overrides] == [
            date(2026, 2, 1),
            date(2026, 3, 10),
        ]

    def test_students_are_forbidden(self, service, world):
        result = service.get_editor_availability(world.as_student(), world.instructor.id)

        assert isinstance(result, Err)
        assert result.error.kind == SchedulingErrorKind.AUTHORIZATION

    def test_unknown_instructor_is_not_found(self, service, world):
        result = service.get_editor_availability(world.as_admin(), "01HZX3K9Q2W8R5T7V4N6M1P0AB")

        assert isinstance(result, Err)
        assert result.error.kind == SchedulingErrorKind.NOT_FOUND
        assert result.error.message == "Instructor is not linked to this brand"


class TestListBrandInstructors:
    def test_home_and_linked_instructors_with_settings(self, service, world, db):
        world.configure(timezone="Europe/London", buffer_minutes=30)
        partner = seed_world(db, "partner", "Partner Coaching")
        partner.instructor.display_name = "alex Partner"
        db.add(InstructorBrand(instructor_id=partner.instructor.id, brand_id=world.brand.id))
        db.add(
            Instructor(
                brand_id=world.brand.id,
                user_id="coach-retired",
                email="retired@acme.example.com",
                display_name="Aaron Retired",
                deleted_at=DEFAULT_NOW,
            )
        )
        db.commit()

        summaries = service.list_brand_instructors(world.brand.id)

        assert [s.instructor_id for s in summaries] == [partner.instructor.id, world.instructor.id]
        linked, home = summaries
        assert (linked.is_home_brand, home.is_home_brand) == (False, True)
        assert linked.settings == SchedulingSettings()
        assert home.settings.timezone == "Europe/London"
        assert home.to_response() == {
            "id": world.instructor.id,
            "displayName": "Casey Coach",
            "email": "coach@acme.example.com",
            "isHomeBrand": True,
            "settings": {
                "timezone": "Europe/London",
                "sessionDurationMinutes": 60,
                "bufferMinutes": 30,
                "advanceBookingDays": 90,
                "cancellationCutoffHours": 24,
            },
        }
