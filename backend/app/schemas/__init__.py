# backend/app/schemas/__init__.py
"""
Pydantic schemas for the coaching scheduler API.
"""

from .availability import (
    AvailabilityReplaceRequest,
    AvailabilitySnapshotResponse,
    BookableSlotsResponse,
    DateOverrideIn,
    InstructorCalendarResponse,
    InstructorListResponse,
    SchedulingSettingsResponse,
    SlotResponse,
    WeeklySlotIn,
)
from .booking import (
    BookingCreate,
    BookingCreateResponse,
    BookingListResponse,
    BookingResponse,
    BookingUpdate,
    NextStep,
    NotificationSummary,
    PaymentIn,
)
from .health import HealthResponse
from .reminders import ReminderRunResponse

__all__ = [
    "AvailabilityReplaceRequest",
    "AvailabilitySnapshotResponse",
    "BookableSlotsResponse",
    "BookingCreate",
    "BookingCreateResponse",
    "BookingListResponse",
    "BookingResponse",
    "BookingUpdate",
    "DateOverrideIn",
    "HealthResponse",
    "InstructorCalendarResponse",
    "InstructorListResponse",
    "NextStep",
    "NotificationSummary",
    "PaymentIn",
    "ReminderRunResponse",
    "SchedulingSettingsResponse",
    "SlotResponse",
    "WeeklySlotIn",
]
