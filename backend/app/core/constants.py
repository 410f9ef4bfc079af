"""Application-wide constants for the coaching scheduler."""

from __future__ import annotations

BRAND_NAME = "Coaching Scheduler"
API_VERSION = "1.0.0"

# Scheduling defaults (materialised only when an instructor has no settings row)
DEFAULT_TIMEZONE = "UTC"
DEFAULT_SESSION_MINUTES = 60
DEFAULT_BUFFER_MINUTES = 15
DEFAULT_ADVANCE_BOOKING_DAYS = 90
DEFAULT_CANCELLATION_CUTOFF_HOURS = 24

# Session duration constraints
MIN_SESSION_DURATION = 15  # minutes
MAX_SESSION_DURATION = 240  # minutes (4 hours)

# Settings write bounds
MIN_BUFFER_MINUTES = 0
MAX_BUFFER_MINUTES = 120
MIN_ADVANCE_BOOKING_DAYS = 1
MAX_ADVANCE_BOOKING_DAYS = 365
MIN_CANCELLATION_CUTOFF_HOURS = 0
MAX_CANCELLATION_CUTOFF_HOURS = 720

# Availability view query bounds
DEFAULT_AVAILABILITY_DAYS = 14
MIN_AVAILABILITY_DAYS = 1
MAX_AVAILABILITY_DAYS = 60

# Booking listings
BOOKING_LIST_LIMIT = 200
BOOKING_LIST_HORIZON_DAYS = 365

# Instructor calendar range
DEFAULT_CALENDAR_DAYS = 30
MAX_CALENDAR_DAYS = 365

# Override window shown in the availability editor
EDITOR_OVERRIDE_DAYS = 90

# Reminder window relative to "now"
REMINDER_WINDOW_START_HOURS = 23
REMINDER_WINDOW_END_HOURS = 25

# Payment descriptor limits
DEFAULT_PAYMENT_CURRENCY = "USD"
DEFAULT_PAYMENT_PROVIDER = "manual"
MAX_CURRENCY_LENGTH = 8
MAX_PROVIDER_LENGTH = 60

# Text constraints
MAX_NOTES_LENGTH = 2000
MAX_REASON_LENGTH = 255

# Day of week mapping (0 = Sunday, matching the stored weekday column)
DAYS_OF_WEEK = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

# API paths
BOOKINGS_API_PREFIX = "/api/v1/bookings"
