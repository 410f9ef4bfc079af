# backend/app/routes/v1/__init__.py
"""
API v1 Routes

Versioned API endpoints under /api/v1.
"""

from . import availability, bookings, health, instructors, prometheus, reminders

__all__ = [
    "availability",
    "bookings",
    "health",
    "instructors",
    "prometheus",
    "reminders",
]
