# backend/app/api/dependencies/__init__.py
"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from .auth import get_app_settings, get_request_context, require_reminder_credentials
from .database import get_db
from .services import (
    get_availability_service,
    get_booking_notification_service,
    get_booking_service,
    get_clock,
    get_notification_sender,
    get_reminder_dispatcher,
    get_scheduling_settings_service,
)

__all__ = [
    # Auth
    "get_app_settings",
    "get_request_context",
    "require_reminder_credentials",
    # Database
    "get_db",
    # Services
    "get_availability_service",
    "get_booking_notification_service",
    "get_booking_service",
    "get_clock",
    "get_notification_sender",
    "get_reminder_dispatcher",
    "get_scheduling_settings_service",
]
