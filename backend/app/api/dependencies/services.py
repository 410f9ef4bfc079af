# backend/app/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected. The clock and the
notification sender are separate dependencies so tests can override them.
"""

from functools import lru_cache
import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...core.clock import Clock, system_clock
from ...services.availability_resolver import AvailabilityService
from ...services.booking_notifications import BookingNotificationService
from ...services.booking_service import BookingService
from ...services.notification_provider import NotificationSender
from ...services.reminder_dispatcher import ReminderDispatcher
from ...services.scheduling_settings_service import SchedulingSettingsService
from .database import get_db

logger = logging.getLogger(__name__)


def get_clock() -> Clock:
    return system_clock


@lru_cache(maxsize=1)
def get_notification_sender_singleton() -> NotificationSender:
    """Get singleton notification sender instance."""
    return NotificationSender()


def get_notification_sender() -> NotificationSender:
    """Get notification sender instance for dependency injection."""
    return get_notification_sender_singleton()


def get_booking_notification_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    sender: NotificationSender = Depends(get_notification_sender),
) -> BookingNotificationService:
    return BookingNotificationService(db, sender=sender, clock=clock)


def get_scheduling_settings_service(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> SchedulingSettingsService:
    return SchedulingSettingsService(db, clock=clock)


def get_availability_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    settings_service: SchedulingSettingsService = Depends(get_scheduling_settings_service),
) -> AvailabilityService:
    return AvailabilityService(db, settings_service=settings_service, clock=clock)


def get_booking_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    notification_service: BookingNotificationService = Depends(get_booking_notification_service),
) -> BookingService:
    """
    Get booking service instance.

    Args:
        db: Database session
        clock: Source of the current instant
        notification_service: Notification service for booking messages

    Returns:
        BookingService instance
    """
    return BookingService(db, notification_service=notification_service, clock=clock)


def get_reminder_dispatcher(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    notification_service: BookingNotificationService = Depends(get_booking_notification_service),
) -> ReminderDispatcher:
    return ReminderDispatcher(db, notification_service=notification_service, clock=clock)
