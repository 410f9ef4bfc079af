# backend/app/repositories/__init__.py
"""
Repository Pattern Implementation for the coaching scheduler

This package provides the repository layer for data access,
separating business logic from database queries.

Key Components:
- BaseRepository: Foundation for repositories with generic CRUD operations
- RepositoryFactory: Factory for creating repository instances
- TenantRepository: Brands, memberships, customers and instructors
- SchedulingSettingsRepository: Per-instructor scheduling settings
- AvailabilityRepository: Weekly rules and date overrides
- ConflictCheckerRepository: Active-booking overlap queries
- BookingRepository: Bookings, payments and reminder claims
- BookingNotificationRepository: Notification delivery log

Usage:
    from app.repositories import RepositoryFactory

    # In a service:
    repository = RepositoryFactory.create_booking_repository(db)
    booking = repository.get_for_brand(brand_id, booking_id)
"""

from .availability_repository import AvailabilityRepository
from .base_repository import BaseRepository
from .booking_notification_repository import BookingNotificationRepository
from .booking_repository import BookingRepository
from .conflict_checker_repository import ConflictCheckerRepository
from .factory import RepositoryFactory
from .scheduling_settings_repository import SchedulingSettingsRepository
from .tenant_repository import TenantRepository

__all__ = [
    "AvailabilityRepository",
    "BaseRepository",
    "BookingNotificationRepository",
    "BookingRepository",
    "ConflictCheckerRepository",
    "RepositoryFactory",
    "SchedulingSettingsRepository",
    "TenantRepository",
]
