# backend/app/repositories/factory.py
"""
Repository Factory for the coaching scheduler

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .availability_repository import AvailabilityRepository
    from .booking_notification_repository import BookingNotificationRepository
    from .booking_repository import BookingRepository
    from .conflict_checker_repository import ConflictCheckerRepository
    from .scheduling_settings_repository import SchedulingSettingsRepository
    from .tenant_repository import TenantRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation to ensure consistent initialization
    and makes it easy to swap implementations if needed.
    """

    @staticmethod
    def create_tenant_repository(db: Session) -> "TenantRepository":
        """Create repository for brand, customer and instructor lookups."""
        from .tenant_repository import TenantRepository

        return TenantRepository(db)

    @staticmethod
    def create_scheduling_settings_repository(db: Session) -> "SchedulingSettingsRepository":
        """Create repository for per-instructor scheduling settings."""
        from .scheduling_settings_repository import SchedulingSettingsRepository

        return SchedulingSettingsRepository(db)

    @staticmethod
    def create_availability_repository(db: Session) -> "AvailabilityRepository":
        """Create repository for availability rules and overrides."""
        from .availability_repository import AvailabilityRepository

        return AvailabilityRepository(db)

    @staticmethod
    def create_conflict_checker_repository(db: Session) -> "ConflictCheckerRepository":
        """Create repository for conflict checking queries."""
        from .conflict_checker_repository import ConflictCheckerRepository

        return ConflictCheckerRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        """Create repository for booking operations."""
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_booking_notification_repository(db: Session) -> "BookingNotificationRepository":
        """Create repository for the notification delivery log."""
        from .booking_notification_repository import BookingNotificationRepository

        return BookingNotificationRepository(db)
