"""
Database models for the coaching scheduler.

This module exports all SQLAlchemy models used in the application.
The models are organized by functionality:
- Tenants and parties (brands, members, customers, instructors)
- Scheduling settings and availability
- Bookings, payments and notification log
"""

from .availability import AvailabilityOverride, AvailabilityRule
from .booking import Booking, BookingPayment, BookingStatus, PaymentStatus
from .booking_notification import (
    BookingNotification,
    NotificationChannel,
    NotificationStatus,
    NotificationTemplate,
)
from .scheduling_settings import InstructorSchedulingSettings
from .tenant import Brand, BrandMember, BrandRole, Customer, Instructor, InstructorBrand

__all__ = [
    "AvailabilityOverride",
    "AvailabilityRule",
    "Booking",
    "BookingNotification",
    "BookingPayment",
    "BookingStatus",
    "Brand",
    "BrandMember",
    "BrandRole",
    "Customer",
    "Instructor",
    "InstructorBrand",
    "InstructorSchedulingSettings",
    "NotificationChannel",
    "NotificationStatus",
    "NotificationTemplate",
    "PaymentStatus",
]
