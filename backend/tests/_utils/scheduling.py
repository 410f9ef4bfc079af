"""Seed helpers for scheduling tests: one brand, its admin, an instructor and two students."""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional
from unittest.mock import MagicMock

from sqlalchemy.orm import Session

from app.core.timezone_utils import parse_clock_time
from app.models import (
    AvailabilityOverride,
    AvailabilityRule,
    Booking,
    Brand,
    BrandMember,
    BrandRole,
    Customer,
    Instructor,
    InstructorSchedulingSettings,
)
from app.services.identity_service import RequestContext
from app.services.notification_provider import NotificationDelivery, NotificationSender

ALL_WEEKDAYS = (0, 1, 2, 3, 4, 5, 6)

# A Sunday, well before the March DST switch in New York.
DEFAULT_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@dataclass
class SchedulingWorld:
    db: Session
    brand: Brand
    instructor: Instructor
    customer: Customer
    other_customer: Customer
    admin_user_id: str = "admin-user"

    def configure(self, **fields) -> InstructorSchedulingSettings:
        row = InstructorSchedulingSettings(
            brand_id=self.brand.id, instructor_id=self.instructor.id, **fields
        )
        self.db.add(row)
        self.db.commit()
        return row

    def add_weekly_slots(
        self, weekdays: Iterable[int] = ALL_WEEKDAYS, start: str = "09:00", end: str = "17:00"
    ) -> None:
        for weekday in weekdays:
            self.db.add(
                AvailabilityRule(
                    brand_id=self.brand.id,
                    instructor_id=self.instructor.id,
                    weekday=weekday,
                    start_time=parse_clock_time(start),
                    end_time=parse_clock_time(end),
                )
            )
        self.db.commit()

    def add_override(
        self,
        on: date,
        is_available: bool,
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> AvailabilityOverride:
        row = AvailabilityOverride(
            brand_id=self.brand.id,
            instructor_id=self.instructor.id,
            override_date=on,
            is_available=is_available,
            start_time=parse_clock_time(start),
            end_time=parse_clock_time(end),
        )
        self.db.add(row)
        self.db.commit()
        return row

    def add_booking(
        self,
        start_at: datetime,
        minutes: int = 60,
        status: str = "pending",
        customer: Optional[Customer] = None,
        student_timezone: str = "UTC",
        **fields,
    ) -> Booking:
        booking = Booking(
            brand_id=self.brand.id,
            customer_id=(customer or self.customer).id,
            instructor_id=self.instructor.id,
            status=status,
            start_at=start_at,
            end_at=start_at + timedelta(minutes=minutes),
            duration_minutes=minutes,
            student_timezone=student_timezone,
            instructor_timezone="UTC",
            **fields,
        )
        self.db.add(booking)
        self.db.commit()
        return booking

    def _context(self, user_id: str, **roles) -> RequestContext:
        return RequestContext(
            brand_id=self.brand.id,
            brand_slug=self.brand.slug,
            brand_name=self.brand.name,
            user_id=user_id,
            **roles,
        )

    def as_student(self, customer: Optional[Customer] = None) -> RequestContext:
        customer = customer or self.customer
        return self._context(customer.user_id, customer_id=customer.id)

    def as_instructor(self) -> RequestContext:
        return self._context(self.instructor.user_id, instructor_ids=(self.instructor.id,))

    def as_admin(self) -> RequestContext:
        return self._context(self.admin_user_id, is_brand_admin=True)

    def as_outsider(self) -> RequestContext:
        return self._context("outsider-user")


def seed_world(db: Session, slug: str = "acme", name: str = "Acme Coaching") -> SchedulingWorld:
    brand = Brand(slug=slug, name=name)
    db.add(brand)
    db.flush()

    instructor = Instructor(
        brand_id=brand.id,
        user_id=f"coach-{slug}",
        email=f"coach@{slug}.example.com",
        display_name="Casey Coach",
    )
    customer = Customer(
        brand_id=brand.id,
        user_id=f"student-{slug}",
        email=f"sam@{slug}.example.com",
        phone="+15555550100",
        first_name="Sam",
        last_name="Lee",
    )
    other_customer = Customer(
        brand_id=brand.id,
        user_id=f"other-student-{slug}",
        email=f"riley@{slug}.example.com",
        phone="+15555550199",
        first_name="Riley",
    )
    db.add_all(
        [
            instructor,
            customer,
            other_customer,
            BrandMember(brand_id=brand.id, user_id=f"admin-{slug}", role=BrandRole.ADMIN.value),
        ]
    )
    db.commit()
    return SchedulingWorld(
        db=db,
        brand=brand,
        instructor=instructor,
        customer=customer,
        other_customer=other_customer,
        admin_user_id=f"admin-{slug}",
    )


def make_sender() -> MagicMock:
    """NotificationSender double whose sends always succeed."""
    sender = MagicMock(spec=NotificationSender)
    sender.send_sms.side_effect = lambda to, body: NotificationDelivery(
        channel="sms",
        provider="twilio",
        status="sent",
        recipient=to,
        provider_message_id="SM-test",
    )
    sender.send_email.side_effect = lambda to, subject, text, html: NotificationDelivery(
        channel="email",
        provider="resend",
        status="sent",
        recipient=to,
        provider_message_id="re-test",
    )
    return sender


def headers_for(user_id: Optional[str], brand: Optional[str] = "acme", **extra: str) -> dict:
    headers = {}
    if brand is not None:
        headers["X-Brand-Slug"] = brand
    if user_id is not None:
        headers["X-User-Id"] = user_id
    headers.update(extra)
    return headers
