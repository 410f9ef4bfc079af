"""
BookingRepository: reminder claim/release guards and row locking.
"""

from datetime import timedelta

from sqlalchemy import update

from app.models import Booking
from app.repositories import RepositoryFactory
from tests._utils.scheduling import utc

NOW = utc(2026, 3, 1, 12, 0)
FIRST_CLAIM = utc(2026, 3, 1, 12, 0)
SECOND_CLAIM = utc(2026, 3, 1, 12, 15)


def reminder_sent_at(db, booking_id):
    db.expire_all()
    return db.get(Booking, booking_id).reminder_sent_at


class TestReminderClaims:
    def test_claim_is_won_once(self, db, world):
        booking = world.add_booking(NOW + timedelta(hours=24), status="confirmed")
        repository = RepositoryFactory.create_booking_repository(db)

        assert repository.claim_reminder(booking.id, FIRST_CLAIM) == 1
        db.commit()
        assert repository.claim_reminder(booking.id, SECOND_CLAIM) == 0
        db.commit()

        assert reminder_sent_at(db, booking.id) == FIRST_CLAIM

    def test_unconfirmed_bookings_cannot_be_claimed(self, db, world):
        booking = world.add_booking(NOW + timedelta(hours=24), status="pending")
        repository = RepositoryFactory.create_booking_repository(db)

        assert repository.claim_reminder(booking.id, FIRST_CLAIM) == 0

    def test_release_clears_own_claim(self, db, world):
        booking = world.add_booking(NOW + timedelta(hours=24), status="confirmed")
        repository = RepositoryFactory.create_booking_repository(db)
        repository.claim_reminder(booking.id, FIRST_CLAIM)
        db.commit()

        assert repository.release_reminder(booking.id, FIRST_CLAIM) == 1
        db.commit()

        assert reminder_sent_at(db, booking.id) is None

    def test_stale_release_keeps_newer_claim(self, db, world):
        booking = world.add_booking(NOW + timedelta(hours=24), status="confirmed")
        repository = RepositoryFactory.create_booking_repository(db)
        repository.claim_reminder(booking.id, FIRST_CLAIM)
        db.commit()
        # A later run re-claimed the booking after the first claim was released
        db.execute(
            update(Booking)
            .where(Booking.id == booking.id)
            .values(reminder_sent_at=SECOND_CLAIM)
            .execution_options(synchronize_session=False)
        )
        db.commit()

        released = repository.release_reminder(booking.id, FIRST_CLAIM)
        db.commit()

        assert released == 0
        assert reminder_sent_at(db, booking.id) == SECOND_CLAIM
