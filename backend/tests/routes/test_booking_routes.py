"""
Routes: GET/POST /api/v1/bookings, GET /api/v1/bookings/instructors,
GET/PATCH /api/v1/bookings/{booking_id}
"""

import pytest

from app.models import Booking, BookingPayment, InstructorBrand
from tests._utils.scheduling import headers_for, seed_world, utc

URL = "/api/v1/bookings"

# Tuesday 2026-03-03, two days after the frozen clock
SLOT = {"startAt": "2026-03-03T10:00:00Z", "endAt": "2026-03-03T11:00:00Z"}


@pytest.fixture
def scheduled(world):
    world.configure(timezone="UTC", buffer_minutes=15)
    world.add_weekly_slots(start="09:00", end="17:00")
    return world


def create_body(world, **overrides):
    body = {"instructorId": world.instructor.id, "studentTimezone": "America/New_York", **SLOT}
    body.update(overrides)
    return body


class TestCreateBookingRoute:
    def test_student_books_a_slot(self, client, scheduled, db, sender):
        response = client.post(URL, json=create_body(scheduled), headers=headers_for("student-acme"))

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["booking"]["status"] == "pending"
        assert body["booking"]["start_at"] == "2026-03-03T10:00:00.000Z"
        assert body["booking"]["student_timezone"] == "America/New_York"
        assert body["notifications"] == {"emailSent": True, "smsSent": True, "warnings": []}
        assert body["nextStep"] == {
            "action": "confirm_and_pay",
            "endpoint": f"/api/v1/bookings/{body['booking']['id']}",
            "method": "PATCH",
        }
        assert db.query(Booking).count() == 1
        sender.send_sms.assert_called_once()

    def test_instructor_cannot_book(self, client, scheduled):
        response = client.post(URL, json=create_body(scheduled), headers=headers_for("coach-acme"))

        assert response.status_code == 403

    def test_taken_slot_conflicts(self, client, scheduled):
        scheduled.add_booking(utc(2026, 3, 3, 10, 0), customer=scheduled.other_customer)

        response = client.post(URL, json=create_body(scheduled), headers=headers_for("student-acme"))

        assert response.status_code == 409
        body = response.json()
        assert body["code"] == "SLOT_TAKEN"
        assert body["title"] == "Conflict"
        assert response.headers["content-type"].startswith("application/problem+json")

    def test_off_grid_slot_is_unavailable(self, client, scheduled):
        response = client.post(
            URL,
            json=create_body(
                scheduled, startAt="2026-03-03T10:30:00Z", endAt="2026-03-03T11:30:00Z"
            ),
            headers=headers_for("student-acme"),
        )

        assert response.status_code == 409
        assert response.json()["code"] == "SLOT_UNAVAILABLE"

    def test_bad_times(self, client, scheduled):
        response = client.post(
            URL,
            json=create_body(scheduled, startAt="tomorrow"),
            headers=headers_for("student-acme"),
        )

        assert response.status_code == 400

    def test_unknown_fields_are_rejected(self, client, scheduled):
        response = client.post(
            URL, json=create_body(scheduled, price=10), headers=headers_for("student-acme")
        )

        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"


class TestTenantResolution:
    def test_missing_brand(self, client, scheduled):
        response = client.post(
            URL, json=create_body(scheduled), headers=headers_for("student-acme", brand=None)
        )

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "BRAND_REQUIRED"
        assert body["error"] == "Brand could not be resolved from request"

    def test_unknown_brand(self, client, scheduled):
        response = client.post(
            URL, json=create_body(scheduled), headers=headers_for("student-acme", brand="nobody")
        )

        assert response.status_code == 404
        assert response.json()["code"] == "BRAND_NOT_FOUND"

    def test_missing_user(self, client, scheduled):
        response = client.post(URL, json=create_body(scheduled), headers=headers_for(None))

        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHENTICATED"

    def test_user_without_role(self, client, scheduled):
        response = client.post(URL, json=create_body(scheduled), headers=headers_for("stranger"))

        assert response.status_code == 403
        assert response.json()["code"] == "NO_BRAND_ROLE"


class TestBookingDetailRoutes:
    @pytest.fixture
    def booking(self, scheduled):
        return scheduled.add_booking(utc(2026, 3, 3, 10, 0))

    def test_owner_reads_booking(self, client, booking):
        response = client.get(f"{URL}/{booking.id}", headers=headers_for("student-acme"))

        assert response.status_code == 200
        assert response.json()["booking"]["id"] == booking.id

    def test_other_student_is_forbidden(self, client, booking):
        response = client.get(f"{URL}/{booking.id}", headers=headers_for("other-student-acme"))

        assert response.status_code == 403

    def test_unknown_booking(self, client, scheduled):
        response = client.get(f"{URL}/01JNOPE0000000000000000000", headers=headers_for("admin-acme"))

        assert response.status_code == 404
        assert response.json()["instance"] == f"{URL}/01JNOPE0000000000000000000"

    def test_student_confirms_with_payment(self, client, booking, db):
        response = client.patch(
            f"{URL}/{booking.id}",
            json={"status": "confirmed", "payment": {"amountCents": 7500, "currency": "usd"}},
            headers=headers_for("student-acme"),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["booking"]["status"] == "confirmed"
        assert body["booking"]["payment_status"] == "paid"
        assert body["booking"]["confirmed_at"] == "2026-03-01T12:00:00.000Z"
        payment = db.query(BookingPayment).one()
        assert (payment.amount_cents, payment.currency) == (7500, "USD")

    def test_confirm_without_payment(self, client, booking):
        response = client.patch(
            f"{URL}/{booking.id}", json={"status": "confirmed"}, headers=headers_for("student-acme")
        )

        assert response.status_code == 400
        assert response.json()["error"] == "payment is required to confirm a booking"

    def test_invalid_transition(self, client, booking):
        response = client.patch(
            f"{URL}/{booking.id}", json={"status": "completed"}, headers=headers_for("coach-acme")
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_STATUS_TRANSITION"

    def test_student_cancels_before_cutoff(self, client, booking):
        response = client.patch(
            f"{URL}/{booking.id}",
            json={"status": "cancelled", "cancellationReason": "Travel"},
            headers=headers_for("student-acme"),
        )

        assert response.status_code == 200
        assert response.json()["booking"]["cancellation_reason"] == "Travel"

    def test_student_cannot_cancel_inside_cutoff(self, client, scheduled):
        soon = scheduled.add_booking(utc(2026, 3, 1, 15, 0))

        response = client.patch(
            f"{URL}/{soon.id}", json={"status": "cancelled"}, headers=headers_for("student-acme")
        )

        assert response.status_code == 409
        body = response.json()
        assert body["code"] == "CANCELLATION_CUTOFF_PASSED"
        assert body["errors"]["cutoff_hours"] == 24

    @pytest.mark.parametrize(
        "payment, message",
        [
            ({"amountCents": 0}, "payment.amountCents must be a positive integer"),
            ({"amountCents": True}, "payment.amountCents must be a positive integer"),
            (
                {"amountCents": 100, "currency": "DOLLARSXX"},
                "payment.currency must be 1-8 characters",
            ),
            ({"amountCents": 100, "provider": "  "}, "payment.provider must be 1-60 characters"),
        ],
    )
    def test_malformed_payment_is_rejected(self, client, booking, db, payment, message):
        response = client.patch(
            f"{URL}/{booking.id}",
            json={"status": "confirmed", "payment": payment},
            headers=headers_for("student-acme"),
        )

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "validation_error"
        assert body["error"] == message
        assert db.query(BookingPayment).count() == 0


class TestListBookingsRoute:
    @pytest.fixture
    def bookings(self, scheduled):
        later = scheduled.add_booking(utc(2026, 3, 5, 10, 0))
        earlier = scheduled.add_booking(utc(2026, 3, 3, 10, 0), customer=scheduled.other_customer)
        return earlier, later

    def test_admin_sees_every_booking(self, client, bookings):
        response = client.get(URL, headers=headers_for("admin-acme"))

        assert response.status_code == 200
        assert [item["id"] for item in response.json()["bookings"]] == [b.id for b in bookings]

    def test_student_sees_own_bookings(self, client, bookings):
        _, own = bookings

        response = client.get(URL, headers=headers_for("student-acme"))

        assert response.status_code == 200
        assert [item["id"] for item in response.json()["bookings"]] == [own.id]

    def test_instructor_sees_bookings_they_teach(self, client, bookings, scheduled):
        scheduled.add_booking(utc(2027, 6, 1, 10, 0))

        response = client.get(URL, headers=headers_for("coach-acme"))

        assert [item["id"] for item in response.json()["bookings"]] == [b.id for b in bookings]

    def test_user_without_role_is_forbidden(self, client, bookings):
        response = client.get(URL, headers=headers_for("stranger"))

        assert response.status_code == 403


class TestListInstructorsRoute:
    def test_lists_home_and_linked_instructors(self, client, scheduled, db):
        partner = seed_world(db, "partner", "Partner Coaching")
        partner.instructor.display_name = "Pat Partner"
        db.add(InstructorBrand(instructor_id=partner.instructor.id, brand_id=scheduled.brand.id))
        db.commit()

        response = client.get(f"{URL}/instructors", headers=headers_for("student-acme"))

        assert response.status_code == 200
        instructors = response.json()["instructors"]
        assert [item["id"] for item in instructors] == [
            scheduled.instructor.id,
            partner.instructor.id,
        ]
        home, linked = instructors
        assert home["displayName"] == "Casey Coach"
        assert home["isHomeBrand"] is True
        assert home["settings"]["bufferMinutes"] == 15
        assert linked["isHomeBrand"] is False
        assert linked["settings"]["timezone"] == "UTC"
        assert linked["settings"]["sessionDurationMinutes"] == 60
