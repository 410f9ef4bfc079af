"""
Routes: POST /api/v1/bookings/reminders
"""

from datetime import timedelta

import pytest

from app.services.notification_provider import NotificationSenderError
from tests._utils.scheduling import DEFAULT_NOW

URL = "/api/v1/bookings/reminders"


@pytest.fixture
def due_booking(world):
    return world.add_booking(DEFAULT_NOW + timedelta(hours=24), status="confirmed")


class TestReminderCredentials:
    def test_no_credentials(self, client, due_booking, sender):
        response = client.post(URL)

        assert response.status_code == 401
        body = response.json()
        assert body["code"] == "UNAUTHORIZED"
        assert body["error"] == "Unauthorized"
        sender.send_sms.assert_not_called()

    def test_wrong_bearer_token(self, client, due_booking):
        response = client.post(URL, headers={"Authorization": "Bearer not-the-key"})

        assert response.status_code == 401

    def test_user_headers_are_not_enough(self, client, due_booking):
        response = client.post(URL, headers={"X-Brand-Slug": "acme", "X-User-Id": "admin-acme"})

        assert response.status_code == 401

    def test_cron_secret(self, client, due_booking, sender):
        response = client.post(URL, headers={"x-booking-cron-secret": "cron-secret"})

        assert response.status_code == 200
        assert response.json() == {"ok": True, "attempted": 1, "sent": 1, "warnings": []}
        sender.send_sms.assert_called_once()

    def test_service_role_bearer(self, client, due_booking):
        response = client.post(URL, headers={"Authorization": "Bearer service-key"})

        assert response.status_code == 200
        assert response.json()["sent"] == 1

    def test_unconfigured_credentials_reject_empty_values(self, client, test_settings):
        test_settings.booking_cron_secret = None
        test_settings.service_role_key = None

        response = client.post(URL, headers={"x-booking-cron-secret": ""})

        assert response.status_code == 401


class TestReminderRun:
    def test_second_run_sends_nothing(self, client, due_booking, sender):
        headers = {"x-booking-cron-secret": "cron-secret"}

        client.post(URL, headers=headers)
        response = client.post(URL, headers=headers)

        assert response.json() == {"ok": True, "attempted": 0, "sent": 0, "warnings": []}
        assert sender.send_sms.call_count == 1

    def test_failures_are_reported_as_warnings(self, client, due_booking, sender):
        sender.send_sms.side_effect = NotificationSenderError("Twilio request failed: 503", "twilio")

        response = client.post(URL, headers={"x-booking-cron-secret": "cron-secret"})

        assert response.status_code == 200
        assert response.json()["warnings"] == [
            f"booking {due_booking.id}: Twilio request failed: 503"
        ]
