"""
Booking request schemas: payment descriptors and status updates.
"""

from pydantic import ValidationError
import pytest

from app.schemas.booking import BookingUpdate, PaymentIn
from app.services.booking_lifecycle import BookingUpdateRequest, PaymentDescriptor


class TestPaymentIn:
    def test_defaults_to_manual_usd(self):
        payment = PaymentIn.model_validate({"amountCents": 5000})

        assert payment.to_descriptor() == PaymentDescriptor(5000, "USD", "manual")

    def test_currency_is_upper_cased_and_blank_reference_dropped(self):
        payment = PaymentIn.model_validate(
            {
                "amountCents": 100,
                "currency": " eur ",
                "provider": "stripe",
                "providerPaymentId": " ",
            }
        )

        assert payment.to_descriptor() == PaymentDescriptor(100, "EUR", "stripe", None)

    @pytest.mark.parametrize("amount", [1500.0, "1500"])
    def test_whole_amounts_are_coerced(self, amount):
        assert PaymentIn.model_validate({"amountCents": amount}).amount_cents == 1500

    @pytest.mark.parametrize(
        "raw",
        [
            {},
            {"amountCents": 0},
            {"amountCents": -5},
            {"amountCents": True},
            {"amountCents": 12.5},
            {"amountCents": 100, "currency": "DOLLARSXX"},
            {"amountCents": 100, "provider": "  "},
            {"amountCents": 100, "card": "4242"},
        ],
    )
    def test_invalid_descriptors(self, raw):
        with pytest.raises(ValidationError):
            PaymentIn.model_validate(raw)


class TestBookingUpdate:
    def test_converts_to_service_request(self):
        update = BookingUpdate.model_validate(
            {
                "status": "confirmed",
                "notes": "See you there",
                "payment": {"amountCents": 2500, "providerPaymentId": "pi_123"},
            }
        )

        assert update.to_request() == BookingUpdateRequest(
            status="confirmed",
            notes="See you there",
            payment=PaymentDescriptor(2500, "USD", "manual", "pi_123"),
        )

    def test_unknown_status_is_rejected(self):
        with pytest.raises(ValidationError):
            BookingUpdate.model_validate({"status": "archived"})
