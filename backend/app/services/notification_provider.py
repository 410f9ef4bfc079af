"""
Notification providers: SMS via Twilio and email via Resend.

Each provider raises NotificationSenderError for any failure, including a
missing configuration, so callers can turn failures into warnings without
catching provider-specific exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Optional

import resend
from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client

from app.core.config import Settings, settings as default_settings
from app.models.booking_notification import NotificationChannel, NotificationStatus

logger = logging.getLogger(__name__)

MAX_SMS_LENGTH = 1600


class NotificationSenderError(Exception):
    """Raised when a provider is unconfigured or rejects a message."""

    def __init__(self, message: str, provider: str):
        super().__init__(message)
        self.provider = provider


@dataclass(frozen=True)
class NotificationDelivery:
    """Outcome of one delivery attempt on one channel."""

    channel: str
    provider: str
    status: str
    recipient: str = ""
    provider_message_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def sent(self) -> bool:
        return self.status == NotificationStatus.SENT.value


class TwilioSMSSender:
    """Sends SMS through the Twilio REST client."""

    provider = "twilio"

    def __init__(self, config: Optional[Settings] = None, client: Optional[Any] = None) -> None:
        config = config or default_settings
        self.messaging_service_sid = config.twilio_messaging_service_sid
        self.from_number = config.twilio_phone_number

        auth_token = config.twilio_auth_token.get_secret_value() if config.twilio_auth_token else ""
        self.enabled = bool(
            config.sms_enabled
            and config.twilio_account_sid
            and auth_token
            and (self.from_number or self.messaging_service_sid)
        )

        if client is not None:
            self.client = client
        elif self.enabled:
            self.client = Client(config.twilio_account_sid, auth_token)
        else:
            self.client = None
            logger.info("SMS sender disabled - Twilio credentials not configured")

    def send(self, to_number: str, body: str) -> NotificationDelivery:
        if self.client is None:
            raise NotificationSenderError(
                "Twilio is not configured (TWILIO_ACCOUNT_SID/TWILIO_AUTH_TOKEN/TWILIO_FROM_NUMBER)",
                self.provider,
            )

        if len(body) > MAX_SMS_LENGTH:
            body = body[: MAX_SMS_LENGTH - 3] + "..."

        payload: dict[str, Any] = {"body": body, "to": to_number}
        if self.messaging_service_sid:
            payload["messaging_service_sid"] = self.messaging_service_sid
        else:
            payload["from_"] = self.from_number

        try:
            message = self.client.messages.create(**payload)
        except TwilioRestException as exc:
            logger.error("Twilio error sending SMS to %s: %s", to_number[-4:], exc)
            raise NotificationSenderError(
                f"Twilio request failed: {exc.status} {exc.msg}", self.provider
            ) from exc
        except Exception as exc:
            logger.error("Unexpected error sending SMS to %s: %s", to_number[-4:], exc)
            raise NotificationSenderError(f"Twilio request failed: {exc}", self.provider) from exc

        logger.info("SMS sent to ...%s, SID: %s", to_number[-4:], message.sid)
        return NotificationDelivery(
            channel=NotificationChannel.SMS.value,
            provider=self.provider,
            status=NotificationStatus.SENT.value,
            recipient=to_number,
            provider_message_id=message.sid,
        )


class ResendEmailSender:
    """Sends transactional email through the Resend SDK."""

    provider = "resend"

    def __init__(self, config: Optional[Settings] = None) -> None:
        config = config or default_settings
        self.api_key = config.resend_api_key.get_secret_value() if config.resend_api_key else ""
        self.from_email = (config.from_email or "").strip()

    @property
    def enabled(self) -> bool:
        return bool(self.api_key and self.from_email)

    def send(self, to_email: str, subject: str, text: str, html: str) -> NotificationDelivery:
        if not self.enabled:
            raise NotificationSenderError(
                "Resend is not configured (RESEND_API_KEY + RESEND_FROM_EMAIL)", self.provider
            )

        resend.api_key = self.api_key
        email_data = {
            "from": self.from_email,
            "to": [to_email],
            "subject": subject,
            "html": html,
            "text": text,
        }
        try:
            response = resend.Emails.send(email_data)
        except Exception as exc:
            error_msg = str(exc) or type(exc).__name__
            logger.error("Failed to send email to %s: %s", to_email, error_msg)
            raise NotificationSenderError(f"Resend request failed: {error_msg}", self.provider) from exc

        message_id = response.get("id") if isinstance(response, dict) else getattr(response, "id", None)
        logger.info("Email sent to %s - Subject: %s", to_email, subject)
        return NotificationDelivery(
            channel=NotificationChannel.EMAIL.value,
            provider=self.provider,
            status=NotificationStatus.SENT.value,
            recipient=to_email,
            provider_message_id=message_id,
        )


class NotificationSender:
    """
    Channel facade used by the booking notification messages.

    Providers are injectable so tests and alternative deployments can swap
    them without touching message building.
    """

    def __init__(
        self,
        sms: Optional[TwilioSMSSender] = None,
        email: Optional[ResendEmailSender] = None,
    ) -> None:
        self.sms = sms or TwilioSMSSender()
        self.email = email or ResendEmailSender()

    def send_sms(self, to: str, body: str) -> NotificationDelivery:
        return self.sms.send(to, body)

    def send_email(self, to: str, subject: str, text: str, html: str) -> NotificationDelivery:
        return self.email.send(to, subject, text, html)
