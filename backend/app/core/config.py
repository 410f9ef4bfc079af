# backend/app/core/config.py
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import BRAND_NAME


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.info(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


class Settings(BaseSettings):
    """Runtime configuration for the scheduling API, workers and beat."""

    environment: str = Field(
        default="development",
        alias="ENVIRONMENT",
        description="Deployment environment (development|staging|production)",
    )
    brand_name: str = Field(default=BRAND_NAME, alias="BRAND_NAME")

    # Database
    database_url: str = Field(
        default="sqlite+pysqlite:///./scheduler.db",
        alias="DATABASE_URL",
        description="SQLAlchemy URL for the scheduling store",
    )
    database_pool_size: int = Field(default=5, alias="DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(default=10, alias="DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(default=False, alias="DATABASE_ECHO")

    # Redis / Celery
    redis_url: str = "redis://localhost:6379"
    celery_broker_url: Optional[str] = Field(default=None, alias="CELERY_BROKER_URL")
    celery_result_backend: Optional[str] = Field(default=None, alias="CELERY_RESULT_BACKEND")
    reminder_schedule_minutes: int = Field(
        default=30,
        alias="REMINDER_SCHEDULE_MINUTES",
        description="How often celery beat triggers the 24h reminder dispatcher",
    )

    # Reminder endpoint credentials
    booking_cron_secret: Optional[SecretStr] = Field(
        default=None,
        alias="BOOKING_CRON_SECRET",
        description="Shared secret expected in the x-booking-cron-secret header",
    )
    service_role_key: Optional[SecretStr] = Field(
        default=None,
        alias="SERVICE_ROLE_KEY",
        description="Service credential accepted as a Bearer token on the reminders endpoint",
    )

    # Twilio SMS
    sms_enabled: bool = Field(default=True, alias="SMS_ENABLED")
    twilio_account_sid: Optional[str] = Field(default=None, alias="TWILIO_ACCOUNT_SID")
    twilio_auth_token: Optional[SecretStr] = Field(default=None, alias="TWILIO_AUTH_TOKEN")
    twilio_phone_number: Optional[str] = Field(default=None, alias="TWILIO_FROM_NUMBER")
    twilio_messaging_service_sid: Optional[str] = Field(
        default=None, alias="TWILIO_MESSAGING_SERVICE_SID"
    )

    # Resend email
    resend_api_key: Optional[SecretStr] = Field(
        default=None,
        alias="RESEND_API_KEY",
        description="API key for the Resend email provider",
    )
    from_email: Optional[str] = Field(
        default=None,
        alias="RESEND_FROM_EMAIL",
        description="Sender address for transactional booking email",
    )

    # HTTP
    cors_allow_origins: str = Field(
        default="",
        alias="CORS_ALLOW_ORIGINS",
        description="Comma-separated browser origins allowed to call the API",
    )

    # Metrics
    prometheus_enabled: bool = Field(default=True, alias="PROMETHEUS_ENABLED")

    # Use ConfigDict instead of Config class (Pydantic V2 style)
    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("reminder_schedule_minutes")
    @classmethod
    def _validate_reminder_schedule(cls, value: int) -> int:
        if value < 1 or value > 120:
            raise ValueError("REMINDER_SCHEDULE_MINUTES must be between 1 and 120")
        return value

    @field_validator("database_url")
    @classmethod
    def _validate_database_url(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("DATABASE_URL must not be empty")
        # Heroku-style URLs use the deprecated postgres:// scheme
        if cleaned.startswith("postgres://"):
            cleaned = "postgresql://" + cleaned[len("postgres://") :]
        return cleaned

    def get_database_url(self) -> str:
        """Get the database URL for the current process."""
        return self.database_url

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def allowed_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]

    @property
    def resolved_broker_url(self) -> str:
        """Broker priority: CELERY_BROKER_URL -> REDIS_URL -> default."""
        return self.celery_broker_url or self.redis_url or "redis://localhost:6379"


settings = Settings()
