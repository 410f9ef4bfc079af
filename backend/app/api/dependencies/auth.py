# backend/app/api/dependencies/auth.py
"""
Authentication and tenant dependencies.

Users are authenticated by the gateway in front of this service, which
forwards the user's id and email as headers. The tenant is named by the
``X-Brand-Slug`` header. Both are turned into a RequestContext here.

The reminder trigger is a machine endpoint; it accepts either the shared cron
secret or the service-role key as a bearer token.
"""

import hmac
import logging
from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from ...core.config import Settings, settings
from ...core.exceptions import DomainException, UnauthorizedException
from ...services.identity_service import IdentityService, RequestContext
from .database import get_db

logger = logging.getLogger(__name__)


def get_app_settings() -> Settings:
    return settings


def get_request_context(
    x_brand_slug: Optional[str] = Header(None, alias="X-Brand-Slug"),
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    x_user_email: Optional[str] = Header(None, alias="X-User-Email"),
    db: Session = Depends(get_db),
) -> RequestContext:
    """
    Resolve the brand and the caller's roles in it.

    Raises:
        HTTPException: 400 without a brand, 404 for an unknown brand,
            401 without a user, 403 when the user has no role in the brand
    """
    try:
        return IdentityService(db).resolve_context(x_brand_slug, x_user_id, x_user_email)
    except DomainException as exc:
        raise exc.to_http_exception()


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    value = authorization.strip()
    if not value.lower().startswith("bearer "):
        return None
    return value[7:].strip() or None


def _matches(provided: Optional[str], expected: Optional[str]) -> bool:
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def require_reminder_credentials(
    request: Request, config: Settings = Depends(get_app_settings)
) -> None:
    """Allow the cron secret header or the service-role bearer token."""
    expected_secret = (
        config.booking_cron_secret.get_secret_value().strip() if config.booking_cron_secret else ""
    )
    expected_service_key = (
        config.service_role_key.get_secret_value().strip() if config.service_role_key else ""
    )
    provided_secret = (request.headers.get("x-booking-cron-secret") or "").strip()
    provided_token = _bearer_token(request.headers.get("authorization"))

    if _matches(provided_secret, expected_secret) or _matches(provided_token, expected_service_key):
        return

    logger.warning("Rejected reminder dispatch request without valid credentials")
    raise UnauthorizedException("Unauthorized", code="UNAUTHORIZED").to_http_exception()
