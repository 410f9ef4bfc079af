# backend/app/core/exceptions.py
"""
Domain-specific exceptions for the coaching scheduler.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException, status

logger = logging.getLogger(__name__)

GENERIC_UPSTREAM_MESSAGE = "An error occurred processing your request"


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        """Convert to an HTTPException carrying the error envelope."""
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when request or business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class UnauthorizedException(DomainException):
    """Raised when the caller is not authenticated."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenException(DomainException):
    """Raised when the actor lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message or GENERIC_UPSTREAM_MESSAGE,
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


class UpstreamException(ServiceException):
    """
    Raised when the store or a notification provider fails.

    The original message is kept on the exception (and logged) for operators;
    the HTTP representation only carries a generic message.
    """

    def to_http_exception(self) -> HTTPException:
        logger.error("Upstream failure [%s]: %s", self.code, self.message)
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": GENERIC_UPSTREAM_MESSAGE,
                "code": self.code,
                "details": {},
            },
        )


# Specific business exceptions


class BookingConflictException(ConflictException):
    """Raised when a booking conflicts with existing bookings."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "This time slot conflicts with an existing booking",
            code="BOOKING_CONFLICT",
            details=details or {},
        )


class SlotUnavailableException(ConflictException):
    """Raised when the requested window is not one of the instructor's bookable slots."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message=message or "Selected slot is outside instructor availability",
            code="SLOT_UNAVAILABLE",
        )


class CancellationCutoffException(ConflictException):
    """Raised when a customer cancels inside the instructor's cutoff window."""

    def __init__(self, cutoff_hours: int, hours_until_start: float):
        super().__init__(
            message=f"Cancellation cutoff ({cutoff_hours}h) has passed",
            code="CANCELLATION_CUTOFF_PASSED",
            details={
                "cutoff_hours": cutoff_hours,
                "hours_until_start": round(hours_until_start, 2),
            },
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
