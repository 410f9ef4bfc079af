# backend/app/core/results.py
"""
Tagged results for the scheduling core.

Booking creation, status updates and availability lookups return ``Ok`` or
``Err`` instead of raising, so callers branch on the outcome explicitly.
``SchedulingError`` carries one of a closed set of kinds and converts to the
matching ``DomainException`` at the HTTP edge.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar, Union

from .exceptions import (
    ConflictException,
    DomainException,
    ForbiddenException,
    NotFoundException,
    UpstreamException,
    ValidationException,
)

T = TypeVar("T")


class SchedulingErrorKind(str, Enum):
    """Closed set of failure categories for scheduling operations."""

    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UPSTREAM = "upstream"


_KIND_TO_EXCEPTION: Dict[SchedulingErrorKind, type[DomainException]] = {
    SchedulingErrorKind.VALIDATION: ValidationException,
    SchedulingErrorKind.AUTHORIZATION: ForbiddenException,
    SchedulingErrorKind.NOT_FOUND: NotFoundException,
    SchedulingErrorKind.CONFLICT: ConflictException,
    SchedulingErrorKind.UPSTREAM: UpstreamException,
}


@dataclass(frozen=True)
class SchedulingError:
    kind: SchedulingErrorKind
    message: str
    code: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def validation(cls, message: str, code: Optional[str] = None, **details: Any) -> "SchedulingError":
        return cls(SchedulingErrorKind.VALIDATION, message, code, details)

    @classmethod
    def authorization(cls, message: str = "Forbidden", code: Optional[str] = None) -> "SchedulingError":
        return cls(SchedulingErrorKind.AUTHORIZATION, message, code)

    @classmethod
    def not_found(cls, message: str, code: Optional[str] = None) -> "SchedulingError":
        return cls(SchedulingErrorKind.NOT_FOUND, message, code)

    @classmethod
    def conflict(cls, message: str, code: Optional[str] = None, **details: Any) -> "SchedulingError":
        return cls(SchedulingErrorKind.CONFLICT, message, code, details)

    @classmethod
    def upstream(cls, message: str, code: Optional[str] = None) -> "SchedulingError":
        return cls(SchedulingErrorKind.UPSTREAM, message, code)

    @classmethod
    def from_exception(cls, exc: DomainException) -> "SchedulingError":
        """Classify a domain exception raised by a collaborator."""
        for kind, exc_type in _KIND_TO_EXCEPTION.items():
            if isinstance(exc, exc_type):
                return cls(kind, exc.message, exc.code, dict(exc.details))
        return cls(SchedulingErrorKind.UPSTREAM, exc.message, exc.code, dict(exc.details))

    def to_exception(self) -> DomainException:
        exc_type = _KIND_TO_EXCEPTION[self.kind]
        return exc_type(self.message, code=self.code, details=self.details)

    @property
    def status_code(self) -> int:
        return _KIND_TO_EXCEPTION[self.kind].status_code


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: SchedulingError

    @property
    def is_ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]


def unwrap_or_raise(result: "Result[T]") -> T:
    """Return the value of an ``Ok`` or raise the domain exception of an ``Err``."""
    if isinstance(result, Err):
        raise result.error.to_exception()
    return result.value
