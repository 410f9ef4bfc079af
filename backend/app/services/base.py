# backend/app/services/base.py
"""
Base Service Pattern for the coaching scheduler

Every scheduling service shares:
- A database session and an injectable clock
- Commit/rollback around multi-statement writes
- A per-class logger
- Prometheus timing of named operations
"""

from contextlib import contextmanager
from functools import wraps
import logging
import time
from typing import Any, Callable, Iterator, TypeVar, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.clock import Clock, system_clock
from ..core.exceptions import ServiceException
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

# Operations slower than this are logged as warnings
SLOW_OPERATION_SECONDS = 1.0


class BaseService:
    """
    Base class for the scheduling services.

    Services receive their session and clock at construction so that tests
    and workers can substitute a fixed clock or a dedicated session.
    """

    def __init__(self, db: Session, clock: Clock = system_clock):
        """
        Initialize base service.

        Args:
            db: Database session
            clock: Source of the current UTC instant
        """
        self.db = db
        self.clock = clock
        self.logger = logging.getLogger(self.__class__.__name__)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Commit the enclosed writes together, or roll all of them back.

        Store errors are re-raised as ServiceException; anything else is
        re-raised unchanged after the rollback.
        """
        try:
            yield self.db
            self.db.commit()
        except SQLAlchemyError as e:
            self.logger.error("Transaction rolled back: %s", e)
            self.db.rollback()
            raise ServiceException(f"Database operation failed: {str(e)}")
        except Exception:
            self.db.rollback()
            raise

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Time a service method and export the duration to Prometheus.

        Usage:
            @BaseService.measure_operation("create_booking")
            def create_booking(self, context, request):
                ...
        """

        def decorator(func: F) -> F:
            @wraps(func)
            def wrapper(self, *args, **kwargs):
                started = time.perf_counter()
                error_type = None
                try:
                    return func(self, *args, **kwargs)
                except Exception as e:
                    error_type = type(e).__name__
                    raise
                finally:
                    elapsed = time.perf_counter() - started
                    if elapsed > SLOW_OPERATION_SECONDS:
                        self.logger.warning(
                            "Slow operation detected: %s took %.2fs", operation_name, elapsed
                        )
                    try:
                        prometheus_metrics.record_service_operation(
                            service=self.__class__.__name__,
                            operation=operation_name,
                            duration=elapsed,
                            status="error" if error_type else "success",
                            error_type=error_type,
                        )
                    except ValueError as exc:
                        logger.debug("Metric recording failed for %s: %s", operation_name, exc)

            return cast(F, wrapper)

        return decorator

    def log_operation(self, operation: str, **context: Any) -> None:
        """Log a completed operation with its context as structured extras."""
        self.logger.info("Operation: %s", operation, extra={"operation": operation, **context})
