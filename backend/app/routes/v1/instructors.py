# backend/app/routes/v1/instructors.py
"""
Instructor workspace routes - API v1

Read views for instructors and brand admins under /api/v1/instructors.

Endpoints:
    GET /{instructor_id}/availability - Settings, weekly slots and overrides for the editor
    GET /{instructor_id}/calendar - The instructor's bookings in a date range
"""

import asyncio
import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from ...api.dependencies import (
    get_booking_service,
    get_request_context,
    get_scheduling_settings_service,
)
from ...core.exceptions import DomainException
from ...core.results import unwrap_or_raise
from ...schemas.availability import AvailabilitySnapshotResponse, InstructorCalendarResponse
from ...services.booking_service import BookingService
from ...services.identity_service import RequestContext
from ...services.scheduling_settings_service import SchedulingSettingsService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["instructors-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.get(
    "/{instructor_id}/availability",
    response_model=AvailabilitySnapshotResponse,
    response_model_exclude_none=True,
)
async def get_instructor_availability(
    instructor_id: str = Path(..., description="Instructor ULID"),
    start_date: Optional[str] = Query(None, alias="from"),
    end_date: Optional[str] = Query(None, alias="to"),
    context: RequestContext = Depends(get_request_context),
    settings_service: SchedulingSettingsService = Depends(get_scheduling_settings_service),
) -> AvailabilitySnapshotResponse:
    """
    Current settings, weekly slots and date overrides of an instructor.

    ``from``/``to`` (YYYY-MM-DD) bound the overrides returned.
    """
    try:
        result = await asyncio.to_thread(
            settings_service.get_editor_availability,
            context,
            instructor_id,
            start_date,
            end_date,
        )
        snapshot = unwrap_or_raise(result)
        return AvailabilitySnapshotResponse.model_validate(snapshot.to_response())
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{instructor_id}/calendar", response_model=InstructorCalendarResponse)
async def get_instructor_calendar(
    instructor_id: str = Path(..., description="Instructor ULID"),
    start_from: Optional[str] = Query(None, alias="from"),
    start_to: Optional[str] = Query(None, alias="to"),
    upcoming_days: Optional[str] = Query(None, alias="upcomingDays"),
    context: RequestContext = Depends(get_request_context),
    booking_service: BookingService = Depends(get_booking_service),
) -> InstructorCalendarResponse:
    """
    Bookings of an instructor whose start falls in the requested range.

    The range defaults to the next 30 days. Each booking carries its start
    and end formatted in the instructor's timezone.
    """
    try:
        result = await asyncio.to_thread(
            booking_service.get_instructor_calendar,
            context,
            instructor_id,
            start_from,
            start_to,
            upcoming_days,
        )
        calendar = unwrap_or_raise(result)
        return InstructorCalendarResponse.model_validate(calendar.to_response())
    except DomainException as e:
        handle_domain_exception(e)
