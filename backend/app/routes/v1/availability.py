# backend/app/routes/v1/availability.py
"""
Instructor availability routes - API v1

Mounted under /api/v1/bookings ahead of the booking detail routes so the
static ``/availability`` path is never captured by ``/{booking_id}``.

Endpoints:
    GET /availability - Bookable slots of an instructor
    PUT /availability - Replace an instructor's settings, weekly slots and overrides
"""

import asyncio
import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from ...api.dependencies import (
    get_availability_service,
    get_request_context,
    get_scheduling_settings_service,
)
from ...core.exceptions import DomainException, ForbiddenException, ValidationException
from ...core.results import unwrap_or_raise
from ...core.timezone_utils import parse_iso_date
from ...schemas.availability import (
    AvailabilityReplaceRequest,
    AvailabilitySnapshotResponse,
    BookableSlotsResponse,
)
from ...services.availability_resolver import AvailabilityService
from ...services.identity_service import RequestContext
from ...services.scheduling_settings_service import SchedulingSettingsService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["availability-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.get(
    "/availability",
    response_model=BookableSlotsResponse,
    response_model_exclude_none=True,
)
async def get_bookable_slots(
    instructor_id: Optional[str] = Query(None, alias="instructorId"),
    days: Optional[str] = Query(None),
    session_minutes: Optional[str] = Query(None, alias="sessionMinutes"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    student_timezone: Optional[str] = Query(None, alias="studentTimezone"),
    context: RequestContext = Depends(get_request_context),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> BookableSlotsResponse:
    """
    List future, unbooked slots of an instructor.

    Open to brand admins, any customer of the brand and the instructor
    themself. ``days`` and ``sessionMinutes`` are clamped; unparseable
    values fall back to their defaults.
    """
    try:
        instructor_id = (instructor_id or "").strip()
        if not instructor_id:
            raise ValidationException("instructorId is required", code="INSTRUCTOR_REQUIRED")
        if not (context.is_customer or context.can_manage_instructor(instructor_id)):
            raise ForbiddenException("Forbidden")

        parsed_start = None
        if start_date:
            parsed_start = parse_iso_date(start_date)
            if parsed_start is None:
                raise ValidationException("startDate must be YYYY-MM-DD", code="INVALID_START_DATE")

        slots = await asyncio.to_thread(
            availability_service.list_bookable_slots,
            context.brand_id,
            instructor_id,
            start_date=parsed_start,
            days=days,
            session_minutes=session_minutes,
            student_timezone=student_timezone,
        )
        return BookableSlotsResponse.model_validate(slots.to_response())
    except DomainException as e:
        handle_domain_exception(e)


@router.put("/availability", response_model=AvailabilitySnapshotResponse)
async def replace_availability(
    payload: AvailabilityReplaceRequest = Body(...),
    context: RequestContext = Depends(get_request_context),
    settings_service: SchedulingSettingsService = Depends(get_scheduling_settings_service),
) -> AvailabilitySnapshotResponse:
    """
    Replace an instructor's scheduling settings, weekly slots and date overrides.

    Only the instructor themself or a brand admin may write. Existing rules
    and overrides are soft-deleted and the new set inserted in one transaction.
    """
    try:
        instructor_id = (payload.instructor_id or "").strip()
        if not instructor_id:
            raise ValidationException("instructorId is required", code="INSTRUCTOR_REQUIRED")
        if not context.can_manage_instructor(instructor_id):
            raise ForbiddenException("Forbidden")

        result = await asyncio.to_thread(
            settings_service.replace_availability,
            context.brand_id,
            instructor_id,
            payload.settings_input(),
            payload.weekly_rules(),
            payload.overrides(),
        )
        snapshot = unwrap_or_raise(result)
        logger.info(
            "Replaced availability for instructor %s in brand %s (%d weekly, %d overrides)",
            instructor_id,
            context.brand_slug,
            len(snapshot.weekly_rules),
            len(snapshot.date_overrides),
        )
        return AvailabilitySnapshotResponse.model_validate(snapshot.to_response())
    except DomainException as e:
        handle_domain_exception(e)
