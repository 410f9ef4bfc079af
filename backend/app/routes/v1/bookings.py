# backend/app/routes/v1/bookings.py
"""
Student booking routes - API v1

Versioned booking endpoints under /api/v1/bookings.
All business logic delegated to BookingService.

Endpoints:
    GET / - Bookings visible to the caller
    POST / - Create a pending booking for an available slot
    GET /instructors - Bookable instructors of the brand with their settings
    GET /{booking_id} - Booking detail for a party to the booking
    PATCH /{booking_id} - Status transition, notes or payment confirmation
"""

import asyncio
import logging
from typing import NoReturn

from fastapi import APIRouter, Body, Depends, HTTPException, Path, status

from ...api.dependencies import (
    get_booking_service,
    get_request_context,
    get_scheduling_settings_service,
)
from ...core.exceptions import DomainException
from ...core.results import unwrap_or_raise
from ...schemas.availability import InstructorListResponse
from ...schemas.booking import (
    BookingCreate,
    BookingCreateResponse,
    BookingListResponse,
    BookingResponse,
    BookingUpdate,
)
from ...services.booking_service import BookingService
from ...services.identity_service import RequestContext
from ...services.scheduling_settings_service import SchedulingSettingsService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["bookings-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


# ============================================================================
# SECTION 1: Collection routes (no path parameters)
# ============================================================================


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    context: RequestContext = Depends(get_request_context),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingListResponse:
    """
    List bookings visible to the caller.

    Brand admins get every booking of the brand; students and instructors get
    their own bookings and the bookings of the instructors they operate.
    """
    try:
        result = await asyncio.to_thread(booking_service.list_bookings, context)
        bookings = unwrap_or_raise(result)
        return BookingListResponse(bookings=[booking.to_dict() for booking in bookings])
    except DomainException as e:
        handle_domain_exception(e)


@router.post("", response_model=BookingCreateResponse)
async def create_booking(
    payload: BookingCreate = Body(...),
    context: RequestContext = Depends(get_request_context),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingCreateResponse:
    """
    Create a pending booking.

    The slot must match the instructor's availability exactly and must not
    overlap another active booking, buffer included. Confirmation messages
    are best-effort; delivery problems come back as notification warnings.
    """
    try:
        result = await asyncio.to_thread(
            booking_service.create_booking, context, payload.to_request()
        )
        creation = unwrap_or_raise(result)
        return BookingCreateResponse.model_validate(creation.to_response())
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/instructors", response_model=InstructorListResponse)
async def list_brand_instructors(
    context: RequestContext = Depends(get_request_context),
    settings_service: SchedulingSettingsService = Depends(get_scheduling_settings_service),
) -> InstructorListResponse:
    """Home-brand and linked instructors with their effective scheduling settings."""
    try:
        instructors = await asyncio.to_thread(
            settings_service.list_brand_instructors, context.brand_id
        )
        return InstructorListResponse.model_validate(
            {"instructors": [item.to_response() for item in instructors]}
        )
    except DomainException as e:
        handle_domain_exception(e)


# ============================================================================
# SECTION 2: Dynamic routes (with path parameters)
# ============================================================================


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking_details(
    booking_id: str = Path(..., description="Booking ULID"),
    context: RequestContext = Depends(get_request_context),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Get full booking details."""
    try:
        result = await asyncio.to_thread(booking_service.get_booking, context, booking_id)
        booking = unwrap_or_raise(result)
        return BookingResponse(booking=booking.to_dict())
    except DomainException as e:
        handle_domain_exception(e)


@router.patch("/{booking_id}", response_model=BookingResponse)
async def update_booking(
    booking_id: str = Path(..., description="Booking ULID"),
    payload: BookingUpdate = Body(...),
    context: RequestContext = Depends(get_request_context),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """
    Update a booking.

    Students may cancel their own bookings before the cancellation cutoff or
    confirm them with a payment descriptor. Instructors and brand admins may
    move bookings through the remaining lifecycle and edit instructor notes.
    """
    try:
        result = await asyncio.to_thread(
            booking_service.update_booking, context, booking_id, payload.to_request()
        )
        booking = unwrap_or_raise(result)
        return BookingResponse(booking=booking.to_dict())
    except DomainException as e:
        handle_domain_exception(e)
