"""
Booking endpoints
=================

POST  /api/v1/bookings                         -- reserve a vehicle (201)
GET   /api/v1/bookings?renter_id=&owner_id=&vehicle_id= -- list (filters AND)
GET   /api/v1/bookings/{booking_id}            -- booking details
PATCH /api/v1/bookings/{booking_id}/activate   -- upcoming -> active
PATCH /api/v1/bookings/{booking_id}/cancel     -- release the slots
PATCH /api/v1/bookings/{booking_id}/complete   -- finish the rental
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from src.api.dependencies import get_reservation_service
from src.api.middleware import limiter
from src.api.schemas import BookingCreateRequest, BookingResponse, ConflictResponse
from src.domain.pricing import Duration
from src.services.reservations import ReservationService

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post(
    "",
    status_code=201,
    response_model=BookingResponse,
    summary="Reserve a vehicle for a date range",
    responses={
        409: {
            "model": ConflictResponse,
            "description": "Some days are already booked; ``conflict`` holds them.",
        }
    },
)
@limiter.limit("100/minute")
async def create_booking(
    request: Request,
    body: BookingCreateRequest,
    service: ReservationService = Depends(get_reservation_service),
):
    duration = Duration.parse(body.duration) if body.duration else None
    return await service.reserve(
        body.vehicle_id,
        body.renter_id,
        body.start_date,
        body.end_date,
        duration,
        pickup_time=body.pickup_time,
        idempotency_key=body.idempotency_key,
    )


@router.get(
    "",
    response_model=list[BookingResponse],
    summary="List bookings by renter, owner and/or vehicle",
    description="Filters combine; at least one is required.",
)
@limiter.limit("100/minute")
async def list_bookings(
    request: Request,
    renter_id: Optional[str] = Query(None),
    owner_id: Optional[str] = Query(None),
    vehicle_id: Optional[str] = Query(None),
    service: ReservationService = Depends(get_reservation_service),
):
    return await service.find_bookings(
        renter_id=renter_id, owner_id=owner_id, vehicle_id=vehicle_id
    )


@router.get(
    "/{booking_id}",
    response_model=BookingResponse,
    summary="Get booking status and amount",
)
@limiter.limit("100/minute")
async def get_booking(
    request: Request,
    booking_id: str,
    service: ReservationService = Depends(get_reservation_service),
):
    return await service.get_booking(booking_id)


@router.patch(
    "/{booking_id}/activate",
    response_model=BookingResponse,
    summary="Start a booking (pickup)",
)
@limiter.limit("100/minute")
async def activate_booking(
    request: Request,
    booking_id: str,
    service: ReservationService = Depends(get_reservation_service),
):
    return await service.activate(booking_id)


@router.patch(
    "/{booking_id}/cancel",
    response_model=BookingResponse,
    summary="Cancel a booking",
    description=(
        "Voids the booking's slot locks and frees the vehicle. "
        "Cancelling twice is a no-op; a completed booking cannot be cancelled."
    ),
)
@limiter.limit("100/minute")
async def cancel_booking(
    request: Request,
    booking_id: str,
    service: ReservationService = Depends(get_reservation_service),
):
    return await service.cancel(booking_id)


@router.patch(
    "/{booking_id}/complete",
    response_model=BookingResponse,
    summary="Complete a booking",
)
@limiter.limit("100/minute")
async def complete_booking(
    request: Request,
    booking_id: str,
    allow_early: bool = Query(True),
    service: ReservationService = Depends(get_reservation_service),
):
    return await service.complete(booking_id, allow_early=allow_early)
