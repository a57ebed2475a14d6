"""
Vehicle endpoints
=================

POST /api/v1/vehicles                          -- list a new vehicle
GET  /api/v1/vehicles                          -- vehicles open for booking
GET  /api/v1/vehicles/owner/{owner_id}         -- an owner's fleet
GET  /api/v1/vehicles/{vehicle_id}             -- vehicle details
PATCH /api/v1/vehicles/{vehicle_id}             -- edit name / price / location
PATCH /api/v1/vehicles/{vehicle_id}/status      -- maintenance on / off
GET  /api/v1/vehicles/{vehicle_id}/availability -- free / conflicting days
GET  /api/v1/vehicles/{vehicle_id}/quote       -- price for a duration
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db, get_reservation_service
from src.api.middleware import limiter
from src.api.schemas import (
    AvailabilityResponse,
    QuoteResponse,
    VehicleCreateRequest,
    VehicleResponse,
    VehicleStatusRequest,
    VehicleUpdateRequest,
)
from src.config import settings
from src.domain.pricing import Duration, PricingEngine
from src.infrastructure.repositories import VehicleRepository
from src.services.reservations import ReservationService

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


@router.post(
    "",
    status_code=201,
    response_model=VehicleResponse,
    summary="List a new vehicle",
)
@limiter.limit("100/minute")
async def create_vehicle(
    request: Request,
    body: VehicleCreateRequest,
    db: AsyncSession = Depends(get_db),
):
    return await VehicleRepository(db).create(**body.model_dump())


@router.get(
    "",
    response_model=list[VehicleResponse],
    summary="List vehicles currently available",
)
@limiter.limit("100/minute")
async def list_available_vehicles(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    return await VehicleRepository(db).get_available()


@router.get(
    "/owner/{owner_id}",
    response_model=list[VehicleResponse],
    summary="List an owner's vehicles",
)
@limiter.limit("100/minute")
async def list_owner_vehicles(
    request: Request,
    owner_id: str,
    db: AsyncSession = Depends(get_db),
):
    return await VehicleRepository(db).get_by_owner(owner_id)


@router.get(
    "/{vehicle_id}",
    response_model=VehicleResponse,
    summary="Get vehicle details",
)
@limiter.limit("100/minute")
async def get_vehicle(
    request: Request,
    vehicle_id: str,
    db: AsyncSession = Depends(get_db),
):
    vehicle = await VehicleRepository(db).get_by_id(vehicle_id)
    if not vehicle:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    return vehicle


@router.patch(
    "/{vehicle_id}",
    response_model=VehicleResponse,
    summary="Edit a listing's name, price or location",
    description="Existing bookings keep the amount they were priced at.",
)
@limiter.limit("100/minute")
async def update_vehicle(
    request: Request,
    vehicle_id: str,
    body: VehicleUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    repo = VehicleRepository(db)
    vehicle = await repo.get_by_id(vehicle_id)
    if not vehicle:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    return await repo.update(
        vehicle, **body.model_dump(exclude_unset=True, exclude_none=True)
    )


@router.patch(
    "/{vehicle_id}/status",
    response_model=VehicleResponse,
    summary="Put a vehicle into or out of maintenance",
)
@limiter.limit("100/minute")
async def update_vehicle_status(
    request: Request,
    vehicle_id: str,
    body: VehicleStatusRequest,
    service: ReservationService = Depends(get_reservation_service),
):
    return await service.set_vehicle_status(vehicle_id, body.status)


@router.get(
    "/{vehicle_id}/availability",
    response_model=AvailabilityResponse,
    summary="Check whether a date range is free",
    description=(
        "Advisory only: a concurrent booking may still take the days. "
        "When blocked, ``conflict`` spans the locked days inside the range."
    ),
)
@limiter.limit("100/minute")
async def check_availability(
    request: Request,
    vehicle_id: str,
    start_date: date = Query(...),
    end_date: date = Query(...),
    service: ReservationService = Depends(get_reservation_service),
):
    return await service.check_availability(vehicle_id, start_date, end_date)


@router.get(
    "/{vehicle_id}/quote",
    response_model=QuoteResponse,
    summary="Price a duration starting on a given day",
)
@limiter.limit("100/minute")
async def quote(
    request: Request,
    vehicle_id: str,
    start_date: date = Query(...),
    duration: str = Query(..., examples=["2 days"]),
    db: AsyncSession = Depends(get_db),
):
    vehicle = await VehicleRepository(db).get_by_id(vehicle_id)
    if not vehicle:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    result = PricingEngine(max_days=settings.max_booking_days).quote(
        vehicle.price_per_day, start_date, Duration.parse(duration)
    )
    return QuoteResponse(
        start_date=start_date,
        end_date=result.end_date,
        days=result.days,
        total_amount=result.total_amount,
    )
