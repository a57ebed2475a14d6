"""
Admin / observability endpoints
===============================

GET /api/v1/admin/bookings/{booking_id}/locks -- slot locks of a booking (audit)
GET /api/v1/admin/health                      -- simple health check
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db
from src.api.middleware import limiter
from src.api.schemas import HealthResponse, SlotLockResponse
from src.infrastructure.repositories import SlotLockRepository

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/bookings/{booking_id}/locks",
    response_model=list[SlotLockResponse],
    summary="List a booking's slot locks, voided ones included",
)
@limiter.limit("100/minute")
async def get_booking_locks(
    request: Request,
    booking_id: str,
    db: AsyncSession = Depends(get_db),
):
    return await SlotLockRepository(db).get_for_booking(booking_id)


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
