"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from src.domain.enums import BookingStatus, VehicleStatus, VehicleType


# ── Requests ──────────────────────────────────────────────────────────


class VehicleCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    type: VehicleType
    price_per_day: int = Field(..., gt=0, description="Smallest currency unit.")
    location: str = Field("", max_length=255)
    owner_id: str = Field(..., min_length=1, max_length=64)
    owner_name: Optional[str] = Field(None, max_length=120)


class VehicleUpdateRequest(BaseModel):
    """Listing edits.  Status and availability follow bookings and maintenance."""

    name: Optional[str] = Field(None, min_length=1, max_length=120)
    price_per_day: Optional[int] = Field(None, gt=0)
    location: Optional[str] = Field(None, max_length=255)
    owner_name: Optional[str] = Field(None, max_length=120)


class VehicleStatusRequest(BaseModel):
    status: VehicleStatus


class BookingCreateRequest(BaseModel):
    vehicle_id: str
    renter_id: str = Field(..., min_length=1, max_length=64)
    start_date: date
    end_date: Optional[date] = None
    duration: Optional[str] = Field(
        None,
        max_length=32,
        examples=["4 hours", "2 days", "1 week"],
    )
    pickup_time: Optional[str] = Field(None, max_length=16)
    idempotency_key: Optional[str] = Field(
        None,
        max_length=64,
        description="Client-generated UUID to prevent double-booking on retries.",
    )

    @model_validator(mode="after")
    def _needs_range(self) -> BookingCreateRequest:
        if self.end_date is None and self.duration is None:
            raise ValueError("Either end_date or duration is required")
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


# ── Responses ─────────────────────────────────────────────────────────


class VehicleResponse(BaseModel):
    id: str
    name: str
    type: VehicleType
    price_per_day: int
    location: str
    is_available: bool
    status: VehicleStatus
    owner_id: str
    owner_name: Optional[str] = None
    total_bookings: int
    total_earnings: int
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BookingResponse(BaseModel):
    id: str
    vehicle_id: str
    renter_id: str
    owner_id: str
    start_date: date
    end_date: date
    duration: str
    pickup_time: Optional[str] = None
    location: Optional[str] = None
    total_amount: int
    status: BookingStatus
    slot_ids: list[str] = []
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class DateWindowResponse(BaseModel):
    start_date: date
    end_date: date

    model_config = {"from_attributes": True}


class AvailabilityResponse(BaseModel):
    ok: bool
    conflict: Optional[DateWindowResponse] = None

    model_config = {"from_attributes": True}


class QuoteResponse(BaseModel):
    start_date: date
    end_date: date
    days: int
    total_amount: int


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str


class ConflictResponse(ErrorResponse):
    conflict: DateWindowResponse


class SlotLockResponse(BaseModel):
    slot_key: str
    vehicle_id: str
    iso_date: date
    holder_id: str
    booking_id: str
    created_at: Optional[datetime] = None
    voided_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
