"""
SQLAlchemy ORM models  (maps to PostgreSQL; SQLite in tests).

Tables
------
* ``vehicles``    -- listed bikes / scooters / cars with their daily price
* ``slot_locks``  -- one row per (vehicle, calendar day) claim
* ``bookings``    -- renter reservations and their lifecycle status

Indexes
-------
* **Partial unique** on ``slot_locks (vehicle_id, iso_date) WHERE
  voided_at IS NULL``: the double-booking guard.  A racing insert for an
  already-held day fails with ``IntegrityError``.
* **B-Tree** on ``status``, ``renter_id``, ``owner_id``, ``vehicle_id`` and
  ``booking_id`` for the look-ups used by the API and the worker.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    text,
)

from .database import Base
from src.domain.enums import BookingStatus, VehicleStatus, VehicleType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:16]}"


def _enum(enum_cls, name: str) -> Enum:
    # Store the lowercase values ("upcoming"), not the member names
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
    )


class VehicleModel(Base):
    __tablename__ = "vehicles"

    id = Column(String(32), primary_key=True, default=lambda: new_id("veh"))
    name = Column(String(120), nullable=False)
    type = Column(_enum(VehicleType, "vehicletype"), nullable=False)
    price_per_day = Column(Integer, nullable=False)
    location = Column(String(255), nullable=False, default="")
    is_available = Column(Boolean, default=True, nullable=False)
    status = Column(
        _enum(VehicleStatus, "vehiclestatus"),
        default=VehicleStatus.AVAILABLE,
        nullable=False,
    )
    owner_id = Column(String(64), nullable=False)
    owner_name = Column(String(120), nullable=True)
    total_bookings = Column(Integer, default=0, nullable=False)
    total_earnings = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        Index("idx_vehicles_owner", "owner_id"),
        Index("idx_vehicles_available", "is_available"),
    )


class SlotLockModel(Base):
    __tablename__ = "slot_locks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slot_key = Column(String(64), nullable=False)
    vehicle_id = Column(String(32), ForeignKey("vehicles.id"), nullable=False)
    iso_date = Column(Date, nullable=False)
    holder_id = Column(String(64), nullable=False)
    booking_id = Column(String(32), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    voided_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index(
            "uq_slot_locks_active",
            "vehicle_id",
            "iso_date",
            unique=True,
            postgresql_where=text("voided_at IS NULL"),
            sqlite_where=text("voided_at IS NULL"),
        ),
        Index("idx_slot_locks_booking", "booking_id"),
    )


class BookingModel(Base):
    __tablename__ = "bookings"

    id = Column(String(32), primary_key=True, default=lambda: new_id("book"))
    vehicle_id = Column(String(32), ForeignKey("vehicles.id"), nullable=False)
    renter_id = Column(String(64), nullable=False)
    owner_id = Column(String(64), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    duration = Column(String(32), nullable=False)
    pickup_time = Column(String(16), nullable=True)
    location = Column(String(255), nullable=True)
    total_amount = Column(Integer, nullable=False)
    status = Column(
        _enum(BookingStatus, "bookingstatus"),
        default=BookingStatus.UPCOMING,
        nullable=False,
    )
    slot_ids = Column(JSON, nullable=False, default=list)
    idempotency_key = Column(String(64), unique=True, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        Index("idx_bookings_status", "status"),
        Index("idx_bookings_renter", "renter_id"),
        Index("idx_bookings_owner", "owner_id"),
        Index("idx_bookings_vehicle", "vehicle_id"),
    )
