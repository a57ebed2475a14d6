"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import BookingModel, SlotLockModel, VehicleModel
from src.domain.entities import ensure_transition
from src.domain.enums import OPEN_STATUSES, BookingStatus, VehicleStatus
from src.domain.slots import slot_key


class SlotAlreadyLocked(Exception):
    """A non-voided lock already exists for this (vehicle, day)."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Slot {key} is already locked")


class VehicleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **fields) -> VehicleModel:
        vehicle = VehicleModel(
            is_available=True,
            status=VehicleStatus.AVAILABLE,
            total_bookings=0,
            total_earnings=0,
            **fields,
        )
        self.session.add(vehicle)
        await self.session.flush()
        return vehicle

    async def get_by_id(self, vehicle_id: str) -> Optional[VehicleModel]:
        return await self.session.get(VehicleModel, vehicle_id)

    async def get_available(self) -> list[VehicleModel]:
        result = await self.session.execute(
            select(VehicleModel)
            .where(
                VehicleModel.is_available.is_(True),
                VehicleModel.status == VehicleStatus.AVAILABLE,
            )
            .order_by(VehicleModel.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_by_owner(self, owner_id: str) -> list[VehicleModel]:
        result = await self.session.execute(
            select(VehicleModel)
            .where(VehicleModel.owner_id == owner_id)
            .order_by(VehicleModel.created_at.desc())
        )
        return list(result.scalars().all())

    async def record_booking(self, vehicle_id: str, amount: int) -> None:
        """Bump the booking aggregates atomically (no read-modify-write)."""
        await self.session.execute(
            update(VehicleModel)
            .where(VehicleModel.id == vehicle_id)
            .values(
                total_bookings=VehicleModel.total_bookings + 1,
                total_earnings=VehicleModel.total_earnings + amount,
            )
        )

    async def update(self, vehicle: VehicleModel, **fields) -> VehicleModel:
        """Edit listing fields.  Bookings already made keep their amounts."""
        for name, value in fields.items():
            setattr(vehicle, name, value)
        await self.session.flush()
        return vehicle

    async def set_availability(self, vehicle: VehicleModel, available: bool) -> None:
        if vehicle.status == VehicleStatus.MAINTENANCE:
            # Off the market until maintenance ends, whatever the bookings say
            vehicle.is_available = False
        else:
            vehicle.is_available = available
            vehicle.status = (
                VehicleStatus.AVAILABLE if available else VehicleStatus.BOOKED
            )
        await self.session.flush()


class SlotLockRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self, *, vehicle_id: str, day: date, holder_id: str, booking_id: str
    ) -> SlotLockModel:
        """
        Insert one lock inside its own SAVEPOINT.

        The partial unique index rejects a second active lock for the same
        day; only this insert is rolled back, earlier locks of the same
        attempt stay flushed so the caller can compensate explicitly.
        """
        lock = SlotLockModel(
            slot_key=slot_key(vehicle_id, day),
            vehicle_id=vehicle_id,
            iso_date=day,
            holder_id=holder_id,
            booking_id=booking_id,
        )
        try:
            async with self.session.begin_nested():
                self.session.add(lock)
        except IntegrityError as exc:
            raise SlotAlreadyLocked(lock.slot_key) from exc
        return lock

    async def get_active_days(
        self,
        vehicle_id: str,
        start_date: date,
        end_date: date,
        exclude_booking_id: str | None = None,
    ) -> list[date]:
        query = (
            select(SlotLockModel.iso_date)
            .where(
                SlotLockModel.vehicle_id == vehicle_id,
                SlotLockModel.iso_date >= start_date,
                SlotLockModel.iso_date <= end_date,
                SlotLockModel.voided_at.is_(None),
            )
            .order_by(SlotLockModel.iso_date)
        )
        if exclude_booking_id:
            query = query.where(SlotLockModel.booking_id != exclude_booking_id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_for_booking(self, booking_id: str) -> list[SlotLockModel]:
        result = await self.session.execute(
            select(SlotLockModel)
            .where(SlotLockModel.booking_id == booking_id)
            .order_by(SlotLockModel.iso_date)
        )
        return list(result.scalars().all())

    async def delete_many(self, locks: Iterable[SlotLockModel]) -> None:
        ids = [lock.id for lock in locks]
        if not ids:
            return
        await self.session.execute(
            delete(SlotLockModel).where(SlotLockModel.id.in_(ids))
        )

    async def void_for_booking(self, booking_id: str, voided_at: datetime) -> int:
        """Soft-delete the booking's active locks.  Already voided ones are left alone."""
        result = await self.session.execute(
            update(SlotLockModel)
            .where(
                SlotLockModel.booking_id == booking_id,
                SlotLockModel.voided_at.is_(None),
            )
            .values(voided_at=voided_at)
        )
        return result.rowcount or 0


class BookingRepository:
    """Booking record store: sole writer of ``status`` after creation."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, booking: BookingModel) -> BookingModel:
        self.session.add(booking)
        await self.session.flush()
        return booking

    async def get_by_id(self, booking_id: str) -> Optional[BookingModel]:
        return await self.session.get(BookingModel, booking_id)

    async def get_by_idempotency_key(self, key: str) -> Optional[BookingModel]:
        result = await self.session.execute(
            select(BookingModel).where(BookingModel.idempotency_key == key)
        )
        return result.scalar_one_or_none()

    async def get_by_renter(self, renter_id: str) -> list[BookingModel]:
        return await self._list(BookingModel.renter_id == renter_id)

    async def get_by_owner(self, owner_id: str) -> list[BookingModel]:
        return await self._list(BookingModel.owner_id == owner_id)

    async def get_by_vehicle(self, vehicle_id: str) -> list[BookingModel]:
        return await self._list(BookingModel.vehicle_id == vehicle_id)

    async def search(
        self,
        *,
        renter_id: Optional[str] = None,
        owner_id: Optional[str] = None,
        vehicle_id: Optional[str] = None,
    ) -> list[BookingModel]:
        """Bookings matching every given filter (AND), newest first."""
        criteria = []
        if renter_id:
            criteria.append(BookingModel.renter_id == renter_id)
        if owner_id:
            criteria.append(BookingModel.owner_id == owner_id)
        if vehicle_id:
            criteria.append(BookingModel.vehicle_id == vehicle_id)
        return await self._list(*criteria)

    async def count_open_for_vehicle(self, vehicle_id: str) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(BookingModel)
            .where(
                BookingModel.vehicle_id == vehicle_id,
                BookingModel.status.in_(list(OPEN_STATUSES)),
            )
        )
        return result.scalar() or 0

    async def get_due_for_activation(self, today: date) -> list[BookingModel]:
        result = await self.session.execute(
            select(BookingModel)
            .where(
                BookingModel.status == BookingStatus.UPCOMING,
                BookingModel.start_date <= today,
            )
            .order_by(BookingModel.start_date)
        )
        return list(result.scalars().all())

    async def get_due_for_completion(self, today: date) -> list[BookingModel]:
        result = await self.session.execute(
            select(BookingModel)
            .where(
                BookingModel.status == BookingStatus.ACTIVE,
                BookingModel.end_date < today,
            )
            .order_by(BookingModel.end_date)
        )
        return list(result.scalars().all())

    async def transition(
        self, booking: BookingModel, new_status: BookingStatus
    ) -> BookingModel:
        ensure_transition(booking.status, new_status)
        booking.status = new_status
        await self.session.flush()
        return booking

    async def _list(self, *criteria) -> list[BookingModel]:
        result = await self.session.execute(
            select(BookingModel)
            .where(*criteria)
            .order_by(BookingModel.created_at.desc())
        )
        return list(result.scalars().all())
