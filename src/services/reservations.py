"""
Slot Reservation Service
========================

Guarantees at most one active reservation per vehicle-day.

Reserve algorithm (saga with compensating rollback)
---------------------------------------------------
1. Resolve the inclusive day range and the amount from the duration.
2. Create one slot lock per day, in ascending day order.  Each insert
   runs in its own SAVEPOINT and is rejected by the partial unique index
   on ``(vehicle_id, iso_date) WHERE voided_at IS NULL`` if the day is
   already held -- including by a concurrent reserve that committed first.
3. On the first rejected day, delete every lock this attempt created,
   recompute the conflict window and raise ``ConflictError``.
4. Otherwise persist the booking (``upcoming``), mark the vehicle booked
   and publish ``BookingCreated``.

Locks are always taken in the same (ascending) order, so two overlapping
attempts cannot deadlock each other.

``check_availability`` is advisory only: it may race with a concurrent
reserve.  ``reserve`` is the authoritative operation.

Complexity: O(d) statements per reserve, d = days in the range.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.domain.entities import AvailabilityResult, DateWindow
from src.domain.enums import BookingStatus, VehicleStatus
from src.domain.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from src.domain.events import (
    BookingCancelled,
    BookingCompleted,
    BookingCreated,
    EventBus,
)
from src.domain.pricing import Duration, PricingEngine
from src.domain.slots import day_range
from src.infrastructure.models import (
    BookingModel,
    SlotLockModel,
    VehicleModel,
    new_id,
)
from src.infrastructure.repositories import (
    BookingRepository,
    SlotAlreadyLocked,
    SlotLockRepository,
    VehicleRepository,
)

logger = logging.getLogger(__name__)


class ReservationService:
    def __init__(
        self,
        session: AsyncSession,
        events: EventBus,
        pricing: Optional[PricingEngine] = None,
    ):
        self.session = session
        self.events = events
        self.pricing = pricing or PricingEngine(max_days=settings.max_booking_days)
        self.vehicles = VehicleRepository(session)
        self.locks = SlotLockRepository(session)
        self.bookings = BookingRepository(session)

    # ── Queries ──────────────────────────────────────────────────────

    async def check_availability(
        self, vehicle_id: str, start_date: date, end_date: date
    ) -> AvailabilityResult:
        await self._get_vehicle(vehicle_id)
        return await self._availability(vehicle_id, start_date, end_date)

    async def get_booking(self, booking_id: str) -> BookingModel:
        booking = await self.bookings.get_by_id(booking_id)
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found")
        return booking

    async def bookings_for_renter(self, renter_id: str) -> list[BookingModel]:
        return await self.bookings.get_by_renter(renter_id)

    async def bookings_for_owner(self, owner_id: str) -> list[BookingModel]:
        return await self.bookings.get_by_owner(owner_id)

    async def bookings_for_vehicle(self, vehicle_id: str) -> list[BookingModel]:
        return await self.bookings.get_by_vehicle(vehicle_id)

    async def find_bookings(
        self,
        *,
        renter_id: Optional[str] = None,
        owner_id: Optional[str] = None,
        vehicle_id: Optional[str] = None,
    ) -> list[BookingModel]:
        if not (renter_id or owner_id or vehicle_id):
            raise ValidationError(
                "One of renter_id, owner_id or vehicle_id is required"
            )
        return await self.bookings.search(
            renter_id=renter_id, owner_id=owner_id, vehicle_id=vehicle_id
        )

    # ── Commands ─────────────────────────────────────────────────────

    async def reserve(
        self,
        vehicle_id: str,
        renter_id: str,
        start_date: date,
        end_date: Optional[date] = None,
        duration: Optional[Duration] = None,
        *,
        pickup_time: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> BookingModel:
        if idempotency_key:
            existing = await self.bookings.get_by_idempotency_key(idempotency_key)
            if existing:
                logger.info(
                    "Replaying booking %s for idempotency key %s",
                    existing.id,
                    idempotency_key,
                )
                return existing

        vehicle = await self._get_vehicle(vehicle_id)
        if vehicle.status == VehicleStatus.MAINTENANCE:
            raise ValidationError(f"Vehicle {vehicle_id} is under maintenance")

        duration, end_date, amount = self._resolve_range(
            vehicle, start_date, end_date, duration
        )
        booking_id = new_id("book")

        created: list[SlotLockModel] = []
        for day in day_range(start_date, end_date):
            try:
                lock = await self.locks.create(
                    vehicle_id=vehicle_id,
                    day=day,
                    holder_id=renter_id,
                    booking_id=booking_id,
                )
            except SlotAlreadyLocked as exc:
                logger.info(
                    "Reserve %s for vehicle %s hit held slot %s; rolling back %d lock(s)",
                    booking_id,
                    vehicle_id,
                    exc.key,
                    len(created),
                )
                await self._rollback_locks(booking_id, created)
                raise await self._conflict(
                    vehicle_id, start_date, end_date, booking_id, day
                ) from exc
            created.append(lock)

        booking = await self.bookings.create(
            BookingModel(
                id=booking_id,
                vehicle_id=vehicle_id,
                renter_id=renter_id,
                owner_id=vehicle.owner_id,
                start_date=start_date,
                end_date=end_date,
                duration=str(duration),
                pickup_time=pickup_time,
                location=vehicle.location,
                total_amount=amount,
                status=BookingStatus.UPCOMING,
                slot_ids=[lock.slot_key for lock in created],
                idempotency_key=idempotency_key,
            )
        )
        await self.vehicles.record_booking(vehicle_id, amount)
        await self.vehicles.set_availability(vehicle, False)

        logger.info(
            "Booking %s reserved vehicle %s from %s to %s (%d)",
            booking.id,
            vehicle_id,
            start_date,
            end_date,
            amount,
        )
        await self.events.publish(
            BookingCreated(
                booking_id=booking.id,
                vehicle_id=vehicle_id,
                renter_id=renter_id,
                owner_id=vehicle.owner_id,
                start_date=start_date,
                end_date=end_date,
                duration=booking.duration,
                total_amount=amount,
            )
        )
        return booking

    async def activate(self, booking_id: str) -> BookingModel:
        booking = await self.get_booking(booking_id)
        if booking.status == BookingStatus.ACTIVE:
            return booking
        return await self.bookings.transition(booking, BookingStatus.ACTIVE)

    async def cancel(self, booking_id: str) -> BookingModel:
        booking = await self.get_booking(booking_id)
        if booking.status == BookingStatus.CANCELLED:
            logger.debug("Booking %s already cancelled", booking_id)
            return booking

        # Validate before touching the locks so a completed booking keeps them
        await self.bookings.transition(booking, BookingStatus.CANCELLED)
        released = await self.locks.void_for_booking(
            booking.id, datetime.now(timezone.utc)
        )
        await self._refresh_vehicle(booking.vehicle_id)

        logger.info("Booking %s cancelled, %d slot(s) released", booking.id, released)
        await self.events.publish(
            BookingCancelled(booking_id=booking.id, vehicle_id=booking.vehicle_id)
        )
        return booking

    async def complete(self, booking_id: str, allow_early: bool = True) -> BookingModel:
        booking = await self.get_booking(booking_id)
        if booking.status == BookingStatus.COMPLETED:
            return booking
        if booking.status == BookingStatus.UPCOMING:
            if not allow_early:
                raise InvalidTransitionError(
                    f"Booking {booking_id} has not started yet"
                )
            await self.bookings.transition(booking, BookingStatus.ACTIVE)

        await self.bookings.transition(booking, BookingStatus.COMPLETED)
        await self._refresh_vehicle(booking.vehicle_id)

        logger.info("Booking %s completed", booking.id)
        await self.events.publish(
            BookingCompleted(booking_id=booking.id, vehicle_id=booking.vehicle_id)
        )
        return booking

    async def set_vehicle_status(
        self, vehicle_id: str, status: VehicleStatus
    ) -> VehicleModel:
        """Put a vehicle into or take it out of maintenance.

        ``booked`` is derived from open bookings and cannot be set directly.
        Leaving maintenance recomputes availability; existing bookings are
        untouched either way.
        """
        vehicle = await self._get_vehicle(vehicle_id)
        if status == VehicleStatus.BOOKED:
            raise ValidationError("Vehicle status 'booked' follows its bookings")
        if status == VehicleStatus.MAINTENANCE:
            vehicle.status = VehicleStatus.MAINTENANCE
            vehicle.is_available = False
            await self.session.flush()
        else:
            vehicle.status = VehicleStatus.AVAILABLE
            await self._refresh_vehicle(vehicle_id)
        logger.info("Vehicle %s status set to %s", vehicle_id, vehicle.status.value)
        return vehicle

    # ── Internals ────────────────────────────────────────────────────

    async def _get_vehicle(self, vehicle_id: str) -> VehicleModel:
        vehicle = await self.vehicles.get_by_id(vehicle_id)
        if vehicle is None:
            raise NotFoundError(f"Vehicle {vehicle_id} not found")
        return vehicle

    async def _availability(
        self,
        vehicle_id: str,
        start_date: date,
        end_date: date,
        exclude_booking_id: Optional[str] = None,
    ) -> AvailabilityResult:
        if start_date > end_date:
            raise ValidationError(
                f"start_date {start_date} is after end_date {end_date}"
            )
        locked = await self.locks.get_active_days(
            vehicle_id, start_date, end_date, exclude_booking_id
        )
        if not locked:
            return AvailabilityResult.available()
        return AvailabilityResult.blocked(locked)

    def _resolve_range(
        self,
        vehicle: VehicleModel,
        start_date: date,
        end_date: Optional[date],
        duration: Optional[Duration],
    ) -> tuple[Duration, date, int]:
        if duration is None:
            if end_date is None:
                raise ValidationError("Either end_date or duration is required")
            duration = Duration.of_days(DateWindow(start_date, end_date).length)

        quote = self.pricing.quote(vehicle.price_per_day, start_date, duration)
        if end_date is not None and end_date != quote.end_date:
            raise ValidationError(
                f"Duration {duration} from {start_date} ends on "
                f"{quote.end_date}, not {end_date}"
            )
        return duration, quote.end_date, quote.total_amount

    async def _rollback_locks(
        self, booking_id: str, created: list[SlotLockModel]
    ) -> None:
        try:
            await self.locks.delete_many(created)
        except Exception:
            # Must not mask the ConflictError raised by the caller
            logger.exception(
                "Failed to roll back %d lock(s) of attempt %s",
                len(created),
                booking_id,
            )

    async def _conflict(
        self,
        vehicle_id: str,
        start_date: date,
        end_date: date,
        booking_id: str,
        failed_day: date,
    ) -> ConflictError:
        try:
            result = await self._availability(
                vehicle_id, start_date, end_date, exclude_booking_id=booking_id
            )
        except Exception:
            logger.exception("Could not recompute conflict window for %s", vehicle_id)
            result = AvailabilityResult.blocked([failed_day])
        # The holder may have released the day since our insert failed
        window = result.conflict or DateWindow(failed_day, failed_day)
        return ConflictError(vehicle_id, window)

    async def _refresh_vehicle(self, vehicle_id: str) -> None:
        vehicle = await self.vehicles.get_by_id(vehicle_id)
        if vehicle is None:
            return
        still_open = await self.bookings.count_open_for_vehicle(vehicle_id)
        await self.vehicles.set_availability(vehicle, still_open == 0)
