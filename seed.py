"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 8 sample vehicles (bikes, scooters and cars across three owners)
  - 5 sample bookings made through the reservation service, so their
    slot locks exist (mix of upcoming, active, completed, cancelled)
"""

import asyncio
from datetime import date, timedelta

from sqlalchemy import text

from src.domain.enums import VehicleType
from src.domain.events import BookingEvent, EventBus, log_event
from src.domain.pricing import Duration
from src.infrastructure.database import async_session_factory, engine
from src.infrastructure.repositories import VehicleRepository
from src.services.reservations import ReservationService


VEHICLES = [
    {"name": "Royal Enfield Classic 350", "type": VehicleType.BIKE, "price_per_day": 150, "location": "Koramangala, Bangalore", "owner_id": "owner_ravi", "owner_name": "Ravi Kumar"},
    {"name": "Bajaj Pulsar 150", "type": VehicleType.BIKE, "price_per_day": 120, "location": "Indiranagar, Bangalore", "owner_id": "owner_ravi", "owner_name": "Ravi Kumar"},
    {"name": "Honda Activa 6G", "type": VehicleType.SCOOTER, "price_per_day": 200, "location": "HSR Layout, Bangalore", "owner_id": "owner_anita", "owner_name": "Anita Desai"},
    {"name": "TVS Jupiter", "type": VehicleType.SCOOTER, "price_per_day": 180, "location": "Whitefield, Bangalore", "owner_id": "owner_anita", "owner_name": "Anita Desai"},
    {"name": "Ather 450X", "type": VehicleType.SCOOTER, "price_per_day": 250, "location": "Jayanagar, Bangalore", "owner_id": "owner_anita", "owner_name": "Anita Desai"},
    {"name": "Maruti Swift", "type": VehicleType.CAR, "price_per_day": 800, "location": "MG Road, Bangalore", "owner_id": "owner_sameer", "owner_name": "Sameer Khan"},
    {"name": "Hyundai Creta", "type": VehicleType.CAR, "price_per_day": 1500, "location": "Hebbal, Bangalore", "owner_id": "owner_sameer", "owner_name": "Sameer Khan"},
    {"name": "Tata Nexon EV", "type": VehicleType.CAR, "price_per_day": 1800, "location": "Electronic City, Bangalore", "owner_id": "owner_sameer", "owner_name": "Sameer Khan"},
]


async def seed():
    events = EventBus()
    events.subscribe(BookingEvent, log_event)

    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM vehicles"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Vehicles ──────────────────────────────────────────────────
        vehicle_repo = VehicleRepository(session)
        vehicles = [await vehicle_repo.create(**v) for v in VEHICLES]
        print(f"  Created {len(vehicles)} vehicles")

        # ── Bookings ──────────────────────────────────────────────────
        service = ReservationService(session, events)
        today = date.today()

        upcoming = await service.reserve(
            vehicles[0].id, "renter_priya", today + timedelta(days=3),
            duration=Duration.parse("2 days"), pickup_time="09:00",
        )
        active = await service.reserve(
            vehicles[2].id, "renter_arjun", today,
            duration=Duration.parse("1 week"), pickup_time="10:30",
        )
        await service.activate(active.id)
        completed = await service.reserve(
            vehicles[5].id, "renter_meera", today,
            duration=Duration.parse("8 hours"), pickup_time="08:00",
        )
        await service.complete(completed.id)
        cancelled = await service.reserve(
            vehicles[6].id, "renter_karan", today + timedelta(days=10),
            today + timedelta(days=12),
        )
        await service.cancel(cancelled.id)
        await service.reserve(
            vehicles[7].id, "renter_diya", today + timedelta(days=1),
            duration=Duration.parse("3 days"), pickup_time="18:00",
        )
        print(f"  Created 5 bookings (upcoming {upcoming.id} ...)")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
