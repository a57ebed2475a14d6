"""FastAPI dependency injection helpers."""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.events import EventBus
from src.infrastructure.database import async_session_factory
from src.services.reservations import ReservationService


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_event_bus(request: Request) -> EventBus:
    return request.app.state.event_bus


def get_reservation_service(
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
) -> ReservationService:
    return ReservationService(db, events)
