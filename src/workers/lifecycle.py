"""
Background Booking Lifecycle Worker
===================================

Runs every ``LIFECYCLE_INTERVAL_SECONDS`` (default 60 s).

The reservation service never moves bookings on its own as time passes;
this worker is the scheduler that does.

Concurrency safety
------------------
* **Redis distributed lock** ensures only one instance runs the sweep at
  a time across multiple API processes.
* Every transition goes through ``ReservationService`` and is idempotent,
  so a sweep that overlaps a user action (e.g. a cancel) is harmless.

Algorithm per cycle
-------------------
1. Activate UPCOMING bookings whose start date has arrived.
2. Complete ACTIVE bookings whose end date has passed, freeing the
   vehicle when no other open booking remains.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Optional

from src.config import settings
from src.domain.errors import ReservationError
from src.domain.events import EventBus
from src.infrastructure.database import async_session_factory
from src.infrastructure.locks import DistributedLock
from src.infrastructure.redis_client import get_redis
from src.services.reservations import ReservationService

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None


# ── Public API ────────────────────────────────────────────────────────


async def start_lifecycle_loop(events: EventBus) -> None:
    global _task, _stop_event
    _stop_event = asyncio.Event()
    _task = asyncio.create_task(_loop(events))
    logger.info(
        "Lifecycle worker started (interval=%ds)",
        settings.lifecycle_interval_seconds,
    )


async def stop_lifecycle_loop() -> None:
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
    logger.info("Lifecycle worker stopped")


# ── Internals ─────────────────────────────────────────────────────────


async def _loop(events: EventBus) -> None:
    """Periodic loop: run a sweep then sleep."""
    assert _stop_event is not None
    while not _stop_event.is_set():
        try:
            await run_lifecycle_cycle(events)
        except Exception:
            logger.exception("Unhandled error in lifecycle cycle")
        try:
            await asyncio.wait_for(
                _stop_event.wait(), timeout=settings.lifecycle_interval_seconds
            )
            break
        except asyncio.TimeoutError:
            pass  # next cycle


async def run_lifecycle_cycle(
    events: EventBus, today: Optional[date] = None
) -> tuple[int, int]:
    """Execute one sweep.  Returns ``(activated, completed)`` counts."""
    today = today or date.today()
    redis = await get_redis()
    lock = DistributedLock(
        redis, "booking_lifecycle", ttl_seconds=settings.lifecycle_lock_ttl_seconds
    )

    if not await lock.acquire():
        logger.debug("Lock held by another worker – skipping cycle")
        return 0, 0

    activated = completed = 0
    try:
        async with async_session_factory() as session:
            service = ReservationService(session, events)

            for booking in await service.bookings.get_due_for_activation(today):
                try:
                    await service.activate(booking.id)
                    activated += 1
                except ReservationError:
                    logger.exception("Could not activate booking %s", booking.id)

            for booking in await service.bookings.get_due_for_completion(today):
                try:
                    await service.complete(booking.id, allow_early=False)
                    completed += 1
                except ReservationError:
                    logger.exception("Could not complete booking %s", booking.id)

            await session.commit()
            if activated or completed:
                logger.info(
                    "Lifecycle cycle: %d activated, %d completed", activated, completed
                )
    except Exception:
        logger.exception("Error in lifecycle cycle")
    finally:
        await lock.release()

    return activated, completed
