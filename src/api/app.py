"""
FastAPI application factory.

* Registers routes for vehicles, bookings and admin.
* Owns the booking ``EventBus``; the Redis publisher is attached and the
  lifecycle worker started / stopped via lifespan events.
* Applies rate-limiting middleware and maps reservation errors to HTTP.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.api.errors import register_error_handlers
from src.api.middleware import limiter
from src.api.routes import admin, bookings, vehicles
from src.config import settings
from src.domain.events import BookingEvent, EventBus, log_event
from src.infrastructure.event_publisher import RedisEventPublisher
from src.infrastructure.redis_client import close_redis, get_redis
from src.workers import lifecycle as _lifecycle

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Wire the Redis publisher and start the lifecycle worker; stop on shutdown."""
    unsubscribe = None
    if settings.event_channel:
        publisher = RedisEventPublisher(await get_redis(), settings.event_channel)
        unsubscribe = app.state.event_bus.subscribe(BookingEvent, publisher)
        logger.info("Publishing booking events to %s", settings.event_channel)
    await _lifecycle.start_lifecycle_loop(app.state.event_bus)
    yield
    await _lifecycle.stop_lifecycle_loop()
    if unsubscribe:
        unsubscribe()
    await close_redis()


def create_app() -> FastAPI:
    app = FastAPI(
        title="RidePoint Reservations API",
        description=(
            "Peer-to-peer bike, scooter and car rentals.  Reserves vehicles "
            "per calendar day with slot locks so no two bookings overlap, "
            "reports the exact conflicting window, and releases days on "
            "cancellation."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Booking events
    app.state.event_bus = EventBus()
    app.state.event_bus.subscribe(BookingEvent, log_event)

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    register_error_handlers(app)

    # Routers
    app.include_router(vehicles.router, prefix="/api/v1")
    app.include_router(bookings.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
