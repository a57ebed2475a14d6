"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  SQLite supports partial unique indexes, so
the production models (and the slot-lock guard) are used unchanged.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from src.domain.enums import VehicleType
from src.domain.events import BookingEvent, EventBus
from src.infrastructure.database import Base
from src.infrastructure.models import VehicleModel
from src.infrastructure.repositories import VehicleRepository
from src.services.reservations import ReservationService


# ── Test DB (SQLite in-memory) ────────────────────────────────────────

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database with all tables, one per test."""
    test_engine = create_async_engine(TEST_DB_URL, echo=False, poolclass=StaticPool)

    # pysqlite's implicit transactions break SAVEPOINT; emit BEGIN ourselves
    @event.listens_for(test_engine.sync_engine, "connect")
    def _no_implicit_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(test_engine.sync_engine, "begin")
    def _explicit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ── Domain fixtures ───────────────────────────────────────────────────


@pytest.fixture
def recorded_events() -> list[BookingEvent]:
    return []


@pytest.fixture
def event_bus(recorded_events) -> EventBus:
    bus = EventBus()
    bus.subscribe(BookingEvent, recorded_events.append)
    return bus


@pytest.fixture
def service(db_session, event_bus) -> ReservationService:
    return ReservationService(db_session, event_bus)


@pytest_asyncio.fixture
async def vehicle(db_session) -> VehicleModel:
    """A bike priced at 150 per day."""
    return await VehicleRepository(db_session).create(
        name="Royal Enfield Classic 350",
        type=VehicleType.BIKE,
        price_per_day=150,
        location="Koramangala",
        owner_id="owner-1",
        owner_name="Ravi",
    )
