"""
Booking events and the in-process event bus.

Events are named in the past tense and treated as immutable facts.
Publishing is fire-and-forget: a failing subscriber is logged and never
affects the caller or the other subscribers.
"""

from __future__ import annotations

import inspect
import logging
from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Any, Awaitable, Callable, Union

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookingEvent(BaseModel):
    booking_id: str
    timestamp: datetime = Field(default_factory=_utcnow)

    model_config = {"frozen": True}

    @property
    def name(self) -> str:
        return EVENT_NAMES[type(self)]


class BookingCreated(BookingEvent):
    vehicle_id: str
    renter_id: str
    owner_id: str
    start_date: date
    end_date: date
    duration: str
    total_amount: int


class BookingCancelled(BookingEvent):
    vehicle_id: str


class BookingCompleted(BookingEvent):
    vehicle_id: str


EVENT_NAMES: dict[type, str] = {
    BookingCreated: "booking_created",
    BookingCancelled: "booking_cancelled",
    BookingCompleted: "booking_completed",
}

Handler = Callable[[BookingEvent], Union[None, Awaitable[None]]]


class EventBus:
    """Observer registry; handlers may be plain functions or coroutines."""

    def __init__(self) -> None:
        self._handlers: dict[type, list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: type, handler: Handler) -> Callable[[], None]:
        """Register *handler*; subscribe to ``BookingEvent`` to receive all."""
        self._handlers[event_type].append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers[event_type]:
                self._handlers[event_type].remove(handler)

        return unsubscribe

    async def publish(self, event: BookingEvent) -> None:
        for event_type, handlers in list(self._handlers.items()):
            if not isinstance(event, event_type):
                continue
            for handler in list(handlers):
                try:
                    result: Any = handler(event)
                    if inspect.isawaitable(result):
                        await result
                except Exception:
                    logger.exception(
                        "Subscriber %r failed on %s for booking %s",
                        handler,
                        event.name,
                        event.booking_id,
                    )


def log_event(event: BookingEvent) -> None:
    """Default subscriber: record every booking event in the service log."""
    logger.info("%s booking=%s", event.name, event.booking_id)
