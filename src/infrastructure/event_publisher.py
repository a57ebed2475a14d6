"""
Redis pub/sub bridge for booking events.

Subscribed to the ``EventBus`` at startup; every booking event is sent
as JSON to ``settings.event_channel`` for notification panels and other
processes.  Delivery is fire-and-forget: nobody acknowledges, and a
publish failure is handled (logged) by the bus.
"""

from __future__ import annotations

import json

import redis.asyncio as aioredis

from src.domain.events import BookingEvent


class RedisEventPublisher:
    def __init__(self, client: aioredis.Redis, channel: str):
        self.redis = client
        self.channel = channel

    @staticmethod
    def encode(event: BookingEvent) -> str:
        payload = event.model_dump(mode="json")
        payload["event"] = event.name
        return json.dumps(payload)

    async def __call__(self, event: BookingEvent) -> None:
        await self.redis.publish(self.channel, self.encode(event))
