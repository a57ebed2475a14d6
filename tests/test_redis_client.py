"""Shared Redis pool: created lazily, reused, released on shutdown."""

from __future__ import annotations

import pytest

from src.infrastructure import redis_client


class TestRedisPool:
    @pytest.mark.asyncio
    async def test_clients_share_one_pool(self):
        first = await redis_client.get_redis()
        second = await redis_client.get_redis()

        assert first.connection_pool is second.connection_pool
        await redis_client.close_redis()

    @pytest.mark.asyncio
    async def test_close_releases_pool(self):
        before = await redis_client.get_redis()
        await redis_client.close_redis()
        after = await redis_client.get_redis()

        assert before.connection_pool is not after.connection_pool
        await redis_client.close_redis()

    @pytest.mark.asyncio
    async def test_close_without_pool_is_noop(self):
        await redis_client.close_redis()
        await redis_client.close_redis()
