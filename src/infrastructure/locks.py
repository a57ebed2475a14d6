"""
Redis-based distributed lock.

Used by the booking lifecycle worker so that only one API process runs
the activate / complete sweep at a time.  Slot locks themselves live in
the database (see ``SlotLockModel``); this lock only serialises workers.

Acquire is ``SET NX EX``; release is an atomic check-and-delete in Lua
so an expired holder never deletes a lock taken over by someone else.
"""

from __future__ import annotations

import uuid

import redis.asyncio as aioredis

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class DistributedLock:
    def __init__(
        self, client: aioredis.Redis, key: str, ttl_seconds: int = 30
    ):
        self.redis = client
        self.key = f"lock:{key}"
        self.ttl = ttl_seconds
        self.token = str(uuid.uuid4())

    async def acquire(self) -> bool:
        """Try to acquire. Returns True on success."""
        return bool(
            await self.redis.set(self.key, self.token, nx=True, ex=self.ttl)
        )

    async def release(self) -> bool:
        """Release only if we still own the lock.  Returns True if deleted."""
        return bool(await self.redis.eval(_RELEASE_SCRIPT, 1, self.key, self.token))

    async def __aenter__(self):
        if not await self.acquire():
            raise RuntimeError(f"Could not acquire lock: {self.key}")
        return self

    async def __aexit__(self, *args):
        await self.release()
