"""
Rate limiter for outbound provider calls.

A fixed-window per-minute request counter shared by every worker through
an injected counter store. Check and record are separate calls, so the
limit is soft: concurrent workers may overshoot it by a handful of
requests inside one window.
"""

import time
from collections.abc import Callable
from typing import Protocol

from redis.asyncio import Redis

from babel_core import get_logger
from babel_core.redis_keys import RedisKeys

logger = get_logger(__name__)


class CounterStore(Protocol):
    """Shared counter storage with atomic increment-with-expiry."""

    async def get(self, key: str) -> int:
        """Current counter value, 0 when the key is missing."""
        ...

    async def incr_with_expiry(self, key: str, ttl: int) -> int:
        """Atomically increment a counter and (re)set its expiry."""
        ...


class RedisCounterStore:
    """Counter store backed by Redis (or an arq pool)."""

    def __init__(self, redis: Redis):
        self.redis = redis

    async def get(self, key: str) -> int:
        value = await self.redis.get(key)
        return int(value) if value else 0

    async def incr_with_expiry(self, key: str, ttl: int) -> int:
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, ttl)
            count, _ = await pipe.execute()
        return int(count)


class RateLimiter:
    """
    Fixed-window rate limiter.

    The window index is ``floor(now / 60)``; each window has its own
    counter key which expires on its own after RATE_LIMIT_TTL seconds.
    A limit of 0 (or below) disables limiting.
    """

    def __init__(
        self,
        store: CounterStore,
        limit_per_minute: int,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.limit = limit_per_minute
        self.clock = clock

    @property
    def enabled(self) -> bool:
        return self.limit > 0

    def _current_key(self) -> str:
        window = int(self.clock() // RedisKeys.RATE_LIMIT_WINDOW_SECONDS)
        return RedisKeys.rate_limit_window(window)

    async def can_make_request(self) -> bool:
        """Whether another request fits into the current window."""
        if not self.enabled:
            return True
        count = await self.store.get(self._current_key())
        return count < self.limit

    async def record_request(self) -> None:
        """Count one dispatched request against the current window."""
        if not self.enabled:
            return
        key = self._current_key()
        count = await self.store.incr_with_expiry(key, RedisKeys.RATE_LIMIT_TTL)
        if count >= self.limit:
            logger.bind(
                key=key, count=count, limit=self.limit
            ).info("Translation rate limit reached for current window")

    async def remaining_requests(self) -> int | None:
        """
        Requests left in the current window.

        Returns:
            None when limiting is disabled, otherwise ``max(limit - count, 0)``.
        """
        if not self.enabled:
            return None
        count = await self.store.get(self._current_key())
        return max(self.limit - count, 0)
