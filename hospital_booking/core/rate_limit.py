"""
Fixed-window request counting.

A window starts on the first request from a client and lasts
``window_seconds``; every request inside it increments the client's counter.
Counters live either in process memory or in Redis, selected by the
``RATE_LIMIT_STORAGE_URL`` setting.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Tuple

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_in: int


class MemoryRateLimitStore:
    """Counters held in a dict, owned by a single application instance.

    Expired windows are swept at most once per window length, so the dict
    only holds clients seen within roughly the last two windows.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._last_sweep = clock()

    async def hit(self, key: str, window_seconds: int) -> Tuple[int, int]:
        now = self._clock()
        if now - self._last_sweep >= window_seconds:
            self._sweep(now, window_seconds)

        started, count = self._windows.get(key, (now, 0))
        if now - started >= window_seconds:
            started, count = now, 0
        count += 1
        self._windows[key] = (started, count)
        reset_in = max(0, int(round(started + window_seconds - now)))
        return count, reset_in

    def _sweep(self, now: float, window_seconds: int):
        expired = [
            key for key, (started, _) in self._windows.items()
            if now - started >= window_seconds
        ]
        for key in expired:
            del self._windows[key]
        self._last_sweep = now

    def __len__(self):
        return len(self._windows)

    def reset(self):
        self._windows.clear()


class RedisRateLimitStore:
    """Counters shared between processes through Redis INCR/EXPIRE."""

    def __init__(self, client, prefix: str = "rate_limit"):
        self.client = client
        self.prefix = prefix

    async def hit(self, key: str, window_seconds: int) -> Tuple[int, int]:
        redis_key = f"{self.prefix}:{key}"
        count = int(await self.client.incr(redis_key))
        if count == 1:
            await self.client.expire(redis_key, window_seconds)
        ttl = await self.client.ttl(redis_key)
        if ttl is None or int(ttl) < 0:
            # Key lost its expiry; start a fresh window
            await self.client.expire(redis_key, window_seconds)
            ttl = window_seconds
        return count, int(ttl)


class RateLimiter:
    def __init__(self, store, max_requests: int, window_seconds: int):
        self.store = store
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    async def hit(self, client_key: str) -> RateLimitResult:
        count, reset_in = await self.store.hit(client_key, self.window_seconds)
        return RateLimitResult(
            allowed=count <= self.max_requests,
            limit=self.max_requests,
            remaining=max(0, self.max_requests - count),
            reset_in=reset_in,
        )


def build_rate_limiter(settings) -> RateLimiter:
    """Create the limiter described by the application settings."""
    url = settings.RATE_LIMIT_STORAGE_URL
    if url.startswith("memory://"):
        store = MemoryRateLimitStore()
    elif url.startswith(("redis://", "rediss://", "unix://")):
        store = RedisRateLimitStore(aioredis.from_url(url, decode_responses=True))
    else:
        raise ValueError(f"Unsupported rate limit storage: {url}")

    logger.info(
        f"Rate limiting {settings.RATE_LIMIT_MAX} requests per "
        f"{settings.RATE_LIMIT_WINDOW_SECONDS}s using {url.split('://')[0]} storage"
    )
    return RateLimiter(
        store,
        max_requests=settings.RATE_LIMIT_MAX,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    )
