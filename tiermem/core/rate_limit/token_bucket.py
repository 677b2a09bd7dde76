"""
Token-bucket rate limiter.

Buckets start full. Tokens refill continuously at `rate / period_seconds`
per second up to `capacity`.
"""

import asyncio
import time

from tiermem.config import BucketConfig
from tiermem.core.rate_limit.base import RateLimiter, RateLimitResult
from tiermem.utils.exceptions import ConfigurationError


class TokenBucketRateLimiter(RateLimiter):
    def __init__(self, buckets: dict[str, BucketConfig], clock=time.monotonic):
        self.buckets = buckets
        self._clock = clock
        # (bucket, key) -> (tokens, last refill time)
        self._state: dict[tuple[str, str | None], tuple[float, float]] = {}
        self._lock = asyncio.Lock()

    async def limit(self, bucket: str, key: str | None = None, count: float = 1) -> RateLimitResult:
        config = self.buckets.get(bucket)
        if config is None:
            raise ConfigurationError(f"Unknown rate limit bucket: {bucket}")

        refill_per_second = config.rate / config.period_seconds
        async with self._lock:
            now = self._clock()
            tokens, last = self._state.get((bucket, key), (config.capacity, now))
            tokens = min(config.capacity, tokens + (now - last) * refill_per_second)

            if tokens >= count:
                self._state[(bucket, key)] = (tokens - count, now)
                return RateLimitResult(ok=True)

            self._state[(bucket, key)] = (tokens, now)
            if count > config.capacity:
                # Can never be satisfied; report a full refill period.
                return RateLimitResult(ok=False, retry_after=config.period_seconds)
            return RateLimitResult(ok=False, retry_after=(count - tokens) / refill_per_second)
