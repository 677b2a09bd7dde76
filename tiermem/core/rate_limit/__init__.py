"""Rate limiting for extraction, embedding and LLM token budgets."""

from tiermem.core.rate_limit.base import RateLimiter, RateLimitResult
from tiermem.core.rate_limit.token_bucket import TokenBucketRateLimiter

__all__ = [
    "RateLimiter",
    "RateLimitResult",
    "TokenBucketRateLimiter",
]
