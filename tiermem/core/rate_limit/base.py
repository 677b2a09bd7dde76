"""
Base interface for rate limiting external calls.
"""

from abc import ABC, abstractmethod

from pydantic import BaseModel


class RateLimitResult(BaseModel):
    """`retry_after` is in seconds and is 0 when the call is allowed."""

    ok: bool
    retry_after: float = 0.0


class RateLimiter(ABC):
    @abstractmethod
    async def limit(self, bucket: str, key: str | None = None, count: float = 1) -> RateLimitResult:
        """
        Consume `count` tokens from a bucket.

        Args:
            bucket: Configured bucket name ("extraction", "embedding", "llm_tokens")
            key: Per-owner key, or None for the global bucket

        Raises:
            ConfigurationError: If the bucket is unknown
        """
        pass
