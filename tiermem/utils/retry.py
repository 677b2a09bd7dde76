"""
Bounded exponential-backoff retry for workflow steps.

Every consolidation step is wrapped by `retry_step`, so steps must be safe
to re-run: creates check for an existing record first and patches are
no-ops once applied.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from tiermem.utils.exceptions import StepFailedError
from tiermem.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def backoff_delay(attempt: int, initial_backoff: float = 1.0, base: float = 2.0) -> float:
    """
    Delay before retry number `attempt` (zero-based): 1s, 2s, 4s, ...

    Args:
        attempt: Zero-based attempt index that just failed
        initial_backoff: Delay after the first failure, in seconds
        base: Growth factor

    Returns:
        Delay in seconds
    """
    return initial_backoff * (base**attempt)


async def retry_step(
    operation: Callable[[], Awaitable[T]],
    step_name: str,
    max_attempts: int = 3,
    initial_backoff: float = 1.0,
    base: float = 2.0,
) -> T:
    """
    Run an async step, retrying with exponential backoff.

    Args:
        operation: Zero-argument coroutine factory
        step_name: Name for logging
        max_attempts: Total attempts including the first
        initial_backoff: Delay after the first failure, in seconds
        base: Backoff growth factor

    Returns:
        Result of the operation

    Raises:
        StepFailedError: If every attempt fails
    """
    last_error: Exception | None = None

    for attempt in range(max_attempts):
        try:
            return await operation()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            last_error = e
            if attempt < max_attempts - 1:
                delay = backoff_delay(attempt, initial_backoff, base)
                logger.warning(
                    f"{step_name} failed (attempt {attempt + 1}/{max_attempts}). "
                    f"Retrying in {delay}s...",
                    extra={
                        "step": step_name,
                        "attempt": attempt + 1,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                )
                await asyncio.sleep(delay)
            else:
                logger.error(
                    f"{step_name} failed after {max_attempts} attempts",
                    extra={"step": step_name, "error": str(e), "error_type": type(e).__name__},
                )

    raise StepFailedError(
        f"{step_name} failed after {max_attempts} attempts: {last_error}",
        context={"step": step_name, "max_attempts": max_attempts},
    ) from last_error


StepRunner = Callable[[str, Callable[[], Awaitable[T]]], Awaitable[T]]


async def run_once(step_name: str, operation: Callable[[], Awaitable[T]]) -> T:
    """Step runner without retries; errors propagate unchanged."""
    return await operation()
