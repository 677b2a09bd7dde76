"""
Tests for workflow step retries.

Tests cover:
1. Backoff schedule
2. Success after transient failures
3. StepFailedError once attempts are exhausted
"""

import pytest

from tiermem.utils.exceptions import RepositoryError, StepFailedError
from tiermem.utils.retry import backoff_delay, retry_step


class TestBackoffDelay:
    def test_default_schedule(self):
        assert [backoff_delay(attempt) for attempt in range(4)] == [1.0, 2.0, 4.0, 8.0]

    def test_custom_initial_and_base(self):
        assert backoff_delay(2, initial_backoff=0.5, base=3.0) == 4.5


class TestRetryStep:
    async def test_returns_first_success(self):
        calls = []

        async def operation():
            calls.append(1)
            return "done"

        assert await retry_step(operation, "noop", initial_backoff=0) == "done"
        assert len(calls) == 1

    async def test_retries_transient_failures(self):
        calls = []

        async def operation():
            calls.append(1)
            if len(calls) < 3:
                raise RepositoryError("database is locked")
            return 42

        assert await retry_step(operation, "flaky", max_attempts=3, initial_backoff=0) == 42
        assert len(calls) == 3

    async def test_raises_after_max_attempts(self):
        calls = []

        async def operation():
            calls.append(1)
            raise ValueError("boom")

        with pytest.raises(StepFailedError) as exc_info:
            await retry_step(operation, "doomed", max_attempts=2, initial_backoff=0)

        assert len(calls) == 2
        assert exc_info.value.context == {"step": "doomed", "max_attempts": 2}
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert "doomed failed after 2 attempts" in exc_info.value.message

    async def test_sleeps_between_attempts(self, monkeypatch):
        delays = []

        async def fake_sleep(delay):
            delays.append(delay)

        monkeypatch.setattr("tiermem.utils.retry.asyncio.sleep", fake_sleep)

        async def operation():
            raise RepositoryError("unavailable")

        with pytest.raises(StepFailedError):
            await retry_step(operation, "slow", max_attempts=3)

        assert delays == [1.0, 2.0]
