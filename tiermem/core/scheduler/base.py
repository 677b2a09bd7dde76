"""
Base interface for scheduling background tasks.

Tasks are registered by name and scheduled with keyword arguments, so a
persistent backend only has to store (name, kwargs). Delivery is
at-least-once: task functions must be safe to re-run.
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

TaskFunc = Callable[..., Awaitable[object]]


class TaskScheduler(ABC):
    @abstractmethod
    def register(self, name: str, func: TaskFunc) -> None:
        """Register the coroutine function run for task `name`."""
        pass

    @abstractmethod
    async def run_after(self, delay_seconds: float, name: str, **kwargs) -> str:
        """
        Schedule a registered task once after a delay.

        Returns:
            Job id

        Raises:
            SchedulerError: If the task is not registered
        """
        pass

    @abstractmethod
    def add_interval(self, name: str, minutes: int) -> None:
        """Run a registered task every `minutes`."""
        pass

    @abstractmethod
    def add_cron(
        self, name: str, hour: int, minute: int = 0, day_of_week: str | None = None
    ) -> None:
        """Run a registered task at a fixed UTC time, daily or on `day_of_week`."""
        pass

    def start(self) -> None:
        return None

    def shutdown(self) -> None:
        return None
