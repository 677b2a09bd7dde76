"""Background task scheduling."""

from tiermem.core.scheduler.apscheduler import APSchedulerTaskScheduler
from tiermem.core.scheduler.base import TaskFunc, TaskScheduler

__all__ = [
    "TaskFunc",
    "TaskScheduler",
    "APSchedulerTaskScheduler",
]
