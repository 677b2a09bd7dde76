"""
APScheduler-backed task scheduler.

Uses the asyncio scheduler in UTC: one-shot delays become DateTrigger jobs,
periodic workflows IntervalTrigger and CronTrigger jobs.

With a job store path, jobs live in SQLite through SQLAlchemyJobStore and
survive restarts. Stored jobs reference the module-level `execute_task`
with (task name, kwargs), and the task is looked up in the registry when
the job fires.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from uuid import uuid4

from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from tiermem.core.scheduler.base import TaskFunc, TaskScheduler
from tiermem.utils.exceptions import SchedulerError
from tiermem.utils.logger import get_logger

logger = get_logger(__name__)

# Task functions by name for the running process
_registry: dict[str, TaskFunc] = {}


async def execute_task(name: str, kwargs: dict) -> None:
    """Job entry point; failures are logged with the task name, never raised."""
    func = _registry.get(name)
    if func is None:
        logger.error(f"Scheduled task {name} is not registered", extra={"task": name})
        return
    try:
        await func(**kwargs)
    except Exception as e:
        logger.error(
            f"Scheduled task {name} failed",
            extra={"error": str(e), "task": name, "error_type": type(e).__name__},
        )


class APSchedulerTaskScheduler(TaskScheduler):
    def __init__(
        self, scheduler: AsyncIOScheduler | None = None, jobstore_path: str | None = None
    ):
        if scheduler is None:
            jobstores = {}
            if jobstore_path:
                db_path = Path(jobstore_path)
                db_path.parent.mkdir(parents=True, exist_ok=True)
                jobstores["default"] = SQLAlchemyJobStore(url=f"sqlite:///{db_path}")
            scheduler = AsyncIOScheduler(jobstores=jobstores, timezone=timezone.utc)
        self.scheduler = scheduler
        self.persistent = bool(jobstore_path)

    def register(self, name: str, func: TaskFunc) -> None:
        _registry[name] = func
        logger.debug(f"Registered task: {name}")

    def _require(self, name: str) -> None:
        if name not in _registry:
            raise SchedulerError(f"Task not registered: {name}", context={"task": name})

    async def run_after(self, delay_seconds: float, name: str, **kwargs) -> str:
        self._require(name)
        job_id = f"{name}_{uuid4().hex[:12]}"
        run_date = datetime.now(timezone.utc) + timedelta(seconds=max(0.0, delay_seconds))
        self.scheduler.add_job(
            execute_task,
            trigger=DateTrigger(run_date=run_date),
            args=[name, kwargs],
            id=job_id,
            misfire_grace_time=None,
        )
        logger.debug(f"Scheduled {name} in {delay_seconds:.1f}s: {job_id}")
        return job_id

    def add_interval(self, name: str, minutes: int) -> None:
        self._require(name)
        self.scheduler.add_job(
            execute_task,
            trigger=IntervalTrigger(minutes=minutes),
            args=[name, {}],
            id=name,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info(f"Scheduled {name} every {minutes} minutes")

    def add_cron(
        self, name: str, hour: int, minute: int = 0, day_of_week: str | None = None
    ) -> None:
        self._require(name)
        trigger = CronTrigger(
            day_of_week=day_of_week, hour=hour, minute=minute, timezone=timezone.utc
        )
        self.scheduler.add_job(
            execute_task,
            trigger=trigger,
            args=[name, {}],
            id=name,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        when = f"{day_of_week} " if day_of_week else "daily "
        logger.info(f"Scheduled {name} {when}at {hour:02d}:{minute:02d} UTC")

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info(
                "Task scheduler started",
                extra={"persistent": self.persistent, "jobs": len(self.scheduler.get_jobs())},
            )

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Task scheduler stopped")
