"""
Consolidation Scheduler - periodic background workflows.

1. Consolidation (every 15 min): expire short-term, then decay and promotion
   concurrently, then log
2. Reflection (daily): per-owner pattern detection and core promotion
3. Pruning (weekly): soft-delete faded memories, sweep orphaned edges, log

Every step runs under `retry_step`; steps are idempotent so re-running a
partially applied step is harmless. A step that exhausts its retries ends
the run without a summary log.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

from tiermem.config import SchedulerConfig
from tiermem.core.memory_store.base import MemoryRepository
from tiermem.core.scheduler.base import TaskScheduler
from tiermem.models import (
    ConsolidationAction,
    ConsolidationLogEntry,
    ReflectionRun,
    RunType,
)
from tiermem.services.decay import DecayEngine
from tiermem.services.fact_graph import FactGraph
from tiermem.services.long_term import LongTermStore
from tiermem.services.reflection import ReflectionEngine
from tiermem.services.short_term import ShortTermStore
from tiermem.services.tasks import (
    CONSOLIDATION_WORKFLOW,
    PRUNING_WORKFLOW,
    REFLECTION_WORKFLOW,
)
from tiermem.utils.exceptions import StepFailedError
from tiermem.utils.id_generator import generate_log_id
from tiermem.utils.logger import get_logger
from tiermem.utils.retry import retry_step

logger = get_logger(__name__)

T = TypeVar("T")


class ConsolidationScheduler:
    def __init__(
        self,
        repository: MemoryRepository,
        short_term: ShortTermStore,
        long_term: LongTermStore,
        decay: DecayEngine,
        fact_graph: FactGraph,
        reflection: ReflectionEngine,
        task_scheduler: TaskScheduler,
        config: SchedulerConfig | None = None,
    ):
        self.repository = repository
        self.short_term = short_term
        self.long_term = long_term
        self.decay = decay
        self.fact_graph = fact_graph
        self.reflection = reflection
        self.task_scheduler = task_scheduler
        self.config = config or SchedulerConfig()

    async def _step(self, name: str, operation: Callable[[], Awaitable[T]]) -> T:
        return await retry_step(
            operation,
            name,
            max_attempts=self.config.step_max_attempts,
            initial_backoff=self.config.step_initial_backoff_seconds,
            base=self.config.step_backoff_base,
        )

    async def log_run(
        self,
        run_type: RunType,
        processed: int = 0,
        promoted: int = 0,
        pruned: int = 0,
        duration_ms: float = 0.0,
        owner_id: str | None = None,
    ) -> ConsolidationLogEntry:
        entry = ConsolidationLogEntry(
            id=generate_log_id(),
            owner_id=owner_id,
            run_type=run_type,
            memories_processed=processed,
            memories_promoted=promoted,
            memories_pruned=pruned,
            duration_ms=duration_ms,
        )
        await self.repository.insert_log(entry)
        return entry

    async def promote_to_long_term(self) -> tuple[int, int]:
        """
        Consolidate one batch of promotion candidates.

        Returns:
            (candidates processed, long-term memories created)
        """
        candidates = await self.short_term.get_promotion_candidates()
        created = 0
        for stm in candidates:
            result = await self.long_term.consolidate_from_stm(stm.id)
            if result.action == ConsolidationAction.CREATED:
                created += 1

        logger.info(f"Promotion pass: {created} created from {len(candidates)} candidates")
        return len(candidates), created

    # ═══════════════════════════════════════════════════════════
    # WORKFLOWS
    # ═══════════════════════════════════════════════════════════

    async def consolidation_workflow(self) -> ConsolidationLogEntry | None:
        started = time.perf_counter()
        try:
            expired = await self._step("cleanup_expired_stm", self.short_term.cleanup_expired)
            decayed, promotion = await asyncio.gather(
                self._step("apply_decay", self.decay.apply_decay),
                self._step("promote_to_long_term", self.promote_to_long_term),
                return_exceptions=True,
            )
            # Both steps have settled; surface the first failure.
            for outcome in (decayed, promotion):
                if isinstance(outcome, BaseException):
                    raise outcome
            candidates, promoted = promotion
        except StepFailedError as e:
            logger.error(
                "Consolidation workflow aborted",
                extra={"workflow": CONSOLIDATION_WORKFLOW, "error": e.message},
            )
            return None

        entry = await self.log_run(
            RunType.PROMOTION,
            processed=expired + candidates,
            promoted=promoted,
            pruned=expired,
            duration_ms=(time.perf_counter() - started) * 1000,
        )
        logger.info(
            f"Consolidation run: {expired} expired, {decayed} decayed, {promoted} promoted",
            extra={"workflow": CONSOLIDATION_WORKFLOW},
        )
        return entry

    async def reflection_workflow(self, owner_id: str | None = None) -> list[ReflectionRun] | None:
        """Per-owner stages retry independently; only a failed owner listing aborts."""
        try:
            return await self.reflection.run_daily(owner_id, step=self._step)
        except StepFailedError as e:
            logger.error(
                "Reflection workflow aborted",
                extra={"workflow": REFLECTION_WORKFLOW, "error": e.message},
            )
            return None

    async def pruning_workflow(self) -> ConsolidationLogEntry | None:
        started = time.perf_counter()
        try:
            processed, pruned = await self._step("prune_memories", self.decay.prune)
            edges = await self._step("cleanup_orphaned_edges", self.fact_graph.cleanup_orphaned)
        except StepFailedError as e:
            logger.error(
                "Pruning workflow aborted",
                extra={"workflow": PRUNING_WORKFLOW, "error": e.message},
            )
            return None

        entry = await self.log_run(
            RunType.PRUNING,
            processed=processed,
            pruned=pruned,
            duration_ms=(time.perf_counter() - started) * 1000,
        )
        logger.info(
            f"Pruning run: {pruned} memories pruned, {edges} edges deactivated",
            extra={"workflow": PRUNING_WORKFLOW},
        )
        return entry

    # ═══════════════════════════════════════════════════════════
    # TRIGGERS
    # ═══════════════════════════════════════════════════════════

    def register(self) -> None:
        self.task_scheduler.register(CONSOLIDATION_WORKFLOW, self.consolidation_workflow)
        self.task_scheduler.register(REFLECTION_WORKFLOW, self.reflection_workflow)
        self.task_scheduler.register(PRUNING_WORKFLOW, self.pruning_workflow)

    def start(self) -> None:
        """Register the periodic triggers and start the task scheduler."""
        self.register()
        self.task_scheduler.add_interval(
            CONSOLIDATION_WORKFLOW, self.config.consolidation_interval_minutes
        )
        self.task_scheduler.add_cron(
            REFLECTION_WORKFLOW,
            hour=self.config.reflection_hour_utc,
            minute=self.config.reflection_minute_utc,
        )
        self.task_scheduler.add_cron(
            PRUNING_WORKFLOW,
            hour=self.config.pruning_hour_utc,
            minute=self.config.pruning_minute_utc,
            day_of_week=self.config.pruning_day_of_week,
        )
        self.task_scheduler.start()

    def shutdown(self) -> None:
        self.task_scheduler.shutdown()
