"""
Reflection Engine - detects stable patterns and promotes them to core memory.

Per active owner:
1. Gather high-importance long-term memories
2. Skip when there is too little evidence
3. Ask the pattern detector, under the global LLM token budget
4. Promote confident patterns; reinforce when the fact already exists
"""

from tiermem.config import ReflectionConfig
from tiermem.core.embeddings.base import Embedder
from tiermem.core.extraction.base import PatternDetector
from tiermem.core.memory_store.base import MemoryRepository
from tiermem.core.rate_limit.base import RateLimiter
from tiermem.models import (
    ConsolidationLogEntry,
    DetectedPattern,
    InsightType,
    LongTermMemory,
    PromotionAction,
    PromotionResult,
    Reflection,
    ReflectionAction,
    ReflectionRun,
    RunType,
)
from tiermem.services.core_memory import CoreMemoryStore
from tiermem.services.long_term import LongTermStore
from tiermem.services.owners import OwnerService
from tiermem.utils.exceptions import StepFailedError
from tiermem.utils.id_generator import generate_log_id, generate_reflection_id
from tiermem.utils.logger import get_logger
from tiermem.utils.retry import StepRunner, run_once

logger = get_logger(__name__)


def format_memory_line(memory: LongTermMemory) -> str:
    return (
        f"- {memory.summary} (importance: {memory.current_importance:.2f}, "
        f"seen {memory.reinforcement_count}x)"
    )


class ReflectionEngine:
    def __init__(
        self,
        repository: MemoryRepository,
        long_term: LongTermStore,
        core: CoreMemoryStore,
        owners: OwnerService,
        detector: PatternDetector,
        embedder: Embedder,
        rate_limiter: RateLimiter,
        config: ReflectionConfig | None = None,
    ):
        self.repository = repository
        self.long_term = long_term
        self.core = core
        self.owners = owners
        self.detector = detector
        self.embedder = embedder
        self.rate_limiter = rate_limiter
        self.config = config or ReflectionConfig()

    async def detect_patterns(self, memories: list[LongTermMemory]) -> list[DetectedPattern]:
        """Patterns across `memories`, or none when the token budget is exhausted."""
        limit = await self.rate_limiter.limit(
            "llm_tokens", count=self.config.detection_token_cost
        )
        if not limit.ok:
            logger.info("LLM token budget exhausted, skipping pattern detection")
            return []

        return await self.detector.detect_patterns([format_memory_line(m) for m in memories])

    async def promote_to_core(self, owner_id: str, pattern: DetectedPattern) -> PromotionResult:
        """
        Idempotent promotion keyed by exact content.

        Reinforcing an existing fact skips the embedding call entirely.
        """
        existing = await self.core.find_active_by_content(owner_id, pattern.content)
        if existing:
            await self.core.reinforce(existing, pattern.supporting_count)
            return PromotionResult(action=PromotionAction.REINFORCED, id=existing.id)

        embedding = await self.embedder.embed(pattern.content)
        memory = await self.core.create(owner_id, pattern, embedding)
        await self.repository.insert_reflection(
            Reflection(
                id=generate_reflection_id(),
                owner_id=owner_id,
                insight=f"Promoted pattern: {pattern.content[:50]}...",
                insight_type=InsightType.PATTERN,
                supporting_memory_count=pattern.supporting_count,
                confidence=pattern.confidence,
                action_taken=ReflectionAction.PROMOTED_TO_CORE,
            )
        )
        return PromotionResult(action=PromotionAction.CREATED, id=memory.id)

    async def apply_patterns(
        self, run: ReflectionRun, patterns: list[DetectedPattern], applied: set[str]
    ) -> ReflectionRun:
        """
        Promote the confident patterns not yet in `applied`.

        `applied` survives a retried step, so a pass interrupted halfway only
        handles the remaining patterns on the next attempt.
        """
        for pattern in patterns:
            if pattern.confidence < self.config.min_confidence or pattern.content in applied:
                continue
            result = await self.promote_to_core(run.owner_id, pattern)
            applied.add(pattern.content)
            if result.action == PromotionAction.CREATED:
                run.promoted += 1
            else:
                run.reinforced += 1
        return run

    async def reflect_owner(self, owner_id: str, step: StepRunner = run_once) -> ReflectionRun:
        """
        One owner's reflection pass.

        `step` wraps each stage (evidence, detection, promotion, audit log)
        so a retry only repeats the stage that failed.
        """
        memories = await step(
            f"gather_evidence:{owner_id}",
            lambda: self.long_term.get_high_importance(
                owner_id, self.config.min_importance, self.config.memory_batch_size
            ),
        )
        run = ReflectionRun(owner_id=owner_id, memories_considered=len(memories))
        if len(memories) < self.config.min_occurrences:
            run.skipped_reason = "insufficient_evidence"
            return run

        patterns = await step(f"detect_patterns:{owner_id}", lambda: self.detect_patterns(memories))
        run.patterns_detected = len(patterns)

        applied: set[str] = set()
        await step(
            f"promote_patterns:{owner_id}", lambda: self.apply_patterns(run, patterns, applied)
        )
        await step(
            f"log_reflection:{owner_id}",
            lambda: self.repository.insert_log(
                ConsolidationLogEntry(
                    id=generate_log_id(),
                    owner_id=owner_id,
                    run_type=RunType.REFLECTION,
                    memories_processed=len(memories),
                    memories_promoted=run.promoted + run.reinforced,
                )
            ),
        )
        logger.info(
            f"Reflection for {owner_id}: {run.patterns_detected} patterns, "
            f"{run.promoted} promoted, {run.reinforced} reinforced",
            extra={"owner_id": owner_id},
        )
        return run

    async def run_daily(
        self, owner_id: str | None = None, step: StepRunner = run_once
    ) -> list[ReflectionRun]:
        """
        Reflect one owner, or every owner active inside the recency window.

        An owner whose stage exhausts its retries is logged and skipped; the
        remaining owners still run.
        """
        if owner_id is not None:
            owner_ids = [owner_id]
        else:
            owners = await step(
                "list_active_owners",
                lambda: self.owners.list_active_owners(
                    self.config.active_owner_days, self.config.owner_batch_size
                ),
            )
            owner_ids = [owner.id for owner in owners]

        runs = []
        for oid in owner_ids:
            try:
                runs.append(await self.reflect_owner(oid, step))
            except StepFailedError as e:
                logger.error(
                    "Reflection skipped for owner",
                    extra={"owner_id": oid, "error": e.message},
                )
        return runs

    async def list_reflections(self, owner_id: str, limit: int = 50) -> list[Reflection]:
        return await self.repository.list_reflections(owner_id, limit)
