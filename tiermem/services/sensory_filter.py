"""
Sensory Filter - attention gating for raw input.

Every ingested message is stored, scored with cheap heuristics (no language
model) and either queued for short-term processing or kept as a discarded
audit record.
"""

import re
from datetime import datetime, timedelta

from tiermem.config import SensoryConfig
from tiermem.core.memory_store.base import MemoryRepository
from tiermem.core.scheduler.base import TaskScheduler
from tiermem.models import (
    IngestionResult,
    IngestionStatus,
    InputType,
    SensoryRecord,
    SensoryStatus,
    compute_content_hash,
)
from tiermem.services.owners import OwnerService
from tiermem.services.tasks import EXTRACT_AND_EMBED, PROMOTE_FROM_SENSORY
from tiermem.utils.exceptions import NotFoundError, ValidationError
from tiermem.utils.id_generator import generate_sensory_id
from tiermem.utils.logger import get_logger

logger = get_logger(__name__)

PERSONAL_PATTERN = re.compile(
    r"\b(i am|i'm|my name|i work|i live|i prefer|i like|i hate|i need|i want)\b", re.IGNORECASE
)
# Capitalized word runs that follow a lowercase word, so sentence-initial words don't count
ENTITY_PATTERN = re.compile(r"(?<=[a-z]\s)[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*")
TEMPORAL_PATTERN = re.compile(
    r"\b(yesterday|today|tomorrow|last week|next month|always|never|usually)\b", re.IGNORECASE
)
ACKNOWLEDGEMENT_PATTERN = re.compile(
    r"^(ok|thanks|yes|no|sure|got it|okay|k|yep|nope)$", re.IGNORECASE
)


def calculate_attention_score(content: str, config: SensoryConfig | None = None) -> float:
    """
    Heuristic 0-1 relevance estimate.

    Starts at the base score and adjusts for first-person disclosure, named
    entities, temporal references, length, and bare acknowledgements.
    """
    config = config or SensoryConfig()
    score = config.base_score

    if PERSONAL_PATTERN.search(content):
        score += config.personal_weight

    spans = len(ENTITY_PATTERN.findall(content))
    score += min(config.entity_weight_cap, spans * config.entity_weight_per_span)

    if TEMPORAL_PATTERN.search(content):
        score += config.temporal_weight

    if len(content) >= config.length_bonus_min_chars:
        score += config.length_bonus
    if len(content) < config.short_penalty_max_chars:
        score -= config.short_penalty

    if ACKNOWLEDGEMENT_PATTERN.match(content.strip()):
        score -= config.acknowledgement_penalty

    return max(0.0, min(1.0, score))


class SensoryFilter:
    """
    Scores and gates raw input before it enters memory.

    Ingestion never fails because of downstream processing: the record is
    stored synchronously and promotion happens in the background.
    """

    def __init__(
        self,
        repository: MemoryRepository,
        scheduler: TaskScheduler,
        owners: OwnerService,
        config: SensoryConfig | None = None,
    ):
        self.repository = repository
        self.scheduler = scheduler
        self.owners = owners
        self.config = config or SensoryConfig()

    def score(self, content: str) -> float:
        return calculate_attention_score(content, self.config)

    async def ingest(
        self,
        content: str,
        owner_id: str,
        thread_id: str | None = None,
        input_type: InputType = InputType.MESSAGE,
    ) -> IngestionResult:
        """
        Store raw input and queue it for promotion when it passes the gate.

        Identical content from the same owner inside the duplicate window
        returns the earlier record with status `duplicate`.

        Raises:
            ValidationError: If content is empty
            NotFoundError: If the owner does not exist
        """
        if not content or not content.strip():
            raise ValidationError("Content cannot be empty")

        await self.owners.get_owner(owner_id)
        await self.owners.touch_owner(owner_id)

        now = datetime.now()
        content_hash = compute_content_hash(content)
        since = now - timedelta(seconds=self.config.duplicate_window_seconds)
        duplicate = await self.repository.find_sensory_by_hash(owner_id, content_hash, since)
        if duplicate:
            logger.debug(f"Duplicate input for {owner_id}: {duplicate.id}")
            return IngestionResult(status=IngestionStatus.DUPLICATE, id=duplicate.id)

        score = self.score(content)
        passed = score >= self.config.attention_threshold
        record = SensoryRecord(
            id=generate_sensory_id(),
            content=content,
            content_hash=content_hash,
            input_type=input_type,
            attention_score=score,
            status=SensoryStatus.PENDING if passed else SensoryStatus.DISCARDED,
            discard_reason=None if passed else f"Low attention score: {score:.2f}",
            owner_id=owner_id,
            thread_id=thread_id,
            created_at=now,
        )
        await self.repository.insert_sensory(record)

        if passed:
            await self.scheduler.run_after(0, PROMOTE_FROM_SENSORY, sensory_id=record.id)
        else:
            logger.info(
                f"Discarded sensory input {record.id} (score {score:.2f})",
                extra={"sensory_id": record.id, "owner_id": owner_id},
            )

        return IngestionResult(status=IngestionStatus.CREATED, id=record.id, score=score)

    async def resume_unfinished(self) -> int:
        """
        Re-queue records whose pipeline job may have been lost, e.g. by a restart.

        Pending records go back to promotion and processing records to
        extraction with a fresh retry count. Both tasks are idempotent, so a
        record whose job also survived is processed once.

        Returns:
            Number of records re-queued
        """
        records = await self.repository.list_sensory_by_status(
            [SensoryStatus.PENDING, SensoryStatus.PROCESSING], self.config.resume_limit
        )
        for record in records:
            if record.status == SensoryStatus.PENDING:
                await self.scheduler.run_after(0, PROMOTE_FROM_SENSORY, sensory_id=record.id)
            else:
                await self.scheduler.run_after(
                    0, EXTRACT_AND_EMBED, sensory_id=record.id, retry_count=0
                )

        if records:
            logger.info(f"Re-queued {len(records)} unfinished sensory records")
        return len(records)

    async def get(self, sensory_id: str) -> SensoryRecord:
        record = await self.repository.get_sensory(sensory_id)
        if record is None:
            raise NotFoundError(
                f"Sensory record not found: {sensory_id}", context={"sensory_id": sensory_id}
            )
        return record

    async def list_recent(self, owner_id: str) -> list[SensoryRecord]:
        return await self.repository.list_recent_sensory(owner_id, self.config.recent_limit)

    async def update_status(
        self, sensory_id: str, status: SensoryStatus, processed_at: datetime | None = None
    ) -> SensoryRecord:
        record = await self.get(sensory_id)
        updated = record.model_copy(
            update={"status": status, "processed_at": processed_at or record.processed_at}
        )
        await self.repository.update_sensory(updated)
        return updated

    async def mark_extraction_failed(self, sensory_id: str, reason: str) -> SensoryRecord:
        """Terminal state: discarded with the failure recorded, never retried."""
        record = await self.get(sensory_id)
        updated = record.model_copy(
            update={
                "status": SensoryStatus.DISCARDED,
                "discard_reason": f"Extraction failed: {reason}",
                "processed_at": datetime.now(),
            }
        )
        await self.repository.update_sensory(updated)
        return updated
