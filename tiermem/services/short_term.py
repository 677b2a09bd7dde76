"""
Short-Term Store - working memory between ingestion and consolidation.

Pipeline for one sensory record:
1. promote_from_sensory: pending -> processing, schedule extraction
2. extract_and_embed: rate limits, extraction, embedding, topic lookup
3. create: topic resolution, insert, sensory record -> promoted

Extraction failures are retried by rescheduling with exponential backoff;
after the retry ceiling the sensory record is discarded with the reason.
"""

import asyncio
from datetime import datetime, timedelta

from tiermem.config import ShortTermConfig
from tiermem.core.embeddings.base import Embedder
from tiermem.core.extraction.base import Extractor
from tiermem.core.memory_store.base import MemoryRepository
from tiermem.core.rate_limit.base import RateLimiter
from tiermem.core.scheduler.base import TaskScheduler
from tiermem.core.similarity.base import SHORT_TERM_COLLECTION, SimilarityIndex
from tiermem.models import (
    ExtractionResult,
    SensoryStatus,
    ShortTermMemory,
    Topic,
)
from tiermem.services.fact_graph import FactGraph
from tiermem.services.sensory_filter import SensoryFilter
from tiermem.services.tasks import EXTRACT_AND_EMBED
from tiermem.utils.exceptions import NotFoundError
from tiermem.utils.id_generator import generate_short_term_id, generate_topic_id
from tiermem.utils.logger import get_logger
from tiermem.utils.retry import backoff_delay

logger = get_logger(__name__)

DEFAULT_TOPIC_LABEL = "General"


def topic_label(extraction: ExtractionResult) -> str:
    entity = extraction.most_salient_entity()
    if entity is None:
        return DEFAULT_TOPIC_LABEL
    return f"{entity.type}: {entity.name}"


class ShortTermStore:
    def __init__(
        self,
        repository: MemoryRepository,
        similarity: SimilarityIndex,
        scheduler: TaskScheduler,
        rate_limiter: RateLimiter,
        extractor: Extractor,
        embedder: Embedder,
        sensory: SensoryFilter,
        fact_graph: FactGraph,
        config: ShortTermConfig | None = None,
    ):
        self.repository = repository
        self.similarity = similarity
        self.scheduler = scheduler
        self.rate_limiter = rate_limiter
        self.extractor = extractor
        self.embedder = embedder
        self.sensory = sensory
        self.fact_graph = fact_graph
        self.config = config or ShortTermConfig()

    # ═══════════════════════════════════════════════════════════
    # PIPELINE
    # ═══════════════════════════════════════════════════════════

    async def promote_from_sensory(self, sensory_id: str) -> bool:
        """
        Move a pending sensory record to processing and schedule extraction.

        Only acts on `pending`, so a second delivery of the same trigger is a no-op.

        Returns:
            True if extraction was scheduled
        """
        record = await self.repository.get_sensory(sensory_id)
        if record is None or record.status != SensoryStatus.PENDING:
            return False

        await self.sensory.update_status(sensory_id, SensoryStatus.PROCESSING)
        await self.scheduler.run_after(0, EXTRACT_AND_EMBED, sensory_id=sensory_id, retry_count=0)
        return True

    async def _rate_limited(self, owner_id: str, sensory_id: str, retry_count: int) -> bool:
        for bucket in ("extraction", "embedding"):
            result = await self.rate_limiter.limit(bucket, key=owner_id)
            if not result.ok:
                logger.info(
                    f"Rate limited on {bucket}, rescheduling in {result.retry_after:.1f}s",
                    extra={"sensory_id": sensory_id, "owner_id": owner_id, "bucket": bucket},
                )
                await self.scheduler.run_after(
                    result.retry_after,
                    EXTRACT_AND_EMBED,
                    sensory_id=sensory_id,
                    retry_count=retry_count,
                )
                return True
        return False

    async def extract_and_embed(self, sensory_id: str, retry_count: int = 0) -> ShortTermMemory | None:
        """
        Run extraction and embedding for a processing sensory record.

        Returns:
            The created memory, or None if rescheduled, failed or not applicable
        """
        record = await self.repository.get_sensory(sensory_id)
        if record is None or record.status != SensoryStatus.PROCESSING:
            return None

        if await self._rate_limited(record.owner_id, sensory_id, retry_count):
            return None

        try:
            extraction = await self.extractor.extract(record.content)
            embedding = await self.embedder.embed(record.content)
            topic_id = await self.find_topic_candidate(record.owner_id, embedding)
            return await self.create(
                sensory_id=sensory_id,
                content=record.content,
                extraction=extraction,
                embedding=embedding,
                owner_id=record.owner_id,
                thread_id=record.thread_id,
                existing_topic_id=topic_id,
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if retry_count < self.config.max_extraction_retries:
                delay = backoff_delay(retry_count, self.config.extraction_backoff_seconds)
                logger.warning(
                    f"Extraction failed, retry {retry_count + 1}/"
                    f"{self.config.max_extraction_retries} in {delay}s",
                    extra={
                        "sensory_id": sensory_id,
                        "owner_id": record.owner_id,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                )
                await self.scheduler.run_after(
                    delay, EXTRACT_AND_EMBED, sensory_id=sensory_id, retry_count=retry_count + 1
                )
                return None

            logger.error(
                f"Extraction permanently failed after {self.config.max_extraction_retries} retries",
                extra={
                    "sensory_id": sensory_id,
                    "owner_id": record.owner_id,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            await self.sensory.mark_extraction_failed(sensory_id, str(e) or type(e).__name__)
            return None

    async def find_topic_candidate(self, owner_id: str, embedding: list[float]) -> str | None:
        """Topic of the first near-identical short-term memory, if any."""
        hits = await self.similarity.search(
            SHORT_TERM_COLLECTION, owner_id, embedding, limit=self.config.topic_search_limit
        )
        for hit in hits:
            if hit.score < self.config.topic_similarity_threshold:
                continue
            memory = await self.repository.get_short_term(hit.id)
            if memory and memory.topic_id:
                return memory.topic_id
        return None

    async def _resolve_topic(
        self,
        owner_id: str,
        embedding: list[float],
        extraction: ExtractionResult,
        existing_topic_id: str | None,
    ) -> str:
        if existing_topic_id:
            topic = await self.repository.get_topic(existing_topic_id)
            if topic is not None:
                await self.repository.update_topic(topic.with_member(embedding))
                return topic.id

        topic = Topic(
            id=generate_topic_id(),
            owner_id=owner_id,
            label=topic_label(extraction),
            centroid=list(embedding),
            member_count=1,
        )
        await self.repository.insert_topic(topic)
        return topic.id

    async def create(
        self,
        sensory_id: str,
        content: str,
        extraction: ExtractionResult,
        embedding: list[float],
        owner_id: str,
        thread_id: str | None = None,
        existing_topic_id: str | None = None,
    ) -> ShortTermMemory:
        """
        Insert a short-term memory for a sensory record.

        Idempotent per sensory record: a second call returns the memory the
        first one created.
        """
        existing = await self.repository.find_short_term_by_source(sensory_id)
        if existing:
            return existing

        topic_id = await self._resolve_topic(owner_id, embedding, extraction, existing_topic_id)

        now = datetime.now()
        memory = ShortTermMemory(
            id=generate_short_term_id(),
            content=content,
            summary=extraction.summary or None,
            embedding=embedding,
            topic_id=topic_id,
            entities=extraction.entities,
            relationships=extraction.relationships,
            importance=extraction.importance,
            access_count=1,
            last_accessed=now,
            expires_at=now + timedelta(hours=self.config.expiry_hours),
            source_id=sensory_id,
            owner_id=owner_id,
            thread_id=thread_id,
            created_at=now,
        )
        await self.repository.insert_short_term(memory)
        await self.similarity.upsert(SHORT_TERM_COLLECTION, memory.id, owner_id, embedding)
        await self.fact_graph.record_relationships(
            owner_id, extraction.entities, extraction.relationships
        )
        await self.sensory.update_status(sensory_id, SensoryStatus.PROMOTED, processed_at=now)

        logger.info(
            f"Short-term memory {memory.id} created",
            extra={"sensory_id": sensory_id, "owner_id": owner_id, "topic_id": topic_id},
        )
        return memory

    # ═══════════════════════════════════════════════════════════
    # QUERIES
    # ═══════════════════════════════════════════════════════════

    async def get(self, memory_id: str) -> ShortTermMemory | None:
        return await self.repository.get_short_term(memory_id)

    async def require(self, memory_id: str) -> ShortTermMemory:
        memory = await self.get(memory_id)
        if memory is None:
            raise NotFoundError(
                f"Short-term memory not found: {memory_id}", context={"memory_id": memory_id}
            )
        return memory

    async def by_thread(
        self, owner_id: str, thread_id: str, limit: int | None = None
    ) -> list[ShortTermMemory]:
        return await self.repository.list_short_term_by_thread(
            owner_id, thread_id, limit or self.config.thread_limit
        )

    async def list_active(self, owner_id: str) -> list[ShortTermMemory]:
        return await self.repository.list_active_short_term(
            owner_id, datetime.now(), self.config.active_limit
        )

    async def get_promotion_candidates(self) -> list[ShortTermMemory]:
        return await self.repository.list_promotion_candidates(
            self.config.promotion_min_importance, datetime.now(), self.config.promotion_batch_size
        )

    # ═══════════════════════════════════════════════════════════
    # REMOVAL
    # ═══════════════════════════════════════════════════════════

    async def delete(self, memory_id: str) -> None:
        await self.repository.delete_short_term(memory_id)
        await self.similarity.delete(SHORT_TERM_COLLECTION, memory_id)

    async def cleanup_expired(self) -> int:
        """Hard-delete one batch of expired memories. Returns the number deleted."""
        expired = await self.repository.list_expired_short_term(
            datetime.now(), self.config.expiry_batch_size
        )
        for memory in expired:
            await self.delete(memory.id)

        if expired:
            logger.info(f"Deleted {len(expired)} expired short-term memories")
        return len(expired)
