"""
Long-Term Store - consolidated memory with deduplication and reinforcement.

Every write that changes a memory's importance, type or active flag goes
through `commit_update(old, new)`, which pairs the record write with the
aggregate index replace. Nothing else in the package writes long-term
records directly.
"""

from datetime import datetime

from tiermem.config import LongTermConfig
from tiermem.core.aggregate.base import AggregateIndex
from tiermem.core.memory_store.base import MemoryRepository
from tiermem.core.similarity.base import LONG_TERM_COLLECTION, SimilarityIndex
from tiermem.models import (
    ConsolidationAction,
    ConsolidationResult,
    LongTermMemory,
    LongTermSearchHit,
    LongTermType,
    MemoryStatistics,
)
from tiermem.services.short_term import ShortTermStore
from tiermem.utils.exceptions import NotFoundError, ValidationError
from tiermem.utils.id_generator import generate_long_term_id
from tiermem.utils.logger import get_logger

logger = get_logger(__name__)


class LongTermStore:
    def __init__(
        self,
        repository: MemoryRepository,
        similarity: SimilarityIndex,
        aggregate: AggregateIndex,
        short_term: ShortTermStore,
        config: LongTermConfig | None = None,
    ):
        self.repository = repository
        self.similarity = similarity
        self.aggregate = aggregate
        self.short_term = short_term
        self.config = config or LongTermConfig()

    async def commit_update(self, old: LongTermMemory, new: LongTermMemory) -> LongTermMemory:
        """Persist `new` and move its aggregate entry from `old` in one step."""
        await self.repository.update_long_term(new)
        self.aggregate.replace(old, new)
        return new

    async def rebuild_aggregate(self) -> int:
        """Reload the aggregate index from a full scan. Returns active count."""
        memories = await self.repository.list_all_long_term()
        self.aggregate.rebuild(memories)
        active = sum(1 for m in memories if m.is_active)
        logger.info(f"Aggregate index rebuilt with {active} active long-term memories")
        return active

    # ═══════════════════════════════════════════════════════════
    # WRITES
    # ═══════════════════════════════════════════════════════════

    async def create(
        self,
        owner_id: str,
        content: str,
        summary: str,
        embedding: list[float],
        base_importance: float,
        consolidated_from: list[str],
        memory_type: LongTermType = LongTermType.SEMANTIC,
        entity_name: str | None = None,
        entity_type: str | None = None,
    ) -> LongTermMemory:
        """
        Raises:
            ValidationError: If the embedding is empty
        """
        if not embedding:
            raise ValidationError("Long-term memory requires an embedding")

        now = datetime.now()
        memory = LongTermMemory(
            id=generate_long_term_id(),
            content=content,
            summary=summary,
            embedding=embedding,
            memory_type=memory_type,
            entity_name=entity_name,
            entity_type=entity_type,
            base_importance=base_importance,
            current_importance=max(self.config.importance_floor, base_importance),
            stability=self.config.initial_stability,
            access_count=0,
            last_accessed=now,
            reinforcement_count=1,
            consolidated_from=consolidated_from,
            owner_id=owner_id,
            created_at=now,
            updated_at=now,
        )
        await self.repository.insert_long_term(memory)
        await self.similarity.upsert(LONG_TERM_COLLECTION, memory.id, owner_id, embedding)
        self.aggregate.insert(memory)
        return memory

    async def reinforce(
        self, memory_id: str, merged_stm_id: str | None = None
    ) -> LongTermMemory | None:
        """
        Strengthen an existing memory: +1 reinforcement, bounded importance
        and stability increments. `last_accessed` is left alone.

        `merged_stm_id` joins the lineage in the same write, so a retried
        consolidation of that short-term memory short-circuits.
        """
        old = await self.repository.get_long_term(memory_id)
        if old is None:
            return None

        lineage = list(old.consolidated_from)
        if merged_stm_id is not None and merged_stm_id not in lineage:
            lineage.append(merged_stm_id)

        new = old.model_copy(
            update={
                "consolidated_from": lineage,
                "reinforcement_count": old.reinforcement_count + 1,
                "current_importance": min(
                    1.0, old.current_importance + self.config.importance_increment
                ),
                "stability": min(
                    self.config.max_stability, old.stability + self.config.stability_increment
                ),
                "updated_at": datetime.now(),
            }
        )
        return await self.commit_update(old, new)

    async def delete_memory(self, memory_id: str) -> LongTermMemory | None:
        """Soft delete. The record stays for lineage queries."""
        old = await self.repository.get_long_term(memory_id)
        if old is None or not old.is_active:
            return old

        new = old.model_copy(update={"is_active": False, "updated_at": datetime.now()})
        return await self.commit_update(old, new)

    async def record_access(self, memory_ids: list[str]) -> int:
        """Access-count and recency bookkeeping for retrieved memories."""
        now = datetime.now()
        updated = 0
        for memory_id in memory_ids:
            old = await self.repository.get_long_term(memory_id)
            if old is None or not old.is_active:
                continue
            new = old.model_copy(
                update={"access_count": old.access_count + 1, "last_accessed": now}
            )
            await self.commit_update(old, new)
            updated += 1
        return updated

    # ═══════════════════════════════════════════════════════════
    # CONSOLIDATION
    # ═══════════════════════════════════════════════════════════

    async def consolidate_from_stm(self, stm_id: str) -> ConsolidationResult:
        """
        Promote one short-term memory.

        Reinforces the most similar active memory at or above the dedup
        threshold, otherwise creates a new semantic memory. The promoted
        short-term memory is then deleted. A short-term id that already
        appears in some lineage short-circuits to `already_consolidated`.
        """
        lineage = await self.repository.find_long_term_by_lineage(stm_id)
        if lineage:
            await self.short_term.delete(stm_id)
            return ConsolidationResult(
                action=ConsolidationAction.ALREADY_CONSOLIDATED, memory_id=lineage[0].id
            )

        stm = await self.short_term.get(stm_id)
        if stm is None:
            return ConsolidationResult(action=ConsolidationAction.SKIPPED)

        hits = await self.search_similar(stm.owner_id, stm.embedding, self.config.dedup_search_limit)
        for hit in hits:
            if hit.score >= self.config.dedup_similarity_threshold:
                await self.reinforce(hit.memory.id, merged_stm_id=stm_id)
                await self.short_term.delete(stm_id)
                logger.debug(f"Reinforced {hit.memory.id} from {stm_id} (score {hit.score:.3f})")
                return ConsolidationResult(
                    action=ConsolidationAction.REINFORCED,
                    memory_id=hit.memory.id,
                    similarity=hit.score,
                )

        entity = stm.entities[0] if stm.entities else None
        memory = await self.create(
            owner_id=stm.owner_id,
            content=stm.content,
            summary=stm.summary or stm.content[: self.config.summary_fallback_chars],
            embedding=stm.embedding,
            base_importance=stm.importance,
            consolidated_from=[stm_id],
            entity_name=entity.name if entity else None,
            entity_type=entity.type if entity else None,
        )
        await self.short_term.delete(stm_id)
        return ConsolidationResult(action=ConsolidationAction.CREATED, memory_id=memory.id)

    # ═══════════════════════════════════════════════════════════
    # QUERIES
    # ═══════════════════════════════════════════════════════════

    async def search_similar(
        self, owner_id: str, embedding: list[float], limit: int
    ) -> list[LongTermSearchHit]:
        """
        Active memories of this owner ranked by similarity.

        The index returns soft-deleted records too; they are dropped here.
        """
        hits = await self.similarity.search(LONG_TERM_COLLECTION, owner_id, embedding, limit=limit)
        results = []
        for hit in hits:
            memory = await self.repository.get_long_term(hit.id)
            if memory is None or not memory.is_active or memory.owner_id != owner_id:
                continue
            results.append(LongTermSearchHit(memory=memory, score=hit.score))
        results.sort(key=lambda r: r.score, reverse=True)
        return results

    async def get(self, memory_id: str) -> LongTermMemory:
        memory = await self.repository.get_long_term(memory_id)
        if memory is None:
            raise NotFoundError(
                f"Long-term memory not found: {memory_id}", context={"memory_id": memory_id}
            )
        return memory

    async def list_active(self, owner_id: str, limit: int | None = None) -> list[LongTermMemory]:
        return await self.repository.list_active_long_term(
            owner_id, limit or self.config.active_limit
        )

    async def get_high_importance(
        self, owner_id: str, min_importance: float, limit: int
    ) -> list[LongTermMemory]:
        return await self.repository.list_high_importance(owner_id, min_importance, limit)

    async def get_by_lineage(self, stm_id: str) -> list[LongTermMemory]:
        return await self.repository.find_long_term_by_lineage(stm_id)

    async def statistics(self, owner_id: str) -> MemoryStatistics:
        """Type and importance-band counts from the aggregate index, plus active core."""
        low = self.config.low_importance_threshold
        high = self.config.high_importance_threshold
        return MemoryStatistics(
            total=self.aggregate.count(owner_id),
            semantic=self.aggregate.count(owner_id, LongTermType.SEMANTIC),
            episodic=self.aggregate.count(owner_id, LongTermType.EPISODIC),
            core=await self.repository.count_active_core(owner_id),
            high_importance=self.aggregate.count(owner_id, min_importance=high),
            medium_importance=self.aggregate.count(
                owner_id, min_importance=low, max_importance=high
            ),
            low_importance=self.aggregate.count(owner_id, max_importance=low),
        )
