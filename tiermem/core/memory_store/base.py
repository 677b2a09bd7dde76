"""
Base interface for the durable record repository.

One repository holds every tier's records. Similarity search lives in the
SimilarityIndex and counting in the AggregateIndex; this interface only
covers keyed reads, ordered listings and writes.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from tiermem.models import (
    ConsolidationLogEntry,
    CoreCategory,
    CoreMemory,
    LongTermMemory,
    MemoryEdge,
    Owner,
    Reflection,
    SensoryRecord,
    SensoryStatus,
    ShortTermMemory,
    Topic,
)


class MemoryRepository(ABC):
    """Abstract base class for record storage implementations."""

    @abstractmethod
    async def initialize(self) -> None:
        """
        Create tables and indices.

        Raises:
            RepositoryError: If initialization fails
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        pass

    # ═══════════════════════════════════════════════════════════
    # OWNERS
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def insert_owner(self, owner: Owner) -> None:
        pass

    @abstractmethod
    async def get_owner(self, owner_id: str) -> Owner | None:
        pass

    @abstractmethod
    async def get_owner_by_external_id(self, external_id: str) -> Owner | None:
        pass

    @abstractmethod
    async def touch_owner(self, owner_id: str, at: datetime) -> None:
        pass

    @abstractmethod
    async def list_active_owners(self, since: datetime, limit: int) -> list[Owner]:
        """Owners active at or after `since`, most recent first."""
        pass

    # ═══════════════════════════════════════════════════════════
    # SENSORY
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def insert_sensory(self, record: SensoryRecord) -> None:
        pass

    @abstractmethod
    async def get_sensory(self, sensory_id: str) -> SensoryRecord | None:
        pass

    @abstractmethod
    async def update_sensory(self, record: SensoryRecord) -> None:
        """Persist status, discard reason and processed time."""
        pass

    @abstractmethod
    async def find_sensory_by_hash(
        self, owner_id: str, content_hash: str, since: datetime
    ) -> SensoryRecord | None:
        """Most recent record with this hash created after `since`."""
        pass

    @abstractmethod
    async def list_recent_sensory(self, owner_id: str, limit: int) -> list[SensoryRecord]:
        pass

    @abstractmethod
    async def list_sensory_by_status(
        self, statuses: list[SensoryStatus], limit: int
    ) -> list[SensoryRecord]:
        """Records in any of `statuses` across owners, oldest first."""
        pass

    # ═══════════════════════════════════════════════════════════
    # TOPICS
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def insert_topic(self, topic: Topic) -> None:
        pass

    @abstractmethod
    async def get_topic(self, topic_id: str) -> Topic | None:
        pass

    @abstractmethod
    async def update_topic(self, topic: Topic) -> None:
        pass

    # ═══════════════════════════════════════════════════════════
    # SHORT-TERM
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def insert_short_term(self, memory: ShortTermMemory) -> None:
        pass

    @abstractmethod
    async def get_short_term(self, memory_id: str) -> ShortTermMemory | None:
        pass

    @abstractmethod
    async def find_short_term_by_source(self, sensory_id: str) -> ShortTermMemory | None:
        pass

    @abstractmethod
    async def delete_short_term(self, memory_id: str) -> None:
        pass

    @abstractmethod
    async def list_short_term_by_thread(
        self, owner_id: str, thread_id: str, limit: int
    ) -> list[ShortTermMemory]:
        """Newest first, scoped to the owner since thread ids are caller-chosen."""
        pass

    @abstractmethod
    async def list_active_short_term(
        self, owner_id: str, now: datetime, limit: int
    ) -> list[ShortTermMemory]:
        """Unexpired memories, highest importance first."""
        pass

    @abstractmethod
    async def list_promotion_candidates(
        self, min_importance: float, now: datetime, limit: int
    ) -> list[ShortTermMemory]:
        """Unexpired memories at or above `min_importance`, highest first."""
        pass

    @abstractmethod
    async def list_expired_short_term(self, now: datetime, limit: int) -> list[ShortTermMemory]:
        pass

    # ═══════════════════════════════════════════════════════════
    # LONG-TERM
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def insert_long_term(self, memory: LongTermMemory) -> None:
        pass

    @abstractmethod
    async def get_long_term(self, memory_id: str) -> LongTermMemory | None:
        pass

    @abstractmethod
    async def update_long_term(self, memory: LongTermMemory) -> None:
        pass

    @abstractmethod
    async def list_active_long_term(self, owner_id: str, limit: int) -> list[LongTermMemory]:
        """Newest first."""
        pass

    @abstractmethod
    async def list_high_importance(
        self, owner_id: str, min_importance: float, limit: int
    ) -> list[LongTermMemory]:
        """Active memories at or above `min_importance`, highest first."""
        pass

    @abstractmethod
    async def find_long_term_by_lineage(self, short_term_id: str) -> list[LongTermMemory]:
        """Memories, active or not, consolidated from a short-term id."""
        pass

    @abstractmethod
    async def list_active_long_term_after(
        self, after_id: str | None, limit: int
    ) -> list[LongTermMemory]:
        """Active memories across owners with id > `after_id`, ordered by id."""
        pass

    @abstractmethod
    async def list_prunable_long_term(self, threshold: float, limit: int) -> list[LongTermMemory]:
        """Active memories with current importance below `threshold`."""
        pass

    @abstractmethod
    async def has_active_long_term_for_entity(self, owner_id: str, entity_name: str) -> bool:
        pass

    @abstractmethod
    async def list_all_long_term(self) -> list[LongTermMemory]:
        """Full scan, used to rebuild the aggregate index at startup."""
        pass

    # ═══════════════════════════════════════════════════════════
    # EDGES
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def insert_edge(self, edge: MemoryEdge) -> None:
        pass

    @abstractmethod
    async def update_edge(self, edge: MemoryEdge) -> None:
        pass

    @abstractmethod
    async def find_edge(
        self, owner_id: str, source_name: str, target_name: str, relation_type: str
    ) -> MemoryEdge | None:
        pass

    @abstractmethod
    async def list_edges_from(self, owner_id: str, entity_name: str) -> list[MemoryEdge]:
        """Active edges whose source is `entity_name`."""
        pass

    @abstractmethod
    async def list_edges_to(self, owner_id: str, entity_name: str) -> list[MemoryEdge]:
        """Active edges whose target is `entity_name`."""
        pass

    @abstractmethod
    async def list_active_edges_after(self, after_id: str | None, limit: int) -> list[MemoryEdge]:
        pass

    # ═══════════════════════════════════════════════════════════
    # CORE
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def insert_core(self, memory: CoreMemory) -> None:
        pass

    @abstractmethod
    async def get_core(self, memory_id: str) -> CoreMemory | None:
        pass

    @abstractmethod
    async def update_core(self, memory: CoreMemory) -> None:
        pass

    @abstractmethod
    async def list_active_core(
        self, owner_id: str, limit: int, category: CoreCategory | None = None
    ) -> list[CoreMemory]:
        """Highest confidence first."""
        pass

    @abstractmethod
    async def find_active_core_by_content(self, owner_id: str, content: str) -> CoreMemory | None:
        pass

    @abstractmethod
    async def count_active_core(self, owner_id: str) -> int:
        pass

    # ═══════════════════════════════════════════════════════════
    # AUDIT
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def insert_log(self, entry: ConsolidationLogEntry) -> None:
        pass

    @abstractmethod
    async def list_logs(self, limit: int, owner_id: str | None = None) -> list[ConsolidationLogEntry]:
        pass

    @abstractmethod
    async def insert_reflection(self, reflection: Reflection) -> None:
        pass

    @abstractmethod
    async def list_reflections(self, owner_id: str, limit: int) -> list[Reflection]:
        pass
