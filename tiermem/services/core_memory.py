"""
Core Memory Store - stable identity facts promoted by reflection.

Core memories are only soft-deleted, and only on the owner's request.
"""

from datetime import datetime

from tiermem.core.memory_store.base import MemoryRepository
from tiermem.models import CoreCategory, CoreMemory, DetectedPattern
from tiermem.utils.exceptions import NotFoundError, ValidationError
from tiermem.utils.id_generator import generate_core_id
from tiermem.utils.logger import get_logger

logger = get_logger(__name__)


class CoreMemoryStore:
    def __init__(
        self,
        repository: MemoryRepository,
        confidence_increment: float = 0.05,
        list_limit: int = 10,
    ):
        self.repository = repository
        self.confidence_increment = confidence_increment
        self.list_limit = list_limit

    async def list_active(self, owner_id: str, limit: int | None = None) -> list[CoreMemory]:
        return await self.repository.list_active_core(owner_id, limit or self.list_limit)

    async def by_category(
        self, owner_id: str, category: CoreCategory, limit: int | None = None
    ) -> list[CoreMemory]:
        return await self.repository.list_active_core(
            owner_id, limit or self.list_limit, category=category
        )

    async def find_active_by_content(self, owner_id: str, content: str) -> CoreMemory | None:
        return await self.repository.find_active_core_by_content(owner_id, content)

    async def create(
        self, owner_id: str, pattern: DetectedPattern, embedding: list[float]
    ) -> CoreMemory:
        if not embedding:
            raise ValidationError("Core memory requires an embedding")

        now = datetime.now()
        memory = CoreMemory(
            id=generate_core_id(),
            content=pattern.content,
            embedding=embedding,
            category=pattern.category,
            confidence=pattern.confidence,
            evidence_count=pattern.supporting_count,
            owner_id=owner_id,
            created_at=now,
            updated_at=now,
        )
        await self.repository.insert_core(memory)
        logger.info(
            f"Core memory {memory.id} created ({memory.category.value})",
            extra={"owner_id": owner_id},
        )
        return memory

    async def reinforce(self, memory: CoreMemory, supporting_count: int) -> CoreMemory:
        updated = memory.model_copy(
            update={
                "confidence": min(1.0, memory.confidence + self.confidence_increment),
                "evidence_count": memory.evidence_count + supporting_count,
                "updated_at": datetime.now(),
            }
        )
        await self.repository.update_core(updated)
        return updated

    async def remove(self, memory_id: str, owner_id: str) -> CoreMemory:
        """
        User-initiated soft delete.

        Raises:
            NotFoundError: If the memory does not exist, is already removed,
                or belongs to another owner. Nothing is modified.
        """
        memory = await self.repository.get_core(memory_id)
        if memory is None or memory.owner_id != owner_id or not memory.is_active:
            raise NotFoundError(
                f"Core memory not found: {memory_id}",
                context={"memory_id": memory_id, "owner_id": owner_id},
            )

        updated = memory.model_copy(update={"is_active": False, "updated_at": datetime.now()})
        await self.repository.update_core(updated)
        logger.info(f"Core memory {memory_id} removed", extra={"owner_id": owner_id})
        return updated
