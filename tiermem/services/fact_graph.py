"""
Fact Graph - directed relationships between named entities.

Edges are independent records with no cascading deletes. A periodic sweep
deactivates edges whose endpoints no longer back any active long-term
memory.
"""

from datetime import datetime

from tiermem.core.embeddings.base import Embedder
from tiermem.core.memory_store.base import MemoryRepository
from tiermem.models import (
    ConnectedEdges,
    ExtractedEntity,
    ExtractedRelationship,
    MemoryEdge,
)
from tiermem.utils.id_generator import generate_edge_id
from tiermem.utils.logger import get_logger

logger = get_logger(__name__)

USER_ENTITY = "user"
STRENGTHEN_FACTOR = 0.2


class FactGraph:
    def __init__(
        self,
        repository: MemoryRepository,
        embedder: Embedder,
        sweep_batch_size: int = 500,
    ):
        self.repository = repository
        self.embedder = embedder
        self.sweep_batch_size = sweep_batch_size
        self._sweep_cursor: str | None = None

    async def upsert_edge(
        self,
        owner_id: str,
        source_name: str,
        source_type: str,
        target_name: str,
        target_type: str,
        relation_type: str,
        fact: str,
        embedding: list[float],
        strength: float,
    ) -> MemoryEdge:
        """
        Create an edge, or strengthen the existing one for the same triple.

        Strengthening adds `0.2 * strength`, capped at 1.0, and reactivates an
        edge the orphan sweep had deactivated.
        """
        now = datetime.now()
        existing = await self.repository.find_edge(owner_id, source_name, target_name, relation_type)
        if existing:
            updated = existing.model_copy(
                update={
                    "strength": min(1.0, existing.strength + strength * STRENGTHEN_FACTOR),
                    "is_active": True,
                    "updated_at": now,
                }
            )
            await self.repository.update_edge(updated)
            return updated

        edge = MemoryEdge(
            id=generate_edge_id(),
            owner_id=owner_id,
            source_name=source_name,
            source_type=source_type,
            target_name=target_name,
            target_type=target_type,
            relation_type=relation_type,
            fact=fact,
            embedding=embedding,
            strength=strength,
            created_at=now,
            updated_at=now,
        )
        await self.repository.insert_edge(edge)
        return edge

    async def record_relationships(
        self,
        owner_id: str,
        entities: list[ExtractedEntity],
        relationships: list[ExtractedRelationship],
    ) -> list[MemoryEdge]:
        """One edge per extracted relationship, typed from the extracted entities."""
        if not relationships:
            return []

        types = {entity.name: entity.type for entity in entities}

        def entity_type(name: str) -> str:
            if name.lower() == USER_ENTITY:
                return USER_ENTITY
            return types.get(name, "unknown")

        facts = [
            f"{r.subject} {r.predicate.replace('_', ' ')} {r.object}" for r in relationships
        ]
        embeddings = await self.embedder.batch_embed(facts)

        edges = []
        for relationship, fact, embedding in zip(relationships, facts, embeddings, strict=True):
            edges.append(
                await self.upsert_edge(
                    owner_id=owner_id,
                    source_name=relationship.subject,
                    source_type=entity_type(relationship.subject),
                    target_name=relationship.object,
                    target_type=entity_type(relationship.object),
                    relation_type=relationship.predicate,
                    fact=fact,
                    embedding=embedding,
                    strength=relationship.confidence,
                )
            )
        return edges

    async def get_connected(self, owner_id: str, entity_name: str) -> ConnectedEdges:
        return ConnectedEdges(
            outgoing=await self.repository.list_edges_from(owner_id, entity_name),
            incoming=await self.repository.list_edges_to(owner_id, entity_name),
        )

    async def _is_backed(self, owner_id: str, entity_name: str) -> bool:
        if entity_name.lower() == USER_ENTITY:
            return True
        return await self.repository.has_active_long_term_for_entity(owner_id, entity_name)

    async def cleanup_orphaned(self) -> int:
        """
        Deactivate edges with an endpoint that no active long-term memory names.

        Processes one batch per call, resuming after the last edge checked.

        Returns:
            Number of edges deactivated
        """
        batch = await self.repository.list_active_edges_after(
            self._sweep_cursor, self.sweep_batch_size
        )
        self._sweep_cursor = batch[-1].id if len(batch) == self.sweep_batch_size else None

        deleted = 0
        now = datetime.now()
        for edge in batch:
            if await self._is_backed(edge.owner_id, edge.source_name) and await self._is_backed(
                edge.owner_id, edge.target_name
            ):
                continue
            await self.repository.update_edge(
                edge.model_copy(update={"is_active": False, "updated_at": now})
            )
            deleted += 1

        logger.info(f"Orphan edge sweep: {deleted} of {len(batch)} deactivated")
        return deleted
