"""
Tests for the fact graph.

Tests cover:
1. Edge upsert and strengthening
2. Connected-edge queries
3. Orphan sweep (deactivation, user exemption, reactivation)
"""

import pytest

from tiermem.models import ExtractedEntity, ExtractedRelationship

from tests.helpers import text_vector


async def add_edge(engine, owner_id, source, target, relation="knows", strength=0.5):
    return await engine.fact_graph.upsert_edge(
        owner_id=owner_id,
        source_name=source,
        source_type="user" if source == "user" else "person",
        target_name=target,
        target_type="org",
        relation_type=relation,
        fact=f"{source} {relation} {target}",
        embedding=text_vector(f"{source}-{target}"),
        strength=strength,
    )


async def entity_ltm(engine, owner_id, entity_name):
    return await engine.long_term.create(
        owner_id=owner_id,
        content=f"about {entity_name}",
        summary=f"about {entity_name}",
        embedding=text_vector(entity_name),
        base_importance=0.8,
        consolidated_from=[],
        entity_name=entity_name,
        entity_type="org",
    )


@pytest.mark.integration
class TestUpsert:
    async def test_create_then_strengthen(self, engine, owner):
        first = await add_edge(engine, owner.id, "user", "Acme", "works_at", strength=0.5)
        second = await add_edge(engine, owner.id, "user", "Acme", "works_at", strength=0.5)

        assert second.id == first.id
        assert second.strength == pytest.approx(0.6)

    async def test_strength_is_capped(self, engine, owner):
        await add_edge(engine, owner.id, "user", "Acme", strength=0.95)
        edge = await add_edge(engine, owner.id, "user", "Acme", strength=0.95)
        assert edge.strength == 1.0

    async def test_relation_type_is_part_of_identity(self, engine, owner):
        a = await add_edge(engine, owner.id, "user", "Acme", "works_at")
        b = await add_edge(engine, owner.id, "user", "Acme", "invests_in")
        assert a.id != b.id

    async def test_record_relationships_embeds_facts(self, engine, owner, embedder):
        edges = await engine.fact_graph.record_relationships(
            owner.id,
            [ExtractedEntity(name="Maria", type="person", salience=0.9)],
            [
                ExtractedRelationship(
                    subject="Maria", predicate="lives_in", object="Madrid", confidence=0.7
                )
            ],
        )

        assert len(edges) == 1
        assert edges[0].fact == "Maria lives in Madrid"
        assert edges[0].source_type == "person"
        assert edges[0].target_type == "unknown"
        assert "Maria lives in Madrid" in embedder.calls

    async def test_no_relationships_no_calls(self, engine, owner, embedder):
        assert await engine.fact_graph.record_relationships(owner.id, [], []) == []
        assert embedder.calls == []


@pytest.mark.integration
class TestConnected:
    async def test_outgoing_and_incoming(self, engine, owner):
        await add_edge(engine, owner.id, "user", "Maria", "knows")
        await add_edge(engine, owner.id, "Maria", "Acme", "works_at")

        connected = await engine.get_connected(owner.id, "Maria")

        assert [e.target_name for e in connected.outgoing] == ["Acme"]
        assert [e.source_name for e in connected.incoming] == ["user"]

    async def test_owner_scoped(self, engine, owner):
        other = await engine.get_or_create_owner("user-456")
        await add_edge(engine, other.id, "user", "Acme")

        connected = await engine.get_connected(owner.id, "user")
        assert connected.outgoing == []


@pytest.mark.integration
class TestOrphanSweep:
    async def test_unbacked_edge_is_deactivated(self, engine, owner):
        await add_edge(engine, owner.id, "user", "Acme", "works_at")

        assert await engine.fact_graph.cleanup_orphaned() == 1
        assert (await engine.get_connected(owner.id, "user")).outgoing == []

    async def test_backed_edge_survives(self, engine, owner):
        await entity_ltm(engine, owner.id, "Acme")
        await add_edge(engine, owner.id, "user", "Acme", "works_at")

        assert await engine.fact_graph.cleanup_orphaned() == 0
        assert len((await engine.get_connected(owner.id, "user")).outgoing) == 1

    async def test_soft_deleted_backing_does_not_count(self, engine, owner):
        memory = await entity_ltm(engine, owner.id, "Acme")
        await engine.long_term.delete_memory(memory.id)
        await add_edge(engine, owner.id, "user", "Acme", "works_at")

        assert await engine.fact_graph.cleanup_orphaned() == 1

    async def test_upsert_reactivates_swept_edge(self, engine, owner):
        await add_edge(engine, owner.id, "user", "Acme", "works_at", strength=0.5)
        await engine.fact_graph.cleanup_orphaned()

        edge = await add_edge(engine, owner.id, "user", "Acme", "works_at", strength=0.5)

        assert edge.is_active is True
        assert edge.strength == pytest.approx(0.6)

    async def test_sweep_in_batches(self, engine, owner):
        engine.fact_graph.sweep_batch_size = 1
        await add_edge(engine, owner.id, "user", "Acme")
        await add_edge(engine, owner.id, "user", "Globex")

        assert await engine.fact_graph.cleanup_orphaned() == 1
        assert await engine.fact_graph.cleanup_orphaned() == 1
        assert await engine.fact_graph.cleanup_orphaned() == 0
