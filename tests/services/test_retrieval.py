"""
Tests for retrieval assembly.

Tests cover:
1. Greedy budget packing
2. Context formatting
3. Assembly from all three tiers, fallback and access tracking
"""

import pytest

from tiermem.config import RetrievalConfig
from tiermem.models import (
    CoreCategory,
    CoreContextItem,
    DetectedPattern,
    LongTermContextItem,
    MemoryContext,
    ShortTermContextItem,
)
from tiermem.services.retrieval import format_context, pack_within_budget

from tests.helpers import text_vector


@pytest.mark.unit
class TestPackWithinBudget:
    def test_packs_prefix(self):
        packed, used = pack_within_budget(["aaaa", "bb", "cccccc"], 7, lambda s: s, len)
        assert packed == ["aaaa", "bb"]
        assert used == 6

    def test_stops_at_first_overflow(self):
        """Later items that would fit are not considered."""
        packed, used = pack_within_budget(["aa", "aaaaaaaa", "a"], 5, lambda s: s, len)
        assert packed == ["aa"]
        assert used == 2

    def test_exact_fit(self):
        packed, used = pack_within_budget(["aaa", "aa"], 5, lambda s: s, len)
        assert packed == ["aaa", "aa"]
        assert used == 5

    def test_empty(self):
        assert pack_within_budget([], 10, lambda s: s, len) == ([], 0)


@pytest.mark.unit
class TestFormatContext:
    def test_sections_in_order(self):
        context = MemoryContext(
            core=[CoreContextItem(content="Prefers tea", category="preference")],
            long_term=[LongTermContextItem(content="Works at Acme", type="semantic", importance=0.8)],
            short_term=[ShortTermContextItem(content="Planning a trip", importance=0.6)],
        )

        assert format_context(context) == (
            "## What I Know About You\n- Prefers tea\n\n"
            "## Relevant Memories\n- Works at Acme\n\n"
            "## Current Context\n- Planning a trip\n\n"
        )

    def test_empty_sections_are_omitted(self):
        context = MemoryContext(
            short_term=[
                ShortTermContextItem(content="one", importance=0.5),
                ShortTermContextItem(content="two", importance=0.5),
            ]
        )
        assert format_context(context) == "## Current Context\n- one\n- two\n\n"

    def test_empty_context(self):
        assert format_context(MemoryContext()) == ""
        assert MemoryContext().is_empty()


async def seed_tiers(engine, owner_id, ingest):
    await engine.core.create(
        owner_id,
        DetectedPattern(
            content="User prefers tea",
            category=CoreCategory.PREFERENCE,
            confidence=0.9,
            supporting_count=3,
        ),
        text_vector("tea"),
    )
    memory = await engine.long_term.create(
        owner_id=owner_id,
        content="I work at Acme as a backend engineer",
        summary="User works at Acme",
        embedding=text_vector("acme"),
        base_importance=0.8,
        consolidated_from=[],
    )
    await ingest("I live in Berlin with my partner and two cats")
    return memory


@pytest.mark.integration
class TestAssembly:
    async def test_assemble_all_tiers(self, engine, owner, embedder, ingest):
        memory = await seed_tiers(engine, owner.id, ingest)
        embedder.vectors["where do I work?"] = memory.embedding

        context = await engine.assemble_context(owner.id, "thread-1", query="where do I work?")

        assert [item.content for item in context.core] == ["User prefers tea"]
        assert [item.content for item in context.long_term] == ["User works at Acme"]
        assert [item.content for item in context.short_term] == [
            "Summary: I live in Berlin with my partner and two cats"
        ]
        assert context.total_tokens == (
            context.core_tokens + context.long_term_tokens + context.short_term_tokens
        )
        assert context.core_tokens == 4

    async def test_precomputed_query_embedding(self, engine, owner, embedder, ingest):
        memory = await seed_tiers(engine, owner.id, ingest)
        calls_before = len(embedder.calls)

        context = await engine.assemble_context(
            owner.id, "thread-1", query="ignored", query_embedding=memory.embedding
        )

        assert [item.content for item in context.long_term] == ["User works at Acme"]
        assert len(embedder.calls) == calls_before

    async def test_shared_thread_id_stays_with_its_owner(self, engine, owner, ingest):
        other = await engine.get_or_create_owner("user-456")
        await ingest("I'm a nurse and I live in Lisbon with my sister", thread_id="shared")

        theirs = await engine.assemble_context(other.id, "shared")
        mine = await engine.assemble_context(owner.id, "shared")

        assert theirs.short_term == []
        assert len(mine.short_term) == 1

    async def test_no_thread_means_no_short_term(self, engine, owner, ingest):
        await seed_tiers(engine, owner.id, ingest)

        context = await engine.assemble_context(owner.id)

        assert context.short_term == []
        assert len(context.long_term) == 1

    async def test_embedding_failure_falls_back_to_recency(self, engine, owner, embedder, ingest):
        await seed_tiers(engine, owner.id, ingest)
        embedder.fail = True

        context = await engine.assemble_context(owner.id, "thread-1", query="anything")

        assert [item.content for item in context.long_term] == ["User works at Acme"]
        assert len(context.short_term) == 1

    async def test_records_access_for_packed_memories(self, engine, owner, ingest):
        memory = await seed_tiers(engine, owner.id, ingest)

        await engine.assemble_context(owner.id, "thread-1")

        updated = await engine.long_term.get(memory.id)
        assert updated.access_count == 1
        assert updated.last_accessed >= memory.last_accessed

    async def test_budget_limits_packing(self, engine, owner, ingest):
        await seed_tiers(engine, owner.id, ingest)
        engine.retrieval.config = RetrievalConfig(core_budget=1, long_term_budget=0)

        context = await engine.assemble_context(owner.id, "thread-1")

        assert context.core == []
        assert context.long_term == []
        assert context.core_tokens == 0
        assert len(context.short_term) == 1

    async def test_unpacked_memories_are_not_accessed(self, engine, owner, ingest):
        memory = await seed_tiers(engine, owner.id, ingest)
        engine.retrieval.config = RetrievalConfig(long_term_budget=0)

        await engine.assemble_context(owner.id)

        assert (await engine.long_term.get(memory.id)).access_count == 0

    async def test_empty_owner(self, engine, owner):
        context = await engine.assemble_context(owner.id, "thread-1", query="hello")

        assert context.is_empty()
        assert context.total_tokens == 0
        assert engine.format_context(context) == ""
