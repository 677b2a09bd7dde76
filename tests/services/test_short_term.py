"""
Tests for the short-term store.

Tests cover:
1. Sensory -> short-term pipeline and its idempotence guards
2. Topic clustering (reuse, running-mean centroid, labels)
3. Extraction retries, terminal failure and rate-limit rescheduling
4. Fact-graph edges recorded at creation
5. Expiry cleanup and listings
"""

from datetime import datetime, timedelta

import pytest

from tiermem.config import BucketConfig
from tiermem.core.rate_limit.token_bucket import TokenBucketRateLimiter
from tiermem.core.similarity.base import SHORT_TERM_COLLECTION
from tiermem.models import (
    ExtractedEntity,
    ExtractedRelationship,
    ExtractionResult,
    SensoryStatus,
)
from tiermem.services.short_term import topic_label
from tiermem.services.tasks import EXTRACT_AND_EMBED

from tests.helpers import blend, text_vector

CONTENT = "I prefer working late at night because it helps me focus"


@pytest.mark.unit
class TestTopicLabel:
    def test_label_uses_most_salient_entity(self):
        extraction = ExtractionResult(
            entities=[
                ExtractedEntity(name="Acme", type="org", salience=0.4),
                ExtractedEntity(name="Ada", type="person", salience=0.9),
            ],
            importance=0.5,
            summary="s",
        )
        assert topic_label(extraction) == "person: Ada"

    def test_label_without_entities(self):
        assert topic_label(ExtractionResult(importance=0.5, summary="s")) == "General"


@pytest.mark.integration
class TestPipeline:
    """Tests for promote_from_sensory -> extract_and_embed -> create."""

    async def test_ingest_creates_short_term_memory(self, engine, owner, ingest, similarity):
        result = await ingest(CONTENT)

        record = await engine.sensory.get(result.id)
        assert record.status == SensoryStatus.PROMOTED
        assert record.processed_at is not None

        memories = await engine.short_term_by_thread(owner.id, "thread-1")
        assert len(memories) == 1
        memory = memories[0]
        assert memory.source_id == result.id
        assert memory.owner_id == owner.id
        assert memory.content == CONTENT
        assert memory.summary == f"Summary: {CONTENT}"
        assert memory.importance == pytest.approx(0.7)
        assert memory.access_count == 1
        assert memory.expires_at - memory.created_at == timedelta(hours=4)
        assert len(similarity) == 1

        topic = await engine.repository.get_topic(memory.topic_id)
        assert topic.label == "General"
        assert topic.member_count == 1

    async def test_promote_only_acts_on_pending(self, engine, owner, scheduler):
        result = await engine.ingest(CONTENT, owner.id)
        await scheduler.run_next()

        assert await engine.short_term.promote_from_sensory(result.id) is False
        assert await engine.short_term.promote_from_sensory("sen_missing") is False
        assert [name for _, name, _ in scheduler.jobs] == [EXTRACT_AND_EMBED]

    async def test_extract_skips_non_processing_record(self, engine, owner, scheduler, extractor):
        result = await engine.ingest(CONTENT, owner.id)

        assert await engine.short_term.extract_and_embed(result.id) is None
        assert extractor.calls == []

    async def test_create_is_idempotent_per_sensory_record(self, engine, owner, ingest, embedder):
        result = await ingest(CONTENT)
        existing = (await engine.short_term_by_thread(owner.id, "thread-1"))[0]

        again = await engine.short_term.create(
            sensory_id=result.id,
            content=CONTENT,
            extraction=ExtractionResult(importance=0.9, summary="other"),
            embedding=await embedder.embed(CONTENT),
            owner_id=owner.id,
            thread_id="thread-1",
        )

        assert again.id == existing.id
        assert len(await engine.short_term_by_thread(owner.id, "thread-1")) == 1

    async def test_duplicate_trigger_delivery_is_harmless(self, engine, owner, scheduler):
        result = await engine.ingest(CONTENT, owner.id)
        await scheduler.run_next()
        job = scheduler.jobs[0]
        # At-least-once delivery: the same extraction job arrives twice
        scheduler.jobs.append(job)
        await scheduler.drain()

        memories = await engine.list_short_term(owner.id)
        assert len(memories) == 1
        assert memories[0].source_id == result.id


@pytest.mark.integration
class TestTopics:
    """Tests for topic candidate search and centroid maintenance."""

    async def test_similar_content_joins_existing_topic(self, engine, owner, embedder, ingest):
        first, second = "I love hiking in the Alps every summer", "Hiking trips in the Alps are my favourite"
        base = text_vector("hiking")
        embedder.vectors[first] = base
        embedder.vectors[second] = blend(base, text_vector("alps"), 0.1)

        await ingest(first)
        await ingest(second)

        memories = await engine.short_term_by_thread(owner.id, "thread-1")
        assert len(memories) == 2
        assert memories[0].topic_id == memories[1].topic_id

        topic = await engine.repository.get_topic(memories[0].topic_id)
        assert topic.member_count == 2
        expected = [(a + b) / 2 for a, b in zip(embedder.vectors[first], embedder.vectors[second])]
        assert topic.centroid == pytest.approx(expected)

    async def test_unrelated_content_gets_new_topic(self, engine, owner, ingest):
        await ingest("I love hiking in the Alps every summer")
        await ingest("My sister Maria works as a nurse in Madrid")

        memories = await engine.short_term_by_thread(owner.id, "thread-1")
        assert memories[0].topic_id != memories[1].topic_id

    async def test_topic_search_is_owner_scoped(self, engine, owner, embedder, ingest):
        other = await engine.get_or_create_owner("user-456")
        content = "I love hiking in the Alps every summer"
        await ingest(content)
        await ingest(content, owner_id=other.id, thread_id="thread-2")

        mine = await engine.short_term_by_thread(owner.id, "thread-1")
        theirs = await engine.short_term_by_thread(other.id, "thread-2")
        assert mine[0].topic_id != theirs[0].topic_id

    async def test_new_topic_label_from_extraction(self, engine, owner, extractor, ingest):
        content = "My sister Maria works as a nurse in Madrid"
        extractor.results[content] = ExtractionResult(
            entities=[ExtractedEntity(name="Maria", type="person", salience=0.9)],
            importance=0.6,
            summary="User's sister Maria is a nurse in Madrid",
        )
        await ingest(content)

        memory = (await engine.short_term_by_thread(owner.id, "thread-1"))[0]
        topic = await engine.repository.get_topic(memory.topic_id)
        assert topic.label == "person: Maria"


@pytest.mark.integration
class TestExtractionFailures:
    """Tests for retry with backoff and terminal failure."""

    async def test_transient_failure_is_retried(self, engine, owner, scheduler, extractor):
        extractor.failures_remaining = 1
        result = await engine.ingest(CONTENT, owner.id)
        await scheduler.run_next()  # promote
        await scheduler.run_next()  # first extraction fails

        assert scheduler.jobs == [
            (1.0, EXTRACT_AND_EMBED, {"sensory_id": result.id, "retry_count": 1})
        ]
        record = await engine.sensory.get(result.id)
        assert record.status == SensoryStatus.PROCESSING

        await scheduler.run_next()
        record = await engine.sensory.get(result.id)
        assert record.status == SensoryStatus.PROMOTED

    async def test_terminal_failure_discards_record(self, engine, owner, scheduler, extractor):
        extractor.failures_remaining = 10
        result = await engine.ingest(CONTENT, owner.id)

        delays = []
        while scheduler.jobs:
            delay, name, _ = scheduler.jobs[0]
            if name == EXTRACT_AND_EMBED:
                delays.append(delay)
            await scheduler.run_next()

        assert delays == [0, 1.0, 2.0, 4.0]
        assert len(extractor.calls) == 4

        record = await engine.sensory.get(result.id)
        assert record.status == SensoryStatus.DISCARDED
        assert record.discard_reason == "Extraction failed: model timed out"
        assert await engine.list_short_term(owner.id) == []

    async def test_unexpected_error_is_retried_then_discarded(
        self, engine, owner, scheduler, extractor, monkeypatch
    ):
        async def malformed(text):
            extractor.calls.append(text)
            raise ValueError("unexpected response shape")

        monkeypatch.setattr(extractor, "extract", malformed)
        result = await engine.ingest(CONTENT, owner.id)
        await scheduler.run_next()
        await scheduler.run_next()

        assert scheduler.jobs == [
            (1.0, EXTRACT_AND_EMBED, {"sensory_id": result.id, "retry_count": 1})
        ]
        assert (await engine.sensory.get(result.id)).status == SensoryStatus.PROCESSING

        await scheduler.drain()

        record = await engine.sensory.get(result.id)
        assert len(extractor.calls) == 4
        assert record.status == SensoryStatus.DISCARDED
        assert record.discard_reason == "Extraction failed: unexpected response shape"

    async def test_embedding_failure_is_retried(self, engine, owner, scheduler, embedder):
        embedder.fail = True
        result = await engine.ingest(CONTENT, owner.id)
        await scheduler.run_next()
        await scheduler.run_next()

        assert scheduler.jobs[0][2] == {"sensory_id": result.id, "retry_count": 1}

        embedder.fail = False
        await scheduler.drain()
        assert (await engine.sensory.get(result.id)).status == SensoryStatus.PROMOTED


@pytest.mark.integration
class TestRateLimiting:
    async def test_rate_limited_extraction_is_rescheduled(
        self, engine, owner, scheduler, extractor
    ):
        engine.short_term.rate_limiter = TokenBucketRateLimiter(
            {
                "extraction": BucketConfig(rate=1, period_seconds=60, capacity=1),
                "embedding": BucketConfig(rate=100, period_seconds=60, capacity=20),
            },
            clock=lambda: 0.0,
        )
        await engine.ingest(CONTENT, owner.id)
        await scheduler.drain()

        second = await engine.ingest("I live in Berlin with my partner and two cats", owner.id)
        await scheduler.run_next()  # promote
        await scheduler.run_next()  # limited

        [(delay, name, kwargs)] = scheduler.jobs
        assert delay == pytest.approx(60.0)
        assert name == EXTRACT_AND_EMBED
        assert kwargs == {"sensory_id": second.id, "retry_count": 0}
        assert len(extractor.calls) == 1
        assert (await engine.sensory.get(second.id)).status == SensoryStatus.PROCESSING


@pytest.mark.integration
class TestFactEdgesAtCreation:
    async def test_relationships_become_edges(self, engine, owner, extractor, ingest):
        content = "I work at Acme as a backend engineer"
        extractor.results[content] = ExtractionResult(
            entities=[ExtractedEntity(name="Acme", type="org", salience=0.8)],
            relationships=[
                ExtractedRelationship(
                    subject="user", predicate="works_at", object="Acme", confidence=0.9
                )
            ],
            importance=0.8,
            summary="User works at Acme",
        )
        await ingest(content)

        connected = await engine.get_connected(owner.id, "user")
        assert len(connected.outgoing) == 1
        edge = connected.outgoing[0]
        assert edge.fact == "user works at Acme"
        assert edge.source_type == "user"
        assert edge.target_type == "org"
        assert edge.strength == pytest.approx(0.9)
        assert edge.embedding


@pytest.mark.integration
class TestExpiryAndListings:
    async def test_cleanup_expired_hard_deletes(self, engine, owner, ingest, repository, similarity):
        await ingest(CONTENT)
        memory = (await engine.list_short_term(owner.id))[0]
        await repository.insert_short_term(
            memory.model_copy(update={"expires_at": datetime.now() - timedelta(minutes=1)})
        )

        assert await engine.short_term.cleanup_expired() == 1
        assert await engine.short_term.get(memory.id) is None
        assert await similarity.search(SHORT_TERM_COLLECTION, owner.id, memory.embedding) == []
        assert await engine.short_term.cleanup_expired() == 0

    async def test_expired_memories_hidden_from_active_list(self, engine, owner, ingest, repository):
        await ingest(CONTENT)
        memory = (await engine.list_short_term(owner.id))[0]
        await repository.insert_short_term(
            memory.model_copy(update={"expires_at": datetime.now() - timedelta(minutes=1)})
        )

        assert await engine.list_short_term(owner.id) == []
        assert memory.model_copy(
            update={"expires_at": datetime.now() - timedelta(minutes=1)}
        ).is_expired()

    async def test_list_active_orders_by_importance(self, engine, owner, extractor, ingest):
        low, high = "I live in Berlin with my partner and two cats", CONTENT
        extractor.results[low] = ExtractionResult(importance=0.3, summary="lives in Berlin")
        extractor.results[high] = ExtractionResult(importance=0.9, summary="works late")
        await ingest(low)
        await ingest(high)

        memories = await engine.list_short_term(owner.id)
        assert [m.importance for m in memories] == [0.9, 0.3]

    async def test_by_thread_newest_first_and_limited(self, engine, owner, ingest):
        contents = [
            "I live in Berlin with my partner and two cats",
            CONTENT,
            "My sister Maria works as a nurse in Madrid",
        ]
        for content in contents:
            await ingest(content)

        memories = await engine.short_term.by_thread(owner.id, "thread-1", limit=2)
        assert [m.content for m in memories] == [contents[2], contents[1]]

    async def test_promotion_candidates_filter_importance(self, engine, extractor, ingest):
        low, high = "I live in Berlin with my partner and two cats", CONTENT
        extractor.results[low] = ExtractionResult(importance=0.3, summary="lives in Berlin")
        extractor.results[high] = ExtractionResult(importance=0.9, summary="works late")
        await ingest(low)
        await ingest(high)

        candidates = await engine.short_term.get_promotion_candidates()
        assert [c.summary for c in candidates] == ["works late"]
