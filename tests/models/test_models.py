"""
Tests for data models.

Tests cover:
1. Field validation (score ranges)
2. Content hashing
3. Model helpers (expiry, topic centroid, salience, time since access)
4. Enum values used on the wire
"""

from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from tiermem.models import (
    ConsolidationAction,
    CoreCategory,
    DetectedPattern,
    ExtractedEntity,
    ExtractionResult,
    MemoryContext,
    SensoryRecord,
    SensoryStatus,
    ShortTermMemory,
    Topic,
    compute_content_hash,
)

from tests.helpers import make_long_term


class TestContentHash:
    def test_format(self):
        digest = compute_content_hash("I live in Berlin")
        assert digest.startswith("sha256:")
        assert len(digest) == len("sha256:") + 64

    def test_verbatim(self):
        """Whitespace and case changes are different content."""
        assert compute_content_hash("hello") == compute_content_hash("hello")
        assert compute_content_hash("hello") != compute_content_hash("Hello")
        assert compute_content_hash("hello") != compute_content_hash("hello ")


class TestSensoryRecord:
    def test_defaults(self):
        record = SensoryRecord(
            id="sen_1",
            content="hi",
            content_hash=compute_content_hash("hi"),
            attention_score=0.2,
            owner_id="own_1",
        )
        assert record.status == SensoryStatus.PENDING
        assert record.processed_at is None
        assert record.input_type.value == "message"

    def test_score_range(self):
        with pytest.raises(ValidationError):
            SensoryRecord(
                id="sen_1",
                content="hi",
                content_hash="sha256:x",
                attention_score=1.5,
                owner_id="own_1",
            )


class TestShortTerm:
    def make(self, **overrides):
        data = {
            "id": "stm_1",
            "content": "raw content",
            "importance": 0.7,
            "expires_at": datetime.now() + timedelta(hours=4),
            "source_id": "sen_1",
            "owner_id": "own_1",
        }
        data.update(overrides)
        return ShortTermMemory(**data)

    def test_is_expired(self):
        now = datetime.now()
        memory = self.make(expires_at=now)
        assert memory.is_expired(now)
        assert not memory.is_expired(now - timedelta(seconds=1))

    def test_display_text_prefers_summary(self):
        assert self.make(summary="short").display_text == "short"
        assert self.make(summary=None).display_text == "raw content"
        assert self.make(summary="").display_text == "raw content"

    def test_importance_range(self):
        with pytest.raises(ValidationError):
            self.make(importance=-0.1)


class TestTopic:
    def test_running_mean(self):
        topic = Topic(id="top_1", owner_id="own_1", label="General", centroid=[1.0, 0.0])

        updated = topic.with_member([0.0, 1.0])

        assert updated.centroid == [0.5, 0.5]
        assert updated.member_count == 2
        assert topic.member_count == 1

        again = updated.with_member([0.0, 1.0])
        assert again.centroid == pytest.approx([1 / 3, 2 / 3])

    def test_dimension_mismatch(self):
        topic = Topic(id="top_1", owner_id="own_1", label="General", centroid=[1.0, 0.0])
        with pytest.raises(ValueError):
            topic.with_member([1.0])


class TestExtractionResult:
    def test_most_salient(self):
        result = ExtractionResult(
            entities=[
                ExtractedEntity(name="Maria", type="person", salience=0.6),
                ExtractedEntity(name="Madrid", type="place", salience=0.9),
                ExtractedEntity(name="Acme", type="org", salience=0.9),
            ],
            importance=0.5,
            summary="s",
        )
        assert result.most_salient_entity().name == "Madrid"

    def test_no_entities(self):
        assert ExtractionResult(importance=0.5, summary="s").most_salient_entity() is None

    def test_ignores_unknown_fields(self):
        result = ExtractionResult.model_validate(
            {"importance": 0.4, "summary": "s", "mood": "happy"}
        )
        assert result.importance == 0.4


class TestLongTerm:
    def test_hours_since_access(self):
        now = datetime(2026, 1, 2, 12, 0)
        memory = make_long_term(last_accessed=now - timedelta(hours=30))

        assert memory.hours_since_access(now) == pytest.approx(30.0)
        assert memory.hours_since_access(now - timedelta(days=5)) == 0.0

    def test_current_importance_must_be_positive(self):
        with pytest.raises(ValidationError):
            make_long_term(current_importance=0.0, base_importance=0.0)

    def test_stability_bounds(self):
        with pytest.raises(ValidationError):
            make_long_term(stability=1001.0)


class TestEnumsAndContext:
    def test_wire_values(self):
        assert ConsolidationAction.ALREADY_CONSOLIDATED.value == "already_consolidated"
        assert CoreCategory("behavioral") == CoreCategory.BEHAVIORAL

    def test_detected_pattern_validation(self):
        with pytest.raises(ValidationError):
            DetectedPattern(
                content="x", category="hobby", confidence=0.9, supporting_count=3
            )

    def test_empty_context(self):
        context = MemoryContext()
        assert context.is_empty()
        assert context.total_tokens == 0
