"""
LLM-backed extraction and pattern detection.

The wire schemas below are kept free of numeric bounds so that every
provider's structured-output mode accepts them; values are clamped when
converted to the domain models.
"""

from pydantic import BaseModel, Field

from tiermem.core.extraction.base import Extractor, PatternDetector
from tiermem.core.llm.base import LLMProvider
from tiermem.models import (
    CoreCategory,
    DetectedPattern,
    ExtractedEntity,
    ExtractedRelationship,
    ExtractionResult,
)
from tiermem.utils.logger import get_logger

logger = get_logger(__name__)

EXTRACTION_SYSTEM_PROMPT = """Extract entities and relationships from user messages.
Rules:
- "user" is always a valid subject for user preferences/facts
- salience is how central the entity is (0-1)
- importance: personal info > preferences > facts > opinions > transient"""

PATTERN_SYSTEM_PROMPT = """You are analyzing a user's memory patterns to identify stable facts about them.
Look for:
- Repeated themes or entities (mentioned 3+ times)
- High-importance facts that persist over time
- Identity markers, preferences, relationships, goals

Only output patterns you're confident are stable, long-term facts."""


class EntitySchema(BaseModel):
    name: str = Field(..., description="The entity name")
    type: str = Field(..., description="Entity type: person, place, org, skill, preference")
    salience: float = Field(..., description="How central to the message (0-1)")


class RelationshipSchema(BaseModel):
    subject: str
    predicate: str = Field(..., description="Relationship: prefers, works_at, knows, lives_in")
    object: str
    confidence: float


class ExtractionSchema(BaseModel):
    entities: list[EntitySchema]
    relationships: list[RelationshipSchema]
    importance: float = Field(..., description="Long-term importance score (0-1)")
    summary: str = Field(..., description="One sentence summary")


class PatternItemSchema(BaseModel):
    content: str = Field(..., description="The stable fact or pattern detected")
    category: CoreCategory
    confidence: float
    supporting_count: int = Field(..., description="How many memories support it")
    reasoning: str = Field(..., description="Why this is a stable pattern")


class PatternSchema(BaseModel):
    patterns: list[PatternItemSchema]


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


class LLMExtractor(Extractor, PatternDetector):
    """Extraction and pattern detection through one LLMProvider."""

    def __init__(self, llm: LLMProvider):
        self.llm = llm

    async def extract(self, text: str) -> ExtractionResult:
        raw = await self.llm.complete_structured(
            f'Extract from: "{text}"', ExtractionSchema, system=EXTRACTION_SYSTEM_PROMPT
        )
        return ExtractionResult(
            entities=[
                ExtractedEntity(name=e.name, type=e.type, salience=_clamp(e.salience))
                for e in raw.entities
            ],
            relationships=[
                ExtractedRelationship(
                    subject=r.subject,
                    predicate=r.predicate,
                    object=r.object,
                    confidence=_clamp(r.confidence),
                )
                for r in raw.relationships
            ],
            importance=_clamp(raw.importance),
            summary=raw.summary,
        )

    async def detect_patterns(self, summaries: list[str]) -> list[DetectedPattern]:
        if not summaries:
            return []

        prompt = "Analyze these memories and identify stable patterns:\n\n" + "\n".join(summaries)
        raw = await self.llm.complete_structured(prompt, PatternSchema, system=PATTERN_SYSTEM_PROMPT)

        logger.debug(f"Pattern detection returned {len(raw.patterns)} patterns")
        return [
            DetectedPattern(
                content=p.content,
                category=p.category,
                confidence=_clamp(p.confidence),
                supporting_count=max(0, p.supporting_count),
                reasoning=p.reasoning,
            )
            for p in raw.patterns
        ]
