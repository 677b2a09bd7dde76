"""
Data models for tiermem.

Four-Tier Architecture:
1. Sensory: raw input gated by an attention score
2. Short-term: extracted working memories clustered into topics
3. Long-term: consolidated memories with decay and reinforcement
4. Core: stable identity facts promoted by reflection

Supporting models:
- MemoryEdge: fact graph relationships between named entities
- ConsolidationLogEntry, Reflection: append-only audit records
- MemoryContext: budget-packed retrieval output
- Owner: the user a memory set belongs to
"""

from tiermem.models.audit import (
    ConsolidationLogEntry,
    InsightType,
    Reflection,
    ReflectionAction,
    ReflectionRun,
    RunType,
)
from tiermem.models.context import (
    CoreContextItem,
    LongTermContextItem,
    MemoryContext,
    ShortTermContextItem,
)
from tiermem.models.core import (
    CoreCategory,
    CoreMemory,
    DetectedPattern,
    PromotionAction,
    PromotionResult,
)
from tiermem.models.edge import ConnectedEdges, MemoryEdge
from tiermem.models.long_term import (
    ConsolidationAction,
    ConsolidationResult,
    LongTermMemory,
    LongTermSearchHit,
    LongTermType,
    MemoryStatistics,
)
from tiermem.models.owner import Owner
from tiermem.models.sensory import (
    IngestionResult,
    IngestionStatus,
    InputType,
    SensoryRecord,
    SensoryStatus,
    compute_content_hash,
)
from tiermem.models.short_term import (
    ExtractedEntity,
    ExtractedRelationship,
    ExtractionResult,
    ShortTermMemory,
    Topic,
)

__all__ = [
    # Sensory
    "InputType",
    "SensoryStatus",
    "SensoryRecord",
    "IngestionStatus",
    "IngestionResult",
    "compute_content_hash",
    # Short-term
    "ExtractedEntity",
    "ExtractedRelationship",
    "ExtractionResult",
    "Topic",
    "ShortTermMemory",
    # Long-term
    "LongTermType",
    "LongTermMemory",
    "ConsolidationAction",
    "ConsolidationResult",
    "LongTermSearchHit",
    "MemoryStatistics",
    # Fact graph
    "MemoryEdge",
    "ConnectedEdges",
    # Core
    "CoreCategory",
    "CoreMemory",
    "DetectedPattern",
    "PromotionAction",
    "PromotionResult",
    # Audit
    "RunType",
    "ConsolidationLogEntry",
    "InsightType",
    "ReflectionAction",
    "Reflection",
    "ReflectionRun",
    # Context
    "CoreContextItem",
    "LongTermContextItem",
    "ShortTermContextItem",
    "MemoryContext",
    # Owners
    "Owner",
]
