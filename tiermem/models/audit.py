"""Append-only audit records for background runs and reflection insights."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class RunType(str, Enum):
    """Kind of background run."""

    PROMOTION = "promotion"
    DECAY = "decay"
    PRUNING = "pruning"
    REFLECTION = "reflection"
    CLEANUP = "cleanup"


class ConsolidationLogEntry(BaseModel):
    """Summary of one workflow run."""

    id: str
    owner_id: str | None = None
    run_type: RunType
    memories_processed: int = 0
    memories_promoted: int = 0
    memories_pruned: int = 0
    duration_ms: float = 0.0
    created_at: datetime = Field(default_factory=datetime.now)


class InsightType(str, Enum):
    """What a reflection noticed."""

    PATTERN = "pattern"
    TREND = "trend"
    GAP = "gap"


class ReflectionAction(str, Enum):
    """What was done about an insight."""

    PROMOTED_TO_CORE = "promoted_to_core"
    FLAGGED_FOR_REVIEW = "flagged_for_review"
    NONE = "none"


class Reflection(BaseModel):
    """Insight detected by the reflection engine."""

    id: str
    owner_id: str
    insight: str
    insight_type: InsightType = InsightType.PATTERN
    supporting_memory_count: int = 0
    confidence: float = Field(..., ge=0.0, le=1.0)
    action_taken: ReflectionAction | None = None
    created_at: datetime = Field(default_factory=datetime.now)


class ReflectionRun(BaseModel):
    """Summary of one owner's reflection pass."""

    owner_id: str
    memories_considered: int = 0
    patterns_detected: int = 0
    promoted: int = 0
    reinforced: int = 0
    skipped_reason: str | None = None
