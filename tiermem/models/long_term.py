"""
Long-term memory model with decay and reinforcement state.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class LongTermType(str, Enum):
    """Memory classification."""

    EPISODIC = "episodic"
    SEMANTIC = "semantic"


class LongTermMemory(BaseModel):
    """
    Consolidated memory subject to the forgetting curve.

    Features:
    - Decay: `current_importance` decays from `base_importance` with a rate
      inversely proportional to `stability`
    - Reinforcement: near-duplicates raise importance and stability instead
      of creating new records
    - Lineage: `consolidated_from` lists the short-term ids merged in
    - Soft delete: `is_active=False` hides the record from search and
      retrieval but keeps it for lineage queries
    """

    id: str = Field(..., description="Unique long-term ID (ltm_xxx)")
    content: str
    summary: str
    embedding: list[float] = Field(default_factory=list)
    memory_type: LongTermType = LongTermType.SEMANTIC
    category: str | None = None
    entity_name: str | None = None
    entity_type: str | None = None
    base_importance: float = Field(..., ge=0.0, le=1.0)
    current_importance: float = Field(..., gt=0.0, le=1.0)
    stability: float = Field(default=100.0, ge=1.0, le=1000.0)
    access_count: int = Field(default=0, ge=0)
    last_accessed: datetime = Field(default_factory=datetime.now)
    reinforcement_count: int = Field(default=1, ge=0)
    consolidated_from: list[str] = Field(default_factory=list)
    owner_id: str
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    def hours_since_access(self, now: datetime | None = None) -> float:
        """Hours elapsed since `last_accessed`, never negative."""
        delta = (now or datetime.now()) - self.last_accessed
        return max(0.0, delta.total_seconds() / 3600.0)


class ConsolidationAction(str, Enum):
    """Which branch consolidation took."""

    CREATED = "created"
    REINFORCED = "reinforced"
    ALREADY_CONSOLIDATED = "already_consolidated"
    SKIPPED = "skipped"


class ConsolidationResult(BaseModel):
    """Outcome of consolidating one short-term memory."""

    action: ConsolidationAction
    memory_id: str | None = None
    similarity: float | None = None


class LongTermSearchHit(BaseModel):
    """Active long-term memory with its similarity score."""

    memory: LongTermMemory
    score: float


class MemoryStatistics(BaseModel):
    """Per-owner counts served from the aggregate index."""

    total: int = 0
    semantic: int = 0
    episodic: int = 0
    core: int = 0
    high_importance: int = 0
    medium_importance: int = 0
    low_importance: int = 0
