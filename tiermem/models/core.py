"""
Core memory models: promoted identity facts and the patterns that feed them.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class CoreCategory(str, Enum):
    """Kinds of stable identity facts."""

    IDENTITY = "identity"
    PREFERENCE = "preference"
    RELATIONSHIP = "relationship"
    BEHAVIORAL = "behavioral"
    GOAL = "goal"
    CONSTRAINT = "constraint"


class CoreMemory(BaseModel):
    """Slow-changing identity fact; soft-deleted only on user request."""

    id: str = Field(..., description="Unique core ID (core_xxx)")
    content: str
    embedding: list[float] = Field(default_factory=list)
    category: CoreCategory
    confidence: float = Field(..., ge=0.0, le=1.0)
    evidence_count: int = Field(default=0, ge=0)
    owner_id: str
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class DetectedPattern(BaseModel):
    """Pattern reported by the pattern-detection collaborator (structured output)."""

    model_config = {"extra": "ignore"}

    content: str = Field(..., description="The stable fact or pattern detected")
    category: CoreCategory
    confidence: float = Field(..., ge=0.0, le=1.0)
    supporting_count: int = Field(..., ge=0, description="How many memories support it")
    reasoning: str = Field(default="", description="Why this is a stable pattern")


class PromotionAction(str, Enum):
    """Outcome of promoting a pattern."""

    CREATED = "created"
    REINFORCED = "reinforced"


class PromotionResult(BaseModel):
    """Which core memory a pattern landed in."""

    action: PromotionAction
    id: str
