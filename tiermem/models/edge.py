"""Fact graph edge model."""

from datetime import datetime

from pydantic import BaseModel, Field


class MemoryEdge(BaseModel):
    """
    Directed relationship between two named entities.

    Edges are independent records (no cascade): the orphan sweep deactivates
    edges whose endpoints no longer back any active long-term memory.
    """

    id: str = Field(..., description="Unique edge ID (edg_xxx)")
    owner_id: str
    source_name: str
    source_type: str
    target_name: str
    target_type: str
    relation_type: str
    fact: str = Field(..., description="Human-readable statement of the relationship")
    embedding: list[float] = Field(default_factory=list)
    strength: float = Field(..., ge=0.0, le=1.0)
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class ConnectedEdges(BaseModel):
    """Active edges touching one entity."""

    outgoing: list[MemoryEdge] = Field(default_factory=list)
    incoming: list[MemoryEdge] = Field(default_factory=list)
