"""
Short-term tier models: topic clusters, working memories and extraction output.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class ExtractedEntity(BaseModel):
    """Named entity found in a message."""

    model_config = {"extra": "ignore"}

    name: str = Field(..., description="The entity name")
    type: str = Field(..., description="Entity type: person, place, org, skill, preference")
    salience: float = Field(..., ge=0.0, le=1.0, description="How central to the message (0-1)")


class ExtractedRelationship(BaseModel):
    """Subject-predicate-object triple found in a message."""

    model_config = {"extra": "ignore"}

    subject: str
    predicate: str = Field(..., description="Relationship: prefers, works_at, knows, lives_in")
    object: str
    confidence: float = Field(..., ge=0.0, le=1.0)


class ExtractionResult(BaseModel):
    """Structured output of the extraction collaborator."""

    model_config = {"extra": "ignore"}

    entities: list[ExtractedEntity] = Field(default_factory=list)
    relationships: list[ExtractedRelationship] = Field(default_factory=list)
    importance: float = Field(..., ge=0.0, le=1.0, description="Long-term importance score")
    summary: str = Field(..., description="One sentence summary")

    def most_salient_entity(self) -> ExtractedEntity | None:
        """Entity with the highest salience, first one on ties."""
        if not self.entities:
            return None
        return max(self.entities, key=lambda e: e.salience)


class Topic(BaseModel):
    """
    Cluster of related short-term memories.

    The centroid is a running mean of member embeddings. Topics are never
    deleted; they are simply orphaned once all members expire.
    """

    id: str = Field(..., description="Unique topic ID (top_xxx)")
    owner_id: str
    label: str
    centroid: list[float] = Field(default_factory=list)
    member_count: int = Field(default=1, ge=0)
    created_at: datetime = Field(default_factory=datetime.now)

    def with_member(self, embedding: list[float]) -> "Topic":
        """Copy with `embedding` folded into the centroid: (c*n + e) / (n+1)."""
        n = self.member_count
        centroid = [(c * n + e) / (n + 1) for c, e in zip(self.centroid, embedding, strict=True)]
        return self.model_copy(update={"centroid": centroid, "member_count": n + 1})


class ShortTermMemory(BaseModel):
    """Working memory produced by extraction; expires or is consolidated."""

    id: str = Field(..., description="Unique short-term ID (stm_xxx)")
    content: str
    summary: str | None = None
    embedding: list[float] = Field(default_factory=list)
    topic_id: str | None = None
    entities: list[ExtractedEntity] = Field(default_factory=list)
    relationships: list[ExtractedRelationship] = Field(default_factory=list)
    importance: float = Field(..., ge=0.0, le=1.0)
    access_count: int = Field(default=1, ge=0)
    last_accessed: datetime = Field(default_factory=datetime.now)
    expires_at: datetime
    source_id: str = Field(..., description="Originating sensory record")
    owner_id: str
    thread_id: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)

    def is_expired(self, now: datetime | None = None) -> bool:
        """True once `expires_at` has passed."""
        return self.expires_at <= (now or datetime.now())

    @property
    def display_text(self) -> str:
        """Summary when available, raw content otherwise."""
        return self.summary or self.content
