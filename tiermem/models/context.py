"""Assembled retrieval context handed to the response generator."""

from pydantic import BaseModel, Field


class CoreContextItem(BaseModel):
    content: str
    category: str


class LongTermContextItem(BaseModel):
    content: str
    type: str
    importance: float


class ShortTermContextItem(BaseModel):
    content: str
    importance: float


class MemoryContext(BaseModel):
    """
    Budget-packed memories from the three retrievable tiers.

    `total_tokens` is the sum of the three per-tier packed counts.
    """

    core: list[CoreContextItem] = Field(default_factory=list)
    long_term: list[LongTermContextItem] = Field(default_factory=list)
    short_term: list[ShortTermContextItem] = Field(default_factory=list)
    core_tokens: int = 0
    long_term_tokens: int = 0
    short_term_tokens: int = 0
    total_tokens: int = 0

    def is_empty(self) -> bool:
        return not (self.core or self.long_term or self.short_term)
