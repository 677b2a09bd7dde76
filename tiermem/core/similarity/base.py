"""
Base interface for the similarity index.

The index holds one vector per record in named collections ("short_term",
"long_term") and answers nearest-neighbour queries scoped to one owner.
It excludes nothing automatically: callers post-filter soft-deleted records.
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel

SHORT_TERM_COLLECTION = "short_term"
LONG_TERM_COLLECTION = "long_term"


class SimilarityHit(BaseModel):
    """Record id with its cosine similarity to the query."""

    id: str
    score: float


class SimilarityIndex(ABC):
    """Abstract base class for similarity index implementations."""

    async def initialize(self) -> None:
        """Prepare connections. Collections are created on first upsert."""
        return None

    @abstractmethod
    async def upsert(
        self,
        collection: str,
        record_id: str,
        owner_id: str,
        vector: list[float],
        payload: dict[str, Any] | None = None,
    ) -> None:
        """
        Store or replace the vector for a record.

        Raises:
            ValidationError: If the vector is empty
            SimilarityIndexError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, collection: str, record_id: str) -> None:
        """Remove a record's vector; unknown ids are ignored."""
        pass

    @abstractmethod
    async def search(
        self,
        collection: str,
        owner_id: str,
        vector: list[float],
        limit: int = 10,
        filters: dict[str, Any] | None = None,
    ) -> list[SimilarityHit]:
        """
        Nearest neighbours of `vector` among the owner's records, best first.

        Args:
            filters: Equality-only payload conditions
        """
        pass

    async def close(self) -> None:
        return None
