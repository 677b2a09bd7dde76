"""
Similarity index abstraction layer.

Supported backends:
- Qdrant (qdrant-client, including its in-process ":memory:" mode)
- In-memory numpy cosine index
"""

from tiermem.core.similarity.base import (
    LONG_TERM_COLLECTION,
    SHORT_TERM_COLLECTION,
    SimilarityHit,
    SimilarityIndex,
)
from tiermem.core.similarity.memory import InMemorySimilarityIndex
from tiermem.core.similarity.qdrant import QdrantSimilarityIndex

__all__ = [
    "SimilarityIndex",
    "SimilarityHit",
    "SHORT_TERM_COLLECTION",
    "LONG_TERM_COLLECTION",
    "InMemorySimilarityIndex",
    "QdrantSimilarityIndex",
]
