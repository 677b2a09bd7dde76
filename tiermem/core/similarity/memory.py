"""
In-process similarity index using numpy cosine similarity.

Exact (brute-force) search, suitable for tests and small single-process
deployments.
"""

from typing import Any

import numpy as np

from tiermem.core.similarity.base import SimilarityHit, SimilarityIndex
from tiermem.utils.exceptions import ValidationError


class InMemorySimilarityIndex(SimilarityIndex):
    def __init__(self):
        # collection -> record id -> (owner id, unit vector, payload)
        self._collections: dict[str, dict[str, tuple[str, np.ndarray, dict[str, Any]]]] = {}

    async def upsert(
        self,
        collection: str,
        record_id: str,
        owner_id: str,
        vector: list[float],
        payload: dict[str, Any] | None = None,
    ) -> None:
        if not vector:
            raise ValidationError("Vector cannot be empty", context={"record_id": record_id})

        array = np.asarray(vector, dtype=np.float64)
        norm = np.linalg.norm(array)
        if norm > 0:
            array = array / norm
        self._collections.setdefault(collection, {})[record_id] = (owner_id, array, payload or {})

    async def delete(self, collection: str, record_id: str) -> None:
        self._collections.get(collection, {}).pop(record_id, None)

    async def search(
        self,
        collection: str,
        owner_id: str,
        vector: list[float],
        limit: int = 10,
        filters: dict[str, Any] | None = None,
    ) -> list[SimilarityHit]:
        filters = filters or {}
        candidates = [
            (record_id, array)
            for record_id, (owner, array, payload) in self._collections.get(collection, {}).items()
            if owner == owner_id and all(payload.get(k) == v for k, v in filters.items())
        ]
        if not candidates or limit <= 0:
            return []

        query = np.asarray(vector, dtype=np.float64)
        norm = np.linalg.norm(query)
        if norm > 0:
            query = query / norm

        matrix = np.vstack([array for _, array in candidates])
        scores = matrix @ query
        order = np.argsort(-scores, kind="stable")[:limit]
        return [SimilarityHit(id=candidates[i][0], score=float(scores[i])) for i in order]

    def __len__(self) -> int:
        return sum(len(records) for records in self._collections.values())
