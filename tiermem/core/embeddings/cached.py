"""
Exact-text embedding cache.

Embeddings are deterministic enough per input text that identical text
within the TTL never reaches the provider twice.
"""

import time
from collections import OrderedDict

from tiermem.core.embeddings.base import Embedder
from tiermem.utils.logger import get_logger

logger = get_logger(__name__)


class CachedEmbedder(Embedder):
    """
    Decorator around another Embedder with a TTL and LRU eviction.

    Entries older than `ttl_seconds` are recomputed. Once `max_entries` is
    reached the least recently used entry is evicted.
    """

    def __init__(
        self,
        inner: Embedder,
        ttl_seconds: float = 7 * 24 * 3600,
        max_entries: int = 10000,
        clock=time.monotonic,
    ):
        self.inner = inner
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, list[float]]] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def _lookup(self, text: str) -> list[float] | None:
        entry = self._entries.get(text)
        if entry is None:
            return None
        stored_at, vector = entry
        if self._clock() - stored_at > self.ttl_seconds:
            del self._entries[text]
            return None
        self._entries.move_to_end(text)
        return vector

    def _store(self, text: str, vector: list[float]) -> None:
        self._entries[text] = (self._clock(), vector)
        self._entries.move_to_end(text)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    async def embed(self, text: str) -> list[float]:
        cached = self._lookup(text)
        if cached is not None:
            self.hits += 1
            return cached

        self.misses += 1
        vector = await self.inner.embed(text)
        self._store(text, vector)
        return vector

    async def batch_embed(self, texts: list[str]) -> list[list[float]]:
        results: dict[str, list[float]] = {}
        missing: list[str] = []
        for text in texts:
            cached = self._lookup(text)
            if cached is not None:
                self.hits += 1
                results[text] = cached
            elif text not in missing:
                missing.append(text)

        if missing:
            self.misses += len(missing)
            vectors = await self.inner.batch_embed(missing)
            for text, vector in zip(missing, vectors, strict=True):
                self._store(text, vector)
                results[text] = vector

        return [results[text] for text in texts]

    async def get_dimension(self) -> int:
        return await self.inner.get_dimension()

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    async def close(self) -> None:
        await self.inner.close()
