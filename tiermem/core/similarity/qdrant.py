"""
Qdrant similarity index.

One Qdrant collection per logical collection, named "{prefix}_{collection}",
created on first upsert with the vector size of that upsert.
"""

from typing import Any
from uuid import NAMESPACE_DNS, UUID, uuid5

from qdrant_client import AsyncQdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    HnswConfigDiff,
    MatchValue,
    PointStruct,
    ScalarQuantization,
    ScalarQuantizationConfig,
    ScalarType,
    VectorParams,
)

from tiermem.core.similarity.base import SimilarityHit, SimilarityIndex
from tiermem.utils.exceptions import SimilarityIndexError, ValidationError
from tiermem.utils.logger import get_logger

logger = get_logger(__name__)


class QdrantSimilarityIndex(SimilarityIndex):
    """
    Qdrant-backed similarity index.

    Features:
    - gRPC connection when enabled
    - HNSW indexing with configurable M / ef_construct
    - Optional int8 scalar quantization
    - Keyword payload index on owner_id for owner-scoped search
    """

    def __init__(
        self,
        url: str = "http://localhost:6333",
        collection_prefix: str = "tiermem",
        use_grpc: bool = True,
        use_quantization: bool = False,
        hnsw_m: int = 16,
        hnsw_ef_construct: int = 100,
        on_disk: bool = False,
        timeout: int = 30,
    ):
        self.url = url
        self.collection_prefix = collection_prefix
        self.use_grpc = use_grpc
        self.use_quantization = use_quantization
        self.hnsw_m = hnsw_m
        self.hnsw_ef_construct = hnsw_ef_construct
        self.on_disk = on_disk
        self.timeout = timeout
        self.client: AsyncQdrantClient | None = None
        self._ready: set[str] = set()

    def _to_uuid(self, id_str: str) -> str:
        """Qdrant point ids must be UUIDs or integers; map other ids with uuid5."""
        try:
            UUID(id_str)
            return id_str
        except ValueError:
            return str(uuid5(NAMESPACE_DNS, id_str))

    def _collection_name(self, collection: str) -> str:
        return f"{self.collection_prefix}_{collection}"

    async def connect(self) -> None:
        if self.client is not None:
            return
        try:
            if self.url == ":memory:":
                self.client = AsyncQdrantClient(location=":memory:")
            else:
                self.client = AsyncQdrantClient(
                    url=self.url, prefer_grpc=self.use_grpc, timeout=self.timeout
                )
        except Exception as e:
            logger.error("Failed to connect to Qdrant", extra={"url": self.url, "error": str(e)})
            raise SimilarityIndexError(f"Failed to connect to Qdrant: {e}") from e

    async def initialize(self) -> None:
        await self.connect()

    async def _ensure_collection(self, collection: str, vector_size: int) -> str:
        name = self._collection_name(collection)
        if name in self._ready:
            return name

        await self.connect()
        if not await self.client.collection_exists(name):
            vectors_config = VectorParams(
                size=vector_size,
                distance=Distance.COSINE,
                hnsw_config=HnswConfigDiff(m=self.hnsw_m, ef_construct=self.hnsw_ef_construct),
                on_disk=self.on_disk,
            )
            if self.use_quantization:
                vectors_config.quantization_config = ScalarQuantization(
                    scalar=ScalarQuantizationConfig(
                        type=ScalarType.INT8, quantile=0.99, always_ram=True
                    )
                )
            await self.client.create_collection(collection_name=name, vectors_config=vectors_config)
            await self.client.create_payload_index(
                collection_name=name, field_name="owner_id", field_schema="keyword"
            )
            logger.info(f"Created Qdrant collection {name}", extra={"vector_size": vector_size})

        self._ready.add(name)
        return name

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

        try:
            name = await self._ensure_collection(collection, len(vector))
            point = PointStruct(
                id=self._to_uuid(record_id),
                vector=vector,
                payload={**(payload or {}), "record_id": record_id, "owner_id": owner_id},
            )
            await self.client.upsert(collection_name=name, points=[point], wait=True)
        except Exception as e:
            logger.error(
                f"Failed to upsert vector {record_id}",
                extra={"error": str(e), "collection": collection, "record_id": record_id},
            )
            raise SimilarityIndexError(f"Failed to upsert vector: {e}") from e

    async def delete(self, collection: str, record_id: str) -> None:
        await self.connect()
        name = self._collection_name(collection)
        try:
            if name not in self._ready and not await self.client.collection_exists(name):
                return
            await self.client.delete(
                collection_name=name, points_selector=[self._to_uuid(record_id)], wait=True
            )
        except Exception as e:
            logger.error(
                f"Failed to delete vector {record_id}",
                extra={"error": str(e), "collection": collection, "record_id": record_id},
            )
            raise SimilarityIndexError(f"Failed to delete vector: {e}") from e

    async def search(
        self,
        collection: str,
        owner_id: str,
        vector: list[float],
        limit: int = 10,
        filters: dict[str, Any] | None = None,
    ) -> list[SimilarityHit]:
        await self.connect()
        name = self._collection_name(collection)

        conditions = [FieldCondition(key="owner_id", match=MatchValue(value=owner_id))]
        for key, value in (filters or {}).items():
            conditions.append(FieldCondition(key=key, match=MatchValue(value=value)))

        try:
            if name not in self._ready and not await self.client.collection_exists(name):
                return []
            response = await self.client.query_points(
                collection_name=name,
                query=vector,
                limit=limit,
                query_filter=Filter(must=conditions),
                with_payload=True,
            )
        except Exception as e:
            logger.error(
                "Qdrant search failed",
                extra={"error": str(e), "collection": collection, "owner_id": owner_id},
            )
            raise SimilarityIndexError(f"Qdrant search failed: {e}") from e

        return [
            SimilarityHit(id=point.payload["record_id"], score=point.score)
            for point in response.points
        ]

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()
            self.client = None
            self._ready.clear()
