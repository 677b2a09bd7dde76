"""
Factory for creating similarity index backends.
"""

from tiermem.config import Config
from tiermem.core.similarity.base import SimilarityIndex
from tiermem.core.similarity.memory import InMemorySimilarityIndex
from tiermem.core.similarity.qdrant import QdrantSimilarityIndex
from tiermem.utils.exceptions import ConfigurationError


class SimilarityIndexFactory:
    """Factory for creating similarity index backends from configuration."""

    @staticmethod
    def create(config: Config) -> SimilarityIndex:
        backend = config.similarity.backend
        if backend == "qdrant":
            qdrant = config.qdrant
            return QdrantSimilarityIndex(
                url=qdrant.url,
                collection_prefix=qdrant.collection_prefix,
                use_grpc=qdrant.use_grpc,
                use_quantization=qdrant.use_quantization,
                hnsw_m=qdrant.hnsw_m,
                hnsw_ef_construct=qdrant.hnsw_ef_construct,
                on_disk=qdrant.on_disk,
                timeout=qdrant.timeout,
            )
        elif backend == "memory":
            return InMemorySimilarityIndex()
        else:
            raise ConfigurationError(f"Unsupported similarity backend: {backend}")
