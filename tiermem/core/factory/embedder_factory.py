"""
Factory for creating embedder providers.
"""

from tiermem.config import EmbedderConfig, EmbeddingCacheConfig
from tiermem.core.embeddings.base import Embedder
from tiermem.core.embeddings.cached import CachedEmbedder
from tiermem.core.embeddings.ollama import OllamaEmbedder
from tiermem.core.embeddings.openai import OpenAIEmbedder
from tiermem.utils.exceptions import ConfigurationError


class EmbedderFactory:
    """Factory for creating embedder providers from configuration."""

    @staticmethod
    def create(config: EmbedderConfig, cache: EmbeddingCacheConfig | None = None) -> Embedder:
        """
        Create embedder from configuration, wrapped in the TTL cache when enabled.

        Raises:
            ConfigurationError: If provider is not supported or misconfigured
        """
        if config.provider == "ollama":
            embedder: Embedder = OllamaEmbedder(
                host=config.base_url,
                model=config.model,
                timeout=config.timeout,
                dimension=config.dimension,
            )
        elif config.provider == "openai":
            if not config.api_key:
                raise ConfigurationError("OpenAI API key is required")
            embedder = OpenAIEmbedder(
                api_key=config.api_key,
                model=config.model,
                timeout=config.timeout,
                dimension=config.dimension,
            )
        else:
            raise ConfigurationError(f"Unsupported embedder provider: {config.provider}")

        if cache is not None and cache.enabled:
            return CachedEmbedder(
                embedder, ttl_seconds=cache.ttl_seconds, max_entries=cache.max_entries
            )
        return embedder
