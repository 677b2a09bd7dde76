"""
Embedder abstraction layer for text embeddings.

Supported providers:
- Ollama (native SDK)
- OpenAI (official SDK)

`CachedEmbedder` wraps either with an exact-text TTL cache.
"""

from tiermem.core.embeddings.base import Embedder
from tiermem.core.embeddings.cached import CachedEmbedder
from tiermem.core.embeddings.ollama import OllamaEmbedder
from tiermem.core.embeddings.openai import OpenAIEmbedder

__all__ = [
    "Embedder",
    "CachedEmbedder",
    "OllamaEmbedder",
    "OpenAIEmbedder",
]
