"""
Factory modules for creating tiermem components.

Provides modular factories for LLM, Embedder and Similarity Index.
"""

from tiermem.core.factory.embedder_factory import EmbedderFactory
from tiermem.core.factory.llm_factory import LLMFactory
from tiermem.core.factory.similarity_factory import SimilarityIndexFactory

__all__ = [
    "LLMFactory",
    "EmbedderFactory",
    "SimilarityIndexFactory",
]
