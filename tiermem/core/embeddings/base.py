"""
Abstract base class for embedding providers.
Turns memory text into vectors for similarity search and topic clustering.
"""

from abc import ABC, abstractmethod


class Embedder(ABC):
    """
    Abstract base for embedding providers.

    Responsibilities:
    - Generate vector embeddings for text
    - Consistent vector dimensions across calls
    """

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """
        Generate embedding vector for text.

        Args:
            text: Text to embed

        Returns:
            List of floats representing the embedding vector

        Raises:
            ValidationError: If text is empty
            EmbeddingError: If embedding generation fails
        """
        pass

    async def batch_embed(self, texts: list[str]) -> list[list[float]]:
        """
        Generate embeddings for multiple texts, in input order.

        Default implementation processes sequentially.
        """
        return [await self.embed(text) for text in texts]

    async def get_dimension(self) -> int:
        """Embedding dimension, detected by embedding a probe string."""
        return len(await self.embed("dimension probe"))

    async def close(self) -> None:
        """Release client resources."""
        return None
