"""
OpenAI embedder using official SDK.
"""

from openai import AsyncOpenAI

from tiermem.core.embeddings.base import Embedder
from tiermem.utils.exceptions import EmbeddingError, ValidationError
from tiermem.utils.logger import get_logger

logger = get_logger(__name__)


class OpenAIEmbedder(Embedder):
    """
    OpenAI embedder for memory text.

    The default model produces 1536-dimensional vectors.
    """

    _MODEL_DIMENSIONS = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        base_url: str | None = None,
        timeout: float = 120.0,
        dimension: int | None = None,
    ):
        self.model = model
        self._dimension = dimension
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    async def embed(self, text: str) -> list[float]:
        if not text or not text.strip():
            raise ValidationError("Text cannot be empty")

        try:
            response = await self.client.embeddings.create(model=self.model, input=text)
        except Exception as e:
            logger.error(
                "OpenAI embedding error",
                extra={"error": str(e), "model": self.model, "error_type": type(e).__name__},
            )
            raise EmbeddingError(f"OpenAI embedding error: {e}") from e

        if not response.data:
            raise EmbeddingError("OpenAI returned empty embedding response")
        return response.data[0].embedding

    async def batch_embed(self, texts: list[str]) -> list[list[float]]:
        """Single request; the API returns items in input order."""
        if not texts:
            return []

        try:
            response = await self.client.embeddings.create(model=self.model, input=texts)
        except Exception as e:
            logger.error(
                "OpenAI batch embedding error",
                extra={"error": str(e), "model": self.model, "num_texts": len(texts)},
            )
            raise EmbeddingError(f"OpenAI batch embedding error: {e}") from e

        return [item.embedding for item in response.data]

    async def get_dimension(self) -> int:
        if self._dimension:
            return self._dimension
        if self.model in self._MODEL_DIMENSIONS:
            return self._MODEL_DIMENSIONS[self.model]
        self._dimension = await super().get_dimension()
        return self._dimension

    async def close(self) -> None:
        await self.client.close()
