"""
Ollama embedder using native ollama-python SDK.
"""

import ollama

from tiermem.core.embeddings.base import Embedder
from tiermem.utils.exceptions import EmbeddingError, ValidationError
from tiermem.utils.logger import get_logger

logger = get_logger(__name__)


class OllamaEmbedder(Embedder):
    """
    Ollama embedder for local models such as nomic-embed-text.

    Dimension is detected on first use and cached.
    """

    def __init__(
        self,
        host: str = "http://localhost:11434",
        model: str = "nomic-embed-text",
        timeout: float = 120.0,
        dimension: int | None = None,
    ):
        self.host = host
        self.model = model
        self._dimension = dimension
        self.client = ollama.AsyncClient(host=host, timeout=timeout)

    async def _embed_inputs(self, inputs: str | list[str]) -> list[list[float]]:
        try:
            response = await self.client.embed(model=self.model, input=inputs)
        except Exception as e:
            logger.error(
                "Ollama embedding error",
                extra={"error": str(e), "model": self.model, "host": self.host},
            )
            raise EmbeddingError(f"Ollama embedding error: {e}") from e

        embeddings = response["embeddings"] if response else None
        if not embeddings:
            raise EmbeddingError("Ollama returned invalid embedding response")
        return [list(vector) for vector in embeddings]

    async def embed(self, text: str) -> list[float]:
        if not text or not text.strip():
            raise ValidationError("Text cannot be empty")
        return (await self._embed_inputs(text))[0]

    async def batch_embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        return await self._embed_inputs(texts)

    async def get_dimension(self) -> int:
        if self._dimension is None:
            self._dimension = await super().get_dimension()
        return self._dimension
