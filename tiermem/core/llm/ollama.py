"""
Ollama LLM provider using native ollama-python SDK.
"""

import ollama
from pydantic import ValidationError as PydanticValidationError

from tiermem.core.llm.base import LLMProvider, T, build_messages
from tiermem.utils.exceptions import LLMError, ValidationError
from tiermem.utils.logger import get_logger

logger = get_logger(__name__)


class OllamaLLM(LLMProvider):
    """
    Ollama LLM provider.

    Structured output passes the model's JSON schema as the `format` option.
    """

    def __init__(
        self,
        host: str = "http://localhost:11434",
        model: str = "llama3.1:8b",
        timeout: float = 120.0,
        temperature: float = 0.0,
        max_tokens: int = 2000,
    ):
        self.host = host
        self.model = model
        self.options = {"temperature": temperature, "num_predict": max_tokens}
        self.client = ollama.AsyncClient(host=host, timeout=timeout)

    async def _chat(self, prompt: str, system: str | None, format_schema: dict | None) -> str:
        if not prompt or not prompt.strip():
            raise ValidationError("Prompt cannot be empty")

        try:
            response = await self.client.chat(
                model=self.model,
                messages=build_messages(prompt, system),
                format=format_schema,
                options=self.options,
            )
        except Exception as e:
            logger.error(
                "Ollama API error",
                extra={"error": str(e), "model": self.model, "host": self.host, "error_type": type(e).__name__},
            )
            raise LLMError(f"Ollama API error: {e}") from e

        content = response["message"]["content"]
        if not content:
            raise LLMError("Ollama returned empty content")
        return content

    async def complete(self, prompt: str, system: str | None = None) -> str:
        return await self._chat(prompt, system, None)

    async def complete_structured(
        self, prompt: str, response_format: type[T], system: str | None = None
    ) -> T:
        content = await self._chat(prompt, system, response_format.model_json_schema())
        try:
            return response_format.model_validate_json(self._extract_json(content))
        except PydanticValidationError as e:
            raise LLMError(
                f"Failed to parse structured output as {response_format.__name__}: {e}",
                context={"raw": content[:500]},
            ) from e

    @staticmethod
    def _extract_json(content: str) -> str:
        """Strip a markdown code fence if the model wrapped its JSON in one."""
        content = content.strip()
        if "```json" in content:
            content = content.split("```json")[1].split("```")[0].strip()
        elif content.startswith("```"):
            content = content.split("```")[1].split("```")[0].strip()
        return content
