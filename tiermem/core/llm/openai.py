"""
OpenAI LLM provider using official SDK.
"""

from openai import AsyncOpenAI

from tiermem.core.llm.base import LLMProvider, T, build_messages
from tiermem.utils.exceptions import LLMError, ValidationError
from tiermem.utils.logger import get_logger

logger = get_logger(__name__)


class OpenAILLM(LLMProvider):
    """
    OpenAI LLM provider.

    Uses native structured outputs (Parse API) for extraction and pattern detection.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        timeout: float = 120.0,
        temperature: float = 0.0,
        max_tokens: int = 2000,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    def _params(self, prompt: str, system: str | None) -> dict:
        if not prompt or not prompt.strip():
            raise ValidationError("Prompt cannot be empty")
        return {
            "model": self.model,
            "messages": build_messages(prompt, system),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

    async def complete(self, prompt: str, system: str | None = None) -> str:
        params = self._params(prompt, system)
        try:
            response = await self.client.chat.completions.create(**params)
        except Exception as e:
            logger.error(
                "OpenAI API error",
                extra={"error": str(e), "model": self.model, "error_type": type(e).__name__},
            )
            raise LLMError(f"OpenAI API error: {e}") from e

        content = response.choices[0].message.content
        if not content:
            raise LLMError("OpenAI returned empty content")
        return content

    async def complete_structured(
        self, prompt: str, response_format: type[T], system: str | None = None
    ) -> T:
        params = self._params(prompt, system)
        try:
            response = await self.client.beta.chat.completions.parse(
                **params, response_format=response_format
            )
        except Exception as e:
            logger.error(
                "OpenAI API error",
                extra={
                    "error": str(e),
                    "model": self.model,
                    "response_format": response_format.__name__,
                    "error_type": type(e).__name__,
                },
            )
            raise LLMError(f"OpenAI API error: {e}") from e

        parsed = response.choices[0].message.parsed
        if parsed is None:
            raise LLMError("OpenAI returned empty parsed response")
        return parsed

    async def close(self) -> None:
        await self.client.close()
