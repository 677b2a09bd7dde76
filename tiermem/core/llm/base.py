"""
Abstract base class for LLM providers.
Used for entity extraction and pattern detection with structured outputs.
"""

from abc import ABC, abstractmethod
from typing import TypeVar

from pydantic import BaseModel

T = TypeVar("T", bound=BaseModel)


class LLMProvider(ABC):
    """
    Abstract base for LLM completion providers.

    Responsibilities:
    - Plain text completion
    - Structured output parsed into a pydantic model
    """

    @abstractmethod
    async def complete(self, prompt: str, system: str | None = None) -> str:
        """
        Generate a text completion.

        Raises:
            ValidationError: If the prompt is empty
            LLMError: If the provider call fails
        """
        pass

    @abstractmethod
    async def complete_structured(
        self, prompt: str, response_format: type[T], system: str | None = None
    ) -> T:
        """
        Generate a completion parsed into `response_format`.

        Raises:
            ValidationError: If the prompt is empty
            LLMError: If the provider call fails or the output does not parse
        """
        pass

    async def close(self) -> None:
        """Release client resources."""
        return None


def build_messages(prompt: str, system: str | None) -> list[dict[str, str]]:
    messages = []
    if system:
        messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": prompt})
    return messages
