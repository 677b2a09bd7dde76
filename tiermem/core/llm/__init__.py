"""
LLM provider abstraction layer.

Supported providers:
- Ollama (native SDK)
- OpenAI (official SDK)
"""

from tiermem.core.llm.base import LLMProvider
from tiermem.core.llm.ollama import OllamaLLM
from tiermem.core.llm.openai import OpenAILLM

__all__ = [
    "LLMProvider",
    "OllamaLLM",
    "OpenAILLM",
]
