"""
Tests for Ollama LLM provider.
"""

from unittest.mock import AsyncMock, patch

import pytest
from pydantic import BaseModel

from tiermem.core.llm.ollama import OllamaLLM
from tiermem.utils.exceptions import LLMError, ValidationError


class SimpleResponse(BaseModel):
    """Test response model."""

    answer: str
    confidence: float
    reasoning: str


@pytest.fixture
def ollama_llm():
    """Create Ollama LLM for testing."""
    return OllamaLLM(host="http://localhost:11434", model="llama3.1:8b", timeout=120.0)


@pytest.mark.unit
class TestOllamaLLM:
    """Test Ollama LLM provider."""

    async def test_initialization(self, ollama_llm):
        assert ollama_llm.host == "http://localhost:11434"
        assert ollama_llm.model == "llama3.1:8b"
        assert ollama_llm.options == {"temperature": 0.0, "num_predict": 2000}
        assert ollama_llm.client is not None

    async def test_complete_simple(self, ollama_llm):
        with patch.object(ollama_llm.client, "chat", new_callable=AsyncMock) as mock_chat:
            mock_chat.return_value = {"message": {"content": "Paris is the capital"}}

            result = await ollama_llm.complete("What is the capital of France?")

            assert result == "Paris is the capital"
            call_args = mock_chat.call_args
            assert call_args.kwargs["format"] is None
            assert call_args.kwargs["messages"] == [
                {"role": "user", "content": "What is the capital of France?"}
            ]

    async def test_complete_with_system(self, ollama_llm):
        with patch.object(ollama_llm.client, "chat", new_callable=AsyncMock) as mock_chat:
            mock_chat.return_value = {"message": {"content": "test"}}

            await ollama_llm.complete("test", system="Be brief")

            messages = mock_chat.call_args.kwargs["messages"]
            assert messages[0] == {"role": "system", "content": "Be brief"}

    async def test_complete_structured(self, ollama_llm):
        json_response = '{"answer": "yes", "confidence": 0.95, "reasoning": "because"}'

        with patch.object(ollama_llm.client, "chat", new_callable=AsyncMock) as mock_chat:
            mock_chat.return_value = {"message": {"content": json_response}}

            result = await ollama_llm.complete_structured("Is Python good?", SimpleResponse)

            assert result == SimpleResponse(answer="yes", confidence=0.95, reasoning="because")
            assert mock_chat.call_args.kwargs["format"] == SimpleResponse.model_json_schema()

    async def test_complete_structured_in_code_fence(self, ollama_llm):
        fenced = '```json\n{"answer": "no", "confidence": 0.1, "reasoning": "r"}\n```'

        with patch.object(ollama_llm.client, "chat", new_callable=AsyncMock) as mock_chat:
            mock_chat.return_value = {"message": {"content": fenced}}

            result = await ollama_llm.complete_structured("q", SimpleResponse)

            assert result.answer == "no"

    async def test_complete_structured_invalid(self, ollama_llm):
        with patch.object(ollama_llm.client, "chat", new_callable=AsyncMock) as mock_chat:
            mock_chat.return_value = {"message": {"content": '{"answer": "yes"}'}}

            with pytest.raises(LLMError):
                await ollama_llm.complete_structured("q", SimpleResponse)

    async def test_empty_prompt(self, ollama_llm):
        with pytest.raises(ValidationError):
            await ollama_llm.complete("  ")

    async def test_api_error(self, ollama_llm):
        with patch.object(ollama_llm.client, "chat", new_callable=AsyncMock) as mock_chat:
            mock_chat.side_effect = ConnectionError("connection refused")

            with pytest.raises(LLMError):
                await ollama_llm.complete("test")

    async def test_empty_content(self, ollama_llm):
        with patch.object(ollama_llm.client, "chat", new_callable=AsyncMock) as mock_chat:
            mock_chat.return_value = {"message": {"content": ""}}

            with pytest.raises(LLMError):
                await ollama_llm.complete("test")
