"""
Unit Tests for LLM Client

Tests LLM client logic using mocks. Does not require OpenAI API key.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from memory_index.config import EmbeddingConfig, LLMConfig
from memory_index.exceptions import CollaboratorUnavailableError, LLMResponseError
from memory_index.llm.client import LLMClient


def _chat_response(content):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    response.usage = MagicMock(prompt_tokens=100, completion_tokens=50, total_tokens=150)
    return response


class TestLLMClient:
    """Unit tests for LLMClient."""

    @pytest.fixture
    def mock_llm_client(self):
        """Create an LLM client with a mocked chat endpoint."""
        client = LLMClient(api_key="mock-key", model="gpt-4o-mini", classify_model="gpt-4o")
        client.client.chat = MagicMock()
        client.client.chat.completions.create = AsyncMock()
        return client

    @pytest.mark.asyncio
    async def test_classify_memory_returns_raw_object(self, mock_llm_client):
        mock_llm_client.client.chat.completions.create.return_value = _chat_response(json.dumps({
            "primaryIndex": "C001",
            "relatedIndices": ["C003"],
            "confidence": 0.9,
            "reasoning": "Occupation",
        }))

        result = await mock_llm_client.classify_memory(
            content="I work as a nurse",
            category="fact",
            importance=6,
            category_list="C001: Career & Professional > Current Work - ...",
            people=["Dana"],
        )

        assert result["primaryIndex"] == "C001"
        kwargs = mock_llm_client.client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["response_format"] == {"type": "json_object"}
        prompt = kwargs["messages"][0]["content"]
        assert "I work as a nurse" in prompt
        assert "People involved: Dana" in prompt

    @pytest.mark.asyncio
    async def test_classify_memory_ignores_unparseable_reply(self, mock_llm_client):
        mock_llm_client.client.chat.completions.create.return_value = _chat_response("not json")

        result = await mock_llm_client.classify_memory("x", "fact", 5, "")

        assert result == {}

    @pytest.mark.asyncio
    async def test_synthesize_document_includes_prior_content(self, mock_llm_client):
        mock_llm_client.client.chat.completions.create.return_value = _chat_response(
            json.dumps({"title": "Current Work", "confidence": 0.7})
        )

        result = await mock_llm_client.synthesize_document(
            domain_name="Career & Professional",
            topic_name="Current Work",
            description="Current job",
            memory_lines=["1. [Importance: 6/10]\n   I work as a nurse"],
            prior_content="They used to be a nurse.",
        )

        assert result["title"] == "Current Work"
        prompt = mock_llm_client.client.chat.completions.create.call_args.kwargs["messages"][0]["content"]
        assert "Career & Professional > Current Work" in prompt
        assert "They used to be a nurse." in prompt
        assert "(1 total)" in prompt

    @pytest.mark.asyncio
    async def test_synthesize_document_raises_on_non_object(self, mock_llm_client):
        mock_llm_client.client.chat.completions.create.return_value = _chat_response("[1, 2]")

        with pytest.raises(LLMResponseError):
            await mock_llm_client.synthesize_document("D", "T", "desc", ["1. x"])

    @pytest.mark.asyncio
    async def test_compare_memories_lists_candidate_ids(self, mock_llm_client):
        mock_llm_client.client.chat.completions.create.return_value = _chat_response(
            json.dumps({"supersedes": ["m1"], "contradicts": [], "relatedTo": []})
        )

        result = await mock_llm_client.compare_memories(
            "I quit nursing and became a teacher",
            [("m1", "I work as a nurse"), ("m2", "I like tea")],
        )

        assert result["supersedes"] == ["m1"]
        prompt = mock_llm_client.client.chat.completions.create.call_args.kwargs["messages"][0]["content"]
        assert "[m1] I work as a nurse" in prompt
        assert "[m2] I like tea" in prompt

    @pytest.mark.asyncio
    async def test_usage_callback_receives_tokens(self):
        callback = AsyncMock()
        client = LLMClient(api_key="mock-key", usage_callback=callback)
        client.client.chat = MagicMock()
        client.client.chat.completions.create = AsyncMock(return_value=_chat_response("{}"))

        await client.compare_memories("new", [("m1", "old")])

        callback.assert_awaited_once_with("gpt-4o-mini", 100, 50, 150)

    @pytest.mark.asyncio
    async def test_chat_without_api_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        client = LLMClient(api_key=None)

        with pytest.raises(CollaboratorUnavailableError):
            await client.synthesize_document("D", "T", "desc", ["1. x"])

    def test_from_config(self):
        llm_config = LLMConfig(api_key="k", model="base", synthesis_model="writer", request_timeout_seconds=5)
        client = LLMClient.from_config(llm_config, EmbeddingConfig(max_cache_size=10, enable_cache=False))

        assert client.classify_model == "base"
        assert client.synthesis_model == "writer"
        assert client.compare_model == "base"
        assert client.max_cache_size == 10
        assert client.enable_embedding_cache is False
        assert client.embeddings_available
