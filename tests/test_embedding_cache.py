"""
Test Embedding Cache

Verifies that embedding caching works correctly and reduces API calls.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from memory_index.llm.client import LLMClient


def _embedding_response(*vectors):
    return MagicMock(data=[MagicMock(embedding=v) for v in vectors], usage=None)


@pytest.fixture
def client():
    """LLMClient whose embeddings endpoint is mocked."""
    client = LLMClient(api_key="test-key", enable_embedding_cache=True)
    client.client.embeddings = MagicMock()
    client.client.embeddings.create = AsyncMock(return_value=_embedding_response([0.1] * 1536))
    return client


class TestEmbeddingCache:
    """Tests for embedding cache functionality."""

    @pytest.mark.asyncio
    async def test_cache_hit(self, client):
        """Repeated texts are served from the cache."""
        text = "They work night shifts at the hospital"

        first = await client.generate_embedding(text)
        second = await client.generate_embedding(text)
        third = await client.generate_embedding(text)

        assert first == second == third == [0.1] * 1536
        assert client.client.embeddings.create.call_count == 1
        assert client._cache_misses == 1
        assert client._cache_hits == 2

    @pytest.mark.asyncio
    async def test_cache_miss(self, client):
        """Different texts call the API."""
        client.client.embeddings.create = AsyncMock(side_effect=[
            _embedding_response([0.1] * 1536),
            _embedding_response([0.2] * 1536),
        ])

        first = await client.generate_embedding("Current Work. Works as a nurse.")
        second = await client.generate_embedding("Friendships. Has a small circle.")

        assert first == [0.1] * 1536
        assert second == [0.2] * 1536
        assert client.client.embeddings.create.call_count == 2
        assert client._cache_misses == 2
        assert client._cache_hits == 0

    @pytest.mark.asyncio
    async def test_lru_eviction(self):
        """The least recently used entry is evicted when the cache is full."""
        client = LLMClient(api_key="test-key", enable_embedding_cache=True, max_cache_size=3)
        client.client.embeddings = MagicMock()
        client.client.embeddings.create = AsyncMock(return_value=_embedding_response([0.1] * 8))

        await client.generate_embedding("text1")
        await client.generate_embedding("text2")
        await client.generate_embedding("text3")
        await client.generate_embedding("text1")  # refresh text1
        await client.generate_embedding("text4")

        assert len(client._embedding_cache) == 3
        assert "text2" not in client._embedding_cache
        assert "text1" in client._embedding_cache
        assert "text4" in client._embedding_cache

    @pytest.mark.asyncio
    async def test_cache_stats(self, client):
        stats = client.get_cache_stats()
        assert stats["hits"] == 0
        assert stats["hit_rate_percent"] == 0

        for _ in range(3):
            await client.generate_embedding("query")

        stats = client.get_cache_stats()
        assert stats["hits"] == 2
        assert stats["misses"] == 1
        assert stats["total_requests"] == 3
        assert stats["hit_rate_percent"] == 66.67
        assert stats["cache_size"] == 1

    @pytest.mark.asyncio
    async def test_cache_disabled(self):
        client = LLMClient(api_key="test-key", enable_embedding_cache=False)
        client.client.embeddings = MagicMock()
        client.client.embeddings.create = AsyncMock(return_value=_embedding_response([0.1] * 8))

        await client.generate_embedding("test")
        await client.generate_embedding("test")

        assert client.client.embeddings.create.call_count == 2
        assert len(client._embedding_cache) == 0

    @pytest.mark.asyncio
    async def test_clear_cache(self, client):
        await client.generate_embedding("query1")
        await client.generate_embedding("query2")
        assert len(client._embedding_cache) == 2

        client.clear_embedding_cache()

        assert len(client._embedding_cache) == 0
        assert client._cache_hits == 0
        assert client._cache_misses == 0

    @pytest.mark.asyncio
    async def test_degenerate_vectors_not_cached(self, client):
        client.client.embeddings.create = AsyncMock(return_value=_embedding_response([]))

        assert await client.generate_embedding("empty") == []
        assert "empty" not in client._embedding_cache


class TestBatchEmbedding:
    """Tests for batch_generate_embeddings."""

    @pytest.mark.asyncio
    async def test_batch_preserves_order(self, client):
        client.client.embeddings.create = AsyncMock(
            return_value=_embedding_response([1.0], [2.0], [3.0])
        )

        result = await client.batch_generate_embeddings(["a", "b", "c"])

        assert result == [[1.0], [2.0], [3.0]]
        client.client.embeddings.create.assert_called_once()
        assert client.client.embeddings.create.call_args.kwargs["input"] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_batch_only_sends_misses(self, client):
        client.client.embeddings.create = AsyncMock(side_effect=[
            _embedding_response([2.0]),
            _embedding_response([1.0], [3.0]),
        ])
        await client.generate_embedding("b")

        result = await client.batch_generate_embeddings(["a", "b", "c"])

        assert result == [[1.0], [2.0], [3.0]]
        assert client.client.embeddings.create.call_args.kwargs["input"] == ["a", "c"]

    @pytest.mark.asyncio
    async def test_empty_batch(self, client):
        assert await client.batch_generate_embeddings([]) == []
        client.client.embeddings.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_unavailable_without_api_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        client = LLMClient(api_key=None)

        assert not client.embeddings_available
        assert await client.generate_embedding("anything") == []
        assert await client.batch_generate_embeddings(["a", "b"]) == [[], []]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
