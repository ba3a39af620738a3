"""
Unit Tests for Context Retrieval
"""

import math
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from memory_index.config import RetrievalConfig
from memory_index.models.index_document import DocumentStatus, IndexDirective, IndexDocument
from memory_index.models.retrieval import ContextRequest
from memory_index.pipelines.retrieve import RetrievePipeline, cosine_similarity, rank_score

from conftest import BASE_TIME


async def _seed(repository, code, embedding=None, status=DocumentStatus.ACTIVE, minutes=0, sources=()):
    document = IndexDocument(
        user_id="user-1",
        index_code=code,
        domain=code[0],
        title=code,
        summary=f"Summary of {code}",
        key_insights=["insight"],
        recommendations=["advice"],
        embedding=embedding,
        status=status,
        version=1,
        source_memory_ids=list(sources),
        updated_at=BASE_TIME + timedelta(minutes=minutes),
    )
    await repository.create_document(document)
    return document


@pytest.fixture
def pipeline(repository, mock_llm):
    return RetrievePipeline(repository, mock_llm)


class TestCosineSimilarity:
    """Tests for cosine_similarity."""

    @pytest.mark.parametrize("vector", [[1.0], [0.3, -2.0, 5.5], [1e-3] * 8])
    def test_self_similarity_is_one(self, vector):
        assert math.isclose(cosine_similarity(vector, vector), 1.0)

    def test_orthogonal(self):
        assert cosine_similarity([1, 0], [0, 1]) == 0.0

    @pytest.mark.parametrize("a,b", [
        ([], []),
        ([0, 0], [1, 1]),
        ([1, 1], [0, 0]),
        ([1, 2], [1, 2, 3]),
    ])
    def test_degenerate_vectors(self, a, b):
        assert cosine_similarity(a, b) == 0.0

    def test_rank_score(self):
        assert rank_score(0) == 1.0
        assert math.isclose(rank_score(3), 0.7)
        assert rank_score(12) == 0.0


class TestDirectRetrieval:
    """Tests for retrieval by index code."""

    @pytest.mark.asyncio
    async def test_unknown_codes_are_dropped(self, pipeline, repository):
        await _seed(repository, "A001")

        package = await pipeline.execute(ContextRequest(user_id="user-1", index_codes=["A001", "Z999"]))

        assert package.retrieval_mode == "direct"
        assert [d.index_code for d in package.documents] == ["A001"]
        assert package.relevance_scores == {"A001": 1.0}

    @pytest.mark.asyncio
    async def test_request_order_and_active_only(self, pipeline, repository):
        await _seed(repository, "A001")
        await _seed(repository, "C001")
        await _seed(repository, "B001", status=DocumentStatus.DRAFT)

        package = await pipeline.execute(
            ContextRequest(user_id="user-1", index_codes=["C001", "B001", "A001", "C001"])
        )

        assert [d.index_code for d in package.documents] == ["C001", "A001"]
        assert package.context_block.startswith("CONTEXT PROFILE:\n[C001] Current Work:")

    @pytest.mark.asyncio
    async def test_bounded_by_max_documents(self, pipeline, repository):
        for code in ("A001", "A002", "A003"):
            await _seed(repository, code)

        package = await pipeline.execute(
            ContextRequest(user_id="user-1", index_codes=["A001", "A002", "A003"], max_documents=2)
        )

        assert len(package.documents) == 2


class TestSemanticRetrieval:
    """Tests for query-based retrieval."""

    @pytest.mark.asyncio
    async def test_ranked_by_similarity(self, pipeline, repository):
        await _seed(repository, "A001", embedding=[1.0, 0.0])
        await _seed(repository, "C001", embedding=[0.8, 0.6])
        await _seed(repository, "B001", embedding=[0.0, 1.0])
        await _seed(repository, "D001")

        package = await pipeline.execute(ContextRequest(user_id="user-1", query_embedding=[0.9, 0.1]))

        assert package.retrieval_mode == "semantic"
        # B001 falls under the similarity threshold, D001 has no embedding
        assert [d.index_code for d in package.documents] == ["A001", "C001"]

    @pytest.mark.asyncio
    async def test_query_is_embedded(self, pipeline, repository, mock_llm):
        await _seed(repository, "A001", embedding=[0.1, 0.2, 0.3])

        package = await pipeline.execute(ContextRequest(user_id="user-1", query="what do they value?"))

        mock_llm.generate_embedding.assert_awaited_once_with("what do they value?")
        assert [d.index_code for d in package.documents] == ["A001"]

    @pytest.mark.asyncio
    async def test_domain_filter(self, pipeline, repository):
        await _seed(repository, "A001", embedding=[1.0, 0.0])
        await _seed(repository, "C001", embedding=[1.0, 0.0])

        package = await pipeline.execute(
            ContextRequest(user_id="user-1", query_embedding=[1.0, 0.0], domains=["C"])
        )

        assert [d.index_code for d in package.documents] == ["C001"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("embedding_reply", [[], [0.0, 0.0, 0.0]])
    async def test_unusable_embedding_falls_back(self, pipeline, repository, mock_llm, embedding_reply):
        await _seed(repository, "C001", embedding=[1.0, 0.0])
        mock_llm.generate_embedding = AsyncMock(return_value=embedding_reply)

        package = await pipeline.execute(ContextRequest(user_id="user-1", query="work"))

        assert package.retrieval_mode == "default"
        assert [d.index_code for d in package.documents] == ["C001"]

    @pytest.mark.asyncio
    async def test_embedding_error_falls_back(self, pipeline, repository, mock_llm):
        await _seed(repository, "C001")
        mock_llm.generate_embedding = AsyncMock(side_effect=RuntimeError("timeout"))

        package = await pipeline.execute(ContextRequest(user_id="user-1", query="work"))

        assert package.retrieval_mode == "default"
        assert len(package.documents) == 1

    @pytest.mark.asyncio
    async def test_bounded_by_max_documents(self, repository, mock_llm):
        for code in ("A001", "A002", "A003", "A004"):
            await _seed(repository, code, embedding=[1.0, 1.0])
        pipeline = RetrievePipeline(repository, mock_llm, RetrievalConfig(max_documents=3))

        package = await pipeline.execute(ContextRequest(user_id="user-1", query_embedding=[1.0, 1.0]))

        assert len(package.documents) == 3


class TestDefaultRetrieval:
    """Tests for priority-based retrieval."""

    @pytest.mark.asyncio
    async def test_priority_then_recency(self, pipeline, repository):
        await _seed(repository, "H001", minutes=30)   # priority 7
        await _seed(repository, "A001", minutes=0)    # priority 10
        await _seed(repository, "E002", minutes=10)   # priority 10
        await _seed(repository, "C001", minutes=20)   # priority 8
        await _seed(repository, "B001", status=DocumentStatus.STALE)

        package = await pipeline.execute(ContextRequest(user_id="user-1"))

        assert package.retrieval_mode == "default"
        assert [d.index_code for d in package.documents] == ["E002", "A001", "C001", "H001"]
        assert package.relevance_scores["H001"] == pytest.approx(0.7)

    @pytest.mark.asyncio
    async def test_bounded_by_max_documents(self, pipeline, repository):
        for code in ("A001", "A002", "A003", "A004", "A005", "B001", "B002"):
            await _seed(repository, code)

        package = await pipeline.execute(ContextRequest(user_id="user-1"))

        assert len(package.documents) == 5

    @pytest.mark.asyncio
    async def test_no_documents(self, pipeline):
        package = await pipeline.execute(ContextRequest(user_id="nobody"))
        assert package.documents == []
        assert package.context_block == ""

    @pytest.mark.asyncio
    async def test_directives_attached(self, pipeline, repository, make_memory):
        memory = make_memory()
        await repository.upsert_directive(
            IndexDirective(memory_id=memory.id, user_id="user-1", primary_index_code="C001")
        )
        await _seed(repository, "C001", sources=[memory.id])

        package = await pipeline.execute(ContextRequest(user_id="user-1"))

        assert [d.memory_id for d in package.directives] == [memory.id]
