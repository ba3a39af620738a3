"""
Retrieve Pipeline

Selects the profile documents relevant to a conversational turn.

Modes (chosen by request shape, always bounded by max_documents):
- direct: explicit index codes, active documents only, request order
- semantic: cosine similarity of the query embedding against active documents
- default: static category priority, most recently updated first on ties
"""

import logging
import math
from typing import List, Optional, Sequence, Tuple

from memory_index.config import RetrievalConfig
from memory_index.database.base import IndexRepository
from memory_index.llm.client import LLMClient
from memory_index.models.index_document import DocumentStatus, IndexDocument
from memory_index.models.memory import as_utc
from memory_index.models.retrieval import ContextPackage, ContextRequest
from memory_index.pipelines.hooks import PipelineHookManager
from memory_index.pipelines.synthesize import format_context
from memory_index.taxonomy.categories import get_category_by_code, is_valid_code

logger = logging.getLogger("memory_index.retrieve")


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors.

    Returns 0.0 instead of raising for empty, zero-magnitude or
    length-mismatched vectors.
    """
    if not a or not b or len(a) != len(b):
        return 0.0

    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def rank_score(rank: int) -> float:
    """Relevance for a 0-indexed rank: 1.0, 0.9, ... floored at 0."""
    return max(0.0, 1.0 - 0.1 * rank)


def _category_priority(document: IndexDocument) -> int:
    category = get_category_by_code(document.index_code)
    return category.priority if category else 5


class RetrievePipeline:
    """
    Pipeline for context retrieval.

    Embedding failures never surface: the request degrades to the
    default priority ranking.
    """

    def __init__(
        self,
        repository: IndexRepository,
        llm_client: LLMClient,
        config: Optional[RetrievalConfig] = None,
        hooks: Optional[PipelineHookManager] = None,
    ):
        self.repository = repository
        self.llm = llm_client
        self.config = config or RetrievalConfig()
        self.hooks = hooks or PipelineHookManager()

    async def execute(self, request: ContextRequest) -> ContextPackage:
        """
        Retrieve and package documents for a request.

        Args:
            request: Codes, query or neither, plus an optional size bound

        Returns:
            ContextPackage with at most ``max_documents`` documents
        """
        limit = request.max_documents or self.config.max_documents

        async with self.hooks.stage("rank", {"request": request}) as context:
            if request.index_codes:
                mode = "direct"
                documents = await self._direct(request.user_id, request.index_codes, limit)
            else:
                mode = "semantic"
                documents = None
                if request.query_embedding or request.query:
                    documents = await self._semantic(request, limit)
                if documents is None:
                    mode = "default"
                    documents = await self._by_priority(request.user_id, limit)
            context["mode"] = mode
            context["documents"] = documents

        memory_ids = []
        seen = set()
        for document in documents:
            for memory_id in document.source_memory_ids:
                if memory_id not in seen:
                    seen.add(memory_id)
                    memory_ids.append(memory_id)
        memory_ids = memory_ids[: self.config.directive_lookup_limit]
        directives = await self.repository.get_directives(
            memory_ids, limit=self.config.directive_lookup_limit
        )

        logger.debug(f"Retrieved {len(documents)} documents for {request.user_id} ({mode})")
        return ContextPackage(
            documents=documents,
            directives=directives,
            relevance_scores={doc.index_code: rank_score(i) for i, doc in enumerate(documents)},
            context_block=format_context(documents),
            retrieval_mode=mode,
        )

    async def _direct(self, user_id: str, codes: List[str], limit: int) -> List[IndexDocument]:
        """Existing active documents for the requested codes, in request order."""
        documents: List[IndexDocument] = []
        seen = set()
        for code in codes:
            if code in seen or not is_valid_code(code):
                continue
            seen.add(code)
            document = await self.repository.get_document(user_id, code)
            if document is not None and document.status == DocumentStatus.ACTIVE:
                documents.append(document)
            if len(documents) == limit:
                break
        return documents

    async def _semantic(self, request: ContextRequest, limit: int) -> Optional[List[IndexDocument]]:
        """
        Rank active documents by similarity to the query.

        Returns None when no usable query embedding is available, which
        sends the request to the default ranking.
        """
        query_embedding = request.query_embedding
        if not query_embedding and request.query:
            try:
                query_embedding = await self.llm.generate_embedding(request.query)
            except Exception as e:
                logger.warning(f"Query embedding failed, using priority ranking: {e}")
                return None

        if not query_embedding or not any(query_embedding):
            return None

        documents = await self.repository.list_documents(request.user_id, status=DocumentStatus.ACTIVE)
        if request.domains:
            domains = set(request.domains)
            documents = [d for d in documents if (d.domain or d.index_code[0]) in domains]

        scored: List[Tuple[float, IndexDocument]] = []
        for document in documents:
            if not document.embedding:
                continue
            similarity = cosine_similarity(query_embedding, document.embedding)
            if similarity > self.config.similarity_threshold:
                scored.append((similarity, document))

        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [document for _, document in scored[:limit]]

    async def _by_priority(self, user_id: str, limit: int) -> List[IndexDocument]:
        documents = await self.repository.list_documents(user_id, status=DocumentStatus.ACTIVE)
        documents.sort(key=lambda d: as_utc(d.updated_at), reverse=True)
        documents.sort(key=_category_priority, reverse=True)
        return documents[:limit]
