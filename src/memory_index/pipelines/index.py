"""
Index Pipeline

Turns classified memories into index state:
1. Classify the memory into the taxonomy
2. Upsert its directive
3. Get or create the document for every classified code
4. Create the memory -> document mappings (flagging documents for regeneration)

Re-running the pipeline for the same memory is idempotent: the directive
is replaced and existing mappings are left untouched.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Dict, List, Optional
from uuid import UUID

from memory_index.config import IndexingConfig
from memory_index.database.base import IndexRepository
from memory_index.models.index_document import (
    Classification,
    Contribution,
    IndexDirective,
    IndexingResult,
    MemoryIndexMapping,
    priority_for_importance,
)
from memory_index.models.memory import Memory
from memory_index.pipelines.classify import MemoryClassifier
from memory_index.pipelines.hooks import PipelineHookManager

if TYPE_CHECKING:
    from memory_index.engine.lifecycle import DocumentLifecycleManager

logger = logging.getLogger("memory_index.pipeline")


class IndexPipeline:
    """
    Pipeline for indexing new memories.

    Flow:
    Memory → Classification → Directive upsert →
    Document get-or-create → Mapping creation
    """

    def __init__(
        self,
        repository: IndexRepository,
        classifier: MemoryClassifier,
        lifecycle: "DocumentLifecycleManager",
        config: Optional[IndexingConfig] = None,
        hooks: Optional[PipelineHookManager] = None,
    ):
        self.repository = repository
        self.classifier = classifier
        self.lifecycle = lifecycle
        self.config = config or IndexingConfig()
        self.hooks = hooks or PipelineHookManager()

    async def execute(self, memory: Memory) -> IndexingResult:
        """
        Index a single memory.

        Args:
            memory: A memory already persisted by the ingesting pipeline

        Returns:
            The directive written and the codes whose documents gained a mapping
        """
        async with self.hooks.stage("classify", {"memory": memory}) as context:
            classification = await self.classifier.classify(memory)
            context["classification"] = classification

        return await self._apply(memory, classification)

    async def execute_batch(self, memories: List[Memory]) -> Dict[UUID, IndexingResult]:
        """
        Index many memories.

        Classification fans out under ``classification_concurrency``;
        writes are applied one memory at a time in input order.
        """
        if not memories:
            return {}

        semaphore = asyncio.Semaphore(self.config.classification_concurrency)

        async def classify_one(memory: Memory) -> Classification:
            async with semaphore:
                return await self.classifier.classify(memory)

        async with self.hooks.stage("classify", {"memories": memories}) as context:
            classifications = await asyncio.gather(*(classify_one(m) for m in memories))
            context["classifications"] = classifications

        results: Dict[UUID, IndexingResult] = {}
        for memory, classification in zip(memories, classifications):
            results[memory.id] = await self._apply(memory, classification)

        logger.info(f"Indexed {len(results)} memories")
        return results

    async def _apply(self, memory: Memory, classification: Classification) -> IndexingResult:
        async with self.hooks.stage("directive", {"memory": memory}) as context:
            directive = await self.repository.upsert_directive(
                IndexDirective(
                    memory_id=memory.id,
                    user_id=memory.user_id,
                    primary_index_code=classification.primary_index,
                    related_index_codes=classification.related_indices,
                    confidence=classification.confidence,
                    retrieval_priority=priority_for_importance(memory.importance),
                )
            )
            context["directive"] = directive

        affected_codes: List[str] = []
        async with self.hooks.stage("map", {"memory": memory}) as context:
            for code in classification.all_codes:
                document = await self.lifecycle.get_or_create_document(memory.user_id, code)
                contribution = (
                    Contribution.PRIMARY if code == classification.primary_index
                    else Contribution.SUPPORTING
                )
                created = await self.repository.create_mapping(
                    MemoryIndexMapping(
                        memory_id=memory.id,
                        index_document_id=document.id,
                        contribution=contribution,
                        relevance_score=classification.confidence,
                    )
                )
                if created:
                    affected_codes.append(code)
            context["affected_codes"] = affected_codes

        logger.debug(
            f"Memory {memory.id} indexed under {classification.primary_index}"
            f" (+{len(classification.related_indices)} related), new mappings: {affected_codes}"
        )
        return IndexingResult(
            memory_id=memory.id,
            directive=directive,
            classification=classification,
            affected_codes=affected_codes,
        )
