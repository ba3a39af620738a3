"""
Memory Index - Main Engine Implementation

Wires the repository, collaborators and pipelines into one facade. Every
dependency can be injected; anything not injected is built from the
configuration.
"""

import logging
from typing import Dict, List, Optional

from memory_index.agent.knowledge_profile import KnowledgeProfileService, RandomSource
from memory_index.config import IndexConfig, load_config
from memory_index.database.base import IndexRepository
from memory_index.database.repository import PostgresIndexRepository
from memory_index.database.schema import DatabaseSchema
from memory_index.engine.base import MemoryIndexEngine
from memory_index.engine.lifecycle import DocumentLifecycleManager
from memory_index.llm.client import LLMClient
from memory_index.models.index_document import IndexDocument, IndexingResult, IngestResult
from memory_index.models.knowledge import KnowledgeProfile, OnboardingContext
from memory_index.models.memory import Memory
from memory_index.models.retrieval import ContextPackage, ContextRequest
from memory_index.pipelines.classify import MemoryClassifier
from memory_index.pipelines.conflicts import ConflictResolver
from memory_index.pipelines.hooks import PipelineHookManager
from memory_index.pipelines.index import IndexPipeline
from memory_index.pipelines.retrieve import RetrievePipeline
from memory_index.pipelines.synthesize import SynthesisEngine
from memory_index.vault.base import DocumentSyncService
from memory_index.vault.markdown_vault import MarkdownVault

logger = logging.getLogger("memory_index.engine")


class MemoryIndex(MemoryIndexEngine):
    """
    Hierarchical memory index for a conversational companion.

    Usage:
        index = MemoryIndex()
        await index.initialize()

        result = await index.ingest_memory(memory)
        package = await index.retrieve_context(ContextRequest(user_id="u1", query="work stress"))

        await index.close()

    Args:
        config: Configuration. Loaded with ``load_config()`` if not provided.
        repository: Storage backend. Defaults to PostgreSQL from ``config.database``.
        llm_client: Text/embedding collaborator. Defaults to ``LLMClient.from_config``.
        sync_service: Export target. Defaults to a MarkdownVault when ``config.vault.enabled``.
        hooks: Shared stage hooks for all pipelines.
    """

    def __init__(
        self,
        config: Optional[IndexConfig] = None,
        repository: Optional[IndexRepository] = None,
        llm_client: Optional[LLMClient] = None,
        sync_service: Optional[DocumentSyncService] = None,
        hooks: Optional[PipelineHookManager] = None,
    ):
        self.config = config or load_config()

        self.schema: Optional[DatabaseSchema] = None
        if repository is None:
            connection_string = self.config.database.connection_string
            self.schema = DatabaseSchema(connection_string)
            repository = PostgresIndexRepository(
                connection_string,
                min_size=self.config.database.min_pool_size,
                max_size=self.config.database.max_pool_size,
            )
        self.repository = repository

        self.llm = llm_client or LLMClient.from_config(self.config.llm, self.config.embedding)

        if sync_service is None and self.config.vault.enabled:
            sync_service = MarkdownVault(self.config.vault.base_path)
        self.sync_service = sync_service
        self.vault = sync_service if isinstance(sync_service, MarkdownVault) else None

        self.hooks = hooks or PipelineHookManager()

        self.lifecycle = DocumentLifecycleManager(
            repository=self.repository,
            synthesis=SynthesisEngine(self.llm),
            llm_client=self.llm,
            staleness=self.config.staleness,
            indexing=self.config.indexing,
            sync_service=self.sync_service,
            hooks=self.hooks,
        )
        self.classifier = MemoryClassifier(self.llm)
        self.conflicts = ConflictResolver(self.repository, self.llm, self.config.indexing)
        self.knowledge = KnowledgeProfileService(self.repository)

        self._index_pipeline = IndexPipeline(
            repository=self.repository,
            classifier=self.classifier,
            lifecycle=self.lifecycle,
            config=self.config.indexing,
            hooks=self.hooks,
        )
        self._retrieve_pipeline = RetrievePipeline(
            repository=self.repository,
            llm_client=self.llm,
            config=self.config.retrieval,
            hooks=self.hooks,
        )

        self._initialized = False

    async def initialize(self) -> None:
        """
        Prepare storage and the export target.

        - Creates the database schema (when this instance owns the database)
        - Opens the repository's connections
        - Creates the vault directory
        """
        if self._initialized:
            return

        if self.schema is not None:
            await self.schema.initialize()
        await self.repository.connect()
        if self.vault is not None:
            await self.vault.initialize()

        self._initialized = True
        logger.info("Memory index initialized")

    async def close(self) -> None:
        await self.repository.disconnect()
        self._initialized = False

    # ========== Ingestion ==========

    async def ingest_memory(self, memory: Memory) -> IngestResult:
        """
        Store a new memory, relate it to existing ones, then index it.

        Ids of the memories it supersedes or relates to are stamped on the
        new memory's metadata.
        """
        memory = await self.repository.save_memory(memory)

        conflicts = await self.conflicts.resolve(memory)
        if conflicts.supersedes or conflicts.related_to:
            metadata = memory.metadata.model_copy(update={
                "supersedes": [str(memory_id) for memory_id in conflicts.supersedes],
                "related_to": [str(memory_id) for memory_id in conflicts.related_to],
            })
            await self.repository.update_memory_metadata(memory.id, metadata)
            memory = memory.model_copy(update={"metadata": metadata})

        indexing = await self._index_pipeline.execute(memory)
        return IngestResult(memory=memory, conflicts=conflicts, indexing=indexing)

    async def index_memory(self, memory: Memory) -> IndexingResult:
        return await self._index_pipeline.execute(memory)

    async def index_memories(self, memories: List[Memory]) -> Dict:
        """Batch-classify stored memories with bounded concurrency."""
        return await self._index_pipeline.execute_batch(memories)

    # ========== Retrieval ==========

    async def retrieve_context(self, request: ContextRequest) -> ContextPackage:
        return await self._retrieve_pipeline.execute(request)

    # ========== Documents ==========

    async def regenerate_document(self, user_id: str, index_code: str, force: bool = False) -> IndexDocument:
        return await self.lifecycle.regenerate_document(user_id, index_code, force=force)

    async def regenerate_stale_documents(self, user_id: str) -> List[str]:
        return await self.lifecycle.regenerate_stale_documents(user_id)

    async def get_index_stats(self, user_id: str) -> dict:
        return await self.lifecycle.get_index_stats(user_id)

    async def sync_documents(self, user_id: str) -> dict:
        """Export all active documents of a user."""
        return await self.lifecycle.sync_all_documents(user_id)

    # ========== Onboarding ==========

    async def record_message(self, user_id: str) -> KnowledgeProfile:
        return await self.knowledge.record_message(user_id)

    async def onboarding_context(self, user_id: str, rng: RandomSource) -> OnboardingContext:
        return await self.knowledge.onboarding_context(user_id, rng)

    async def __aenter__(self):
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
