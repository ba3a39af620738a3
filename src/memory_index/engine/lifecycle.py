"""
Document Lifecycle Manager

Owns index document identity, regeneration and status transitions.

Regeneration of one (user_id, index_code) is serialized by an in-process
lock and guarded across processes by a version compare-and-swap on write.
A regeneration only persists after synthesis and embedding complete, so
a failed or cancelled call leaves the stored document untouched.
"""

import asyncio
import logging
import weakref
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from memory_index.config import IndexingConfig, StalenessConfig
from memory_index.database.base import IndexRepository
from memory_index.exceptions import DocumentNotFoundError, UnknownIndexCodeError
from memory_index.llm.client import LLMClient
from memory_index.models.index_document import DocumentStatus, IndexCategory, IndexDocument
from memory_index.models.memory import as_utc, utc_now
from memory_index.pipelines.hooks import PipelineHookManager
from memory_index.pipelines.synthesize import (
    SynthesisEngine,
    embedding_text,
    placeholder_result,
    should_regenerate,
)
from memory_index.taxonomy.categories import get_category_by_code, get_domain_name
from memory_index.vault.base import DocumentSyncService, SyncResult

logger = logging.getLogger("memory_index.lifecycle")


class DocumentLifecycleManager:
    """
    Creates, regenerates, retires and exports index documents.

    Args:
        repository: Storage backend
        synthesis: Engine producing document narratives
        llm_client: Embedding collaborator for synthesized documents
        staleness: Thresholds for ``should_regenerate``
        indexing: Sweep concurrency settings
        sync_service: Optional export target, used after each synthesis
        hooks: Stage hooks (synthesize, embed, persist)
        clock: Current-time source
    """

    def __init__(
        self,
        repository: IndexRepository,
        synthesis: SynthesisEngine,
        llm_client: LLMClient,
        staleness: Optional[StalenessConfig] = None,
        indexing: Optional[IndexingConfig] = None,
        sync_service: Optional[DocumentSyncService] = None,
        hooks: Optional[PipelineHookManager] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self.synthesis = synthesis
        self.llm = llm_client
        self.staleness = staleness or StalenessConfig()
        self.indexing = indexing or IndexingConfig()
        self.sync_service = sync_service
        self.hooks = hooks or PipelineHookManager()
        self.clock = clock
        self._locks = weakref.WeakValueDictionary()

    def _lock_for(self, user_id: str, index_code: str) -> asyncio.Lock:
        # Entries vanish once no holder or waiter references the lock.
        key = (user_id, index_code)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @staticmethod
    def _category(index_code: str) -> IndexCategory:
        category = get_category_by_code(index_code)
        if category is None:
            raise UnknownIndexCodeError(index_code)
        return category

    # ========== Document Access ==========

    async def get_or_create_document(self, user_id: str, index_code: str) -> IndexDocument:
        """
        Return the user's document for a code, creating a draft if absent.

        Raises:
            UnknownIndexCodeError: The code is not in the taxonomy
        """
        category = self._category(index_code)
        document, created = await self.repository.get_or_create_document(
            IndexDocument.draft(user_id, category)
        )
        if created:
            logger.debug(f"Created draft {index_code} for user {user_id}")
        return document

    async def get_document(self, user_id: str, index_code: str) -> IndexDocument:
        """
        Fetch one named document.

        Raises:
            DocumentNotFoundError: No such document exists
        """
        document = await self.repository.get_document(user_id, index_code)
        if document is None:
            raise DocumentNotFoundError(user_id, index_code)
        return document

    async def list_documents(
        self,
        user_id: str,
        domain: Optional[str] = None,
        status: Optional[DocumentStatus] = None,
        min_confidence: Optional[float] = None,
    ) -> List[IndexDocument]:
        documents = await self.repository.list_documents(user_id, status=status, domain=domain)
        if min_confidence is not None:
            documents = [d for d in documents if d.confidence >= min_confidence]
        return documents

    async def pending_changes(self, document: IndexDocument) -> Tuple[int, int]:
        """
        Mapped memories not yet synthesized into ``document``.

        Returns:
            (count, importance of the most recently created one, or 0)
        """
        sources = set(document.source_memory_ids)
        pending = [
            memory for memory in await self.repository.get_mapped_memories(document.id)
            if memory.id not in sources
        ]
        if not pending:
            return 0, 0
        latest = max(pending, key=lambda memory: as_utc(memory.created_at))
        return len(pending), latest.importance

    # ========== Regeneration ==========

    async def regenerate_document(self, user_id: str, index_code: str, force: bool = False) -> IndexDocument:
        """
        Regenerate a document from its mapped memories.

        Proceeds only if ``force`` is set, the document needs regeneration,
        or it is not active; otherwise the stored document is returned
        unchanged. Synthesis failures are logged and also return the
        stored document unchanged.

        Raises:
            UnknownIndexCodeError: The code is not in the taxonomy
            ConcurrentUpdateError: Another writer changed the document first
        """
        document, written = await self._regenerate(user_id, index_code, force)
        if written and document.status == DocumentStatus.ACTIVE:
            await self.sync_document(user_id, index_code, document=document)
        return document

    async def _regenerate(self, user_id: str, index_code: str, force: bool) -> Tuple[IndexDocument, bool]:
        category = self._category(index_code)

        async with self._lock_for(user_id, index_code):
            document = await self.get_or_create_document(user_id, index_code)
            if not (force or document.needs_regeneration or document.status != DocumentStatus.ACTIVE):
                return document, False

            memories = await self.repository.get_mapped_memories(document.id)
            now = self.clock()

            if not memories:
                placeholder = placeholder_result(category)
                updated = document.model_copy(update={
                    "title": placeholder.title,
                    "summary": placeholder.summary,
                    "content": placeholder.content,
                    "key_insights": placeholder.key_insights,
                    "patterns": placeholder.patterns,
                    "recommendations": placeholder.recommendations,
                    "confidence": 0.0,
                    "status": DocumentStatus.DRAFT.value,
                    "needs_regeneration": False,
                    "source_memory_ids": [],
                    "memory_count": 0,
                    "embedding": None,
                    "updated_at": now,
                })
                stored = await self.repository.update_document(updated, expected_version=document.version)
                logger.info(f"{index_code} for user {user_id} has no memories, stored placeholder")
                return stored, True

            try:
                async with self.hooks.stage("synthesize", {"index_code": index_code, "memories": memories}):
                    result = await self.synthesis.synthesize(category, memories, existing=document)
            except Exception as e:
                logger.error(f"Synthesis failed for {index_code} (user {user_id}): {e}")
                return document, False

            embedding = None
            async with self.hooks.stage("embed", {"index_code": index_code}):
                try:
                    embedding = await self.llm.generate_embedding(embedding_text(result)) or None
                except Exception as e:
                    logger.warning(f"Embedding failed for {index_code}, storing without one: {e}")

            memory_ids = [memory.id for memory in memories]
            updated = document.model_copy(update={
                "title": result.title,
                "summary": result.summary,
                "content": result.content,
                "key_insights": result.key_insights,
                "patterns": result.patterns,
                "recommendations": result.recommendations,
                "confidence": result.confidence,
                "embedding": embedding,
                "source_memory_ids": memory_ids,
                "memory_count": len(memory_ids),
                "version": document.version + 1,
                "status": DocumentStatus.ACTIVE.value,
                "needs_regeneration": False,
                "updated_at": now,
            })

            async with self.hooks.stage("persist", {"index_code": index_code}):
                stored = await self.repository.update_document(updated, expected_version=document.version)

        logger.info(
            f"Regenerated {index_code} for user {user_id}: version {stored.version}, "
            f"{stored.memory_count} memories, confidence {stored.confidence:.2f}"
        )
        return stored, True

    async def refresh_if_due(self, user_id: str, index_code: str) -> IndexDocument:
        """
        On-demand regeneration gated by ``should_regenerate``.

        Returns the regenerated document when due, the stored one otherwise.
        """
        document = await self.get_or_create_document(user_id, index_code)
        new_count, latest_importance = await self.pending_changes(document)
        if not should_regenerate(document, new_count, latest_importance, self.clock(), self.staleness):
            return document
        return await self.regenerate_document(user_id, index_code, force=True)

    async def regenerate_stale_documents(self, user_id: str) -> List[str]:
        """
        Sweep one user's pending documents, one at a time.

        Each candidate is checked with ``should_regenerate``; failures are
        logged and the sweep moves on.

        Returns:
            Codes that were regenerated
        """
        candidates = [
            document for document in await self.repository.list_documents(user_id)
            if document.status != DocumentStatus.ARCHIVED
            and (document.needs_regeneration or document.status == DocumentStatus.STALE)
        ]

        regenerated: List[str] = []
        for document in candidates:
            try:
                new_count, latest_importance = await self.pending_changes(document)
                if not should_regenerate(document, new_count, latest_importance, self.clock(), self.staleness):
                    continue
                stored, written = await self._regenerate(user_id, document.index_code, force=True)
            except Exception as e:
                logger.error(f"Failed to regenerate {document.index_code} for user {user_id}: {e}")
                continue
            if written:
                regenerated.append(document.index_code)
                if stored.status == DocumentStatus.ACTIVE:
                    await self.sync_document(user_id, document.index_code, document=stored)

        if regenerated:
            logger.info(f"Sweep regenerated {len(regenerated)} documents for user {user_id}")
        return regenerated

    async def regenerate_stale_for_users(self, user_ids: List[str]) -> Dict[str, List[str]]:
        """
        Sweep several users in parallel (bounded by ``sweep_user_concurrency``).

        Documents of one user are still processed sequentially.
        """
        semaphore = asyncio.Semaphore(self.indexing.sweep_user_concurrency)

        async def sweep(user_id: str) -> List[str]:
            async with semaphore:
                return await self.regenerate_stale_documents(user_id)

        outcomes = await asyncio.gather(*(sweep(u) for u in user_ids), return_exceptions=True)

        results: Dict[str, List[str]] = {}
        for user_id, outcome in zip(user_ids, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, Exception):
                logger.error(f"Sweep failed for user {user_id}: {outcome}")
                results[user_id] = []
            else:
                results[user_id] = outcome
        return results

    # ========== Status Transitions ==========

    async def mark_stale(self, user_id: str, index_codes: List[str]) -> int:
        """Flag existing documents for regeneration. Unknown codes are ignored."""
        codes = [code for code in index_codes if get_category_by_code(code) is not None]
        if not codes:
            return 0
        return await self.repository.set_document_status(
            user_id, codes, DocumentStatus.STALE, needs_regeneration=True
        )

    async def archive_document(self, user_id: str, index_code: str) -> IndexDocument:
        """
        Retire a document from retrieval and sweeps.

        Raises:
            DocumentNotFoundError: No such document exists
        """
        await self.get_document(user_id, index_code)
        await self.repository.set_document_status(
            user_id, [index_code], DocumentStatus.ARCHIVED, needs_regeneration=False
        )
        return await self.get_document(user_id, index_code)

    # ========== Statistics ==========

    async def get_index_stats(self, user_id: str) -> dict:
        """Coverage statistics for a user's documents."""
        documents = await self.repository.list_documents(user_id)

        domains: Dict[str, dict] = {}
        total_memories = 0
        for document in documents:
            total_memories += document.memory_count
            domain = document.domain or document.index_code[0]
            entry = domains.setdefault(domain, {"count": 0, "total_confidence": 0.0})
            entry["count"] += 1
            entry["total_confidence"] += document.confidence

        domain_coverage = {
            domain: {
                "name": get_domain_name(domain),
                "count": entry["count"],
                "avg_confidence": round(entry["total_confidence"] / entry["count"], 3),
            }
            for domain, entry in sorted(domains.items())
        }

        return {
            "total_documents": len(documents),
            "active_documents": sum(1 for d in documents if d.status == DocumentStatus.ACTIVE),
            "total_memories_indexed": total_memories,
            "domain_coverage": domain_coverage,
            "stale_documents": sum(
                1 for d in documents
                if d.status == DocumentStatus.STALE or d.needs_regeneration
            ),
            "sync_enabled": self.sync_service is not None,
        }

    # ========== Export ==========

    async def sync_document(
        self,
        user_id: str,
        index_code: str,
        document: Optional[IndexDocument] = None,
    ) -> Optional[SyncResult]:
        """
        Export one document through the sync service.

        Returns None when no sync service is configured or the export
        failed; the stored document is never rolled back.
        """
        if self.sync_service is None:
            return None

        document = document or await self.get_document(user_id, index_code)
        try:
            result = await self.sync_service.upsert_document(document)
            await self.repository.update_sync_info(document.id, result.file_id, result.url, self.clock())
        except Exception as e:
            logger.error(f"Sync failed for {index_code} (user {user_id}): {e}")
            return None

        logger.debug(f"Synced {index_code} for user {user_id} to {result.file_id}")
        return result

    async def sync_all_documents(self, user_id: str) -> dict:
        """Export every active document of a user."""
        documents = await self.repository.list_documents(user_id, status=DocumentStatus.ACTIVE)
        synced = 0
        errors: List[str] = []
        for document in documents:
            if await self.sync_document(user_id, document.index_code, document=document):
                synced += 1
            else:
                errors.append(document.index_code)
        return {"synced": synced, "errors": errors}
