"""
Conflict Resolver

Relates an incoming memory to the user's most important existing
memories. Superseded memories are soft-deleted: their importance drops
to 1 and a supersession marker is stamped, but the record is kept.
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from memory_index.config import IndexingConfig
from memory_index.database.base import IndexRepository
from memory_index.llm.client import LLMClient
from memory_index.models.index_document import DocumentStatus
from memory_index.models.memory import ConflictResult, Memory, SupersessionMarker

logger = logging.getLogger("memory_index.conflicts")

SUPERSEDED_BY_MARKER = "new_memory"


def parse_conflict_result(raw: Optional[dict], candidate_ids: Dict[str, UUID]) -> ConflictResult:
    """
    Map a ``{supersedes, contradicts, relatedTo}`` reply onto candidate ids.

    Ids outside the candidate set are dropped, and each id lands in at most
    one bucket (supersedes wins over contradicts, which wins over relatedTo).
    """
    if not isinstance(raw, dict):
        return ConflictResult()

    seen = set()

    def bucket(key: str) -> List[UUID]:
        values: Any = raw.get(key)
        if not isinstance(values, list):
            return []
        ids = []
        for value in values:
            memory_id = candidate_ids.get(str(value).strip())
            if memory_id is None or memory_id in seen:
                continue
            seen.add(memory_id)
            ids.append(memory_id)
        return ids

    return ConflictResult(
        supersedes=bucket("supersedes"),
        contradicts=bucket("contradicts"),
        related_to=bucket("relatedTo") or bucket("related_to"),
    )


class ConflictResolver:
    """
    Detects supersession, contradiction and relation for new memories.

    Failures of the comparison call resolve to an empty result so memory
    ingestion is never blocked.
    """

    def __init__(
        self,
        repository: IndexRepository,
        llm_client: LLMClient,
        config: Optional[IndexingConfig] = None,
    ):
        self.repository = repository
        self.llm = llm_client
        self.config = config or IndexingConfig()

    async def resolve(self, memory: Memory) -> ConflictResult:
        """
        Compare ``memory`` with existing memories and apply supersession.

        Returns:
            The ids placed in each bucket
        """
        candidates = await self.repository.get_top_memories(
            memory.user_id,
            limit=self.config.conflict_candidate_limit,
            exclude_ids=[memory.id],
        )
        if not candidates:
            return ConflictResult()

        candidate_ids = {str(candidate.id): candidate.id for candidate in candidates}
        try:
            raw = await self.llm.compare_memories(
                memory.content,
                [(str(candidate.id), candidate.content) for candidate in candidates],
            )
        except Exception as e:
            logger.error(f"Conflict check failed for memory {memory.id}: {e}")
            return ConflictResult()

        result = parse_conflict_result(raw, candidate_ids)
        if result.supersedes:
            await self.apply_supersession(result.supersedes)

        if not result.is_empty:
            logger.info(
                f"Memory {memory.id}: supersedes {len(result.supersedes)}, "
                f"contradicts {len(result.contradicts)}, related to {len(result.related_to)}"
            )
        return result

    async def apply_supersession(self, memory_ids: List[UUID]) -> int:
        """
        Soft-delete superseded memories and mark documents built on them stale.

        Returns:
            Number of memories updated
        """
        updated = 0
        for memory_id in memory_ids:
            marker = SupersessionMarker(superseded_by=SUPERSEDED_BY_MARKER)
            if await self.repository.supersede_memory(memory_id, marker):
                updated += 1

        documents = await self.repository.get_documents_for_memories(memory_ids)
        by_user: Dict[str, List[str]] = {}
        for document in documents:
            if document.status == DocumentStatus.ARCHIVED:
                continue
            by_user.setdefault(document.user_id, []).append(document.index_code)
        for user_id, codes in by_user.items():
            await self.repository.set_document_status(
                user_id, codes, DocumentStatus.STALE, needs_regeneration=True
            )
        return updated
