"""
In-Memory Index Repository

Process-local implementation of IndexRepository with the same uniqueness
and compare-and-swap guarantees as the PostgreSQL repository. Useful for
tests and for embedding the index without a database. Every read returns
a copy so callers can never mutate stored state in place.
"""

from datetime import datetime
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from memory_index.database.base import IndexRepository
from memory_index.exceptions import ConcurrentUpdateError, DuplicateDocumentError
from memory_index.models.index_document import (
    DocumentStatus,
    IndexDirective,
    IndexDocument,
    MemoryIndexMapping,
)
from memory_index.models.knowledge import KnowledgeProfile
from memory_index.models.memory import Memory, MemoryMetadata, SupersessionMarker, as_utc, utc_now


def _copy(model):
    return model.model_copy(deep=True) if model is not None else None


class InMemoryIndexRepository(IndexRepository):
    """Dictionary-backed repository."""

    def __init__(self):
        self.memories: Dict[UUID, Memory] = {}
        self.documents: Dict[UUID, IndexDocument] = {}
        self._document_keys: Dict[Tuple[str, str], UUID] = {}
        self.mappings: Dict[Tuple[UUID, UUID], MemoryIndexMapping] = {}
        self.directives: Dict[UUID, IndexDirective] = {}
        self.profiles: Dict[str, KnowledgeProfile] = {}

    # ========== Memory Operations ==========

    async def save_memory(self, memory: Memory) -> Memory:
        self.memories[memory.id] = _copy(memory)
        return memory

    async def get_memory(self, memory_id: UUID) -> Optional[Memory]:
        return _copy(self.memories.get(memory_id))

    async def get_user_memories(self, user_id: str) -> List[Memory]:
        memories = [m for m in self.memories.values() if m.user_id == user_id]
        return [_copy(m) for m in sorted(memories, key=lambda m: as_utc(m.created_at))]

    async def get_top_memories(
        self,
        user_id: str,
        limit: int,
        exclude_ids: Optional[List[UUID]] = None,
    ) -> List[Memory]:
        excluded = set(exclude_ids or [])
        memories = [
            m for m in self.memories.values()
            if m.user_id == user_id and m.id not in excluded
        ]
        memories.sort(key=lambda m: (m.importance, as_utc(m.created_at)), reverse=True)
        return [_copy(m) for m in memories[:limit]]

    async def supersede_memory(self, memory_id: UUID, marker: SupersessionMarker) -> bool:
        memory = self.memories.get(memory_id)
        if memory is None:
            return False
        memory.importance = 1
        memory.metadata.supersession = _copy(marker)
        return True

    async def update_memory_metadata(self, memory_id: UUID, metadata: MemoryMetadata) -> bool:
        memory = self.memories.get(memory_id)
        if memory is None:
            return False
        memory.metadata = _copy(metadata)
        return True

    # ========== Document Operations ==========

    async def get_document(self, user_id: str, index_code: str) -> Optional[IndexDocument]:
        document_id = self._document_keys.get((user_id, index_code))
        return _copy(self.documents.get(document_id)) if document_id else None

    async def create_document(self, document: IndexDocument) -> IndexDocument:
        key = (document.user_id, document.index_code)
        if key in self._document_keys:
            raise DuplicateDocumentError(document.user_id, document.index_code)
        self._document_keys[key] = document.id
        self.documents[document.id] = _copy(document)
        return document

    async def get_or_create_document(self, document: IndexDocument) -> Tuple[IndexDocument, bool]:
        existing = await self.get_document(document.user_id, document.index_code)
        if existing is not None:
            return existing, False
        await self.create_document(document)
        return _copy(document), True

    async def list_documents(
        self,
        user_id: str,
        status: Optional[DocumentStatus] = None,
        domain: Optional[str] = None,
        needs_regeneration: Optional[bool] = None,
    ) -> List[IndexDocument]:
        selected = []
        for document in self.documents.values():
            if document.user_id != user_id:
                continue
            if status is not None and document.status != status:
                continue
            if domain is not None and document.domain != domain:
                continue
            if needs_regeneration is not None and document.needs_regeneration != needs_regeneration:
                continue
            selected.append(_copy(document))
        return sorted(selected, key=lambda d: d.index_code)

    async def update_document(self, document: IndexDocument, expected_version: int) -> IndexDocument:
        stored = self.documents.get(document.id)
        if stored is None or stored.version != expected_version:
            raise ConcurrentUpdateError(document.id, expected_version)

        sources = set(document.source_memory_ids)
        unsynthesized = any(
            memory_id not in sources
            for memory_id, document_id in self.mappings
            if document_id == document.id
        )
        updated = _copy(document)
        updated.needs_regeneration = document.needs_regeneration or unsynthesized
        updated.created_at = stored.created_at
        updated.sync_file_id = stored.sync_file_id
        updated.sync_url = stored.sync_url
        updated.synced_at = stored.synced_at
        self.documents[document.id] = updated
        return _copy(updated)

    async def set_needs_regeneration(self, document_id: UUID) -> None:
        document = self.documents.get(document_id)
        if document is not None:
            document.needs_regeneration = True

    async def set_document_status(
        self,
        user_id: str,
        index_codes: List[str],
        status: DocumentStatus,
        needs_regeneration: Optional[bool] = None,
    ) -> int:
        updated = 0
        for code in set(index_codes):
            document_id = self._document_keys.get((user_id, code))
            if document_id is None:
                continue
            document = self.documents[document_id]
            document.status = DocumentStatus(status).value
            if needs_regeneration is not None:
                document.needs_regeneration = needs_regeneration
            updated += 1
        return updated

    async def update_sync_info(
        self,
        document_id: UUID,
        file_id: str,
        url: Optional[str],
        synced_at: datetime,
    ) -> None:
        document = self.documents.get(document_id)
        if document is not None:
            document.sync_file_id = file_id
            document.sync_url = url
            document.synced_at = synced_at

    async def list_users_with_pending_documents(self) -> List[str]:
        users = {
            d.user_id for d in self.documents.values()
            if d.needs_regeneration or d.status == DocumentStatus.STALE
        }
        return sorted(users)

    # ========== Mapping Operations ==========

    async def create_mapping(self, mapping: MemoryIndexMapping) -> bool:
        key = (mapping.memory_id, mapping.index_document_id)
        if key in self.mappings:
            return False
        self.mappings[key] = _copy(mapping)
        await self.set_needs_regeneration(mapping.index_document_id)
        return True

    async def get_mapped_memories(self, document_id: UUID) -> List[Memory]:
        memories = [
            self.memories[memory_id]
            for memory_id, mapped_document_id in self.mappings
            if mapped_document_id == document_id and memory_id in self.memories
        ]
        memories.sort(key=lambda m: (m.importance, as_utc(m.created_at)), reverse=True)
        return [_copy(m) for m in memories]

    async def get_documents_for_memories(self, memory_ids: List[UUID]) -> List[IndexDocument]:
        wanted = set(memory_ids)
        document_ids = {
            document_id for memory_id, document_id in self.mappings if memory_id in wanted
        }
        documents = [_copy(self.documents[d]) for d in document_ids if d in self.documents]
        return sorted(documents, key=lambda d: (d.user_id, d.index_code))

    # ========== Directive Operations ==========

    async def upsert_directive(self, directive: IndexDirective) -> IndexDirective:
        existing = self.directives.get(directive.memory_id)
        stored = _copy(directive)
        if existing is not None:
            stored.id = existing.id
            stored.created_at = existing.created_at
            stored.updated_at = utc_now()
        self.directives[directive.memory_id] = stored
        return _copy(stored)

    async def get_directive(self, memory_id: UUID) -> Optional[IndexDirective]:
        return _copy(self.directives.get(memory_id))

    async def get_directives(self, memory_ids: List[UUID], limit: int = 100) -> List[IndexDirective]:
        wanted = set(memory_ids)
        directives = [d for d in self.directives.values() if d.memory_id in wanted]
        directives.sort(key=lambda d: as_utc(d.created_at))
        return [_copy(d) for d in directives[:limit]]

    # ========== Knowledge Profile Operations ==========

    async def get_profile(self, user_id: str) -> Optional[KnowledgeProfile]:
        return _copy(self.profiles.get(user_id))

    async def save_profile(self, profile: KnowledgeProfile) -> KnowledgeProfile:
        profile.updated_at = utc_now()
        self.profiles[profile.user_id] = _copy(profile)
        return profile
