"""
Index Repository Interface

Repository-style read/write operations for every entity the index owns.
Implementations must enforce the storage invariants:
- one IndexDocument per (user_id, index_code)
- one IndexDirective per memory_id
- one MemoryIndexMapping per (memory_id, index_document_id)
- document writes are compare-and-swap on ``version``
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from memory_index.models.index_document import (
    DocumentStatus,
    IndexDirective,
    IndexDocument,
    MemoryIndexMapping,
)
from memory_index.models.knowledge import KnowledgeProfile
from memory_index.models.memory import Memory, MemoryMetadata, SupersessionMarker


class IndexRepository(ABC):
    """Storage backend for memories, documents, mappings, directives and profiles."""

    async def connect(self) -> None:
        """Open connections. No-op by default."""

    async def disconnect(self) -> None:
        """Release connections. No-op by default."""

    # ========== Memory Operations ==========

    @abstractmethod
    async def save_memory(self, memory: Memory) -> Memory:
        """Insert or replace a memory (owned by the ingesting pipeline)."""

    @abstractmethod
    async def get_memory(self, memory_id: UUID) -> Optional[Memory]:
        pass

    @abstractmethod
    async def get_user_memories(self, user_id: str) -> List[Memory]:
        """All memories of a user, oldest first."""

    @abstractmethod
    async def get_top_memories(
        self,
        user_id: str,
        limit: int,
        exclude_ids: Optional[List[UUID]] = None,
    ) -> List[Memory]:
        """The user's most important memories, most important first."""

    @abstractmethod
    async def supersede_memory(self, memory_id: UUID, marker: SupersessionMarker) -> bool:
        """
        Soft-delete a memory: importance becomes 1 and the marker is stamped.

        Returns False if the memory does not exist.
        """

    @abstractmethod
    async def update_memory_metadata(self, memory_id: UUID, metadata: MemoryMetadata) -> bool:
        pass

    # ========== Document Operations ==========

    @abstractmethod
    async def get_document(self, user_id: str, index_code: str) -> Optional[IndexDocument]:
        pass

    @abstractmethod
    async def create_document(self, document: IndexDocument) -> IndexDocument:
        """
        Insert a new document.

        Raises:
            DuplicateDocumentError: A document already exists for (user_id, index_code)
        """

    @abstractmethod
    async def get_or_create_document(self, document: IndexDocument) -> Tuple[IndexDocument, bool]:
        """
        Insert ``document`` unless one exists for its (user_id, index_code).

        Returns:
            (stored document, whether it was created)
        """

    @abstractmethod
    async def list_documents(
        self,
        user_id: str,
        status: Optional[DocumentStatus] = None,
        domain: Optional[str] = None,
        needs_regeneration: Optional[bool] = None,
    ) -> List[IndexDocument]:
        """Documents of a user ordered by index code."""

    @abstractmethod
    async def update_document(self, document: IndexDocument, expected_version: int) -> IndexDocument:
        """
        Write a document if its stored version still equals ``expected_version``.

        ``needs_regeneration`` is kept true while any mapped memory is
        missing from ``source_memory_ids``, so mappings added during a
        synthesis are not lost.

        Raises:
            ConcurrentUpdateError: The stored version changed
        """

    @abstractmethod
    async def set_needs_regeneration(self, document_id: UUID) -> None:
        pass

    @abstractmethod
    async def set_document_status(
        self,
        user_id: str,
        index_codes: List[str],
        status: DocumentStatus,
        needs_regeneration: Optional[bool] = None,
    ) -> int:
        """Change status on several documents; returns how many were updated."""

    @abstractmethod
    async def update_sync_info(
        self,
        document_id: UUID,
        file_id: str,
        url: Optional[str],
        synced_at: datetime,
    ) -> None:
        pass

    @abstractmethod
    async def list_users_with_pending_documents(self) -> List[str]:
        """Users owning at least one document that needs regeneration or is stale."""

    # ========== Mapping Operations ==========

    @abstractmethod
    async def create_mapping(self, mapping: MemoryIndexMapping) -> bool:
        """
        Create a mapping and flag its document for regeneration.

        Returns False (and changes nothing) if the mapping already exists.
        """

    @abstractmethod
    async def get_mapped_memories(self, document_id: UUID) -> List[Memory]:
        pass

    @abstractmethod
    async def get_documents_for_memories(self, memory_ids: List[UUID]) -> List[IndexDocument]:
        """Documents any of the given memories are mapped to."""

    # ========== Directive Operations ==========

    @abstractmethod
    async def upsert_directive(self, directive: IndexDirective) -> IndexDirective:
        """Insert or replace the directive for ``directive.memory_id``."""

    @abstractmethod
    async def get_directive(self, memory_id: UUID) -> Optional[IndexDirective]:
        pass

    @abstractmethod
    async def get_directives(self, memory_ids: List[UUID], limit: int = 100) -> List[IndexDirective]:
        pass

    # ========== Knowledge Profile Operations ==========

    @abstractmethod
    async def get_profile(self, user_id: str) -> Optional[KnowledgeProfile]:
        pass

    @abstractmethod
    async def save_profile(self, profile: KnowledgeProfile) -> KnowledgeProfile:
        pass
