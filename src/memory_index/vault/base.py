"""
Document Sync Interface

Export target for synthesized documents (a Markdown vault, a cloud
drive, ...). Sync runs after a document is persisted and its failures
never affect the stored document.
"""

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel

from memory_index.models.index_document import IndexDocument


class SyncResult(BaseModel):
    """Where an exported document now lives."""
    file_id: str
    url: Optional[str] = None


class DocumentSyncService(ABC):
    """Writes index documents to an external store."""

    @abstractmethod
    async def upsert_document(self, document: IndexDocument) -> SyncResult:
        """Create or overwrite the exported copy of ``document``."""
