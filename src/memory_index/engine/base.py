"""
Memory Index Engine - Abstract Base Class

The operations a conversational agent calls on the index.
"""

from abc import ABC, abstractmethod
from typing import List

from memory_index.agent.knowledge_profile import RandomSource
from memory_index.models.index_document import IndexDocument, IndexingResult, IngestResult
from memory_index.models.knowledge import OnboardingContext
from memory_index.models.memory import Memory
from memory_index.models.retrieval import ContextPackage, ContextRequest


class MemoryIndexEngine(ABC):
    """
    Abstract Base Class for the memory index.

    Covers the four paths through the system:
    1. ingest_memory() - Store, resolve conflicts and classify a memory
    2. retrieve_context() - Rank documents for a conversational turn
    3. regenerate_stale_documents() - Bring pending documents up to date
    4. onboarding_context() - Pace exploratory questions
    """

    @abstractmethod
    async def ingest_memory(self, memory: Memory) -> IngestResult:
        """
        Input path for a newly extracted memory.

        Process:
        1. Persist the memory
        2. Compare it with the user's top memories and apply supersession
        3. Classify it into index codes and map it to their documents

        Returns:
            The stored memory, its conflicts and its indexing outcome
        """
        pass

    @abstractmethod
    async def index_memory(self, memory: Memory) -> IndexingResult:
        """Classify and map an already stored memory."""
        pass

    @abstractmethod
    async def retrieve_context(self, request: ContextRequest) -> ContextPackage:
        """
        Output path: documents and directives for one turn.

        Modes:
        - direct: request names index codes
        - semantic: request carries a query or query embedding
        - default: neither, ranked by category priority
        """
        pass

    @abstractmethod
    async def regenerate_stale_documents(self, user_id: str) -> List[str]:
        """Maintenance path: regenerate the user's due documents."""
        pass

    @abstractmethod
    async def regenerate_document(self, user_id: str, index_code: str, force: bool = False) -> IndexDocument:
        pass

    @abstractmethod
    async def onboarding_context(self, user_id: str, rng: RandomSource) -> OnboardingContext:
        """Per-turn onboarding pacing for the conversational agent."""
        pass
