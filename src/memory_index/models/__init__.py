"""Data models for the memory index."""

from memory_index.models.memory import (
    ConflictResult,
    Memory,
    MemoryCategory,
    MemoryMetadata,
    SupersessionMarker,
)
from memory_index.models.index_document import (
    Classification,
    Contribution,
    DocumentStatus,
    IndexCategory,
    IndexDirective,
    IndexDocument,
    IndexingResult,
    IngestResult,
    MemoryIndexMapping,
    RetrievalPriority,
    SynthesisResult,
    priority_for_importance,
)
from memory_index.models.knowledge import (
    AreaScore,
    AskedQuestion,
    KnowledgeGap,
    KnowledgeProfile,
    OnboardingContext,
    SuggestedQuestion,
)
from memory_index.models.retrieval import ContextPackage, ContextRequest

__all__ = [
    "ConflictResult",
    "Memory",
    "MemoryCategory",
    "MemoryMetadata",
    "SupersessionMarker",
    "Classification",
    "Contribution",
    "DocumentStatus",
    "IndexCategory",
    "IndexDirective",
    "IndexDocument",
    "IndexingResult",
    "IngestResult",
    "MemoryIndexMapping",
    "RetrievalPriority",
    "SynthesisResult",
    "priority_for_importance",
    "AreaScore",
    "AskedQuestion",
    "KnowledgeGap",
    "KnowledgeProfile",
    "OnboardingContext",
    "SuggestedQuestion",
    "ContextPackage",
    "ContextRequest",
]
