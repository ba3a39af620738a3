"""
Index Document Data Models

Synthesized profile documents, the memory -> document edges that feed
them, and the per-memory classification directive.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

from memory_index.models.memory import ConflictResult, Memory, utc_now

AWAITING_SYNTHESIS_CONTENT = "Awaiting memory synthesis..."


class IndexCategory(BaseModel):
    """One fixed topic of the taxonomy. Immutable."""

    code: str = Field(..., pattern=r"^[A-Z]\d{3}$")
    domain: str = Field(..., min_length=1, max_length=1)
    domain_name: str
    topic_name: str
    description: str
    priority: int = Field(..., ge=1, le=10)

    class Config:
        frozen = True


class DocumentStatus(str, Enum):
    """Lifecycle state of an index document."""
    DRAFT = "draft"
    ACTIVE = "active"
    STALE = "stale"
    ARCHIVED = "archived"


class Contribution(str, Enum):
    """How strongly a memory feeds a document."""
    PRIMARY = "primary"
    SUPPORTING = "supporting"
    MINOR = "minor"


class RetrievalPriority(str, Enum):
    """Retrieval weight of a memory, derived from its importance."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def priority_for_importance(importance: int) -> RetrievalPriority:
    """Importance >= 8 is high, >= 5 medium, anything lower is low."""
    if importance >= 8:
        return RetrievalPriority.HIGH
    if importance >= 5:
        return RetrievalPriority.MEDIUM
    return RetrievalPriority.LOW


def clamp_unit(value: float) -> float:
    """Clamp a score into [0, 1]."""
    return max(0.0, min(1.0, float(value)))


class IndexDocument(BaseModel):
    """
    A synthesized narrative profile for one index code of one user.

    Exactly one document exists per (user_id, index_code). A document is
    created as a draft (version 0) the first time a memory classifies into
    its code; every successful synthesis increments the version.
    """

    id: UUID = Field(default_factory=uuid4)
    user_id: str
    index_code: str = Field(..., pattern=r"^[A-Z]\d{3}$")
    domain: str = Field(default="", description="Domain letter of the index code")
    title: str = ""
    summary: str = ""
    content: str = ""
    key_insights: List[str] = Field(default_factory=list)
    patterns: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    embedding: Optional[List[float]] = None
    source_memory_ids: List[UUID] = Field(default_factory=list)
    memory_count: int = Field(default=0, ge=0)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    version: int = Field(default=0, ge=0)
    status: DocumentStatus = DocumentStatus.DRAFT
    needs_regeneration: bool = False

    # File-sync bookkeeping
    sync_file_id: Optional[str] = None
    sync_url: Optional[str] = None
    synced_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Config:
        use_enum_values = True

    @classmethod
    def draft(cls, user_id: str, category: IndexCategory) -> "IndexDocument":
        """A never-synthesized document for a category."""
        return cls(
            user_id=user_id,
            index_code=category.code,
            domain=category.domain,
            title=category.topic_name,
            content=AWAITING_SYNTHESIS_CONTENT,
            confidence=0.0,
            version=0,
            status=DocumentStatus.DRAFT,
        )

    @property
    def is_active(self) -> bool:
        return self.status == DocumentStatus.ACTIVE


class MemoryIndexMapping(BaseModel):
    """Edge from a memory to a document it contributes to."""

    memory_id: UUID
    index_document_id: UUID
    contribution: Contribution = Contribution.PRIMARY
    relevance_score: float = Field(default=1.0, ge=0.0, le=1.0)
    created_at: datetime = Field(default_factory=utc_now)

    class Config:
        use_enum_values = True


class IndexDirective(BaseModel):
    """Classification record for one memory. Unique on memory_id."""

    id: UUID = Field(default_factory=uuid4)
    memory_id: UUID
    user_id: str
    primary_index_code: str
    related_index_codes: List[str] = Field(default_factory=list, max_length=3)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    retrieval_priority: RetrievalPriority = RetrievalPriority.MEDIUM
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Config:
        use_enum_values = True

    @field_validator("related_index_codes")
    @classmethod
    def _exclude_primary(cls, codes: List[str], info):
        primary = info.data.get("primary_index_code")
        if primary in codes:
            raise ValueError("related_index_codes must not contain the primary code")
        return codes


class Classification(BaseModel):
    """Result of placing one memory into the taxonomy."""
    primary_index: str
    related_indices: List[str] = Field(default_factory=list, max_length=3)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    reasoning: str = ""
    is_fallback: bool = False

    @property
    def all_codes(self) -> List[str]:
        return [self.primary_index, *self.related_indices]


class IndexingResult(BaseModel):
    """What indexing one memory changed."""
    memory_id: UUID
    directive: IndexDirective
    classification: Classification
    affected_codes: List[str] = Field(
        default_factory=list,
        description="Codes whose document gained a new mapping"
    )


class IngestResult(BaseModel):
    """Outcome of ingesting one new memory."""
    memory: Memory
    conflicts: ConflictResult = Field(default_factory=ConflictResult)
    indexing: IndexingResult


class SynthesisResult(BaseModel):
    """Structured narrative produced for one document."""
    title: str
    summary: str = ""
    content: str = ""
    key_insights: List[str] = Field(default_factory=list)
    patterns: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    is_placeholder: bool = False
