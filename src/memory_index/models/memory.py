"""
Memory Data Model

A memory is a single atomic fact about a user, produced by the ingesting
pipeline. The indexing core reads memories and, on supersession, lowers
their importance and stamps their metadata. Memories are never deleted.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """Treat naive timestamps as UTC."""
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


class MemoryCategory(str, Enum):
    """Kind of fact a memory records."""
    FACT = "fact"
    PREFERENCE = "preference"
    GOAL = "goal"
    EVENT = "event"
    RELATIONSHIP = "relationship"
    EMOTION = "emotion"
    INSIGHT = "insight"


class SupersessionMarker(BaseModel):
    """Stamp left on a memory that a newer memory replaced."""
    superseded_by: str = Field(
        default="new_memory",
        description="Marker naming what replaced this memory"
    )
    superseded_at: datetime = Field(default_factory=utc_now)


class MemoryMetadata(BaseModel):
    """
    Typed memory metadata.

    Known keys get explicit fields; anything else the ingesting pipeline
    attaches is kept in ``extra`` so it survives a round trip.
    """
    people: List[str] = Field(default_factory=list, description="People involved")
    emotion: Optional[str] = Field(default=None, description="Emotion label")
    location: Optional[str] = None
    supersession: Optional[SupersessionMarker] = Field(
        default=None,
        description="Set when a newer memory replaced this one"
    )
    supersedes: List[str] = Field(
        default_factory=list,
        description="Ids of older memories this memory replaced"
    )
    related_to: List[str] = Field(
        default_factory=list,
        description="Ids of existing memories on the same subject"
    )
    extra: Dict[str, Any] = Field(default_factory=dict)

    @property
    def superseded_by(self) -> Optional[str]:
        return self.supersession.superseded_by if self.supersession else None

    @property
    def is_superseded(self) -> bool:
        return self.supersession is not None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "MemoryMetadata":
        """
        Build metadata from a loosely-typed mapping (e.g. a JSONB column).

        Accepts both snake_case and the camelCase keys older writers used.
        Unrecognised keys are moved into ``extra``.
        """
        if not data:
            return cls()
        data = dict(data)

        superseded_by = data.pop("superseded_by", None) or data.pop("supersededBy", None)
        superseded_at = data.pop("superseded_at", None) or data.pop("supersededAt", None)
        supersession = data.pop("supersession", None)
        if supersession is None and superseded_by:
            supersession = {"superseded_by": superseded_by}
            if superseded_at:
                supersession["superseded_at"] = superseded_at

        related_to = data.pop("related_to", None) or data.pop("relatedTo", None) or []
        known = {
            "people": data.pop("people", None) or [],
            "emotion": data.pop("emotion", None),
            "location": data.pop("location", None),
            "supersedes": data.pop("supersedes", None) or [],
            "related_to": related_to,
            "supersession": supersession,
        }
        extra = dict(data.pop("extra", None) or {})
        extra.update(data)
        return cls(**known, extra=extra)

    def to_dict(self) -> Dict[str, Any]:
        """Flatten into a JSON-serialisable mapping."""
        data: Dict[str, Any] = dict(self.extra)
        data.update(self.model_dump(mode="json", exclude={"extra"}, exclude_none=True))
        return data


class Memory(BaseModel):
    """A single atomic, timestamped fact about a user."""

    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(..., description="Owner of the memory")
    content: str = Field(..., description="The natural-language fact")
    category: MemoryCategory = Field(default=MemoryCategory.FACT)
    importance: int = Field(
        default=5,
        ge=1,
        le=10,
        description="Salience on a 1-10 scale"
    )
    embedding: Optional[List[float]] = None
    metadata: MemoryMetadata = Field(default_factory=MemoryMetadata)
    occurred_at: Optional[datetime] = Field(
        default=None,
        description="When the remembered event happened, if known"
    )
    created_at: datetime = Field(default_factory=utc_now)

    class Config:
        use_enum_values = True

    @property
    def is_superseded(self) -> bool:
        return self.metadata.is_superseded


class ConflictResult(BaseModel):
    """How a new memory relates to the user's existing memories."""
    supersedes: List[UUID] = Field(default_factory=list)
    contradicts: List[UUID] = Field(default_factory=list)
    related_to: List[UUID] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.supersedes or self.contradicts or self.related_to)
