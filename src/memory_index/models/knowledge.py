"""
Knowledge Profile Data Models

Per-user coverage of the onboarding knowledge areas. Area scores are a
projection of the user's memories and can always be recomputed.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from memory_index.models.memory import utc_now
from memory_index.taxonomy.knowledge_areas import KnowledgeArea, OnboardingPhase


class AreaScore(BaseModel):
    """Coverage of one knowledge area."""
    score: float = Field(default=0.0, ge=0.0, le=100.0)
    memory_count: int = Field(default=0, ge=0)
    last_updated: Optional[datetime] = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class AskedQuestion(BaseModel):
    """An onboarding question already put to the user."""
    question_text: str
    knowledge_area: KnowledgeArea
    asked_at: datetime = Field(default_factory=utc_now)
    got_answer: bool = False

    class Config:
        use_enum_values = True


class KnowledgeGap(BaseModel):
    """An under-covered area worth asking about."""
    area: KnowledgeArea
    area_label: str
    current_score: float
    suggested_questions: List[str] = Field(default_factory=list)
    priority: float

    class Config:
        use_enum_values = True


class SuggestedQuestion(BaseModel):
    question: str
    area: KnowledgeArea

    class Config:
        use_enum_values = True


class OnboardingContext(BaseModel):
    """Everything the conversational agent needs to pace its questions."""
    phase: OnboardingPhase
    message_count: int
    knowledge_scores: Dict[str, AreaScore]
    top_gaps: List[KnowledgeGap] = Field(default_factory=list, max_length=5)
    suggested_question: Optional[SuggestedQuestion] = None
    overall_knowledge_level: float = Field(default=0.0, ge=0.0, le=100.0)

    class Config:
        use_enum_values = True


class KnowledgeProfile(BaseModel):
    """Persistent onboarding state for one user."""
    user_id: str
    onboarding_phase: OnboardingPhase = OnboardingPhase.NEW
    total_message_count: int = Field(default=0, ge=0)
    knowledge_scores: Dict[str, AreaScore] = Field(default_factory=dict)
    asked_questions: List[AskedQuestion] = Field(default_factory=list)
    last_assessed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Config:
        use_enum_values = True
