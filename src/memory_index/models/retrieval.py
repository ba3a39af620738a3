"""
Retrieval Data Models

Defines the request accepted by and the package returned from context
retrieval.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from memory_index.models.index_document import IndexDirective, IndexDocument
from memory_index.models.memory import utc_now


class ContextRequest(BaseModel):
    """
    A request for profile documents relevant to a conversational turn.

    The mode is chosen by shape: explicit ``index_codes`` select direct
    lookup, ``query`` or ``query_embedding`` select semantic ranking, and
    neither selects static-priority ranking.
    """
    user_id: str
    index_codes: List[str] = Field(default_factory=list)
    query: Optional[str] = None
    query_embedding: Optional[List[float]] = None
    domains: List[str] = Field(
        default_factory=list,
        description="Restrict semantic ranking to these domain letters"
    )
    max_documents: Optional[int] = Field(
        default=None,
        ge=1,
        description="Overrides the configured default when set"
    )


class ContextPackage(BaseModel):
    """Ranked documents plus everything needed to prompt with them."""
    documents: List[IndexDocument] = Field(default_factory=list)
    directives: List[IndexDirective] = Field(default_factory=list)
    relevance_scores: Dict[str, float] = Field(
        default_factory=dict,
        description="Rank-based score keyed by index code"
    )
    context_block: str = Field(
        default="",
        description="Flattened profile text for system prompt injection"
    )
    retrieval_mode: str = Field(
        default="default",
        description="Mode used: 'direct', 'semantic' or 'default'"
    )
    retrieved_at: datetime = Field(default_factory=utc_now)
