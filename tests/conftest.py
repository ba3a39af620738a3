"""
Shared fixtures: an in-memory repository, a mocked LLM client and a
memory factory.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from memory_index.config import IndexingConfig, StalenessConfig
from memory_index.database.memory_store import InMemoryIndexRepository
from memory_index.engine.lifecycle import DocumentLifecycleManager
from memory_index.models.memory import Memory
from memory_index.pipelines.synthesize import SynthesisEngine

BASE_TIME = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

SYNTHESIS_REPLY = {
    "title": "Current Work",
    "summary": "Works as a nurse on a busy ward.",
    "content": "They describe long shifts and real pride in patient care.",
    "keyInsights": ["Nursing is central to identity", "Works night shifts", "Values patient care"],
    "patterns": ["Talks about work after long shifts"],
    "recommendations": ["Ask how the last shift went", "Acknowledge fatigue", "Celebrate small wins"],
    "confidence": 0.8,
}


@pytest.fixture
def repository():
    return InMemoryIndexRepository()


@pytest.fixture
def mock_llm():
    """LLMClient stand-in with the collaborator calls mocked."""
    llm = MagicMock()
    llm.classify_memory = AsyncMock(return_value={
        "primaryIndex": "C001",
        "relatedIndices": [],
        "confidence": 0.9,
        "reasoning": "Occupation",
    })
    llm.synthesize_document = AsyncMock(return_value=dict(SYNTHESIS_REPLY))
    llm.compare_memories = AsyncMock(return_value={})
    llm.generate_embedding = AsyncMock(return_value=[0.1, 0.2, 0.3])
    return llm


@pytest.fixture
def make_memory():
    """Factory for memories with increasing created_at timestamps."""
    counter = {"n": 0}

    def factory(content="I work as a nurse", user_id="user-1", category="fact", importance=5, **kwargs):
        counter["n"] += 1
        kwargs.setdefault("created_at", BASE_TIME + timedelta(minutes=counter["n"]))
        return Memory(
            user_id=user_id,
            content=content,
            category=category,
            importance=importance,
            **kwargs,
        )

    return factory


@pytest.fixture
def clock():
    """Mutable clock: set ``clock.now`` to move time."""
    clock = MagicMock()
    clock.now = BASE_TIME + timedelta(days=1)
    clock.side_effect = lambda: clock.now
    return clock


@pytest.fixture
def lifecycle(repository, mock_llm, clock):
    return DocumentLifecycleManager(
        repository=repository,
        synthesis=SynthesisEngine(mock_llm),
        llm_client=mock_llm,
        staleness=StalenessConfig(),
        indexing=IndexingConfig(),
        clock=clock,
    )
