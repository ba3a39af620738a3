"""
Unit Tests for the Synthesis Engine and the staleness policy
"""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from memory_index.config import StalenessConfig
from memory_index.exceptions import LLMResponseError
from memory_index.models.index_document import DocumentStatus, IndexDocument, SynthesisResult
from memory_index.models.memory import SupersessionMarker
from memory_index.pipelines.synthesize import (
    EMPTY_RECOMMENDATION,
    SynthesisEngine,
    embedding_text,
    format_context,
    format_memory_line,
    parse_synthesis_result,
    should_regenerate,
)
from memory_index.taxonomy.categories import get_category_by_code

from conftest import BASE_TIME


@pytest.fixture
def category():
    return get_category_by_code("C001")


def _document(**kwargs):
    kwargs.setdefault("updated_at", BASE_TIME)
    return IndexDocument(user_id="user-1", index_code="C001", **kwargs)


class TestSynthesisEngine:
    """Tests for SynthesisEngine.synthesize."""

    @pytest.mark.asyncio
    async def test_no_memories_returns_placeholder(self, mock_llm, category):
        result = await SynthesisEngine(mock_llm).synthesize(category, [])

        assert result.is_placeholder
        assert result.confidence == 0.0
        assert result.recommendations == [EMPTY_RECOMMENDATION]
        mock_llm.synthesize_document.assert_not_called()

    @pytest.mark.asyncio
    async def test_memories_ordered_by_importance(self, mock_llm, make_memory, category):
        low = make_memory("Works weekends", importance=3)
        high = make_memory("Head nurse on the ICU", importance=9)

        result = await SynthesisEngine(mock_llm).synthesize(category, [low, high])

        assert result.confidence == 0.8
        kwargs = mock_llm.synthesize_document.call_args.kwargs
        assert kwargs["topic_name"] == "Current Work"
        assert kwargs["memory_lines"][0].startswith("1. [Importance: 9/10]")
        assert "Works weekends" in kwargs["memory_lines"][1]
        assert kwargs["prior_content"] is None

    @pytest.mark.asyncio
    async def test_prior_content_sent_for_synthesized_document(self, mock_llm, make_memory, category):
        existing = _document(version=2, content="Previously: a nurse.")

        await SynthesisEngine(mock_llm).synthesize(category, [make_memory()], existing=existing)

        assert mock_llm.synthesize_document.call_args.kwargs["prior_content"] == "Previously: a nurse."

    @pytest.mark.asyncio
    async def test_collaborator_errors_propagate(self, mock_llm, make_memory, category):
        mock_llm.synthesize_document = AsyncMock(side_effect=LLMResponseError("bad"))
        with pytest.raises(LLMResponseError):
            await SynthesisEngine(mock_llm).synthesize(category, [make_memory()])


class TestSynthesisParsing:
    """Tests for reply parsing and formatting helpers."""

    def test_defaults_for_missing_fields(self, category):
        result = parse_synthesis_result({"keyInsights": ["a", 3, None, ""]}, category)
        assert result.title == "Current Work"
        assert result.key_insights == ["a", "3"]
        assert result.confidence == 0.5

    def test_confidence_clamped(self, category):
        assert parse_synthesis_result({"confidence": -2}, category).confidence == 0.0

    def test_memory_line_marks_superseded(self, make_memory):
        memory = make_memory("Was a nurse", importance=1)
        memory.metadata.supersession = SupersessionMarker()
        memory.metadata.people = ["Dana"]
        line = format_memory_line(3, memory)
        assert line.startswith("3. [Importance: 1/10]")
        assert "(involves: Dana)" in line
        assert "[superseded]" in line

    def test_embedding_text(self):
        result = SynthesisResult(title="T", summary="S", content="C")
        assert embedding_text(result) == "T. S. C"

    def test_format_context(self):
        document = _document(
            summary="A nurse.",
            key_insights=["one", "two", "three"],
            recommendations=["r1", "r2", "r3"],
        )
        block = format_context([document])
        assert block == "CONTEXT PROFILE:\n[C001] Current Work:\nA nurse.\nKey: one; two\nApproach: r1; r2"

    def test_format_context_empty(self):
        assert format_context([]) == ""


class TestShouldRegenerate:
    """Tests for the staleness predicate."""

    def test_stale_status_always_due(self):
        document = _document(status=DocumentStatus.STALE)
        assert should_regenerate(document, 0, 0, BASE_TIME)

    def test_new_memory_threshold(self):
        document = _document(status=DocumentStatus.ACTIVE)
        assert not should_regenerate(document, 2, 5, BASE_TIME)
        assert should_regenerate(document, 3, 5, BASE_TIME)

    def test_high_importance_memory(self):
        document = _document(status=DocumentStatus.ACTIVE)
        assert should_regenerate(document, 1, 8, BASE_TIME)
        assert not should_regenerate(document, 0, 9, BASE_TIME)

    def test_age_needs_a_new_memory(self):
        document = _document(status=DocumentStatus.ACTIVE)
        later = BASE_TIME + timedelta(days=8)
        assert should_regenerate(document, 1, 2, later)
        assert not should_regenerate(document, 0, 0, later)
        assert not should_regenerate(document, 1, 2, BASE_TIME + timedelta(days=6))

    def test_naive_timestamps_treated_as_utc(self):
        document = _document(status=DocumentStatus.ACTIVE, updated_at=BASE_TIME.replace(tzinfo=None))
        assert should_regenerate(document, 1, 2, BASE_TIME + timedelta(days=8))

    def test_custom_thresholds(self):
        config = StalenessConfig(new_memory_threshold=1)
        document = _document(status=DocumentStatus.ACTIVE)
        assert should_regenerate(document, 1, 1, BASE_TIME, config)
