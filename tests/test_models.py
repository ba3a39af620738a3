"""
Unit Tests for Data Models
"""

from uuid import uuid4

import pytest
from pydantic import ValidationError

from memory_index.models.index_document import (
    AWAITING_SYNTHESIS_CONTENT,
    Classification,
    DocumentStatus,
    IndexDirective,
    IndexDocument,
    RetrievalPriority,
    priority_for_importance,
)
from memory_index.models.memory import Memory, MemoryMetadata, SupersessionMarker
from memory_index.taxonomy.categories import get_category_by_code


class TestMemory:
    """Tests for Memory and MemoryMetadata."""

    def test_defaults(self):
        memory = Memory(user_id="u1", content="Likes tea")
        assert memory.category == "fact"
        assert memory.importance == 5
        assert memory.created_at.tzinfo is not None
        assert not memory.is_superseded

    @pytest.mark.parametrize("importance", [0, 11])
    def test_importance_bounds(self, importance):
        with pytest.raises(ValidationError):
            Memory(user_id="u1", content="x", importance=importance)

    def test_metadata_from_camel_case(self):
        metadata = MemoryMetadata.from_dict({
            "people": ["Sam"],
            "emotion": "joy",
            "supersededBy": "new_memory",
            "relatedTo": ["abc"],
            "source": "chat",
        })
        assert metadata.people == ["Sam"]
        assert metadata.emotion == "joy"
        assert metadata.superseded_by == "new_memory"
        assert metadata.is_superseded
        assert metadata.related_to == ["abc"]
        assert metadata.extra == {"source": "chat"}

    def test_metadata_to_dict_keeps_extra_keys(self):
        metadata = MemoryMetadata(people=["Ana"], extra={"source": "voice"})
        data = metadata.to_dict()
        assert data["source"] == "voice"
        assert data["people"] == ["Ana"]
        assert "extra" not in data
        assert MemoryMetadata.from_dict(data).extra == {"source": "voice"}

    def test_empty_metadata(self):
        assert MemoryMetadata.from_dict(None) == MemoryMetadata()

    def test_supersession_marker_default(self):
        marker = SupersessionMarker()
        assert marker.superseded_by == "new_memory"
        assert marker.superseded_at.tzinfo is not None


class TestIndexDocument:
    """Tests for IndexDocument."""

    def test_draft(self):
        category = get_category_by_code("C001")
        document = IndexDocument.draft("u1", category)
        assert document.version == 0
        assert document.status == DocumentStatus.DRAFT
        assert document.domain == "C"
        assert document.title == "Current Work"
        assert document.content == AWAITING_SYNTHESIS_CONTENT
        assert not document.is_active

    def test_invalid_code_rejected(self):
        with pytest.raises(ValidationError):
            IndexDocument(user_id="u1", index_code="C01")

    def test_confidence_bounds(self):
        with pytest.raises(ValidationError):
            IndexDocument(user_id="u1", index_code="C001", confidence=1.5)


class TestIndexDirective:
    """Tests for IndexDirective validation."""

    def test_primary_not_in_related(self):
        with pytest.raises(ValidationError):
            IndexDirective(
                memory_id=uuid4(),
                user_id="u1",
                primary_index_code="C001",
                related_index_codes=["C001"],
            )

    def test_at_most_three_related(self):
        with pytest.raises(ValidationError):
            IndexDirective(
                memory_id=uuid4(),
                user_id="u1",
                primary_index_code="C001",
                related_index_codes=["A001", "A002", "A003", "A004"],
            )

    @pytest.mark.parametrize("importance,expected", [
        (10, RetrievalPriority.HIGH),
        (8, RetrievalPriority.HIGH),
        (7, RetrievalPriority.MEDIUM),
        (5, RetrievalPriority.MEDIUM),
        (4, RetrievalPriority.LOW),
        (1, RetrievalPriority.LOW),
    ])
    def test_priority_for_importance(self, importance, expected):
        assert priority_for_importance(importance) == expected


def test_classification_all_codes():
    classification = Classification(primary_index="C001", related_indices=["C002", "E002"])
    assert classification.all_codes == ["C001", "C002", "E002"]
