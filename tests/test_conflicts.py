"""
Unit Tests for the Conflict Resolver
"""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from memory_index.models.index_document import DocumentStatus, MemoryIndexMapping
from memory_index.models.memory import ConflictResult
from memory_index.pipelines.conflicts import ConflictResolver, parse_conflict_result


class TestParseConflictResult:
    """Tests for reply parsing."""

    def test_ids_outside_candidates_dropped(self):
        known = uuid4()
        result = parse_conflict_result(
            {"supersedes": [str(known), str(uuid4())], "contradicts": ["nope"]},
            {str(known): known},
        )
        assert result.supersedes == [known]
        assert result.contradicts == []

    def test_each_id_in_one_bucket(self):
        a, b = uuid4(), uuid4()
        candidates = {str(a): a, str(b): b}
        result = parse_conflict_result(
            {"supersedes": [str(a)], "contradicts": [str(a), str(b)], "relatedTo": [str(b)]},
            candidates,
        )
        assert result.supersedes == [a]
        assert result.contradicts == [b]
        assert result.related_to == []

    def test_non_dict_reply(self):
        assert parse_conflict_result(None, {}).is_empty


class TestConflictResolver:
    """Tests for ConflictResolver.resolve."""

    @pytest.mark.asyncio
    async def test_no_candidates_skips_collaborator(self, repository, mock_llm, make_memory):
        resolver = ConflictResolver(repository, mock_llm)
        memory = await repository.save_memory(make_memory())

        result = await resolver.resolve(memory)

        assert result.is_empty
        mock_llm.compare_memories.assert_not_called()

    @pytest.mark.asyncio
    async def test_supersession_soft_deletes(self, repository, mock_llm, make_memory):
        first = await repository.save_memory(make_memory("I work as a nurse", importance=6))
        second = await repository.save_memory(make_memory("I quit nursing and became a teacher", importance=7))
        mock_llm.compare_memories = AsyncMock(return_value={
            "supersedes": [str(first.id)],
            "contradicts": [],
            "relatedTo": [],
        })
        resolver = ConflictResolver(repository, mock_llm)

        result = await resolver.resolve(second)

        assert result.supersedes == [first.id]
        stored = await repository.get_memory(first.id)
        assert stored is not None
        assert stored.importance == 1
        assert stored.metadata.superseded_by == "new_memory"

        candidates = mock_llm.compare_memories.call_args.args[1]
        assert [c[0] for c in candidates] == [str(first.id)]

    @pytest.mark.asyncio
    async def test_supersession_marks_documents_stale(self, repository, mock_llm, make_memory, lifecycle):
        first = await repository.save_memory(make_memory())
        document = await lifecycle.get_or_create_document("user-1", "C001")
        await repository.create_mapping(MemoryIndexMapping(memory_id=first.id, index_document_id=document.id))
        await lifecycle.regenerate_document("user-1", "C001")

        resolver = ConflictResolver(repository, mock_llm)
        updated = await resolver.apply_supersession([first.id])

        assert updated == 1
        stored = await repository.get_document("user-1", "C001")
        assert stored.status == DocumentStatus.STALE
        assert stored.needs_regeneration

    @pytest.mark.asyncio
    async def test_archived_documents_stay_archived(self, repository, mock_llm, make_memory, lifecycle):
        first = await repository.save_memory(make_memory())
        document = await lifecycle.get_or_create_document("user-1", "C001")
        await repository.create_mapping(MemoryIndexMapping(memory_id=first.id, index_document_id=document.id))
        await lifecycle.archive_document("user-1", "C001")

        await ConflictResolver(repository, mock_llm).apply_supersession([first.id])

        stored = await repository.get_document("user-1", "C001")
        assert stored.status == DocumentStatus.ARCHIVED

    @pytest.mark.asyncio
    async def test_collaborator_failure_is_empty(self, repository, mock_llm, make_memory):
        first = await repository.save_memory(make_memory())
        second = await repository.save_memory(make_memory("Another fact"))
        mock_llm.compare_memories = AsyncMock(side_effect=RuntimeError("down"))

        result = await ConflictResolver(repository, mock_llm).resolve(second)

        assert result == ConflictResult()
        assert (await repository.get_memory(first.id)).importance == 5
