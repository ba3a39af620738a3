"""
PostgreSQL Index Repository

asyncpg implementation of IndexRepository. Embeddings are stored in
pgvector columns; JSON-shaped fields are stored as JSONB.
"""

import json
from datetime import datetime
from typing import Any, List, Optional, Tuple
from uuid import UUID

import asyncpg

from memory_index.database.base import IndexRepository
from memory_index.exceptions import ConcurrentUpdateError, DuplicateDocumentError
from memory_index.models.index_document import (
    DocumentStatus,
    IndexDirective,
    IndexDocument,
    MemoryIndexMapping,
)
from memory_index.models.knowledge import AreaScore, AskedQuestion, KnowledgeProfile
from memory_index.models.memory import Memory, MemoryMetadata, SupersessionMarker, utc_now


def _load_json(value: Any, default: Any) -> Any:
    """Decode a JSONB/vector column that asyncpg returned as text."""
    if value is None:
        return default
    if isinstance(value, (str, bytes)):
        return json.loads(value)
    return value


def _vector_param(embedding: Optional[List[float]]) -> Optional[str]:
    """pgvector text literal, or NULL for missing/empty vectors."""
    return str(list(embedding)) if embedding else None


def _affected_rows(status: str) -> int:
    """Row count from an asyncpg command tag such as 'UPDATE 3'."""
    try:
        return int(status.split()[-1])
    except (AttributeError, ValueError, IndexError):
        return 0


def _row_to_memory(row) -> Memory:
    return Memory(
        id=row["id"],
        user_id=row["user_id"],
        content=row["content"],
        category=row["category"],
        importance=row["importance"],
        embedding=_load_json(row["embedding"], None),
        metadata=MemoryMetadata.from_dict(_load_json(row["metadata"], {})),
        occurred_at=row["occurred_at"],
        created_at=row["created_at"],
    )


def _row_to_document(row) -> IndexDocument:
    return IndexDocument(
        id=row["id"],
        user_id=row["user_id"],
        index_code=row["index_code"],
        domain=row["domain"],
        title=row["title"],
        summary=row["summary"],
        content=row["content"],
        key_insights=_load_json(row["key_insights"], []),
        patterns=_load_json(row["patterns"], []),
        recommendations=_load_json(row["recommendations"], []),
        embedding=_load_json(row["embedding"], None),
        source_memory_ids=list(row["source_memory_ids"] or []),
        memory_count=row["memory_count"],
        confidence=min(1.0, max(0.0, row["confidence"])),
        version=row["version"],
        status=row["status"],
        needs_regeneration=row["needs_regeneration"],
        sync_file_id=row["sync_file_id"],
        sync_url=row["sync_url"],
        synced_at=row["synced_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_directive(row) -> IndexDirective:
    return IndexDirective(
        id=row["id"],
        memory_id=row["memory_id"],
        user_id=row["user_id"],
        primary_index_code=row["primary_index_code"],
        related_index_codes=list(row["related_index_codes"] or []),
        confidence=min(1.0, max(0.0, row["confidence"])),
        retrieval_priority=row["retrieval_priority"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class PostgresIndexRepository(IndexRepository):
    """
    Repository for all database operations on index data.

    Provides methods for:
    - Reading memories and applying supersession
    - Document CRUD with version compare-and-swap
    - Idempotent mapping creation and directive upserts
    - Knowledge profile persistence
    """

    def __init__(self, connection_string: str = None, min_size: int = 2, max_size: int = 10):
        self.connection_string = connection_string or "postgresql://127.0.0.1/memory_index"
        self.min_size = min_size
        self.max_size = max_size
        self._pool: Optional[asyncpg.Pool] = None

    async def connect(self) -> None:
        """Initialize connection pool."""
        if self._pool is not None:
            return
        self._pool = await asyncpg.create_pool(
            self.connection_string,
            min_size=self.min_size,
            max_size=self.max_size,
        )

    async def disconnect(self) -> None:
        """Close connection pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None

    # ========== Memory Operations ==========

    async def save_memory(self, memory: Memory) -> Memory:
        async with self._pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO memories (id, user_id, content, category, importance,
                                      embedding, metadata, occurred_at, created_at)
                VALUES ($1, $2, $3, $4, $5, $6::vector, $7::jsonb, $8, $9)
                ON CONFLICT (id) DO UPDATE SET
                    content = EXCLUDED.content,
                    category = EXCLUDED.category,
                    importance = EXCLUDED.importance,
                    embedding = COALESCE(EXCLUDED.embedding, memories.embedding),
                    metadata = EXCLUDED.metadata,
                    occurred_at = EXCLUDED.occurred_at
                """,
                memory.id,
                memory.user_id,
                memory.content,
                memory.category,
                memory.importance,
                _vector_param(memory.embedding),
                json.dumps(memory.metadata.to_dict()),
                memory.occurred_at,
                memory.created_at,
            )
        return memory

    async def get_memory(self, memory_id: UUID) -> Optional[Memory]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow("SELECT * FROM memories WHERE id = $1", memory_id)
            return _row_to_memory(row) if row else None

    async def get_user_memories(self, user_id: str) -> List[Memory]:
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(
                "SELECT * FROM memories WHERE user_id = $1 ORDER BY created_at ASC",
                user_id,
            )
            return [_row_to_memory(row) for row in rows]

    async def get_top_memories(
        self,
        user_id: str,
        limit: int,
        exclude_ids: Optional[List[UUID]] = None,
    ) -> List[Memory]:
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT * FROM memories
                WHERE user_id = $1 AND NOT (id = ANY($2::uuid[]))
                ORDER BY importance DESC, created_at DESC
                LIMIT $3
                """,
                user_id,
                list(exclude_ids or []),
                limit,
            )
            return [_row_to_memory(row) for row in rows]

    async def supersede_memory(self, memory_id: UUID, marker: SupersessionMarker) -> bool:
        async with self._pool.acquire() as conn:
            status = await conn.execute(
                """
                UPDATE memories
                SET importance = 1,
                    metadata = COALESCE(metadata, '{}'::jsonb) || jsonb_build_object('supersession', $2::jsonb)
                WHERE id = $1
                """,
                memory_id,
                json.dumps(marker.model_dump(mode="json")),
            )
        return _affected_rows(status) > 0

    async def update_memory_metadata(self, memory_id: UUID, metadata: MemoryMetadata) -> bool:
        async with self._pool.acquire() as conn:
            status = await conn.execute(
                "UPDATE memories SET metadata = $2::jsonb WHERE id = $1",
                memory_id,
                json.dumps(metadata.to_dict()),
            )
        return _affected_rows(status) > 0

    # ========== Document Operations ==========

    _INSERT_DOCUMENT = """
        INSERT INTO index_documents (
            id, user_id, index_code, domain, title, summary, content,
            key_insights, patterns, recommendations, embedding,
            source_memory_ids, memory_count, confidence, version, status,
            needs_regeneration, created_at, updated_at
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8::jsonb, $9::jsonb, $10::jsonb, $11::vector,
                $12::uuid[], $13, $14, $15, $16, $17, $18, $19)
    """

    def _document_insert_args(self, document: IndexDocument) -> tuple:
        return (
            document.id,
            document.user_id,
            document.index_code,
            document.domain or document.index_code[0],
            document.title,
            document.summary,
            document.content,
            json.dumps(document.key_insights),
            json.dumps(document.patterns),
            json.dumps(document.recommendations),
            _vector_param(document.embedding),
            list(document.source_memory_ids),
            document.memory_count,
            document.confidence,
            document.version,
            document.status,
            document.needs_regeneration,
            document.created_at,
            document.updated_at,
        )

    async def get_document(self, user_id: str, index_code: str) -> Optional[IndexDocument]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM index_documents WHERE user_id = $1 AND index_code = $2",
                user_id,
                index_code,
            )
            return _row_to_document(row) if row else None

    async def create_document(self, document: IndexDocument) -> IndexDocument:
        async with self._pool.acquire() as conn:
            try:
                await conn.execute(self._INSERT_DOCUMENT, *self._document_insert_args(document))
            except asyncpg.exceptions.UniqueViolationError as e:
                raise DuplicateDocumentError(document.user_id, document.index_code) from e
        return document

    async def get_or_create_document(self, document: IndexDocument) -> Tuple[IndexDocument, bool]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                self._INSERT_DOCUMENT
                + " ON CONFLICT (user_id, index_code) DO NOTHING RETURNING *",
                *self._document_insert_args(document),
            )
            if row:
                return _row_to_document(row), True

            row = await conn.fetchrow(
                "SELECT * FROM index_documents WHERE user_id = $1 AND index_code = $2",
                document.user_id,
                document.index_code,
            )
            return _row_to_document(row), False

    async def list_documents(
        self,
        user_id: str,
        status: Optional[DocumentStatus] = None,
        domain: Optional[str] = None,
        needs_regeneration: Optional[bool] = None,
    ) -> List[IndexDocument]:
        conditions = ["user_id = $1"]
        params: list = [user_id]

        if status is not None:
            params.append(DocumentStatus(status).value)
            conditions.append(f"status = ${len(params)}")
        if domain is not None:
            params.append(domain)
            conditions.append(f"domain = ${len(params)}")
        if needs_regeneration is not None:
            params.append(needs_regeneration)
            conditions.append(f"needs_regeneration = ${len(params)}")

        async with self._pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT * FROM index_documents WHERE {' AND '.join(conditions)} ORDER BY index_code",
                *params,
            )
            return [_row_to_document(row) for row in rows]

    async def update_document(self, document: IndexDocument, expected_version: int) -> IndexDocument:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                UPDATE index_documents SET
                    title = $3,
                    summary = $4,
                    content = $5,
                    key_insights = $6::jsonb,
                    patterns = $7::jsonb,
                    recommendations = $8::jsonb,
                    embedding = $9::vector,
                    source_memory_ids = $10::uuid[],
                    memory_count = $11,
                    confidence = $12,
                    version = $13,
                    status = $14,
                    needs_regeneration = $15 OR EXISTS (
                        SELECT 1 FROM memory_index_mappings m
                        WHERE m.index_document_id = $1
                          AND NOT (m.memory_id = ANY($10::uuid[]))
                    ),
                    updated_at = $16
                WHERE id = $1 AND version = $2
                RETURNING *
                """,
                document.id,
                expected_version,
                document.title,
                document.summary,
                document.content,
                json.dumps(document.key_insights),
                json.dumps(document.patterns),
                json.dumps(document.recommendations),
                _vector_param(document.embedding),
                list(document.source_memory_ids),
                document.memory_count,
                document.confidence,
                document.version,
                document.status,
                document.needs_regeneration,
                document.updated_at,
            )
        if row is None:
            raise ConcurrentUpdateError(document.id, expected_version)
        return _row_to_document(row)

    async def set_needs_regeneration(self, document_id: UUID) -> None:
        async with self._pool.acquire() as conn:
            await conn.execute(
                "UPDATE index_documents SET needs_regeneration = TRUE WHERE id = $1",
                document_id,
            )

    async def set_document_status(
        self,
        user_id: str,
        index_codes: List[str],
        status: DocumentStatus,
        needs_regeneration: Optional[bool] = None,
    ) -> int:
        async with self._pool.acquire() as conn:
            result = await conn.execute(
                """
                UPDATE index_documents
                SET status = $3,
                    needs_regeneration = COALESCE($4, needs_regeneration)
                WHERE user_id = $1 AND index_code = ANY($2::text[])
                """,
                user_id,
                list(index_codes),
                DocumentStatus(status).value,
                needs_regeneration,
            )
        return _affected_rows(result)

    async def update_sync_info(
        self,
        document_id: UUID,
        file_id: str,
        url: Optional[str],
        synced_at: datetime,
    ) -> None:
        async with self._pool.acquire() as conn:
            await conn.execute(
                """
                UPDATE index_documents
                SET sync_file_id = $2, sync_url = $3, synced_at = $4
                WHERE id = $1
                """,
                document_id,
                file_id,
                url,
                synced_at,
            )

    async def list_users_with_pending_documents(self) -> List[str]:
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT DISTINCT user_id FROM index_documents
                WHERE needs_regeneration OR status = 'stale'
                ORDER BY user_id
                """
            )
            return [row["user_id"] for row in rows]

    # ========== Mapping Operations ==========

    async def create_mapping(self, mapping: MemoryIndexMapping) -> bool:
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                created = await conn.fetchval(
                    """
                    INSERT INTO memory_index_mappings
                        (memory_id, index_document_id, contribution, relevance_score, created_at)
                    VALUES ($1, $2, $3, $4, $5)
                    ON CONFLICT (memory_id, index_document_id) DO NOTHING
                    RETURNING memory_id
                    """,
                    mapping.memory_id,
                    mapping.index_document_id,
                    mapping.contribution,
                    mapping.relevance_score,
                    mapping.created_at,
                )
                if created is None:
                    return False
                await conn.execute(
                    "UPDATE index_documents SET needs_regeneration = TRUE WHERE id = $1",
                    mapping.index_document_id,
                )
        return True

    async def get_mapped_memories(self, document_id: UUID) -> List[Memory]:
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT m.* FROM memories m
                JOIN memory_index_mappings mim ON mim.memory_id = m.id
                WHERE mim.index_document_id = $1
                ORDER BY m.importance DESC, m.created_at DESC
                """,
                document_id,
            )
            return [_row_to_memory(row) for row in rows]

    async def get_documents_for_memories(self, memory_ids: List[UUID]) -> List[IndexDocument]:
        if not memory_ids:
            return []
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT * FROM index_documents
                WHERE id IN (
                    SELECT index_document_id FROM memory_index_mappings
                    WHERE memory_id = ANY($1::uuid[])
                )
                ORDER BY user_id, index_code
                """,
                list(memory_ids),
            )
            return [_row_to_document(row) for row in rows]

    # ========== Directive Operations ==========

    async def upsert_directive(self, directive: IndexDirective) -> IndexDirective:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO index_directives (id, memory_id, user_id, primary_index_code,
                    related_index_codes, confidence, retrieval_priority, created_at, updated_at)
                VALUES ($1, $2, $3, $4, $5::text[], $6, $7, $8, $9)
                ON CONFLICT (memory_id) DO UPDATE SET
                    primary_index_code = EXCLUDED.primary_index_code,
                    related_index_codes = EXCLUDED.related_index_codes,
                    confidence = EXCLUDED.confidence,
                    retrieval_priority = EXCLUDED.retrieval_priority,
                    updated_at = EXCLUDED.updated_at
                RETURNING *
                """,
                directive.id,
                directive.memory_id,
                directive.user_id,
                directive.primary_index_code,
                list(directive.related_index_codes),
                directive.confidence,
                directive.retrieval_priority,
                directive.created_at,
                directive.updated_at,
            )
        return _row_to_directive(row)

    async def get_directive(self, memory_id: UUID) -> Optional[IndexDirective]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM index_directives WHERE memory_id = $1",
                memory_id,
            )
            return _row_to_directive(row) if row else None

    async def get_directives(self, memory_ids: List[UUID], limit: int = 100) -> List[IndexDirective]:
        if not memory_ids:
            return []
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT * FROM index_directives
                WHERE memory_id = ANY($1::uuid[])
                ORDER BY created_at ASC
                LIMIT $2
                """,
                list(memory_ids),
                limit,
            )
            return [_row_to_directive(row) for row in rows]

    # ========== Knowledge Profile Operations ==========

    async def get_profile(self, user_id: str) -> Optional[KnowledgeProfile]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM knowledge_profiles WHERE user_id = $1",
                user_id,
            )
        if not row:
            return None

        scores = _load_json(row["knowledge_scores"], {})
        asked = _load_json(row["asked_questions"], [])
        return KnowledgeProfile(
            user_id=row["user_id"],
            onboarding_phase=row["onboarding_phase"],
            total_message_count=row["total_message_count"],
            knowledge_scores={area: AreaScore(**data) for area, data in scores.items()},
            asked_questions=[AskedQuestion(**item) for item in asked],
            last_assessed_at=row["last_assessed_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    async def save_profile(self, profile: KnowledgeProfile) -> KnowledgeProfile:
        profile.updated_at = utc_now()
        scores = {area: score.model_dump(mode="json") for area, score in profile.knowledge_scores.items()}
        asked = [question.model_dump(mode="json") for question in profile.asked_questions]

        async with self._pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO knowledge_profiles (user_id, onboarding_phase, total_message_count,
                    knowledge_scores, asked_questions, last_assessed_at, created_at, updated_at)
                VALUES ($1, $2, $3, $4::jsonb, $5::jsonb, $6, $7, $8)
                ON CONFLICT (user_id) DO UPDATE SET
                    onboarding_phase = EXCLUDED.onboarding_phase,
                    total_message_count = EXCLUDED.total_message_count,
                    knowledge_scores = EXCLUDED.knowledge_scores,
                    asked_questions = EXCLUDED.asked_questions,
                    last_assessed_at = EXCLUDED.last_assessed_at,
                    updated_at = EXCLUDED.updated_at
                """,
                profile.user_id,
                profile.onboarding_phase,
                profile.total_message_count,
                json.dumps(scores),
                json.dumps(asked),
                profile.last_assessed_at,
                profile.created_at,
                profile.updated_at,
            )
        return profile
