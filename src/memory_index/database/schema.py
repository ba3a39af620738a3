"""
Database Schema

Defines and creates the PostgreSQL schema for the memory index. The
uniqueness constraints here are the storage invariants the index relies
on; nothing above the database re-checks them.
"""

import asyncpg

SCHEMA_SQL = """
-- Enable vector extension
CREATE EXTENSION IF NOT EXISTS vector;

-- 1. Memories: written by the ingesting pipeline, read by the index
CREATE TABLE IF NOT EXISTS memories (
    id UUID PRIMARY KEY,
    user_id TEXT NOT NULL,
    content TEXT NOT NULL,
    category VARCHAR(20) NOT NULL DEFAULT 'fact',
    importance INTEGER NOT NULL DEFAULT 5 CHECK (importance BETWEEN 1 AND 10),
    embedding vector,                           -- Dimension fixed per deployment
    metadata JSONB NOT NULL DEFAULT '{}'::jsonb, -- people, emotion, supersession, extra keys
    occurred_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

-- 2. Index Documents: one synthesized profile per (user, index code)
CREATE TABLE IF NOT EXISTS index_documents (
    id UUID PRIMARY KEY,
    user_id TEXT NOT NULL,
    index_code VARCHAR(4) NOT NULL,
    domain CHAR(1) NOT NULL,
    title TEXT NOT NULL,
    summary TEXT NOT NULL DEFAULT '',
    content TEXT NOT NULL DEFAULT '',
    key_insights JSONB NOT NULL DEFAULT '[]'::jsonb,
    patterns JSONB NOT NULL DEFAULT '[]'::jsonb,
    recommendations JSONB NOT NULL DEFAULT '[]'::jsonb,
    embedding vector,
    source_memory_ids UUID[] NOT NULL DEFAULT '{}',
    memory_count INTEGER NOT NULL DEFAULT 0,
    confidence REAL NOT NULL DEFAULT 0 CHECK (confidence BETWEEN 0 AND 1),
    version INTEGER NOT NULL DEFAULT 0,         -- 0 until first synthesis
    status VARCHAR(20) NOT NULL DEFAULT 'draft', -- draft, active, stale, archived
    needs_regeneration BOOLEAN NOT NULL DEFAULT FALSE,
    sync_file_id TEXT,
    sync_url TEXT,
    synced_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ DEFAULT NOW(),
    CONSTRAINT index_documents_user_code_unique UNIQUE (user_id, index_code)
);

-- 3. Memory -> Document edges
CREATE TABLE IF NOT EXISTS memory_index_mappings (
    memory_id UUID NOT NULL REFERENCES memories(id) ON DELETE CASCADE,
    index_document_id UUID NOT NULL REFERENCES index_documents(id) ON DELETE CASCADE,
    contribution VARCHAR(20) NOT NULL DEFAULT 'primary', -- primary, supporting, minor
    relevance_score REAL NOT NULL DEFAULT 1.0,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    PRIMARY KEY (memory_id, index_document_id)
);

-- 4. Index Directives: one classification per memory
CREATE TABLE IF NOT EXISTS index_directives (
    id UUID PRIMARY KEY,
    memory_id UUID NOT NULL UNIQUE REFERENCES memories(id) ON DELETE CASCADE,
    user_id TEXT NOT NULL,
    primary_index_code VARCHAR(4) NOT NULL,
    related_index_codes TEXT[] NOT NULL DEFAULT '{}',
    confidence REAL NOT NULL DEFAULT 0.5,
    retrieval_priority VARCHAR(10) NOT NULL DEFAULT 'medium', -- high, medium, low
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ DEFAULT NOW()
);

-- 5. Knowledge Profiles: onboarding state per user
CREATE TABLE IF NOT EXISTS knowledge_profiles (
    user_id TEXT PRIMARY KEY,
    onboarding_phase VARCHAR(30) NOT NULL DEFAULT 'new',
    total_message_count INTEGER NOT NULL DEFAULT 0,
    knowledge_scores JSONB NOT NULL DEFAULT '{}'::jsonb,
    asked_questions JSONB NOT NULL DEFAULT '[]'::jsonb,
    last_assessed_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ DEFAULT NOW()
);

-- Indexes
CREATE INDEX IF NOT EXISTS idx_memories_user_importance ON memories(user_id, importance DESC);
CREATE INDEX IF NOT EXISTS idx_index_documents_user_status ON index_documents(user_id, status);
CREATE INDEX IF NOT EXISTS idx_index_documents_pending ON index_documents(user_id)
    WHERE needs_regeneration OR status = 'stale';
CREATE INDEX IF NOT EXISTS idx_mappings_document ON memory_index_mappings(index_document_id);
CREATE INDEX IF NOT EXISTS idx_directives_primary ON index_directives(user_id, primary_index_code);
"""

TABLES = [
    "memory_index_mappings",
    "index_directives",
    "index_documents",
    "knowledge_profiles",
    "memories",
]


class DatabaseSchema:
    """
    Manages database schema creation and migrations.
    """

    def __init__(self, connection_string: str = None):
        """
        Initialize schema manager.

        Args:
            connection_string: PostgreSQL connection string.
                             Defaults to local 'memory_index' database.
        """
        self.connection_string = connection_string or "postgresql://localhost/memory_index"
        self._initialized = False

    async def initialize(self) -> None:
        """
        Create all tables and indexes if they don't exist.
        """
        if self._initialized:
            return

        conn = await asyncpg.connect(self.connection_string)
        try:
            await conn.execute(SCHEMA_SQL)
        finally:
            await conn.close()

        self._initialized = True

    async def drop_all(self) -> None:
        """
        Drop all tables. USE WITH CAUTION - this destroys all data.
        """
        drop_sql = "\n".join(f"DROP TABLE IF EXISTS {table} CASCADE;" for table in TABLES)
        conn = await asyncpg.connect(self.connection_string)
        try:
            await conn.execute(drop_sql)
        finally:
            await conn.close()
        self._initialized = False

    async def get_stats(self) -> dict:
        """
        Get row counts per table and the database size.
        """
        conn = await asyncpg.connect(self.connection_string)
        try:
            stats = {}
            for table in TABLES:
                stats[table] = await conn.fetchval(f"SELECT COUNT(*) FROM {table}")
            stats["db_size"] = await conn.fetchval(
                "SELECT pg_size_pretty(pg_database_size(current_database()))"
            )
            stats["connected"] = True
            return stats
        finally:
            await conn.close()
