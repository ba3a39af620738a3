"""Database package - schema, repository interface and backends."""

from memory_index.database.base import IndexRepository
from memory_index.database.memory_store import InMemoryIndexRepository
from memory_index.database.repository import PostgresIndexRepository
from memory_index.database.schema import DatabaseSchema

__all__ = [
    "IndexRepository",
    "InMemoryIndexRepository",
    "PostgresIndexRepository",
    "DatabaseSchema",
]
