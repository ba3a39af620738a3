"""
Memory Index

Hierarchical user-memory indexing for a conversational companion: memories
are classified into a fixed taxonomy of life topics, synthesized into
profile documents, ranked for context, and scored for onboarding coverage.
"""

from memory_index.engine.index_engine import MemoryIndex
from memory_index.models.memory import Memory
from memory_index.models.retrieval import ContextPackage, ContextRequest

__version__ = "0.1.0"
__all__ = ["MemoryIndex", "Memory", "ContextPackage", "ContextRequest"]
