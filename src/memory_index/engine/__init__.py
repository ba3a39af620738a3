"""Engine package - Document lifecycle and the MemoryIndex facade."""

from memory_index.engine.base import MemoryIndexEngine
from memory_index.engine.index_engine import MemoryIndex
from memory_index.engine.lifecycle import DocumentLifecycleManager

__all__ = ["MemoryIndexEngine", "MemoryIndex", "DocumentLifecycleManager"]
