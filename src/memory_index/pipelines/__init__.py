"""Pipelines package - Classification, indexing, synthesis and retrieval."""

from memory_index.pipelines.classify import MemoryClassifier
from memory_index.pipelines.conflicts import ConflictResolver
from memory_index.pipelines.hooks import PipelineHookManager, register_logging_hooks
from memory_index.pipelines.index import IndexPipeline
from memory_index.pipelines.retrieve import RetrievePipeline, cosine_similarity
from memory_index.pipelines.synthesize import SynthesisEngine, format_context, should_regenerate

__all__ = [
    "MemoryClassifier",
    "ConflictResolver",
    "PipelineHookManager",
    "register_logging_hooks",
    "IndexPipeline",
    "RetrievePipeline",
    "cosine_similarity",
    "SynthesisEngine",
    "format_context",
    "should_regenerate",
]
