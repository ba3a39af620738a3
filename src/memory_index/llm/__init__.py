"""LLM package - text-generation and embedding collaborators."""

from memory_index.llm.base import EmbeddingError, EmbeddingProvider
from memory_index.llm.client import LLMClient
from memory_index.llm.openai_provider import OpenAIEmbeddingProvider

__all__ = ["EmbeddingError", "EmbeddingProvider", "LLMClient", "OpenAIEmbeddingProvider"]
