"""
LLM Client

Handles all collaborator calls made by the index:
- Memory classification into index categories
- Profile document synthesis
- Memory conflict comparison
- Embeddings (with an LRU cache)
"""

import json
import logging
import os
from typing import Any, Callable, List, Optional, Sequence, Tuple

from openai import AsyncOpenAI

from memory_index.config import EmbeddingConfig, LLMConfig
from memory_index.exceptions import CollaboratorUnavailableError, LLMResponseError
from memory_index.llm.base import EmbeddingProvider
from memory_index.llm.openai_provider import OpenAIEmbeddingProvider

logger = logging.getLogger("memory_index.llm")


class LLMClient:
    """
    Client for collaborator calls using the OpenAI API.

    Chat calls use JSON mode and return parsed dicts. When no API key is
    configured, chat calls raise CollaboratorUnavailableError and
    embeddings come back empty, which callers treat as "unavailable".
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: str = "gpt-4o-mini",
        classify_model: Optional[str] = None,
        synthesis_model: Optional[str] = None,
        compare_model: Optional[str] = None,
        timeout: float = 60.0,
        usage_callback: Optional[Callable] = None,
        enable_embedding_cache: bool = True,
        max_cache_size: int = 1000,
        embedding_model: str = "text-embedding-3-small",
        embedding_provider: Optional[EmbeddingProvider] = None,
    ):
        self.model = model
        self.classify_model = classify_model or model
        self.synthesis_model = synthesis_model or model
        self.compare_model = compare_model or model
        self.usage_callback = usage_callback

        api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.client: Optional[AsyncOpenAI] = None
        if api_key:
            self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

        if embedding_provider is None and self.client is not None:
            embedding_provider = OpenAIEmbeddingProvider(model=embedding_model, client=self.client)
        self._embedding_provider = embedding_provider

        # Embedding cache (LRU)
        self.enable_embedding_cache = enable_embedding_cache
        self.max_cache_size = max_cache_size
        self._embedding_cache: dict[str, List[float]] = {}
        self._cache_order: list[str] = []

        self._cache_hits = 0
        self._cache_misses = 0

    @classmethod
    def from_config(
        cls,
        llm_config: LLMConfig,
        embedding_config: Optional[EmbeddingConfig] = None,
        usage_callback: Optional[Callable] = None,
    ) -> "LLMClient":
        """Build a client from the llm/embedding config sections."""
        embedding_config = embedding_config or EmbeddingConfig()
        return cls(
            api_key=llm_config.api_key,
            base_url=llm_config.base_url,
            model=llm_config.model,
            classify_model=llm_config.get_classify_model(),
            synthesis_model=llm_config.get_synthesis_model(),
            compare_model=llm_config.get_compare_model(),
            timeout=llm_config.request_timeout_seconds,
            usage_callback=usage_callback,
            enable_embedding_cache=embedding_config.enable_cache,
            max_cache_size=embedding_config.max_cache_size,
            embedding_model=embedding_config.model,
        )

    @property
    def embeddings_available(self) -> bool:
        return self._embedding_provider is not None

    async def _report_usage(self, response: Any, model_override: str = None):
        """Helper to report token usage via callback."""
        if self.usage_callback and hasattr(response, "usage") and response.usage:
            await self.usage_callback(
                model_override or self.model,
                response.usage.prompt_tokens,
                getattr(response.usage, "completion_tokens", 0),
                response.usage.total_tokens
            )

    async def _complete_json(
        self,
        prompt: str,
        model: str,
        temperature: float = 0.3,
    ) -> dict:
        """
        Run one JSON-mode chat completion.

        Raises:
            CollaboratorUnavailableError: No API key configured
            LLMResponseError: The reply is not a JSON object
        """
        if self.client is None:
            raise CollaboratorUnavailableError("OpenAI API key is not configured")

        response = await self.client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            temperature=temperature,
            response_format={"type": "json_object"},
        )
        await self._report_usage(response, model)

        try:
            result = json.loads(response.choices[0].message.content)
        except (json.JSONDecodeError, IndexError, TypeError) as e:
            raise LLMResponseError(f"Unparseable response from {model}: {e}") from e

        if not isinstance(result, dict):
            raise LLMResponseError(f"Expected a JSON object from {model}, got {type(result).__name__}")
        return result

    # ========== Classification ==========

    async def classify_memory(
        self,
        content: str,
        category: str,
        importance: int,
        category_list: str,
        emotion: Optional[str] = None,
        people: Optional[List[str]] = None,
    ) -> dict:
        """
        Ask which index categories a memory belongs to.

        Returns the raw ``{primaryIndex, relatedIndices, confidence, reasoning}``
        object, or an empty dict when the reply could not be parsed.
        """
        details = [f"Category: {category}", f"Importance: {importance}/10"]
        if emotion:
            details.append(f"Emotion: {emotion}")
        if people:
            details.append(f"People involved: {', '.join(people)}")

        prompt = f"""Classify which index categories this memory belongs to.

MEMORY:
"{content}"
{chr(10).join(details)}

AVAILABLE INDEX CATEGORIES:
{category_list}

Determine:
1. The PRIMARY index category this memory most strongly relates to
2. Any RELATED index categories (up to 3) that could benefit from this memory
3. Your confidence (0-1) in this classification

Output Format (JSON object):
{{
  "primaryIndex": "X000",
  "relatedIndices": ["X000", "X000"],
  "confidence": 0.0 to 1.0,
  "reasoning": "Brief explanation"
}}"""

        try:
            return await self._complete_json(prompt, self.classify_model, temperature=0.2)
        except LLMResponseError as e:
            logger.warning(f"Classification reply ignored: {e}")
            return {}

    # ========== Synthesis ==========

    async def synthesize_document(
        self,
        domain_name: str,
        topic_name: str,
        description: str,
        memory_lines: Sequence[str],
        prior_content: Optional[str] = None,
    ) -> dict:
        """
        Write a profile document from formatted memories.

        Raises:
            LLMResponseError: The reply could not be parsed
        """
        memories_text = "\n\n".join(memory_lines)
        existing_context = ""
        if prior_content:
            existing_context = (
                f"\n\nPrevious understanding:\n{prior_content}\n\n"
                "Update and expand upon this based on new memories."
            )

        prompt = f"""You are writing a profile document about a person from collected memories.
It helps a conversational companion understand and support them.

CATEGORY: {domain_name} > {topic_name}
DESCRIPTION: {description}

MEMORIES TO SYNTHESIZE ({len(memory_lines)} total):
{memories_text}{existing_context}

Go beyond surface facts: describe motivations, patterns and nuances, and
give guidance for how the companion should approach this topic.
Memories marked [superseded] are outdated and only provide history.

Output Format (JSON object):
{{
  "title": "A descriptive title for this profile section",
  "summary": "A 2-3 sentence summary",
  "content": "A 3-5 paragraph narrative written in third person (they/them)",
  "keyInsights": ["3-5 key insights"],
  "patterns": ["2-4 recurring patterns"],
  "recommendations": ["3-5 recommendations for the companion"],
  "confidence": 0.0 to 1.0
}}"""

        return await self._complete_json(prompt, self.synthesis_model, temperature=0.5)

    # ========== Conflict Detection ==========

    async def compare_memories(
        self,
        new_content: str,
        candidates: Sequence[Tuple[str, str]],
    ) -> dict:
        """
        Relate a new memory to existing ones.

        Args:
            new_content: The incoming memory
            candidates: (id, content) pairs of existing memories

        Returns:
            ``{supersedes, contradicts, relatedTo}`` id lists, or an empty
            dict when the reply could not be parsed
        """
        existing = "\n".join(f"[{memory_id}] {content}" for memory_id, content in candidates)

        prompt = f"""Compare a NEW memory with EXISTING memories about the same person.

NEW MEMORY: "{new_content}"

EXISTING MEMORIES:
{existing}

Place each existing memory in at most one list:
- "supersedes": the new memory replaces or updates it (e.g. changed job, moved city)
- "contradicts": the new memory conflicts with it but does not clearly replace it
- "relatedTo": same subject, both remain true

Output Format (JSON object, ids exactly as given in brackets):
{{
  "supersedes": [],
  "contradicts": [],
  "relatedTo": []
}}"""

        try:
            return await self._complete_json(prompt, self.compare_model, temperature=0.0)
        except LLMResponseError as e:
            logger.warning(f"Conflict comparison reply ignored: {e}")
            return {}

    # ========== Embeddings ==========

    async def generate_embedding(self, text: str) -> List[float]:
        """
        Generate embedding vector for text with caching.

        Returns an empty list when no embedding provider is configured.
        """
        embeddings = await self.batch_generate_embeddings([text])
        return embeddings[0] if embeddings else []

    async def batch_generate_embeddings(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for multiple texts in a single API call.

        Cached texts are served locally; only misses reach the provider.

        Args:
            texts: List of text strings to embed

        Returns:
            List of embedding vectors in the same order as input texts
        """
        if not texts:
            return []
        if self._embedding_provider is None:
            return [[] for _ in texts]

        uncached_texts = []
        uncached_indices = []
        result_embeddings: List[Optional[List[float]]] = [None] * len(texts)

        for i, text in enumerate(texts):
            if self.enable_embedding_cache and text in self._embedding_cache:
                self._cache_hits += 1
                self._touch_cache(text)
                result_embeddings[i] = self._embedding_cache[text]
            else:
                uncached_texts.append(text)
                uncached_indices.append(i)

        if not uncached_texts:
            return result_embeddings

        self._cache_misses += len(uncached_texts)
        embeddings_from_api = await self._embedding_provider.batch_embed(uncached_texts)

        for i, embedding in enumerate(embeddings_from_api):
            original_index = uncached_indices[i]
            text = uncached_texts[i]

            result_embeddings[original_index] = embedding

            # Degenerate vectors are not worth caching
            if self.enable_embedding_cache and embedding:
                self._add_to_cache(text, embedding)

        return result_embeddings

    def _touch_cache(self, key: str) -> None:
        """Update LRU order for cache hit."""
        if key in self._cache_order:
            self._cache_order.remove(key)
        self._cache_order.append(key)

    def _add_to_cache(self, key: str, value: List[float]) -> None:
        """Add to cache with LRU eviction."""
        if len(self._embedding_cache) >= self.max_cache_size:
            if self._cache_order:
                oldest = self._cache_order.pop(0)
                del self._embedding_cache[oldest]

        self._embedding_cache[key] = value
        self._cache_order.append(key)

    def get_cache_stats(self) -> dict:
        """Get cache hit/miss statistics."""
        total = self._cache_hits + self._cache_misses
        hit_rate = (self._cache_hits / total * 100) if total > 0 else 0

        return {
            "hits": self._cache_hits,
            "misses": self._cache_misses,
            "total_requests": total,
            "hit_rate_percent": round(hit_rate, 2),
            "cache_size": len(self._embedding_cache),
            "max_cache_size": self.max_cache_size,
        }

    def clear_embedding_cache(self) -> None:
        """Clear the embedding cache."""
        self._embedding_cache.clear()
        self._cache_order.clear()
        self._cache_hits = 0
        self._cache_misses = 0
