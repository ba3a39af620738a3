"""
Memory Classifier

Places one memory into the index taxonomy: a primary code, up to three
related codes and a confidence. The primary code is always a registry
code; when the collaborator fails or answers with an unknown code, a
static category -> code table supplies it with a low confidence.
"""

import logging
from typing import Any, List, Optional

from memory_index.llm.client import LLMClient
from memory_index.models.index_document import Classification, clamp_unit
from memory_index.models.memory import Memory
from memory_index.taxonomy.categories import fallback_index_for, format_category_list, is_valid_code

logger = logging.getLogger("memory_index.classify")

MAX_RELATED_INDICES = 3

# Confidence attached to fallback classifications
INVALID_RESULT_CONFIDENCE = 0.3
FAILED_CALL_CONFIDENCE = 0.2
DEFAULT_CONFIDENCE = 0.5


def fallback_classification(memory: Memory, confidence: float, reasoning: str) -> Classification:
    """Static classification from the memory category alone."""
    return Classification(
        primary_index=fallback_index_for(memory.category),
        related_indices=[],
        confidence=confidence,
        reasoning=reasoning,
        is_fallback=True,
    )


def _clean_related(primary: str, codes: Any) -> List[str]:
    """Registry-valid, de-duplicated related codes without the primary, at most three."""
    if not isinstance(codes, list):
        return []
    related: List[str] = []
    for code in codes:
        if code == primary or code in related or not is_valid_code(code):
            continue
        related.append(code)
        if len(related) == MAX_RELATED_INDICES:
            break
    return related


def _parse_confidence(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_CONFIDENCE
    return clamp_unit(value)


def parse_classification(raw: Optional[dict], memory: Memory) -> Classification:
    """
    Validate a collaborator reply.

    An empty, malformed or unknown-primary reply falls back to the static
    table with confidence 0.3.
    """
    if not isinstance(raw, dict) or not raw:
        return fallback_classification(memory, INVALID_RESULT_CONFIDENCE, "Unparseable result, used fallback")

    primary = raw.get("primaryIndex")
    if not is_valid_code(primary):
        return fallback_classification(memory, INVALID_RESULT_CONFIDENCE, "Invalid primary index, used fallback")

    reasoning = raw.get("reasoning")
    return Classification(
        primary_index=primary,
        related_indices=_clean_related(primary, raw.get("relatedIndices")),
        confidence=_parse_confidence(raw.get("confidence")),
        reasoning=reasoning if isinstance(reasoning, str) else "",
    )


class MemoryClassifier:
    """
    Classifies memories with the text-generation collaborator.

    The full category list is rendered once and sent with every request.
    """

    def __init__(self, llm_client: LLMClient):
        self.llm = llm_client
        self._category_list = format_category_list()

    async def classify(self, memory: Memory) -> Classification:
        """
        Classify one memory. Never raises for collaborator failures.

        Args:
            memory: The memory to place

        Returns:
            Classification whose primary index is always a registry code
        """
        try:
            raw = await self.llm.classify_memory(
                content=memory.content,
                category=memory.category,
                importance=memory.importance,
                category_list=self._category_list,
                emotion=memory.metadata.emotion,
                people=memory.metadata.people,
            )
        except Exception as e:
            logger.warning(f"Classification failed for memory {memory.id}, using fallback: {e}")
            return fallback_classification(memory, FAILED_CALL_CONFIDENCE, "Classification failed, used fallback")

        classification = parse_classification(raw, memory)
        if classification.is_fallback:
            logger.info(f"Memory {memory.id}: {classification.reasoning}")
        return classification
