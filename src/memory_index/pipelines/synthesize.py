"""
Synthesis Engine

Turns the memories mapped to one index document into a structured
narrative. The engine is a pure regeneration primitive: it does not load
or persist documents and does not decide *when* to regenerate. That
decision belongs to ``should_regenerate``, the single staleness predicate
shared by the on-demand and sweep paths.
"""

import logging
from datetime import datetime
from typing import Any, Iterable, List, Optional

from memory_index.config import StalenessConfig
from memory_index.llm.client import LLMClient
from memory_index.models.index_document import (
    DocumentStatus,
    IndexCategory,
    IndexDocument,
    SynthesisResult,
    clamp_unit,
)
from memory_index.models.memory import Memory, as_utc
from memory_index.taxonomy.categories import get_category_by_code

logger = logging.getLogger("memory_index.synthesis")

EMPTY_SUMMARY = "No memories have been collected for this topic yet."
EMPTY_CONTENT = (
    "This profile section is awaiting memories to synthesize. As conversations occur "
    "and memories are extracted, this document will be populated with insights."
)
EMPTY_RECOMMENDATION = "Gather more information about this topic through natural conversation"
DEFAULT_SYNTHESIS_CONFIDENCE = 0.5

SECONDS_PER_DAY = 60 * 60 * 24


def placeholder_result(category: IndexCategory) -> SynthesisResult:
    """Deterministic document for a topic with no memories."""
    return SynthesisResult(
        title=category.topic_name,
        summary=EMPTY_SUMMARY,
        content=EMPTY_CONTENT,
        key_insights=[],
        patterns=[],
        recommendations=[EMPTY_RECOMMENDATION],
        confidence=0.0,
        is_placeholder=True,
    )


def format_memory_line(position: int, memory: Memory) -> str:
    """One numbered memory entry for a synthesis request."""
    when = memory.occurred_at or memory.created_at
    emotion = f" [{memory.metadata.emotion}]" if memory.metadata.emotion else ""
    people = f" (involves: {', '.join(memory.metadata.people)})" if memory.metadata.people else ""
    superseded = " [superseded]" if memory.is_superseded else ""
    return (
        f"{position}. [Importance: {memory.importance}/10]{emotion}{people}{superseded}\n"
        f"   {memory.content}\n"
        f"   ({when.date().isoformat()})"
    )


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if isinstance(item, (str, int, float)) and str(item).strip()]


def _string(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def parse_synthesis_result(raw: dict, category: IndexCategory) -> SynthesisResult:
    """Validate a synthesis reply, filling gaps with safe defaults."""
    confidence = raw.get("confidence")
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        confidence = DEFAULT_SYNTHESIS_CONFIDENCE

    return SynthesisResult(
        title=_string(raw.get("title")) or category.topic_name,
        summary=_string(raw.get("summary")),
        content=_string(raw.get("content")),
        key_insights=_string_list(raw.get("keyInsights", raw.get("key_insights"))),
        patterns=_string_list(raw.get("patterns")),
        recommendations=_string_list(raw.get("recommendations")),
        confidence=clamp_unit(confidence),
    )


def embedding_text(result: SynthesisResult) -> str:
    """Text embedded for semantic retrieval of a document."""
    return f"{result.title}. {result.summary}. {result.content}"


def should_regenerate(
    document: IndexDocument,
    new_memory_count: int,
    latest_importance: int,
    now: datetime,
    config: Optional[StalenessConfig] = None,
) -> bool:
    """
    Decide whether a document is due for regeneration.

    Due when the document is stale, when enough new memories arrived, when
    the latest new memory is important, or when the document is old and
    has at least one new memory.

    Args:
        document: The stored document
        new_memory_count: Mapped memories not yet synthesized into it
        latest_importance: Importance of the most recent of those memories
        now: Current time
        config: Thresholds (defaults: 3 memories, importance 8, 7 days)
    """
    config = config or StalenessConfig()

    if document.status == DocumentStatus.STALE:
        return True

    if new_memory_count >= config.new_memory_threshold:
        return True
    if new_memory_count > 0 and latest_importance >= config.high_importance_threshold:
        return True

    age_days = (as_utc(now) - as_utc(document.updated_at)).total_seconds() / SECONDS_PER_DAY
    return age_days > config.max_age_days and new_memory_count >= 1


def format_context(documents: Iterable[IndexDocument]) -> str:
    """
    Flatten ranked documents into a prompt-ready profile block.

    Each section carries the summary, the top two key insights and the top
    two recommendations. Sections keep the order given.
    """
    sections = []
    for document in documents:
        category = get_category_by_code(document.index_code)
        topic = category.topic_name if category else document.title
        sections.append(
            f"[{document.index_code}] {topic}:\n"
            f"{document.summary}\n"
            f"Key: {'; '.join(document.key_insights[:2])}\n"
            f"Approach: {'; '.join(document.recommendations[:2])}"
        )

    if not sections:
        return ""
    return "CONTEXT PROFILE:\n" + "\n\n".join(sections)


class SynthesisEngine:
    """
    Produces document narratives with the text-generation collaborator.

    ``synthesize`` raises on collaborator failure; the lifecycle manager
    decides how to degrade.
    """

    def __init__(self, llm_client: LLMClient):
        self.llm = llm_client

    async def synthesize(
        self,
        category: IndexCategory,
        memories: List[Memory],
        existing: Optional[IndexDocument] = None,
    ) -> SynthesisResult:
        """
        Synthesize a document for ``category`` from ``memories``.

        An empty memory list yields the placeholder without any
        collaborator call. When ``existing`` has synthesized content it is
        sent as the anchor for an incremental update.

        Raises:
            LLMResponseError: The reply could not be parsed
            CollaboratorUnavailableError: No API key is configured
        """
        if not memories:
            return placeholder_result(category)

        ordered = sorted(memories, key=lambda m: m.importance, reverse=True)
        memory_lines = [format_memory_line(i + 1, memory) for i, memory in enumerate(ordered)]

        prior_content = None
        if existing is not None and existing.version > 0 and existing.content:
            prior_content = existing.content

        raw = await self.llm.synthesize_document(
            domain_name=category.domain_name,
            topic_name=category.topic_name,
            description=category.description,
            memory_lines=memory_lines,
            prior_content=prior_content,
        )
        result = parse_synthesis_result(raw, category)
        logger.debug(
            f"Synthesized {category.code} from {len(memories)} memories "
            f"(confidence {result.confidence:.2f})"
        )
        return result
