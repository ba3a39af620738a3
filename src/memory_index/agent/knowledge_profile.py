"""
Knowledge Profile

Tracks how well the companion knows a user across the 14 knowledge areas
and decides whether to surface an exploratory question this turn.

Scoring is a pure projection of the user's memories; the service only
persists the message counter, the asked-question history and the last
computed scores.
"""

import asyncio
import logging
import weakref
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Set

from memory_index.database.base import IndexRepository
from memory_index.models.knowledge import (
    AreaScore,
    AskedQuestion,
    KnowledgeGap,
    KnowledgeProfile,
    OnboardingContext,
    SuggestedQuestion,
)
from memory_index.models.memory import Memory, as_utc, utc_now
from memory_index.taxonomy.knowledge_areas import (
    AREA_KEYWORDS,
    AREA_LABELS,
    AREA_PRIORITY,
    ASK_PROBABILITIES,
    CATEGORY_AREAS,
    GAP_THRESHOLDS,
    MAX_RECENT_ASKS_PER_AREA,
    ONBOARDING_QUESTIONS,
    KnowledgeArea,
    OnboardingPhase,
)

logger = logging.getLogger("memory_index.agent.knowledge_profile")

MIN_POINTS_PER_MEMORY = 5
MAX_AREA_SCORE = 100.0
FULL_CONFIDENCE_MEMORIES = 5
MAX_TOP_GAPS = 5


class RandomSource(Protocol):
    """Anything with ``random() -> float`` in [0, 1), e.g. ``random.Random``."""

    def random(self) -> float:
        ...


def determine_onboarding_phase(message_count: int) -> OnboardingPhase:
    if message_count < 5:
        return OnboardingPhase.NEW
    if message_count < 25:
        return OnboardingPhase.GETTING_ACQUAINTED
    if message_count < 100:
        return OnboardingPhase.FAMILIAR
    return OnboardingPhase.ESTABLISHED


def memory_points(importance: int) -> int:
    """Score contribution of one memory: 5 for importance <= 5, up to 15."""
    return max(MIN_POINTS_PER_MEMORY, 5 + (importance - 5) * 2)


def areas_for_memory(memory: Memory) -> Set[KnowledgeArea]:
    """Areas a memory informs, by category and by keyword containment."""
    areas = set(CATEGORY_AREAS.get(memory.category, []))
    content = memory.content.lower()
    for area, keywords in AREA_KEYWORDS.items():
        if any(keyword in content for keyword in keywords):
            areas.add(area)
    return areas


def calculate_knowledge_scores(memories: Iterable[Memory]) -> Dict[str, AreaScore]:
    """
    Project memories onto area scores.

    Every area is present in the result. Areas never matched keep a score
    of 0 and no ``last_updated``.
    """
    scores = {area.value: AreaScore() for area in KnowledgeArea}

    for memory in memories:
        points = memory_points(memory.importance)
        for area in areas_for_memory(memory):
            entry = scores[KnowledgeArea(area).value]
            entry.memory_count += 1
            entry.score = min(MAX_AREA_SCORE, entry.score + points)
            created_at = as_utc(memory.created_at)
            if entry.last_updated is None or created_at > as_utc(entry.last_updated):
                entry.last_updated = created_at

    for entry in scores.values():
        entry.confidence = min(1.0, entry.memory_count / FULL_CONFIDENCE_MEMORIES)

    return scores


def identify_knowledge_gaps(
    scores: Dict[str, AreaScore],
    phase: OnboardingPhase,
    asked_areas: Sequence[str] = (),
) -> List[KnowledgeGap]:
    """
    Areas scoring below the phase threshold, highest priority first.

    Areas asked about ``MAX_RECENT_ASKS_PER_AREA`` times in the recent
    window are left out even when still below the threshold.
    """
    threshold = GAP_THRESHOLDS[OnboardingPhase(phase)]
    asked = [KnowledgeArea(area).value for area in asked_areas]

    gaps = []
    for rank, area in enumerate(AREA_PRIORITY):
        entry = scores.get(area.value)
        score = entry.score if entry else 0.0
        if score >= threshold:
            continue
        if asked.count(area.value) >= MAX_RECENT_ASKS_PER_AREA:
            continue

        gaps.append(KnowledgeGap(
            area=area,
            area_label=AREA_LABELS[area],
            current_score=score,
            suggested_questions=list(ONBOARDING_QUESTIONS.get(area, [])),
            priority=(len(AREA_PRIORITY) - rank) + (threshold - score) / 10,
        ))

    gaps.sort(key=lambda gap: gap.priority, reverse=True)
    return gaps


def get_next_question(
    gaps: Sequence[KnowledgeGap],
    phase: OnboardingPhase,
    asked_questions: Sequence[str],
    rng: RandomSource,
) -> Optional[SuggestedQuestion]:
    """
    Maybe pick a question for this turn.

    The phase's ask probability gates the whole decision; the random
    source is not consulted when there are no gaps.
    """
    if not gaps:
        return None
    if rng.random() > ASK_PROBABILITIES[OnboardingPhase(phase)]:
        return None

    recent = set(asked_questions)
    for gap in gaps:
        for question in gap.suggested_questions:
            if question not in recent:
                return SuggestedQuestion(question=question, area=gap.area)
    return None


def overall_knowledge_level(scores: Dict[str, AreaScore]) -> float:
    if not scores:
        return 0.0
    return sum(entry.score for entry in scores.values()) / len(scores)


def build_onboarding_context(
    total_message_count: int,
    memories: Iterable[Memory],
    recently_asked_questions: Sequence[str],
    recently_asked_areas: Sequence[str],
    rng: RandomSource,
) -> OnboardingContext:
    """
    Everything needed to pace onboarding for one conversational turn.

    Args:
        total_message_count: Lifetime inbound messages of the user
        memories: All of the user's memories
        recently_asked_questions: Question texts from the recent window
        recently_asked_areas: Areas of those questions
        rng: Source gating whether a question is surfaced
    """
    phase = determine_onboarding_phase(total_message_count)
    scores = calculate_knowledge_scores(memories)
    gaps = identify_knowledge_gaps(scores, phase, recently_asked_areas)

    return OnboardingContext(
        phase=phase,
        message_count=total_message_count,
        knowledge_scores=scores,
        top_gaps=gaps[:MAX_TOP_GAPS],
        suggested_question=get_next_question(gaps, phase, recently_asked_questions, rng),
        overall_knowledge_level=overall_knowledge_level(scores),
    )


class KnowledgeProfileService:
    """
    Persistence around the knowledge scorer.

    Every read-modify-write of a profile runs under a per-user lock, so
    concurrent turns for one user never drop message counts or asked
    questions.

    Args:
        repository: Storage backend for profiles and memories
        clock: Current-time source
    """

    def __init__(self, repository: IndexRepository, clock=utc_now):
        self.repository = repository
        self.clock = clock
        self._locks = weakref.WeakValueDictionary()

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    async def get_profile(self, user_id: str) -> KnowledgeProfile:
        """Stored profile, or a fresh one (not yet saved)."""
        profile = await self.repository.get_profile(user_id)
        return profile or KnowledgeProfile(user_id=user_id)

    async def record_message(self, user_id: str) -> KnowledgeProfile:
        """Count one inbound message and recompute the phase."""
        async with self._lock_for(user_id):
            profile = await self.get_profile(user_id)
            count = profile.total_message_count + 1
            phase = determine_onboarding_phase(count)
            if phase != profile.onboarding_phase:
                logger.info(f"User {user_id} moved to onboarding phase {phase.value}")

            profile = profile.model_copy(update={
                "total_message_count": count,
                "onboarding_phase": phase.value,
                "updated_at": self.clock(),
            })
            return await self.repository.save_profile(profile)

    async def refresh_scores(self, user_id: str) -> KnowledgeProfile:
        """Recompute and store area scores from all of the user's memories."""
        async with self._lock_for(user_id):
            profile = await self.get_profile(user_id)
            scores = calculate_knowledge_scores(await self.repository.get_user_memories(user_id))
            return await self._store_scores(profile, scores)

    async def record_asked_question(
        self,
        user_id: str,
        question: str,
        area: KnowledgeArea,
        asked_at: Optional[datetime] = None,
    ) -> KnowledgeProfile:
        async with self._lock_for(user_id):
            profile = await self.get_profile(user_id)
            asked = AskedQuestion(
                question_text=question,
                knowledge_area=area,
                asked_at=asked_at or self.clock(),
            )
            profile = profile.model_copy(update={
                "asked_questions": profile.asked_questions + [asked],
                "updated_at": self.clock(),
            })
            return await self.repository.save_profile(profile)

    async def mark_question_answered(self, user_id: str, question: str) -> bool:
        """Flag the most recent ask of ``question`` as answered."""
        async with self._lock_for(user_id):
            profile = await self.get_profile(user_id)
            questions = [q.model_copy() for q in profile.asked_questions]
            for asked in reversed(questions):
                if asked.question_text == question:
                    asked.got_answer = True
                    break
            else:
                return False

            await self.repository.save_profile(profile.model_copy(update={
                "asked_questions": questions,
                "updated_at": self.clock(),
            }))
            return True

    async def onboarding_context(
        self,
        user_id: str,
        rng: RandomSource,
        window: int = 10,
    ) -> OnboardingContext:
        """
        Onboarding context for the user's current turn.

        The last ``window`` asked questions form the recent history used
        for repetition checks. Computed scores are stored on the profile.
        """
        async with self._lock_for(user_id):
            profile = await self.get_profile(user_id)
            memories = await self.repository.get_user_memories(user_id)
            recent = profile.asked_questions[-window:] if window > 0 else []

            context = build_onboarding_context(
                profile.total_message_count,
                memories,
                [q.question_text for q in recent],
                [q.knowledge_area for q in recent],
                rng,
            )
            await self._store_scores(profile, context.knowledge_scores)
            return context

    async def _store_scores(self, profile: KnowledgeProfile, scores: Dict[str, AreaScore]) -> KnowledgeProfile:
        now = self.clock()
        profile = profile.model_copy(update={
            "knowledge_scores": scores,
            "onboarding_phase": determine_onboarding_phase(profile.total_message_count).value,
            "last_assessed_at": now,
            "updated_at": now,
        })
        return await self.repository.save_profile(profile)
