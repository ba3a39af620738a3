"""Agent package - Onboarding knowledge profile."""

from memory_index.agent.knowledge_profile import (
    KnowledgeProfileService,
    RandomSource,
    build_onboarding_context,
)

__all__ = ["KnowledgeProfileService", "RandomSource", "build_onboarding_context"]
