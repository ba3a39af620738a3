"""Taxonomy package - index categories and onboarding knowledge areas."""

from memory_index.taxonomy.categories import (
    CATEGORIES,
    DOMAINS,
    FALLBACK_INDEX_BY_CATEGORY,
    fallback_index_for,
    get_categories_by_domain,
    get_categories_by_priority,
    get_category_by_code,
    is_valid_code,
    parse_index_code,
)
from memory_index.taxonomy.knowledge_areas import KnowledgeArea, OnboardingPhase

__all__ = [
    "CATEGORIES",
    "DOMAINS",
    "FALLBACK_INDEX_BY_CATEGORY",
    "fallback_index_for",
    "get_categories_by_domain",
    "get_categories_by_priority",
    "get_category_by_code",
    "is_valid_code",
    "parse_index_code",
    "KnowledgeArea",
    "OnboardingPhase",
]
