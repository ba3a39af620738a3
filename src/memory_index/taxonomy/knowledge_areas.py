"""
Knowledge Areas

The 14 life facets used to pace onboarding questions. This taxonomy is
separate from the index categories: it only drives coverage scoring and
the choice of the next exploratory question.
"""

from enum import Enum
from typing import Dict, List


class KnowledgeArea(str, Enum):
    """A facet of the user's life the companion should learn about."""
    # Daily life
    DAILY_ROUTINE = "daily_routine"
    WORK_LIFE = "work_life"
    LIVING_SITUATION = "living_situation"

    # Preferences
    COMMUNICATION_PREFS = "communication_prefs"
    INTERESTS_HOBBIES = "interests_hobbies"
    FOOD_PREFERENCES = "food_preferences"

    # Relationships
    KEY_PEOPLE = "key_people"
    SOCIAL_LIFE = "social_life"

    # Inner life
    GOALS_ASPIRATIONS = "goals_aspirations"
    VALUES_BELIEFS = "values_beliefs"
    EMOTIONAL_PATTERNS = "emotional_patterns"
    STRESS_COPING = "stress_coping"

    HEALTH_WELLNESS = "health_wellness"
    CALENDAR_PATTERNS = "calendar_patterns"


class OnboardingPhase(str, Enum):
    """Coarse relationship stage derived from lifetime message count."""
    NEW = "new"
    GETTING_ACQUAINTED = "getting_acquainted"
    FAMILIAR = "familiar"
    ESTABLISHED = "established"


# Memory category -> areas it informs
CATEGORY_AREAS: Dict[str, List[KnowledgeArea]] = {
    "preference": [
        KnowledgeArea.COMMUNICATION_PREFS,
        KnowledgeArea.FOOD_PREFERENCES,
        KnowledgeArea.INTERESTS_HOBBIES,
    ],
    "fact": [
        KnowledgeArea.LIVING_SITUATION,
        KnowledgeArea.WORK_LIFE,
        KnowledgeArea.HEALTH_WELLNESS,
    ],
    "relationship": [KnowledgeArea.KEY_PEOPLE, KnowledgeArea.SOCIAL_LIFE],
    "goal": [KnowledgeArea.GOALS_ASPIRATIONS, KnowledgeArea.VALUES_BELIEFS],
    "emotion": [KnowledgeArea.EMOTIONAL_PATTERNS, KnowledgeArea.STRESS_COPING],
    "event": [KnowledgeArea.CALENDAR_PATTERNS, KnowledgeArea.SOCIAL_LIFE],
    "insight": [KnowledgeArea.VALUES_BELIEFS, KnowledgeArea.EMOTIONAL_PATTERNS],
}

# Lowercase substrings that place a memory in an area
AREA_KEYWORDS: Dict[KnowledgeArea, List[str]] = {
    KnowledgeArea.DAILY_ROUTINE: [
        "wake", "sleep", "morning", "night", "routine", "daily", "usually", "every day",
        "breakfast", "lunch", "dinner", "commute",
    ],
    KnowledgeArea.WORK_LIFE: [
        "work", "job", "office", "career", "boss", "coworker", "meeting", "deadline",
        "project", "client", "remote", "salary", "promotion",
    ],
    KnowledgeArea.LIVING_SITUATION: [
        "home", "house", "apartment", "roommate", "live with", "neighborhood", "city",
        "moved", "rent", "own",
    ],
    KnowledgeArea.COMMUNICATION_PREFS: [
        "prefer", "like when you", "don't like when", "call me", "text", "message",
    ],
    KnowledgeArea.INTERESTS_HOBBIES: [
        "hobby", "enjoy", "love", "passion", "fun", "weekend", "free time", "play",
        "watch", "read", "listen", "game", "sport", "music", "book", "movie",
    ],
    KnowledgeArea.FOOD_PREFERENCES: [
        "eat", "food", "restaurant", "cook", "diet", "vegetarian", "vegan", "allergic",
        "favorite food", "don't eat", "love eating",
    ],
    KnowledgeArea.KEY_PEOPLE: [
        "mom", "dad", "parent", "sibling", "brother", "sister", "partner", "spouse",
        "wife", "husband", "boyfriend", "girlfriend", "best friend", "family",
    ],
    KnowledgeArea.SOCIAL_LIFE: [
        "friend", "social", "party", "hangout", "meet up", "introvert", "extrovert",
        "alone time", "group",
    ],
    KnowledgeArea.GOALS_ASPIRATIONS: [
        "goal", "want to", "dream", "hope", "aspire", "achieve", "plan to", "someday",
        "future", "ambition",
    ],
    KnowledgeArea.VALUES_BELIEFS: [
        "believe", "value", "important to me", "matter", "principle", "faith",
        "politics", "philosophy",
    ],
    KnowledgeArea.EMOTIONAL_PATTERNS: [
        "feel", "mood", "happy", "sad", "anxious", "stressed", "excited", "upset",
        "angry", "frustrated", "overwhelmed", "calm",
    ],
    KnowledgeArea.STRESS_COPING: [
        "stress", "cope", "relax", "unwind", "self-care", "therapy", "meditate",
        "exercise", "when i'm stressed",
    ],
    KnowledgeArea.HEALTH_WELLNESS: [
        "health", "exercise", "workout", "gym", "run", "walk", "doctor", "medication",
        "condition", "sleep", "tired", "energy",
    ],
    KnowledgeArea.CALENDAR_PATTERNS: [
        "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
        "weekly", "monthly", "every week", "schedule", "busy", "free",
    ],
}

AREA_LABELS: Dict[KnowledgeArea, str] = {
    KnowledgeArea.DAILY_ROUTINE: "Daily Routine",
    KnowledgeArea.WORK_LIFE: "Work Life",
    KnowledgeArea.LIVING_SITUATION: "Living Situation",
    KnowledgeArea.COMMUNICATION_PREFS: "Communication Preferences",
    KnowledgeArea.INTERESTS_HOBBIES: "Interests & Hobbies",
    KnowledgeArea.FOOD_PREFERENCES: "Food Preferences",
    KnowledgeArea.KEY_PEOPLE: "Key People",
    KnowledgeArea.SOCIAL_LIFE: "Social Life",
    KnowledgeArea.GOALS_ASPIRATIONS: "Goals & Aspirations",
    KnowledgeArea.VALUES_BELIEFS: "Values & Beliefs",
    KnowledgeArea.EMOTIONAL_PATTERNS: "Emotional Patterns",
    KnowledgeArea.STRESS_COPING: "Stress & Coping",
    KnowledgeArea.HEALTH_WELLNESS: "Health & Wellness",
    KnowledgeArea.CALENDAR_PATTERNS: "Calendar Patterns",
}

ONBOARDING_QUESTIONS: Dict[KnowledgeArea, List[str]] = {
    KnowledgeArea.DAILY_ROUTINE: [
        "What does a typical day look like for you?",
        "What time do you usually wake up and go to bed?",
        "Do you have any morning or evening rituals that are important to you?",
    ],
    KnowledgeArea.WORK_LIFE: [
        "What do you do for work?",
        "What's your work schedule like?",
        "Do you work from home or go into an office?",
    ],
    KnowledgeArea.LIVING_SITUATION: [
        "Where do you live? City, suburbs, rural area?",
        "Do you live alone or with others?",
    ],
    KnowledgeArea.COMMUNICATION_PREFS: [
        "How do you prefer I communicate with you - more casual or more structured?",
        "Is there anything you'd like me to do differently in how I respond?",
        "Would you prefer shorter or longer messages from me?",
    ],
    KnowledgeArea.INTERESTS_HOBBIES: [
        "What do you enjoy doing in your free time?",
        "Any hobbies or interests you're particularly passionate about?",
        "What do you like to do on weekends?",
    ],
    KnowledgeArea.FOOD_PREFERENCES: [
        "Do you have any dietary preferences or restrictions I should know about?",
        "What are some of your favorite foods or cuisines?",
    ],
    KnowledgeArea.KEY_PEOPLE: [
        "Who are the most important people in your life right now?",
        "Tell me about your family - who should I know about?",
    ],
    KnowledgeArea.SOCIAL_LIFE: [
        "Would you describe yourself as more introverted or extroverted?",
        "How do you usually spend time with friends?",
    ],
    KnowledgeArea.GOALS_ASPIRATIONS: [
        "What are you currently working towards or hoping to achieve?",
        "Are there any big goals or dreams on your mind?",
        "What would you like to accomplish in the next few months?",
    ],
    KnowledgeArea.VALUES_BELIEFS: [
        "What matters most to you in life?",
        "What principles guide your decisions?",
    ],
    KnowledgeArea.EMOTIONAL_PATTERNS: [
        "How have you been feeling lately, in general?",
        "What usually puts you in a good mood?",
        "Is there anything that tends to bring you down?",
    ],
    KnowledgeArea.STRESS_COPING: [
        "What do you do to relax or unwind?",
        "How do you typically handle stressful situations?",
    ],
    KnowledgeArea.HEALTH_WELLNESS: [
        "Do you have any health or wellness routines?",
        "Are you working on any health-related goals?",
    ],
    KnowledgeArea.CALENDAR_PATTERNS: [
        "What days are usually busiest for you?",
        "Are there any recurring events or commitments I should know about?",
    ],
}

# Canonical ordering, most important to learn first
AREA_PRIORITY: List[KnowledgeArea] = [
    KnowledgeArea.COMMUNICATION_PREFS,
    KnowledgeArea.DAILY_ROUTINE,
    KnowledgeArea.WORK_LIFE,
    KnowledgeArea.KEY_PEOPLE,
    KnowledgeArea.GOALS_ASPIRATIONS,
    KnowledgeArea.INTERESTS_HOBBIES,
    KnowledgeArea.EMOTIONAL_PATTERNS,
    KnowledgeArea.LIVING_SITUATION,
    KnowledgeArea.SOCIAL_LIFE,
    KnowledgeArea.STRESS_COPING,
    KnowledgeArea.HEALTH_WELLNESS,
    KnowledgeArea.VALUES_BELIEFS,
    KnowledgeArea.FOOD_PREFERENCES,
    KnowledgeArea.CALENDAR_PATTERNS,
]

# Score below which an area counts as a gap
GAP_THRESHOLDS: Dict[OnboardingPhase, int] = {
    OnboardingPhase.NEW: 30,
    OnboardingPhase.GETTING_ACQUAINTED: 50,
    OnboardingPhase.FAMILIAR: 70,
    OnboardingPhase.ESTABLISHED: 85,
}

# Chance that a question is surfaced at all in a given turn
ASK_PROBABILITIES: Dict[OnboardingPhase, float] = {
    OnboardingPhase.NEW: 0.8,
    OnboardingPhase.GETTING_ACQUAINTED: 0.5,
    OnboardingPhase.FAMILIAR: 0.2,
    OnboardingPhase.ESTABLISHED: 0.1,
}

# An area asked about this many times in the recent window is skipped
MAX_RECENT_ASKS_PER_AREA = 2
