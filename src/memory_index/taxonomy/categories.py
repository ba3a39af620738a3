"""
Index Taxonomy

Static registry of the 26 life domains and their topic categories.
Each category is addressed by a code of one domain letter plus three
digits (e.g. ``B003``). The registry is built once at import time and
never mutated.
"""

import re
from typing import Dict, List, Optional

from memory_index.models.index_document import IndexCategory

INDEX_CODE_PATTERN = re.compile(r"^[A-Z]\d{3}$")


# ========== Domains ==========
# letter -> (name, description)

DOMAINS: Dict[str, tuple] = {
    "A": ("Identity & Core Self", "Who the person is at their core - values, beliefs, personality traits, self-perception"),
    "B": ("Relationships & Social", "Family, friends, romantic partners, social dynamics, and interpersonal patterns"),
    "C": ("Career & Professional", "Work life, career goals, professional skills, workplace dynamics, and aspirations"),
    "D": ("Health & Wellness", "Physical health, mental health, fitness, nutrition, sleep, and self-care practices"),
    "E": ("Goals & Aspirations", "Dreams, ambitions, life goals, bucket list items, and future vision"),
    "F": ("Emotional Patterns", "Emotional tendencies, triggers, coping mechanisms, and emotional history"),
    "G": ("Life Events & History", "Significant past events, formative experiences, milestones, and personal history"),
    "H": ("Preferences & Interests", "Hobbies, likes/dislikes, entertainment preferences, tastes, and passions"),
    "I": ("Communication & Expression", "How they prefer to communicate, express themselves, and be spoken to"),
    "J": ("Challenges & Growth", "Current struggles, areas for improvement, lessons learned, and growth edges"),
    "K": ("Knowledge & Learning", "Education history, learning style, intellectual interests, and skill development"),
    "L": ("Lifestyle & Routines", "Daily habits, schedules, living situation, and lifestyle choices"),
    "M": ("Money & Finances", "Financial situation, money attitudes, spending habits, and financial goals"),
    "N": ("Nature & Environment", "Connection to nature, environmental values, living space, and outdoor preferences"),
    "O": ("Opinions & Perspectives", "Views on various topics, political/social stances, and worldly perspectives"),
    "P": ("Personality Quirks", "Unique traits, idiosyncrasies, pet peeves, and distinctive characteristics"),
    "Q": ("Questions & Curiosities", "Things they wonder about, unresolved questions, and areas of inquiry"),
    "R": ("Recreation & Leisure", "How they spend free time, relaxation methods, and leisure activities"),
    "S": ("Spirituality & Meaning", "Spiritual beliefs, sense of purpose, existential views, and meaning-making"),
    "T": ("Technology & Digital", "Tech habits, online presence, digital preferences, and relationship with technology"),
    "U": ("Uncertainties & Fears", "Anxieties, worries, fears, and sources of uncertainty in life"),
    "V": ("Values & Ethics", "Moral compass, ethical stances, principles, and what they stand for"),
    "W": ("Work Style & Productivity", "How they work best, productivity patterns, focus habits, and work preferences"),
    "X": ("eXperiences Sought", "Bucket list items, adventures wanted, experiences they crave"),
    "Y": ("Yearnings & Desires", "Deep wants, unfulfilled desires, wishes, and longings"),
    "Z": ("Zones of Comfort", "Safe spaces, comfort activities, security needs, and what grounds them"),
}


# ========== Categories ==========
# (code, topic name, priority, description)

_CATEGORY_TABLE = [
    ("A001", "Core Values", 10, "Fundamental values and principles that guide their decisions and life"),
    ("A002", "Personality Traits", 9, "Key personality characteristics, temperament, and behavioral tendencies"),
    ("A003", "Self-Perception", 8, "How they see themselves, self-image, and self-understanding"),
    ("A004", "Beliefs & Worldview", 7, "Philosophical beliefs, spiritual views, and how they see the world"),
    ("A005", "Life Philosophy", 7, "Their approach to life, personal mantras, and guiding philosophies"),
    ("B001", "Family Dynamics", 9, "Family relationships, dynamics, history, and current state"),
    ("B002", "Romantic Relationships", 9, "Current/past romantic relationships, patterns, and desires"),
    ("B003", "Friendships", 8, "Close friendships, friend groups, and social connections"),
    ("B004", "Social Patterns", 7, "How they navigate social situations, introversion/extroversion"),
    ("B005", "Attachment Style", 8, "How they attach and relate in close relationships"),
    ("C001", "Current Work", 8, "Current job, role, responsibilities, and work environment"),
    ("C002", "Career Aspirations", 8, "Career goals, dream job, and professional ambitions"),
    ("C003", "Skills & Expertise", 7, "Professional skills, competencies, and areas of expertise"),
    ("C004", "Work Relationships", 6, "Colleagues, managers, workplace dynamics and relationships"),
    ("C005", "Work-Life Balance", 7, "How they balance work with personal life, boundaries, stress"),
    ("D001", "Physical Health", 8, "Overall physical health, conditions, and health history"),
    ("D002", "Mental Health", 9, "Mental health status, history, therapy, and coping strategies"),
    ("D003", "Fitness & Exercise", 6, "Exercise habits, fitness goals, and physical activity preferences"),
    ("D004", "Nutrition & Diet", 6, "Eating habits, dietary preferences, restrictions, and goals"),
    ("D005", "Sleep & Rest", 7, "Sleep patterns, quality, issues, and rest practices"),
    ("E001", "Life Goals", 9, "Major life goals, bucket list, and long-term vision"),
    ("E002", "Current Goals", 10, "Active goals they are working on right now"),
    ("E003", "Dreams & Wishes", 7, "Dreams, wishes, and aspirations even if not actively pursued"),
    ("E004", "Motivations", 8, "What drives and motivates them to pursue their goals"),
    ("E005", "Obstacles & Blockers", 7, "What tends to get in the way of their goals"),
    ("F001", "Emotional Tendencies", 9, "General emotional patterns, typical moods, and emotional range"),
    ("F002", "Triggers & Sensitivities", 10, "What triggers emotional reactions, sensitivities to be aware of"),
    ("F003", "Coping Mechanisms", 8, "How they cope with stress, anxiety, and difficult emotions"),
    ("F004", "Joy & Fulfillment", 8, "What brings them joy, happiness, and fulfillment"),
    ("F005", "Stress Response", 8, "How they respond to stress, pressure, and overwhelm"),
    ("G001", "Formative Experiences", 8, "Key experiences that shaped who they are today"),
    ("G002", "Major Milestones", 7, "Significant life milestones and achievements"),
    ("G003", "Challenges Overcome", 8, "Difficult times they have navigated and grown from"),
    ("G004", "Background & Origins", 6, "Where they come from, upbringing, and background"),
    ("G005", "Recent Events", 9, "Notable recent happenings and current life situation"),
    ("H001", "Hobbies & Passions", 7, "Activities they enjoy, hobbies, and passionate interests"),
    ("H002", "Entertainment", 5, "Movies, music, books, games, and entertainment preferences"),
    ("H003", "Food & Drink", 5, "Favorite foods, cuisines, drinks, and culinary preferences"),
    ("H004", "Travel & Places", 6, "Travel preferences, favorite places, and wanderlust"),
    ("H005", "Learning Interests", 6, "Topics they are curious about and want to learn more about"),
    ("I001", "Communication Style", 10, "How they prefer to communicate, tone, and style preferences"),
    ("I002", "Support Preferences", 9, "How they like to receive support, advice, and encouragement"),
    ("I003", "Boundaries", 10, "Topics they prefer to avoid or handle carefully"),
    ("I004", "Humor Style", 6, "Their sense of humor and what makes them laugh"),
    ("I005", "Language & Terms", 7, "Preferred terminology, words they use, and language style"),
    ("J001", "Current Challenges", 10, "Active struggles and challenges they are facing now"),
    ("J002", "Growth Areas", 8, "Areas where they want to grow and improve"),
    ("J003", "Patterns to Change", 8, "Behaviors or patterns they want to break or modify"),
    ("J004", "Lessons Learned", 7, "Key lessons and insights from their experiences"),
    ("J005", "Support Needs", 9, "Types of support they currently need most"),
    ("K001", "Education History", 6, "Formal education, degrees, schools attended, and academic background"),
    ("K002", "Learning Style", 7, "How they learn best - visual, auditory, hands-on, reading, etc."),
    ("K003", "Current Studies", 8, "What they are actively learning or studying right now"),
    ("K004", "Expertise Areas", 7, "Topics they know deeply and could teach others"),
    ("K005", "Learning Goals", 7, "Skills or knowledge they want to acquire"),
    ("L001", "Daily Routine", 7, "Typical daily schedule, morning and evening routines"),
    ("L002", "Living Situation", 6, "Where and how they live - home, roommates, location"),
    ("L003", "Weekly Patterns", 6, "How their week is typically structured, recurring activities"),
    ("L004", "Lifestyle Values", 7, "What kind of lifestyle they aspire to or prioritize"),
    ("L005", "Time Management", 6, "How they manage time, scheduling preferences, punctuality"),
    ("M001", "Financial Situation", 7, "General financial status and stability"),
    ("M002", "Money Attitudes", 8, "Relationship with money, beliefs about wealth, spending vs saving"),
    ("M003", "Financial Goals", 7, "Savings goals, investment plans, financial aspirations"),
    ("M004", "Spending Patterns", 6, "What they spend money on, budgeting habits"),
    ("M005", "Financial Stressors", 8, "Money-related worries, debts, or financial challenges"),
    ("N001", "Nature Connection", 6, "Relationship with nature, outdoor activities, time in nature"),
    ("N002", "Environmental Values", 6, "Environmental consciousness, sustainability practices"),
    ("N003", "Physical Environment", 7, "Preferences for their living/working environment, organization"),
    ("N004", "Pets & Animals", 6, "Relationship with animals, pets they have or want"),
    ("N005", "Ideal Setting", 6, "Where they feel most at peace - city, country, beach, mountains"),
    ("O001", "Political Views", 5, "Political leanings, civic engagement, and political opinions"),
    ("O002", "Social Issues", 6, "Views on social issues, causes they care about"),
    ("O003", "Controversial Topics", 5, "Where they stand on debated topics"),
    ("O004", "World Events", 5, "How they view and engage with current events"),
    ("O005", "Strong Beliefs", 7, "Topics they feel strongly about and are vocal on"),
    ("P001", "Unique Habits", 6, "Distinctive habits and behaviors that define them"),
    ("P002", "Pet Peeves", 7, "Things that annoy or bother them"),
    ("P003", "Superstitions & Rituals", 5, "Personal superstitions, rituals, or quirky beliefs"),
    ("P004", "Guilty Pleasures", 5, "Things they enjoy but might be embarrassed about"),
    ("P005", "Idiosyncrasies", 6, "Unusual preferences or behaviors that make them unique"),
    ("Q001", "Life Questions", 7, "Big questions they ponder about life, meaning, existence"),
    ("Q002", "Unresolved Mysteries", 6, "Personal mysteries or questions they wish they had answers to"),
    ("Q003", "Intellectual Curiosities", 6, "Topics that fascinate them and spark their curiosity"),
    ("Q004", "Self-Inquiry", 7, "Questions they have about themselves, self-exploration"),
    ("Q005", "Future Unknowns", 7, "What they wonder about regarding their future"),
    ("R001", "Free Time Activities", 6, "How they spend free time when they have it"),
    ("R002", "Relaxation Methods", 7, "How they unwind and de-stress"),
    ("R003", "Social Recreation", 6, "Leisure activities they enjoy with others"),
    ("R004", "Solo Activities", 6, "Things they enjoy doing alone"),
    ("R005", "Weekend Patterns", 5, "How they typically spend weekends"),
    ("S001", "Spiritual Beliefs", 7, "Religious or spiritual beliefs and practices"),
    ("S002", "Life Purpose", 9, "Sense of purpose, why they are here, what gives life meaning"),
    ("S003", "Existential Views", 6, "Views on death, afterlife, the nature of reality"),
    ("S004", "Spiritual Practices", 6, "Meditation, prayer, rituals, or spiritual disciplines"),
    ("S005", "Meaning Sources", 8, "Where they derive meaning - family, work, service, creation"),
    ("T001", "Tech Relationship", 6, "Overall relationship with technology - embrace or avoid"),
    ("T002", "Digital Habits", 6, "Screen time, social media use, digital consumption patterns"),
    ("T003", "Online Presence", 5, "Social media presence, online identity, digital footprint"),
    ("T004", "Tech Preferences", 5, "Preferred devices, apps, platforms, and tools"),
    ("T005", "Digital Boundaries", 7, "Limits they set around technology use, digital detox"),
    ("U001", "Core Fears", 9, "Deep-seated fears that influence their behavior"),
    ("U002", "Anxieties", 9, "Things that make them anxious or worried"),
    ("U003", "Phobias", 6, "Specific phobias or irrational fears"),
    ("U004", "Worst Case Scenarios", 7, "What they worry might happen, catastrophic thinking patterns"),
    ("U005", "Insecurities", 8, "Areas where they feel insecure or lack confidence"),
    ("V001", "Moral Compass", 9, "Core moral principles that guide their decisions"),
    ("V002", "Ethical Dilemmas", 7, "How they navigate ethical gray areas"),
    ("V003", "Integrity", 8, "How they maintain integrity and handle moral conflicts"),
    ("V004", "Non-Negotiables", 9, "Values they will never compromise on"),
    ("V005", "Ethical Role Models", 6, "People they admire for their ethics and values"),
    ("W001", "Productivity Style", 7, "How they work most effectively, productivity systems"),
    ("W002", "Focus Patterns", 7, "When and how they focus best, attention patterns"),
    ("W003", "Procrastination", 7, "Procrastination tendencies and what causes them"),
    ("W004", "Work Environment", 6, "Ideal work conditions - quiet, music, coffee shop, etc."),
    ("W005", "Energy Management", 7, "How they manage energy throughout the day"),
    ("X001", "Bucket List", 7, "Experiences they want to have before they die"),
    ("X002", "Adventures Wanted", 6, "Adventurous experiences they crave"),
    ("X003", "Skills to Try", 6, "Skills or activities they want to experience"),
    ("X004", "Places to Visit", 6, "Destinations they dream of visiting"),
    ("X005", "Life Experiments", 6, "Things they want to try or experiment with in life"),
    ("Y001", "Deep Desires", 9, "Fundamental desires that drive their life"),
    ("Y002", "Unfulfilled Wishes", 8, "Things they wish for but haven't achieved"),
    ("Y003", "Secret Wants", 7, "Desires they may not openly share"),
    ("Y004", "Romantic Yearnings", 8, "Desires related to love and romantic connection"),
    ("Y005", "Lifestyle Desires", 7, "The life they wish they were living"),
    ("Z001", "Safe Spaces", 8, "Physical and emotional spaces where they feel safest"),
    ("Z002", "Comfort Activities", 8, "Activities that bring comfort when stressed or upset"),
    ("Z003", "Comfort People", 8, "People they turn to for comfort and security"),
    ("Z004", "Security Needs", 8, "What they need to feel secure and stable"),
    ("Z005", "Grounding Practices", 8, "What grounds them when feeling overwhelmed"),
]

CATEGORIES: List[IndexCategory] = [
    IndexCategory(
        code=code,
        domain=code[0],
        domain_name=DOMAINS[code[0]][0],
        topic_name=topic,
        description=description,
        priority=priority,
    )
    for code, topic, priority, description in _CATEGORY_TABLE
]

_BY_CODE: Dict[str, IndexCategory] = {category.code: category for category in CATEGORIES}


# Used when classification fails or returns an unknown code
FALLBACK_INDEX_BY_CATEGORY: Dict[str, str] = {
    "fact": "A003",         # Self-Perception
    "preference": "H001",   # Hobbies & Passions
    "goal": "E002",         # Current Goals
    "event": "G005",        # Recent Events
    "relationship": "B003", # Friendships
    "emotion": "F001",      # Emotional Tendencies
    "insight": "J004",      # Lessons Learned
}
DEFAULT_FALLBACK_INDEX = "A003"


def is_valid_code(code: object) -> bool:
    """Check that a code is well-formed and present in the registry."""
    return isinstance(code, str) and code in _BY_CODE


def get_category_by_code(code: str) -> Optional[IndexCategory]:
    """Look up a category, returning None for unknown codes."""
    return _BY_CODE.get(code)


def get_categories_by_domain(domain: str) -> List[IndexCategory]:
    """All categories of one domain letter, in code order."""
    return [category for category in CATEGORIES if category.domain == domain]


def get_categories_by_priority(min_priority: int = 1) -> List[IndexCategory]:
    """Categories at or above a priority, highest priority first."""
    selected = [category for category in CATEGORIES if category.priority >= min_priority]
    return sorted(selected, key=lambda category: (-category.priority, category.code))


def parse_index_code(code: str) -> Optional[tuple]:
    """
    Split an index code into (domain letter, topic number).

    Returns None when the code is not of the form ``X000``.
    """
    if not isinstance(code, str) or not INDEX_CODE_PATTERN.match(code):
        return None
    return code[0], int(code[1:])


def get_domain_name(domain: str) -> Optional[str]:
    """Human-readable name for a domain letter."""
    entry = DOMAINS.get(domain)
    return entry[0] if entry else None


def fallback_index_for(category: str) -> str:
    """Static category -> index code mapping used when classification fails."""
    return FALLBACK_INDEX_BY_CATEGORY.get(category, DEFAULT_FALLBACK_INDEX)


def format_category_list() -> str:
    """Render the registry as one ``CODE: Domain > Topic - description`` line per category."""
    return "\n".join(
        f"{c.code}: {c.domain_name} > {c.topic_name} - {c.description}" for c in CATEGORIES
    )
