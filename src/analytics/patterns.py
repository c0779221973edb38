"""
Declarative detection tables.

Every factor the extractors can emit is configured here as
key -> {patterns, label, emoji, ...}.  Adding a factor is a table edit;
the extractor code does not change.
"""

from __future__ import annotations

import re


def _rx(*patterns: str):
    return [re.compile(p, re.IGNORECASE) for p in patterns]


ACTIVITY_PATTERNS = {
    "yoga": {"patterns": _rx(r"\byoga\b", r"\bstretching\b"), "label": "Yoga", "emoji": "🧘"},
    "meditation": {
        "patterns": _rx(r"\bmeditat(e|ion|ing)\b", r"\bmindful(ness)?\b"),
        "label": "Meditation",
        "emoji": "🧘‍♂️",
    },
    "exercise": {
        "patterns": _rx(r"\bexercis(e|ing)\b", r"\bworkout\b", r"\bgym\b", r"\blifting\b"),
        "label": "Exercise",
        "emoji": "💪",
    },
    "running": {"patterns": _rx(r"\brun(s|ning)?\b", r"\bjog(ging)?\b"), "label": "Running", "emoji": "🏃"},
    "walking": {"patterns": _rx(r"\bwalk(s|ing|ed)?\b", r"\b(hike|hiking)\b"), "label": "Walking", "emoji": "🚶"},
    "swimming": {"patterns": _rx(r"\bswim(ming)?\b", r"\bpool\b"), "label": "Swimming", "emoji": "🏊"},
    "therapy": {"patterns": _rx(r"\btherap(y|ist)\b", r"\bcounseling\b"), "label": "Therapy", "emoji": "💬"},
    "reading": {"patterns": _rx(r"\bread(ing)?\b", r"\bbook\b"), "label": "Reading", "emoji": "📚"},
    "journaling": {"patterns": _rx(r"\bjournal(ing)?\b", r"\bwrit(e|ing)\b"), "label": "Journaling", "emoji": "📝"},
    "cooking": {"patterns": _rx(r"\bcook(ing|ed)?\b", r"\bbak(e|ing|ed)\b"), "label": "Cooking", "emoji": "👨‍🍳"},
    "nature": {
        "patterns": _rx(r"\bnature\b", r"\boutdoors?\b", r"\bpark\b", r"\bbeach\b"),
        "label": "Nature time",
        "emoji": "🌳",
    },
}

# Wearable activity names -> activity keys
HEALTH_ACTIVITY_MAP = [
    (re.compile(r"running|run", re.IGNORECASE), "running"),
    (re.compile(r"cycling|bike", re.IGNORECASE), "exercise"),
    (re.compile(r"swimming|swim", re.IGNORECASE), "swimming"),
    (re.compile(r"yoga", re.IGNORECASE), "yoga"),
    (re.compile(r"strength|lifting|weights", re.IGNORECASE), "exercise"),
    (re.compile(r"walk|hiking", re.IGNORECASE), "walking"),
]

ACTIVITY_TAG_PREFIX = "@activity:"

PEOPLE_PATTERNS = {
    "family": {
        "patterns": _rx(r"\bfamily\b", r"\bmom\b", r"\bdad\b", r"\bparents?\b", r"\bsiblings?\b",
                        r"\bbrother\b", r"\bsister\b"),
        "label": "Family",
        "type": "group",
        "emoji": "👨‍👩‍👧",
    },
    "friends": {"patterns": _rx(r"\bfriends?\b", r"\b(buddy|buddies)\b"), "label": "Friends", "type": "group", "emoji": "👋"},
    "partner": {
        "patterns": _rx(r"\bpartner\b", r"\bspouse\b", r"\bhusband\b", r"\bwife\b", r"\bgirlfriend\b",
                        r"\bboyfriend\b"),
        "label": "Partner",
        "type": "person",
        "emoji": "❤️",
    },
    "pet": {
        "patterns": _rx(r"\bpets?\b", r"\bdog\b", r"\bcat\b", r"\bpuppy\b", r"\bkitty\b"),
        "label": "Pet",
        "type": "pet",
        "emoji": "🐾",
    },
    "coworkers": {
        "patterns": _rx(r"\bcoworkers?\b", r"\bcolleagues?\b", r"\bteam\b"),
        "label": "Coworkers",
        "type": "group",
        "emoji": "💼",
    },
    "kids": {
        "patterns": _rx(r"\bkids?\b", r"\bchild(ren)?\b", r"\bson\b", r"\bdaughter\b"),
        "label": "Kids",
        "type": "group",
        "emoji": "👶",
    },
}

MIN_ENTITY_NAME_LENGTH = 3

TIME_GROUPS = {
    "weekend_days": {5, 6},  # datetime.weekday(): Saturday, Sunday
    "time_of_day": [
        ("morning", 5, 12),
        ("afternoon", 12, 17),
        ("evening", 17, 21),
    ],
    "fallback_time_of_day": "night",
}

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

TIME_EMOJI = {"morning": "🌅", "afternoon": "☀️", "evening": "🌆", "night": "🌙"}

CATEGORY_CONFIG = {
    "personal": {"label": "Personal", "emoji": "👤"},
    "work": {"label": "Work", "emoji": "💼"},
    "health": {"label": "Health", "emoji": "🏥"},
    "relationships": {"label": "Relationships", "emoji": "❤️"},
    "growth": {"label": "Growth", "emoji": "🌱"},
}

ENTRY_TYPE_CONFIG = {
    "reflection": {"label": "Reflection", "emoji": "🪞"},
    "vent": {"label": "Venting", "emoji": "💨"},
    "task": {"label": "Task-focused", "emoji": "✅"},
    "decision": {"label": "Decision-making", "emoji": "🤔"},
}

THEME_AGGREGATIONS = {
    "gratitude": {"patterns": ["gratitude", "grateful", "thankful", "appreciation"], "label": "Gratitude", "emoji": "🙏"},
    "anxiety": {"patterns": ["anxiety", "anxious", "worry", "stress", "overwhelm"], "label": "Anxiety/Stress", "emoji": "😰"},
    "self_compassion": {
        "patterns": ["self-compassion", "self-care", "self-kindness", "self-acceptance"],
        "label": "Self-compassion",
        "emoji": "💝",
    },
    "achievement": {
        "patterns": ["achievement", "accomplishment", "success", "progress", "milestone"],
        "label": "Achievement",
        "emoji": "🏆",
    },
    "connection": {"patterns": ["connection", "belonging", "community", "support", "love"], "label": "Connection", "emoji": "🤝"},
    "creativity": {"patterns": ["creativity", "creative", "inspiration", "art", "creation"], "label": "Creativity", "emoji": "🎨"},
    "growth": {
        "patterns": ["growth", "learning", "development", "improvement", "progress"],
        "label": "Personal Growth",
        "emoji": "🌱",
    },
    "conflict": {
        "patterns": ["conflict", "argument", "disagreement", "tension", "frustration"],
        "label": "Conflict",
        "emoji": "⚡",
    },
}

EMOTION_CONFIG = {
    "joy": {"label": "Joy", "emoji": "😊", "valence": "positive"},
    "happiness": {"label": "Happiness", "emoji": "😄", "valence": "positive"},
    "contentment": {"label": "Contentment", "emoji": "😌", "valence": "positive"},
    "excitement": {"label": "Excitement", "emoji": "🤩", "valence": "positive"},
    "hope": {"label": "Hope", "emoji": "🌟", "valence": "positive"},
    "love": {"label": "Love", "emoji": "❤️", "valence": "positive"},
    "gratitude": {"label": "Gratitude", "emoji": "🙏", "valence": "positive"},
    "sadness": {"label": "Sadness", "emoji": "😢", "valence": "negative"},
    "anxiety": {"label": "Anxiety", "emoji": "😰", "valence": "negative"},
    "anger": {"label": "Anger", "emoji": "😠", "valence": "negative"},
    "fear": {"label": "Fear", "emoji": "😨", "valence": "negative"},
    "frustration": {"label": "Frustration", "emoji": "😤", "valence": "negative"},
    "loneliness": {"label": "Loneliness", "emoji": "😔", "valence": "negative"},
    "guilt": {"label": "Guilt", "emoji": "😞", "valence": "negative"},
}

EMOTION_INTENSITIES = ("high", "medium", "low")

# ─── Burnout keyword sets ────────────────────────────────────

FATIGUE_KEYWORDS = [
    "tired", "exhausted", "drained", "burned out", "burnout", "burnt out",
    "can't keep up", "running on empty", "no energy", "depleted",
    "wiped out", "worn out", "fatigued", "spent", "tapped out",
]

EMOTIONAL_EXHAUSTION = [
    "overwhelmed", "drowning", "nothing left", "running on empty",
    "can't take it", "at my limit", "breaking point", "losing it",
    "falling apart", "shutting down", "checked out", "going through motions",
    "don't care anymore", "what's the point", "empty inside",
]

OVERWORK_KEYWORDS = [
    "overtime", "working late", "late night", "weekend work", "no break",
    "back-to-back", "non-stop", "nonstop", "slammed", "swamped",
    "drowning in work", "too many meetings", "endless meetings",
    "never-ending", "piling up", "behind on everything",
]

PHYSICAL_SYMPTOMS = [
    "eyes hurt", "eye strain", "headache", "migraine", "can't sleep",
    "insomnia", "stress eating", "not eating", "skipping meals",
    "neck pain", "back pain", "tense", "tension", "grinding teeth",
    "jaw clenching", "stomach issues", "nauseous", "heart racing",
]

RECOVERY_KEYWORDS = [
    "took a break", "rested", "day off", "vacation", "relaxed",
    "recharged", "feeling better", "recovered", "self-care",
    "walked away", "logged off", "unplugged", "disconnected",
]

WORK_STRESS_TAG_PREFIXES = [
    "@project", "@deadline", "@meeting", "@1on1",
    "@client", "@boss", "@manager", "@work",
]

STRESS_INTENSITY_TAGS = [
    "overtime", "rush", "urgent", "asap", "emergency",
    "crunch", "deadline", "critical", "priority", "behind",
]

# ─── False-positive indicator classes (feedback learning) ────

FALSE_POSITIVE_INDICATORS = {
    "meta_reference": re.compile(r"\b(app|application|tool|software|feature)\b", re.IGNORECASE),
    "work_in_progress": re.compile(r"\b(working on|developing|building|coding|implementing)\b", re.IGNORECASE),
    "past_tense_hedge": re.compile(r"\b(used to|had been|was going to)\b", re.IGNORECASE),
    "negation": re.compile(r"\b(didn't|don't|won't|can't|not)\b", re.IGNORECASE),
    "hypothetical": re.compile(r"\b(if i|should i|could i|would i|maybe)\b", re.IGNORECASE),
}
