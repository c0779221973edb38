"""
Shared constants used across multiple modules.
Single source of truth for insight thresholds, feedback-learning tuning
and burnout scoring weights.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# Insight generation floors and caps
THRESHOLDS = {
    "MIN_ENTRIES": 7,          # mood-bearing entries before any insight
    "MIN_DATA_POINTS": 5,      # per factor / group
    "MIN_MENTIONS": 3,         # entity-like factors (people, themes)
    "MIN_MOOD_DELTA": 8,       # percentage points
    "TTL_HOURS": int(os.getenv("INSIGHTS_TTL_HOURS", "12")),
    "MAX_INSIGHTS": int(os.getenv("INSIGHTS_MAX_RESULTS", "8")),
    "MAX_PER_CATEGORY": 3,
}

# Extra delta required for narrower factors
DAY_OF_WEEK_EXTRA_DELTA = 2
EMOTION_EXTRA_DELTA = 5

# Minimum readings on each side of a fixed-cutoff split
MIN_SPLIT_GROUP = 2

CATEGORIES = {
    "ACTIVITY": "activity",
    "PEOPLE": "people",
    "HEALTH": "health",
    "ENVIRONMENT": "environment",
    "TIME": "time",
    "CATEGORY": "category",
    "THEMES": "themes",
}

STRENGTH_ORDER = {"strong": 3, "moderate": 2, "weak": 1}

# Feedback learning
LEARNING_CONFIG = {
    "SUPPRESSION_ACCURACY_THRESHOLD": 0.4,
    "MIN_FEEDBACK_FOR_SUPPRESSION": 3,
    "MIN_CONFIDENCE_MULTIPLIER": 0.3,
    "INACCURACY_PENALTY": 0.7,
    "RESURFACE_STRENGTH_MULTIPLIER": 1.5,
    "SUPPRESSION_EXPIRY_DAYS": 30,
    "MIN_NEW_ENTRIES_FOR_REEVALUATION": 5,
    "REEVALUATION_PENALTY": 0.8,
    "HIGH_ACCURACY_RATE": 0.7,
    # Shown insights below this multiplier lose one strength tier
    "STRENGTH_DOWNGRADE_MULTIPLIER": 0.5,
    "MAX_FALSE_POSITIVE_IDS": 50,
    "MAX_FALSE_POSITIVE_PATTERNS": 10,
}

# Burnout risk scoring
BURNOUT_CONFIG = {
    "WINDOW_SIZE": 14,
    "MIN_ENTRIES": 3,
    "FACTOR_WEIGHTS": {
        "moodTrajectory": 0.25,
        "fatigueKeywords": 0.20,
        "overworkIndicators": 0.20,
        "physicalSymptoms": 0.15,
        "workTagDensity": 0.10,
        "lowMoodStreak": 0.10,
    },
    # Mood trajectory: (trend below, score added), checked in order
    "TREND_STEPS": [(-0.2, 0.5), (-0.1, 0.3), (0.0, 0.1)],
    "AVERAGE_STEPS": [(0.3, 0.5), (0.4, 0.3), (0.5, 0.1)],
    "TRAJECTORY_SAMPLE": 3,
    "TRAJECTORY_SIGNAL_AT": 0.3,
    "KEYWORD_SCALE": 1.5,
    "KEYWORD_SIGNAL_AT": 0.3,
    "OVERWORK_BLEND": {"lateNight": 0.4, "weekend": 0.3, "keywords": 0.3},
    "OVERWORK_SIGNAL_AT": 0.3,
    "OVERWORK_SUBSIGNAL_AT": 0.3,
    "WORK_TAG_SCALE": 1.5,
    "WORK_TAG_SIGNAL_AT": 0.4,
    "LOW_MOOD_THRESHOLD": 0.4,
    # Streak length -> score, checked from the longest
    "STREAK_STEPS": [(5, 1.0), (4, 0.8), (3, 0.5), (2, 0.2)],
    "STREAK_SIGNAL_AT": 3,
    "RECOVERY_LOOKBACK": 5,
    "RECOVERY_STEP": 0.05,
    "RECOVERY_MAX_DISCOUNT": 0.15,
    "LATE_NIGHT_START_HOUR": 22,
    "LATE_NIGHT_END_HOUR": 5,
    "EARLY_MORNING_START_HOUR": 5,
    "EARLY_MORNING_END_HOUR": 7,
    "SHELTER_SEVERE_FACTOR": 0.6,
    "SHELTER_MIN_SEVERE_FACTORS": 2,
}

RISK_LEVELS = {
    "LOW": {"min": 0.0, "max": 0.3, "label": "low", "color": "green"},
    "MODERATE": {"min": 0.3, "max": 0.5, "label": "moderate", "color": "yellow"},
    "HIGH": {"min": 0.5, "max": 0.7, "label": "high", "color": "orange"},
    "CRITICAL": {"min": 0.7, "max": 1.0, "label": "critical", "color": "red"},
}

# Document-store collections
INSIGHTS_COLLECTION = "basicInsights"
INSIGHTS_DOC_ID = "current"
LEARNING_COLLECTION = "insightLearning"
