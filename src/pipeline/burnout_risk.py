"""
Burnout risk scoring over a recent window of entries.

Six factors each produce a sub-score in [0, 1]:

  moodTrajectory      recent vs older mood, plus the absolute level
  fatigueKeywords     share of entries with fatigue / exhaustion language
  overworkIndicators  late-night entries, weekend entries, overwork language
  physicalSymptoms    share of entries mentioning stress symptoms
  workTagDensity      work-namespaced tags over all tags
  lowMoodStreak       consecutive low-mood entries from the newest back

The weighted sum minus a small recovery discount is the risk score.
Entries are expected newest-first.  All tunables live in
``constants.BURNOUT_CONFIG``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from analytics.entry_view import EntryView, project_entries
from analytics.extractors import check_time_risk, find_keyword_matches, has_work_stress_tags
from analytics.patterns import (
    EMOTIONAL_EXHAUSTION,
    FATIGUE_KEYWORDS,
    OVERWORK_KEYWORDS,
    PHYSICAL_SYMPTOMS,
    RECOVERY_KEYWORDS,
)
from constants import BURNOUT_CONFIG, RISK_LEVELS

log = logging.getLogger("burnout_risk")

CFG = BURNOUT_CONFIG


def _step_score(value: float, steps) -> float:
    """First step whose bound ``value`` falls strictly below."""
    for bound, score in steps:
        if value < bound:
            return score
    return 0.0


def mood_trajectory_factor(window: List[EntryView]) -> Dict[str, Any]:
    moods = [v.mood for v in window if v.has_mood]
    if len(moods) < 2:
        return {"score": 0.0, "signal": None, "details": "insufficient_data"}

    sample = CFG["TRAJECTORY_SAMPLE"]
    divisor = min(sample, len(moods))
    latest = sum(moods[:sample]) / divisor
    oldest = sum(moods[-sample:]) / divisor
    trend = latest - oldest
    avg = sum(moods) / len(moods)

    score = min(1.0, _step_score(trend, CFG["TREND_STEPS"]) + _step_score(avg, CFG["AVERAGE_STEPS"]))
    if trend < -0.1:
        label = "declining"
    elif trend > 0.1:
        label = "improving"
    else:
        label = "stable"
    return {
        "score": score,
        "signal": "declining_mood" if score > CFG["TRAJECTORY_SIGNAL_AT"] else None,
        "details": {"trend": round(trend, 2), "average": round(avg, 2), "trendLabel": label},
    }


def keyword_factor(window: List[EntryView], keywords: List[str], signal_name: str) -> Dict[str, Any]:
    total_matches = 0
    affected = 0
    seen: List[str] = []
    for view in window:
        result = find_keyword_matches(view.text, keywords)
        if result["found"]:
            total_matches += result["count"]
            affected += 1
            seen.extend(m for m in result["matches"] if m not in seen)

    frequency = affected / len(window) if window else 0.0
    score = min(1.0, frequency * CFG["KEYWORD_SCALE"])
    return {
        "score": score,
        "signal": signal_name if score > CFG["KEYWORD_SIGNAL_AT"] else None,
        "details": {
            "matchCount": total_matches,
            "entriesAffected": affected,
            "frequency": round(frequency, 2),
            "topMatches": seen[:5],
        },
    }


def overwork_factor(window: List[EntryView]) -> Dict[str, Any]:
    late = weekend = keyword = 0
    for view in window:
        risk = check_time_risk(view.created_at)
        late += risk["isLateNight"]
        weekend += risk["isWeekend"]
        keyword += find_keyword_matches(view.text, OVERWORK_KEYWORDS)["found"]

    n = len(window)
    late_ratio = late / n if n else 0.0
    weekend_ratio = weekend / n if n else 0.0
    keyword_ratio = keyword / n if n else 0.0
    blend = CFG["OVERWORK_BLEND"]
    score = min(
        1.0,
        late_ratio * blend["lateNight"] + weekend_ratio * blend["weekend"] + keyword_ratio * blend["keywords"],
    )

    sub_signals = []
    if late_ratio > CFG["OVERWORK_SUBSIGNAL_AT"]:
        sub_signals.append("frequent_late_nights")
    if weekend_ratio > CFG["OVERWORK_SUBSIGNAL_AT"]:
        sub_signals.append("weekend_overwork")
    return {
        "score": score,
        "signal": "overwork_pattern" if score > CFG["OVERWORK_SIGNAL_AT"] else None,
        "details": {
            "lateNightEntries": late,
            "weekendEntries": weekend,
            "overworkMentions": keyword,
            "subSignals": sub_signals,
        },
    }


def work_tag_density_factor(window: List[EntryView]) -> Dict[str, Any]:
    total_tags = sum(len(v.tags) for v in window)
    work_tags = sum(len(has_work_stress_tags(v.tags)["workTags"]) for v in window)
    density = work_tags / total_tags if total_tags else 0.0
    score = min(1.0, density * CFG["WORK_TAG_SCALE"])
    return {
        "score": score,
        "signal": "work_dominated_entries" if score > CFG["WORK_TAG_SIGNAL_AT"] else None,
        "details": {"totalTags": total_tags, "workTags": work_tags, "density": round(density, 2)},
    }


def low_mood_streak_factor(window: List[EntryView]) -> Dict[str, Any]:
    streak = 0
    for view in window:
        if view.has_mood and view.mood < CFG["LOW_MOOD_THRESHOLD"]:
            streak += 1
        else:
            break

    score = 0.0
    for length, value in CFG["STREAK_STEPS"]:
        if streak >= length:
            score = value
            break
    return {
        "score": score,
        "signal": f"{streak}_day_low_streak" if streak >= CFG["STREAK_SIGNAL_AT"] else None,
        "details": {"streakLength": streak, "threshold": CFG["LOW_MOOD_THRESHOLD"]},
    }


def recovery_discount(window: List[EntryView]) -> float:
    recent = window[: CFG["RECOVERY_LOOKBACK"]]
    hits = sum(1 for v in recent if find_keyword_matches(v.text, RECOVERY_KEYWORDS)["found"])
    return min(CFG["RECOVERY_MAX_DISCOUNT"], hits * CFG["RECOVERY_STEP"])


def risk_level_for(score: float) -> str:
    for key in ("CRITICAL", "HIGH", "MODERATE"):
        if score >= RISK_LEVELS[key]["min"]:
            return RISK_LEVELS[key]["label"]
    return RISK_LEVELS["LOW"]["label"]


def get_risk_level_info(level: str) -> Dict[str, Any]:
    for info in RISK_LEVELS.values():
        if info["label"] == level:
            return dict(info)
    return dict(RISK_LEVELS["LOW"])


_RECOMMENDATIONS = {
    "critical": {
        "priority": "urgent",
        "message": "Your burnout indicators are at critical levels. We strongly recommend taking a break.",
        "actions": [
            {"type": "shelter_mode", "label": "Enter Shelter Mode", "priority": "high"},
            {"type": "breathing", "label": "Try Breathing Exercise", "priority": "medium"},
            {"type": "contact", "label": "Reach out to someone", "priority": "medium"},
        ],
    },
    "high": {
        "priority": "high",
        "message": "You're showing signs of burnout. Consider taking some time to decompress.",
        "actions": [
            {"type": "break", "label": "Take a short break", "priority": "high"},
            {"type": "grounding", "label": "Try grounding exercise", "priority": "medium"},
        ],
    },
    "moderate": {
        "priority": "medium",
        "message": "Some burnout signals detected. Keep an eye on your energy levels.",
        "actions": [{"type": "check_in", "label": "Check in with yourself", "priority": "low"}],
    },
}


def build_recommendation(level: str) -> Optional[Dict[str, Any]]:
    template = _RECOMMENDATIONS.get(level)
    if template is None:
        return None
    return {**template, "actions": [dict(a) for a in template["actions"]]}


def should_trigger_shelter_mode(level: str, factors: Mapping[str, Mapping[str, Any]]) -> bool:
    if level == "critical":
        return True
    if level == "high":
        severe = [f for f in factors.values() if f["score"] > CFG["SHELTER_SEVERE_FACTOR"]]
        return len(severe) >= CFG["SHELTER_MIN_SEVERE_FACTORS"]
    return False


def _insufficient() -> Dict[str, Any]:
    return {
        "riskScore": 0,
        "riskLevel": "low",
        "signals": [],
        "factors": {},
        "recommendation": None,
        "triggerShelterMode": False,
        "insufficientData": True,
    }


def compute_burnout_risk_score(
    entries: Optional[Iterable[Any]],
    window_size: Optional[int] = None,
    weights: Optional[Mapping[str, float]] = None,
) -> Dict[str, Any]:
    """Score burnout risk over the newest ``window_size`` entries (default 14)."""
    views = project_entries(entries)
    if len(views) < CFG["MIN_ENTRIES"]:
        return _insufficient()

    window = views[: window_size or CFG["WINDOW_SIZE"]]
    weights = dict(CFG["FACTOR_WEIGHTS"], **(weights or {}))

    factors = {
        "moodTrajectory": mood_trajectory_factor(window),
        "fatigueKeywords": keyword_factor(window, FATIGUE_KEYWORDS + EMOTIONAL_EXHAUSTION, "fatigue"),
        "overworkIndicators": overwork_factor(window),
        "physicalSymptoms": keyword_factor(window, PHYSICAL_SYMPTOMS, "physical_symptoms"),
        "workTagDensity": work_tag_density_factor(window),
        "lowMoodStreak": low_mood_streak_factor(window),
    }
    signals = [f["signal"] for f in factors.values() if f["signal"]]

    raw = sum(factors[name]["score"] * weights[name] for name in factors)
    discount = recovery_discount(window)
    score = min(1.0, max(0.0, raw - discount))
    level = risk_level_for(score)

    result = {
        "riskScore": round(score, 3),
        "riskLevel": level,
        "signals": signals,
        "factors": factors,
        "recommendation": build_recommendation(level),
        "triggerShelterMode": should_trigger_shelter_mode(level, factors),
        "rawScore": raw,
        "recoveryDiscount": discount,
        "entryCount": len(window),
        "assessedAt": datetime.now(timezone.utc).isoformat(),
        "insufficientData": False,
    }
    log.debug("Burnout risk %.3f (%s) over %d entries", score, level, len(window))
    return result
