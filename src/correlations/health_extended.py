"""
Extended health-mood correlations (strain, deep/REM sleep, active
calories, exercise minutes).

Each metric is split at fixed physiological cut-offs rather than at the
median, and the high group is compared directly with the low group.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from analytics.extractors import extract_extended_health_signals
from analytics.stats import average, generate_insight_id
from constants import CATEGORIES, MIN_SPLIT_GROUP
from correlations.common import (
    direction_of,
    qualifying_entries,
    resolve_thresholds,
    score_against,
    split_moods,
    top_by_abs_delta,
)

_HEALTH = CATEGORIES["HEALTH"]

# high >= "high" vs low < "low"; text and recommendation follow the better side
EXTENDED_METRICS = [
    {
        "factor": "strain",
        "signal": "strainScore",
        "high": 15,
        "low": 10,
        "emoji": "🔥",
        "high_text": "High strain days (15+) correlate with {pct}% better mood",
        "low_text": "Lower strain days (<10) correlate with {pct}% better mood",
        "rec_high": "Physical challenge seems to boost your mood",
        "rec_low": "Consider moderating physical exertion when feeling stressed",
    },
    {
        "factor": "deep_sleep",
        "signal": "deepSleepHours",
        "high": 1.5,
        "low": 1.0,
        "emoji": "🌙",
        "high_text": "Good deep sleep (1.5h+) correlates with {pct}% better mood",
        "low_text": "Short deep sleep (<1h) nights show {pct}% better mood",
        "rec_high": "Prioritize sleep hygiene for better deep sleep",
        "rec_low": None,
    },
    {
        "factor": "rem_sleep",
        "signal": "remSleepHours",
        "high": 1.5,
        "low": 1.0,
        "emoji": "💤",
        "high_text": "Good REM sleep (1.5h+) correlates with {pct}% better mood",
        "low_text": "Short REM sleep (<1h) nights show {pct}% better mood",
        "rec_high": "REM sleep helps emotional processing - maintain consistent sleep schedule",
        "rec_low": None,
    },
    {
        "factor": "active_calories",
        "signal": "activeCalories",
        "high": 500,
        "low": 200,
        "emoji": "🔥",
        "high_text": "Active days (500+ calories burned) show {pct}% better mood",
        "low_text": "Quieter days (<200 active calories) show {pct}% better mood",
        "rec_high": "Try to stay physically active throughout the day",
        "rec_low": None,
    },
    {
        "factor": "exercise_minutes",
        "signal": "exerciseMinutes",
        "high": 30,
        "low": 10,
        "emoji": "⏱️",
        "high_text": "30+ minutes of exercise correlates with {pct}% better mood",
        "low_text": "Lighter days (<10 exercise minutes) show {pct}% better mood",
        "rec_high": "Aim for at least 30 minutes of exercise daily",
        "rec_low": None,
    },
]


def _metric_insight(metric: Dict[str, Any], rows, t: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    readings = [(view, signals[metric["signal"]]) for view, signals in rows if metric["signal"] in signals]
    if len(readings) < t["MIN_DATA_POINTS"]:
        return None
    high = [view for view, value in readings if value >= metric["high"]]
    low = [view for view, value in readings if value < metric["low"]]
    if len(high) < MIN_SPLIT_GROUP or len(low) < MIN_SPLIT_GROUP:
        return None

    high_moods, high_ids = split_moods(high)
    low_moods, low_ids = split_moods(low)
    scored = score_against(average(high_moods), average(low_moods), len(readings), t["MIN_MOOD_DELTA"])
    if scored is None:
        return None
    delta, strength = scored
    high_better = delta > 0
    template = metric["high_text"] if high_better else metric["low_text"]
    return {
        "id": generate_insight_id(_HEALTH, metric["factor"]),
        "category": _HEALTH,
        "insight": f"{metric['emoji']} " + template.format(pct=abs(delta)),
        "moodDelta": delta,
        "direction": direction_of(delta),
        "strength": strength,
        "sampleSize": len(readings),
        "healthMetric": metric["factor"],
        "recommendation": metric["rec_high"] if high_better else metric["rec_low"],
        "entryIds": high_ids if high_better else low_ids,
    }


def compute_extended_health_correlations(
    entries: Optional[Iterable[Any]],
    thresholds: Optional[Mapping[str, Any]] = None,
) -> List[Dict[str, Any]]:
    t = resolve_thresholds(thresholds)
    views = qualifying_entries(entries, t, require=lambda v: bool(v.health))
    if views is None:
        return []

    rows = [(view, extract_extended_health_signals(view)) for view in views]
    insights = []
    for metric in EXTENDED_METRICS:
        insight = _metric_insight(metric, rows, t)
        if insight is not None:
            insights.append(insight)
    return top_by_abs_delta(insights, t["MAX_PER_CATEGORY"])
