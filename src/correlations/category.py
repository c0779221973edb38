"""Entry category (work, personal, ...) and entry type (reflection, vent, ...) vs mood."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from analytics.patterns import CATEGORY_CONFIG, ENTRY_TYPE_CONFIG
from analytics.stats import average, generate_insight_id
from constants import CATEGORIES
from correlations.common import (
    as_percent,
    direction_of,
    factor_frame,
    group_moods,
    qualifying_entries,
    resolve_thresholds,
    score_against,
    top_by_abs_delta,
)

_CATEGORY = CATEGORIES["CATEGORY"]
_FALLBACK = {"emoji": "📝"}


def _category_recommendation(category: str, delta: int) -> Optional[str]:
    if category == "work" and delta < 0:
        return "Consider work-life balance strategies"
    return None


def _type_recommendation(entry_type: str, delta: int) -> Optional[str]:
    if entry_type == "vent" and delta < 0:
        return "Venting may reflect rather than cause low mood - consider balanced journaling"
    if entry_type == "reflection" and delta > 0:
        return "Reflective journaling seems to help your mood"
    return None


def compute_category_correlations(
    entries: Optional[Iterable[Any]],
    thresholds: Optional[Mapping[str, Any]] = None,
) -> List[Dict[str, Any]]:
    t = resolve_thresholds(thresholds)
    views = qualifying_entries(entries, t)
    if views is None:
        return []

    baseline = average([v.mood for v in views])
    insights: List[Dict[str, Any]] = []

    by_category = factor_frame(views, lambda v: [v.category.lower()] if v.category else [])
    for group in group_moods(by_category):
        if group["count"] < t["MIN_DATA_POINTS"]:
            continue
        scored = score_against(group["mood"], baseline, group["count"], t["MIN_MOOD_DELTA"])
        if scored is None:
            continue
        delta, strength = scored
        key = group["key"]
        config = CATEGORY_CONFIG.get(key, dict(_FALLBACK, label=key))
        side = "higher" if delta > 0 else "lower"
        insights.append(
            {
                "id": generate_insight_id(_CATEGORY, f"category_{key}"),
                "category": _CATEGORY,
                "insight": f"{config['emoji']} {config['label']} entries show {abs(delta)}% {side} mood than average",
                "moodDelta": delta,
                "direction": direction_of(delta),
                "strength": strength,
                "sampleSize": group["count"],
                "categoryMood": as_percent(group["mood"]),
                "baselineMood": as_percent(baseline),
                "entryCategory": key,
                "recommendation": _category_recommendation(key, delta),
                "entryIds": group["entryIds"],
            }
        )

    by_type = factor_frame(views, lambda v: [v.entry_type.lower()] if v.entry_type else [])
    for group in group_moods(by_type):
        if group["count"] < t["MIN_DATA_POINTS"]:
            continue
        scored = score_against(group["mood"], baseline, group["count"], t["MIN_MOOD_DELTA"])
        if scored is None:
            continue
        delta, strength = scored
        key = group["key"]
        config = ENTRY_TYPE_CONFIG.get(key, dict(_FALLBACK, label=key))
        side = "higher" if delta > 0 else "lower"
        insights.append(
            {
                "id": generate_insight_id(_CATEGORY, f"type_{key}"),
                "category": _CATEGORY,
                "insight": f"{config['emoji']} {config['label']} entries show {abs(delta)}% {side} mood",
                "moodDelta": delta,
                "direction": direction_of(delta),
                "strength": strength,
                "sampleSize": group["count"],
                "entryType": key,
                "recommendation": _type_recommendation(key, delta),
                "entryIds": group["entryIds"],
            }
        )

    return top_by_abs_delta(insights, t["MAX_PER_CATEGORY"])
