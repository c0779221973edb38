"""
Activity-mood correlations.

Groups entries by the activities detected in them (wearable activity,
workout flag, tags, text keywords) and compares each activity group's
mean mood with the overall baseline.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from analytics.extractors import extract_activities
from analytics.patterns import ACTIVITY_PATTERNS
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

log = logging.getLogger("correlations.activity")


def compute_activity_correlations(
    entries: Optional[Iterable[Any]],
    thresholds: Optional[Mapping[str, Any]] = None,
) -> List[Dict[str, Any]]:
    t = resolve_thresholds(thresholds)
    views = qualifying_entries(entries, t)
    if views is None:
        return []

    baseline = average([v.mood for v in views])
    insights: List[Dict[str, Any]] = []

    for group in group_moods(factor_frame(views, extract_activities)):
        if group["count"] < t["MIN_DATA_POINTS"]:
            continue
        scored = score_against(group["mood"], baseline, group["count"], t["MIN_MOOD_DELTA"])
        if scored is None:
            continue
        delta, strength = scored
        key = group["key"]
        config = ACTIVITY_PATTERNS[key]
        verb = "boosts" if delta > 0 else "lowers"
        insights.append(
            {
                "id": generate_insight_id(CATEGORIES["ACTIVITY"], key),
                "category": CATEGORIES["ACTIVITY"],
                "insight": f"{config['emoji']} {config['label']} {verb} your mood by {abs(delta)}%",
                "moodDelta": delta,
                "direction": direction_of(delta),
                "strength": strength,
                "sampleSize": group["count"],
                "baselineMood": as_percent(baseline),
                "activityMood": as_percent(group["mood"]),
                "activityKey": key,
                "activityLabel": config["label"],
                "recommendation": f"Try {config['label'].lower()} when feeling low" if delta > 0 else None,
                "entryIds": group["entryIds"],
            }
        )

    log.debug("Activity engine produced %d candidate(s)", len(insights))
    return top_by_abs_delta(insights, t["MAX_PER_CATEGORY"])
