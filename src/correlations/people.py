"""
People-mood correlations.

Named entities are tracked under their own key; free-text mentions are
aggregated into broad groups (family, friends, partner, pet, coworkers,
kids).  Group insights are always listed ahead of named individuals,
whatever their effect size, so the surfaced patterns stay general.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from analytics.extractors import extract_people
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
)


def _insight_text(info: Dict[str, Any], delta: int) -> str:
    pct = abs(delta)
    name = info["name"]
    if info["isGroup"]:
        emoji = info["emoji"]
        if delta > 0:
            return f"{emoji} Time with {name.lower()} correlates with {pct}% better mood"
        return f"{emoji} {name} time correlates with {pct}% lower mood"
    if info["type"] == "pet":
        if delta > 0:
            return f"🐾 Time with {name} boosts mood by {pct}%"
        return f"🐾 {name} mentions correlate with {pct}% lower mood"
    if delta > 0:
        return f"👤 Time with {name} correlates with {pct}% better mood"
    return f"👤 {name} mentions correlate with {pct}% lower mood"


def compute_people_correlations(
    entries: Optional[Iterable[Any]],
    thresholds: Optional[Mapping[str, Any]] = None,
) -> List[Dict[str, Any]]:
    t = resolve_thresholds(thresholds)
    views = qualifying_entries(entries, t)
    if views is None:
        return []

    baseline = average([v.mood for v in views])

    # First sighting of a key fixes its display name and type
    known: Dict[str, Dict[str, Any]] = {}

    def _keys(view):
        people = extract_people(view)
        for key, info in people.items():
            known.setdefault(key, info)
        return list(people)

    frame = factor_frame(views, _keys)
    insights: List[Dict[str, Any]] = []

    for group in group_moods(frame):
        if group["count"] < t["MIN_MENTIONS"]:
            continue
        scored = score_against(group["mood"], baseline, group["count"], t["MIN_MOOD_DELTA"])
        if scored is None:
            continue
        delta, strength = scored
        key = group["key"]
        info = known[key]
        insights.append(
            {
                "id": generate_insight_id(CATEGORIES["PEOPLE"], key),
                "category": CATEGORIES["PEOPLE"],
                "insight": _insight_text(info, delta),
                "moodDelta": delta,
                "direction": direction_of(delta),
                "strength": strength,
                "sampleSize": group["count"],
                "baselineMood": as_percent(baseline),
                "entityMood": as_percent(group["mood"]),
                "entityKey": key,
                "peopleKey": key,
                "entityName": info["name"],
                "entityType": info["type"],
                "isGroup": info["isGroup"],
                "recommendation": (
                    f"Prioritize {info['name'].lower()} time when you need a boost"
                    if delta > 0 and info["isGroup"]
                    else None
                ),
                "entryIds": group["entryIds"],
            }
        )

    insights.sort(key=lambda i: (not i["isGroup"], -abs(i["moodDelta"])))
    return insights[: t["MAX_PER_CATEGORY"]]
