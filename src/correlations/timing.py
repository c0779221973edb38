"""
Time-mood correlations: weekend vs weekday, best vs worst time of day,
and individual weekdays against the baseline.

Bucketing uses ``effectiveDate`` when present, else ``createdAt``, on the
timestamp's own wall clock.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

import pandas as pd

from analytics.extractors import classify_time
from analytics.patterns import TIME_EMOJI
from analytics.stats import average, generate_insight_id
from constants import CATEGORIES, DAY_OF_WEEK_EXTRA_DELTA
from correlations.common import (
    as_percent,
    direction_of,
    group_moods,
    qualifying_entries,
    resolve_thresholds,
    score_against,
    top_by_abs_delta,
)

_TIME = CATEGORIES["TIME"]


def _time_frame(views) -> pd.DataFrame:
    rows = []
    for view in views:
        info = classify_time(view.bucket_at)
        rows.append(
            {
                "mood": view.mood,
                "entry_id": view.entry_id,
                "isWeekend": info["isWeekend"],
                "timeOfDay": info["timeOfDay"],
                "dayName": info["dayName"],
            }
        )
    return pd.DataFrame(rows)


def _ids(frame: pd.DataFrame) -> List[str]:
    return [e for e in frame["entry_id"].tolist() if isinstance(e, str)]


def _weekend_vs_weekday(frame: pd.DataFrame, t: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    weekend = frame[frame["isWeekend"]]
    weekday = frame[~frame["isWeekend"]]
    if len(weekend) < t["MIN_DATA_POINTS"] or len(weekday) < t["MIN_DATA_POINTS"]:
        return None
    weekend_mood = average(weekend["mood"].tolist())
    weekday_mood = average(weekday["mood"].tolist())
    scored = score_against(weekend_mood, weekday_mood, len(weekend) + len(weekday), t["MIN_MOOD_DELTA"])
    if scored is None:
        return None
    delta, strength = scored
    better = "weekend" if weekend_mood > weekday_mood else "weekday"
    pct = abs(delta)
    return {
        "id": generate_insight_id(_TIME, "weekend_weekday"),
        "category": _TIME,
        "insight": (
            f"📅 Weekend mood averages {pct}% higher than weekdays"
            if better == "weekend"
            else f"📅 Weekday mood averages {pct}% higher than weekends"
        ),
        # Reported toward whichever side is better
        "moodDelta": pct,
        "direction": "positive",
        "strength": strength,
        "sampleSize": len(frame),
        "weekendMood": as_percent(weekend_mood),
        "weekdayMood": as_percent(weekday_mood),
        "peakTime": better,
        "recommendation": (
            "Consider what makes weekends special and bring elements into weekdays"
            if better == "weekend"
            else None
        ),
        "entryIds": _ids(weekend if better == "weekend" else weekday),
    }


def _time_of_day(frame: pd.DataFrame, t: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    buckets = [
        g for g in group_moods(frame.rename(columns={"timeOfDay": "factor"}))
        if g["count"] >= t["MIN_DATA_POINTS"]
    ]
    if len(buckets) < 2:
        return None
    buckets.sort(key=lambda g: g["mood"], reverse=True)
    best, worst = buckets[0], buckets[-1]
    scored = score_against(best["mood"], worst["mood"], best["count"] + worst["count"], t["MIN_MOOD_DELTA"])
    if scored is None:
        return None
    delta, strength = scored
    return {
        "id": generate_insight_id(_TIME, "time_of_day"),
        "category": _TIME,
        "insight": (
            f"{TIME_EMOJI[best['key']]} {best['key'].capitalize()} entries show "
            f"{abs(delta)}% better mood than {worst['key']}"
        ),
        "moodDelta": delta,
        "direction": "positive",
        "strength": strength,
        "sampleSize": sum(g["count"] for g in buckets),
        "bestTime": best["key"],
        "bestMood": as_percent(best["mood"]),
        "worstTime": worst["key"],
        "worstMood": as_percent(worst["mood"]),
        "recommendation": f"You seem to be at your best in the {best['key']}",
        "entryIds": best["entryIds"],
    }


def _day_of_week(frame: pd.DataFrame, baseline: float, t: Mapping[str, Any]) -> List[Dict[str, Any]]:
    out = []
    for group in group_moods(frame.rename(columns={"dayName": "factor"})):
        if group["count"] < t["MIN_DATA_POINTS"]:
            continue
        scored = score_against(
            group["mood"], baseline, group["count"], t["MIN_MOOD_DELTA"] + DAY_OF_WEEK_EXTRA_DELTA
        )
        if scored is None:
            continue
        delta, strength = scored
        day = group["key"]
        side = "above" if delta > 0 else "below"
        out.append(
            {
                "id": generate_insight_id(_TIME, day),
                "category": _TIME,
                "insight": f"📆 {day}s tend to be {abs(delta)}% {side} your average mood",
                "moodDelta": delta,
                "direction": direction_of(delta),
                "strength": strength,
                "sampleSize": group["count"],
                "dayName": day,
                "dayMood": as_percent(group["mood"]),
                "baselineMood": as_percent(baseline),
                "recommendation": f"Consider planning enjoyable activities for {day}s" if delta < 0 else None,
                "entryIds": group["entryIds"],
            }
        )
    return out


def compute_time_correlations(
    entries: Optional[Iterable[Any]],
    thresholds: Optional[Mapping[str, Any]] = None,
) -> List[Dict[str, Any]]:
    t = resolve_thresholds(thresholds)
    views = qualifying_entries(entries, t, require=lambda v: v.bucket_at is not None)
    if views is None:
        return []

    frame = _time_frame(views)
    baseline = average(frame["mood"].tolist())

    insights: List[Dict[str, Any]] = []
    for candidate in (_weekend_vs_weekday(frame, t), _time_of_day(frame, t)):
        if candidate is not None:
            insights.append(candidate)
    insights.extend(_day_of_week(frame, baseline, t))

    return top_by_abs_delta(insights, t["MAX_PER_CATEGORY"])
