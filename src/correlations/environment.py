"""
Environment-mood correlations (sunshine, weather, daylight, temperature).

Same collaborator record shape as ``correlations.health``.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

from analytics.entry_view import mood_entries
from analytics.extractors import extract_environment_signals
from analytics.stats import average, pearson_correlation, round_half_up
from constants import MIN_SPLIT_GROUP, STRENGTH_ORDER
from correlations.common import resolve_thresholds

_SUNNY_RE = re.compile(r"sunny|clear", re.IGNORECASE)
_CLOUDY_RE = re.compile(r"cloud|overcast", re.IGNORECASE)

# Daylight and temperature swing seasonally, so they need a longer history
SEASONAL_MIN_READINGS = 10
SEASONAL_MIN_GROUP = 3


def _moods(points) -> List[float]:
    return [p["mood"] for p in points]


def _ids(points) -> List[str]:
    return [p["entryId"] for p in points if p["entryId"]]


def _pct(value: float) -> int:
    return round_half_up(abs(value) * 100)


def compute_environment_mood_correlations(
    entries: Optional[Iterable[Any]],
    thresholds: Optional[Mapping[str, Any]] = None,
) -> Optional[Dict[str, Dict[str, Any]]]:
    t = resolve_thresholds(thresholds)
    points = []
    for view in mood_entries(entries):
        signals = extract_environment_signals(view)
        if signals is None:
            continue
        points.append(dict(signals, mood=view.mood, entryId=view.entry_id))
    if len(points) < t["MIN_ENTRIES"]:
        return None

    floor = t["MIN_DATA_POINTS"]
    found: Dict[str, Dict[str, Any]] = {}

    sun = [p for p in points if p["sunshinePercent"] is not None]
    if len(sun) >= floor:
        bright = [p for p in sun if p["sunshinePercent"] >= 60]
        dull = [p for p in sun if p["sunshinePercent"] < 30]
        diff = average(_moods(bright)) - average(_moods(dull))
        r = pearson_correlation([p["sunshinePercent"] for p in sun], _moods(sun))
        if len(bright) >= MIN_SPLIT_GROUP and len(dull) >= MIN_SPLIT_GROUP and abs(diff) > 0.1:
            found["sunshineMood"] = {
                "type": "sunshine_mood",
                "correlation": r,
                "difference": diff,
                "insight": (
                    f"Mood is {_pct(diff)}% {'higher' if diff > 0 else 'lower'} on sunny days "
                    f"(60%+ sunshine) vs overcast (<30%)"
                ),
                "strength": "strong" if abs(r) > 0.4 else "moderate" if abs(r) > 0.2 else "weak",
                "sampleSize": len(sun),
                "recommendation": (
                    "Consider light therapy or outdoor walks on low-sunshine days" if diff > 0 else None
                ),
                "entryIds": _ids(bright),
            }

    weather = [p for p in points if p["weatherLabel"]]
    if len(weather) >= floor:
        sunny = [p for p in weather if _SUNNY_RE.search(p["weatherLabel"])]
        cloudy = [p for p in weather if _CLOUDY_RE.search(p["weatherLabel"])]
        if len(sunny) >= MIN_SPLIT_GROUP and len(cloudy) >= MIN_SPLIT_GROUP:
            sunny_mood, cloudy_mood = average(_moods(sunny)), average(_moods(cloudy))
            diff = sunny_mood - cloudy_mood
            if abs(diff) > 0.08:
                found["weatherMood"] = {
                    "type": "weather_mood",
                    "difference": diff,
                    "insight": (
                        f"Sunny days average {round_half_up(sunny_mood * 100)}% mood vs "
                        f"{round_half_up(cloudy_mood * 100)}% on cloudy days"
                    ),
                    "strength": "strong" if abs(diff) > 0.2 else "moderate",
                    "sampleSize": len(weather),
                    "entryIds": _ids(sunny),
                }

    daylight = [p for p in points if p["daylightHours"] is not None]
    if len(daylight) >= SEASONAL_MIN_READINGS:
        long_days = [p for p in daylight if p["daylightHours"] >= 12]
        short_days = [p for p in daylight if p["daylightHours"] < 10]
        diff = average(_moods(long_days)) - average(_moods(short_days))
        r = pearson_correlation([p["daylightHours"] for p in daylight], _moods(daylight))
        if len(long_days) >= SEASONAL_MIN_GROUP and len(short_days) >= SEASONAL_MIN_GROUP and abs(diff) > 0.1:
            found["daylightMood"] = {
                "type": "daylight_mood",
                "correlation": r,
                "difference": diff,
                "insight": (
                    f"Mood tends to be {_pct(diff)}% {'higher' if diff > 0 else 'lower'} "
                    f"during longer daylight periods (12h+)"
                ),
                "strength": "strong" if abs(r) > 0.4 else "moderate",
                "sampleSize": len(daylight),
                "recommendation": (
                    "Consider light therapy or maximizing outdoor time during shorter days (winter months)"
                    if diff > 0
                    else None
                ),
                "entryIds": _ids(long_days),
            }

    temps = [p for p in points if p["temperature"] is not None]
    if len(temps) >= SEASONAL_MIN_READINGS:
        warm = [p for p in temps if p["temperature"] >= 70]
        cool = [p for p in temps if p["temperature"] < 50]
        diff = average(_moods(warm)) - average(_moods(cool))
        if len(warm) >= SEASONAL_MIN_GROUP and len(cool) >= SEASONAL_MIN_GROUP and abs(diff) > 0.1:
            found["temperatureMood"] = {
                "type": "temperature_mood",
                "difference": diff,
                "insight": (
                    f"Warmer days (70°F+) correlate with {_pct(diff)}% "
                    f"{'better' if diff > 0 else 'lower'} mood vs cold days (<50°F)"
                ),
                "strength": "strong" if abs(diff) > 0.2 else "moderate",
                "sampleSize": len(temps),
                "entryIds": _ids(warm),
            }

    if len(points) >= floor:
        low_sun = [p for p in points if p["isLowSunshine"]]
        normal = [p for p in points if not p["isLowSunshine"]]
        if len(low_sun) >= MIN_SPLIT_GROUP and len(normal) >= MIN_SPLIT_GROUP:
            gap = average(_moods(normal)) - average(_moods(low_sun))
            if gap > 0.1:
                found["lowSunshineWarning"] = {
                    "type": "low_sunshine_warning",
                    # Negative: low-sunshine days are the worse side
                    "difference": -gap,
                    "insight": (
                        f"Low sunshine days (<30%) show {round_half_up(gap * 100)}% lower mood "
                        f"- consider SAD prevention strategies"
                    ),
                    "strength": "strong" if gap > 0.2 else "moderate",
                    "sampleSize": len(points),
                    "recommendation": "Light therapy, vitamin D supplementation, or morning outdoor walks may help",
                    "entryIds": _ids(low_sun),
                }

    return found or None


def get_top_environment_insights(
    entries: Optional[Iterable[Any]],
    max_insights: int = 3,
    thresholds: Optional[Mapping[str, Any]] = None,
) -> List[Dict[str, Any]]:
    correlations = compute_environment_mood_correlations(entries, thresholds)
    if not correlations:
        return []
    ranked = sorted(
        (c for c in correlations.values() if c.get("insight")),
        key=lambda c: STRENGTH_ORDER.get(c["strength"], 0),
        reverse=True,
    )
    return ranked[:max_insights]
