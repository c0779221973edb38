"""
Themes, emotions and cognitive patterns vs mood.

Three passes over the AI annotations:
  - theme groups (substring match against the aggregation table)
  - high-intensity emotions, held to a stricter effect floor
  - cognitive patterns by type
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from analytics.extractors import extract_cognitive_patterns, extract_emotions, extract_theme_groups
from analytics.patterns import EMOTION_CONFIG, THEME_AGGREGATIONS
from analytics.stats import average, generate_insight_id
from constants import CATEGORIES, EMOTION_EXTRA_DELTA
from correlations.common import (
    direction_of,
    factor_frame,
    group_moods,
    qualifying_entries,
    resolve_thresholds,
    score_against,
    top_by_abs_delta,
)

_THEMES = CATEGORIES["THEMES"]


def _theme_recommendation(key: str, delta: int) -> Optional[str]:
    if key == "gratitude" and delta > 0:
        return "Consider a gratitude practice to boost mood"
    if key == "anxiety" and delta < 0:
        return "Mindfulness or breathing exercises may help with anxiety"
    return None


def _theme_insights(views, baseline: float, t: Mapping[str, Any]) -> List[Dict[str, Any]]:
    out = []
    for group in group_moods(factor_frame(views, extract_theme_groups)):
        if group["count"] < t["MIN_MENTIONS"]:
            continue
        scored = score_against(group["mood"], baseline, group["count"], t["MIN_MOOD_DELTA"])
        if scored is None:
            continue
        delta, strength = scored
        key = group["key"]
        config = THEME_AGGREGATIONS[key]
        side = "higher" if delta > 0 else "lower"
        out.append(
            {
                "id": generate_insight_id(_THEMES, f"theme_{key}"),
                "category": _THEMES,
                "insight": f"{config['emoji']} {config['label']} themes correlate with {abs(delta)}% {side} mood",
                "moodDelta": delta,
                "direction": direction_of(delta),
                "strength": strength,
                "sampleSize": group["count"],
                "themeKey": key,
                "recommendation": _theme_recommendation(key, delta),
                "entryIds": group["entryIds"],
            }
        )
    return out


def _emotion_insights(views, baseline: float, t: Mapping[str, Any]) -> List[Dict[str, Any]]:
    def _high(view):
        return [key for key, intensity in extract_emotions(view) if intensity == "high" and key in EMOTION_CONFIG]

    out = []
    for group in group_moods(factor_frame(views, _high)):
        if group["count"] < t["MIN_MENTIONS"]:
            continue
        scored = score_against(
            group["mood"], baseline, group["count"], t["MIN_MOOD_DELTA"] + EMOTION_EXTRA_DELTA
        )
        if scored is None:
            continue
        delta, strength = scored
        key = group["key"]
        config = EMOTION_CONFIG[key]
        label = config["label"].lower()
        positive = config["valence"] == "positive"
        out.append(
            {
                "id": generate_insight_id(_THEMES, f"emotion_high_{key}"),
                "category": _THEMES,
                "insight": (
                    f"{config['emoji']} High {label} correlates with {abs(delta)}% "
                    f"{'higher' if positive else 'lower'} mood"
                ),
                "moodDelta": delta,
                "direction": direction_of(delta),
                "strength": strength,
                "sampleSize": group["count"],
                "emotionKey": key,
                "intensity": "high",
                "recommendation": (
                    f"{config['label']} seems to boost your mood - cultivate it"
                    if positive
                    else f"Consider strategies to manage {label}"
                ),
                "entryIds": group["entryIds"],
            }
        )
    return out


def _cognitive_insights(views, baseline: float, t: Mapping[str, Any]) -> List[Dict[str, Any]]:
    out = []
    for group in group_moods(factor_frame(views, extract_cognitive_patterns)):
        if group["count"] < t["MIN_MENTIONS"]:
            continue
        scored = score_against(group["mood"], baseline, group["count"], t["MIN_MOOD_DELTA"])
        if scored is None:
            continue
        delta, strength = scored
        kind = group["key"]
        label = kind.replace("_", " ").title()
        side = "higher" if delta > 0 else "lower"
        out.append(
            {
                "id": generate_insight_id(_THEMES, f"cognitive_{kind}"),
                "category": _THEMES,
                "insight": f'🧠 "{label}" thinking correlates with {abs(delta)}% {side} mood',
                "moodDelta": delta,
                "direction": direction_of(delta),
                "strength": strength,
                "sampleSize": group["count"],
                "cognitivePattern": kind,
                "recommendation": (
                    "This thinking pattern may be worth exploring with a therapist" if delta < 0 else None
                ),
                "entryIds": group["entryIds"],
            }
        )
    return out


def compute_themes_correlations(
    entries: Optional[Iterable[Any]],
    thresholds: Optional[Mapping[str, Any]] = None,
) -> List[Dict[str, Any]]:
    t = resolve_thresholds(thresholds)
    views = qualifying_entries(entries, t)
    if views is None:
        return []

    baseline = average([v.mood for v in views])
    insights = (
        _theme_insights(views, baseline, t)
        + _emotion_insights(views, baseline, t)
        + _cognitive_insights(views, baseline, t)
    )
    return top_by_abs_delta(insights, t["MAX_PER_CATEGORY"])
