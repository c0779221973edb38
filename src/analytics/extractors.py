"""
Per-domain signal extractors.

Each extractor reads one ``EntryView`` and returns the factors present in
it.  Sources are consulted most-reliable first: structured / AI fields,
then namespaced tags, then keyword regexes over the free text.  All
tables live in ``analytics.patterns``.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from analytics.entry_view import EntryView
from analytics.patterns import (
    ACTIVITY_PATTERNS,
    ACTIVITY_TAG_PREFIX,
    DAY_NAMES,
    EMOTION_INTENSITIES,
    HEALTH_ACTIVITY_MAP,
    MIN_ENTITY_NAME_LENGTH,
    PEOPLE_PATTERNS,
    STRESS_INTENSITY_TAGS,
    THEME_AGGREGATIONS,
    TIME_GROUPS,
    WORK_STRESS_TAG_PREFIXES,
)
from constants import BURNOUT_CONFIG


# ─── Generic helpers ─────────────────────────────────────────


def find_keyword_matches(text: Optional[str], keywords: Iterable[str]) -> Dict[str, Any]:
    """Case-insensitive phrase search shared by every keyword detector."""
    lowered = (text or "").lower()
    matches = [kw for kw in keywords if kw.lower() in lowered] if lowered else []
    return {"found": bool(matches), "matches": matches, "count": len(matches)}


def _dig(data: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _num(value: Any) -> Optional[float]:
    """Finite float or None; booleans are not numbers here."""
    if value is None or isinstance(value, bool):
        return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    return out if math.isfinite(out) else None


def _truthy_num(value: Any) -> Optional[float]:
    # Wearable exports use 0 for "no reading"
    out = _num(value)
    return out if out else None


def _any_match(patterns, text: str) -> bool:
    return any(p.search(text) for p in patterns)


def _add(found: List[str], key: str) -> None:
    if key not in found:
        found.append(key)


# ─── Activity ────────────────────────────────────────────────


def _health_activity_names(health: Dict[str, Any]) -> List[str]:
    activity = health.get("activity")
    if isinstance(activity, str):
        return [activity]
    names: List[str] = []
    if isinstance(activity, dict):
        workouts = activity.get("workouts")
        if isinstance(workouts, list):
            names.extend(w["type"] for w in workouts if isinstance(w, dict) and isinstance(w.get("type"), str))
    return names


def extract_activities(view: EntryView) -> List[str]:
    """Activity keys present in an entry, in first-detected order."""
    found: List[str] = []
    health = view.health

    for name in _health_activity_names(health):
        for pattern, key in HEALTH_ACTIVITY_MAP:
            if pattern.search(name):
                _add(found, key)

    if health.get("hadWorkout") is True or _dig(health, "activity", "hasWorkout") is True:
        _add(found, "exercise")

    for tag in view.tags:
        tag_lower = tag.lower()
        if tag_lower.startswith(ACTIVITY_TAG_PREFIX):
            tag_lower = tag_lower[len(ACTIVITY_TAG_PREFIX):].replace("_", " ")
        for key, config in ACTIVITY_PATTERNS.items():
            if _any_match(config["patterns"], tag_lower):
                _add(found, key)

    if view.text:
        for key, config in ACTIVITY_PATTERNS.items():
            if _any_match(config["patterns"], view.text):
                _add(found, key)

    return found


# ─── People ──────────────────────────────────────────────────


def _named(mentions: List[Dict[str, Any]], type_key: str) -> Iterable[Tuple[str, Dict[str, Any]]]:
    for mention in mentions:
        name = mention.get("name")
        if not isinstance(name, str) or len(name.strip()) < MIN_ENTITY_NAME_LENGTH:
            continue
        name = name.strip()
        kind = mention.get(type_key) if isinstance(mention.get(type_key), str) else "person"
        yield name.lower(), {"name": name, "type": kind, "isGroup": False, "emoji": None}


def extract_people(view: EntryView) -> Dict[str, Dict[str, Any]]:
    """Map of people key -> {name, type, isGroup, emoji}.

    AI entities and memory mentions come first; the regex groups only add
    keys not already present.
    """
    people: Dict[str, Dict[str, Any]] = {}
    for key, info in _named(view.entities, "type"):
        people.setdefault(key, info)
    for key, info in _named(view.memory_mentions, "entityType"):
        people.setdefault(key, info)

    if view.text:
        for key, config in PEOPLE_PATTERNS.items():
            if key not in people and _any_match(config["patterns"], view.text):
                people[key] = {
                    "name": config["label"],
                    "type": config["type"],
                    "isGroup": True,
                    "emoji": config["emoji"],
                }
    return people


# ─── Time ────────────────────────────────────────────────────


def time_of_day(hour: int) -> str:
    for name, start, end in TIME_GROUPS["time_of_day"]:
        if start <= hour < end:
            return name
    return TIME_GROUPS["fallback_time_of_day"]


def classify_time(when: Optional[datetime]) -> Optional[Dict[str, Any]]:
    """Weekend/weekday, weekday name and time-of-day bucket.

    Uses the timestamp's own wall clock; no timezone conversion.
    """
    if when is None:
        return None
    weekday = when.weekday()
    is_weekend = weekday in TIME_GROUPS["weekend_days"]
    return {
        "dayOfWeek": weekday,
        "dayName": DAY_NAMES[weekday],
        "isWeekend": is_weekend,
        "isWeekday": not is_weekend,
        "timeOfDay": time_of_day(when.hour),
        "hour": when.hour,
    }


def check_time_risk(when: Optional[datetime]) -> Dict[str, bool]:
    """Late-night, early-morning and weekend flags used by burnout scoring."""
    if when is None:
        return {"isLateNight": False, "isEarlyMorning": False, "isWeekend": False}
    hour = when.hour
    cfg = BURNOUT_CONFIG
    return {
        "isLateNight": hour >= cfg["LATE_NIGHT_START_HOUR"] or hour < cfg["LATE_NIGHT_END_HOUR"],
        "isEarlyMorning": cfg["EARLY_MORNING_START_HOUR"] <= hour < cfg["EARLY_MORNING_END_HOUR"],
        "isWeekend": when.weekday() in TIME_GROUPS["weekend_days"],
    }


# ─── Health / environment context ────────────────────────────


def extract_health_signals(view: EntryView) -> Optional[Dict[str, Any]]:
    health = view.health
    if not health:
        return None
    had_workout = _dig(health, "activity", "hasWorkout")
    if had_workout is None:
        had_workout = health.get("hadWorkout")
    return {
        "sleepHours": _truthy_num(_dig(health, "sleep", "totalHours")),
        "sleepScore": _truthy_num(_dig(health, "sleep", "score")),
        "hrv": _truthy_num(_dig(health, "heart", "hrv")),
        "rhr": _truthy_num(_dig(health, "heart", "restingRate")),
        "recoveryScore": _truthy_num(_dig(health, "recovery", "score")),
        "steps": _truthy_num(_dig(health, "activity", "stepsToday")),
        "hadWorkout": had_workout is True,
    }


_EXTENDED_HEALTH_PATHS = {
    "strainScore": ("strain", "score"),
    "deepSleepHours": ("sleep", "stages", "deep"),
    "remSleepHours": ("sleep", "stages", "rem"),
    "activeCalories": ("activity", "activeCalories"),
    "exerciseMinutes": ("activity", "totalExerciseMinutes"),
}


def extract_extended_health_signals(view: EntryView) -> Dict[str, float]:
    """Only the metrics actually present; zero is a valid reading here."""
    out: Dict[str, float] = {}
    for name, path in _EXTENDED_HEALTH_PATHS.items():
        value = _num(_dig(view.health, *path))
        if value is not None:
            out[name] = value
    return out


def extract_environment_signals(view: EntryView) -> Optional[Dict[str, Any]]:
    env = view.environment
    if not env:
        return None
    label = env.get("weatherLabel")
    return {
        "sunshinePercent": _truthy_num(_dig(env, "daySummary", "sunshinePercent")),
        "weatherLabel": label if isinstance(label, str) and label else None,
        "daylightHours": _truthy_num(env.get("daylightHours")),
        "temperature": _truthy_num(env.get("temperature")),
        "isLowSunshine": _dig(env, "daySummary", "isLowSunshine") is True,
    }


# ─── Themes / emotions / cognitive patterns ──────────────────


def matches_theme_group(theme: str, patterns: Iterable[str]) -> bool:
    theme_lower = theme.lower()
    return any(p in theme_lower for p in patterns)


def extract_theme_groups(view: EntryView) -> List[str]:
    return [
        key
        for key, config in THEME_AGGREGATIONS.items()
        if any(matches_theme_group(theme, config["patterns"]) for theme in view.themes)
    ]


def extract_emotions(view: EntryView) -> List[Tuple[str, str]]:
    """(emotion key, intensity) pairs; unknown intensities count as medium."""
    out: List[Tuple[str, str]] = []
    for emotion in view.emotions:
        name = emotion.get("name")
        if not isinstance(name, str) or not name.strip():
            continue
        intensity = emotion.get("intensity")
        if intensity not in EMOTION_INTENSITIES:
            intensity = "medium"
        out.append((name.strip().lower(), intensity))
    return out


def extract_cognitive_patterns(view: EntryView) -> List[str]:
    out: List[str] = []
    for pattern in view.cognitive_patterns:
        kind = pattern.get("type")
        if isinstance(kind, str) and kind.strip():
            out.append(kind.strip().lower())
    return out


# ─── Tags ────────────────────────────────────────────────────


def is_work_stress_tag(tag: str) -> bool:
    tag_lower = tag.lower()
    return any(tag_lower.startswith(prefix) for prefix in WORK_STRESS_TAG_PREFIXES)


def has_work_stress_tags(tags: Optional[Iterable[str]]) -> Dict[str, Any]:
    """Work-namespaced and stress-intensity tags, plus the work-tag share."""
    tags = [t for t in tags or [] if isinstance(t, str)]
    work = [t for t in tags if is_work_stress_tag(t)]
    stress = [t for t in tags if any(p in t.lower() for p in STRESS_INTENSITY_TAGS)]
    return {
        "found": bool(work or stress),
        "workTags": work,
        "stressTags": stress,
        "density": len(work) / len(tags) if tags else 0.0,
    }
