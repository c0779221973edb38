"""
Health-mood correlations over wearable context (sleep, HRV, workouts,
recovery, steps, resting heart rate).

Returns collaborator-shaped records
``{type, insight, difference, strength, sampleSize, recommendation}``
which the orchestrator normalises into insights.  ``difference`` is on
the raw 0-1 mood scale.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from analytics.entry_view import mood_entries
from analytics.extractors import extract_health_signals
from analytics.stats import average, median, pearson_correlation, round_half_up
from constants import MIN_SPLIT_GROUP, STRENGTH_ORDER
from correlations.common import resolve_thresholds


def _points(entries, signal: str, positive_only: bool = False):
    out = []
    for point in entries:
        value = point[signal]
        if value is None or (positive_only and value <= 0):
            continue
        out.append(point)
    return out


def _moods(points) -> List[float]:
    return [p["mood"] for p in points]


def _ids(points) -> List[str]:
    return [p["entryId"] for p in points if p["entryId"]]


def _split_diff(better, worse) -> float:
    """Mean mood gap; 0 unless both sides have readings."""
    if not better or not worse:
        return 0.0
    return average(_moods(better)) - average(_moods(worse))


def _corr_strength(r: float) -> str:
    if abs(r) > 0.5:
        return "strong"
    return "moderate" if abs(r) > 0.3 else "weak"


def _pct(value: float) -> int:
    return round_half_up(abs(value) * 100)


def compute_health_mood_correlations(
    entries: Optional[Iterable[Any]],
    thresholds: Optional[Mapping[str, Any]] = None,
) -> Optional[Dict[str, Dict[str, Any]]]:
    """Keyed health correlations, or None when nothing clears its gate."""
    t = resolve_thresholds(thresholds)
    points = []
    for view in mood_entries(entries):
        signals = extract_health_signals(view)
        if signals is None:
            continue
        points.append(dict(signals, mood=view.mood, entryId=view.entry_id))
    if len(points) < t["MIN_ENTRIES"]:
        return None

    floor = t["MIN_DATA_POINTS"]
    found: Dict[str, Dict[str, Any]] = {}

    sleep = _points(points, "sleepHours")
    if len(sleep) >= floor:
        good = [p for p in sleep if p["sleepHours"] >= 7]
        poor = [p for p in sleep if p["sleepHours"] < 6]
        r = pearson_correlation([p["sleepHours"] for p in sleep], _moods(sleep))
        diff = _split_diff(good, poor)
        if abs(diff) > 0.1:
            found["sleepMood"] = {
                "type": "sleep_mood",
                "correlation": r,
                "difference": diff,
                "insight": f"Mood is {_pct(diff)}% {'higher' if diff > 0 else 'lower'} on days with 7+ hours of sleep",
                "strength": _corr_strength(r),
                "sampleSize": len(sleep),
                "entryIds": _ids(good),
            }

    score = _points(points, "sleepScore")
    if len(score) >= floor:
        high = [p for p in score if p["sleepScore"] >= 80]
        low = [p for p in score if p["sleepScore"] < 60]
        diff = _split_diff(high, low)
        if abs(diff) > 0.15:
            found["sleepQualityMood"] = {
                "type": "sleep_quality_mood",
                "difference": diff,
                "insight": f"Sleep quality (score 80+) correlates with {round_half_up(diff * 100)}% better mood",
                "strength": "strong" if diff > 0.25 else "moderate",
                "sampleSize": len(score),
                "entryIds": _ids(high),
            }

    hrv = _points(points, "hrv")
    if len(hrv) >= floor:
        cut = median([p["hrv"] for p in hrv])
        high = [p for p in hrv if p["hrv"] >= cut]
        low = [p for p in hrv if p["hrv"] < cut]
        diff = _split_diff(high, low)
        r = pearson_correlation([p["hrv"] for p in hrv], _moods(hrv))
        if abs(diff) > 0.1:
            found["hrvMood"] = {
                "type": "hrv_mood",
                "correlation": r,
                "medianHRV": cut,
                "difference": diff,
                "insight": (
                    f"Higher HRV ({round_half_up(cut)}ms+) correlates with {_pct(diff)}% "
                    f"{'better' if diff > 0 else 'worse'} mood"
                ),
                "strength": _corr_strength(r),
                "sampleSize": len(hrv),
                "entryIds": _ids(high),
            }

    if len(points) >= floor:
        workout = [p for p in points if p["hadWorkout"]]
        rest = [p for p in points if not p["hadWorkout"]]
        diff = average(_moods(workout)) - average(_moods(rest))
        if len(workout) >= MIN_SPLIT_GROUP and len(rest) >= MIN_SPLIT_GROUP and abs(diff) > 0.08:
            found["exerciseMood"] = {
                "type": "exercise_mood",
                "difference": diff,
                "workoutDays": len(workout),
                "restDays": len(rest),
                "insight": f"Mood averages {_pct(diff)}% {'higher' if diff > 0 else 'lower'} on workout days",
                "strength": "strong" if diff > 0.2 else "moderate",
                "sampleSize": len(points),
                "entryIds": _ids(workout),
            }

    recovery = _points(points, "recoveryScore")
    if len(recovery) >= floor:
        green = [p for p in recovery if p["recoveryScore"] >= 67]
        red = [p for p in recovery if p["recoveryScore"] < 34]
        diff = average(_moods(green)) - average(_moods(red))
        if len(green) >= MIN_SPLIT_GROUP and len(red) >= MIN_SPLIT_GROUP and abs(diff) > 0.15:
            found["recoveryMood"] = {
                "type": "recovery_mood",
                "difference": diff,
                "insight": f"Green recovery days have {round_half_up(diff * 100)}% higher mood than red days",
                "strength": "strong",
                "sampleSize": len(recovery),
                "entryIds": _ids(green),
            }

    steps = _points(points, "steps", positive_only=True)
    if len(steps) >= floor:
        active = [p for p in steps if p["steps"] >= 8000]
        sedentary = [p for p in steps if p["steps"] < 4000]
        diff = average(_moods(active)) - average(_moods(sedentary))
        if len(active) >= MIN_SPLIT_GROUP and len(sedentary) >= MIN_SPLIT_GROUP and abs(diff) > 0.1:
            found["stepsMood"] = {
                "type": "steps_mood",
                "difference": diff,
                "insight": f"Active days (8k+ steps) show {_pct(diff)}% {'better' if diff > 0 else 'worse'} mood",
                "strength": "strong" if diff > 0.2 else "moderate",
                "sampleSize": len(steps),
                "entryIds": _ids(active),
            }

    rhr = _points(points, "rhr")
    if len(rhr) >= floor:
        cut = median([p["rhr"] for p in rhr])
        calm = [p for p in rhr if p["rhr"] <= cut]
        elevated = [p for p in rhr if p["rhr"] > cut]
        # Lower resting heart rate is the "good" side
        diff = _split_diff(calm, elevated)
        if abs(diff) > 0.1:
            found["rhrMood"] = {
                "type": "rhr_mood",
                "medianRHR": cut,
                "difference": diff,
                "insight": (
                    f"Lower resting heart rate ({round_half_up(cut)}bpm or less) correlates with "
                    f"{_pct(diff)}% better mood"
                ),
                "strength": "strong" if abs(diff) > 0.2 else "moderate",
                "sampleSize": len(rhr),
                "entryIds": _ids(calm),
            }

    return found or None


def get_top_health_insights(
    entries: Optional[Iterable[Any]],
    max_insights: int = 3,
    thresholds: Optional[Mapping[str, Any]] = None,
) -> List[Dict[str, Any]]:
    correlations = compute_health_mood_correlations(entries, thresholds)
    if not correlations:
        return []
    ranked = sorted(
        (c for c in correlations.values() if c.get("insight")),
        key=lambda c: STRENGTH_ORDER.get(c["strength"], 0),
        reverse=True,
    )
    return ranked[:max_insights]
