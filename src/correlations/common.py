"""
Shared plumbing for the correlation engines.

Every engine follows the same shape: keep mood-bearing entries, bail out
below the entry floor, explode entries into (factor, mood, entry id)
rows, aggregate per factor with pandas, then gate each group on sample
size, effect size and strength.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from analytics.entry_view import EntryView, mood_entries
from analytics.stats import average, calculate_mood_delta, determine_strength, round_half_up
from constants import THRESHOLDS

FRAME_COLUMNS = ["factor", "mood", "entry_id"]


def resolve_thresholds(thresholds: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    merged = dict(THRESHOLDS)
    if thresholds:
        merged.update(thresholds)
    return merged


def qualifying_entries(
    entries: Optional[Iterable[Any]],
    thresholds: Mapping[str, Any],
    require: Optional[Callable[[EntryView], bool]] = None,
) -> Optional[List[EntryView]]:
    """Mood-bearing entries passing ``require``; None below the entry floor."""
    views = mood_entries(entries)
    if require is not None:
        views = [v for v in views if require(v)]
    if len(views) < thresholds["MIN_ENTRIES"]:
        return None
    return views


def factor_frame(views: Sequence[EntryView], extract: Callable[[EntryView], Iterable[Any]]) -> pd.DataFrame:
    rows = [
        (factor, view.mood, view.entry_id)
        for view in views
        for factor in extract(view)
    ]
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)


def group_moods(frame: pd.DataFrame, by: Any = "factor") -> List[Dict[str, Any]]:
    """Per-group count, mean mood and cited entry ids, in first-seen order."""
    if frame.empty:
        return []
    groups = []
    for key, grp in frame.groupby(by, sort=False):
        moods = grp["mood"].tolist()
        groups.append(
            {
                "key": key,
                "count": len(moods),
                "mood": average(moods),
                "entryIds": [e for e in grp["entry_id"].tolist() if isinstance(e, str)],
            }
        )
    return groups


def split_moods(views: Sequence[EntryView]) -> Tuple[List[float], List[str]]:
    return [v.mood for v in views], [v.entry_id for v in views if v.entry_id]


def score_against(
    group_mood: float,
    reference_mood: float,
    sample_size: int,
    min_delta: float,
) -> Optional[Tuple[int, str]]:
    """(delta, strength) for a group that clears the effect gates, else None."""
    delta = calculate_mood_delta(group_mood, reference_mood)
    if abs(delta) < min_delta:
        return None
    strength = determine_strength(delta, sample_size)
    if strength == "weak":
        return None
    return delta, strength


def direction_of(delta: float) -> str:
    return "positive" if delta > 0 else "negative"


def as_percent(mood: float) -> int:
    return round_half_up(mood * 100)


def top_by_abs_delta(insights: List[Dict[str, Any]], cap: int) -> List[Dict[str, Any]]:
    return sorted(insights, key=lambda i: abs(i["moodDelta"]), reverse=True)[:cap]
