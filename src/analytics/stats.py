"""
Statistical primitives shared by every correlation engine.

All helpers are pure and never raise on degenerate input: empty or
undersized series, mismatched lengths and zero variance all return a
neutral 0 so a single odd factor cannot crash an insight run.
"""

from __future__ import annotations

import math
import re
from typing import Sequence

import numpy as np

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def _clean(values: Sequence[float]) -> np.ndarray:
    if values is None:
        return np.array([], dtype=np.float64)
    return np.asarray(list(values), dtype=np.float64)


def round_half_up(value: float) -> int:
    """Round .5 toward +inf, matching the product's integer deltas."""
    return int(math.floor(value + 0.5))


def average(values: Sequence[float]) -> float:
    arr = _clean(values)
    if arr.size == 0:
        return 0.0
    return float(arr.mean())


def median(values: Sequence[float]) -> float:
    arr = _clean(values)
    if arr.size == 0:
        return 0.0
    return float(np.median(arr))


def std_dev(values: Sequence[float]) -> float:
    """Population standard deviation; 0 for fewer than two values."""
    arr = _clean(values)
    if arr.size < 2:
        return 0.0
    return float(arr.std())


def pearson_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson r in [-1, 1]; 0 when undefined.

    Returns 0 when the series differ in length, hold fewer than three
    points, or either one has zero variance.
    """
    ax, ay = _clean(x), _clean(y)
    if ax.size != ay.size or ax.size < 3:
        return 0.0
    dx = ax - ax.mean()
    dy = ay - ay.mean()
    denom_x = float(np.sum(dx * dx))
    denom_y = float(np.sum(dy * dy))
    if denom_x == 0 or denom_y == 0:
        return 0.0
    r = float(np.sum(dx * dy)) / math.sqrt(denom_x * denom_y)
    return max(-1.0, min(1.0, r))


def calculate_mood_delta(group_mood: float, baseline_mood: float) -> int:
    """Signed percentage-point difference on the [0, 1] mood scale."""
    if baseline_mood == 0:
        return 0
    return round_half_up((group_mood - baseline_mood) * 100)


def determine_strength(mood_delta: float, sample_size: int) -> str:
    """Two-tier gate: smaller samples need a larger effect."""
    abs_delta = abs(mood_delta)
    if (abs_delta >= 20 and sample_size >= 5) or (abs_delta >= 15 and sample_size >= 10):
        return "strong"
    if (abs_delta >= 10 and sample_size >= 5) or (abs_delta >= 8 and sample_size >= 10):
        return "moderate"
    return "weak"


def generate_insight_id(category: str, factor: str) -> str:
    """Stable natural key ``{category}_{slug}_mood`` for a factor."""
    slug = _SLUG_RE.sub("_", str(factor).lower()).strip("_")
    return f"{category}_{slug}_mood"
