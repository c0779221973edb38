"""Helpers for turning insight results into short user-facing text."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional


def clip(s: str, limit: int = 260) -> str:
    s = str(s or "").replace("\n", " ").strip()
    if len(s) <= limit:
        return s
    return s[: limit - 3].rstrip() + "..."


def describe_insights_result(result: Optional[Mapping[str, Any]]) -> str:
    """Status line for an insights result or cached document."""
    if not result:
        return "No insights yet."

    if result.get("insufficientData"):
        needed = result.get("entriesNeeded") or 0
        have = result.get("entriesAnalyzed") or 0
        missing = max(0, needed - have)
        noun = "entry" if missing == 1 else "entries"
        return f"Not enough data yet: need {missing} more {noun} with a mood score."

    if result.get("error") or result.get("success") is False:
        return f"Insight generation failed: {clip(result.get('error') or 'unknown error', 120)}"

    insights = result.get("insights") or []
    if not insights:
        text = "No clear patterns yet. Keep journaling and check back soon."
    else:
        noun = "pattern" if len(insights) == 1 else "patterns"
        text = f"Found {len(insights)} {noun} across {result.get('entriesAnalyzed', 0)} entries."

    if result.get("stale"):
        text += " These insights are out of date and will refresh."
    if result.get("analysisStatus") == "degraded":
        text += " Some sources could not be analysed this time."
    return text


def build_concise_summary(insights: Optional[List[Dict[str, Any]]]) -> str:
    """Create a strict 3-bullet summary for UI cards from ranked insights."""
    insights = [i for i in insights or [] if i.get("insight")]
    if not insights:
        return (
            "- Top pattern: Not enough signal yet.\n"
            "- Also noticed: Nothing else stands out.\n"
            "- Try next: Keep logging your mood with each entry."
        )

    def bullet(label: str, value: str) -> str:
        prefix = f"- {label}: "
        return prefix + clip(value, max(48, 280 - len(prefix)))

    top = insights[0]["insight"]
    also = insights[1]["insight"] if len(insights) > 1 else "Nothing else stands out yet."
    recommendation = next((i["recommendation"] for i in insights if i.get("recommendation")), None)

    return (
        f"{bullet('Top pattern', top)}\n"
        f"{bullet('Also noticed', also)}\n"
        f"{bullet('Try next', recommendation or 'Keep journaling so these patterns firm up.')}"
    )
