"""
Typed projection of raw journal entries.

Entries arrive as loosely-shaped dicts accumulated over years of schema
changes (mood at the top level or under ``analysis``, document-store
timestamps, missing arrays...).  ``project_entry`` runs one lenient pass
per entry and hands the engines an ``EntryView`` whose fields are either
well-formed or empty.  A bad field never rejects the whole entry.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd
from pydantic import BaseModel, Field

log = logging.getLogger("entry_view")

# Epoch values above this are treated as milliseconds
_EPOCH_MS_CUTOFF = 1e11


class EntryView(BaseModel):
    entry_id: Optional[str] = None
    text: str = ""
    created_at: Optional[datetime] = None
    bucket_at: Optional[datetime] = None
    mood: Optional[float] = None
    tags: List[str] = Field(default_factory=list)
    health: Dict[str, Any] = Field(default_factory=dict)
    environment: Dict[str, Any] = Field(default_factory=dict)
    entities: List[Dict[str, Any]] = Field(default_factory=list)
    memory_mentions: List[Dict[str, Any]] = Field(default_factory=list)
    emotions: List[Dict[str, Any]] = Field(default_factory=list)
    themes: List[str] = Field(default_factory=list)
    cognitive_patterns: List[Dict[str, Any]] = Field(default_factory=list)
    category: Optional[str] = None
    entry_type: Optional[str] = None

    @property
    def has_mood(self) -> bool:
        return self.mood is not None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Coerce the timestamp shapes seen in stored entries to ``datetime``.

    Accepts datetime, pandas Timestamp, ISO strings, epoch seconds or
    milliseconds, and ``{"seconds": ...}`` / ``{"_seconds": ...}`` dicts.
    Aware values keep their own wall clock.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.to_pydatetime()
    if isinstance(value, datetime):
        return value
    if hasattr(value, "to_datetime"):
        try:
            return value.to_datetime()
        except Exception:
            return None
    if isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        if seconds is None:
            return None
        return parse_timestamp(float(seconds) + _nanos(value) / 1e9)
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        secs = value / 1000.0 if abs(value) > _EPOCH_MS_CUTOFF else float(value)
        try:
            return datetime.fromtimestamp(secs)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            ts = pd.Timestamp(value)
        except (ValueError, TypeError):
            return None
        return None if pd.isna(ts) else ts.to_pydatetime()
    return None


def _nanos(value: Dict[str, Any]) -> float:
    raw = value.get("nanoseconds", value.get("_nanoseconds", 0))
    try:
        return float(raw or 0)
    except (TypeError, ValueError):
        return 0.0


def _mood(raw: Dict[str, Any]) -> Optional[float]:
    value = raw.get("mood_score")
    if value is None and isinstance(raw.get("analysis"), dict):
        value = raw["analysis"].get("mood_score")
    if value is None or isinstance(value, bool):
        return None
    try:
        mood = float(value)
    except (TypeError, ValueError):
        log.debug("Skipping non-numeric mood on entry %s", raw.get("id"))
        return None
    return mood if math.isfinite(mood) else None


def _from_entry_or_analysis(raw: Dict[str, Any], key: str) -> Any:
    value = raw.get(key)
    if value is None and isinstance(raw.get("analysis"), dict):
        value = raw["analysis"].get(key)
    return value


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [str(v) for v in value if isinstance(v, str) and v]


def _dict_list(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, (list, tuple)):
        return []
    return [v for v in value if isinstance(v, dict)]


def _opt_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def project_entry(raw: Any) -> Optional[EntryView]:
    """Project one raw entry; ``None`` only if it is not a mapping at all."""
    if isinstance(raw, EntryView):
        return raw
    if not isinstance(raw, dict):
        log.debug("Skipping entry of type %s", type(raw).__name__)
        return None

    entry_id = raw.get("id", raw.get("entryId"))
    text = raw.get("content")
    if not isinstance(text, str):
        text = raw.get("text")
    created_at = parse_timestamp(raw.get("createdAt"))
    effective = parse_timestamp(raw.get("effectiveDate"))

    tags = _str_list(raw.get("tags"))
    analysis = raw.get("analysis") if isinstance(raw.get("analysis"), dict) else {}
    for tag in _str_list(analysis.get("tags")):
        if tag not in tags:
            tags.append(tag)

    category = _opt_str(raw.get("category"))
    if category is None and isinstance(raw.get("classification"), dict):
        category = _opt_str(raw["classification"].get("primary_category"))

    return EntryView(
        entry_id=str(entry_id) if entry_id not in (None, "") else None,
        text=text if isinstance(text, str) else "",
        created_at=created_at,
        bucket_at=effective or created_at,
        mood=_mood(raw),
        tags=tags,
        health=raw["healthContext"] if isinstance(raw.get("healthContext"), dict) else {},
        environment=raw["environmentContext"] if isinstance(raw.get("environmentContext"), dict) else {},
        entities=_dict_list(_from_entry_or_analysis(raw, "entities")),
        memory_mentions=_dict_list(raw.get("memoryMentions")),
        emotions=_dict_list(_from_entry_or_analysis(raw, "emotions")),
        themes=_str_list(_from_entry_or_analysis(raw, "themes")),
        cognitive_patterns=_dict_list(_from_entry_or_analysis(raw, "cognitive_patterns")),
        category=category,
        entry_type=_opt_str(_from_entry_or_analysis(raw, "entry_type")),
    )


def project_entries(entries: Optional[Iterable[Any]]) -> List[EntryView]:
    views: List[EntryView] = []
    for raw in entries or []:
        view = project_entry(raw)
        if view is not None:
            views.append(view)
    return views


def mood_entries(entries: Optional[Iterable[Any]]) -> List[EntryView]:
    """Projected entries that carry a usable mood score."""
    return [v for v in project_entries(entries) if v.has_mood]
