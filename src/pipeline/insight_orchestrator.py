"""
Insight orchestrator: fan out to every correlation engine, merge, filter
through feedback learning, rank, cap and persist.

Result document (``basicInsights/current``)::

    {insights, generatedAt, expiresAt, entriesAnalyzed, categoryCounts,
     learningStats, analysisStatus, degradedReasons}

Each engine runs inside its own guard.  A crashing engine is logged and
the run continues with ``analysisStatus='degraded'``; insufficient data is
a typed result, never an exception.  Failing to persist the result raises
``PersistenceError``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from analytics.entry_view import EntryView, parse_timestamp, project_entries
from analytics.stats import round_half_up
from constants import (
    CATEGORIES,
    INSIGHTS_COLLECTION,
    INSIGHTS_DOC_ID,
    LEARNING_CONFIG,
    STRENGTH_ORDER,
)
from correlations.activity import compute_activity_correlations
from correlations.category import compute_category_correlations
from correlations.common import direction_of, resolve_thresholds
from correlations.environment import get_top_environment_insights
from correlations.health import get_top_health_insights
from correlations.health_extended import compute_extended_health_correlations
from correlations.people import compute_people_correlations
from correlations.themes import compute_themes_correlations
from correlations.timing import compute_time_correlations
from document_store import PersistenceError, get_default_store
from pipeline.feedback_learning import FeedbackLearningStore

log = logging.getLogger("insight_orchestrator")

# Engines that already emit insight records, keyed by their categoryCounts name
CORE_ENGINES = [
    ("activity", compute_activity_correlations),
    ("people", compute_people_correlations),
    ("time", compute_time_correlations),
    ("healthExtended", compute_extended_health_correlations),
    ("category", compute_category_correlations),
    ("themes", compute_themes_correlations),
]

# Engines returning {type, insight, difference, strength, sampleSize, recommendation?}
DEFAULT_COLLABORATORS = [
    {"name": "health", "category": CATEGORIES["HEALTH"], "idPrefix": "health", "fn": get_top_health_insights},
    {
        "name": "environment",
        "category": CATEGORIES["ENVIRONMENT"],
        "idPrefix": "env",
        "fn": get_top_environment_insights,
    },
]

_DOWNGRADE = {"strong": "moderate"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: Any) -> Optional[datetime]:
    parsed = parse_timestamp(value)
    if parsed is not None and parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalise_collaborator_insight(record: Mapping[str, Any], collaborator: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    """Map a collaborator record into the common insight shape.

    Returns None for records without a type or message.
    """
    kind = record.get("type")
    text = record.get("insight")
    if not kind or not text:
        log.debug("Skipping malformed %s record: %r", collaborator["name"], record)
        return None
    difference = record.get("difference") or 0
    return {
        "id": f"{collaborator['idPrefix']}_{kind}",
        "category": collaborator["category"],
        "insight": text,
        "moodDelta": round_half_up(difference * 100),
        "direction": direction_of(difference),
        "strength": record.get("strength"),
        "sampleSize": record.get("sampleSize"),
        "recommendation": record.get("recommendation") or None,
        "entryIds": list(record.get("entryIds") or []),
        "source": collaborator["name"],
    }


def check_data_sufficiency(
    entries: Optional[Iterable[Any]],
    thresholds: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Pure predicate: enough mood-bearing entries to attempt generation?"""
    needed = resolve_thresholds(thresholds)["MIN_ENTRIES"]
    with_mood = sum(1 for v in project_entries(entries) if v.has_mood)
    if with_mood < needed:
        return {
            "hasEnoughData": False,
            "dataPoints": with_mood,
            "needed": needed,
            "message": f"Need {needed - with_mood} more entries with mood data",
        }
    return {
        "hasEnoughData": True,
        "dataPoints": with_mood,
        "needed": needed,
        "message": "Sufficient data for basic insights",
    }


def rank_insights(insights: List[Dict[str, Any]], cap: int) -> List[Dict[str, Any]]:
    ranked = sorted(
        insights,
        key=lambda i: (STRENGTH_ORDER.get(i.get("strength"), 0), abs(i.get("moodDelta") or 0)),
        reverse=True,
    )
    return ranked[:cap]


class InsightOrchestrator:
    def __init__(
        self,
        store=None,
        learning: Optional[FeedbackLearningStore] = None,
        thresholds: Optional[Mapping[str, Any]] = None,
        external_engines: Optional[List[Mapping[str, Any]]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store if store is not None else get_default_store()
        self.clock = clock or _utcnow
        self.learning = learning or FeedbackLearningStore(self.store, clock=self.clock)
        self.thresholds = resolve_thresholds(thresholds)
        self.collaborators = list(DEFAULT_COLLABORATORS) + list(external_engines or [])

    # ─── Sufficiency ────────────────────────────────────────

    def check_data_sufficiency(self, entries: Optional[Iterable[Any]]) -> Dict[str, Any]:
        return check_data_sufficiency(entries, self.thresholds)

    # ─── Engine fan-out ─────────────────────────────────────

    def _collect(self, views: List[EntryView], status: Dict[str, Any]):
        t = self.thresholds
        candidates: List[Dict[str, Any]] = []
        counts: Dict[str, int] = {}

        for collaborator in self.collaborators:
            name = collaborator["name"]
            try:
                records = collaborator["fn"](views, t["MAX_PER_CATEGORY"], t) or []
                normalised = [normalise_collaborator_insight(r, collaborator) for r in records]
            except Exception as e:
                log.exception("Insight engine %s failed; continuing in degraded mode: %s", name, e)
                status["analysisStatus"] = "degraded"
                status["degradedReasons"].append(f"{name}_engine_failed")
                normalised = []
            kept = [i for i in normalised if i and i["strength"] in ("strong", "moderate")]
            counts[name] = len(kept)
            candidates.extend(kept)

        for name, engine in CORE_ENGINES:
            try:
                found = list(engine(views, t) or [])
            except Exception as e:
                log.exception("Insight engine %s failed; continuing in degraded mode: %s", name, e)
                status["analysisStatus"] = "degraded"
                status["degradedReasons"].append(f"{name}_engine_failed")
                found = []
            counts[name] = len(found)
            candidates.extend(found)

        return candidates, counts

    # ─── Learning filter ────────────────────────────────────

    def _apply_learning(self, user_id: str, candidates: List[Dict[str, Any]], entry_count: int):
        decided = self.learning.filter_insights_by_learning(user_id, candidates, entry_count)
        stats = {
            "evaluated": len(decided),
            "shown": 0,
            "suppressed": 0,
            "adjusted": 0,
            "suppressedPatterns": [],
        }
        shown: List[Dict[str, Any]] = []
        for insight in decided:
            decision = insight.pop("showDecision")
            pattern_type = insight.get("patternType")
            if not decision["show"]:
                stats["suppressed"] += 1
                if pattern_type and pattern_type not in stats["suppressedPatterns"]:
                    stats["suppressedPatterns"].append(pattern_type)
                continue

            multiplier = decision["adjustedConfidence"]
            if multiplier < 1.0:
                stats["adjusted"] += 1
            if multiplier < LEARNING_CONFIG["STRENGTH_DOWNGRADE_MULTIPLIER"]:
                insight["strength"] = _DOWNGRADE.get(insight["strength"], insight["strength"])
            insight["confidenceMultiplier"] = multiplier
            insight["learningReason"] = decision["reason"]
            shown.append(insight)

            if decision["reason"] == "suppression_expired":
                self._lift_expired(user_id, pattern_type)

        stats["shown"] = len(shown)
        return shown, stats

    def _lift_expired(self, user_id: str, pattern_type: Optional[str]):
        # Re-evaluation is a pure read: entriesAtLastEvaluation only moves on feedback
        if not pattern_type:
            return
        try:
            self.learning.lift_expired_suppression(user_id, pattern_type)
        except PersistenceError as e:
            log.warning("Could not lift expired suppression for %s: %s", pattern_type, e)

    # ─── Generation ─────────────────────────────────────────

    def generate_insights(self, user_id: str, entries: Optional[Iterable[Any]]) -> Dict[str, Any]:
        views = project_entries(entries)
        sufficiency = self.check_data_sufficiency(views)
        log.info("Generating insights for %s (%d entries, %d with mood)", user_id, len(views), sufficiency["dataPoints"])

        if not sufficiency["hasEnoughData"]:
            log.info("Insufficient entries for %s: %d/%d", user_id, sufficiency["dataPoints"], sufficiency["needed"])
            return {
                "success": False,
                "insights": [],
                "insufficientData": True,
                "entriesAnalyzed": sufficiency["dataPoints"],
                "entriesNeeded": sufficiency["needed"],
                "message": f"Need {sufficiency['needed'] - sufficiency['dataPoints']} more entries for insights",
            }

        status: Dict[str, Any] = {"analysisStatus": "success", "degradedReasons": []}
        try:
            candidates, counts = self._collect(views, status)
            shown, learning_stats = self._apply_learning(user_id, candidates, len(views))
            top = rank_insights(shown, self.thresholds["MAX_INSIGHTS"])
        except Exception as e:
            log.exception("Insight generation failed for %s: %s", user_id, e)
            return {
                "success": False,
                "insights": [],
                "error": str(e),
                "analysisStatus": "failed",
                "degradedReasons": ["generation_failure"],
            }

        now = self.clock()
        result = {
            "insights": top,
            "generatedAt": now.isoformat(),
            "expiresAt": (now + timedelta(hours=self.thresholds["TTL_HOURS"])).isoformat(),
            "entriesAnalyzed": sufficiency["dataPoints"],
            "categoryCounts": counts,
            "learningStats": learning_stats,
            **status,
        }
        self._save(user_id, result)

        if status["degradedReasons"]:
            log.warning(
                "Insights for %s generated in degraded mode: %s",
                user_id,
                ", ".join(status["degradedReasons"]),
            )
        log.info(
            "Generated %d insights for %s (%d candidates, %d suppressed)",
            len(top),
            user_id,
            learning_stats["evaluated"],
            learning_stats["suppressed"],
        )
        return {"success": True, **result}

    def _save(self, user_id: str, result: Dict[str, Any]) -> None:
        try:
            self.store.put(user_id, INSIGHTS_COLLECTION, INSIGHTS_DOC_ID, result)
        except PersistenceError:
            log.exception("Failed to save insights for %s", user_id)
            raise

    # ─── Cache reads ────────────────────────────────────────

    def get_cached(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Stored result annotated with ``stale``; None if absent or unreadable.

        Never writes; regeneration is the caller's call.
        """
        try:
            doc = self.store.get(user_id, INSIGHTS_COLLECTION, INSIGHTS_DOC_ID)
        except PersistenceError as e:
            log.error("Failed to load cached insights for %s: %s", user_id, e)
            return None
        if doc is None:
            log.debug("No cached insights for %s", user_id)
            return None
        expires_at = _as_utc(doc.get("expiresAt"))
        stale = bool(doc.get("invalidated")) or expires_at is None or self.clock() > expires_at
        return dict(doc, stale=stale)

    def get_or_generate(
        self,
        user_id: str,
        entries: Optional[Iterable[Any]],
        min_cached_insights: int = 1,
    ) -> Dict[str, Any]:
        """Serve a fresh cache, regenerating when it is missing, stale or too thin."""
        views = project_entries(entries)
        if not self.check_data_sufficiency(views)["hasEnoughData"]:
            return self.generate_insights(user_id, views)

        cached = self.get_cached(user_id)
        if cached and not cached["stale"] and len(cached.get("insights") or []) >= min_cached_insights:
            return dict(cached, success=True, fromCache=True)
        return self.generate_insights(user_id, views)

    def invalidate_cached_insights(self, user_id: str) -> bool:
        """Mark the cached result stale; failures are logged, never raised."""
        try:
            marked = self.store.merge(
                user_id,
                INSIGHTS_COLLECTION,
                INSIGHTS_DOC_ID,
                {"invalidated": True, "invalidatedAt": self.clock().isoformat()},
            )
        except Exception as e:
            log.warning("Cache invalidation failed for %s: %s", user_id, e)
            return False
        return marked


# ─── Module-level facades ────────────────────────────────────


def generate_basic_insights(user_id, entries, store=None, external_engines=None):
    return InsightOrchestrator(store, external_engines=external_engines).generate_insights(user_id, entries)


def get_cached_basic_insights(user_id, store=None):
    return InsightOrchestrator(store).get_cached(user_id)


