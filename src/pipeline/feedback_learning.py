"""
Feedback learning for statistical insights.

Users mark insights accurate or inaccurate.  Per (user, pattern type)
we keep a running accuracy rate and a confidence multiplier, suppress
patterns that keep missing, and let suppressed patterns back in when
the suppression expires, a much stronger signal shows up, or enough new
entries have accumulated to re-evaluate.

Records live in the ``insightLearning`` collection, one document per
pattern type.  Writes run inside ``store.transact`` so concurrent
feedback on the same pattern does not lose updates.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from analytics.entry_view import parse_timestamp, project_entries
from analytics.patterns import FALSE_POSITIVE_INDICATORS
from constants import LEARNING_COLLECTION, LEARNING_CONFIG
from document_store import PersistenceError, get_default_store

log = logging.getLogger("feedback_learning")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def pattern_type_for(insight: Mapping[str, Any]) -> Optional[str]:
    """Stable learning key from an insight's dominant factor."""
    if insight.get("activityKey"):
        return f"activity_{insight['activityKey']}"
    if insight.get("themeKey"):
        return f"theme_{insight['themeKey']}"
    if insight.get("peopleKey"):
        return f"people_{insight['peopleKey']}"
    return insight.get("id") or insight.get("insightId") or insight.get("category")


def new_learning_record(pattern_type: str, now: datetime) -> Dict[str, Any]:
    stamp = now.isoformat()
    return {
        "patternType": pattern_type,
        "totalFeedback": 0,
        "accurateFeedback": 0,
        "inaccurateFeedback": 0,
        "accuracyRate": None,
        "confidenceMultiplier": 1.0,
        "suppressed": False,
        "suppressedAt": None,
        "suppressReason": None,
        "lastMoodDelta": None,
        "requiredMoodDeltaToResurface": None,
        "falsePositiveEntryIds": [],
        "falsePositivePatterns": [],
        "entriesAtLastEvaluation": 0,
        "createdAt": stamp,
        "updatedAt": stamp,
    }


def clear_suppression(record: Dict[str, Any]) -> Dict[str, Any]:
    """The one way a suppression is lifted: every suppression field resets."""
    record["suppressed"] = False
    record["suppressedAt"] = None
    record["suppressReason"] = None
    record["requiredMoodDeltaToResurface"] = None
    return record


def analyze_false_positive_patterns(
    cited_entries: Iterable[Any],
    existing: Optional[List[Dict[str, Any]]] = None,
    limit: int = LEARNING_CONFIG["MAX_FALSE_POSITIVE_PATTERNS"],
) -> List[Dict[str, Any]]:
    """Count indicator phrases in the cited entries, merged with prior counts."""
    counts: Dict[str, int] = {}
    for item in existing or []:
        if isinstance(item, dict) and item.get("pattern"):
            counts[item["pattern"]] = int(item.get("frequency") or 0)

    for view in project_entries(cited_entries):
        content = view.text.lower()
        if not content:
            continue
        for indicator in FALSE_POSITIVE_INDICATORS.values():
            for match in indicator.finditer(content):
                phrase = match.group(0).lower().strip()
                counts[phrase] = counts.get(phrase, 0) + 1

    ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)[:limit]
    return [{"pattern": p, "frequency": f} for p, f in ranked]


def _suppression_expired(record: Mapping[str, Any], now: datetime, expiry_days: int) -> bool:
    suppressed_at = parse_timestamp(record.get("suppressedAt"))
    if suppressed_at is None:
        # A suppression without a start time cannot age out on its own
        return False
    if suppressed_at.tzinfo is None:
        suppressed_at = suppressed_at.replace(tzinfo=timezone.utc)
    return now - suppressed_at > timedelta(days=expiry_days)


def decide_show(
    record: Optional[Mapping[str, Any]],
    insight: Mapping[str, Any],
    current_entry_count: int,
    now: datetime,
    config: Mapping[str, Any] = LEARNING_CONFIG,
) -> Dict[str, Any]:
    """Pure show/hide decision shared by the single and batch paths."""
    if not record or not record.get("totalFeedback"):
        return {"show": True, "adjustedConfidence": 1.0, "reason": "no_feedback"}

    multiplier = record.get("confidenceMultiplier", 1.0)
    if not record.get("suppressed"):
        accuracy = record.get("accuracyRate")
        high = accuracy is not None and accuracy >= config["HIGH_ACCURACY_RATE"]
        return {"show": True, "adjustedConfidence": multiplier, "reason": "high_accuracy" if high else "ok"}

    if _suppression_expired(record, now, config["SUPPRESSION_EXPIRY_DAYS"]):
        return {"show": True, "adjustedConfidence": multiplier, "reason": "suppression_expired"}

    required = record.get("requiredMoodDeltaToResurface")
    delta = insight.get("moodDelta")
    if required and delta is not None and abs(delta) >= required:
        return {"show": True, "adjustedConfidence": multiplier, "reason": "strong_signal_override"}

    new_entries = (current_entry_count or 0) - (record.get("entriesAtLastEvaluation") or 0)
    if new_entries >= config["MIN_NEW_ENTRIES_FOR_REEVALUATION"]:
        return {
            "show": True,
            "adjustedConfidence": multiplier * config["REEVALUATION_PENALTY"],
            "reason": "new_data_reevaluation",
        }

    return {"show": False, "adjustedConfidence": 0.0, "reason": "suppressed"}


class FeedbackLearningStore:
    def __init__(
        self,
        store=None,
        config: Optional[Mapping[str, Any]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store if store is not None else get_default_store()
        self.config = dict(LEARNING_CONFIG)
        if config:
            self.config.update(config)
        self.clock = clock or _utcnow

    # ─── Reads (failures degrade to "no data") ──────────────

    def get_pattern_learning(self, user_id: str, pattern_type: str) -> Optional[Dict[str, Any]]:
        """Stored record, a fresh default when absent, or None if the read failed."""
        try:
            record = self.store.get(user_id, LEARNING_COLLECTION, pattern_type)
        except PersistenceError as exc:
            log.error("Failed to read learning for %s/%s: %s", user_id, pattern_type, exc)
            return None
        return record if record is not None else new_learning_record(pattern_type, self.clock())

    def get_all_pattern_learning(self, user_id: str) -> Dict[str, Dict[str, Any]]:
        try:
            return self.store.list(user_id, LEARNING_COLLECTION)
        except PersistenceError as exc:
            log.error("Failed to read learning records for %s: %s", user_id, exc)
            return {}

    def get_suppressed_patterns(self, user_id: str) -> List[Dict[str, Any]]:
        return [
            {
                "patternType": pattern_type,
                "accuracyRate": record.get("accuracyRate"),
                "totalFeedback": record.get("totalFeedback", 0),
                "suppressedAt": record.get("suppressedAt"),
                "requiredMoodDeltaToResurface": record.get("requiredMoodDeltaToResurface"),
            }
            for pattern_type, record in self.get_all_pattern_learning(user_id).items()
            if record.get("suppressed")
        ]

    # ─── Writes (failures raise PersistenceError) ───────────

    def record_feedback(
        self,
        user_id: str,
        pattern_type: str,
        is_accurate: bool,
        cited_entries: Optional[Iterable[Any]] = None,
        mood_delta: Optional[float] = None,
        entry_ids: Optional[Iterable[str]] = None,
        current_entry_count: Optional[int] = None,
    ) -> Dict[str, Any]:
        cfg = self.config
        cited_entries = list(cited_entries or [])
        try:
            with self.store.transact(user_id, LEARNING_COLLECTION, pattern_type) as txn:
                now = self.clock()
                record = txn.current or new_learning_record(pattern_type, now)

                record["totalFeedback"] += 1
                if is_accurate:
                    record["accurateFeedback"] += 1
                else:
                    record["inaccurateFeedback"] += 1
                    ids = [str(i) for i in (entry_ids or []) if i]
                    if ids:
                        merged = list(dict.fromkeys(list(record.get("falsePositiveEntryIds") or []) + ids))
                        record["falsePositiveEntryIds"] = merged[-cfg["MAX_FALSE_POSITIVE_IDS"]:]
                    if cited_entries:
                        record["falsePositivePatterns"] = analyze_false_positive_patterns(
                            cited_entries,
                            record.get("falsePositivePatterns"),
                            cfg["MAX_FALSE_POSITIVE_PATTERNS"],
                        )

                rate = record["accurateFeedback"] / record["totalFeedback"]
                record["accuracyRate"] = rate
                record["confidenceMultiplier"] = max(
                    cfg["MIN_CONFIDENCE_MULTIPLIER"],
                    1.0 - (1.0 - rate) * cfg["INACCURACY_PENALTY"],
                )
                record["lastMoodDelta"] = mood_delta

                should_suppress = (
                    record["totalFeedback"] >= cfg["MIN_FEEDBACK_FOR_SUPPRESSION"]
                    and rate < cfg["SUPPRESSION_ACCURACY_THRESHOLD"]
                )
                if should_suppress and not record["suppressed"]:
                    record["suppressed"] = True
                    record["suppressedAt"] = now.isoformat()
                    record["suppressReason"] = "low_accuracy"
                    record["requiredMoodDeltaToResurface"] = (
                        abs(mood_delta) * cfg["RESURFACE_STRENGTH_MULTIPLIER"] if mood_delta is not None else None
                    )
                    if current_entry_count is not None:
                        record["entriesAtLastEvaluation"] = current_entry_count
                    log.info("Suppressing pattern %s (accuracy %.0f%%)", pattern_type, rate * 100)
                elif record["suppressed"] and rate >= cfg["SUPPRESSION_ACCURACY_THRESHOLD"]:
                    clear_suppression(record)
                    log.info("Lifting suppression for %s (accuracy improved)", pattern_type)

                record["updatedAt"] = now.isoformat()
                txn.write(record)
        except PersistenceError:
            log.exception("Failed to record feedback for %s/%s", user_id, pattern_type)
            raise

        log.info(
            "Updated %s: accuracy=%.0f%% multiplier=%.2f suppressed=%s",
            pattern_type,
            record["accuracyRate"] * 100,
            record["confidenceMultiplier"],
            record["suppressed"],
        )
        return record

    def record_feedback_and_learn(
        self,
        user_id: str,
        feedback: Mapping[str, Any],
        cited_entries: Optional[Iterable[Any]] = None,
        current_entry_count: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Record a feedback event shaped like the UI's feedback payload.

        ``feedback`` carries ``feedback`` ('accurate' / 'inaccurate'),
        ``insightId``, ``category``, ``moodDelta``, the factor keys and the
        cited ``entryIds``.
        """
        pattern_type = pattern_type_for(
            {
                "activityKey": feedback.get("activityKey"),
                "themeKey": feedback.get("themeKey"),
                "peopleKey": feedback.get("peopleKey"),
                "id": feedback.get("insightId"),
                "category": feedback.get("category"),
            }
        )
        if not pattern_type:
            raise ValueError("feedback needs an insightId, category or factor key")
        return self.record_feedback(
            user_id,
            pattern_type,
            feedback.get("feedback") == "accurate",
            cited_entries=cited_entries,
            mood_delta=feedback.get("moodDelta"),
            entry_ids=feedback.get("entryIds"),
            current_entry_count=current_entry_count,
        )

    def _update_existing(self, user_id: str, pattern_type: str, mutate: Callable[[Dict[str, Any]], bool]) -> bool:
        with self.store.transact(user_id, LEARNING_COLLECTION, pattern_type) as txn:
            record = txn.current
            if record is None or not mutate(record):
                return False
            record["updatedAt"] = self.clock().isoformat()
            txn.write(record)
            return True

    def lift_suppression(self, user_id: str, pattern_type: str) -> bool:
        """Manually lift a suppression; False when nothing was stored or the write failed."""
        try:
            lifted = self._update_existing(user_id, pattern_type, lambda r: bool(clear_suppression(r)))
        except PersistenceError as exc:
            log.error("Failed to lift suppression for %s/%s: %s", user_id, pattern_type, exc)
            return False
        if lifted:
            log.info("Manually lifted suppression for %s", pattern_type)
        return lifted

    def lift_expired_suppression(self, user_id: str, pattern_type: str) -> bool:
        def _lift(record):
            if not record.get("suppressed"):
                return False
            clear_suppression(record)
            return True

        return self._update_existing(user_id, pattern_type, _lift)

    # ─── Show decisions ─────────────────────────────────────

    def should_show(self, user_id: str, insight: Mapping[str, Any], current_entry_count: int = 0) -> Dict[str, Any]:
        pattern_type = pattern_type_for(insight)
        try:
            record = self.store.get(user_id, LEARNING_COLLECTION, pattern_type)
        except PersistenceError as exc:
            log.error("Failed to check insight %s: %s", pattern_type, exc)
            return {"show": True, "adjustedConfidence": 1.0, "reason": "error_fallback"}
        return decide_show(record, insight, current_entry_count, self.clock(), self.config)

    def filter_insights_by_learning(
        self,
        user_id: str,
        insights: Optional[List[Dict[str, Any]]],
        current_entry_count: int = 0,
    ) -> List[Dict[str, Any]]:
        """Copies of ``insights`` each carrying a ``showDecision``; one bulk read."""
        if not insights:
            return []
        try:
            records = self.store.list(user_id, LEARNING_COLLECTION)
        except PersistenceError as exc:
            log.error("Failed to filter insights for %s: %s", user_id, exc)
            fallback = {"show": True, "adjustedConfidence": 1.0, "reason": "error_fallback"}
            return [dict(i, showDecision=dict(fallback), patternType=pattern_type_for(i)) for i in insights]

        now = self.clock()
        out = []
        for insight in insights:
            pattern_type = pattern_type_for(insight)
            decision = decide_show(records.get(pattern_type), insight, current_entry_count, now, self.config)
            out.append(dict(insight, showDecision=decision, patternType=pattern_type))
        return out


# ─── Module-level facades ────────────────────────────────────


def record_feedback_and_learn(user_id, feedback, cited_entries=None, store=None, current_entry_count=None):
    return FeedbackLearningStore(store).record_feedback_and_learn(
        user_id, feedback, cited_entries, current_entry_count=current_entry_count
    )


def filter_insights_by_learning(user_id, insights, entry_count=0, store=None):
    return FeedbackLearningStore(store).filter_insights_by_learning(user_id, insights, entry_count)


def get_suppressed_patterns(user_id, store=None):
    return FeedbackLearningStore(store).get_suppressed_patterns(user_id)


def lift_suppression(user_id, pattern_type, store=None):
    return FeedbackLearningStore(store).lift_suppression(user_id, pattern_type)
