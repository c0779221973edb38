"""
Tests for the insight orchestrator: sufficiency gate, fan-out and
degraded mode, learning filter, ranking, persistence and cache reads.
"""
from datetime import timedelta

import pytest

from constants import INSIGHTS_COLLECTION, INSIGHTS_DOC_ID, LEARNING_COLLECTION
from correlations.activity import compute_activity_correlations
from document_store import InMemoryDocumentStore, PersistenceError
from pipeline import insight_orchestrator as orch
from pipeline.feedback_learning import FeedbackLearningStore
from pipeline.insight_orchestrator import (
    InsightOrchestrator,
    check_data_sufficiency,
    generate_basic_insights,
    get_cached_basic_insights,
    normalise_collaborator_insight,
    rank_insights,
)

USER = "user-1"
WEEKDAYS = [d for d in range(60) if d % 7 < 5]


@pytest.fixture
def yoga_entries(make_entry):
    """Five yoga entries at 0.8 and ``plain`` entries at 0.4, weekdays at 10:00."""

    def _build(plain=5):
        entries = [make_entry(i, 0.8, content="Morning yoga session", day=WEEKDAYS[i]) for i in range(5)]
        entries += [make_entry(i, 0.4, day=WEEKDAYS[i]) for i in range(5, 5 + plain)]
        return entries

    return _build


@pytest.fixture
def learning(store, clock):
    return FeedbackLearningStore(store, clock=clock)


@pytest.fixture
def orchestrator(store, learning, clock):
    return InsightOrchestrator(store, learning=learning, clock=clock)


def mark_inaccurate(learning, times, entry_count=10):
    for _ in range(times):
        learning.record_feedback(USER, "activity_yoga", False, mood_delta=20, current_entry_count=entry_count)


class FailingStore(InMemoryDocumentStore):
    def __init__(self, fail_put=False, fail_get=False, fail_merge=False):
        super().__init__()
        self.fail_put = fail_put
        self.fail_get = fail_get
        self.fail_merge = fail_merge

    def put(self, *args):
        if self.fail_put:
            raise PersistenceError("disk full")
        return super().put(*args)

    def get(self, *args):
        if self.fail_get:
            raise PersistenceError("read down")
        return super().get(*args)

    def merge(self, *args):
        if self.fail_merge:
            raise PersistenceError("merge down")
        return super().merge(*args)


# ─── Sufficiency ─────────────────────────────────────────────


class TestSufficiency:

    def test_counts_only_mood_entries(self, make_entry):
        entries = [make_entry(i, 0.5) for i in range(5)] + [make_entry(i) for i in range(5, 9)]
        result = check_data_sufficiency(entries)
        assert result == {
            "hasEnoughData": False,
            "dataPoints": 5,
            "needed": 7,
            "message": "Need 2 more entries with mood data",
        }

    def test_enough(self, make_entry):
        result = check_data_sufficiency([make_entry(i, 0.5) for i in range(7)])
        assert result["hasEnoughData"] is True
        assert result["message"] == "Sufficient data for basic insights"

    def test_insufficient_result_persists_nothing(self, orchestrator, make_entry, store):
        result = orchestrator.generate_insights(USER, [make_entry(i, 0.5) for i in range(3)])
        assert result == {
            "success": False,
            "insights": [],
            "insufficientData": True,
            "entriesAnalyzed": 3,
            "entriesNeeded": 7,
            "message": "Need 4 more entries for insights",
        }
        assert store.get(USER, INSIGHTS_COLLECTION, INSIGHTS_DOC_ID) is None


# ─── Generation ──────────────────────────────────────────────


class TestGenerate:

    def test_yoga_insight_persisted(self, orchestrator, yoga_entries, store, clock):
        result = orchestrator.generate_insights(USER, yoga_entries())
        assert result["success"] is True
        assert [i["id"] for i in result["insights"]] == ["activity_yoga_mood"]
        insight = result["insights"][0]
        assert insight["moodDelta"] == 20
        assert insight["strength"] == "strong"
        assert insight["confidenceMultiplier"] == 1.0
        assert insight["learningReason"] == "no_feedback"
        assert insight["patternType"] == "activity_yoga"
        assert result["entriesAnalyzed"] == 10
        assert result["categoryCounts"]["activity"] == 1
        assert result["categoryCounts"]["health"] == 0
        assert result["categoryCounts"]["environment"] == 0
        assert result["analysisStatus"] == "success"
        assert result["degradedReasons"] == []
        assert result["learningStats"] == {
            "evaluated": 1,
            "shown": 1,
            "suppressed": 0,
            "adjusted": 0,
            "suppressedPatterns": [],
        }
        assert result["generatedAt"] == clock().isoformat()
        assert result["expiresAt"] == (clock() + timedelta(hours=12)).isoformat()

        stored = store.get(USER, INSIGHTS_COLLECTION, INSIGHTS_DOC_ID)
        assert stored["insights"] == result["insights"]
        assert "success" not in stored

    def test_idempotent_on_same_input(self, orchestrator, yoga_entries):
        entries = yoga_entries()
        assert orchestrator.generate_insights(USER, entries) == orchestrator.generate_insights(USER, entries)

    def test_unexpected_failure_is_reported(self, orchestrator, yoga_entries, monkeypatch):
        def boom(insights, cap):
            raise RuntimeError("ranking exploded")

        monkeypatch.setattr(orch, "rank_insights", boom)
        result = orchestrator.generate_insights(USER, yoga_entries())
        assert result["success"] is False
        assert result["error"] == "ranking exploded"
        assert result["analysisStatus"] == "failed"
        assert result["degradedReasons"] == ["generation_failure"]

    def test_save_failure_raises(self, clock, yoga_entries):
        store = FailingStore(fail_put=True)
        with pytest.raises(PersistenceError):
            InsightOrchestrator(store, clock=clock).generate_insights(USER, yoga_entries())


# ─── Degraded mode ───────────────────────────────────────────


class TestDegradedMode:

    def test_core_engine_failure(self, orchestrator, yoga_entries, monkeypatch):
        def boom(entries, thresholds=None):
            raise ValueError("people engine broke")

        monkeypatch.setattr(
            orch,
            "CORE_ENGINES",
            [("activity", compute_activity_correlations), ("people", boom)],
        )
        result = orchestrator.generate_insights(USER, yoga_entries())
        assert result["success"] is True
        assert result["analysisStatus"] == "degraded"
        assert result["degradedReasons"] == ["people_engine_failed"]
        assert result["categoryCounts"]["people"] == 0
        assert [i["id"] for i in result["insights"]] == ["activity_yoga_mood"]

    def test_collaborator_failure(self, store, learning, clock, yoga_entries):
        def boom(views, cap, thresholds):
            raise RuntimeError("weather api down")

        engine = {"name": "weather", "category": "environment", "idPrefix": "wx", "fn": boom}
        result = InsightOrchestrator(store, learning=learning, clock=clock, external_engines=[engine]).generate_insights(
            USER, yoga_entries()
        )
        assert result["analysisStatus"] == "degraded"
        assert result["degradedReasons"] == ["weather_engine_failed"]
        assert len(result["insights"]) == 1


# ─── Collaborator records ────────────────────────────────────


class TestCollaborators:

    ENGINE = {"name": "weather", "category": "environment", "idPrefix": "wx"}

    def test_normalise(self):
        record = {
            "type": "rain_mood",
            "insight": "Rainy days dip your mood",
            "difference": -0.123,
            "strength": "moderate",
            "sampleSize": 9,
            "entryIds": ["e1", "e2"],
        }
        insight = normalise_collaborator_insight(record, self.ENGINE)
        assert insight == {
            "id": "wx_rain_mood",
            "category": "environment",
            "insight": "Rainy days dip your mood",
            "moodDelta": -12,
            "direction": "negative",
            "strength": "moderate",
            "sampleSize": 9,
            "recommendation": None,
            "entryIds": ["e1", "e2"],
            "source": "weather",
        }

    def test_malformed_records_skipped(self):
        assert normalise_collaborator_insight({"insight": "x"}, self.ENGINE) is None
        assert normalise_collaborator_insight({"type": "x", "insight": ""}, self.ENGINE) is None

    def test_external_engine_merged(self, store, learning, clock, yoga_entries):
        def weather(views, cap, thresholds):
            return [
                {"type": "rain_mood", "insight": "Rainy days dip", "difference": -0.123, "strength": "moderate", "sampleSize": 9},
                {"type": "fog_mood", "insight": "Foggy days", "difference": 0.05, "strength": "weak", "sampleSize": 9},
                {"type": None, "insight": "broken"},
            ]

        engine = dict(self.ENGINE, fn=weather)
        result = InsightOrchestrator(store, learning=learning, clock=clock, external_engines=[engine]).generate_insights(
            USER, yoga_entries()
        )
        assert [i["id"] for i in result["insights"]] == ["activity_yoga_mood", "wx_rain_mood"]
        assert result["categoryCounts"]["weather"] == 1


# ─── Learning filter ─────────────────────────────────────────


class TestLearning:

    def test_suppressed_pattern_filtered(self, orchestrator, learning, yoga_entries):
        mark_inaccurate(learning, 3)
        result = orchestrator.generate_insights(USER, yoga_entries())
        assert result["success"] is True
        assert result["insights"] == []
        assert result["learningStats"]["suppressed"] == 1
        assert result["learningStats"]["suppressedPatterns"] == ["activity_yoga"]

    def test_low_confidence_downgrades_strength(self, orchestrator, learning, yoga_entries):
        mark_inaccurate(learning, 2)
        result = orchestrator.generate_insights(USER, yoga_entries())
        insight = result["insights"][0]
        assert insight["strength"] == "moderate"
        assert insight["confidenceMultiplier"] == pytest.approx(0.3)
        assert insight["learningReason"] == "ok"
        assert result["learningStats"]["adjusted"] == 1

    def test_reevaluation_after_new_entries(self, orchestrator, learning, yoga_entries, store):
        mark_inaccurate(learning, 3, entry_count=10)
        entries = yoga_entries(plain=10)

        first = orchestrator.generate_insights(USER, entries)
        assert [i["learningReason"] for i in first["insights"]] == ["new_data_reevaluation"]
        assert first["insights"][0]["moodDelta"] == 27
        assert first["insights"][0]["confidenceMultiplier"] == pytest.approx(0.24)
        assert store.get(USER, LEARNING_COLLECTION, "activity_yoga")["entriesAtLastEvaluation"] == 10

    def test_repeat_generation_is_stable_while_reevaluating(self, orchestrator, learning, yoga_entries):
        mark_inaccurate(learning, 3, entry_count=10)
        entries = yoga_entries(plain=10)

        first = orchestrator.generate_insights(USER, entries)
        second = orchestrator.generate_insights(USER, entries)
        summary = [(i["id"], i["moodDelta"], i["strength"]) for i in first["insights"]]
        assert summary == [("activity_yoga_mood", 27, "moderate")]
        assert [(i["id"], i["moodDelta"], i["strength"]) for i in second["insights"]] == summary
        assert second["learningStats"]["suppressed"] == 0

    def test_expired_suppression_lifted(self, orchestrator, learning, yoga_entries, clock):
        mark_inaccurate(learning, 3)
        clock.advance(days=31)
        result = orchestrator.generate_insights(USER, yoga_entries())
        assert [i["learningReason"] for i in result["insights"]] == ["suppression_expired"]
        assert learning.get_pattern_learning(USER, "activity_yoga")["suppressed"] is False


# ─── Ranking ─────────────────────────────────────────────────


class TestRanking:

    def test_strength_then_magnitude(self):
        insights = [
            {"id": "a", "strength": "moderate", "moodDelta": 40},
            {"id": "b", "strength": "strong", "moodDelta": -15},
            {"id": "c", "strength": "strong", "moodDelta": 25},
        ]
        assert [i["id"] for i in rank_insights(insights, 8)] == ["c", "b", "a"]

    def test_cap(self):
        insights = [{"id": str(i), "strength": "moderate", "moodDelta": i} for i in range(12)]
        ranked = rank_insights(insights, 8)
        assert len(ranked) == 8
        assert ranked[0]["id"] == "11"


# ─── Cache reads ─────────────────────────────────────────────


class TestCache:

    def test_missing(self, orchestrator):
        assert orchestrator.get_cached(USER) is None

    def test_fresh_then_stale(self, orchestrator, yoga_entries, clock):
        orchestrator.generate_insights(USER, yoga_entries())
        assert orchestrator.get_cached(USER)["stale"] is False
        clock.advance(hours=13)
        assert orchestrator.get_cached(USER)["stale"] is True

    def test_read_failure(self, clock):
        assert InsightOrchestrator(FailingStore(fail_get=True), clock=clock).get_cached(USER) is None

    def test_invalidate(self, orchestrator, yoga_entries):
        orchestrator.generate_insights(USER, yoga_entries())
        assert orchestrator.invalidate_cached_insights(USER) is True
        assert orchestrator.get_cached(USER)["stale"] is True

    def test_invalidate_missing_document(self, orchestrator):
        assert orchestrator.invalidate_cached_insights(USER) is False

    def test_invalidate_failure_is_swallowed(self, clock):
        assert InsightOrchestrator(FailingStore(fail_merge=True), clock=clock).invalidate_cached_insights(USER) is False

    def test_get_or_generate(self, orchestrator, yoga_entries, clock):
        entries = yoga_entries()
        first = orchestrator.get_or_generate(USER, entries)
        assert first["success"] is True
        assert "fromCache" not in first

        second = orchestrator.get_or_generate(USER, entries)
        assert second["fromCache"] is True
        assert second["insights"] == first["insights"]

        clock.advance(hours=13)
        third = orchestrator.get_or_generate(USER, entries)
        assert "fromCache" not in third
        assert third["generatedAt"] == clock().isoformat()

    def test_thin_cache_regenerates(self, orchestrator, yoga_entries):
        entries = yoga_entries()
        orchestrator.generate_insights(USER, entries)
        assert "fromCache" not in orchestrator.get_or_generate(USER, entries, min_cached_insights=2)

    def test_get_or_generate_insufficient(self, orchestrator, make_entry):
        result = orchestrator.get_or_generate(USER, [make_entry(1, 0.5)])
        assert result["insufficientData"] is True


# ─── Facades ─────────────────────────────────────────────────


class TestFacades:

    def test_generate_and_read(self, store, yoga_entries):
        assert generate_basic_insights(USER, yoga_entries(), store=store)["success"] is True
        cached = get_cached_basic_insights(USER, store=store)
        assert cached["stale"] is False
        assert cached["insights"][0]["id"] == "activity_yoga_mood"
