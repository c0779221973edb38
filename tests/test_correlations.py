"""
Tests for the correlation engines.

Each engine gets a small hand-built dataset whose expected delta is
easy to compute by hand.  Dates are offsets from Monday 2 March 2026.
"""
from datetime import datetime, timedelta

import pytest

from correlations.activity import compute_activity_correlations
from correlations.category import compute_category_correlations
from correlations.common import score_against, top_by_abs_delta
from correlations.environment import compute_environment_mood_correlations, get_top_environment_insights
from correlations.health import compute_health_mood_correlations, get_top_health_insights
from correlations.health_extended import compute_extended_health_correlations
from correlations.people import compute_people_correlations
from correlations.themes import compute_themes_correlations
from correlations.timing import compute_time_correlations

LIST_ENGINES = [
    compute_activity_correlations,
    compute_people_correlations,
    compute_time_correlations,
    compute_category_correlations,
    compute_themes_correlations,
    compute_extended_health_correlations,
]


# ─── Shared gates ────────────────────────────────────────────


class TestInsufficientData:

    @pytest.mark.parametrize("engine", LIST_ENGINES)
    def test_below_floor_returns_empty(self, engine, make_entry):
        entries = [make_entry(i, 0.5, content="yoga with family") for i in range(3)]
        assert engine(entries) == []

    @pytest.mark.parametrize("engine", LIST_ENGINES)
    def test_no_entries(self, engine):
        assert engine(None) == []
        assert engine([]) == []

    def test_collaborators_return_none(self, make_entry):
        entries = [make_entry(i, 0.5, healthContext={"sleep": {"totalHours": 8}}) for i in range(3)]
        assert compute_health_mood_correlations(entries) is None
        assert compute_environment_mood_correlations(entries) is None
        assert get_top_health_insights(entries) == []
        assert get_top_environment_insights(entries) == []

    def test_score_against_drops_small_and_weak(self):
        assert score_against(0.65, 0.6, 10, 8) is None
        # 10 points on only 4 samples is weak
        assert score_against(0.7, 0.6, 4, 8) is None
        assert score_against(0.8, 0.6, 5, 8) == (20, "strong")

    def test_top_by_abs_delta_caps(self):
        insights = [{"moodDelta": d} for d in (10, -30, 20, 5)]
        assert [i["moodDelta"] for i in top_by_abs_delta(insights, 3)] == [-30, 20, 10]


# ─── Activity ────────────────────────────────────────────────


def _yoga_dataset(make_entry):
    yoga = [make_entry(i, 0.8, content="Morning yoga session") for i in range(5)]
    rest = [make_entry(i, 0.4) for i in range(5, 10)]
    return yoga + rest


class TestActivity:

    def test_yoga_boost(self, make_entry):
        insights = compute_activity_correlations(_yoga_dataset(make_entry))
        assert len(insights) == 1
        yoga = insights[0]
        assert yoga["id"] == "activity_yoga_mood"
        assert yoga["moodDelta"] == 20
        assert yoga["direction"] == "positive"
        assert yoga["strength"] == "strong"
        assert yoga["sampleSize"] == 5
        assert yoga["activityKey"] == "yoga"
        assert yoga["entryIds"] == ["e0", "e1", "e2", "e3", "e4"]
        assert yoga["insight"] == "🧘 Yoga boosts your mood by 20%"
        assert yoga["recommendation"]

    def test_entries_without_mood_do_not_count(self, make_entry):
        entries = [make_entry(i, 0.8, content="yoga") for i in range(5)]
        entries += [make_entry(i, None, content="yoga") for i in range(5, 10)]
        assert compute_activity_correlations(entries) == []

    def test_thresholds_override(self, make_entry):
        assert compute_activity_correlations(_yoga_dataset(make_entry), {"MIN_ENTRIES": 20}) == []

    def test_small_group_skipped(self, make_entry):
        entries = [make_entry(i, 0.9, content="yoga") for i in range(4)]
        entries += [make_entry(i, 0.4) for i in range(4, 10)]
        assert compute_activity_correlations(entries) == []


# ─── People ──────────────────────────────────────────────────


class TestPeople:

    def _dataset(self, make_entry):
        sarah = [make_entry(i, 0.95, entities=[{"name": "Sarah", "type": "person"}]) for i in range(5)]
        family = [make_entry(i, 0.85, content="dinner with family") for i in range(5, 10)]
        neutral = [make_entry(i, 0.4) for i in range(10, 16)]
        return sarah + family + neutral

    def test_groups_rank_ahead_of_individuals(self, make_entry):
        insights = compute_people_correlations(self._dataset(make_entry))
        assert [i["id"] for i in insights] == ["people_family_mood", "people_sarah_mood"]
        family, sarah = insights
        # Sarah has the larger effect but still comes second
        assert abs(sarah["moodDelta"]) > abs(family["moodDelta"])
        assert family["moodDelta"] == 14
        assert sarah["moodDelta"] == 24
        assert family["isGroup"] is True
        assert sarah["isGroup"] is False
        assert family["peopleKey"] == "family"
        assert sarah["entityName"] == "Sarah"


# ─── Time ────────────────────────────────────────────────────


class TestTime:

    def test_weekend_better(self, make_entry):
        weekend_days = [5, 6, 12, 13, 19]
        weekday_days = [0, 1, 2, 3, 4]
        entries = [make_entry(i, 0.8, day=d) for i, d in enumerate(weekend_days)]
        entries += [make_entry(10 + i, 0.5, day=d) for i, d in enumerate(weekday_days)]
        insights = compute_time_correlations(entries)
        assert len(insights) == 1
        ww = insights[0]
        assert ww["id"] == "time_weekend_weekday_mood"
        assert ww["moodDelta"] == 30
        assert ww["direction"] == "positive"
        assert ww["strength"] == "strong"
        assert ww["sampleSize"] == 10
        assert ww["insight"].startswith("📅 Weekend")
        assert ww["entryIds"] == ["e0", "e1", "e2", "e3", "e4"]

    def test_weekday_better_still_positive(self, make_entry):
        weekend_days = [5, 6, 12, 13, 19]
        weekday_days = [0, 1, 2, 3, 4]
        entries = [make_entry(i, 0.5, day=d) for i, d in enumerate(weekend_days)]
        entries += [make_entry(10 + i, 0.8, day=d) for i, d in enumerate(weekday_days)]
        ww = compute_time_correlations(entries)[0]
        assert ww["moodDelta"] == 30
        assert ww["direction"] == "positive"
        assert ww["insight"].startswith("📅 Weekday")
        assert ww["peakTime"] == "weekday"

    def test_effective_date_overrides_created(self, make_entry):
        weekend = [datetime(2026, 3, 7, 10), datetime(2026, 3, 8, 10), datetime(2026, 3, 14, 10),
                   datetime(2026, 3, 15, 10), datetime(2026, 3, 21, 10)]
        # Written on weekdays, dated back to the weekend
        entries = [
            make_entry(i, 0.8, day=i % 5, effectiveDate=when.isoformat()) for i, when in enumerate(weekend)
        ]
        entries += [make_entry(10 + i, 0.5, day=i) for i in range(5)]
        ids = [i["id"] for i in compute_time_correlations(entries)]
        assert "time_weekend_weekday_mood" in ids

    def test_best_vs_worst_time_of_day(self, make_entry):
        start = datetime(2026, 3, 2)
        mornings = [start + timedelta(days=d, hours=9) for d in (0, 1, 2, 3, 4)]
        evenings = [start + timedelta(days=d, hours=19) for d in (7, 8, 9, 10, 11)]
        entries = [make_entry(i, 0.8, at=when) for i, when in enumerate(mornings)]
        entries += [make_entry(10 + i, 0.5, at=when) for i, when in enumerate(evenings)]
        insights = compute_time_correlations(entries)
        assert len(insights) == 1
        tod = insights[0]
        assert tod["id"] == "time_time_of_day_mood"
        assert tod["moodDelta"] == 30
        assert tod["bestTime"] == "morning"
        assert tod["worstTime"] == "evening"
        assert tod["sampleSize"] == 10
        assert tod["insight"] == "🌅 Morning entries show 30% better mood than evening"

    def test_entries_without_timestamp_skipped(self, make_entry):
        entries = [make_entry(i, 0.5) for i in range(10)]
        for entry in entries:
            entry["createdAt"] = None
        assert compute_time_correlations(entries) == []


# ─── Category ────────────────────────────────────────────────


class TestCategory:

    def test_work_vs_personal(self, make_entry):
        entries = [make_entry(i, 0.4, category="work") for i in range(5)]
        entries += [make_entry(i, 0.8, classification={"primary_category": "Personal"}) for i in range(5, 10)]
        insights = {i["id"]: i for i in compute_category_correlations(entries)}
        assert set(insights) == {"category_category_work_mood", "category_category_personal_mood"}
        work = insights["category_category_work_mood"]
        assert work["moodDelta"] == -20
        assert work["direction"] == "negative"
        assert work["recommendation"] == "Consider work-life balance strategies"
        assert insights["category_category_personal_mood"]["moodDelta"] == 20

    def test_entry_types(self, make_entry):
        entries = [make_entry(i, 0.3, entry_type="vent") for i in range(5)]
        entries += [make_entry(i, 0.7, analysis={"entry_type": "reflection"}) for i in range(5, 10)]
        ids = {i["id"] for i in compute_category_correlations(entries)}
        assert ids == {"category_type_vent_mood", "category_type_reflection_mood"}


# ─── Themes ──────────────────────────────────────────────────


class TestThemes:

    def test_themes_and_high_emotions(self, make_entry):
        grateful = [
            make_entry(i, 0.9, themes=["grateful"], emotions=[{"name": "joy", "intensity": "high"}])
            for i in range(5)
        ]
        stressed = [make_entry(i, 0.4, themes=["work stress"]) for i in range(5, 10)]
        insights = {i["id"]: i for i in compute_themes_correlations(grateful + stressed)}
        assert set(insights) == {
            "themes_theme_gratitude_mood",
            "themes_theme_anxiety_mood",
            "themes_emotion_high_joy_mood",
        }
        assert insights["themes_theme_gratitude_mood"]["moodDelta"] == 25
        assert insights["themes_theme_gratitude_mood"]["themeKey"] == "gratitude"
        assert insights["themes_theme_anxiety_mood"]["moodDelta"] == -25
        assert insights["themes_emotion_high_joy_mood"]["intensity"] == "high"

    def test_emotions_need_extra_delta(self, make_entry):
        # +10 clears the general floor but not the emotion floor of 13
        joyful = [make_entry(i, 0.7, emotions=[{"name": "joy", "intensity": "high"}]) for i in range(5)]
        rest = [make_entry(i, 0.5) for i in range(5, 10)]
        ids = {i["id"] for i in compute_themes_correlations(joyful + rest)}
        assert "themes_emotion_high_joy_mood" not in ids

    def test_cognitive_patterns(self, make_entry):
        spiral = [make_entry(i, 0.3, cognitive_patterns=[{"type": "Catastrophizing"}]) for i in range(5)]
        rest = [make_entry(i, 0.7) for i in range(5, 10)]
        insights = compute_themes_correlations(spiral + rest)
        assert [i["id"] for i in insights] == ["themes_cognitive_catastrophizing_mood"]
        assert insights[0]["moodDelta"] == -20


# ─── Extended health ─────────────────────────────────────────


def _strain_dataset(make_entry, high_mood, low_mood):
    high = [make_entry(i, high_mood, healthContext={"strain": {"score": 18}}) for i in range(3)]
    low = [make_entry(i, low_mood, healthContext={"strain": {"score": 8}}) for i in range(3, 6)]
    # Health context without a strain reading
    other = [make_entry(6, 0.65, healthContext={"sleep": {"score": 70}})]
    return high + low + other


class TestExtendedHealth:

    def test_high_strain_better(self, make_entry):
        insights = compute_extended_health_correlations(_strain_dataset(make_entry, 0.8, 0.5))
        assert len(insights) == 1
        strain = insights[0]
        assert strain["id"] == "health_strain_mood"
        assert strain["moodDelta"] == 30
        assert strain["direction"] == "positive"
        assert strain["strength"] in ("moderate", "strong")
        assert strain["sampleSize"] == 6
        assert strain["entryIds"] == ["e0", "e1", "e2"]
        assert "High strain days" in strain["insight"]

    def test_low_strain_better_is_negative(self, make_entry):
        strain = compute_extended_health_correlations(_strain_dataset(make_entry, 0.5, 0.8))[0]
        assert strain["moodDelta"] == -30
        assert strain["direction"] == "negative"
        assert "Lower strain days" in strain["insight"]
        assert strain["entryIds"] == ["e3", "e4", "e5"]

    def test_needs_health_context_on_enough_entries(self, make_entry):
        entries = _strain_dataset(make_entry, 0.8, 0.5)[:6]
        entries += [make_entry(10 + i, 0.6) for i in range(4)]
        assert compute_extended_health_correlations(entries) == []


# ─── Collaborator engines ────────────────────────────────────


class TestHealthCollaborator:

    def test_sleep(self, make_entry):
        entries = [make_entry(i, 0.8, healthContext={"sleep": {"totalHours": 8}}) for i in range(4)]
        entries += [make_entry(i, 0.4, healthContext={"sleep": {"totalHours": 5}}) for i in range(4, 7)]
        insights = get_top_health_insights(entries)
        assert [i["type"] for i in insights] == ["sleep_mood"]
        sleep = insights[0]
        assert sleep["difference"] == pytest.approx(0.4)
        assert sleep["strength"] == "strong"
        assert sleep["entryIds"] == ["e0", "e1", "e2", "e3"]

    def test_one_sided_split_is_ignored(self, make_entry):
        moods = [0.9, 0.2, 0.8, 0.3, 0.7, 0.4, 0.6]
        entries = [
            make_entry(i, mood, healthContext={"sleep": {"totalHours": 8}, "heart": {"hrv": 50}})
            for i, mood in enumerate(moods)
        ]
        assert get_top_health_insights(entries) == []

    def test_correlation_without_short_sleep_days_emits_nothing(self, make_entry):
        entries = [
            make_entry(i, 0.3 + i * 0.1, healthContext={"sleep": {"totalHours": 7 + i}})
            for i in range(7)
        ]
        assert compute_health_mood_correlations(entries) is None
        assert get_top_health_insights(entries) == []


class TestEnvironmentCollaborator:

    def test_low_sunshine_warning_is_negative(self, make_entry):
        entries = [make_entry(i, 0.3, environmentContext={"daySummary": {"isLowSunshine": True}}) for i in range(3)]
        entries += [
            make_entry(i, 0.7, environmentContext={"daySummary": {"isLowSunshine": False}}) for i in range(3, 7)
        ]
        found = compute_environment_mood_correlations(entries)
        warning = found["lowSunshineWarning"]
        assert warning["difference"] == pytest.approx(-0.4)
        assert warning["strength"] == "strong"
        assert warning["entryIds"] == ["e0", "e1", "e2"]
