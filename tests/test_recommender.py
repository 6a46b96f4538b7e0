"""Tests for the recommendation engine."""

from __future__ import annotations

import pytest

from app.habits.errors import CatalogUnavailableError
from app.habits.models import (
    CatalogSource,
    Difficulty,
    GoalCategory,
    MatchType,
    RecommendationRequest,
    SkillLevel,
)
from app.habits.recommender import (
    RecommendationEngine,
    build_recommendations,
    distribute_slots,
    extract_expected_benefits,
    resolve_goals,
)
from app.habits.taxonomy import get_taxonomy

from tests.conftest import FakeContentSource, make_habit, make_loader, sleep_documents


def _pool(goal: GoalCategory, prefix: str, count: int = 5, minutes: int = 5):
    return [
        make_habit(f"{prefix}_{i}", goal, rank=i, score=9.0 - i * 0.5, minutes=minutes)
        for i in range(1, count + 1)
    ]


def _catalog():
    return (
        _pool(GoalCategory.better_sleep, "sleep")
        + _pool(GoalCategory.get_moving, "move")
        + _pool(GoalCategory.feel_better, "feel")
    )


def _request(*goals: str, **kwargs) -> RecommendationRequest:
    return RecommendationRequest(goal_categories=list(goals), **kwargs)


# ---------------------------------------------------------------------------
# Slot distribution
# ---------------------------------------------------------------------------


class TestDistributeSlots:
    def test_fixed_rule(self):
        assert distribute_slots(1) == [3]
        assert distribute_slots(2) == [2, 1]
        assert distribute_slots(3) == [1, 1, 1]

    def test_more_goals_than_slots(self):
        assert distribute_slots(4) == [1, 1, 1, 0]
        assert distribute_slots(5) == [1, 1, 1, 0, 0]

    def test_no_goals(self):
        assert distribute_slots(0) == []

    def test_custom_total(self):
        assert distribute_slots(2, total=5) == [3, 2]


class TestResolveGoals:
    def test_aliases_and_unknowns(self):
        goals, unmapped, warnings = resolve_goals(["sleep", "piano", "exercise"], get_taxonomy())
        assert goals == [GoalCategory.better_sleep, GoalCategory.get_moving]
        assert unmapped == ["piano"]
        assert any("Could not map" in w for w in warnings)

    def test_duplicates_counted_once(self):
        goals, _, warnings = resolve_goals(["better_sleep", "sleep_quality"], get_taxonomy())
        assert goals == [GoalCategory.better_sleep]
        assert any("duplicates" in w for w in warnings)


# ---------------------------------------------------------------------------
# build_recommendations
# ---------------------------------------------------------------------------


class TestDistribution:
    def test_one_goal_gets_three(self):
        resp = build_recommendations(_catalog(), _request("better_sleep"))
        assert [h.id for h in resp.primary_recommendations] == ["sleep_1", "sleep_2", "sleep_3"]
        assert [h.id for h in resp.alternative_options] == ["sleep_4", "sleep_5"]
        assert resp.metadata.slot_distribution == [3]

    def test_two_goals_split_two_one(self):
        resp = build_recommendations(_catalog(), _request("get_moving", "feel_better"))
        assert [h.id for h in resp.primary_recommendations] == ["move_1", "move_2", "feel_1"]
        assert resp.metadata.primary_counts == {"get_moving": 2, "feel_better": 1}
        assert [h.id for h in resp.alternative_options] == ["move_3", "move_4", "feel_2", "feel_3"]

    def test_three_goals_one_each(self):
        resp = build_recommendations(_catalog(), _request("better_sleep", "get_moving", "feel_better"))
        assert [h.id for h in resp.primary_recommendations] == ["sleep_1", "move_1", "feel_1"]
        assert len(resp.primary_recommendations) == 3
        assert resp.metadata.shortfall == 0

    def test_no_goals(self):
        resp = build_recommendations(_catalog(), _request())
        assert resp.primary_recommendations == []
        assert resp.estimated_time_commitment == 0
        assert "None of the selected goals" in resp.reasoning


class TestEndToEndScenario:
    def test_better_sleep_three_habits(self):
        catalog = [
            make_habit("s3", GoalCategory.better_sleep, rank=3, score=7.1, minutes=15),
            make_habit("s1", GoalCategory.better_sleep, rank=1, score=9.2, minutes=4),
            make_habit("s2", GoalCategory.better_sleep, rank=2, score=8.0, minutes=10),
        ]
        resp = build_recommendations(catalog, _request("better_sleep"))

        assert [h.id for h in resp.primary_recommendations] == ["s1", "s2", "s3"]
        assert resp.estimated_time_commitment == 29
        assert resp.alternative_options == []
        assert "average 8.1/10" in resp.reasoning
        assert "3 habits for your selected goal" in resp.reasoning


class TestFilters:
    def test_time_budget_excludes_long_habits(self):
        catalog = [
            make_habit("long", GoalCategory.better_sleep, rank=1, minutes=20),
            make_habit("short", GoalCategory.better_sleep, rank=2, minutes=10),
        ]
        resp = build_recommendations(catalog, _request("better_sleep", time_available=10))
        ids = [h.id for h in resp.primary_recommendations]
        assert "long" not in ids
        assert ids == ["short"]
        assert "10 minutes daily time budget" in resp.reasoning

    def test_zero_time_budget_means_unconstrained(self):
        catalog = [make_habit("long", GoalCategory.better_sleep, rank=1, minutes=20)]
        resp = build_recommendations(catalog, _request("better_sleep", time_available=0))
        assert [h.id for h in resp.primary_recommendations] == ["long"]

    def test_skill_level_keeps_matching_and_beginner(self):
        catalog = [
            make_habit("adv", GoalCategory.get_moving, rank=1, difficulty=Difficulty.advanced),
            make_habit("mid", GoalCategory.get_moving, rank=2, difficulty=Difficulty.moderate),
            make_habit("easy", GoalCategory.get_moving, rank=3, difficulty=Difficulty.trivial),
        ]
        resp = build_recommendations(catalog, _request("get_moving", user_level=SkillLevel.intermediate))
        assert [h.id for h in resp.primary_recommendations] == ["mid", "easy"]
        assert "suitable for intermediate users" in resp.reasoning

    def test_current_habits_excluded(self):
        resp = build_recommendations(_catalog(), _request("better_sleep", current_habits=["sleep_1"]))
        assert [h.id for h in resp.primary_recommendations] == ["sleep_2", "sleep_3", "sleep_4"]


class TestShortfall:
    def test_empty_pool_is_surfaced(self):
        catalog = _pool(GoalCategory.better_sleep, "sleep")
        resp = build_recommendations(catalog, _request("better_sleep", "get_moving", "feel_better"))

        assert [h.id for h in resp.primary_recommendations] == ["sleep_1"]
        assert resp.metadata.shortfall == 2
        assert resp.metadata.primary_counts == {"better_sleep": 1, "get_moving": 0, "feel_better": 0}
        assert any("get_moving" in w for w in resp.metadata.warnings)
        assert any("feel_better" in w for w in resp.metadata.warnings)
        assert "Only 1 of 3 habits" in resp.reasoning

    def test_nothing_matches(self):
        resp = build_recommendations([], _request("better_sleep"))
        assert resp.primary_recommendations == []
        assert resp.metadata.shortfall == 3
        assert "No habits matched" in resp.reasoning

    def test_unmapped_goal_reported(self):
        resp = build_recommendations(_catalog(), _request("better_sleep", "learn_piano"))
        assert resp.metadata.unmapped_goals == ["learn_piano"]
        assert resp.metadata.slot_distribution == [3]
        assert len(resp.primary_recommendations) == 3


class TestBenefitsAndMatches:
    def test_expected_benefits_deduplicated(self):
        habits = [
            make_habit("a", research_summary="Study showed 37% improvement in sleep onset"),
            make_habit("b", research_summary="Lower stress and better sleep"),
            make_habit("c", research_summary="Improved Mood and focus over 20% of days"),
        ]
        benefits = extract_expected_benefits(habits, "en")
        assert benefits == [
            "Research shows up to 37% improvement in key metrics",
            "Improved sleep quality",
            "Reduced anxiety and stress",
            "Research shows up to 20% improvement in key metrics",
            "Enhanced mood and happiness",
            "Better focus and attention",
        ]

    def test_benefits_use_fallback_language(self):
        habit = make_habit("a", research_summary="Reduces anxiety", languages=("en",))
        assert extract_expected_benefits([habit], "de", "en") == ["Reduced anxiety and stress"]

    def test_match_tiers(self):
        catalog = [
            make_habit("exact", GoalCategory.better_sleep, rank=1, goal_tags=["better_sleep"]),
            make_habit("alias", GoalCategory.better_sleep, rank=2, goal_tags=["sleep_quality"]),
            make_habit("none", GoalCategory.better_sleep, rank=3, goal_tags=["stress_reduction"]),
        ]
        resp = build_recommendations(catalog, _request("better_sleep"))
        tiers = {m.habit_id: m.match_type for m in resp.metadata.matches}
        assert tiers == {"exact": MatchType.exact, "alias": MatchType.alias, "none": MatchType.category}
        assert resp.metadata.average_confidence == round((1.0 + 0.9 + 0.4) / 3, 3)


# ---------------------------------------------------------------------------
# Engine over the loader
# ---------------------------------------------------------------------------


class TestRecommendationEngine:
    @pytest.mark.asyncio
    async def test_recommend_from_content_source(self, loader):
        resp = await RecommendationEngine(loader).recommend(_request("better_sleep"))
        assert [h.id for h in resp.primary_recommendations] == ["sleep_a", "sleep_b", "sleep_c"]
        assert resp.estimated_time_commitment == 29
        assert resp.metadata.catalog_source == CatalogSource.content_api
        assert not resp.metadata.catalog_degraded
        assert "Improved sleep quality" in resp.expected_benefits

    @pytest.mark.asyncio
    async def test_recommend_in_secondary_language(self, loader):
        resp = await RecommendationEngine(loader).recommend(_request("better_sleep", language="de"))
        assert resp.primary_recommendations[0].translation("de").title == "Schlaf A"

    @pytest.mark.asyncio
    async def test_unsupported_language_uses_cached_catalog(self, loader, content_source):
        engine = RecommendationEngine(loader)
        first = await engine.recommend(_request("better_sleep", language="fr"))
        second = await engine.recommend(_request("better_sleep", language="fr"))

        assert len(content_source.calls) == 2
        assert "/habits/multilingual-science-habits-fr.json" not in content_source.calls
        assert not second.metadata.catalog_fallback_used
        assert second.metadata.warnings == []
        assert first.primary_recommendations[0].translation("fr", "en").title == "Title sleep_a"
        assert "Improved sleep quality" in second.expected_benefits

    @pytest.mark.asyncio
    async def test_degraded_catalog_flagged(self):
        loader = make_loader(FakeContentSource({}))
        resp = await RecommendationEngine(loader).recommend(_request("better_sleep"))
        assert resp.metadata.catalog_degraded
        assert resp.metadata.catalog_source == CatalogSource.static_sample
        assert len(resp.primary_recommendations) == 1
        assert any("built-in sample" in w for w in resp.metadata.warnings)

    @pytest.mark.asyncio
    async def test_secondary_fallback_flagged(self):
        docs = sleep_documents()
        docs["de"] = 500
        loader = make_loader(FakeContentSource(docs))
        resp = await RecommendationEngine(loader).recommend(_request("better_sleep"))
        assert resp.metadata.catalog_fallback_used
        assert not resp.metadata.catalog_degraded
        assert len(resp.primary_recommendations) == 3

    @pytest.mark.asyncio
    async def test_catalog_unavailable_raises(self):
        loader = make_loader(FakeContentSource({}), static_fallback=False)
        with pytest.raises(CatalogUnavailableError):
            await RecommendationEngine(loader).recommend(_request("better_sleep"))
