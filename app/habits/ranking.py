"""Effectiveness ranking — top habits per goal category and across the catalog.

Two distinct orderings, never to be conflated:
  rank_for_goal  → ascending effectiveness_rank within one category (1 = best)
  global_ranking → descending effectiveness_score across every category
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass

from app.config import settings
from app.habits.catalog import CatalogLoader
from app.habits.models import (
    CategoryRanking,
    GoalCategory,
    HabitRecord,
    RankingStats,
    ResearchStrength,
)

logger = logging.getLogger(__name__)

TOP_N = 3


@dataclass(frozen=True, slots=True)
class RankingCriteria:
    research_quality: float = 0.4
    effectiveness_score: float = 0.4
    user_engagement: float = 0.1
    translation_coverage: float = 0.1


DEFAULT_CRITERIA = RankingCriteria()

# No usage data yet; every habit gets the same engagement estimate
BASELINE_ENGAGEMENT = 0.8

_INSTITUTIONS = ("harvard", "stanford", "mit")
_LARGE_SAMPLE = re.compile(r"\d{3,}")
_PERCENTAGE = re.compile(r"\d+%")


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def research_strength(
    average: float,
    high: float | None = None,
    low: float | None = None,
) -> ResearchStrength:
    high = settings.ranking_high_strength_threshold if high is None else high
    low = settings.ranking_low_strength_threshold if low is None else low
    if average >= high:
        return ResearchStrength.high
    if average < low:
        return ResearchStrength.low
    return ResearchStrength.medium


def research_quality(habit: HabitRecord, language: str | None = None) -> float:
    """Heuristic 0–1 quality of the cited research, read from the summary text."""
    summary = habit.translation(language or settings.primary_language).research_summary.lower()

    score = 0.5
    if "meta-analysis" in summary:
        score += 0.3
    if _LARGE_SAMPLE.search(summary):
        score += 0.2
    if any(name in summary for name in _INSTITUTIONS):
        score += 0.2
    if _PERCENTAGE.search(summary):
        score += 0.1
    return min(score, 1.0)


def translation_coverage(habit: HabitRecord, languages: Sequence[str] | None = None) -> float:
    languages = languages or settings.supported_languages
    if not languages:
        return 0.0
    return sum(1 for lang in languages if lang in habit.translations) / len(languages)


def weighted_score(habit: HabitRecord, criteria: RankingCriteria = DEFAULT_CRITERIA) -> float:
    score = (
        habit.effectiveness_score / 10 * criteria.effectiveness_score
        + research_quality(habit) * criteria.research_quality
        + BASELINE_ENGAGEMENT * criteria.user_engagement
        + translation_coverage(habit) * criteria.translation_coverage
    )
    return round(score, 3)


def rank_for_goal(
    records: Sequence[HabitRecord],
    goal: GoalCategory,
    criteria: RankingCriteria = DEFAULT_CRITERIA,
) -> CategoryRanking:
    in_category = [h for h in records if h.goal_category == goal]
    ordered = sorted(in_category, key=lambda h: h.effectiveness_rank)
    top = ordered[:TOP_N]

    average = round(_mean([h.effectiveness_score for h in in_category]), 1)
    strength = research_strength(average) if in_category else ResearchStrength.low

    return CategoryRanking(
        goal_category=goal,
        top_three=top,
        total_habits=len(in_category),
        average_effectiveness=average,
        research_strength=strength,
        weighted_scores={h.id: weighted_score(h, criteria) for h in top},
    )


def global_ranking(records: Sequence[HabitRecord], limit: int | None = None) -> list[HabitRecord]:
    limit = settings.global_ranking_default_limit if limit is None else limit
    if limit <= 0:
        return []
    return sorted(records, key=lambda h: h.effectiveness_score, reverse=True)[:limit]


def primary_recommendations(records: Sequence[HabitRecord]) -> list[HabitRecord]:
    """Habits the content source flags as primary, best rank first."""
    return sorted(
        (h for h in records if h.is_primary_recommendation),
        key=lambda h: (h.effectiveness_rank, h.goal_category.value),
    )


def ranking_stats(records: Sequence[HabitRecord]) -> RankingStats:
    if not records:
        return RankingStats()

    category_averages: dict[GoalCategory, float] = {}
    for goal in GoalCategory:
        scores = [h.effectiveness_score for h in records if h.goal_category == goal]
        if scores:
            category_averages[goal] = _mean(scores)

    languages = {lang for h in records for lang in h.translations}
    sources = {h.translation(settings.primary_language).research_source for h in records}

    return RankingStats(
        total_habits=len(records),
        average_effectiveness=round(_mean([h.effectiveness_score for h in records]), 1),
        research_source_count=len(sources),
        languages_covered=len(languages),
        top_performing_category=max(category_averages, key=category_averages.get) if category_averages else None,
    )


class RankingEngine:
    """Ranking operations over the catalog served by a CatalogLoader."""

    def __init__(self, loader: CatalogLoader, languages: Sequence[str] | None = None):
        self.loader = loader
        self.languages = list(languages or settings.supported_languages)

    async def _records(self) -> list[HabitRecord]:
        result = await self.loader.load_catalog(self.languages)
        if result.metadata.degraded:
            logger.warning("Ranking over degraded catalog (%s)", result.metadata.source.value)
        return result.records

    async def rank_for_goal(self, goal: GoalCategory) -> CategoryRanking:
        return rank_for_goal(await self._records(), goal)

    async def global_ranking(self, limit: int | None = None) -> list[HabitRecord]:
        return global_ranking(await self._records(), limit)

    async def primary_recommendations(self) -> list[HabitRecord]:
        return primary_recommendations(await self._records())

    async def stats(self) -> RankingStats:
        return ranking_stats(await self._records())
