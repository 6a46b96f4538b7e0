"""Recommendation engine — picks primary habits and alternates for a user's goals.

Policy: a fixed total of primaries (settings.recommendations_total, 3) is
split across the requested goals in request order; each goal fills its
slots from the front of its rank-ordered candidate pool and offers the
next few entries as alternates. Empty pools shrink the total and are
reported in the response metadata, never hidden.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from app.config import settings
from app.habits.catalog import CatalogLoader
from app.habits.models import (
    CatalogResult,
    GoalCategory,
    HabitMatch,
    HabitRecord,
    MatchType,
    RecommendationMetadata,
    RecommendationRequest,
    RecommendationResponse,
    SkillLevel,
)
from app.habits.taxonomy import CONFIDENCE, GoalTaxonomy, get_taxonomy

logger = logging.getLogger(__name__)

# Heuristic keyword scan over research summaries; not a classifier.
BENEFIT_KEYWORDS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("sleep",), "Improved sleep quality"),
    (("anxiety", "stress"), "Reduced anxiety and stress"),
    (("happiness", "mood"), "Enhanced mood and happiness"),
    (("focus", "attention"), "Better focus and attention"),
)

_PERCENT_IMPROVEMENT = re.compile(r"(\d+)%")


def distribute_slots(goal_count: int, total: int | None = None) -> list[int]:
    """Split the fixed total across goals: 1→[3], 2→[2,1], 3→[1,1,1], more→even, remainder first."""
    total = settings.recommendations_total if total is None else total
    if goal_count <= 0:
        return []
    base, remainder = divmod(total, goal_count)
    return [base + 1 if i < remainder else base for i in range(goal_count)]


def resolve_goals(
    goals: Sequence[str],
    taxonomy: GoalTaxonomy,
) -> tuple[list[GoalCategory], list[str], list[str]]:
    """Resolve free-form goals in request order.

    Returns (resolved_goals, unmapped_goals, warnings).
    """
    resolved: list[GoalCategory] = []
    unmapped: list[str] = []
    warnings: list[str] = []

    for goal in goals:
        result = taxonomy.resolve(goal)
        if not result.is_valid:
            unmapped.append(goal)
            continue
        try:
            category = GoalCategory(result.mapped_goal_id)
        except ValueError:
            logger.warning("Goal %r resolved to %r, which has no habit category", goal, result.mapped_goal_id)
            unmapped.append(goal)
            continue
        if category in resolved:
            warnings.append(f"Goal '{goal}' duplicates {category.value}; counted once")
            continue
        if result.match_type is not MatchType.exact:
            logger.debug("Goal %r resolved to %s via %s match", goal, category.value, result.match_type.value)
        resolved.append(category)

    if unmapped:
        warnings.append(f"Could not map {len(unmapped)} goal(s): {', '.join(unmapped)}")
    return resolved, unmapped, warnings


def fits_skill_level(habit: HabitRecord, level: SkillLevel | None) -> bool:
    if level is None:
        return True
    return habit.skill_level in (level, SkillLevel.beginner)


def fits_time_budget(habit: HabitRecord, minutes: int | None) -> bool:
    if not minutes or minutes <= 0:
        return True
    return habit.time_minutes <= minutes


def candidate_pool(
    records: Sequence[HabitRecord],
    goal: GoalCategory,
    request: RecommendationRequest,
) -> list[HabitRecord]:
    excluded = set(request.current_habits)
    pool = [
        h
        for h in records
        if h.goal_category == goal
        and h.id not in excluded
        and fits_skill_level(h, request.user_level)
        and fits_time_budget(h, request.time_available)
    ]
    return sorted(pool, key=lambda h: h.effectiveness_rank)


def match_for_goal(habit: HabitRecord, goal: GoalCategory, taxonomy: GoalTaxonomy) -> HabitMatch:
    """Best taxonomy tier linking the habit's tags to the goal; category membership otherwise."""
    best = taxonomy.best_match(habit.goal_tags, goal.value)
    if best is None:
        return HabitMatch(
            habit_id=habit.id,
            goal_id=goal,
            match_type=MatchType.category,
            confidence=CONFIDENCE[MatchType.category],
        )
    return HabitMatch(habit_id=habit.id, goal_id=goal, match_type=best.match_type, confidence=best.confidence)


def extract_expected_benefits(
    habits: Sequence[HabitRecord],
    language: str,
    fallback_language: str | None = None,
) -> list[str]:
    benefits: list[str] = []
    for habit in habits:
        research = habit.translation(language, fallback_language).research_summary
        found: list[str] = []

        percent = _PERCENT_IMPROVEMENT.search(research)
        if percent:
            found.append(f"Research shows up to {percent.group(0)} improvement in key metrics")

        lowered = research.lower()
        for keywords, benefit in BENEFIT_KEYWORDS:
            if any(k in lowered for k in keywords):
                found.append(benefit)

        for benefit in found:
            if benefit not in benefits:
                benefits.append(benefit)
    return benefits


def _habits(count: int) -> str:
    return f"{count} habit" if count == 1 else f"{count} habits"


def _distribution_text(distribution: list[int]) -> str:
    if len(distribution) == 1:
        return f"{_habits(distribution[0])} for your selected goal"
    if len(distribution) == 2:
        return f"{_habits(distribution[0])} for your primary goal and {distribution[1]} for your secondary goal"
    if len(set(distribution)) == 1:
        return f"{_habits(distribution[0])} for each of your {len(distribution)} selected goals"
    return f"{_habits(sum(distribution))} spread across your {len(distribution)} selected goals"


def compose_reasoning(
    primaries: Sequence[HabitRecord],
    distribution: list[int],
    request: RecommendationRequest,
) -> str:
    if not distribution:
        return "None of the selected goals could be matched, so no habits were selected."
    if not primaries:
        return "No habits matched your selected goals with the current skill level and time constraints."

    average = sum(h.effectiveness_score for h in primaries) / len(primaries)
    parts = [
        f"Selected {_distribution_text(distribution)} based on effectiveness scores "
        f"(average {average:.1f}/10) and research quality."
    ]
    planned = sum(distribution)
    if len(primaries) < planned:
        parts.append(f"Only {len(primaries)} of {planned} habits fit your goals and constraints.")
    if request.user_level:
        parts.append(f"All recommendations are suitable for {request.user_level.value} users.")
    if request.time_available:
        parts.append(f"Each habit fits within your {request.time_available} minutes daily time budget.")
    parts.append("Start with the highest-ranked habit in each category for optimal results.")
    return " ".join(parts)


def build_recommendations(
    records: Sequence[HabitRecord],
    request: RecommendationRequest,
    taxonomy: GoalTaxonomy | None = None,
    *,
    total: int | None = None,
    alternates_per_goal: int | None = None,
) -> RecommendationResponse:
    taxonomy = taxonomy or get_taxonomy()
    total = settings.recommendations_total if total is None else total
    alternates_per_goal = (
        settings.recommendations_alternates_per_goal if alternates_per_goal is None else alternates_per_goal
    )
    language = request.language or settings.primary_language

    goals, unmapped, warnings = resolve_goals(request.goal_categories, taxonomy)
    distribution = distribute_slots(len(goals), total)

    primaries: list[HabitRecord] = []
    alternates: list[HabitRecord] = []
    primary_counts: dict[str, int] = {}
    matches: list[HabitMatch] = []

    for goal, slots in zip(goals, distribution):
        pool = candidate_pool(records, goal, request)
        if not pool:
            warnings.append(f"No habits matched goal '{goal.value}' after filtering")

        selected = pool[:slots]
        primaries.extend(selected)
        alternates.extend(pool[slots : slots + alternates_per_goal])
        primary_counts[goal.value] = len(selected)
        matches.extend(match_for_goal(h, goal, taxonomy) for h in selected)

        if pool and len(selected) < slots:
            warnings.append(f"Goal '{goal.value}' filled {len(selected)} of {slots} slot(s)")

    shortfall = sum(distribution) - len(primaries)
    if shortfall > 0 and goals:
        warnings.append(f"Returning {len(primaries)} of {sum(distribution)} recommendations")

    for warning in warnings:
        logger.info("Recommendation warning: %s", warning)

    average_confidence = sum(m.confidence for m in matches) / len(matches) if matches else 0.0

    return RecommendationResponse(
        primary_recommendations=primaries,
        alternative_options=alternates,
        reasoning=compose_reasoning(primaries, distribution, request),
        expected_benefits=extract_expected_benefits(primaries, language, settings.primary_language),
        estimated_time_commitment=sum(h.time_minutes for h in primaries),
        metadata=RecommendationMetadata(
            resolved_goals=goals,
            unmapped_goals=unmapped,
            slot_distribution=distribution,
            primary_counts=primary_counts,
            matches=matches,
            average_confidence=round(average_confidence, 3),
            shortfall=max(shortfall, 0),
            warnings=warnings,
        ),
    )


class RecommendationEngine:
    """Runs build_recommendations over the catalog served by a CatalogLoader."""

    def __init__(self, loader: CatalogLoader, taxonomy: GoalTaxonomy | None = None):
        self.loader = loader
        self.taxonomy = taxonomy or get_taxonomy()

    async def recommend(self, request: RecommendationRequest) -> RecommendationResponse:
        """Raises CatalogUnavailableError when the catalog could not be consulted at all."""
        # Unsupported request languages read the primary-language blocks
        languages = set(settings.supported_languages)
        if request.language and request.language not in languages:
            logger.info("Language %r not supported; using %s content", request.language, settings.primary_language)

        catalog: CatalogResult = await self.loader.load_catalog(languages)
        response = build_recommendations(catalog.records, request, self.taxonomy)

        meta = response.metadata
        meta.catalog_source = catalog.metadata.source
        meta.catalog_degraded = catalog.metadata.degraded
        meta.catalog_fallback_used = catalog.metadata.fallback_used
        if catalog.metadata.degraded:
            meta.warnings.append("Content source unavailable; recommendations drawn from a built-in sample")
        elif catalog.metadata.fallback_used:
            meta.warnings.append(
                f"Some translations unavailable ({', '.join(catalog.metadata.failed_languages)}); "
                "showing primary-language content"
            )
        return response
