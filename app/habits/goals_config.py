"""Static goal taxonomy — config only, no DB.

Each GoalMapping ties a canonical goal id to the alternate strings that
content and users attach to it. Categories group goals for the semantic
fallback tier: a tag inside a category's synonym group resolves to the
first goal declared in that category.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class GoalCategoryInfo:
    id: str
    name: str
    description: str
    priority: int


@dataclass(frozen=True, slots=True)
class GoalMapping:
    official_id: str
    category: str
    aliases: tuple[str, ...] = ()
    semantic_terms: tuple[str, ...] = ()
    priority: int = 1  # 1 = highest
    description: str = ""


CATEGORIES: dict[str, GoalCategoryInfo] = {
    "sleep": GoalCategoryInfo(
        id="sleep",
        name="Sleep",
        description="The keystone habit that affects everything else",
        priority=1,
    ),
    "movement": GoalCategoryInfo(
        id="movement",
        name="Movement",
        description="Physical health with broad accessibility",
        priority=2,
    ),
    "wellbeing": GoalCategoryInfo(
        id="wellbeing",
        name="Wellbeing",
        description="Mood and mental wellness for immediate wins",
        priority=3,
    ),
}


GOAL_MAPPINGS: tuple[GoalMapping, ...] = (
    GoalMapping(
        official_id="better_sleep",
        category="sleep",
        aliases=("sleep", "sleep_quality", "improve_sleep", "sleep_better", "fall_asleep_faster"),
        semantic_terms=("sleep onset", "circadian rhythm"),
        priority=1,
        description="Fall asleep faster and wake up rested",
    ),
    GoalMapping(
        official_id="get_moving",
        category="movement",
        aliases=("exercise", "movement", "fitness", "physical_activity", "increase_exercise", "get_active"),
        semantic_terms=("daily steps", "mobility"),
        priority=2,
        description="Build regular movement into the day",
    ),
    GoalMapping(
        official_id="feel_better",
        category="wellbeing",
        aliases=(
            "reduce_stress",
            "stress_reduction",
            "improve_mood",
            "mood",
            "anxiety_relief",
            "mindfulness",
            "wellbeing",
        ),
        semantic_terms=("emotional regulation", "mental wellness"),
        priority=3,
        description="Lift mood and lower stress",
    ),
)


# Synonym groups per category, matched after case-folding and trimming
SYNONYM_GROUPS: dict[str, frozenset[str]] = {
    "sleep": frozenset({"rest", "insomnia", "bedtime", "tired", "fatigue", "night routine", "sleep hygiene"}),
    "movement": frozenset({"walking", "running", "steps", "strength", "cardio", "stretching", "workout", "activity"}),
    "wellbeing": frozenset({"stress", "anxiety", "happiness", "calm", "gratitude", "mental health", "relaxation"}),
}


def list_mappings() -> list[GoalMapping]:
    return list(GOAL_MAPPINGS)


def list_categories() -> list[GoalCategoryInfo]:
    return sorted(CATEGORIES.values(), key=lambda c: c.priority)
