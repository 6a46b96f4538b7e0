"""Habit catalog, taxonomy and recommendation contracts — Pydantic v2 models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class GoalCategory(str, Enum):
    better_sleep = "better_sleep"
    get_moving = "get_moving"
    feel_better = "feel_better"


class Difficulty(str, Enum):
    trivial = "trivial"
    easy = "easy"
    moderate = "moderate"
    beginner = "beginner"
    intermediate = "intermediate"
    advanced = "advanced"


class SkillLevel(str, Enum):
    beginner = "beginner"
    intermediate = "intermediate"
    advanced = "advanced"


DIFFICULTY_SKILL_LEVEL: dict[Difficulty, SkillLevel] = {
    Difficulty.trivial: SkillLevel.beginner,
    Difficulty.easy: SkillLevel.beginner,
    Difficulty.beginner: SkillLevel.beginner,
    Difficulty.moderate: SkillLevel.intermediate,
    Difficulty.intermediate: SkillLevel.intermediate,
    Difficulty.advanced: SkillLevel.advanced,
}


class MatchType(str, Enum):
    """Taxonomy match tiers, ordered by descending confidence."""

    exact = "exact"
    alias = "alias"
    semantic = "semantic"
    category = "category"
    none = "none"


class ResearchStrength(str, Enum):
    high = "high"
    medium = "medium"
    low = "low"


class CatalogSource(str, Enum):
    content_api = "content_api"
    static_sample = "static_sample"


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class HabitTranslation(BaseModel):
    title: str
    description: str
    research_summary: str
    research_source: str
    why_it_works: str
    quick_start: str
    time_to_complete: str
    optimal_timing: str
    difficulty_level: str
    category: str
    research_effectiveness: str
    progression_tips: str


class HabitRecord(BaseModel):
    id: str
    goal_category: GoalCategory
    effectiveness_score: float = Field(ge=0.0, le=10.0)
    effectiveness_rank: int = Field(ge=1)
    is_primary_recommendation: bool = False
    difficulty: Difficulty = Difficulty.beginner
    time_minutes: int = Field(ge=0)
    equipment: str = "none"
    goal_tags: list[str] = Field(default_factory=list)
    translations: dict[str, HabitTranslation] = Field(min_length=1)

    @property
    def skill_level(self) -> SkillLevel:
        return DIFFICULTY_SKILL_LEVEL[self.difficulty]

    def translation(self, language: str, fallback: str | None = None) -> HabitTranslation:
        """Return the block for `language`, else `fallback`, else any available block."""
        if language in self.translations:
            return self.translations[language]
        if fallback is not None and fallback in self.translations:
            return self.translations[fallback]
        return next(iter(self.translations.values()))


class CatalogMetadata(BaseModel):
    source: CatalogSource = CatalogSource.content_api
    languages: list[str] = Field(default_factory=list)
    requested_languages: list[str] = Field(default_factory=list)
    failed_languages: list[str] = Field(default_factory=list)
    fallback_used: bool = False
    degraded: bool = False
    warnings: list[str] = Field(default_factory=list)
    loaded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CatalogResult(BaseModel):
    records: list[HabitRecord] = Field(default_factory=list)
    metadata: CatalogMetadata = Field(default_factory=CatalogMetadata)


# ---------------------------------------------------------------------------
# Taxonomy
# ---------------------------------------------------------------------------


class ValidationResult(BaseModel):
    is_valid: bool
    mapped_goal_id: str | None = None
    match_type: MatchType = MatchType.none
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    suggestions: list[str] = Field(default_factory=list)


class TaxonomyReport(BaseModel):
    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------


class CategoryRanking(BaseModel):
    goal_category: GoalCategory
    top_three: list[HabitRecord] = Field(default_factory=list, max_length=3)
    total_habits: int = 0
    average_effectiveness: float = 0.0
    research_strength: ResearchStrength = ResearchStrength.low
    weighted_scores: dict[str, float] = Field(default_factory=dict)


class RankingStats(BaseModel):
    total_habits: int = 0
    average_effectiveness: float = 0.0
    research_source_count: int = 0
    languages_covered: int = 0
    top_performing_category: GoalCategory | None = None


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------


class RecommendationRequest(BaseModel):
    goal_categories: list[str] = Field(default_factory=list)
    language: str | None = None  # Defaults to the primary content language
    user_level: SkillLevel | None = None
    time_available: int | None = Field(default=None, ge=0)  # minutes per day
    current_habits: list[str] = Field(default_factory=list)


class HabitMatch(BaseModel):
    habit_id: str
    goal_id: GoalCategory
    match_type: MatchType
    confidence: float


class RecommendationMetadata(BaseModel):
    resolved_goals: list[GoalCategory] = Field(default_factory=list)
    unmapped_goals: list[str] = Field(default_factory=list)
    slot_distribution: list[int] = Field(default_factory=list)
    primary_counts: dict[str, int] = Field(default_factory=dict)
    matches: list[HabitMatch] = Field(default_factory=list)
    average_confidence: float = 0.0
    shortfall: int = 0  # Policy total minus primaries actually delivered
    catalog_source: CatalogSource = CatalogSource.content_api
    catalog_degraded: bool = False
    catalog_fallback_used: bool = False
    warnings: list[str] = Field(default_factory=list)


class RecommendationResponse(BaseModel):
    primary_recommendations: list[HabitRecord] = Field(default_factory=list)
    alternative_options: list[HabitRecord] = Field(default_factory=list)
    reasoning: str = ""
    expected_benefits: list[str] = Field(default_factory=list)
    estimated_time_commitment: int = 0  # total minutes per day
    metadata: RecommendationMetadata = Field(default_factory=RecommendationMetadata)
