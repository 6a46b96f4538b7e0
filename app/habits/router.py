"""Habits HTTP router — catalog, rankings, recommendations, taxonomy."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from app.auth import verify_api_key
from app.content import get_loader
from app.habits.catalog import CatalogLoader
from app.habits.errors import CatalogUnavailableError
from app.habits.models import (
    CatalogResult,
    CategoryRanking,
    GoalCategory,
    HabitRecord,
    RankingStats,
    RecommendationRequest,
    RecommendationResponse,
    TaxonomyReport,
    ValidationResult,
)
from app.habits.ranking import RankingEngine
from app.habits.recommender import RecommendationEngine
from app.habits.taxonomy import get_taxonomy

router = APIRouter(prefix="/habits", tags=["habits"], dependencies=[Depends(verify_api_key)])


def _unavailable(exc: CatalogUnavailableError) -> HTTPException:
    return HTTPException(status_code=503, detail=f"Habit catalog unavailable: {exc}")


def _parse_goal(value: str) -> GoalCategory:
    result = get_taxonomy().resolve(value)
    if not result.is_valid:
        raise HTTPException(status_code=404, detail=f"Unknown goal: {value}")
    try:
        return GoalCategory(result.mapped_goal_id)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Goal has no habit category: {value}")


# ---------------------------------------------------------------------------
# /habits/catalog
# ---------------------------------------------------------------------------


@router.get("/catalog", response_model=CatalogResult)
async def get_catalog(
    loader: CatalogLoader = Depends(get_loader),
    language: list[str] | None = Query(default=None, description="Languages to load (repeatable)"),
) -> CatalogResult:
    try:
        return await loader.load_catalog(language)
    except CatalogUnavailableError as exc:
        raise _unavailable(exc)


@router.post("/catalog/cache/clear")
async def clear_catalog_cache(loader: CatalogLoader = Depends(get_loader)) -> dict[str, str]:
    loader.clear_cache()
    return {"status": "cleared"}


# ---------------------------------------------------------------------------
# /habits/rankings
# ---------------------------------------------------------------------------


@router.get("/rankings", response_model=list[HabitRecord])
async def get_global_ranking(
    loader: CatalogLoader = Depends(get_loader),
    limit: int | None = Query(default=None, ge=1, le=500, description="Maximum habits returned"),
) -> list[HabitRecord]:
    try:
        return await RankingEngine(loader).global_ranking(limit)
    except CatalogUnavailableError as exc:
        raise _unavailable(exc)


@router.get("/rankings/{goal}", response_model=CategoryRanking)
async def get_goal_ranking(
    goal: str,
    loader: CatalogLoader = Depends(get_loader),
) -> CategoryRanking:
    category = _parse_goal(goal)
    try:
        return await RankingEngine(loader).rank_for_goal(category)
    except CatalogUnavailableError as exc:
        raise _unavailable(exc)


@router.get("/primary", response_model=list[HabitRecord])
async def get_primary(loader: CatalogLoader = Depends(get_loader)) -> list[HabitRecord]:
    try:
        return await RankingEngine(loader).primary_recommendations()
    except CatalogUnavailableError as exc:
        raise _unavailable(exc)


@router.get("/stats", response_model=RankingStats)
async def get_stats(loader: CatalogLoader = Depends(get_loader)) -> RankingStats:
    try:
        return await RankingEngine(loader).stats()
    except CatalogUnavailableError as exc:
        raise _unavailable(exc)


# ---------------------------------------------------------------------------
# /habits/recommendations
# ---------------------------------------------------------------------------


@router.post("/recommendations", response_model=RecommendationResponse)
async def post_recommendations(
    request: RecommendationRequest,
    loader: CatalogLoader = Depends(get_loader),
) -> RecommendationResponse:
    try:
        return await RecommendationEngine(loader).recommend(request)
    except CatalogUnavailableError as exc:
        raise _unavailable(exc)


# ---------------------------------------------------------------------------
# /habits/taxonomy
# ---------------------------------------------------------------------------


@router.get("/taxonomy/resolve", response_model=ValidationResult)
async def resolve_goal_tag(tag: str = Query(..., min_length=1)) -> ValidationResult:
    return get_taxonomy().resolve(tag)


@router.get("/taxonomy/validate", response_model=TaxonomyReport)
async def validate_taxonomy() -> TaxonomyReport:
    return get_taxonomy().validate_taxonomy()


@router.get("/taxonomy/search")
async def search_taxonomy(q: str = Query(..., min_length=1)) -> list[dict]:
    return [
        {
            "official_id": m.official_id,
            "category": m.category,
            "aliases": list(m.aliases),
            "description": m.description,
        }
        for m in get_taxonomy().search(q)
    ]
