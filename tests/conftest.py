"""Shared fixtures for the test suite."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from app.content import get_loader
from app.habits.catalog import CatalogLoader
from app.habits.models import Difficulty, GoalCategory, HabitRecord, HabitTranslation
from app.main import app

CONTENT_BASE = "http://content.test"
DATASET = "multilingual-science-habits"


# ---------------------------------------------------------------------------
# Record builders
# ---------------------------------------------------------------------------


def make_habit(
    habit_id: str,
    goal: GoalCategory | str = GoalCategory.better_sleep,
    rank: int = 1,
    score: float = 8.0,
    minutes: int = 5,
    difficulty: Difficulty | str = Difficulty.easy,
    goal_tags: list[str] | None = None,
    research_summary: str = "Small study of daily practice",
    primary: bool = False,
    languages: tuple[str, ...] = ("en",),
) -> HabitRecord:
    """Helper to build a catalog HabitRecord."""
    translations = {
        lang: HabitTranslation(
            title=f"{habit_id} ({lang})",
            description=f"Description of {habit_id}",
            research_summary=research_summary,
            research_source=f"Source for {habit_id}",
            why_it_works="Because it works",
            quick_start="Just start",
            time_to_complete=f"{minutes} minutes",
            optimal_timing="Anytime",
            difficulty_level=str(Difficulty(difficulty).value),
            category=str(GoalCategory(goal).value),
            research_effectiveness=f"Effectiveness score: {score}/10",
            progression_tips="Start slowly and build consistency.",
        )
        for lang in languages
    }
    return HabitRecord(
        id=habit_id,
        goal_category=goal,
        effectiveness_score=score,
        effectiveness_rank=rank,
        is_primary_recommendation=primary,
        difficulty=difficulty,
        time_minutes=minutes,
        goal_tags=goal_tags if goal_tags is not None else [str(GoalCategory(goal).value)],
        translations=translations,
    )


def raw_habit(
    habit_id: str,
    category: str = "better_sleep",
    rank: int = 1,
    score: float = 8.0,
    minutes: int = 5,
    difficulty: str = "easy",
    **extra: Any,
) -> dict[str, Any]:
    """Helper to build a content-source habit object (camelCase wire shape)."""
    body: dict[str, Any] = {
        "id": habit_id,
        "category": category,
        "effectivenessScore": score,
        "effectivenessRank": rank,
        "isPrimaryRecommendation": rank == 1,
        "difficulty": difficulty,
        "timeMinutes": minutes,
        "title": f"Title {habit_id}",
        "description": f"Description {habit_id}",
        "instructions": ["Step one", "Step two"],
        "whyEffective": f"Why {habit_id} works",
        "researchSummary": f"Research on {habit_id}",
        "sources": [f"Journal of {habit_id}"],
        "optimalTiming": "Evening",
        "progressionTips": ["Go slow"],
        "goalTags": [category],
    }
    body.update(extra)
    return body


# ---------------------------------------------------------------------------
# Fake content source
# ---------------------------------------------------------------------------


class FakeContentSource:
    """httpx MockTransport handler serving per-language documents.

    documents maps language → JSON body (any JSON value) or an int status code,
    or an exception instance to raise as a transport error.
    """

    def __init__(self, documents: dict[str, Any] | None = None):
        self.documents = documents or {}
        self.calls: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request.url.path)
        name = request.url.path.rsplit("/", 1)[-1]
        language = name.removeprefix(f"{DATASET}-").removesuffix(".json")
        doc = self.documents.get(language, 404)
        if isinstance(doc, Exception):
            raise doc
        if isinstance(doc, int):
            return httpx.Response(doc, json={"error": "not found"})
        if isinstance(doc, str):
            return httpx.Response(200, content=doc.encode())
        return httpx.Response(200, content=json.dumps(doc).encode(), headers={"content-type": "application/json"})


def make_loader(source: FakeContentSource, **kwargs: Any) -> CatalogLoader:
    client = httpx.AsyncClient(transport=httpx.MockTransport(source))
    params: dict[str, Any] = {"timeout_seconds": 2.0, "cache_ttl_seconds": 300.0}
    params.update(kwargs)
    return CatalogLoader(CONTENT_BASE, DATASET, "en", client=client, **params)


def sleep_documents() -> dict[str, Any]:
    """Three better_sleep habits ranked 1..3 plus one get_moving habit, EN + DE."""
    en = [
        raw_habit("sleep_a", rank=1, score=9.2, minutes=4, researchSummary="Stanford study showed 37% faster sleep onset"),
        raw_habit("sleep_b", rank=2, score=8.0, minutes=10, researchSummary="Lower stress before bed"),
        raw_habit("sleep_c", rank=3, score=7.1, minutes=15, difficulty="challenging"),
        raw_habit("move_a", category="get_moving", rank=1, score=9.5, minutes=20),
    ]
    de = [
        {"id": "sleep_a", "title": "Schlaf A", "description": "Beschreibung A"},
        {"id": "sleep_b", "title": "Schlaf B"},
    ]
    return {"en": en, "de": de}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def content_source():
    return FakeContentSource(sleep_documents())


@pytest.fixture()
def loader(content_source):
    return make_loader(content_source)


@pytest.fixture()
def override_loader(loader):
    """Override the FastAPI dependency so no real content source is needed."""

    async def _override():
        return loader

    app.dependency_overrides[get_loader] = _override
    yield loader
    app.dependency_overrides.clear()


@pytest.fixture()
async def client(override_loader):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
