import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.config import settings
from app.habits.router import router as habits_router
from app.habits.taxonomy import get_taxonomy

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    # A taxonomy with duplicate aliases or unreachable goals must not serve requests
    get_taxonomy().assert_valid()
    yield


app = FastAPI(title="HabitRecommendations", version="0.1.0", lifespan=lifespan)
app.include_router(habits_router)


@app.get("/")
async def root() -> dict:
    return {
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "habits": {
            "catalog": "/habits/catalog",
            "catalog_cache_clear": "/habits/catalog/cache/clear",
            "rankings": "/habits/rankings",
            "rankings_goal": "/habits/rankings/{goal}",
            "primary": "/habits/primary",
            "stats": "/habits/stats",
            "recommendations": "/habits/recommendations",
            "taxonomy_resolve": "/habits/taxonomy/resolve",
            "taxonomy_validate": "/habits/taxonomy/validate",
            "taxonomy_search": "/habits/taxonomy/search",
        },
    }


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
