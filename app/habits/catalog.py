"""Habit catalog loader — async access to the remote content source.

One JSON document per language: GET {base_url}/habits/{dataset}-{lang}.json.
Documents are joined by habit id; missing per-language fields fall back to
the primary language's text. Fallback tiers:

  any secondary language fails → primary language only (fallback_used)
  primary language fails       → built-in static sample (degraded)
  static sample not allowed    → CatalogUnavailableError

Fully successful loads are cached per language set for a short TTL.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from app.config import Settings, settings
from app.habits.errors import CatalogUnavailableError, ContentFetchError
from app.habits.models import (
    CatalogMetadata,
    CatalogResult,
    CatalogSource,
    Difficulty,
    GoalCategory,
    HabitRecord,
    HabitTranslation,
)
from app.habits.sample_catalog import SAMPLE_LANGUAGES, sample_habits

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Wire shape (boundary schema check)
# ---------------------------------------------------------------------------


class RawHabitTranslation(BaseModel):
    """Entry of a secondary-language document; only the id is mandatory."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    category: str | None = None
    difficulty: str | None = None
    title: str | None = None
    description: str | None = None
    research_summary: str | None = Field(default=None, alias="researchSummary")
    instructions: list[str] | None = None
    why_effective: str | None = Field(default=None, alias="whyEffective")
    sources: list[str] | None = None
    optimal_timing: str | None = Field(default=None, alias="optimalTiming")
    progression_tips: list[str] | None = Field(default=None, alias="progressionTips")


class RawHabit(RawHabitTranslation):
    """Entry of the primary-language document."""

    category: str
    title: str
    description: str
    effectiveness_score: float = Field(alias="effectivenessScore", ge=0.0, le=10.0)
    effectiveness_rank: int = Field(alias="effectivenessRank", ge=1)
    is_primary_recommendation: bool = Field(default=False, alias="isPrimaryRecommendation")
    time_minutes: int = Field(alias="timeMinutes", ge=0)
    equipment: str | None = None
    goal_tags: list[str] | None = Field(default=None, alias="goalTags")


PRIMARY_DOCUMENT = TypeAdapter(list[RawHabit])
SECONDARY_DOCUMENT = TypeAdapter(list[RawHabitTranslation])


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

DIFFICULTY_ALIASES: dict[str, Difficulty] = {
    "trivial": Difficulty.trivial,
    "easy": Difficulty.easy,
    "moderate": Difficulty.moderate,
    "challenging": Difficulty.intermediate,
    "advanced": Difficulty.advanced,
    "beginner": Difficulty.beginner,
    "intermediate": Difficulty.intermediate,
}


@dataclass(frozen=True, slots=True)
class LocaleDefaults:
    minutes: str
    anytime: str
    source_pending: str
    progression: str
    effectiveness: str  # format string, {score}


LOCALE_DEFAULTS: dict[str, LocaleDefaults] = {
    "en": LocaleDefaults(
        minutes="minutes",
        anytime="Anytime",
        source_pending="Research source pending",
        progression="Start slowly and build consistency.",
        effectiveness="Effectiveness score: {score}/10",
    ),
    "de": LocaleDefaults(
        minutes="Minuten",
        anytime="Jederzeit",
        source_pending="Forschungsquelle ausstehend",
        progression="Beginnen Sie langsam und bauen Sie Konsistenz auf.",
        effectiveness="Effektivitätswert: {score}/10",
    ),
}


def normalize_difficulty(value: str | None) -> Difficulty | None:
    """Map a source difficulty string to the canonical set; None when unknown."""
    if value is None:
        return None
    return DIFFICULTY_ALIASES.get(value.strip().casefold())


def _text(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value


def _joined(values: list[str] | None) -> str | None:
    if not values:
        return None
    return _text(". ".join(v for v in values if v.strip()))


def _first(values: list[str] | None) -> str | None:
    if not values:
        return None
    return _text(values[0])


def _primary_translation(raw: RawHabit, difficulty: Difficulty, locale: LocaleDefaults) -> HabitTranslation:
    return HabitTranslation(
        title=raw.title,
        description=raw.description,
        research_summary=_text(raw.research_summary) or _text(raw.why_effective) or raw.description,
        research_source=_first(raw.sources) or locale.source_pending,
        why_it_works=_text(raw.why_effective) or raw.description,
        quick_start=_joined(raw.instructions) or raw.description,
        time_to_complete=f"{raw.time_minutes} {locale.minutes}",
        optimal_timing=_text(raw.optimal_timing) or locale.anytime,
        difficulty_level=difficulty.value,
        category=raw.category,
        research_effectiveness=locale.effectiveness.format(score=raw.effectiveness_score),
        progression_tips=_joined(raw.progression_tips) or locale.progression,
    )


def _secondary_translation(
    raw: RawHabitTranslation,
    base: RawHabit,
    primary: HabitTranslation,
    locale: LocaleDefaults | None,
) -> HabitTranslation:
    """Per-field fallback to the primary language's text, never to an empty string."""
    return HabitTranslation(
        title=_text(raw.title) or primary.title,
        description=_text(raw.description) or primary.description,
        research_summary=_text(raw.research_summary) or primary.research_summary,
        research_source=_first(raw.sources) or primary.research_source,
        why_it_works=_text(raw.why_effective) or primary.why_it_works,
        quick_start=_joined(raw.instructions) or _text(raw.description) or primary.quick_start,
        time_to_complete=f"{base.time_minutes} {locale.minutes}" if locale else primary.time_to_complete,
        optimal_timing=_text(raw.optimal_timing) or (locale.anytime if locale else primary.optimal_timing),
        difficulty_level=_text(raw.difficulty) or primary.difficulty_level,
        category=_text(raw.category) or primary.category,
        research_effectiveness=(
            locale.effectiveness.format(score=base.effectiveness_score) if locale else primary.research_effectiveness
        ),
        progression_tips=_joined(raw.progression_tips) or (locale.progression if locale else primary.progression_tips),
    )


def build_records(
    primary_entries: list[RawHabit],
    secondary_entries: dict[str, list[RawHabitTranslation]],
    primary_language: str,
) -> tuple[list[HabitRecord], list[str]]:
    """Join per-language documents into HabitRecords.

    Returns (records, data_quality_warnings). Bad individual entries are
    reported and skipped; they never fail the whole catalog.
    """
    warnings: list[str] = []

    def _warn(message: str) -> None:
        logger.warning("Catalog data quality: %s", message)
        warnings.append(message)

    secondary_by_id: dict[str, dict[str, RawHabitTranslation]] = {}
    for language, entries in secondary_entries.items():
        secondary_by_id[language] = {}
        for entry in entries:
            secondary_by_id[language].setdefault(entry.id, entry)

    primary_locale = LOCALE_DEFAULTS.get(primary_language, LOCALE_DEFAULTS["en"])
    records: list[HabitRecord] = []
    seen_ids: set[str] = set()
    ranks: dict[tuple[GoalCategory, int], str] = {}

    for raw in primary_entries:
        if raw.id in seen_ids:
            _warn(f"duplicate habit id {raw.id!r}; keeping the first entry")
            continue
        seen_ids.add(raw.id)

        try:
            goal_category = GoalCategory(raw.category)
        except ValueError:
            _warn(f"habit {raw.id!r} has unknown category {raw.category!r}; skipped")
            continue

        difficulty = normalize_difficulty(raw.difficulty)
        if difficulty is None:
            _warn(f"habit {raw.id!r} has unknown difficulty {raw.difficulty!r}; defaulting to beginner")
            difficulty = Difficulty.beginner

        rank_key = (goal_category, raw.effectiveness_rank)
        if rank_key in ranks:
            _warn(
                f"habits {ranks[rank_key]!r} and {raw.id!r} share effectiveness rank "
                f"{raw.effectiveness_rank} in {goal_category.value}"
            )
        else:
            ranks[rank_key] = raw.id

        primary = _primary_translation(raw, difficulty, primary_locale)
        translations = {primary_language: primary}
        for language, by_id in secondary_by_id.items():
            entry = by_id.get(raw.id)
            if entry is None:
                entry = RawHabitTranslation(id=raw.id)
            translations[language] = _secondary_translation(entry, raw, primary, LOCALE_DEFAULTS.get(language))

        records.append(
            HabitRecord(
                id=raw.id,
                goal_category=goal_category,
                effectiveness_score=raw.effectiveness_score,
                effectiveness_rank=raw.effectiveness_rank,
                is_primary_recommendation=raw.is_primary_recommendation,
                difficulty=difficulty,
                time_minutes=raw.time_minutes,
                equipment=_text(raw.equipment) or "none",
                goal_tags=raw.goal_tags or [raw.category],
                translations=translations,
            )
        )

    for language, by_id in secondary_by_id.items():
        orphans = sorted(set(by_id) - seen_ids)
        if orphans:
            _warn(f"{language} document has entries without a primary counterpart: {', '.join(orphans)}")

    return records, warnings


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class _CacheEntry:
    result: CatalogResult
    expires_at: float


class CatalogCache:
    """Time-boxed cache keyed by language set; cleared wholesale only.

    Owned by a single loader on one event loop; concurrent misses for the
    same key both fetch and the last writer wins.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[frozenset[str], _CacheEntry] = {}

    def get(self, key: frozenset[str]) -> CatalogResult | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            return None
        return entry.result

    def put(self, key: frozenset[str], result: CatalogResult) -> None:
        if self.ttl_seconds <= 0:
            return
        self._entries[key] = _CacheEntry(result=result, expires_at=self._clock() + self.ttl_seconds)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------


class CatalogLoader:
    def __init__(
        self,
        base_url: str,
        dataset: str,
        primary_language: str = "en",
        *,
        timeout_seconds: float = 5.0,
        cache_ttl_seconds: float = 300.0,
        static_fallback: bool = True,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.base_url = base_url.rstrip("/")
        self.dataset = dataset
        self.primary_language = primary_language
        self.timeout_seconds = timeout_seconds
        self.static_fallback = static_fallback
        self._client = client
        self.cache = CatalogCache(cache_ttl_seconds, clock)

    @classmethod
    def from_settings(cls, cfg: Settings = settings, **kwargs: Any) -> CatalogLoader:
        return cls(
            cfg.content_api_url,
            cfg.content_dataset,
            cfg.primary_language,
            timeout_seconds=cfg.content_timeout_seconds,
            cache_ttl_seconds=cfg.catalog_cache_ttl_seconds,
            static_fallback=cfg.catalog_static_fallback,
            **kwargs,
        )

    def document_url(self, language: str) -> str:
        return f"{self.base_url}/habits/{self.dataset}-{language}.json"

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("Catalog cache cleared")

    async def load_catalog(self, languages: Iterable[str] | None = None) -> CatalogResult:
        """Load the catalog for `languages` (the primary language is always included).

        Raises CatalogUnavailableError only when every fallback tier fails.
        """
        requested = frozenset(languages or ()) | {self.primary_language}

        cached = self.cache.get(requested)
        if cached is not None:
            logger.debug("Catalog cache hit for %s", sorted(requested))
            return cached

        ordered = [self.primary_language, *sorted(requested - {self.primary_language})]
        documents = await self._fetch_all(ordered)

        failed = [lang for lang in ordered if isinstance(documents[lang], ContentFetchError)]
        primary_doc = documents[self.primary_language]
        if isinstance(primary_doc, ContentFetchError):
            return self._static_fallback(requested, failed)

        metadata = CatalogMetadata(
            source=CatalogSource.content_api,
            requested_languages=sorted(requested),
            failed_languages=failed,
        )
        secondary: dict[str, list[RawHabitTranslation]] = {}
        if failed:
            logger.warning(
                "Content fetch failed for %s; falling back to primary language %r only",
                ", ".join(failed),
                self.primary_language,
            )
            metadata.fallback_used = True
            metadata.languages = [self.primary_language]
            metadata.warnings.append(
                f"Fell back to {self.primary_language} only: could not load {', '.join(failed)}"
            )
        else:
            secondary = {lang: documents[lang] for lang in ordered[1:]}
            metadata.languages = ordered

        records, data_warnings = build_records(primary_doc, secondary, self.primary_language)
        metadata.warnings.extend(data_warnings)
        result = CatalogResult(records=records, metadata=metadata)

        if not failed:
            self.cache.put(requested, result)
        logger.info("Loaded %d habits for %s", len(records), ", ".join(metadata.languages))
        return result

    async def _fetch_all(self, languages: list[str]) -> dict[str, Any]:
        if self._client is not None:
            results = await self._gather(self._client, languages)
        else:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                results = await self._gather(client, languages)

        documents: dict[str, Any] = {}
        for language, result in zip(languages, results):
            if isinstance(result, ContentFetchError):
                logger.warning("%s", result)
            elif isinstance(result, BaseException):
                raise result
            documents[language] = result
        return documents

    async def _gather(self, client: httpx.AsyncClient, languages: list[str]) -> list[Any]:
        return await asyncio.gather(
            *(self._fetch_document(client, lang) for lang in languages),
            return_exceptions=True,
        )

    async def _fetch_document(self, client: httpx.AsyncClient, language: str) -> list[Any]:
        url = self.document_url(language)
        try:
            response = await asyncio.wait_for(
                client.get(url, headers={"Cache-Control": "no-cache"}),
                timeout=self.timeout_seconds,
            )
        except (httpx.HTTPError, httpx.InvalidURL, asyncio.TimeoutError) as exc:
            raise ContentFetchError(language, f"{type(exc).__name__}: {exc}") from exc

        if response.status_code != 200:
            raise ContentFetchError(language, f"HTTP {response.status_code} from {url}")

        try:
            body = response.json()
        except ValueError as exc:
            raise ContentFetchError(language, "response body is not valid JSON") from exc

        if not isinstance(body, list):
            raise ContentFetchError(language, f"expected a JSON array, got {type(body).__name__}")

        adapter = PRIMARY_DOCUMENT if language == self.primary_language else SECONDARY_DOCUMENT
        try:
            return adapter.validate_python(body)
        except ValidationError as exc:
            raise ContentFetchError(language, f"schema check failed ({exc.error_count()} errors)") from exc

    def _static_fallback(self, requested: frozenset[str], failed: list[str]) -> CatalogResult:
        if not self.static_fallback:
            raise CatalogUnavailableError(
                f"Primary language {self.primary_language!r} could not be loaded and static fallback is disabled"
            )
        if self.primary_language not in SAMPLE_LANGUAGES:
            raise CatalogUnavailableError(
                f"Primary language {self.primary_language!r} could not be loaded and the static sample "
                f"does not cover it"
            )

        languages = sorted(requested & SAMPLE_LANGUAGES)
        records = sample_habits()
        for record in records:
            record.translations = {lang: record.translations[lang] for lang in languages}

        logger.error(
            "Content source unavailable (%s); serving %d static sample habits",
            ", ".join(failed),
            len(records),
        )
        return CatalogResult(
            records=records,
            metadata=CatalogMetadata(
                source=CatalogSource.static_sample,
                languages=languages,
                requested_languages=sorted(requested),
                failed_languages=failed,
                fallback_used=True,
                degraded=True,
                warnings=["Content source unavailable; showing a built-in sample of habits"],
            ),
        )
