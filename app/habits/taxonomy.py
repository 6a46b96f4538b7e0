"""Goal taxonomy resolver — maps free-form goal tags to canonical goal ids.

Resolution tiers, in strict precedence:
  exact official id (1.0) → alias (0.9) → semantic/category synonym (0.6).
An alias never overrides an exact id and a semantic match never overrides
an alias. Ties inside a tier are a configuration error caught by
validate_taxonomy(); at request time they are logged and the first
declared mapping wins.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence

from app.habits.errors import TaxonomyConfigError
from app.habits.goals_config import (
    CATEGORIES,
    GOAL_MAPPINGS,
    SYNONYM_GROUPS,
    GoalCategoryInfo,
    GoalMapping,
)
from app.habits.models import MatchType, TaxonomyReport, ValidationResult

logger = logging.getLogger(__name__)

CONFIDENCE: dict[MatchType, float] = {
    MatchType.exact: 1.0,
    MatchType.alias: 0.9,
    MatchType.semantic: 0.6,
    MatchType.category: 0.4,
    MatchType.none: 0.0,
}

SUGGESTION_THRESHOLD = 0.5
MAX_SUGGESTIONS = 3


def normalize_tag(tag: str) -> str:
    return tag.strip().casefold()


def _bigrams(value: str) -> set[str]:
    return {value[i : i + 2] for i in range(len(value) - 1)}


def string_similarity(a: str, b: str) -> float:
    """Jaccard index over character bigrams (0–1)."""
    ba, bb = _bigrams(a), _bigrams(b)
    union = ba | bb
    if not union:
        return 0.0
    return len(ba & bb) / len(union)


class GoalTaxonomy:
    def __init__(
        self,
        mappings: Sequence[GoalMapping] = GOAL_MAPPINGS,
        categories: Mapping[str, GoalCategoryInfo] = CATEGORIES,
        synonym_groups: Mapping[str, frozenset[str]] = SYNONYM_GROUPS,
    ):
        self.mappings = list(mappings)
        self.categories = dict(categories)
        self.synonym_groups = dict(synonym_groups)

        self._by_id: dict[str, GoalMapping] = {}
        self._alias_index: dict[str, list[str]] = {}
        self._semantic_index: dict[str, list[str]] = {}
        self._build_indices()

    def _build_indices(self) -> None:
        for mapping in self.mappings:
            self._by_id.setdefault(normalize_tag(mapping.official_id), mapping)

        for mapping in self.mappings:
            for alias in mapping.aliases:
                claimants = self._alias_index.setdefault(normalize_tag(alias), [])
                if mapping.official_id not in claimants:
                    claimants.append(mapping.official_id)

            terms = set(mapping.semantic_terms)
            terms.update(self.synonym_groups.get(mapping.category, ()))
            terms.add(mapping.category)
            for term in terms:
                claimants = self._semantic_index.setdefault(normalize_tag(term), [])
                if mapping.official_id not in claimants:
                    claimants.append(mapping.official_id)

        logger.debug("Goal taxonomy initialized with %d mappings", len(self.mappings))

    # -----------------------------------------------------------------------
    # Resolution
    # -----------------------------------------------------------------------

    def resolve(self, tag: str) -> ValidationResult:
        norm = normalize_tag(tag)
        if not norm:
            return ValidationResult(is_valid=False)

        mapping = self._by_id.get(norm)
        if mapping is not None:
            return self._valid(mapping.official_id, MatchType.exact)

        alias_claimants = self._alias_index.get(norm)
        if alias_claimants:
            if len(alias_claimants) > 1:
                logger.warning(
                    "Ambiguous alias %r claimed by %s; using %s",
                    tag,
                    ", ".join(alias_claimants),
                    alias_claimants[0],
                )
            return self._valid(alias_claimants[0], MatchType.alias)

        semantic_claimants = self._semantic_index.get(norm)
        if semantic_claimants:
            if len(semantic_claimants) > 1:
                logger.warning(
                    "Ambiguous semantic term %r claimed by %s; using %s",
                    tag,
                    ", ".join(semantic_claimants),
                    semantic_claimants[0],
                )
            return self._valid(semantic_claimants[0], MatchType.semantic)

        return ValidationResult(is_valid=False, suggestions=self._similar_goal_ids(norm))

    @staticmethod
    def _valid(goal_id: str, match_type: MatchType) -> ValidationResult:
        return ValidationResult(
            is_valid=True,
            mapped_goal_id=goal_id,
            match_type=match_type,
            confidence=CONFIDENCE[match_type],
        )

    def _similar_goal_ids(self, norm: str) -> list[str]:
        known: dict[str, str] = {key: m.official_id for key, m in self._by_id.items()}
        for alias, claimants in self._alias_index.items():
            known.setdefault(alias, claimants[0])

        scored: list[tuple[float, str]] = []
        for known_tag, goal_id in known.items():
            similarity = string_similarity(norm, known_tag)
            if similarity > SUGGESTION_THRESHOLD:
                scored.append((similarity, goal_id))

        suggestions: list[str] = []
        for _, goal_id in sorted(scored, key=lambda s: s[0], reverse=True):
            if goal_id not in suggestions:
                suggestions.append(goal_id)
            if len(suggestions) == MAX_SUGGESTIONS:
                break
        return suggestions

    def map_tags(self, tags: Iterable[str]) -> list[str]:
        """Unique canonical goal ids for a habit's goal tags, in tag order."""
        mapped: list[str] = []
        for tag in tags:
            result = self.resolve(tag)
            if result.is_valid and result.mapped_goal_id not in mapped:
                mapped.append(result.mapped_goal_id)
        return mapped

    def best_match(self, tags: Iterable[str], goal_id: str) -> ValidationResult | None:
        """Highest-confidence resolution among `tags` that lands on `goal_id`."""
        best: ValidationResult | None = None
        for tag in tags:
            result = self.resolve(tag)
            if result.mapped_goal_id != goal_id:
                continue
            if best is None or result.confidence > best.confidence:
                best = result
        return best

    # -----------------------------------------------------------------------
    # Lookups
    # -----------------------------------------------------------------------

    def get_mapping(self, goal_id: str) -> GoalMapping | None:
        return self._by_id.get(normalize_tag(goal_id))

    def related_tags(self, goal_id: str) -> list[str]:
        mapping = self.get_mapping(goal_id)
        if mapping is None:
            return []
        synonyms = sorted(self.synonym_groups.get(mapping.category, ()))
        return [mapping.official_id, *mapping.aliases, *mapping.semantic_terms, *synonyms]

    def goals_in_category(self, category_id: str) -> list[GoalMapping]:
        return [m for m in self.mappings if m.category == category_id]

    def search(self, query: str) -> list[GoalMapping]:
        """Substring search: official id 10, alias 8, semantic term 6, description 4."""
        needle = normalize_tag(query)
        if not needle:
            return []

        results: list[tuple[int, GoalMapping]] = []
        for mapping in self.mappings:
            score = 0
            if needle in mapping.official_id.casefold():
                score += 10
            score += 8 * sum(1 for a in mapping.aliases if needle in a.casefold())
            score += 6 * sum(1 for t in mapping.semantic_terms if needle in t.casefold())
            if needle in mapping.description.casefold():
                score += 4
            if score > 0:
                results.append((score, mapping))

        return [m for _, m in sorted(results, key=lambda r: r[0], reverse=True)]

    def stats(self) -> dict[str, int]:
        return {
            "total_mappings": len(self.mappings),
            "total_categories": len(self.categories),
            "total_aliases": sum(len(m.aliases) for m in self.mappings),
            "total_semantic_terms": sum(len(m.semantic_terms) for m in self.mappings),
            "total_synonyms": sum(len(g) for g in self.synonym_groups.values()),
        }

    # -----------------------------------------------------------------------
    # Offline validation
    # -----------------------------------------------------------------------

    def validate_taxonomy(self) -> TaxonomyReport:
        """Enumerate duplicate ids, duplicate aliases and unreachable mappings."""
        errors: list[str] = []
        warnings: list[str] = []

        seen_ids: dict[str, int] = {}
        for index, mapping in enumerate(self.mappings):
            norm = normalize_tag(mapping.official_id)
            if not norm:
                errors.append(f"Goal mapping #{index} has an empty official ID")
                continue
            if norm in seen_ids:
                errors.append(f"Duplicate official ID: {mapping.official_id}")
                errors.append(
                    f"Goal mapping #{index} ({mapping.official_id}) is unreachable: "
                    f"mapping #{seen_ids[norm]} claims the same ID"
                )
            else:
                seen_ids[norm] = index

        for alias, claimants in sorted(self._alias_index.items()):
            if len(claimants) > 1:
                errors.append(f"Alias \"{alias}\" maps to multiple goals: {', '.join(claimants)}")
            owner = self._by_id.get(alias)
            if owner is None:
                continue
            for claimant in claimants:
                if claimant == owner.official_id:
                    warnings.append(f"Alias \"{alias}\" of {claimant} repeats its own official ID")
                else:
                    errors.append(
                        f"Alias \"{alias}\" of {claimant} shadows official ID {owner.official_id} "
                        "and is never reached"
                    )

        for mapping in self.mappings:
            if mapping.category not in self.categories:
                errors.append(f"Goal \"{mapping.official_id}\" references unknown category: {mapping.category}")
            elif mapping.category not in self.synonym_groups:
                warnings.append(f"Category \"{mapping.category}\" has no synonym group")

        for term, claimants in sorted(self._semantic_index.items()):
            if term in self._by_id or term in self._alias_index:
                continue
            if len(claimants) < 2:
                continue
            categories = sorted({m.category for m in self.mappings if m.official_id in claimants})
            errors.append(
                f"Semantic term \"{term}\" maps to multiple goals: {', '.join(claimants)} "
                f"(categories: {', '.join(categories)})"
            )

        return TaxonomyReport(is_valid=not errors, errors=errors, warnings=warnings)

    def assert_valid(self) -> TaxonomyReport:
        report = self.validate_taxonomy()
        for warning in report.warnings:
            logger.warning("Goal taxonomy: %s", warning)
        if not report.is_valid:
            raise TaxonomyConfigError(report.errors)
        return report


goal_taxonomy = GoalTaxonomy()


def get_taxonomy() -> GoalTaxonomy:
    return goal_taxonomy
