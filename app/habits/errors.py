"""Typed failures raised by the habit catalog, taxonomy and engines."""

from __future__ import annotations


class HabitsError(Exception):
    """Base class for habit service errors."""


class ContentFetchError(HabitsError):
    """A content document could not be fetched or did not match the expected shape.

    Recovered inside the catalog loader; never reaches callers directly.
    """

    def __init__(self, language: str, reason: str):
        self.language = language
        self.reason = reason
        super().__init__(f"Content fetch failed for '{language}': {reason}")


class CatalogUnavailableError(HabitsError):
    """Every fallback tier failed; the catalog could not be consulted at all."""


class TaxonomyConfigError(HabitsError):
    """The static goal taxonomy is inconsistent (duplicate aliases, unreachable mappings)."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("Invalid goal taxonomy: " + "; ".join(errors))
