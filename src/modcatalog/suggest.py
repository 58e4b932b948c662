"""Autocomplete-style suggestion queries.

Pure business logic: receives a Snapshot, returns plain strings. No I/O and
no knowledge of the refresh loop. Queries never raise: unknown keys and
empty indexes yield empty results.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from modcatalog.models.catalog import package_key
from modcatalog.snapshot import MODPACK_CATEGORY

if TYPE_CHECKING:
    from collections.abc import Sequence

    from modcatalog.models.catalog import Snapshot
    from modcatalog.protocols import SnapshotSourceProtocol

DEFAULT_MAX_RESULTS = 20
DEFAULT_MAX_CATEGORIES = 25


def suggest_authors(
    snapshot: Snapshot,
    needle: str | None = "",
    max_results: int = DEFAULT_MAX_RESULTS,
) -> list[str]:
    """Authors ranked by downloads whose name contains ``needle``."""
    return _filter_ranked(snapshot.authors, snapshot.authors_lower, needle, max_results)


def suggest_mods(
    snapshot: Snapshot,
    author: str | None,
    needle: str | None = "",
    max_results: int = DEFAULT_MAX_RESULTS,
) -> list[str]:
    """Mod names containing ``needle``, optionally scoped to one author.

    Without an author the whole ranked catalog is scanned and names are
    de-duplicated case-insensitively across authors.
    """
    if max_results <= 0:
        return []

    if author is None or not author.strip():
        lowered_needle = _normalise(needle)
        seen: set[str] = set()
        results: list[str] = []
        for name, name_lower in zip(
            snapshot.package_names, snapshot.package_names_lower, strict=True
        ):
            if len(results) >= max_results:
                break
            if lowered_needle and lowered_needle not in name_lower:
                continue
            if name_lower in seen:
                continue
            seen.add(name_lower)
            results.append(name)
        return results

    author_key = author.strip().lower()
    names = snapshot.mods_by_author.get(author_key)
    names_lower = snapshot.mods_by_author_lower.get(author_key)
    if names is None or names_lower is None:
        return []
    return _filter_ranked(names, names_lower, needle, max_results)


def suggest_versions(
    snapshot: Snapshot,
    author: str,
    name: str,
    needle: str | None = "",
    max_results: int = DEFAULT_MAX_RESULTS,
) -> list[str]:
    """Versions of one package, newest first, containing ``needle``."""
    key = package_key(author.strip(), name.strip())
    versions = snapshot.versions_by_key.get(key)
    versions_lower = snapshot.versions_by_key_lower.get(key)
    if versions is None or versions_lower is None:
        return []
    return _filter_ranked(versions, versions_lower, needle, max_results)


def suggest_categories(
    snapshot: Snapshot,
    needle: str | None = "",
    include_modpacks: bool = False,
    max_results: int = DEFAULT_MAX_CATEGORIES,
) -> list[str]:
    """Categories ranked by popularity. The Modpacks umbrella is hidden unless asked for."""
    if max_results <= 0:
        return []

    lowered_needle = _normalise(needle)
    excluded = MODPACK_CATEGORY.lower()
    results: list[str] = []
    for category, category_lower in zip(
        snapshot.categories, snapshot.categories_lower, strict=True
    ):
        if len(results) >= max_results:
            break
        if not include_modpacks and category_lower == excluded:
            continue
        if lowered_needle and lowered_needle not in category_lower:
            continue
        results.append(category)
    return results


class SuggestionEngine:
    """Runs suggestion queries against whatever Snapshot is currently published.

    Each call reads ``source.snapshot`` exactly once, so a refresh landing
    mid-query cannot mix results from two catalog fetches.
    """

    def __init__(self, source: SnapshotSourceProtocol) -> None:
        self._source = source

    def authors(self, needle: str | None = "", max_results: int = DEFAULT_MAX_RESULTS) -> list[str]:
        return suggest_authors(self._source.snapshot, needle, max_results)

    def mods(
        self,
        author: str | None,
        needle: str | None = "",
        max_results: int = DEFAULT_MAX_RESULTS,
    ) -> list[str]:
        return suggest_mods(self._source.snapshot, author, needle, max_results)

    def versions(
        self,
        author: str,
        name: str,
        needle: str | None = "",
        max_results: int = DEFAULT_MAX_RESULTS,
    ) -> list[str]:
        return suggest_versions(self._source.snapshot, author, name, needle, max_results)

    def categories(
        self,
        needle: str | None = "",
        include_modpacks: bool = False,
        max_results: int = DEFAULT_MAX_CATEGORIES,
    ) -> list[str]:
        return suggest_categories(self._source.snapshot, needle, include_modpacks, max_results)


def _filter_ranked(
    display: Sequence[str],
    lowered: Sequence[str],
    needle: str | None,
    max_results: int,
) -> list[str]:
    """Linear scan of a ranked list and its lower-cased mirror, preserving rank order."""
    if max_results <= 0:
        return []

    lowered_needle = _normalise(needle)
    if not lowered_needle:
        return list(display[:max_results])

    results: list[str] = []
    for value, value_lower in zip(display, lowered, strict=True):
        if lowered_needle in value_lower:
            results.append(value)
            if len(results) >= max_results:
                break
    return results


def _normalise(needle: str | None) -> str:
    return (needle or "").strip().lower()
