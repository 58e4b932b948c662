"""Mod reference enrichment.

Resolves (author, name, version?) references against live per-community
package metadata. A reference that is missing from the metadata degrades to
a pass-through record; resolution itself never fails for an unknown mod.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import structlog

from modcatalog.models.cache import MetadataCacheEntry
from modcatalog.models.profile import EnrichedModReference

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from modcatalog.models.catalog import Package, PackageVersion
    from modcatalog.models.profile import ModReference
    from modcatalog.protocols import CommunitySourceProtocol

log = structlog.get_logger()

DEFAULT_METADATA_TTL_SECONDS = 5 * 60
UNKNOWN_VERSION = "unknown"


class MetadataCache:
    """In-memory, last-fetch-wins cache of community package listings.

    Soft cache only: concurrent imports for the same community may both
    fetch, and whichever finishes last is kept.
    """

    def __init__(self, ttl_seconds: float = DEFAULT_METADATA_TTL_SECONDS) -> None:
        self._ttl = timedelta(seconds=ttl_seconds)
        self._entries: dict[str, MetadataCacheEntry] = {}

    def get(self, community: str) -> list[Package] | None:
        """Return cached packages, or None on miss or expiry."""
        entry = self._entries.get(community.lower())
        if entry is None:
            return None
        if datetime.now(UTC) - entry.fetched_at >= self._ttl:
            return None
        return entry.packages

    def put(
        self,
        community: str,
        packages: list[Package],
        *,
        fetched_at: datetime | None = None,
    ) -> None:
        key = community.lower()
        self._entries[key] = MetadataCacheEntry(
            community=key,
            packages=packages,
            fetched_at=fetched_at or datetime.now(UTC),
        )

    def clear(self) -> None:
        self._entries.clear()


class ModResolver:
    """Enriches ModReferences using cached community metadata."""

    def __init__(self, source: CommunitySourceProtocol, cache: MetadataCache) -> None:
        self._source = source
        self._cache = cache

    async def community_packages(self, community: str) -> list[Package]:
        cached = self._cache.get(community)
        if cached is not None:
            log.debug("metadata_cache_hit", community=community)
            return cached

        packages = await self._source.fetch_community_packages(community)
        self._cache.put(community, packages)
        return packages

    async def enrich(
        self,
        references: Iterable[ModReference],
        community: str,
    ) -> list[EnrichedModReference]:
        """Resolve references for one community. Fetch errors propagate."""
        refs = list(references)
        if not refs:
            return []

        packages = await self.community_packages(community)
        index = build_metadata_index(packages)
        log.info(
            "references_enriched",
            community=community,
            references=len(refs),
            unresolved=sum(1 for ref in refs if ref.key.lower() not in index),
        )
        return resolve_references(refs, index)


def build_metadata_index(packages: Iterable[Package]) -> dict[str, Package]:
    """Index packages by lower-cased ``Author-Name``.

    Duplicates keep the entry with more versions; the first wins a tie.
    """
    index: dict[str, Package] = {}
    for package in packages:
        key = package.display_name.lower()
        if not key or key == "-":
            continue
        existing = index.get(key)
        if existing is None or len(package.versions) > len(existing.versions):
            index[key] = package
    return index


def version_sort_key(version: str | None) -> tuple[int, int, int]:
    """Best-effort dotted numeric parse; missing or non-numeric parts count as 0.

    Anything after the third component is ignored. A component with a
    suffix is not numeric, so "1.2.3-beta" parses as (1, 2, 0).
    """
    if not version or not version.strip():
        return (0, 0, 0)
    parts = version.strip().split(".", 3)
    numbers = [_int_or_zero(part) for part in parts[:3]]
    numbers.extend([0] * (3 - len(numbers)))
    return (numbers[0], numbers[1], numbers[2])


def select_version(package: Package, requested: str | None) -> PackageVersion | None:
    """Exact (case-insensitive) match when requested, else the highest version.

    Ties between equally ranked versions go to the one declared first.
    """
    if requested and requested.strip():
        wanted = requested.strip().lower()
        for version in package.versions:
            if version.version_number.lower() == wanted:
                return version

    if not package.versions:
        return None
    return max(package.versions, key=lambda v: version_sort_key(v.version_number))


def resolve_references(
    references: Sequence[ModReference],
    index: dict[str, Package],
) -> list[EnrichedModReference]:
    """Resolve every reference, sorted by author then name."""
    results: list[EnrichedModReference] = []
    for ref in references:
        package = index.get(ref.key.lower())
        if package is None:
            results.append(
                EnrichedModReference(
                    author=ref.author,
                    name=ref.name,
                    display=ref.key,
                    version=ref.version or UNKNOWN_VERSION,
                )
            )
            continue

        version = select_version(package, ref.version)
        results.append(
            EnrichedModReference(
                author=ref.author,
                name=ref.name,
                display=package.full_name or ref.key,
                version=(
                    version.version_number
                    if version is not None
                    else (ref.version or UNKNOWN_VERSION)
                ),
                icon_url=version.icon if version is not None else None,
                description=version.description if version is not None else None,
            )
        )

    results.sort(key=lambda e: (e.author.lower(), e.name.lower()))
    return results


def _int_or_zero(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        return 0
