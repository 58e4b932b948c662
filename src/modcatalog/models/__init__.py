from __future__ import annotations

from modcatalog.models.cache import MetadataCacheEntry
from modcatalog.models.catalog import Package, PackageVersion, Snapshot, package_key
from modcatalog.models.profile import (
    DecodedProfile,
    EnrichedModReference,
    ModReference,
    ParseStrategy,
    ProfileImport,
)
from modcatalog.models.stats import AuthorStats, LeaderboardEntry

__all__ = [
    # catalog
    "Package",
    "PackageVersion",
    "Snapshot",
    "package_key",
    # cache
    "MetadataCacheEntry",
    # profiles
    "ModReference",
    "EnrichedModReference",
    "DecodedProfile",
    "ProfileImport",
    "ParseStrategy",
    # stats
    "AuthorStats",
    "LeaderboardEntry",
]
