"""Author download statistics computed from a Snapshot."""

from __future__ import annotations

from typing import TYPE_CHECKING

from modcatalog.models.stats import AuthorStats, LeaderboardEntry
from modcatalog.snapshot import MODPACK_CATEGORY

if TYPE_CHECKING:
    from collections.abc import Iterable

    from modcatalog.models.catalog import Package, Snapshot

# Packages that bundle the whole ecosystem rather than count as a mod
_FRAMEWORK_PACKAGES = frozenset({"r2modman", "bepinexpack_valheim"})


def median_downloads(values: Iterable[int]) -> int:
    """Median with integer division for even-length input. Empty input yields 0."""
    ordered = sorted(values)
    if not ordered:
        return 0
    half = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[half - 1] + ordered[half]) // 2
    return ordered[half]


def is_modpack(package: Package) -> bool:
    return MODPACK_CATEGORY in package.categories or "modpack" in package.name.lower()


def author_stats(snapshot: Snapshot, author: str, top: int = 5) -> AuthorStats | None:
    """Download statistics for one author, or None if the author is unknown.

    Totals and the median exclude packages in the Modpacks category; the top
    mod list additionally drops pinned packages and anything named like a
    modpack.
    """
    packages = snapshot.packages_by_author.get(author.strip().lower())
    if not packages:
        return None

    counted = [p.total_downloads for p in packages if MODPACK_CATEGORY not in p.categories]
    total = sum(counted)
    median = median_downloads(counted)
    # packages_by_author is already ranked by downloads
    most_downloaded = packages[0]
    top_mods = [p.name for p in packages if not p.is_pinned and not is_modpack(p)][: max(top, 0)]

    return AuthorStats(
        author=most_downloaded.owner,
        mods_count=len(packages),
        total_downloads=total,
        average_downloads=total // len(packages),
        median_downloads=median,
        median_downloads_multiplied=median * len(packages),
        most_downloaded_mod=most_downloaded.name,
        most_downloaded_mod_url=most_downloaded.package_url,
        top_mods=top_mods,
    )


def author_leaderboard(
    snapshot: Snapshot,
    *,
    min_mods: int = 5,
    limit: int = 10,
) -> list[LeaderboardEntry]:
    """Authors with at least ``min_mods`` eligible mods, ranked by median × count."""
    entries: list[LeaderboardEntry] = []
    for owner_key, packages in snapshot.packages_by_author.items():
        eligible = [p for p in packages if not p.is_pinned and not is_modpack(p)]
        if len(eligible) < min_mods:
            continue
        downloads = [p.total_downloads for p in eligible]
        median = median_downloads(downloads)
        entries.append(
            LeaderboardEntry(
                author=eligible[0].owner or owner_key,
                mods_count=len(eligible),
                total_downloads=sum(downloads),
                median_downloads=median,
                median_downloads_multiplied=median * len(eligible),
            )
        )

    entries.sort(key=lambda e: e.median_downloads_multiplied, reverse=True)
    return entries[: max(limit, 0)]


def global_median_downloads(snapshot: Snapshot) -> int:
    """Median per-version downloads across ordinary mods.

    Skips modpacks, pinned packages, framework packs and anything whose
    versions declare more than four dependencies.
    """
    downloads: list[int] = []
    for package in snapshot.packages:
        if package.is_pinned or is_modpack(package):
            continue
        if package.name.lower() in _FRAMEWORK_PACKAGES:
            continue
        if any(len(v.dependencies) > 4 for v in package.versions):
            continue
        downloads.extend(v.downloads for v in package.versions)
    return median_downloads(downloads)


def latest_packages(snapshot: Snapshot, limit: int = 10) -> list[Package]:
    """Most recently created packages, newest first."""
    dated = [(p.created_at(), p) for p in snapshot.packages]
    dated = [(created, p) for created, p in dated if created is not None]
    dated.sort(key=lambda item: item[0], reverse=True)
    return [p for _, p in dated[: max(limit, 0)]]
