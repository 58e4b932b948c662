"""Snapshot index building.

Turns one raw catalog fetch into an immutable Snapshot: ranked authors,
per-author mods, per-package versions and categories, each with a
lower-cased mirror so suggestion queries never case-fold at read time.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from modcatalog.models.catalog import Package, Snapshot

if TYPE_CHECKING:
    from collections.abc import Iterable

    from modcatalog.models.catalog import PackageVersion

MODPACK_CATEGORY = "Modpacks"

_OLDEST = datetime.min.replace(tzinfo=UTC)


def build_snapshot(packages: Iterable[Package]) -> Snapshot:
    """Build a Snapshot from a list of catalog packages.

    Never raises for well-formed Package models. Ordering is fully
    deterministic: every sort is stable over first-seen catalog order.
    """
    unique = _dedupe_packages(packages)
    ranked = sorted(unique, key=lambda p: p.total_downloads, reverse=True)

    # Group by owner, case-insensitively; first spelling seen is displayed.
    owner_display: dict[str, str] = {}
    by_owner: dict[str, list[Package]] = {}
    for pkg in unique:
        owner_lower = pkg.owner.lower()
        owner_display.setdefault(owner_lower, pkg.owner)
        by_owner.setdefault(owner_lower, []).append(pkg)

    owner_totals = {
        owner: sum(p.total_downloads for p in group) for owner, group in by_owner.items()
    }
    ranked_owners = sorted(by_owner, key=lambda owner: owner_totals[owner], reverse=True)
    authors = tuple(owner_display[owner] for owner in ranked_owners)

    mods_by_author: dict[str, tuple[str, ...]] = {}
    mods_by_author_lower: dict[str, tuple[str, ...]] = {}
    packages_by_author: dict[str, tuple[Package, ...]] = {}
    for owner in ranked_owners:
        group = sorted(by_owner[owner], key=lambda p: p.total_downloads, reverse=True)
        names = _distinct_casefolded(p.name for p in group)
        packages_by_author[owner] = tuple(group)
        mods_by_author[owner] = names
        mods_by_author_lower[owner] = _lowered(names)

    versions_by_key: dict[str, tuple[str, ...]] = {}
    versions_by_key_lower: dict[str, tuple[str, ...]] = {}
    for pkg in unique:
        versions = tuple(
            v.version_number for v in rank_versions(pkg.versions) if v.version_number.strip()
        )
        versions_by_key[pkg.key] = versions
        versions_by_key_lower[pkg.key] = _lowered(versions)

    categories = _rank_categories(unique)
    package_names = tuple(p.name for p in ranked)

    return Snapshot(
        packages=tuple(ranked),
        package_names=package_names,
        package_names_lower=_lowered(package_names),
        authors=authors,
        authors_lower=_lowered(authors),
        mods_by_author=mods_by_author,
        mods_by_author_lower=mods_by_author_lower,
        versions_by_key=versions_by_key,
        versions_by_key_lower=versions_by_key_lower,
        categories=categories,
        categories_lower=_lowered(categories),
        packages_by_author=packages_by_author,
        packages_by_key={p.key: p for p in unique},
        built_at=datetime.now(UTC),
    )


def rank_versions(versions: Iterable[PackageVersion]) -> list[PackageVersion]:
    """Order versions newest first: creation date, then version string."""
    return sorted(
        versions,
        key=lambda v: (v.created_at() or _OLDEST, v.version_number),
        reverse=True,
    )


def _dedupe_packages(packages: Iterable[Package]) -> list[Package]:
    """Drop nameless entries and collapse duplicate (owner, name) pairs.

    The entry with more versions wins; on a tie the first one seen is kept.
    The surviving entry takes the position of the first occurrence.
    """
    by_key: dict[str, Package] = {}
    for pkg in packages:
        if not pkg.owner.strip() or not pkg.name.strip():
            continue
        existing = by_key.get(pkg.key)
        if existing is None or len(pkg.versions) > len(existing.versions):
            by_key[pkg.key] = pkg
    return list(by_key.values())


def _rank_categories(packages: list[Package]) -> tuple[str, ...]:
    counts: dict[str, int] = {}
    display: dict[str, str] = {}
    for pkg in packages:
        for category in pkg.categories:
            if not category.strip():
                continue
            lowered = category.lower()
            display.setdefault(lowered, category)
            counts[lowered] = counts.get(lowered, 0) + 1
    ranked = sorted(counts, key=lambda c: counts[c], reverse=True)
    return tuple(display[c] for c in ranked)


def _distinct_casefolded(values: Iterable[str]) -> tuple[str, ...]:
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        lowered = value.lower()
        if lowered in seen:
            continue
        seen.add(lowered)
        result.append(value)
    return tuple(result)


def _lowered(values: tuple[str, ...]) -> tuple[str, ...]:
    return tuple(value.lower() for value in values)
