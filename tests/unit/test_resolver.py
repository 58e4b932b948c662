"""Unit tests for modcatalog.resolver."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from modcatalog.errors import NetworkError
from modcatalog.models.catalog import Package
from modcatalog.models.profile import ModReference
from modcatalog.resolver import (
    UNKNOWN_VERSION,
    MetadataCache,
    ModResolver,
    build_metadata_index,
    resolve_references,
    select_version,
    version_sort_key,
)


def _ref(author: str, name: str, version: str = "") -> ModReference:
    return ModReference(author=author, name=name, version=version)


# ---------------------------------------------------------------------------
# Version selection
# ---------------------------------------------------------------------------


class TestVersionSortKey:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("1.2.3", (1, 2, 3)),
            ("1.2", (1, 2, 0)),
            ("10", (10, 0, 0)),
            ("1.2.3.4", (1, 2, 3)),
            ("1.2.3-beta", (1, 2, 0)),
            ("1.x.3", (1, 0, 3)),
            ("", (0, 0, 0)),
            (None, (0, 0, 0)),
        ],
    )
    def test_parse(self, value: str | None, expected: tuple[int, int, int]) -> None:
        assert version_sort_key(value) == expected

    def test_numeric_not_lexicographic(self) -> None:
        assert version_sort_key("1.10.0") > version_sort_key("1.9.0")


class TestSelectVersion:
    def test_exact_match_case_insensitive(self, package_factory) -> None:
        pkg = package_factory(
            "A",
            "Mod",
            [("2.0.0", 1, "2024-02-01T00:00:00Z"), ("1.0.0-RC", 1, "2024-01-01T00:00:00Z")],
        )
        selected = select_version(pkg, "1.0.0-rc")
        assert selected is not None
        assert selected.version_number == "1.0.0-RC"

    def test_missing_request_selects_highest(self, package_factory) -> None:
        pkg = package_factory(
            "A",
            "Mod",
            [
                ("1.9.0", 1, "2024-03-01T00:00:00Z"),
                ("1.10.0", 1, "2024-01-01T00:00:00Z"),
                ("1.2.0", 1, "2024-02-01T00:00:00Z"),
            ],
        )
        assert select_version(pkg, None).version_number == "1.10.0"
        assert select_version(pkg, "9.9.9").version_number == "1.10.0"

    def test_tie_keeps_declaration_order(self, package_factory) -> None:
        pkg = package_factory(
            "A",
            "Mod",
            [("1.0.0", 1, "2024-01-01T00:00:00Z"), ("1.0.0.1", 1, "2024-02-01T00:00:00Z")],
        )
        assert select_version(pkg, "").version_number == "1.0.0"

    def test_no_versions(self) -> None:
        assert select_version(Package(owner="A", name="Mod"), "1.0.0") is None


# ---------------------------------------------------------------------------
# Metadata index and resolution
# ---------------------------------------------------------------------------


class TestBuildMetadataIndex:
    def test_keyed_by_display_name(self, sample_packages: list[Package]) -> None:
        index = build_metadata_index(sample_packages)
        assert "randyknapp-epicloot" in index
        assert "org-my-mod" in index

    def test_duplicate_prefers_more_versions(self, sample_packages: list[Package]) -> None:
        index = build_metadata_index(sample_packages)
        assert len(index["azumatt-azucraftyboxes"].versions) == 2


class TestResolveReferences:
    def test_known_mod_enriched(self, sample_packages: list[Package]) -> None:
        index = build_metadata_index(sample_packages)
        [result] = resolve_references([_ref("randyknapp", "epicloot")], index)

        assert result.display == "RandyKnapp-EpicLoot"
        assert result.version == "5.1.0"
        assert result.icon_url == "https://gcdn.thunderstore.io/RandyKnapp-EpicLoot-5.1.0.png"
        assert result.description == "EpicLoot 5.1.0"

    def test_requested_version_kept(self, sample_packages: list[Package]) -> None:
        index = build_metadata_index(sample_packages)
        [result] = resolve_references([_ref("RandyKnapp", "EpicLoot", "5.0.0")], index)
        assert result.version == "5.0.0"
        assert result.icon_url.endswith("5.0.0.png")

    def test_unknown_mod_passes_through(self) -> None:
        [with_version, without_version] = resolve_references(
            [_ref("Ghost", "Mod", "1.0.0"), _ref("Ghost", "Other")], {}
        )

        assert with_version.display == "Ghost-Mod"
        assert with_version.version == "1.0.0"
        assert with_version.icon_url is None
        assert with_version.description is None
        assert without_version.version == UNKNOWN_VERSION

    def test_output_sorted_by_author_then_name(
        self, sample_packages: list[Package]
    ) -> None:
        index = build_metadata_index(sample_packages)
        refs = [
            _ref("RandyKnapp", "EpicLoot"),
            _ref("azumatt", "Zeta"),
            _ref("Azumatt", "AzuCraftyBoxes"),
            _ref("Ghost", "Mod"),
        ]
        results = resolve_references(refs, index)
        assert [(r.author, r.name) for r in results] == [
            ("Azumatt", "AzuCraftyBoxes"),
            ("azumatt", "Zeta"),
            ("Ghost", "Mod"),
            ("RandyKnapp", "EpicLoot"),
        ]


# ---------------------------------------------------------------------------
# Cache and ModResolver
# ---------------------------------------------------------------------------


class TestMetadataCache:
    def test_miss(self) -> None:
        assert MetadataCache().get("valheim") is None

    def test_hit_is_case_insensitive(self, sample_packages: list[Package]) -> None:
        cache = MetadataCache()
        cache.put("Valheim", sample_packages)
        assert cache.get("valheim") == sample_packages

    def test_expired_entry_ignored(self, sample_packages: list[Package]) -> None:
        cache = MetadataCache(ttl_seconds=300)
        cache.put(
            "valheim", sample_packages, fetched_at=datetime.now(UTC) - timedelta(seconds=301)
        )
        assert cache.get("valheim") is None

    def test_clear(self, sample_packages: list[Package]) -> None:
        cache = MetadataCache()
        cache.put("valheim", sample_packages)
        cache.clear()
        assert cache.get("valheim") is None


class TestModResolver:
    async def test_enrich_fetches_once_within_ttl(
        self, sample_packages: list[Package]
    ) -> None:
        source = AsyncMock()
        source.fetch_community_packages.return_value = sample_packages
        resolver = ModResolver(source, MetadataCache())

        first = await resolver.enrich([_ref("RandyKnapp", "EpicLoot")], "valheim")
        second = await resolver.enrich([_ref("Azumatt", "AzuCraftyBoxes")], "valheim")

        source.fetch_community_packages.assert_awaited_once_with("valheim")
        assert first[0].version == "5.1.0"
        assert second[0].version == "1.6.1"

    async def test_expired_cache_refetches(self, sample_packages: list[Package]) -> None:
        source = AsyncMock()
        source.fetch_community_packages.return_value = sample_packages
        cache = MetadataCache()
        cache.put("valheim", [], fetched_at=datetime.now(UTC) - timedelta(hours=1))
        resolver = ModResolver(source, cache)

        result = await resolver.enrich([_ref("RandyKnapp", "EpicLoot")], "valheim")

        assert source.fetch_community_packages.await_count == 1
        assert result[0].display == "RandyKnapp-EpicLoot"

    async def test_empty_references_skip_fetch(self) -> None:
        source = AsyncMock()
        resolver = ModResolver(source, MetadataCache())

        assert await resolver.enrich([], "valheim") == []
        source.fetch_community_packages.assert_not_awaited()

    async def test_fetch_errors_propagate(self) -> None:
        source = AsyncMock()
        source.fetch_community_packages.side_effect = NetworkError("down")
        resolver = ModResolver(source, MetadataCache())

        with pytest.raises(NetworkError):
            await resolver.enrich([_ref("A", "B")], "valheim")
