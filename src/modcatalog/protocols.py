"""Protocol interfaces for swappable components.

The scheduler, resolver and importer reference these protocols, not the
concrete RegistryClient. This allows tests to use lightweight in-memory
implementations instead of mocking HTTP.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from modcatalog.models.catalog import Package, Snapshot


class CatalogSourceProtocol(Protocol):
    """Supplies the full catalog for the refresh loop."""

    async def fetch_catalog(self) -> list[Package]: ...


class CommunitySourceProtocol(Protocol):
    """Supplies per-community package metadata for enrichment."""

    async def fetch_community_packages(self, community: str) -> list[Package]: ...


class ProfileSourceProtocol(Protocol):
    """Supplies raw legacy profile text."""

    async def fetch_legacy_profile(self, code: str) -> str: ...


class SnapshotSourceProtocol(Protocol):
    """Anything that publishes a current Snapshot."""

    @property
    def snapshot(self) -> Snapshot: ...
