from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator


def parse_timestamp(raw: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp from the Thunderstore API.

    Naive values are assumed to be UTC. Returns None for blank or
    unparseable input.
    """
    if not raw or not raw.strip():
        return None
    try:
        parsed = datetime.fromisoformat(raw.strip())
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


class _ApiModel(BaseModel):
    # The API emits explicit nulls for optional fields; treat them as missing
    # so field defaults apply.
    model_config = ConfigDict(frozen=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class PackageVersion(_ApiModel):
    """Single published version of a package."""

    version_number: str = ""
    downloads: int = 0
    file_size: int = 0
    date_created: str = ""
    dependencies: list[str] = []  # "Owner-Name-1.2.3"
    download_url: str | None = None
    icon: str | None = None
    description: str | None = None

    def created_at(self) -> datetime | None:
        return parse_timestamp(self.date_created)


class Package(_ApiModel):
    """Single entry of a community package listing (/c/<community>/api/v1/package/)."""

    owner: str = ""
    name: str = ""
    full_name: str | None = None
    package_url: str | None = None
    categories: list[str] = []
    is_pinned: bool = False
    is_deprecated: bool = False
    date_created: str = ""
    date_updated: str = ""
    versions: list[PackageVersion] = []

    @property
    def total_downloads(self) -> int:
        return sum(version.downloads for version in self.versions)

    @property
    def key(self) -> str:
        """Case-folded identity: ``"owner|name"``."""
        return package_key(self.owner, self.name)

    @property
    def display_name(self) -> str:
        return (self.full_name or f"{self.owner}-{self.name}").strip()

    def created_at(self) -> datetime | None:
        return parse_timestamp(self.date_created)

    def updated_at(self) -> datetime | None:
        return parse_timestamp(self.date_updated)


def package_key(owner: str, name: str) -> str:
    return f"{owner}|{name}".lower()


@dataclass(frozen=True)
class Snapshot:
    """Immutable, fully indexed view of one catalog fetch.

    Every ranked tuple has a ``*_lower`` mirror of identical length and
    order. Mapping keys are lower-cased. Instances are never mutated once
    built; a refresh publishes a new Snapshot instead.
    """

    # packages ranked by total downloads, descending
    packages: tuple[Package, ...] = ()
    package_names: tuple[str, ...] = ()
    package_names_lower: tuple[str, ...] = ()

    # authors ranked by total downloads, descending
    authors: tuple[str, ...] = ()
    authors_lower: tuple[str, ...] = ()

    # author (lowercase) → mod names ranked by downloads
    mods_by_author: dict[str, tuple[str, ...]] = field(default_factory=dict)
    mods_by_author_lower: dict[str, tuple[str, ...]] = field(default_factory=dict)

    # "owner|name" (lowercase) → version strings, newest first
    versions_by_key: dict[str, tuple[str, ...]] = field(default_factory=dict)
    versions_by_key_lower: dict[str, tuple[str, ...]] = field(default_factory=dict)

    # categories ranked by number of packages, descending
    categories: tuple[str, ...] = ()
    categories_lower: tuple[str, ...] = ()

    # author (lowercase) → packages ranked by downloads
    packages_by_author: dict[str, tuple[Package, ...]] = field(default_factory=dict)
    # "owner|name" (lowercase) → package
    packages_by_key: dict[str, Package] = field(default_factory=dict)

    built_at: datetime | None = None

    def get_package(self, owner: str, name: str) -> Package | None:
        return self.packages_by_key.get(package_key(owner, name))
