from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from pydantic import BaseModel, ConfigDict

ParseStrategy = Literal["r2x", "manifest", "configs"]


class ModReference(BaseModel):
    """A mod named by a profile export. ``version`` is empty when unknown."""

    model_config = ConfigDict(frozen=True)

    author: str
    name: str
    version: str = ""
    original: str | None = None  # dependency string as found in the export

    @property
    def key(self) -> str:
        return f"{self.author}-{self.name}"

    def __str__(self) -> str:
        return f"{self.key}-{self.version}" if self.version else self.key


class EnrichedModReference(BaseModel):
    """A ModReference resolved against live community metadata."""

    model_config = ConfigDict(frozen=True)

    author: str
    name: str
    display: str  # "Author-Name" as published
    version: str  # exact match, highest available, or the reference's own
    icon_url: str | None = None
    description: str | None = None

    def __str__(self) -> str:
        return f"{self.author}-{self.name}-{self.version}"


@dataclass(frozen=True)
class DecodedProfile:
    """Result of decoding a legacy profile export."""

    mods: list[ModReference] = field(default_factory=list)
    community: str | None = None
    profile_name: str | None = None
    strategy: ParseStrategy | None = None


class ProfileImport(BaseModel):
    """Decoded and enriched profile, ready for presentation."""

    profile_name: str | None
    community: str
    strategy: ParseStrategy | None
    mods: list[EnrichedModReference]
