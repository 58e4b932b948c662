from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from modcatalog.models.catalog import Package


class MetadataCacheEntry(BaseModel):
    """Cached per-community package listing used for enrichment."""

    community: str  # lowercase
    packages: list[Package]
    fetched_at: datetime
